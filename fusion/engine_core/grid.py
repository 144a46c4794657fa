"""
Grid Model - Tiles and the 4x4 board.

Design principles:
- Immutable-friendly: all mutations return a new grid
- Arena + index: tiles live in the matrix itself; a tile's row/col is
  its array position, never a stored back-pointer
- Serializable: rows of plain values for saving and loading
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from enum import Enum
from typing import Iterator

from ..config import JOKER_LEVEL


GRID_SIZE = 4


class Direction(Enum):
    """The four directional commands."""
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"

    @classmethod
    def parse(cls, value: str | Direction) -> Direction:
        if isinstance(value, Direction):
            return value
        return cls(value.strip().lower())


@dataclass(frozen=True)
class CellRef:
    """A board coordinate."""
    row: int
    col: int

    def in_bounds(self, size: int = GRID_SIZE) -> bool:
        return 0 <= self.row < size and 0 <= self.col < size

    def neighbours(self, size: int = GRID_SIZE) -> list[CellRef]:
        """Orthogonal neighbours that lie on the board."""
        candidates = [
            CellRef(self.row - 1, self.col),
            CellRef(self.row + 1, self.col),
            CellRef(self.row, self.col - 1),
            CellRef(self.row, self.col + 1),
        ]
        return [c for c in candidates if c.in_bounds(size)]


@dataclass(frozen=True)
class Tile:
    """
    A tile on the board.

    `merged` blocks a second merge within one move resolution.
    `just_merged` and `just_spawned` are presentation hints only.
    """
    id: int
    level: int
    merged: bool = False
    just_merged: bool = False
    just_spawned: bool = False

    @property
    def is_joker(self) -> bool:
        return self.level == JOKER_LEVEL

    def cleared(self) -> Tile:
        """Return the tile with all per-move flags reset."""
        if not (self.merged or self.just_merged or self.just_spawned):
            return self
        return replace(self, merged=False, just_merged=False, just_spawned=False)


Row = tuple["Tile | None", ...]


@dataclass(frozen=True)
class Grid:
    """
    Fixed-size square matrix of optional tiles.

    Pure data; the move rules live in the resolver.
    """
    cells: tuple[Row, ...]

    @classmethod
    def empty(cls, size: int = GRID_SIZE) -> Grid:
        return cls(cells=tuple(tuple(None for _ in range(size)) for _ in range(size)))

    @classmethod
    def from_rows(cls, rows: list[list[Tile | None]]) -> Grid:
        """Build a grid from nested lists. Rows must form a square."""
        size = len(rows)
        if size == 0 or any(len(r) != size for r in rows):
            raise ValueError("Grid rows must form a non-empty square")
        return cls(cells=tuple(tuple(r) for r in rows))

    @classmethod
    def from_levels(cls, levels: list[list[int | None]], first_id: int = 1) -> Grid:
        """
        Build a grid from a matrix of levels, assigning ids row by row.

        Handy for fixtures: `Grid.from_levels([[1, 1, None, None], ...])`.
        """
        next_id = first_id
        rows: list[list[Tile | None]] = []
        for level_row in levels:
            row: list[Tile | None] = []
            for level in level_row:
                if level is None:
                    row.append(None)
                else:
                    row.append(Tile(id=next_id, level=level))
                    next_id += 1
            rows.append(row)
        return cls.from_rows(rows)

    @property
    def size(self) -> int:
        return len(self.cells)

    def get(self, cell: CellRef) -> Tile | None:
        if not cell.in_bounds(self.size):
            return None
        return self.cells[cell.row][cell.col]

    def with_cell(self, cell: CellRef, tile: Tile | None) -> Grid:
        """Return a new grid with one cell replaced."""
        rows = [list(r) for r in self.cells]
        rows[cell.row][cell.col] = tile
        return Grid.from_rows(rows)

    def to_rows(self) -> list[list[Tile | None]]:
        """Mutable copy of the matrix."""
        return [list(r) for r in self.cells]

    def tiles(self) -> Iterator[tuple[CellRef, Tile]]:
        """Yield (position, tile) for every occupied cell, row-major."""
        for r, row in enumerate(self.cells):
            for c, tile in enumerate(row):
                if tile is not None:
                    yield CellRef(r, c), tile

    def empty_cells(self) -> list[CellRef]:
        return [
            CellRef(r, c)
            for r, row in enumerate(self.cells)
            for c, tile in enumerate(row)
            if tile is None
        ]

    @property
    def is_full(self) -> bool:
        return all(tile is not None for row in self.cells for tile in row)

    @property
    def tile_count(self) -> int:
        return sum(1 for _ in self.tiles())

    def locate(self, tile_id: int) -> CellRef | None:
        """Find the position of a tile by id."""
        for cell, tile in self.tiles():
            if tile.id == tile_id:
                return cell
        return None

    def tile_ids(self) -> set[int]:
        return {tile.id for _, tile in self.tiles()}

    def highest_level(self) -> int:
        """Highest non-Joker level on the board; 1 for a board of Jokers or nothing."""
        levels = [t.level for _, t in self.tiles() if not t.is_joker]
        return max(levels, default=1)

    def cleared_flags(self) -> Grid:
        """Return the grid with every tile's per-move flags reset."""
        return Grid(cells=tuple(
            tuple(t.cleared() if t is not None else None for t in row)
            for row in self.cells
        ))

    def to_levels(self) -> list[list[int | None]]:
        return [[t.level if t is not None else None for t in row] for row in self.cells]
