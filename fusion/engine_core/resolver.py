"""
Move Resolver - Slides and merges tiles for one directional move.

The resolver is a pure function:
    (grid, direction, frozen_tiles) -> MoveResult

Merge rules:
- Identical non-Joker levels merge into level + 1
- A Joker is wild: it merges with any non-Joker tile, producing that
  tile's level + 1 (never a Joker)
- Two Jokers never merge with each other
- Frozen tiles neither move nor merge; they act as walls
- A tile merges at most once per move

Spawning lives here too (TileSpawner) since it is the second half of
every successful move.
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from random import Random
from typing import Mapping
import logging

from ..config import JOKER_LEVEL, SpawnWeights
from .grid import CellRef, Direction, Grid, Tile


logger = logging.getLogger(__name__)


FrozenTiles = Mapping[int, int]


@dataclass(frozen=True)
class MergeEvent:
    """One merge produced by a move."""
    level: int
    is_joker: bool  # A Joker took part in the merge
    row: int
    col: int
    score_delta: int


@dataclass(frozen=True)
class MoveResult:
    """
    Result of resolving one move.

    When `moved` is False, `grid` is the input grid unchanged and the
    caller must not score, spawn, or record history.
    """
    grid: Grid
    moved: bool
    merged: bool
    merge_events: tuple[MergeEvent, ...] = ()

    @property
    def score_delta(self) -> int:
        return sum(e.score_delta for e in self.merge_events)


def is_frozen(tile: Tile, frozen_tiles: FrozenTiles) -> bool:
    return frozen_tiles.get(tile.id, 0) > 0


def can_merge(a: Tile, b: Tile, frozen_tiles: FrozenTiles | None = None) -> bool:
    """Check if two tiles may merge under the current freeze state."""
    frozen_tiles = frozen_tiles or {}
    if a.merged or b.merged:
        return False
    if is_frozen(a, frozen_tiles) or is_frozen(b, frozen_tiles):
        return False
    if a.is_joker and b.is_joker:
        return False
    if a.is_joker or b.is_joker:
        return True
    return a.level == b.level


def merge_level(target: Tile, moving: Tile) -> int:
    """Level of the tile produced by merging `moving` into `target`."""
    if target.is_joker:
        return moving.level + 1
    return target.level + 1


def _line_cells(direction: Direction, index: int, size: int) -> list[CellRef]:
    """
    Cells of one line, ordered from the leading edge backwards.

    For LEFT the leading edge is column 0, for DOWN it is the last row, etc.
    """
    if direction == Direction.LEFT:
        return [CellRef(index, c) for c in range(size)]
    if direction == Direction.RIGHT:
        return [CellRef(index, c) for c in reversed(range(size))]
    if direction == Direction.UP:
        return [CellRef(r, index) for r in range(size)]
    return [CellRef(r, index) for r in reversed(range(size))]


def resolve(
    grid: Grid,
    direction: Direction | str,
    frozen_tiles: FrozenTiles | None = None,
) -> MoveResult:
    """
    Resolve one move.

    Each line is scanned from the leading edge. Every non-frozen tile
    slides toward the edge while the next cell is empty; if the next cell
    holds a compatible tile the two merge and the slide stops.
    """
    direction = Direction.parse(direction)
    frozen_tiles = frozen_tiles or {}
    size = grid.size
    rows = grid.cleared_flags().to_rows()

    moved = False
    events: list[MergeEvent] = []

    for index in range(size):
        line = _line_cells(direction, index, size)
        # Position 0 is already on the leading edge and never moves
        for pos in range(1, size):
            cell = line[pos]
            tile = rows[cell.row][cell.col]
            if tile is None or is_frozen(tile, frozen_tiles):
                continue

            current = pos
            while current > 0:
                here = line[current]
                ahead = line[current - 1]
                moving = rows[here.row][here.col]
                target = rows[ahead.row][ahead.col]

                if target is None:
                    rows[ahead.row][ahead.col] = moving
                    rows[here.row][here.col] = None
                    current -= 1
                    moved = True
                    continue

                if can_merge(target, moving, frozen_tiles):
                    level = merge_level(target, moving)
                    score_delta = 2 ** level
                    rows[ahead.row][ahead.col] = replace(
                        target,
                        level=level,
                        merged=True,
                        just_merged=True,
                    )
                    rows[here.row][here.col] = None
                    events.append(MergeEvent(
                        level=level,
                        is_joker=target.is_joker or moving.is_joker,
                        row=ahead.row,
                        col=ahead.col,
                        score_delta=score_delta,
                    ))
                    moved = True
                break

    if not moved:
        return MoveResult(grid=grid, moved=False, merged=False)

    return MoveResult(
        grid=Grid.from_rows(rows),
        moved=True,
        merged=bool(events),
        merge_events=tuple(events),
    )


@dataclass
class TileSpawner:
    """
    Places new tiles on the board.

    The random source and the level weights are injectable so that
    tests can script exactly which tile lands where.
    """
    rng: Random = field(default_factory=Random)
    weights: SpawnWeights = field(default_factory=SpawnWeights)

    def draw_level(self) -> int:
        """Draw a level (JOKER_LEVEL, 1 or 2) from the weight table."""
        table = self.weights.as_table()
        total = sum(w for _, w in table)
        roll = self.rng.random() * total
        cumulative = 0.0
        for level, weight in table:
            cumulative += weight
            if roll < cumulative:
                return level
        # Floating point slack: fall back to the last positive weight
        return next(level for level, weight in reversed(table) if weight > 0)

    def spawn(self, grid: Grid, tile_id: int) -> tuple[Grid, Tile | None]:
        """
        Spawn one tile on a uniformly random empty cell.

        Returns (new_grid, tile) or (grid, None) when the board is full.
        """
        empty = grid.empty_cells()
        if not empty:
            return grid, None

        cell = empty[self.rng.randrange(len(empty))]
        tile = Tile(id=tile_id, level=self.draw_level(), just_spawned=True)
        if tile.level == JOKER_LEVEL:
            logger.debug("Joker spawned at (%d, %d)", cell.row, cell.col)
        return grid.with_cell(cell, tile), tile

    def initial_grid(self, size: int = 4) -> tuple[Grid, int]:
        """
        Start a game: two spawned tiles with ids 1 and 2.

        Returns (grid, next_tile_id).
        """
        grid = Grid.empty(size)
        grid, _ = self.spawn(grid, 1)
        grid, _ = self.spawn(grid, 2)
        return grid, 3
