"""
Pydantic models for everything written to disk.

A SavedGame is the local checkpoint of one GameSession: the board,
score, tile counter, replayable effects, forward-only economy, undo
history and the lifecycle flags. Conversion to and from the engine's
dataclasses lives here so the engine never imports pydantic.
"""

from __future__ import annotations
from random import Random
from typing import Callable
import time

from pydantic import BaseModel, Field, field_validator

from ..config import DEFAULT_RULES, GameRules
from ..engine_core.game_session import GameSession
from ..engine_core.grid import Grid, Tile
from ..engine_core.history import HistorySnapshot
from ..engine_core.powerups import BoardEffects, EconomyState, PowerUp, PowerUpType


SCHEMA_VERSION = 1


# =============================================================================
# Board
# =============================================================================

class SavedTile(BaseModel):
    """A tile. Its position is the cell it is stored in."""
    id: int
    level: int

    @classmethod
    def from_tile(cls, tile: Tile | None) -> SavedTile | None:
        if tile is None:
            return None
        return cls(id=tile.id, level=tile.level)

    def to_tile(self) -> Tile:
        return Tile(id=self.id, level=self.level)


SavedRows = list[list[SavedTile | None]]


def _check_square(rows: SavedRows) -> SavedRows:
    if not rows or any(len(row) != len(rows) for row in rows):
        raise ValueError("grid must be a non-empty square")
    return rows


def _dump_grid(grid: Grid) -> SavedRows:
    return [[SavedTile.from_tile(t) for t in row] for row in grid.to_rows()]


def _load_grid(rows: SavedRows) -> Grid:
    return Grid.from_rows([[t.to_tile() if t else None for t in row] for row in rows])


class SavedBoardEffects(BaseModel):
    frozen_tiles: dict[int, int] = Field(default_factory=dict)
    slow_motion_turns: int = 0
    generated_levels: list[int] = Field(default_factory=list)

    @classmethod
    def from_effects(cls, effects: BoardEffects) -> SavedBoardEffects:
        return cls(
            frozen_tiles=dict(effects.frozen_tiles),
            slow_motion_turns=effects.slow_motion_turns,
            generated_levels=sorted(effects.generated_levels),
        )

    def to_effects(self) -> BoardEffects:
        return BoardEffects(
            frozen_tiles=self.frozen_tiles,
            slow_motion_turns=max(0, self.slow_motion_turns),
            generated_levels=frozenset(self.generated_levels),
        )


class SavedSnapshot(BaseModel):
    """One undo history entry."""
    grid: SavedRows
    score: int
    next_tile_id: int
    effects: SavedBoardEffects = Field(default_factory=SavedBoardEffects)

    @field_validator("grid")
    @classmethod
    def grid_is_square(cls, v: SavedRows) -> SavedRows:
        return _check_square(v)

    @classmethod
    def from_snapshot(cls, snapshot: HistorySnapshot) -> SavedSnapshot:
        return cls(
            grid=_dump_grid(snapshot.grid),
            score=snapshot.score,
            next_tile_id=snapshot.next_tile_id,
            effects=SavedBoardEffects.from_effects(snapshot.effects),
        )

    def to_snapshot(self) -> HistorySnapshot:
        grid = _load_grid(self.grid)
        return HistorySnapshot(
            grid=grid,
            score=self.score,
            next_tile_id=max(self.next_tile_id, max(grid.tile_ids(), default=0) + 1),
            effects=self.effects.to_effects(),
        )


# =============================================================================
# Economy
# =============================================================================

class SavedPowerUp(BaseModel):
    id: str
    type: PowerUpType
    created_at: float = 0.0


class SavedEconomy(BaseModel):
    inventory: list[SavedPowerUp] = Field(default_factory=list)
    extra_undos: int = 0
    spawned_undos: int = 0

    @classmethod
    def from_economy(cls, economy: EconomyState) -> SavedEconomy:
        return cls(
            inventory=[
                SavedPowerUp(id=p.id, type=p.type, created_at=p.created_at)
                for p in economy.inventory
            ],
            extra_undos=economy.extra_undos,
            spawned_undos=economy.spawned_undos,
        )

    def to_economy(self, max_power_ups: int) -> EconomyState:
        inventory = tuple(
            PowerUp(id=p.id, type=p.type, created_at=p.created_at)
            for p in self.inventory[:max_power_ups]
        )
        return EconomyState(
            inventory=inventory,
            extra_undos=max(0, self.extra_undos),
            spawned_undos=max(0, self.spawned_undos),
        )


# =============================================================================
# Session checkpoint
# =============================================================================

class SavedGame(BaseModel):
    """Local checkpoint of a GameSession."""
    version: int = SCHEMA_VERSION
    grid: SavedRows
    score: int = 0
    next_tile_id: int
    highest_level: int = 1
    effects: SavedBoardEffects = Field(default_factory=SavedBoardEffects)
    economy: SavedEconomy = Field(default_factory=SavedEconomy)
    history: list[SavedSnapshot] = Field(default_factory=list)

    baseline_undo: bool = False
    game_over: bool = False
    game_over_grant: bool = False
    finalized: bool = False

    saved_at: float = Field(default_factory=time.time)

    @field_validator("grid")
    @classmethod
    def grid_is_square(cls, v: SavedRows) -> SavedRows:
        return _check_square(v)

    @property
    def can_undo_after_game_over(self) -> bool:
        """The one-shot undo after game over is still available."""
        return (
            self.game_over
            and not self.finalized
            and bool(self.history)
            and (self.game_over_grant or self.economy.extra_undos > 0)
        )

    @classmethod
    def from_session(cls, session: GameSession) -> SavedGame:
        return cls(
            grid=_dump_grid(session.grid),
            score=session.score,
            next_tile_id=session.next_tile_id,
            highest_level=session.highest_level,
            effects=SavedBoardEffects.from_effects(session.effects),
            economy=SavedEconomy.from_economy(session.economy),
            history=[SavedSnapshot.from_snapshot(s) for s in session.history.entries],
            baseline_undo=session.baseline_undo,
            game_over=session.game_over,
            game_over_grant=session.game_over_grant,
            finalized=session.finalized,
        )

    def to_session(
        self,
        rules: GameRules | None = None,
        rng: Random | None = None,
        clock: Callable[[], float] | None = None,
    ) -> GameSession:
        """
        Rebuild a live session.

        Tile positions come from where each tile sits in the saved grid,
        and the tile counter is bumped past any id already on the board.
        Freeze entries for tiles no longer on the board are dropped.
        """
        grid = _load_grid(self.grid)
        on_board = set(grid.tile_ids())
        effects = self.effects.to_effects()
        effects = BoardEffects(
            frozen_tiles={k: v for k, v in effects.frozen_tiles.items() if k in on_board},
            slow_motion_turns=effects.slow_motion_turns,
            generated_levels=effects.generated_levels,
        )
        history = [s.to_snapshot() for s in self.history]
        session = GameSession.restore(
            grid=grid,
            score=self.score,
            next_tile_id=max(self.next_tile_id, max(on_board, default=0) + 1),
            highest_level=self.highest_level,
            effects=effects,
            economy=self.economy.to_economy((rules or DEFAULT_RULES).max_power_ups),
            history=history,
            baseline_undo=self.baseline_undo and not self.finalized,
            game_over=self.game_over,
            game_over_grant=self.game_over_grant and not self.finalized,
            finalized=self.finalized,
            rules=rules,
            rng=rng,
            clock=clock,
        )
        if self.finalized:
            session.history.clear()
        return session


# =============================================================================
# Leaderboard and stats
# =============================================================================

class LeaderboardEntry(BaseModel):
    name: str = "Anonymous"
    score: int
    highest_rank: int = 1
    submitted_at: float = Field(default_factory=time.time)


class Leaderboard(BaseModel):
    entries: list[LeaderboardEntry] = Field(default_factory=list)


class PlayerStats(BaseModel):
    """Values kept across games."""
    high_score: int = 0
    max_discovered_rank: int = 1
