"""
History Manager - Undo snapshots and the undo policy.

A snapshot is pushed before every successful move. Retention is bounded:
    capacity = 1 + (Undo power-ups ever granted this session)
Capacity only grows; once exceeded, the oldest snapshots are dropped.

Snapshots hold the replayable board state only (grid, score, tile id
counter, BoardEffects). Inventory and undo credits are never captured.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum

from .grid import Grid
from .powerups import BoardEffects


@dataclass(frozen=True)
class HistorySnapshot:
    """Immutable capture of the board before a move."""
    grid: Grid
    score: int
    next_tile_id: int
    effects: BoardEffects


class HistoryManager:
    """Bounded stack of snapshots, newest last."""

    def __init__(self, entries: list[HistorySnapshot] | None = None):
        self._entries: list[HistorySnapshot] = list(entries or [])

    def __len__(self) -> int:
        return len(self._entries)

    def __bool__(self) -> bool:
        return bool(self._entries)

    @property
    def entries(self) -> list[HistorySnapshot]:
        return list(self._entries)

    def push(self, snapshot: HistorySnapshot, capacity: int) -> None:
        """Append a snapshot, evicting the oldest beyond `capacity`."""
        capacity = max(1, capacity)
        self._entries.append(snapshot)
        if len(self._entries) > capacity:
            del self._entries[: len(self._entries) - capacity]

    def peek(self) -> HistorySnapshot | None:
        return self._entries[-1] if self._entries else None

    def pop(self) -> HistorySnapshot | None:
        return self._entries.pop() if self._entries else None

    def clear(self) -> None:
        self._entries.clear()


def history_capacity(spawned_undos: int) -> int:
    return 1 + spawned_undos


class UndoSource(Enum):
    """Which right pays for an undo."""
    EXTRA_CREDIT = "extra_credit"
    BASELINE = "baseline"
    GAME_OVER_GRANT = "game_over_grant"


@dataclass(frozen=True)
class UndoRights:
    """
    Everything the undo policy looks at.

    Priority when several rights are usable: an extra-undo credit first
    (the baseline stays armed for later), then the baseline per-move
    undo, then the one-shot grant after game over.
    """
    baseline_armed: bool
    extra_undos: int
    game_over: bool
    game_over_grant: bool
    finalized: bool
    history_length: int

    def source(self) -> UndoSource | None:
        """The right an undo would consume, or None if undo is not allowed."""
        if self.history_length == 0 or self.finalized:
            return None
        if self.extra_undos > 0:
            return UndoSource.EXTRA_CREDIT
        if self.baseline_armed:
            return UndoSource.BASELINE
        if self.game_over and self.game_over_grant:
            return UndoSource.GAME_OVER_GRANT
        return None

    @property
    def allowed(self) -> bool:
        return self.source() is not None
