"""
Action System - Actions, payloads, and results.

Actions represent the discrete player inputs:
1. A directional move
2. Using a power-up from an inventory slot
3. Picking a cell for an armed power-up
4. Cancelling an armed power-up
5. Undo

All state changes flow through actions. Failures are returned as
ActionResult values with an ErrorCode, never raised.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .grid import CellRef, Direction, Tile
from .resolver import MergeEvent


class ActionType(Enum):
    """Types of actions in the system."""
    MOVE = "move"
    USE_POWER_UP = "use_power_up"
    PICK_CELL = "pick_cell"
    CANCEL_SELECTION = "cancel_selection"
    UNDO = "undo"


class ErrorCode(str, Enum):
    """Structured error codes."""
    INVALID_MOVE = "INVALID_MOVE"  # Direction produced no change
    ILLEGAL_SELECTION = "ILLEGAL_SELECTION"  # Empty cell, off-board, or frozen tile for Swap
    UNSAFE_FREEZE = "UNSAFE_FREEZE"  # Freeze would leave no possible move
    INPUT_LOCKED = "INPUT_LOCKED"  # Selection armed or spawn guard active
    GAME_OVER = "GAME_OVER"
    UNDO_UNAVAILABLE = "UNDO_UNAVAILABLE"
    UNKNOWN_POWER_UP = "UNKNOWN_POWER_UP"
    NO_SELECTION = "NO_SELECTION"
    PERSISTENCE_FAILURE = "PERSISTENCE_FAILURE"
    SESSION_NOT_FOUND = "SESSION_NOT_FOUND"
    VALIDATION_ERROR = "VALIDATION_ERROR"


@dataclass
class ActionPayload:
    """
    Payload for an action.

    Different action types use different fields.
    """
    direction: Direction | None = None
    power_up_id: str | None = None
    cell: CellRef | None = None


@dataclass
class Action:
    """A complete player action to be applied to a GameSession."""
    action_type: ActionType
    payload: ActionPayload = field(default_factory=ActionPayload)

    @classmethod
    def move(cls, direction: Direction | str) -> Action:
        """Factory for a directional move."""
        return cls(
            action_type=ActionType.MOVE,
            payload=ActionPayload(direction=Direction.parse(direction)),
        )

    @classmethod
    def use_power_up(cls, power_up_id: str) -> Action:
        """Factory for using a power-up."""
        return cls(
            action_type=ActionType.USE_POWER_UP,
            payload=ActionPayload(power_up_id=power_up_id),
        )

    @classmethod
    def pick(cls, row: int, col: int) -> Action:
        """Factory for picking a cell."""
        return cls(
            action_type=ActionType.PICK_CELL,
            payload=ActionPayload(cell=CellRef(row, col)),
        )

    @classmethod
    def cancel_selection(cls) -> Action:
        return cls(action_type=ActionType.CANCEL_SELECTION)

    @classmethod
    def undo(cls) -> Action:
        return cls(action_type=ActionType.UNDO)


@dataclass
class ActionResult:
    """
    Result of applying an action.

    Contains:
    - Whether the action succeeded and whether state changed
    - Errors (if failed)
    - Side effects for the UI (merges, spawn, grants, notices)
    """
    success: bool
    changed: bool = False
    error: str | None = None
    error_code: ErrorCode | None = None

    # For UI/presentation
    state_changes: list[str] = field(default_factory=list)
    notices: list[str] = field(default_factory=list)
    merge_events: list[MergeEvent] = field(default_factory=list)
    score_delta: int = 0
    spawned_tile: Tile | None = None
    granted_power_up: Any | None = None  # PowerUp
    game_over: bool = False
    selection_complete: bool = False

    @classmethod
    def failure(
        cls,
        error: str,
        error_code: ErrorCode | None = None,
        notices: list[str] | None = None,
    ) -> ActionResult:
        """Create a failure result."""
        return cls(
            success=False,
            error=error,
            error_code=error_code,
            notices=notices or [],
        )

    @classmethod
    def ok(
        cls,
        changes: list[str] | None = None,
        changed: bool = True,
        **kwargs: Any,
    ) -> ActionResult:
        """Create a success result."""
        return cls(success=True, changed=changed, state_changes=changes or [], **kwargs)
