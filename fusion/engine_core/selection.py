"""
Selection State Machine - Tile picks for interactive power-ups.

Freeze, Swap and Delete do not act when used. They arm a selection and
wait for the player to pick cells:

    IDLE --arm--> ARMED(type, required, picked=[])
    ARMED --pick--> ARMED(picked + cell)      (until picked == required)
    ARMED --complete--> IDLE                  (effect applied)
    ARMED --cancel--> IDLE                    (no side effects)

While ARMED, directional input and undo are locked. The machine only
tracks picks; applying the effect is done by the pure apply_* functions
below so the session can decide what to commit.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping

from .deadlock import DeadlockNotice, would_freezing_cause_deadlock
from .grid import CellRef, Grid
from .powerups import PowerUpType, freeze_tile, unfreeze_tile


class SelectionState(Enum):
    IDLE = "idle"
    ARMED = "armed"


REQUIRED_PICKS = {
    PowerUpType.FREEZE: 1,
    PowerUpType.DELETE: 1,
    PowerUpType.SWAP: 2,
}


@dataclass
class SelectionSession:
    """An armed power-up waiting for its picks."""
    type: PowerUpType
    required: int
    power_up_id: str
    picked: list[CellRef] = field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        return len(self.picked) >= self.required


@dataclass
class PickOutcome:
    """Result of a single pick."""
    accepted: bool
    complete: bool = False
    duplicate: bool = False
    error: str | None = None


class SelectionMachine:
    """
    Tracks the armed selection, if any.

    Owned by a GameSession; holds no reference to the board.
    """

    def __init__(self):
        self.session: SelectionSession | None = None

    @property
    def state(self) -> SelectionState:
        return SelectionState.ARMED if self.session else SelectionState.IDLE

    @property
    def is_armed(self) -> bool:
        return self.session is not None

    def arm(self, power_up_type: PowerUpType, power_up_id: str) -> SelectionSession:
        """Arm an interactive power-up. Re-arming replaces any earlier selection."""
        if power_up_type not in REQUIRED_PICKS:
            raise ValueError(f"{power_up_type.value} does not use tile selection")
        self.session = SelectionSession(
            type=power_up_type,
            required=REQUIRED_PICKS[power_up_type],
            power_up_id=power_up_id,
        )
        return self.session

    def cancel(self) -> SelectionSession | None:
        """Drop the armed selection. Returns what was cancelled."""
        cancelled, self.session = self.session, None
        return cancelled

    def pick(
        self,
        cell: CellRef,
        grid: Grid,
        frozen_tiles: Mapping[int, int],
    ) -> PickOutcome:
        """
        Record a pick if it is valid.

        Invalid picks leave the selection unchanged. Re-picking a cell
        already picked is accepted as a no-op.
        """
        if not self.session:
            return PickOutcome(accepted=False, error="No power-up is awaiting a selection")

        error = self._pick_error(cell, grid, frozen_tiles)
        if error:
            return PickOutcome(accepted=False, error=error)

        if cell in self.session.picked:
            return PickOutcome(accepted=True, duplicate=True, complete=self.session.is_complete)

        self.session.picked.append(cell)
        return PickOutcome(accepted=True, complete=self.session.is_complete)

    def _pick_error(
        self,
        cell: CellRef,
        grid: Grid,
        frozen_tiles: Mapping[int, int],
    ) -> str | None:
        if not cell.in_bounds(grid.size):
            return f"Cell ({cell.row}, {cell.col}) is off the board"
        tile = grid.get(cell)
        if tile is None:
            return f"Cell ({cell.row}, {cell.col}) is empty"
        if self.session.type == PowerUpType.SWAP and frozen_tiles.get(tile.id, 0) > 0:
            return "Frozen tiles cannot be swapped"
        return None


# =============================================================================
# Completion effects
# =============================================================================

@dataclass
class SelectionEffect:
    """
    Result of completing a selection.

    `consumed` is False when the effect was refused (an unsafe Freeze);
    the power-up then stays in its slot.
    """
    consumed: bool
    grid: Grid
    frozen_tiles: dict[int, int]
    notice: DeadlockNotice | None = None
    description: str = ""


def apply_delete(grid: Grid, frozen_tiles: Mapping[int, int], cell: CellRef) -> SelectionEffect:
    """Remove the tile at the picked cell."""
    tile = grid.get(cell)
    if tile is None:
        return SelectionEffect(consumed=False, grid=grid, frozen_tiles=dict(frozen_tiles))
    return SelectionEffect(
        consumed=True,
        grid=grid.with_cell(cell, None),
        frozen_tiles=unfreeze_tile(frozen_tiles, tile.id),
        description=f"Deleted tile at ({cell.row}, {cell.col})",
    )


def apply_swap(
    grid: Grid,
    frozen_tiles: Mapping[int, int],
    first: CellRef,
    second: CellRef,
) -> SelectionEffect:
    """Exchange the positions of the two picked tiles."""
    a, b = grid.get(first), grid.get(second)
    if a is None or b is None:
        return SelectionEffect(consumed=False, grid=grid, frozen_tiles=dict(frozen_tiles))
    swapped = grid.with_cell(first, b).with_cell(second, a)
    return SelectionEffect(
        consumed=True,
        grid=swapped,
        frozen_tiles=dict(frozen_tiles),
        description=(
            f"Swapped ({first.row}, {first.col}) with ({second.row}, {second.col})"
        ),
    )


def apply_freeze(
    grid: Grid,
    frozen_tiles: Mapping[int, int],
    cell: CellRef,
    slow_motion_turns: int,
    freeze_turns: int = 3,
) -> SelectionEffect:
    """Freeze the picked tile unless that would deadlock the board."""
    tile = grid.get(cell)
    if tile is None:
        return SelectionEffect(consumed=False, grid=grid, frozen_tiles=dict(frozen_tiles))

    if would_freezing_cause_deadlock(
        grid, tile.id, frozen_tiles, slow_motion_turns, freeze_turns=freeze_turns
    ):
        return SelectionEffect(
            consumed=False,
            grid=grid,
            frozen_tiles=dict(frozen_tiles),
            notice=DeadlockNotice.FREEZE_WOULD_DEADLOCK,
        )

    return SelectionEffect(
        consumed=True,
        grid=grid,
        frozen_tiles=freeze_tile(frozen_tiles, tile.id, freeze_turns),
        description=f"Froze tile at ({cell.row}, {cell.col}) for {freeze_turns} turns",
    )
