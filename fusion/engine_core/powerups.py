"""
Power-Up Economy - Inventory, generation and timed board effects.

State is split in two on purpose:
- EconomyState: forward-only. Inventory slots, extra-undo credits and
  the lifetime count of Undo grants. Undo never captures or restores it.
- BoardEffects: replayable. Frozen-tile countdowns, slow-motion turns
  and the set of ranks that already paid out a power-up. Captured in
  every history snapshot and restored by undo.
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from enum import Enum
from random import Random
from typing import Mapping
import logging
import time
import uuid


logger = logging.getLogger(__name__)


class PowerUpType(Enum):
    """Kinds of power-up."""
    FREEZE = "freeze"
    SWAP = "swap"
    DELETE = "delete"
    UNDO = "undo"
    SLOWMO = "slowmo"


# Power-ups that need tile picks before they take effect
INTERACTIVE_TYPES = frozenset({PowerUpType.FREEZE, PowerUpType.SWAP, PowerUpType.DELETE})

POWER_UP_INFO = {
    PowerUpType.FREEZE: {"emoji": "\U0001F9CA", "name": "Freeze"},
    PowerUpType.SWAP: {"emoji": "\U0001F500", "name": "Swap"},
    PowerUpType.DELETE: {"emoji": "\U0001F5D1", "name": "Delete"},
    PowerUpType.UNDO: {"emoji": "⏪", "name": "Extra Undo"},
    PowerUpType.SLOWMO: {"emoji": "⏳", "name": "Slow Motion"},
}


@dataclass(frozen=True)
class PowerUp:
    """A power-up sitting in an inventory slot."""
    id: str
    type: PowerUpType
    created_at: float

    @classmethod
    def create(cls, power_up_type: PowerUpType, now: float | None = None) -> PowerUp:
        return cls(
            id=f"powerup_{uuid.uuid4().hex[:12]}",
            type=power_up_type,
            created_at=time.time() if now is None else now,
        )


@dataclass(frozen=True)
class EconomyState:
    """
    Forward-only power-up state.

    Never part of a history snapshot: consumed power-ups stay consumed.
    """
    inventory: tuple[PowerUp, ...] = ()
    extra_undos: int = 0
    spawned_undos: int = 0  # Lifetime count of Undo power-ups granted

    def find(self, power_up_id: str) -> PowerUp | None:
        for p in self.inventory:
            if p.id == power_up_id:
                return p
        return None

    def has_slot(self, max_power_ups: int = 4) -> bool:
        return len(self.inventory) < max_power_ups

    def with_added(self, power_up: PowerUp, max_power_ups: int = 4) -> EconomyState:
        """Return new state with the power-up added, if a slot is free."""
        if not self.has_slot(max_power_ups):
            return self
        spawned = self.spawned_undos + (1 if power_up.type == PowerUpType.UNDO else 0)
        return replace(self, inventory=self.inventory + (power_up,), spawned_undos=spawned)

    def without(self, power_up_id: str) -> EconomyState:
        """Return new state with the power-up removed from its slot."""
        return replace(
            self,
            inventory=tuple(p for p in self.inventory if p.id != power_up_id),
        )


@dataclass(frozen=True)
class BoardEffects:
    """
    Replayable power-up state.

    Captured before every successful move and restored by undo.
    """
    frozen_tiles: Mapping[int, int] = field(default_factory=dict)
    slow_motion_turns: int = 0
    generated_levels: frozenset[int] = frozenset()

    def __post_init__(self):
        # Keep our own copy; entries are removed, never zeroed
        object.__setattr__(
            self,
            "frozen_tiles",
            {int(k): int(v) for k, v in self.frozen_tiles.items() if v > 0},
        )

    def is_frozen(self, tile_id: int) -> bool:
        return self.frozen_tiles.get(tile_id, 0) > 0

    def freeze_remaining(self, tile_id: int) -> int:
        return self.frozen_tiles.get(tile_id, 0)

    @property
    def slow_motion_active(self) -> bool:
        return self.slow_motion_turns > 0


def freeze_tile(frozen_tiles: Mapping[int, int], tile_id: int, turns: int = 3) -> dict[int, int]:
    """Add freeze turns to a tile. Additive if it is already frozen."""
    updated = dict(frozen_tiles)
    updated[tile_id] = updated.get(tile_id, 0) + turns
    return updated


def unfreeze_tile(frozen_tiles: Mapping[int, int], tile_id: int) -> dict[int, int]:
    updated = dict(frozen_tiles)
    updated.pop(tile_id, None)
    return updated


def tick_frozen_tiles(frozen_tiles: Mapping[int, int]) -> dict[int, int]:
    """Count every freeze down by one turn; entries reaching 0 are dropped."""
    return {tid: turns - 1 for tid, turns in frozen_tiles.items() if turns > 1}


def tick_effects(effects: BoardEffects) -> BoardEffects:
    """Advance timed effects by one successful move."""
    return replace(
        effects,
        frozen_tiles=tick_frozen_tiles(effects.frozen_tiles),
        slow_motion_turns=max(0, effects.slow_motion_turns - 1),
    )


def random_power_up(rng: Random, now: float | None = None) -> PowerUp:
    """A power-up of uniformly random type."""
    return PowerUp.create(rng.choice(list(PowerUpType)), now=now)


@dataclass
class Grant:
    """Outcome of the generation check after a move."""
    economy: EconomyState
    effects: BoardEffects
    highest_level: int
    power_up: PowerUp | None = None


def grant_for_level(
    economy: EconomyState,
    effects: BoardEffects,
    previous_highest: int,
    current_highest: int,
    rng: Random,
    max_power_ups: int = 4,
) -> Grant:
    """
    Run the generation rule.

    A power-up is granted when the highest-ever rank rises, the new rank
    has not paid out before, and a slot is free. The highest-ever rank
    only ever increases.
    """
    if current_highest <= previous_highest:
        return Grant(economy=economy, effects=effects, highest_level=previous_highest)

    if current_highest in effects.generated_levels:
        logger.debug("Rank %d already paid out a power-up", current_highest)
        return Grant(economy=economy, effects=effects, highest_level=current_highest)

    if not economy.has_slot(max_power_ups):
        logger.debug("Rank %d reached with a full inventory; no grant", current_highest)
        return Grant(economy=economy, effects=effects, highest_level=current_highest)

    power_up = random_power_up(rng)
    logger.info("Granted %s power-up for reaching rank %d", power_up.type.value, current_highest)
    return Grant(
        economy=economy.with_added(power_up, max_power_ups),
        effects=replace(effects, generated_levels=effects.generated_levels | {current_highest}),
        highest_level=current_highest,
        power_up=power_up,
    )
