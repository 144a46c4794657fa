"""
Deadlock Guard - Detects stuck boards and recovers from them.

Used two ways:
1. Pre-emptively: reject a Freeze that would leave no possible move
2. Reactively: after every successful move, unstick the board by
   releasing a frozen tile or cancelling slow motion before declaring
   game over
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from random import Random
from typing import Mapping
import logging

from .grid import Grid
from .resolver import can_merge


logger = logging.getLogger(__name__)


class DeadlockNotice(Enum):
    """One-shot hints surfaced to the player."""
    FREEZE_WOULD_DEADLOCK = "freeze_would_deadlock"
    FROZEN_TILE_FREED = "frozen_tile_freed"
    SLOW_MOTION_CANCELLED = "slow_motion_cancelled"


NOTICE_MESSAGES = {
    DeadlockNotice.FREEZE_WOULD_DEADLOCK: "Freezing this tile would leave no possible move.",
    DeadlockNotice.FROZEN_TILE_FREED: "A frozen tile was released to keep the game moving.",
    DeadlockNotice.SLOW_MOTION_CANCELLED: "Slow motion ended early to keep the game moving.",
}


def can_make_any_move(grid: Grid, frozen_tiles: Mapping[int, int]) -> bool:
    """True if an empty cell exists or any neighbouring pair can merge."""
    if not grid.is_full:
        return True

    for cell, tile in grid.tiles():
        for neighbour in cell.neighbours(grid.size):
            if can_merge(tile, grid.get(neighbour), frozen_tiles):
                return True
    return False


def would_freezing_cause_deadlock(
    grid: Grid,
    tile_id: int,
    frozen_tiles: Mapping[int, int],
    slow_motion_turns: int,
    freeze_turns: int = 3,
) -> bool:
    """
    Check if freezing a tile would leave the board stuck.

    Conservative heuristic, not a lookahead:
    - moves remain after the simulated freeze: safe
    - no moves and slow motion active: unsafe (no rescue spawn)
    - no moves and the board is full: unsafe (no room to spawn)
    - otherwise safe, a future spawn may rescue the board
    """
    simulated = dict(frozen_tiles)
    simulated[tile_id] = simulated.get(tile_id, 0) + freeze_turns

    if can_make_any_move(grid, simulated):
        return False

    if slow_motion_turns > 0:
        logger.debug("Freeze of tile %d unsafe: no moves and slow motion blocks spawns", tile_id)
        return True

    if grid.is_full:
        logger.debug("Freeze of tile %d unsafe: no moves and the board is full", tile_id)
        return True

    logger.debug("Freeze of tile %d allowed: no moves now but the board has room", tile_id)
    return False


@dataclass
class Recovery:
    """
    Outcome of the post-move deadlock check.

    `frozen_tiles` and `slow_motion_turns` are the values after any
    remedies were applied.
    """
    frozen_tiles: dict[int, int]
    slow_motion_turns: int
    game_over: bool = False
    released_tile_ids: list[int] = field(default_factory=list)
    notices: list[DeadlockNotice] = field(default_factory=list)

    @property
    def recovered(self) -> bool:
        return bool(self.notices) and not self.game_over


def recover(
    grid: Grid,
    frozen_tiles: Mapping[int, int],
    slow_motion_turns: int,
    rng: Random | None = None,
) -> Recovery:
    """
    Unstick a board after a move.

    At most one remedy is applied per check:
    (a) release one frozen tile chosen uniformly at random, else
    (b) cancel slow motion.
    Game over is declared only when the board is stuck and neither remedy
    applies. A remedy that leaves the board stuck is retried after the
    next move.
    """
    rng = rng or Random()
    frozen = {tid: turns for tid, turns in frozen_tiles.items() if turns > 0}
    result = Recovery(frozen_tiles=frozen, slow_motion_turns=slow_motion_turns)

    if can_make_any_move(grid, result.frozen_tiles):
        return result

    if result.frozen_tiles:
        tile_id = rng.choice(sorted(result.frozen_tiles))
        del result.frozen_tiles[tile_id]
        result.released_tile_ids.append(tile_id)
        result.notices.append(DeadlockNotice.FROZEN_TILE_FREED)
        logger.info("Deadlock: released frozen tile %d", tile_id)
    elif result.slow_motion_turns > 0:
        result.slow_motion_turns = 0
        result.notices.append(DeadlockNotice.SLOW_MOTION_CANCELLED)
        logger.info("Deadlock: cancelled slow motion")
    else:
        result.game_over = True

    return result
