"""
Game Session - The single mutable object of the engine.

The session is the single point of state mutation. All player input
goes through apply(), which dispatches to a handler by action type;
power-up use dispatches again through a handler table keyed by
PowerUpType.

Every action runs to completion synchronously. The session must be
owned by exactly one input loop.
"""

from __future__ import annotations
from dataclasses import replace
from random import Random
from typing import Callable
import logging
import time

from ..config import DEFAULT_RULES, GameRules
from .action import Action, ActionResult, ActionType, ErrorCode
from .deadlock import NOTICE_MESSAGES, DeadlockNotice, can_make_any_move, recover
from .grid import Direction, Grid
from .history import (
    HistoryManager,
    HistorySnapshot,
    UndoRights,
    UndoSource,
    history_capacity,
)
from .powerups import (
    BoardEffects,
    EconomyState,
    PowerUp,
    PowerUpType,
    grant_for_level,
    tick_effects,
)
from .resolver import TileSpawner, resolve
from .selection import (
    SelectionEffect,
    SelectionMachine,
    SelectionSession,
    apply_delete,
    apply_freeze,
    apply_swap,
)


logger = logging.getLogger(__name__)


class GameSession:
    """
    One play-through of the game.

    Holds the board, score, power-up state, undo history and the
    selection machine. Create a fresh game with GameSession() or
    rebuild a saved one with GameSession.restore().
    """

    def __init__(
        self,
        rules: GameRules | None = None,
        rng: Random | None = None,
        clock: Callable[[], float] | None = None,
        grid: Grid | None = None,
        next_tile_id: int | None = None,
    ):
        self.rules = rules or DEFAULT_RULES
        self.rng = rng or Random()
        self.clock = clock or time.monotonic
        self.spawner = TileSpawner(rng=self.rng, weights=self.rules.spawn_weights)

        if grid is None:
            grid, first_free_id = self.spawner.initial_grid(self.rules.grid_size)
        else:
            first_free_id = max(grid.tile_ids(), default=0) + 1

        self.grid: Grid = grid
        self.next_tile_id: int = next_tile_id if next_tile_id is not None else first_free_id
        self.score: int = 0
        self.highest_level: int = grid.highest_level()

        self.effects = BoardEffects()
        self.economy = EconomyState()
        self.history = HistoryManager()
        self.selection = SelectionMachine()

        self.baseline_undo: bool = False
        self.game_over_grant: bool = False
        self.game_over: bool = False
        self.finalized: bool = False
        self.spawn_guard_until: float = 0.0

    @classmethod
    def restore(
        cls,
        grid: Grid,
        score: int,
        next_tile_id: int,
        highest_level: int,
        effects: BoardEffects,
        economy: EconomyState,
        history: list[HistorySnapshot] | None = None,
        baseline_undo: bool = False,
        game_over: bool = False,
        game_over_grant: bool = False,
        finalized: bool = False,
        rules: GameRules | None = None,
        rng: Random | None = None,
        clock: Callable[[], float] | None = None,
    ) -> GameSession:
        """Rebuild a session from saved parts. Selection always starts idle."""
        session = cls(rules=rules, rng=rng, clock=clock, grid=grid, next_tile_id=next_tile_id)
        session.score = score
        session.highest_level = max(highest_level, grid.highest_level())
        session.effects = effects
        session.economy = economy
        session.history = HistoryManager(history)
        session.baseline_undo = baseline_undo
        session.game_over = game_over
        session.game_over_grant = game_over_grant
        session.finalized = finalized
        return session

    # =========================================================================
    # Derived state
    # =========================================================================

    @property
    def spawn_guard_active(self) -> bool:
        return self.clock() < self.spawn_guard_until

    @property
    def input_locked(self) -> bool:
        """Directional input is refused while a selection is armed or the spawn guard runs."""
        return self.selection.is_armed or self.spawn_guard_active

    def undo_rights(self) -> UndoRights:
        return UndoRights(
            baseline_armed=self.baseline_undo,
            extra_undos=self.economy.extra_undos,
            game_over=self.game_over,
            game_over_grant=self.game_over_grant,
            finalized=self.finalized,
            history_length=len(self.history),
        )

    @property
    def can_undo(self) -> bool:
        return not self.selection.is_armed and self.undo_rights().allowed

    @property
    def history_capacity(self) -> int:
        return history_capacity(self.economy.spawned_undos)

    def snapshot(self) -> HistorySnapshot:
        """Capture the replayable board state."""
        return HistorySnapshot(
            grid=self.grid,
            score=self.score,
            next_tile_id=self.next_tile_id,
            effects=self.effects,
        )

    # =========================================================================
    # Dispatch
    # =========================================================================

    def apply(self, action: Action) -> ActionResult:
        """Apply one player action."""
        handler = self._get_handler(action.action_type)
        if not handler:
            return ActionResult.failure(
                f"No handler for action type: {action.action_type}",
                error_code=ErrorCode.VALIDATION_ERROR,
            )
        return handler(action)

    def _get_handler(self, action_type: ActionType):
        handlers = {
            ActionType.MOVE: self._handle_move,
            ActionType.USE_POWER_UP: self._handle_use_power_up,
            ActionType.PICK_CELL: self._handle_pick,
            ActionType.CANCEL_SELECTION: self._handle_cancel,
            ActionType.UNDO: self._handle_undo,
        }
        return handlers.get(action_type)

    def move(self, direction: Direction | str) -> ActionResult:
        return self.apply(Action.move(direction))

    def use_power_up(self, power_up_id: str) -> ActionResult:
        return self.apply(Action.use_power_up(power_up_id))

    def pick_cell(self, row: int, col: int) -> ActionResult:
        return self.apply(Action.pick(row, col))

    def cancel_selection(self) -> ActionResult:
        return self.apply(Action.cancel_selection())

    def undo(self) -> ActionResult:
        return self.apply(Action.undo())

    # =========================================================================
    # Moves
    # =========================================================================

    def _handle_move(self, action: Action) -> ActionResult:
        """
        Resolve a move and run everything that follows a successful one.

        Order: history push, score, spawn (skipped in slow motion),
        power-up generation, effect countdowns, baseline undo, deadlock
        recovery / game over.
        """
        if self.game_over:
            return ActionResult.failure("Game is over", error_code=ErrorCode.GAME_OVER)
        if self.selection.is_armed:
            return ActionResult.failure(
                "Finish or cancel the armed power-up first",
                error_code=ErrorCode.INPUT_LOCKED,
            )
        if self.spawn_guard_active:
            return ActionResult.failure(
                "Input is briefly locked after a Joker spawn",
                error_code=ErrorCode.INPUT_LOCKED,
            )

        direction = action.payload.direction
        result = resolve(self.grid, direction, self.effects.frozen_tiles)
        if not result.moved:
            if not can_make_any_move(self.grid, self.effects.frozen_tiles):
                return self._retry_recovery()
            return ActionResult.failure(
                f"Nothing moves {direction.value}",
                error_code=ErrorCode.INVALID_MOVE,
            )

        self.history.push(self.snapshot(), self.history_capacity)

        self.grid = result.grid
        self.score += result.score_delta

        spawned = None
        if not self.effects.slow_motion_active:
            self.grid, spawned = self.spawner.spawn(self.grid, self.next_tile_id)
            if spawned is not None:
                self.next_tile_id += 1
                if spawned.is_joker:
                    self.spawn_guard_until = self.clock() + self.rules.spawn_guard_seconds

        grant = grant_for_level(
            self.economy,
            self.effects,
            previous_highest=self.highest_level,
            current_highest=self.grid.highest_level(),
            rng=self.rng,
            max_power_ups=self.rules.max_power_ups,
        )
        self.economy, self.effects, self.highest_level = grant.economy, grant.effects, grant.highest_level

        self.effects = tick_effects(self.effects)
        self.baseline_undo = True

        notices = self._settle_board()

        logger.debug(
            "Move %s: +%d points, %d merges, score=%d",
            direction.value, result.score_delta, len(result.merge_events), self.score,
        )

        changes = [f"Moved {direction.value}"]
        if result.merged:
            changes.append(f"Merged {len(result.merge_events)} pair(s) for {result.score_delta} points")
        if grant.power_up:
            changes.append(f"Earned a {grant.power_up.type.value} power-up")

        return ActionResult.ok(
            changes=changes,
            notices=notices,
            merge_events=list(result.merge_events),
            score_delta=result.score_delta,
            spawned_tile=spawned,
            granted_power_up=grant.power_up,
            game_over=self.game_over,
        )

    def _settle_board(self) -> list[str]:
        """Run deadlock recovery on the current board; declare game over if nothing helps."""
        recovery = recover(
            self.grid,
            self.effects.frozen_tiles,
            self.effects.slow_motion_turns,
            rng=self.rng,
        )
        self.effects = replace(
            self.effects,
            frozen_tiles=recovery.frozen_tiles,
            slow_motion_turns=recovery.slow_motion_turns,
        )
        if recovery.game_over:
            self.game_over = True
            self.game_over_grant = True
            logger.info("Game over with score %d", self.score)
        return [NOTICE_MESSAGES[n] for n in recovery.notices]

    def _retry_recovery(self) -> ActionResult:
        """
        A move was attempted on a board left stuck by an earlier remedy.

        Nothing slides, spawns or enters history; only the next remedy
        (or game over) is applied.
        """
        notices = self._settle_board()
        return ActionResult.ok(
            changes=["No tile can move"],
            notices=notices,
            game_over=self.game_over,
        )

    # =========================================================================
    # Power-ups
    # =========================================================================

    def _handle_use_power_up(self, action: Action) -> ActionResult:
        if self.game_over:
            return ActionResult.failure("Game is over", error_code=ErrorCode.GAME_OVER)
        if self.selection.is_armed:
            return ActionResult.failure(
                "Another power-up is awaiting a selection",
                error_code=ErrorCode.INPUT_LOCKED,
            )

        power_up = self.economy.find(action.payload.power_up_id or "")
        if not power_up:
            return ActionResult.failure(
                f"Power-up {action.payload.power_up_id} not in inventory",
                error_code=ErrorCode.UNKNOWN_POWER_UP,
            )

        handler = self._power_up_handlers()[power_up.type]
        return handler(power_up)

    def _power_up_handlers(self) -> dict[PowerUpType, Callable[[PowerUp], ActionResult]]:
        return {
            PowerUpType.UNDO: self._use_undo_power_up,
            PowerUpType.SLOWMO: self._use_slow_motion,
            PowerUpType.FREEZE: self._arm_selection,
            PowerUpType.SWAP: self._arm_selection,
            PowerUpType.DELETE: self._arm_selection,
        }

    def _use_undo_power_up(self, power_up: PowerUp) -> ActionResult:
        """Bank an extra-undo credit. History is untouched."""
        economy = self.economy.without(power_up.id)
        self.economy = replace(economy, extra_undos=economy.extra_undos + 1)
        return ActionResult.ok(changes=[f"Extra undo banked ({self.economy.extra_undos} available)"])

    def _use_slow_motion(self, power_up: PowerUp) -> ActionResult:
        self.economy = self.economy.without(power_up.id)
        self.effects = replace(self.effects, slow_motion_turns=self.rules.slow_motion_turns)
        return ActionResult.ok(
            changes=[f"Slow motion for {self.rules.slow_motion_turns} moves"],
        )

    def _arm_selection(self, power_up: PowerUp) -> ActionResult:
        """Interactive power-ups stay in their slot until the selection completes."""
        armed = self.selection.arm(power_up.type, power_up.id)
        return ActionResult.ok(
            changes=[f"Pick {armed.required} tile(s) for {power_up.type.value}"],
        )

    # =========================================================================
    # Selection
    # =========================================================================

    def _handle_pick(self, action: Action) -> ActionResult:
        if not self.selection.is_armed:
            return ActionResult.failure(
                "No power-up is awaiting a selection",
                error_code=ErrorCode.NO_SELECTION,
            )

        cell = action.payload.cell
        outcome = self.selection.pick(cell, self.grid, self.effects.frozen_tiles)
        if not outcome.accepted:
            return ActionResult.failure(outcome.error, error_code=ErrorCode.ILLEGAL_SELECTION)

        if not outcome.complete:
            return ActionResult.ok(
                changes=[f"Picked ({cell.row}, {cell.col})"],
                changed=not outcome.duplicate,
            )

        completed = self.selection.cancel()
        return self._complete_selection(completed)

    def _complete_selection(self, completed: SelectionSession) -> ActionResult:
        effect = self._selection_handlers()[completed.type](completed)

        if not effect.consumed:
            if effect.notice == DeadlockNotice.FREEZE_WOULD_DEADLOCK:
                return ActionResult.failure(
                    "Freezing that tile would leave no possible move",
                    error_code=ErrorCode.UNSAFE_FREEZE,
                    notices=[NOTICE_MESSAGES[effect.notice]],
                )
            return ActionResult.failure(
                "Selection no longer matches the board",
                error_code=ErrorCode.ILLEGAL_SELECTION,
            )

        self.grid = effect.grid
        self.effects = replace(self.effects, frozen_tiles=effect.frozen_tiles)
        self.economy = self.economy.without(completed.power_up_id)

        notices: list[str] = []
        if completed.type == PowerUpType.SWAP:
            notices = self._settle_board()

        return ActionResult.ok(
            changes=[effect.description],
            notices=notices,
            selection_complete=True,
            game_over=self.game_over,
        )

    def _selection_handlers(self) -> dict[PowerUpType, Callable[[SelectionSession], SelectionEffect]]:
        return {
            PowerUpType.DELETE: lambda s: apply_delete(
                self.grid, self.effects.frozen_tiles, s.picked[0]
            ),
            PowerUpType.SWAP: lambda s: apply_swap(
                self.grid, self.effects.frozen_tiles, s.picked[0], s.picked[1]
            ),
            PowerUpType.FREEZE: lambda s: apply_freeze(
                self.grid,
                self.effects.frozen_tiles,
                s.picked[0],
                self.effects.slow_motion_turns,
                freeze_turns=self.rules.freeze_turns,
            ),
        }

    def _handle_cancel(self, action: Action) -> ActionResult:
        cancelled = self.selection.cancel()
        if not cancelled:
            return ActionResult.failure(
                "No power-up is awaiting a selection",
                error_code=ErrorCode.NO_SELECTION,
            )
        return ActionResult.ok(changes=[f"Cancelled {cancelled.type.value}"])

    # =========================================================================
    # Undo
    # =========================================================================

    def _handle_undo(self, action: Action) -> ActionResult:
        """
        Step back one snapshot.

        Restores the board, score, tile counter and BoardEffects. Keeps
        inventory, credits and the highest-ever rank.
        """
        if self.selection.is_armed:
            return ActionResult.failure(
                "Undo is locked while a power-up awaits a selection",
                error_code=ErrorCode.INPUT_LOCKED,
            )

        source = self.undo_rights().source()
        if source is None:
            return ActionResult.failure("Nothing to undo", error_code=ErrorCode.UNDO_UNAVAILABLE)

        snapshot = self.history.pop()
        self.grid = snapshot.grid
        self.score = snapshot.score
        self.next_tile_id = snapshot.next_tile_id
        self.effects = snapshot.effects

        if source == UndoSource.EXTRA_CREDIT:
            self.economy = replace(self.economy, extra_undos=self.economy.extra_undos - 1)
        elif source == UndoSource.BASELINE:
            self.baseline_undo = False

        # Any undo leaves the game-over state, which also spends the one-shot grant
        self.game_over = False
        self.game_over_grant = False
        self.spawn_guard_until = 0.0

        logger.debug("Undo via %s, %d snapshot(s) left", source.value, len(self.history))
        return ActionResult.ok(changes=[f"Undid last move ({source.value.replace('_', ' ')})"])

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def finalize(self) -> None:
        """The score was submitted or discarded: no way back from here."""
        self.finalized = True
        self.history.clear()
        self.baseline_undo = False
        self.game_over_grant = False
        self.selection.cancel()
