"""
API Service - Business logic layer between API and engine.

The service:
1. Translates API requests to engine actions
2. Manages sessions through the SessionManager
3. Formats engine results for clients

This layer is framework-agnostic (can be used with FastAPI, a CLI, etc.)
"""

from __future__ import annotations
from dataclasses import dataclass, field

from .schemas import (
    # Requests
    CreateSessionRequest,
    SubmitScoreRequest,
    # Responses
    ActionResponse,
    ErrorResponse,
    FlagsResponse,
    GameStateResponse,
    LeaderboardResponse,
    ScoreResponse,
    # Shared
    CellInfo,
    LeaderboardEntryInfo,
    MergeInfo,
    PowerUpInfo,
    SelectionInfo,
    TileInfo,
    # Enums
    SessionStatus,
)
from ..engine_core.action import Action, ActionResult, ErrorCode
from ..engine_core.grid import Tile
from ..engine_core.powerups import POWER_UP_INFO, PowerUp
from ..session import Session, SessionManager


def session_not_found(session_id: str) -> ErrorResponse:
    return ErrorResponse(
        error=f"Session {session_id} not found",
        error_code=ErrorCode.SESSION_NOT_FOUND,
    )


@dataclass
class APIService:
    """
    Main API service.

    Usage:
        service = APIService()

        state = await service.create_session(CreateSessionRequest())
        result = await service.move(state.session_id, "left")
    """
    session_manager: SessionManager = field(default_factory=SessionManager)

    async def create_session(self, request: CreateSessionRequest) -> GameStateResponse:
        session = await self.session_manager.create_session(
            resume=request.resume,
            seed=request.seed,
        )
        return self._state_response(session)

    def get_state(self, session_id: str) -> GameStateResponse | ErrorResponse:
        session = self.session_manager.get_session(session_id)
        if not session:
            return session_not_found(session_id)
        return self._state_response(session)

    def end_session(self, session_id: str) -> bool:
        return self.session_manager.end_session(session_id)

    def list_sessions(self) -> list[str]:
        return self.session_manager.list_active_sessions()

    # =========================================================================
    # Game actions
    # =========================================================================

    async def move(self, session_id: str, direction: str) -> ActionResponse | ErrorResponse:
        return await self._apply(session_id, Action.move(direction))

    async def use_power_up(self, session_id: str, power_up_id: str) -> ActionResponse | ErrorResponse:
        return await self._apply(session_id, Action.use_power_up(power_up_id))

    async def pick(self, session_id: str, row: int, col: int) -> ActionResponse | ErrorResponse:
        return await self._apply(session_id, Action.pick(row, col))

    async def cancel_selection(self, session_id: str) -> ActionResponse | ErrorResponse:
        return await self._apply(session_id, Action.cancel_selection())

    async def undo(self, session_id: str) -> ActionResponse | ErrorResponse:
        return await self._apply(session_id, Action.undo())

    async def _apply(self, session_id: str, action: Action) -> ActionResponse | ErrorResponse:
        result = await self.session_manager.handle(session_id, action)
        session = self.session_manager.get_session(session_id)
        if not result.success or not session:
            return self._error_response(result)
        return self._action_response(session, result)

    # =========================================================================
    # Scores
    # =========================================================================

    async def submit_score(
        self,
        session_id: str,
        request: SubmitScoreRequest,
    ) -> ScoreResponse | ErrorResponse:
        session = self.session_manager.get_session(session_id)
        if not session:
            return session_not_found(session_id)
        if session.pending_score is None:
            return ErrorResponse(
                error="No qualifying score to submit",
                error_code=ErrorCode.VALIDATION_ERROR,
            )
        if not await self.session_manager.submit_score(session_id, request.name):
            return ErrorResponse(
                error="Score could not be recorded; submit again to retry",
                error_code=ErrorCode.PERSISTENCE_FAILURE,
                details={"pending_score": session.pending_score},
            )
        return self._score_response(session, True)

    async def discard_score(self, session_id: str) -> ScoreResponse | ErrorResponse:
        session = self.session_manager.get_session(session_id)
        if not session:
            return session_not_found(session_id)
        success = await self.session_manager.discard_score(session_id)
        return self._score_response(session, success)

    async def leaderboard(self) -> LeaderboardResponse:
        entries = await self.session_manager.leaderboard()
        return LeaderboardResponse(
            entries=[
                LeaderboardEntryInfo(
                    rank=i + 1,
                    name=e.name,
                    score=e.score,
                    highest_rank=e.highest_rank,
                )
                for i, e in enumerate(entries)
            ],
            high_score=await self.session_manager.high_score(),
            max_discovered_rank=await self.session_manager.max_discovered_rank(),
        )

    async def flags(self) -> FlagsResponse:
        flags = await self.session_manager.session_flags()
        return FlagsResponse(
            has_saved_game=flags.has_saved_game,
            has_finalized_game=flags.has_finalized_game,
            can_undo_after_game_over=flags.can_undo_after_game_over,
        )

    # =========================================================================
    # Conversion helpers
    # =========================================================================

    def _state_response(self, session: Session) -> GameStateResponse:
        game = session.game
        selection = game.selection.session

        if game.finalized:
            status = SessionStatus.FINALIZED
        elif game.game_over:
            status = SessionStatus.GAME_OVER
        elif selection:
            status = SessionStatus.SELECTING
        else:
            status = SessionStatus.ACTIVE

        return GameStateResponse(
            session_id=session.session_id,
            status=status,
            grid=[
                [self._tile_info(tile, game.effects.freeze_remaining(tile.id)) if tile else None
                 for tile in row]
                for row in game.grid.to_rows()
            ],
            score=game.score,
            highest_level=game.highest_level,
            inventory=[self._power_up_info(p) for p in game.economy.inventory],
            extra_undos=game.economy.extra_undos,
            slow_motion_turns=game.effects.slow_motion_turns,
            selection=SelectionInfo(
                type=selection.type,
                power_up_id=selection.power_up_id,
                required=selection.required,
                picked=[CellInfo(row=c.row, col=c.col) for c in selection.picked],
            ) if selection else None,
            can_undo=game.can_undo,
            input_locked=game.input_locked,
            game_over=game.game_over,
            finalized=game.finalized,
            pending_score=session.pending_score,
        )

    def _action_response(self, session: Session, result: ActionResult) -> ActionResponse:
        return ActionResponse(
            success=result.success,
            changed=result.changed,
            state_changes=result.state_changes,
            notices=result.notices,
            merges=[
                MergeInfo(
                    level=m.level,
                    is_joker=m.is_joker,
                    row=m.row,
                    col=m.col,
                    score_delta=m.score_delta,
                )
                for m in result.merge_events
            ],
            score_delta=result.score_delta,
            spawned_tile=self._tile_info(result.spawned_tile) if result.spawned_tile else None,
            granted_power_up=(
                self._power_up_info(result.granted_power_up) if result.granted_power_up else None
            ),
            selection_complete=result.selection_complete,
            state=self._state_response(session),
        )

    def _error_response(self, result: ActionResult) -> ErrorResponse:
        return ErrorResponse(
            error=result.error or "Action failed",
            error_code=result.error_code or ErrorCode.VALIDATION_ERROR,
            details={"notices": result.notices} if result.notices else None,
        )

    def _score_response(self, session: Session, success: bool) -> ScoreResponse:
        return ScoreResponse(
            success=success,
            session_id=session.session_id,
            finalized=session.game.finalized,
            pending_score=session.pending_score,
        )

    @staticmethod
    def _tile_info(tile: Tile, frozen_turns: int = 0) -> TileInfo:
        return TileInfo(
            id=tile.id,
            level=tile.level,
            is_joker=tile.is_joker,
            frozen_turns=frozen_turns,
            just_merged=tile.just_merged,
            just_spawned=tile.just_spawned,
        )

    @staticmethod
    def _power_up_info(power_up: PowerUp) -> PowerUpInfo:
        info = POWER_UP_INFO[power_up.type]
        return PowerUpInfo(
            id=power_up.id,
            type=power_up.type,
            name=info["name"],
            emoji=info["emoji"],
        )
