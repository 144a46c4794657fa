"""
Session Manager - Creates and manages game sessions.

LIFECYCLE:
1. Player starts a game → new session, or resume the stored checkpoint
2. During play:
   - Every action is applied synchronously by the GameSession
   - Storage is awaited only after the action has fully settled
   - Checkpoint saved after each state-changing action, unless the
     game was already over before the action
3. Game over:
   - High score updated
   - Leaderboard qualification checked; a qualifying score is held as
     pending until the player submits or discards it
   - Undo may still bring the game back
4. Submit (success) or discard → session finalized: history and all
   undo rights are gone, the finalized checkpoint is saved

PERSISTENCE RULES:
- The gateway is always wrapped in SafeGateway; storage failures never
  reach the player as errors
- A failed submission keeps the pending score so the player can retry
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from random import Random
from typing import Callable
import logging
import time
import uuid

from ..config import DEFAULT_RULES, GameRules
from ..engine_core.action import Action, ActionResult, ErrorCode
from ..engine_core.game_session import GameSession
from ..persistence.gateway import MemoryGateway, PersistenceGateway, SafeGateway, SessionFlags
from ..persistence.schemas import LeaderboardEntry, SavedGame


logger = logging.getLogger(__name__)


class SessionState(Enum):
    """State of a game session."""
    ACTIVE = "active"  # Game in progress
    GAME_OVER = "game_over"  # Stuck; undo may still recover
    FINALIZED = "finalized"  # Score submitted or discarded


@dataclass
class Session:
    """
    A live game session.

    Contains:
    - The GameSession (sole owner of board state)
    - A score waiting for leaderboard submission, if any
    """
    session_id: str
    game: GameSession
    created_at: float

    pending_score: int | None = None
    resumed: bool = False

    @property
    def state(self) -> SessionState:
        if self.game.finalized:
            return SessionState.FINALIZED
        if self.game.game_over:
            return SessionState.GAME_OVER
        return SessionState.ACTIVE

    def is_active(self) -> bool:
        return self.state != SessionState.FINALIZED


class SessionManager:
    """
    Manages game sessions.

    Responsibilities:
    - Create sessions (fresh or resumed from the checkpoint)
    - Route actions to the owning GameSession
    - Talk to the persistence gateway at the edges of each action
    """

    def __init__(
        self,
        gateway: PersistenceGateway | None = None,
        rules: GameRules | None = None,
        rng_factory: Callable[[int | None], Random] | None = None,
        clock: Callable[[], float] | None = None,
    ):
        inner = gateway or MemoryGateway()
        self.gateway = inner if isinstance(inner, SafeGateway) else SafeGateway(inner)
        self.rules = rules or DEFAULT_RULES
        self.rng_factory = rng_factory or Random
        self.clock = clock
        self._sessions: dict[str, Session] = {}

    async def create_session(self, resume: bool = False, seed: int | None = None) -> Session:
        """
        Create a game session.

        Args:
            resume: Continue the stored checkpoint if there is one that
                has not been finalized
            seed: Seed for tile spawns and power-up draws

        Returns:
            New Session, already checkpointed
        """
        rng = self.rng_factory(seed)
        game = None
        resumed = False

        if resume:
            saved = await self.gateway.load_session()
            if saved and not saved.finalized:
                game = saved.to_session(rules=self.rules, rng=rng, clock=self.clock)
                resumed = True
                logger.info("Resumed saved game with score %d", game.score)

        if game is None:
            game = GameSession(rules=self.rules, rng=rng, clock=self.clock)
            await self.gateway.save_session(SavedGame.from_session(game))

        session = Session(
            session_id=str(uuid.uuid4()),
            game=game,
            created_at=time.time(),
            resumed=resumed,
        )
        if resumed and game.game_over:
            session.pending_score = await self._qualifying_score(game)

        self._sessions[session.session_id] = session
        return session

    def get_session(self, session_id: str) -> Session | None:
        """Get a session by ID."""
        return self._sessions.get(session_id)

    async def handle(self, session_id: str, action: Action) -> ActionResult:
        """
        Apply an action, then persist.

        The action itself never waits on storage.
        """
        session = self._sessions.get(session_id)
        if not session:
            return ActionResult.failure(
                "Session not found",
                error_code=ErrorCode.SESSION_NOT_FOUND,
            )

        game = session.game
        was_over = game.game_over
        result = game.apply(action)

        if not (result.success and result.changed):
            return result

        if was_over and game.game_over:
            return result

        await self._checkpoint(game)

        if not was_over and game.game_over:
            await self._on_game_over(session)
        elif was_over and not game.game_over:
            session.pending_score = None

        return result

    async def submit_score(self, session_id: str, name: str = "") -> bool:
        """
        Submit the pending score.

        On success the session is finalized. On failure the pending
        score is kept for another try.
        """
        session = self._sessions.get(session_id)
        if not session or session.pending_score is None:
            return False

        game = session.game
        accepted = await self.gateway.submit_score(
            session.pending_score, name, game.highest_level
        )
        if not accepted:
            logger.warning("Score %d not recorded; keeping it for retry", session.pending_score)
            return False

        session.pending_score = None
        await self._finalize(session)
        return True

    async def discard_score(self, session_id: str) -> bool:
        """Give up on the game. Finalizes the session."""
        session = self._sessions.get(session_id)
        if not session:
            return False
        session.pending_score = None
        await self._finalize(session)
        return True

    def end_session(self, session_id: str) -> bool:
        """
        Drop a session from memory.

        The stored checkpoint is kept so the game can be resumed later.
        """
        return self._sessions.pop(session_id, None) is not None

    def list_active_sessions(self) -> list[str]:
        """List IDs of active sessions."""
        return [
            sid for sid, session in self._sessions.items()
            if session.is_active()
        ]

    async def session_flags(self) -> SessionFlags:
        return await self.gateway.session_flags()

    async def leaderboard(self) -> list[LeaderboardEntry]:
        return await self.gateway.get_leaderboard()

    async def high_score(self) -> int:
        return await self.gateway.get_high_score()

    async def max_discovered_rank(self) -> int:
        return await self.gateway.load_max_discovered_rank()

    # =========================================================================
    # Internals
    # =========================================================================

    async def _checkpoint(self, game: GameSession) -> None:
        await self.gateway.save_session(SavedGame.from_session(game))
        await self.gateway.update_max_discovered_rank(game.highest_level)
        if game.score > await self.gateway.get_high_score():
            await self.gateway.set_high_score(game.score)

    async def _on_game_over(self, session: Session) -> None:
        session.pending_score = await self._qualifying_score(session.game)
        if session.pending_score is not None:
            logger.info("Score %d qualifies for the leaderboard", session.pending_score)

    async def _qualifying_score(self, game: GameSession) -> int | None:
        if game.finalized:
            return None
        return game.score if await self.gateway.is_top_score(game.score) else None

    async def _finalize(self, session: Session) -> None:
        session.game.finalize()
        await self.gateway.save_session(SavedGame.from_session(session.game))
