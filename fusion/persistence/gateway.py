"""
Persistence Gateway - The narrow interface the game uses for storage.

The engine never touches storage directly. The session layer awaits
these calls at the edges of an action, after the board has settled.

Implementations:
- MemoryGateway: in-process, for tests and throwaway servers
- FileGateway (file_store.py): JSON files under a data directory
- SafeGateway: wraps any of the above and turns I/O errors into
  logged warnings and safe defaults
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass
import logging

from .schemas import LeaderboardEntry, SavedGame


logger = logging.getLogger(__name__)


DEFAULT_PLAYER_NAME = "Anonymous"


@dataclass(frozen=True)
class SessionFlags:
    """Booleans derived from the stored checkpoint, for navigation."""
    has_saved_game: bool = False
    has_finalized_game: bool = False
    can_undo_after_game_over: bool = False

    @classmethod
    def from_saved(cls, saved: SavedGame | None) -> SessionFlags:
        if saved is None:
            return cls()
        return cls(
            has_saved_game=not saved.finalized,
            has_finalized_game=saved.finalized,
            can_undo_after_game_over=saved.can_undo_after_game_over,
        )


def qualifies(entries: list[LeaderboardEntry], score: int, size: int) -> bool:
    """A score makes the board if there is room or it beats the lowest entry."""
    if len(entries) < size:
        return True
    return score > min(e.score for e in entries)


def insert_entry(
    entries: list[LeaderboardEntry],
    entry: LeaderboardEntry,
    size: int,
) -> list[LeaderboardEntry]:
    ranked = sorted([*entries, entry], key=lambda e: e.score, reverse=True)
    return ranked[:size]


class PersistenceGateway(ABC):
    """Storage used by the session layer. All calls are awaited."""

    @abstractmethod
    async def save_session(self, saved: SavedGame) -> None:
        """Overwrite the checkpoint. Must be idempotent."""

    @abstractmethod
    async def load_session(self) -> SavedGame | None:
        ...

    @abstractmethod
    async def clear_session(self) -> None:
        ...

    @abstractmethod
    async def get_high_score(self) -> int:
        ...

    @abstractmethod
    async def set_high_score(self, score: int) -> None:
        ...

    @abstractmethod
    async def is_top_score(self, score: int) -> bool:
        ...

    @abstractmethod
    async def submit_score(self, score: int, name: str, highest_rank: int) -> bool:
        ...

    @abstractmethod
    async def get_leaderboard(self) -> list[LeaderboardEntry]:
        ...

    @abstractmethod
    async def update_max_discovered_rank(self, level: int) -> None:
        """Record a rank if it beats the best ever seen."""

    @abstractmethod
    async def load_max_discovered_rank(self) -> int:
        ...

    async def session_flags(self) -> SessionFlags:
        return SessionFlags.from_saved(await self.load_session())


class MemoryGateway(PersistenceGateway):
    """Keeps everything in memory."""

    def __init__(self, leaderboard_size: int = 10):
        self.leaderboard_size = leaderboard_size
        self.saved: SavedGame | None = None
        self.high_score = 0
        self.max_discovered_rank = 1
        self.leaderboard: list[LeaderboardEntry] = []

    async def save_session(self, saved: SavedGame) -> None:
        self.saved = saved.model_copy(deep=True)

    async def load_session(self) -> SavedGame | None:
        return self.saved.model_copy(deep=True) if self.saved else None

    async def clear_session(self) -> None:
        self.saved = None

    async def get_high_score(self) -> int:
        return self.high_score

    async def set_high_score(self, score: int) -> None:
        self.high_score = score

    async def is_top_score(self, score: int) -> bool:
        return qualifies(self.leaderboard, score, self.leaderboard_size)

    async def submit_score(self, score: int, name: str, highest_rank: int) -> bool:
        entry = LeaderboardEntry(
            name=name.strip() or DEFAULT_PLAYER_NAME,
            score=score,
            highest_rank=highest_rank,
        )
        self.leaderboard = insert_entry(self.leaderboard, entry, self.leaderboard_size)
        return True

    async def get_leaderboard(self) -> list[LeaderboardEntry]:
        return list(self.leaderboard)

    async def update_max_discovered_rank(self, level: int) -> None:
        self.max_discovered_rank = max(self.max_discovered_rank, level)

    async def load_max_discovered_rank(self) -> int:
        return self.max_discovered_rank


class SafeGateway(PersistenceGateway):
    """
    Degrades instead of failing.

    Every storage error is logged and replaced by a safe default:
    - a failed save leaves the prior checkpoint as it was
    - a failed load reads as "no saved game"
    - a failed qualification check reads as "does not qualify"
    - a failed submission reports False so the caller can retry
    """

    def __init__(self, inner: PersistenceGateway):
        self.inner = inner

    async def save_session(self, saved: SavedGame) -> None:
        try:
            await self.inner.save_session(saved)
        except Exception as e:
            logger.warning("Failed to save session: %s", e)

    async def load_session(self) -> SavedGame | None:
        try:
            return await self.inner.load_session()
        except Exception as e:
            logger.warning("Failed to load session: %s", e)
            return None

    async def clear_session(self) -> None:
        try:
            await self.inner.clear_session()
        except Exception as e:
            logger.warning("Failed to clear session: %s", e)

    async def get_high_score(self) -> int:
        try:
            return await self.inner.get_high_score()
        except Exception as e:
            logger.warning("Failed to read high score: %s", e)
            return 0

    async def set_high_score(self, score: int) -> None:
        try:
            await self.inner.set_high_score(score)
        except Exception as e:
            logger.warning("Failed to store high score: %s", e)

    async def is_top_score(self, score: int) -> bool:
        try:
            return await self.inner.is_top_score(score)
        except Exception as e:
            logger.warning("Leaderboard qualification check failed: %s", e)
            return False

    async def submit_score(self, score: int, name: str, highest_rank: int) -> bool:
        try:
            return await self.inner.submit_score(score, name, highest_rank)
        except Exception as e:
            logger.warning("Score submission failed: %s", e)
            return False

    async def get_leaderboard(self) -> list[LeaderboardEntry]:
        try:
            return await self.inner.get_leaderboard()
        except Exception as e:
            logger.warning("Failed to read leaderboard: %s", e)
            return []

    async def update_max_discovered_rank(self, level: int) -> None:
        try:
            await self.inner.update_max_discovered_rank(level)
        except Exception as e:
            logger.warning("Failed to store discovered rank: %s", e)

    async def load_max_discovered_rank(self) -> int:
        try:
            return await self.inner.load_max_discovered_rank()
        except Exception as e:
            logger.warning("Failed to read discovered rank: %s", e)
            return 1
