"""
File Store - JSON files under a local data directory.

Layout:
    <data_dir>/session.json       current checkpoint
    <data_dir>/leaderboard.json   local top scores
    <data_dir>/stats.json         high score, best rank ever discovered

Writes go to a temporary file that is then renamed over the target, so
a crash mid-write never leaves a truncated checkpoint behind.
"""

from __future__ import annotations
from pathlib import Path
import logging
import os
import tempfile

from pydantic import BaseModel

from .gateway import DEFAULT_PLAYER_NAME, PersistenceGateway, insert_entry, qualifies
from .schemas import Leaderboard, LeaderboardEntry, PlayerStats, SavedGame


logger = logging.getLogger(__name__)


class FileGateway(PersistenceGateway):
    """
    File-based storage.

    Usage:
        gateway = SafeGateway(FileGateway(data_dir="~/.fusion"))
        await gateway.save_session(SavedGame.from_session(game))
    """

    SESSION_FILE = "session.json"
    LEADERBOARD_FILE = "leaderboard.json"
    STATS_FILE = "stats.json"

    def __init__(self, data_dir: str | Path | None = None, leaderboard_size: int = 10):
        if data_dir is None:
            data_dir = Path.home() / ".fusion"
        self.data_dir = Path(data_dir).expanduser()
        self.leaderboard_size = leaderboard_size

    # =========================================================================
    # Session checkpoint
    # =========================================================================

    async def save_session(self, saved: SavedGame) -> None:
        self._write(self.SESSION_FILE, saved)

    async def load_session(self) -> SavedGame | None:
        path = self.data_dir / self.SESSION_FILE
        if not path.exists():
            return None
        return SavedGame.model_validate_json(path.read_text(encoding="utf-8"))

    async def clear_session(self) -> None:
        (self.data_dir / self.SESSION_FILE).unlink(missing_ok=True)

    # =========================================================================
    # Stats
    # =========================================================================

    async def get_high_score(self) -> int:
        return self._stats().high_score

    async def set_high_score(self, score: int) -> None:
        stats = self._stats()
        self._write(self.STATS_FILE, stats.model_copy(update={"high_score": score}))

    async def update_max_discovered_rank(self, level: int) -> None:
        stats = self._stats()
        if level > stats.max_discovered_rank:
            self._write(
                self.STATS_FILE,
                stats.model_copy(update={"max_discovered_rank": level}),
            )

    async def load_max_discovered_rank(self) -> int:
        return self._stats().max_discovered_rank

    # =========================================================================
    # Leaderboard
    # =========================================================================

    async def is_top_score(self, score: int) -> bool:
        return qualifies(self._leaderboard().entries, score, self.leaderboard_size)

    async def submit_score(self, score: int, name: str, highest_rank: int) -> bool:
        board = self._leaderboard()
        entry = LeaderboardEntry(
            name=name.strip() or DEFAULT_PLAYER_NAME,
            score=score,
            highest_rank=highest_rank,
        )
        board.entries = insert_entry(board.entries, entry, self.leaderboard_size)
        self._write(self.LEADERBOARD_FILE, board)
        logger.info("Recorded score %d for %s", score, entry.name)
        return True

    async def get_leaderboard(self) -> list[LeaderboardEntry]:
        return self._leaderboard().entries

    def reset(self) -> None:
        """Delete every file this store owns."""
        for name in (self.SESSION_FILE, self.LEADERBOARD_FILE, self.STATS_FILE):
            (self.data_dir / name).unlink(missing_ok=True)

    # =========================================================================
    # Internals
    # =========================================================================

    def _stats(self) -> PlayerStats:
        path = self.data_dir / self.STATS_FILE
        if not path.exists():
            return PlayerStats()
        return PlayerStats.model_validate_json(path.read_text(encoding="utf-8"))

    def _leaderboard(self) -> Leaderboard:
        path = self.data_dir / self.LEADERBOARD_FILE
        if not path.exists():
            return Leaderboard()
        return Leaderboard.model_validate_json(path.read_text(encoding="utf-8"))

    def _write(self, name: str, model: BaseModel) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        target = self.data_dir / name
        fd, tmp = tempfile.mkstemp(dir=self.data_dir, prefix=f".{name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(model.model_dump_json(indent=2))
            os.replace(tmp, target)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise
