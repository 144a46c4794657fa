"""
Persistence - Session checkpoints, high score and the local leaderboard.
"""

from .schemas import (
    SavedTile,
    SavedBoardEffects,
    SavedSnapshot,
    SavedPowerUp,
    SavedEconomy,
    SavedGame,
    LeaderboardEntry,
    PlayerStats,
)
from .gateway import PersistenceGateway, MemoryGateway, SafeGateway, SessionFlags
from .file_store import FileGateway

__all__ = [
    "SavedTile",
    "SavedBoardEffects",
    "SavedSnapshot",
    "SavedPowerUp",
    "SavedEconomy",
    "SavedGame",
    "LeaderboardEntry",
    "PlayerStats",
    "PersistenceGateway",
    "MemoryGateway",
    "SafeGateway",
    "SessionFlags",
    "FileGateway",
]
