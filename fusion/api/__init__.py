"""
API Module - HTTP interface for game clients.

Exposes the engine via a REST API. A client:
1. Starts or resumes a game session
2. Sends moves, power-up uses, cell picks and undos
3. Renders the returned state
4. Submits or discards the final score

Board state lives in the session; the saved checkpoint and the
leaderboard live in the data directory.
"""

from .schemas import (
    # Requests
    CreateSessionRequest,
    MoveRequest,
    PickRequest,
    SubmitScoreRequest,
    # Responses
    ActionResponse,
    ErrorResponse,
    FlagsResponse,
    GameStateResponse,
    LeaderboardResponse,
    ScoreResponse,
    # Shared
    TileInfo,
    PowerUpInfo,
    SelectionInfo,
)
from .service import APIService
from .app import create_app

__all__ = [
    # Requests
    "CreateSessionRequest",
    "MoveRequest",
    "PickRequest",
    "SubmitScoreRequest",
    # Responses
    "ActionResponse",
    "ErrorResponse",
    "FlagsResponse",
    "GameStateResponse",
    "LeaderboardResponse",
    "ScoreResponse",
    # Shared
    "TileInfo",
    "PowerUpInfo",
    "SelectionInfo",
    # Service
    "APIService",
    "create_app",
]
