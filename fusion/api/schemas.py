"""
Pydantic Schemas for API - Request/response models for OpenAPI.

These models define the contract between a game client and the engine.
All responses include explicit types for OpenAPI schema generation.

Error Codes:
- INVALID_MOVE: The direction produced no change
- ILLEGAL_SELECTION: Picked cell is empty, off-board, or frozen (Swap)
- UNSAFE_FREEZE: Freezing the tile would leave no possible move
- INPUT_LOCKED: A power-up is armed or the Joker spawn guard is running
- GAME_OVER: The game is over; only undo or score submission remain
- UNDO_UNAVAILABLE: No undo right or no history left
- UNKNOWN_POWER_UP: Power-up id not in the inventory
- NO_SELECTION: Nothing is armed
- SESSION_NOT_FOUND: Session does not exist or has ended
- PERSISTENCE_FAILURE: The leaderboard could not record the score; retry
"""

from enum import Enum
from typing import Optional, Any
from pydantic import BaseModel, Field

from ..engine_core.action import ErrorCode
from ..engine_core.grid import Direction
from ..engine_core.powerups import PowerUpType


# =============================================================================
# Enums
# =============================================================================

class SessionStatus(str, Enum):
    """Session status values."""
    ACTIVE = "active"
    SELECTING = "selecting"
    GAME_OVER = "game_over"
    FINALIZED = "finalized"


class MoveDirection(str, Enum):
    UP = Direction.UP.value
    DOWN = Direction.DOWN.value
    LEFT = Direction.LEFT.value
    RIGHT = Direction.RIGHT.value


# =============================================================================
# Request Models
# =============================================================================

class CreateSessionRequest(BaseModel):
    """Request to start or resume a game."""
    resume: bool = Field(False, description="Continue the saved game if there is one")
    seed: Optional[int] = Field(None, description="Seed for spawns and power-up draws")


class MoveRequest(BaseModel):
    direction: MoveDirection


class PickRequest(BaseModel):
    """A cell picked for the armed power-up."""
    row: int = Field(..., ge=0)
    col: int = Field(..., ge=0)


class SubmitScoreRequest(BaseModel):
    name: str = Field("", max_length=32, description="Blank submits as Anonymous")


# =============================================================================
# Shared Models
# =============================================================================

class TileInfo(BaseModel):
    """A tile on the board."""
    id: int
    level: int
    is_joker: bool = False
    frozen_turns: int = 0
    just_merged: bool = False
    just_spawned: bool = False


class PowerUpInfo(BaseModel):
    """A power-up in an inventory slot."""
    id: str
    type: PowerUpType
    name: str
    emoji: str


class CellInfo(BaseModel):
    row: int
    col: int


class SelectionInfo(BaseModel):
    """An armed power-up waiting for picks."""
    type: PowerUpType
    power_up_id: str
    required: int
    picked: list[CellInfo] = Field(default_factory=list)


class MergeInfo(BaseModel):
    level: int
    is_joker: bool
    row: int
    col: int
    score_delta: int


# =============================================================================
# Response Models
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str = Field(..., description="Human-readable error message")
    error_code: ErrorCode = Field(..., description="Machine-readable error code")
    details: Optional[dict[str, Any]] = Field(None, description="Additional error context")
    api_version: str = Field("v1", description="API version")


class GameStateResponse(BaseModel):
    """Full state of a session, enough to render the board."""
    session_id: str
    status: SessionStatus
    grid: list[list[Optional[TileInfo]]]
    score: int
    highest_level: int
    inventory: list[PowerUpInfo] = Field(default_factory=list)
    extra_undos: int = 0
    slow_motion_turns: int = 0
    selection: Optional[SelectionInfo] = None
    can_undo: bool = False
    input_locked: bool = False
    game_over: bool = False
    finalized: bool = False
    pending_score: Optional[int] = None


class ActionResponse(BaseModel):
    """Outcome of a successful action, with the state after it."""
    success: bool = True
    changed: bool = True
    state_changes: list[str] = Field(default_factory=list)
    notices: list[str] = Field(default_factory=list)
    merges: list[MergeInfo] = Field(default_factory=list)
    score_delta: int = 0
    spawned_tile: Optional[TileInfo] = None
    granted_power_up: Optional[PowerUpInfo] = None
    selection_complete: bool = False
    state: GameStateResponse


class ScoreResponse(BaseModel):
    """Result of submitting or discarding a score."""
    success: bool
    session_id: str
    finalized: bool
    pending_score: Optional[int] = None


class LeaderboardEntryInfo(BaseModel):
    rank: int
    name: str
    score: int
    highest_rank: int


class LeaderboardResponse(BaseModel):
    entries: list[LeaderboardEntryInfo] = Field(default_factory=list)
    high_score: int = 0
    max_discovered_rank: int = 1


class FlagsResponse(BaseModel):
    """Navigation flags derived from the saved game."""
    has_saved_game: bool
    has_finalized_game: bool
    can_undo_after_game_over: bool


class SessionListResponse(BaseModel):
    """Response listing active sessions."""
    sessions: list[str]
    count: int


class EndSessionResponse(BaseModel):
    """Response after ending a session."""
    success: bool
    session_id: str


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    service: str
    version: str
