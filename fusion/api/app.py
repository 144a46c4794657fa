"""
FastAPI Application - REST API for game clients.

Endpoints:
    GET    /health                                   Health check
    GET    /api/v1/flags                             Saved-game navigation flags
    GET    /api/v1/leaderboard                       Local top scores
    POST   /api/v1/sessions                          Start or resume a game
    GET    /api/v1/sessions                          List active sessions
    GET    /api/v1/sessions/{id}                     Get game state
    DELETE /api/v1/sessions/{id}                     Drop a session (checkpoint kept)
    POST   /api/v1/sessions/{id}/move                Directional move
    POST   /api/v1/sessions/{id}/power-ups/{pid}     Use a power-up
    POST   /api/v1/sessions/{id}/selection/pick      Pick a cell for the armed power-up
    POST   /api/v1/sessions/{id}/selection/cancel    Cancel the armed power-up
    POST   /api/v1/sessions/{id}/undo                Undo
    POST   /api/v1/sessions/{id}/score               Submit the pending score
    POST   /api/v1/sessions/{id}/score/discard       Discard the score and finalize

All responses are JSON with explicit Pydantic schemas.
"""

from typing import Union

from ..config import Settings


# Environment configuration
SETTINGS = Settings.from_env()


def create_app(service=None, settings: Settings | None = None):
    """
    Create the FastAPI application.

    Args:
        service: Optional APIService instance (creates one backed by
            files under the data directory if not provided)
        settings: Optional Settings (read from the environment if not provided)

    Returns:
        FastAPI application instance
    """
    try:
        from fastapi import FastAPI
        from fastapi.middleware.cors import CORSMiddleware
        from fastapi.responses import JSONResponse
    except ImportError:
        raise ImportError(
            "FastAPI not installed. Install with: pip install fastapi uvicorn"
        )

    from .service import APIService
    from .schemas import (
        # Request models
        CreateSessionRequest,
        MoveRequest,
        PickRequest,
        SubmitScoreRequest,
        # Response models
        ActionResponse,
        ErrorResponse,
        FlagsResponse,
        GameStateResponse,
        LeaderboardResponse,
        ScoreResponse,
        SessionListResponse,
        EndSessionResponse,
        HealthResponse,
        # Enums
        ErrorCode,
    )
    from .. import __version__
    from ..persistence import FileGateway
    from ..session import SessionManager

    settings = settings or SETTINGS

    app = FastAPI(
        title="Fusion Engine API",
        description="""
Tile-merging puzzle engine with power-ups and undo.

## Error Codes

| Code | Description |
|------|-------------|
| `INVALID_MOVE` | The direction produced no change |
| `ILLEGAL_SELECTION` | Picked cell is empty, off-board, or frozen (Swap) |
| `UNSAFE_FREEZE` | Freezing the tile would leave no possible move |
| `INPUT_LOCKED` | A power-up is armed or the spawn guard is running |
| `GAME_OVER` | Only undo or score submission remain |
| `UNDO_UNAVAILABLE` | No undo right or history left |
| `UNKNOWN_POWER_UP` | Power-up not in the inventory |
| `NO_SELECTION` | Nothing is armed |
| `SESSION_NOT_FOUND` | Session does not exist |
| `PERSISTENCE_FAILURE` | Score not recorded; submit again |
        """,
        version=__version__,
        docs_url=None if settings.is_production else "/api/docs",
        redoc_url=None if settings.is_production else "/api/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Service instance
    api_service = service or APIService(
        session_manager=SessionManager(gateway=FileGateway(settings.data_dir))
    )

    status_codes = {
        ErrorCode.SESSION_NOT_FOUND: 404,
        ErrorCode.INPUT_LOCKED: 409,
        ErrorCode.GAME_OVER: 409,
        ErrorCode.UNSAFE_FREEZE: 409,
        ErrorCode.PERSISTENCE_FAILURE: 503,
    }

    # =========================================================================
    # Error helpers
    # =========================================================================

    def make_error_response(error: ErrorResponse) -> JSONResponse:
        """Create a standardized error response."""
        return JSONResponse(
            status_code=status_codes.get(error.error_code, 400),
            content=error.model_dump(mode="json"),
        )

    def respond(response):
        if isinstance(response, ErrorResponse):
            return make_error_response(response)
        return response

    error_responses = {
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse, "description": "Session not found"},
        409: {"model": ErrorResponse, "description": "Input locked or game over"},
    }

    # =========================================================================
    # Session Endpoints
    # =========================================================================

    @app.post(
        "/api/v1/sessions",
        response_model=GameStateResponse,
        tags=["Sessions"],
        summary="Start a new game or resume the saved one",
    )
    async def create_session(request: CreateSessionRequest) -> GameStateResponse:
        return await api_service.create_session(request)

    @app.get(
        "/api/v1/sessions",
        response_model=SessionListResponse,
        tags=["Sessions"],
        summary="List active sessions",
    )
    async def list_sessions() -> SessionListResponse:
        sessions = api_service.list_sessions()
        return SessionListResponse(sessions=sessions, count=len(sessions))

    @app.get(
        "/api/v1/sessions/{session_id}",
        response_model=GameStateResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Sessions"],
        summary="Get game state",
    )
    async def get_session(session_id: str) -> Union[GameStateResponse, JSONResponse]:
        return respond(api_service.get_state(session_id))

    @app.delete(
        "/api/v1/sessions/{session_id}",
        response_model=EndSessionResponse,
        tags=["Sessions"],
        summary="Drop a session from memory",
    )
    async def end_session(session_id: str) -> EndSessionResponse:
        """The saved checkpoint is kept; resume it with `resume=true`."""
        success = api_service.end_session(session_id)
        return EndSessionResponse(success=success, session_id=session_id)

    # =========================================================================
    # Game Endpoints
    # =========================================================================

    @app.post(
        "/api/v1/sessions/{session_id}/move",
        response_model=ActionResponse,
        responses=error_responses,
        tags=["Game"],
        summary="Make a directional move",
    )
    async def move(session_id: str, request: MoveRequest) -> Union[ActionResponse, JSONResponse]:
        return respond(await api_service.move(session_id, request.direction.value))

    @app.post(
        "/api/v1/sessions/{session_id}/power-ups/{power_up_id}",
        response_model=ActionResponse,
        responses=error_responses,
        tags=["Game"],
        summary="Use a power-up",
    )
    async def use_power_up(session_id: str, power_up_id: str) -> Union[ActionResponse, JSONResponse]:
        """
        Undo and Slow Motion act at once. Freeze, Swap and Delete arm a
        selection; follow up with `/selection/pick`.
        """
        return respond(await api_service.use_power_up(session_id, power_up_id))

    @app.post(
        "/api/v1/sessions/{session_id}/selection/pick",
        response_model=ActionResponse,
        responses=error_responses,
        tags=["Game"],
        summary="Pick a cell for the armed power-up",
    )
    async def pick(session_id: str, request: PickRequest) -> Union[ActionResponse, JSONResponse]:
        return respond(await api_service.pick(session_id, request.row, request.col))

    @app.post(
        "/api/v1/sessions/{session_id}/selection/cancel",
        response_model=ActionResponse,
        responses=error_responses,
        tags=["Game"],
        summary="Cancel the armed power-up",
    )
    async def cancel_selection(session_id: str) -> Union[ActionResponse, JSONResponse]:
        return respond(await api_service.cancel_selection(session_id))

    @app.post(
        "/api/v1/sessions/{session_id}/undo",
        response_model=ActionResponse,
        responses=error_responses,
        tags=["Game"],
        summary="Undo the last move",
    )
    async def undo(session_id: str) -> Union[ActionResponse, JSONResponse]:
        return respond(await api_service.undo(session_id))

    # =========================================================================
    # Score Endpoints
    # =========================================================================

    @app.post(
        "/api/v1/sessions/{session_id}/score",
        response_model=ScoreResponse,
        responses={
            400: {"model": ErrorResponse, "description": "No qualifying score"},
            404: {"model": ErrorResponse},
            503: {"model": ErrorResponse, "description": "Leaderboard unavailable"},
        },
        tags=["Scores"],
        summary="Submit the pending score",
    )
    async def submit_score(
        session_id: str,
        request: SubmitScoreRequest,
    ) -> Union[ScoreResponse, JSONResponse]:
        """On failure the score stays pending and can be submitted again."""
        return respond(await api_service.submit_score(session_id, request))

    @app.post(
        "/api/v1/sessions/{session_id}/score/discard",
        response_model=ScoreResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Scores"],
        summary="Discard the score and finalize the game",
    )
    async def discard_score(session_id: str) -> Union[ScoreResponse, JSONResponse]:
        return respond(await api_service.discard_score(session_id))

    @app.get(
        "/api/v1/leaderboard",
        response_model=LeaderboardResponse,
        tags=["Scores"],
        summary="Local top scores",
    )
    async def leaderboard() -> LeaderboardResponse:
        return await api_service.leaderboard()

    @app.get(
        "/api/v1/flags",
        response_model=FlagsResponse,
        tags=["Sessions"],
        summary="Flags derived from the saved game",
    )
    async def flags() -> FlagsResponse:
        return await api_service.flags()

    # =========================================================================
    # System
    # =========================================================================

    @app.get(
        "/health",
        response_model=HealthResponse,
        tags=["System"],
        summary="Health check",
    )
    async def health_check() -> HealthResponse:
        return HealthResponse(
            status="healthy",
            service="emoji-fusion",
            version=__version__,
        )

    @app.get("/", include_in_schema=False)
    async def root():
        return {
            "service": "emoji-fusion",
            "docs": "/api/docs",
            "health": "/health",
        }

    return app


# Default app instance for uvicorn
app = None
try:
    app = create_app()
except ImportError:
    # FastAPI not installed
    pass
