"""
Tests for API layer.

Tests:
- API service methods
- HTTP routes, status codes and error bodies
- Score submission via API
"""

import asyncio

import pytest

from ..api.schemas import (
    ActionResponse,
    CreateSessionRequest,
    ErrorResponse,
    GameStateResponse,
    SessionStatus,
    SubmitScoreRequest,
)
from ..api.service import APIService
from ..config import Settings
from ..engine_core.action import ErrorCode
from ..engine_core.game_session import GameSession
from ..engine_core.grid import Grid
from ..engine_core.powerups import PowerUpType
from ..persistence import MemoryGateway
from ..session import SessionManager
from .conftest import FakeClock, ScriptedRandom, power_up


PAIR = [[1, 1, None, None]] + [[None] * 4 for _ in range(3)]
LONE = [[1, None, None, None]] + [[None] * 4 for _ in range(3)]
ONE_MOVE_FROM_STUCK = [
    [1, 2, 3, 4],
    [5, 6, 7, 8],
    [9, 10, 11, 12],
    [13, 14, None, 16],
]


def run(coro):
    return asyncio.run(coro)


def place(service, session_id, levels, inventory=()):
    game = GameSession(rng=ScriptedRandom(), clock=FakeClock(), grid=Grid.from_levels(levels))
    for p in inventory:
        game.economy = game.economy.with_added(p)
    service.session_manager.get_session(session_id).game = game
    return game


@pytest.fixture
def service():
    """Create a fresh API service backed by memory."""
    return APIService(session_manager=SessionManager(gateway=MemoryGateway()))


class TestAPIService:
    """Tests for APIService."""

    def test_create_session(self, service):
        response = run(service.create_session(CreateSessionRequest(seed=3)))

        assert isinstance(response, GameStateResponse)
        assert response.status == SessionStatus.ACTIVE
        assert sum(1 for row in response.grid for t in row if t) == 2
        assert response.score == 0
        assert not response.can_undo

    def test_get_nonexistent_session(self, service):
        response = service.get_state("nope")

        assert isinstance(response, ErrorResponse)
        assert response.error_code == ErrorCode.SESSION_NOT_FOUND

    def test_move(self, service):
        state = run(service.create_session(CreateSessionRequest()))
        place(service, state.session_id, PAIR)

        response = run(service.move(state.session_id, "left"))

        assert isinstance(response, ActionResponse)
        assert response.score_delta == 4
        assert response.merges[0].level == 2
        assert response.spawned_tile.id == 3
        assert response.granted_power_up.type == PowerUpType.FREEZE
        assert response.state.score == 4
        assert response.state.can_undo

    def test_invalid_move(self, service):
        state = run(service.create_session(CreateSessionRequest()))
        place(service, state.session_id, LONE)

        response = run(service.move(state.session_id, "left"))

        assert isinstance(response, ErrorResponse)
        assert response.error_code == ErrorCode.INVALID_MOVE

    def test_selection_state(self, service):
        state = run(service.create_session(CreateSessionRequest()))
        swap = power_up(PowerUpType.SWAP)
        place(service, state.session_id, PAIR, inventory=[swap])

        armed = run(service.use_power_up(state.session_id, swap.id))
        picked = run(service.pick(state.session_id, 0, 0))

        assert armed.state.status == SessionStatus.SELECTING
        assert armed.state.input_locked
        assert picked.state.selection.picked[0].row == 0

        cancelled = run(service.cancel_selection(state.session_id))
        assert cancelled.state.selection is None
        assert cancelled.state.inventory[0].name == "Swap"

    def test_frozen_turns_reported(self, service):
        state = run(service.create_session(CreateSessionRequest()))
        freeze = power_up(PowerUpType.FREEZE)
        place(service, state.session_id, PAIR, inventory=[freeze])

        run(service.use_power_up(state.session_id, freeze.id))
        response = run(service.pick(state.session_id, 0, 1))

        assert response.selection_complete
        assert response.state.grid[0][1].frozen_turns == 3

    def test_score_lifecycle(self, service):
        state = run(service.create_session(CreateSessionRequest()))
        place(service, state.session_id, ONE_MOVE_FROM_STUCK)

        ended = run(service.move(state.session_id, "left"))
        assert ended.state.status == SessionStatus.GAME_OVER
        assert ended.state.pending_score == 0

        response = run(service.submit_score(state.session_id, SubmitScoreRequest(name="Lin")))
        assert response.success
        assert response.finalized

        board = run(service.leaderboard())
        assert board.entries[0].rank == 1
        assert board.entries[0].name == "Lin"
        assert board.max_discovered_rank == 16

        assert run(service.flags()).has_finalized_game

    def test_submit_without_pending_score(self, service):
        state = run(service.create_session(CreateSessionRequest()))

        response = run(service.submit_score(state.session_id, SubmitScoreRequest(name="Lin")))

        assert isinstance(response, ErrorResponse)
        assert response.error_code == ErrorCode.VALIDATION_ERROR

    def test_failed_submission_can_be_retried(self):
        class OfflineBoard(MemoryGateway):
            online = False

            async def submit_score(self, score, name, highest_rank):
                if not self.online:
                    raise ConnectionError("leaderboard offline")
                return await super().submit_score(score, name, highest_rank)

        gateway = OfflineBoard()
        service = APIService(session_manager=SessionManager(gateway=gateway))
        state = run(service.create_session(CreateSessionRequest()))
        place(service, state.session_id, ONE_MOVE_FROM_STUCK)
        run(service.move(state.session_id, "left"))

        failed = run(service.submit_score(state.session_id, SubmitScoreRequest(name="Lin")))
        gateway.online = True
        retried = run(service.submit_score(state.session_id, SubmitScoreRequest(name="Lin")))

        assert failed.error_code == ErrorCode.PERSISTENCE_FAILURE
        assert failed.details == {"pending_score": 0}
        assert retried.success


class TestHTTP:
    """Tests for the FastAPI routes."""

    @pytest.fixture
    def client(self, service):
        from fastapi.testclient import TestClient
        from ..api.app import create_app

        return TestClient(create_app(service=service, settings=Settings()))

    def new_session(self, client):
        response = client.post("/api/v1/sessions", json={"seed": 1})
        assert response.status_code == 200
        return response.json()["session_id"]

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.json()["service"] == "emoji-fusion"

    def test_docs_hidden_in_production(self, client, service):
        from fastapi.testclient import TestClient
        from ..api.app import create_app

        production = TestClient(create_app(service=service, settings=Settings(env="production")))

        assert client.get("/api/docs").status_code == 200
        assert production.get("/api/docs").status_code == 404

    def test_create_and_get(self, client):
        session_id = self.new_session(client)

        response = client.get(f"/api/v1/sessions/{session_id}")

        assert response.status_code == 200
        assert response.json()["status"] == "active"
        assert client.get("/api/v1/sessions").json()["count"] == 1

    def test_missing_session(self, client):
        response = client.get("/api/v1/sessions/missing")

        assert response.status_code == 404
        assert response.json()["error_code"] == "SESSION_NOT_FOUND"

    def test_move(self, client, service):
        session_id = self.new_session(client)
        place(service, session_id, PAIR)

        response = client.post(f"/api/v1/sessions/{session_id}/move", json={"direction": "left"})

        assert response.status_code == 200
        body = response.json()
        assert body["score_delta"] == 4
        assert body["state"]["score"] == 4

    def test_invalid_move(self, client, service):
        session_id = self.new_session(client)
        place(service, session_id, LONE)

        response = client.post(f"/api/v1/sessions/{session_id}/move", json={"direction": "left"})

        assert response.status_code == 400
        assert response.json()["error_code"] == "INVALID_MOVE"

    def test_bad_direction(self, client):
        session_id = self.new_session(client)

        response = client.post(f"/api/v1/sessions/{session_id}/move", json={"direction": "sideways"})

        assert response.status_code == 422

    def test_locked_input(self, client, service):
        session_id = self.new_session(client)
        delete = power_up(PowerUpType.DELETE)
        place(service, session_id, PAIR, inventory=[delete])

        armed = client.post(f"/api/v1/sessions/{session_id}/power-ups/{delete.id}")
        locked = client.post(f"/api/v1/sessions/{session_id}/move", json={"direction": "left"})

        assert armed.status_code == 200
        assert locked.status_code == 409
        assert locked.json()["error_code"] == "INPUT_LOCKED"

    def test_pick_and_undo(self, client, service):
        session_id = self.new_session(client)
        delete = power_up(PowerUpType.DELETE)
        place(service, session_id, PAIR, inventory=[delete])
        client.post(f"/api/v1/sessions/{session_id}/power-ups/{delete.id}")

        picked = client.post(
            f"/api/v1/sessions/{session_id}/selection/pick",
            json={"row": 0, "col": 0},
        )
        undo = client.post(f"/api/v1/sessions/{session_id}/undo")

        assert picked.status_code == 200
        assert picked.json()["selection_complete"]
        assert undo.status_code == 400
        assert undo.json()["error_code"] == "UNDO_UNAVAILABLE"

    def test_discard_score(self, client, service):
        session_id = self.new_session(client)
        place(service, session_id, ONE_MOVE_FROM_STUCK)
        client.post(f"/api/v1/sessions/{session_id}/move", json={"direction": "left"})

        response = client.post(f"/api/v1/sessions/{session_id}/score/discard")

        assert response.status_code == 200
        assert response.json()["finalized"]
        assert client.get("/api/v1/flags").json()["has_finalized_game"]

    def test_leaderboard(self, client):
        response = client.get("/api/v1/leaderboard")

        assert response.status_code == 200
        assert response.json()["entries"] == []

    def test_end_session(self, client):
        session_id = self.new_session(client)

        response = client.delete(f"/api/v1/sessions/{session_id}")

        assert response.json()["success"]
        assert client.get(f"/api/v1/sessions/{session_id}").status_code == 404
