"""
Tests for the command-line interface.
"""

from ..cli import main, parse_command, render
from ..engine_core.action import ActionType
from ..engine_core.grid import Direction
from ..session.manager import Session


class TestParseCommand:

    def test_moves(self):
        action = parse_command("a")

        assert action.action_type == ActionType.MOVE
        assert action.payload.direction == Direction.LEFT

    def test_pick(self):
        action = parse_command("r 2 3")

        assert action.action_type == ActionType.PICK_CELL
        assert (action.payload.cell.row, action.payload.cell.col) == (2, 3)

    def test_power_up_slot(self):
        assert parse_command("p 2") == ("power_up", 2)

    def test_quit_and_garbage(self):
        assert parse_command("Q") == "quit"
        assert parse_command("") is None
        assert parse_command("r x y") is None


class TestRender:

    def test_board_markers(self, make_session):
        game = make_session(
            [[1, -1, None, None]] + [[None] * 4 for _ in range(3)],
            frozen={1: 2},
        )

        text = render(Session(session_id="s", game=game, created_at=0.0))

        assert "Score: 0" in text
        assert "1*" in text
        assert "J" in text


class TestCommands:
    """End-to-end runs of the CLI against a temporary data directory."""

    def test_play_then_quit_keeps_checkpoint(self, tmp_path, monkeypatch, capsys):
        monkeypatch.setattr("builtins.input", lambda prompt="": "q")

        main(["--data-dir", str(tmp_path), "play", "--new", "--seed", "4"])

        assert (tmp_path / "session.json").exists()
        assert "Score: 0" in capsys.readouterr().out

    def test_empty_leaderboard(self, tmp_path, capsys):
        main(["--data-dir", str(tmp_path), "leaderboard"])

        out = capsys.readouterr().out
        assert "High score: 0" in out
        assert "No scores yet." in out

    def test_reset(self, tmp_path, monkeypatch, capsys):
        monkeypatch.setattr("builtins.input", lambda prompt="": "q")
        main(["--data-dir", str(tmp_path), "play", "--new"])

        main(["--data-dir", str(tmp_path), "reset", "--yes"])

        assert not (tmp_path / "session.json").exists()
        assert "Local data deleted." in capsys.readouterr().out
