"""
Pytest fixtures for Fusion tests.
"""

from random import Random

import pytest

from ..config import GameRules
from ..engine_core.game_session import GameSession
from ..engine_core.grid import Grid
from ..engine_core.powerups import BoardEffects, EconomyState, PowerUp, PowerUpType


class ScriptedRandom(Random):
    """
    Random source with scripted draws.

    - random() pops from `rolls` (0.5 when empty: a level-1 spawn)
    - randrange() pops a cell index from `cells` (0 when empty: the
      first empty cell in row-major order)
    - choice() always takes the first element
    """

    def __init__(self, rolls=(), cells=()):
        super().__init__(0)
        self.rolls = list(rolls)
        self.cells = list(cells)

    def random(self):
        return self.rolls.pop(0) if self.rolls else 0.5

    def randrange(self, start, stop=None, step=1):
        n = start if stop is None else stop - start
        index = self.cells.pop(0) if self.cells else 0
        return min(index, n - 1)

    def choice(self, seq):
        return seq[0]


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now: float = 100.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


# Every value distinct: no move is possible
STUCK_LEVELS = [
    [1, 2, 3, 4],
    [5, 6, 7, 8],
    [9, 10, 11, 12],
    [13, 14, 15, 16],
]

# Full board whose only pair is the two 15s in the bottom-right corner
SINGLE_PAIR_LEVELS = [
    [1, 2, 3, 4],
    [5, 6, 7, 8],
    [9, 10, 11, 12],
    [13, 14, 15, 15],
]


def power_up(power_up_type: PowerUpType, suffix: str = "1") -> PowerUp:
    return PowerUp(id=f"powerup_{power_up_type.value}_{suffix}", type=power_up_type, created_at=0.0)


@pytest.fixture
def rng() -> ScriptedRandom:
    return ScriptedRandom()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_session(clock):
    """
    Factory for a GameSession on a known board.

    Spawns land on the first empty cell as level 1 unless `rolls` or
    `cells` say otherwise.
    """

    def _make(
        levels,
        rolls=(),
        cells=(),
        frozen=None,
        slow_motion_turns=0,
        inventory=(),
        rules=None,
    ) -> GameSession:
        session = GameSession(
            rules=rules or GameRules(),
            rng=ScriptedRandom(rolls=rolls, cells=cells),
            clock=clock,
            grid=Grid.from_levels(levels),
        )
        session.effects = BoardEffects(
            frozen_tiles=frozen or {},
            slow_motion_turns=slow_motion_turns,
        )
        economy = EconomyState()
        for p in inventory:
            economy = economy.with_added(p, session.rules.max_power_ups)
        session.economy = economy
        return session

    return _make


@pytest.fixture
def single_row():
    """Board with one pair of level-1 tiles at the left of the top row."""
    return [
        [1, 1, None, None],
        [None, None, None, None],
        [None, None, None, None],
        [None, None, None, None],
    ]
