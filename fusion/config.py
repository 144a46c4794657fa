"""
Configuration - Game rules and runtime settings.

Two kinds of configuration live here:
- GameRules: the tunable constants of the game itself (grid size,
  inventory cap, freeze length, spawn weights). Injected into a
  GameSession so tests can make spawning deterministic.
- Settings: deployment settings read from the environment
  (data directory, log level, CORS origins).
"""

from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
import logging
import os


JOKER_LEVEL = -1


@dataclass(frozen=True)
class SpawnWeights:
    """
    Relative weights for the level of a freshly spawned tile.

    Weights need not sum to 1; they are normalized when drawing.
    """
    joker: float = 0.02
    level_1: float = 0.88
    level_2: float = 0.10

    def __post_init__(self):
        weights = (self.joker, self.level_1, self.level_2)
        if any(w < 0 for w in weights):
            raise ValueError(f"Spawn weights must be non-negative: {weights}")
        if sum(weights) <= 0:
            raise ValueError("At least one spawn weight must be positive")

    def as_table(self) -> list[tuple[int, float]]:
        """(level, weight) pairs in draw order."""
        return [
            (JOKER_LEVEL, self.joker),
            (1, self.level_1),
            (2, self.level_2),
        ]


@dataclass(frozen=True)
class GameRules:
    """Constants of the game. Defaults match the shipped game."""
    grid_size: int = 4
    max_power_ups: int = 4
    freeze_turns: int = 3
    slow_motion_turns: int = 5
    spawn_guard_seconds: float = 0.5
    leaderboard_size: int = 10
    spawn_weights: SpawnWeights = field(default_factory=SpawnWeights)


DEFAULT_RULES = GameRules()


@dataclass
class Settings:
    """
    Runtime settings.

    Read from the environment:
        FUSION_ENV        development | production
        FUSION_DATA_DIR   where saved games and the leaderboard live
        FUSION_LOG_LEVEL  standard logging level name
        ALLOWED_ORIGINS   comma-separated CORS origins for the API
    """
    env: str = "development"
    data_dir: Path = field(default_factory=lambda: Path.home() / ".fusion")
    log_level: str = "INFO"
    allowed_origins: list[str] = field(default_factory=lambda: ["*"])

    @classmethod
    def from_env(cls) -> Settings:
        data_dir = os.getenv("FUSION_DATA_DIR")
        return cls(
            env=os.getenv("FUSION_ENV", "development"),
            data_dir=Path(data_dir).expanduser() if data_dir else Path.home() / ".fusion",
            log_level=os.getenv("FUSION_LOG_LEVEL", "INFO").upper(),
            allowed_origins=os.getenv("ALLOWED_ORIGINS", "*").split(","),
        )

    @property
    def is_production(self) -> bool:
        return self.env == "production"


def configure_logging(level: str | int = "INFO", logger_name: str = "fusion") -> logging.Logger:
    """
    Attach a stream handler to the package logger.

    Safe to call more than once; only one handler is ever installed.
    """
    logger = logging.getLogger(logger_name)
    logger.setLevel(level)
    if not any(getattr(h, "_fusion_handler", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        handler._fusion_handler = True
        logger.addHandler(handler)
    return logger
