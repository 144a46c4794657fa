"""
Engine Core - Deterministic board rules and the game session.

The engine is the runtime that:
1. Resolves directional moves (merges, Jokers, frozen tiles)
2. Spawns tiles and grants power-ups
3. Runs the tile-selection machine for interactive power-ups
4. Keeps bounded undo history
5. Guards against deadlocks introduced by power-ups
"""

from .grid import Direction, CellRef, Tile, Grid, GRID_SIZE
from .resolver import MergeEvent, MoveResult, TileSpawner, resolve
from .deadlock import DeadlockNotice, can_make_any_move, would_freezing_cause_deadlock, recover
from .powerups import PowerUpType, PowerUp, EconomyState, BoardEffects
from .selection import SelectionState, SelectionMachine
from .history import HistorySnapshot, HistoryManager, UndoSource, UndoRights
from .action import Action, ActionType, ActionPayload, ActionResult, ErrorCode
from .game_session import GameSession

__all__ = [
    "Direction",
    "CellRef",
    "Tile",
    "Grid",
    "GRID_SIZE",
    "MergeEvent",
    "MoveResult",
    "TileSpawner",
    "resolve",
    "DeadlockNotice",
    "can_make_any_move",
    "would_freezing_cause_deadlock",
    "recover",
    "PowerUpType",
    "PowerUp",
    "EconomyState",
    "BoardEffects",
    "SelectionState",
    "SelectionMachine",
    "HistorySnapshot",
    "HistoryManager",
    "UndoSource",
    "UndoRights",
    "Action",
    "ActionType",
    "ActionPayload",
    "ActionResult",
    "ErrorCode",
    "GameSession",
]
