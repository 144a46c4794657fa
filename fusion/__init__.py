"""
Emoji Fusion - Tile-merging puzzle engine

A deterministic, single-player engine for a 4x4 tile-merging game.
The engine provides:
- Move resolution with wild Joker tiles and frozen tiles
- A power-up economy with interactive tile selection
- Resource-bounded undo history
- Deadlock detection and automatic recovery
"""

__version__ = "0.1.0"
