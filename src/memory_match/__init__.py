"""
Memory Match package root.

A single-player tile-matching game engine. Presentation (rendering, input
wiring, theming) lives outside this package and drives the engine through
its commands and snapshots.
"""

from .app import build_engine
from .deck import Card, generate_deck
from .engine import GameEngine
from .events import GameEvent
from .settings import GameSettings
from .state import GameSnapshot, Phase

__version__ = "0.1.0"

__all__ = [
    "Card",
    "GameEngine",
    "GameEvent",
    "GameSettings",
    "GameSnapshot",
    "Phase",
    "build_engine",
    "generate_deck",
]
