from enum import Enum, auto


class GameEvent(Enum):
    """Events emitted by GameEngine to notify the presentation layer."""

    SESSION_STARTED = auto()
    CARD_REVEALED = auto()
    SELECTION_CLEARED = auto()
    PAIR_MATCHED = auto()
    PAIR_MISMATCHED = auto()
    MISMATCH_RESOLVED = auto()
    TICK = auto()
    PAUSED = auto()
    RESUMED = auto()
    WON = auto()
    BEST_TIME_CHANGED = auto()
