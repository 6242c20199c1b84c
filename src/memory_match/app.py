from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from .engine import GameEngine
from .highscore import BestTimeStore, JsonBestTimeStore, MemoryBestTimeStore
from .rng import RNG
from .scheduler import Scheduler
from .settings import GameSettings

logger = logging.getLogger(__name__)


def build_best_time_store(settings: GameSettings) -> BestTimeStore:
    """In-memory store unless the settings ask for the best time to persist."""
    if not settings.persist_best_time:
        return MemoryBestTimeStore()
    store = JsonBestTimeStore(settings.best_time_file)
    logger.info("Persisting best time to %s", store.path)
    return store


def build_engine(
    settings: Optional[GameSettings] = None,
    *,
    scheduler: Optional[Scheduler] = None,
    settings_path: Optional[Path] = None,
    start: bool = True,
) -> GameEngine:
    """Wire settings, RNG, scheduler and best-time store into a ready engine.

    Args:
        settings: Explicit settings; loaded via :meth:`GameSettings.load` when omitted.
        scheduler: Deferred-work source; a real-time threading scheduler when omitted.
        settings_path: User YAML file passed to :meth:`GameSettings.load`.
        start: Start the engine before returning it.

    Logging is left to the caller: a presentation layer should call
    :func:`memory_match.logging_config.configure_logging` once at startup.
    """
    if settings is None:
        settings = GameSettings.load(user_path=settings_path)
    engine = GameEngine(
        settings,
        scheduler=scheduler,
        rng=RNG(settings.seed),
        best_time_store=build_best_time_store(settings),
    )
    if start:
        engine.start()
    return engine
