from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from threading import RLock
from typing import Optional

from platformdirs import PlatformDirs

logger = logging.getLogger(__name__)

APP_NAME = "memory-match"
BEST_TIME_FILENAME = "best_time.json"


def default_best_time_path(app_name: str = APP_NAME) -> Path:
    """Platform-appropriate location of the best-time file (user data dir)."""
    dirs = PlatformDirs(appname=app_name, appauthor=False)
    return Path(dirs.user_data_dir) / BEST_TIME_FILENAME


class BestTimeStore(ABC):
    """Keeps the single best-time value across game sessions."""

    @abstractmethod
    def load(self) -> Optional[int]:
        ...

    @abstractmethod
    def save(self, value: Optional[int]) -> None:
        ...


class MemoryBestTimeStore(BestTimeStore):
    def __init__(self, value: Optional[int] = None) -> None:
        self._value = value

    def load(self) -> Optional[int]:
        return self._value

    def save(self, value: Optional[int]) -> None:
        self._value = value


class JsonBestTimeStore(BestTimeStore):
    """Thread-safe JSON file holding the best time (``best_time.json``).

    A missing file means no best time yet. A file that cannot be read or does
    not hold a non-negative integer is treated the same way and logged.
    """

    CURRENT_VERSION = 1

    def __init__(self, path: Optional[str | Path] = None) -> None:
        self.path = Path(path) if path is not None else default_best_time_path()
        self._lock = RLock()

    def load(self) -> Optional[int]:
        with self._lock:
            try:
                data = json.loads(self.path.read_text(encoding="utf-8"))
            except FileNotFoundError:
                logger.debug("No best-time file at %s", self.path)
                return None
            except (OSError, ValueError) as exc:
                logger.warning("Could not read best-time file %s: %s", self.path, exc)
                return None
            value = data.get("best_time") if isinstance(data, dict) else None
            if value is None:
                return None
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                logger.warning("Ignoring invalid best time %r in %s", value, self.path)
                return None
            logger.debug("Loaded best time %ss from %s", value, self.path)
            return value

    def save(self, value: Optional[int]) -> None:
        """Write the best time; a failed write is logged and the file left as it was."""
        with self._lock:
            payload = {"version": self.CURRENT_VERSION, "best_time": value}
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                self.path.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")
            except OSError as exc:
                logger.warning("Could not write best-time file %s: %s", self.path, exc)
                return
            logger.debug("Saved best time %r to %s", value, self.path)
