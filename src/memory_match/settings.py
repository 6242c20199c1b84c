from __future__ import annotations

import logging
import os
from importlib import resources
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .deck import MAX_GRID_SIZE, MIN_GRID_SIZE
from .exceptions import SettingsError

logger = logging.getLogger(__name__)

ENV_SETTINGS_FILE = "MM_SETTINGS_FILE"


def _as_bool(value: Any) -> bool:
    """Interpret common truthy/falsey strings ("1", "yes", "off", ...) as a bool."""
    if isinstance(value, bool):
        return value
    v = str(value).strip().lower()
    if v in {"1", "true", "yes", "y", "on"}:
        return True
    if v in {"0", "false", "no", "n", "off"}:
        return False
    raise ValueError(f"not a boolean: {value!r}")


def _optional_int(value: str) -> Optional[int]:
    return None if value.strip().lower() in {"", "none", "null"} else int(value)


_ENV_MAPPING: Dict[str, Tuple[str, Callable[[str], Any]]] = {
    "MM_GRID_SIZE": ("grid_size", int),
    "MM_MISMATCH_DELAY": ("mismatch_delay", float),
    "MM_TICK_INTERVAL": ("tick_interval", float),
    "MM_SEED": ("seed", _optional_int),
    "MM_PERSIST_BEST_TIME": ("persist_best_time", _as_bool),
    "MM_BEST_TIME_FILE": ("best_time_file", str),
}


class GameSettings(BaseModel):
    """Tunable parameters of the game engine.

    Loaded from packaged YAML defaults, then an optional user YAML file, then
    ``MM_*`` environment variables (highest precedence).
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    grid_size: int = Field(4, ge=MIN_GRID_SIZE, le=MAX_GRID_SIZE, description="Initial board edge length")
    mismatch_delay: float = Field(1.0, gt=0, description="Seconds a mismatched pair stays face-up")
    tick_interval: float = Field(1.0, gt=0, description="Real seconds per elapsed-time increment")
    seed: Optional[int] = Field(None, description="Deck shuffle seed; None for nondeterministic decks")
    persist_best_time: bool = Field(False, description="Keep the best time in a JSON file between runs")
    best_time_file: Optional[Path] = Field(None, description="Override for the best-time file location")

    @field_validator("best_time_file", mode="before")
    @classmethod
    def _expand_path(cls, v: Any) -> Any:
        if v is None or v == "":
            return None
        return Path(v).expanduser()

    # ------------------------ Loading ------------------------
    @staticmethod
    def _load_yaml(path: Path) -> Dict[str, Any]:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise SettingsError(f"Settings file {path} must contain a mapping, got {type(data).__name__}")
        return data

    @staticmethod
    def _load_defaults() -> Dict[str, Any]:
        try:
            text = resources.files("memory_match.config").joinpath("default_settings.yaml").read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.warning("Default settings not found; falling back to model defaults.")
            return {}
        return yaml.safe_load(text) or {}

    @staticmethod
    def from_env(env: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
        env = os.environ if env is None else env
        out: Dict[str, Any] = {}
        for env_key, (field_name, caster) in _ENV_MAPPING.items():
            raw = env.get(env_key)
            if raw is None or raw == "":
                continue
            try:
                out[field_name] = caster(raw)
            except ValueError as exc:
                logger.warning("Ignoring invalid %s=%r: %s", env_key, raw, exc)
        return out

    @classmethod
    def load(
        cls,
        user_path: Optional[Path] = None,
        env: Optional[Mapping[str, str]] = None,
    ) -> "GameSettings":
        """Merge defaults, user file and environment into validated settings.

        ``user_path`` falls back to ``MM_SETTINGS_FILE`` when not given. A
        missing user file is logged and skipped.

        Raises:
            SettingsError: If the merged values fail validation.
        """
        env = os.environ if env is None else env
        data = cls._load_defaults()

        if user_path is None and env.get(ENV_SETTINGS_FILE):
            user_path = Path(env[ENV_SETTINGS_FILE]).expanduser()
        if user_path is not None:
            user_path = Path(user_path)
            if user_path.exists():
                data.update(cls._load_yaml(user_path))
                logger.info("Loaded user settings from %s", user_path)
            else:
                logger.warning("User settings file not found: %s", user_path)

        data.update(cls.from_env(env))
        try:
            settings = cls(**data)
        except ValidationError as exc:
            raise SettingsError(f"Invalid settings: {exc}") from exc
        logger.debug("Settings merged: %s", settings)
        return settings

    def save(self, path: Path) -> None:
        data = self.model_dump(mode="json")
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as f:
            yaml.safe_dump(data, f, sort_keys=False)
        logger.info("Saved settings to %s", path)
