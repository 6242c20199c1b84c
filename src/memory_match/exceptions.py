class MemoryMatchError(Exception):
    """Base exception for the memory-match engine."""


class InvalidGridSizeError(MemoryMatchError, ValueError):
    """Raised when a deck is requested for a grid size outside the supported range."""


class SettingsError(MemoryMatchError):
    """Raised when configuration sources produce invalid settings."""


class EngineClosedError(MemoryMatchError):
    """Raised when attempting to restart an engine that has been closed."""
