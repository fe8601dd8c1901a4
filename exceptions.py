"""Custom exception classes for ThemeKeeper."""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union


class ThemeKeeperError(Exception):
    """Base exception for all ThemeKeeper errors."""

    pass


class ConfigError(ThemeKeeperError):
    """Base exception for configuration errors."""

    pass


class InvalidConfigError(ConfigError):
    """Raised when configuration file is invalid or corrupted."""

    pass


class ConfigValidationError(ConfigError):
    """Raised when configuration fails schema validation."""

    def __init__(self, message: str, validation_errors: Optional[list] = None):
        self.validation_errors = validation_errors or []
        super().__init__(message)


class StateError(ThemeKeeperError):
    """Base exception for persisted state errors."""

    pass


class StateDecodeError(StateError):
    """Raised when the state document cannot be parsed."""

    pass


class StateEncodeError(StateError):
    """Raised when the state document cannot be serialized."""

    pass


class StateWriteError(StateError):
    """Raised when the state document cannot be written to disk."""

    def __init__(self, message: str, path: Optional[Union[str, Path]] = None):
        self.path = path
        super().__init__(message)


class HistoryError(ThemeKeeperError):
    """Base exception for undo/redo history errors."""

    pass


class InvalidHistoryPositionError(HistoryError):
    """Raised when a jump targets a position outside the history stack."""

    def __init__(self, position: int, size: int):
        self.position = position
        self.size = size
        if size:
            message = f"Invalid position: {position} (valid: 1-{size})"
        else:
            message = f"Invalid position: {position} (history is empty)"
        super().__init__(message)


class ThemeError(ThemeKeeperError):
    """Base exception for theme errors."""

    def __init__(self, message: str, theme: Optional[str] = None):
        self.theme = theme
        super().__init__(message)


class ThemeNotAvailableError(ThemeError):
    """Raised when a theme is not installed or not known to the catalog."""

    pass


class ThemeApplyError(ThemeError):
    """Raised when the host fails to apply a theme."""

    pass
