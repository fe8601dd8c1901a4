"""Configuration loading for the theme manager."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from configs.validator import validate_config
from exceptions import InvalidConfigError
from log_config.logger import get_logger

logger = get_logger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).with_name("default.yaml")


@dataclass(frozen=True)
class StateConfig:
    state_file: Path
    async_writes: bool = True


@dataclass(frozen=True)
class HistoryConfig:
    max_size: int = 100
    max_size_policy: str = "preserve"  # "preserve" keeps an embedded max_size, "reconcile" rewrites it


@dataclass(frozen=True)
class BookmarkConfig:
    max_bookmarks: int = 50


@dataclass(frozen=True)
class RecentConfig:
    max_recent: int = 12


@dataclass(frozen=True)
class ThemesConfig:
    default_theme: Optional[str] = None
    sort_mode: str = "alpha"
    aliases: Dict[str, str] = field(default_factory=dict)
    filetype_themes: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class AppConfig:
    state: StateConfig
    history: HistoryConfig
    bookmarks: BookmarkConfig
    recent: RecentConfig
    themes: ThemesConfig


def _build_config(data: Dict[str, Any]) -> AppConfig:
    state_data = data["state"]
    state = StateConfig(
        state_file=Path(state_data["state_file"]).expanduser(),
        async_writes=bool(state_data["async_writes"]),
    )
    history = HistoryConfig(**data["history"])
    bookmarks = BookmarkConfig(**data["bookmarks"])
    recent = RecentConfig(**data["recent"])
    themes_data = data["themes"]
    themes = ThemesConfig(
        default_theme=themes_data.get("default_theme"),
        sort_mode=themes_data.get("sort_mode", "alpha"),
        aliases=dict(themes_data.get("aliases") or {}),
        filetype_themes=dict(themes_data.get("filetype_themes") or {}),
    )
    return AppConfig(
        state=state,
        history=history,
        bookmarks=bookmarks,
        recent=recent,
        themes=themes,
    )


def config_from_dict(data: Optional[Dict[str, Any]]) -> AppConfig:
    """Validate a configuration mapping and build an AppConfig.

    Args:
        data: Raw configuration mapping (None means all defaults)

    Returns:
        Validated AppConfig instance

    Raises:
        ConfigError: If configuration is invalid
    """
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise InvalidConfigError(f"Configuration must be a mapping, got {type(data).__name__}")

    validate_config(data)

    try:
        return _build_config(data)
    except (KeyError, TypeError, ValueError) as e:
        logger.error(f"Failed to construct configuration objects: {e}")
        raise InvalidConfigError(f"Failed to construct configuration: {e}")


def default_config() -> AppConfig:
    """Build a configuration from schema defaults without touching disk."""
    return config_from_dict({})


def load_config(path: Path = DEFAULT_CONFIG_PATH) -> AppConfig:
    """Load and validate configuration from YAML file.

    Args:
        path: Path to configuration file

    Returns:
        Validated AppConfig instance

    Raises:
        ConfigError: If configuration is invalid or cannot be loaded
    """
    path = Path(path)
    logger.info(f"Loading configuration from {path}")
    if not path.exists():
        raise InvalidConfigError(f"Configuration file not found: {path}")

    try:
        data = yaml.safe_load(path.read_text())
    except yaml.YAMLError as e:
        logger.error(f"Failed to parse YAML configuration: {e}")
        raise InvalidConfigError(f"Failed to parse configuration file: {e}")

    config = config_from_dict(data)

    logger.info(
        f"Configuration loaded successfully: history max_size={config.history.max_size} "
        f"({config.history.max_size_policy}), state file {config.state.state_file}"
    )
    return config
