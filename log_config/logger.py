"""Centralized logging configuration using loguru."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional, Union

from loguru import logger

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} - {message}"

# Remove default handler
logger.remove()

# Add console handler with INFO level
_console_handler_id = logger.add(
    sys.stderr,
    level="INFO",
    format=CONSOLE_FORMAT,
    colorize=True,
)

_file_handler_ids: dict = {}


def configure_console_logging(level: str = "INFO") -> None:
    """Replace the console handler with one at a different level.

    Args:
        level: Minimum level for stderr output (e.g. "DEBUG", "WARNING")
    """
    global _console_handler_id
    logger.remove(_console_handler_id)
    _console_handler_id = logger.add(
        sys.stderr,
        level=level,
        format=CONSOLE_FORMAT,
        colorize=True,
    )


def configure_file_logging(logs_dir: Union[str, Path], level: str = "DEBUG") -> Path:
    """Add a rotating log file handler.

    File logging is opt-in so that importing the library never creates
    directories on disk.

    Args:
        logs_dir: Directory for log files (created if missing)
        level: Minimum level written to the file

    Returns:
        Resolved log directory
    """
    logs_dir = Path(logs_dir).expanduser()
    if logs_dir in _file_handler_ids:
        return logs_dir

    logs_dir.mkdir(parents=True, exist_ok=True)
    _file_handler_ids[logs_dir] = logger.add(
        logs_dir / "themekeeper_{time}.log",
        rotation="10 MB",
        retention="10 days",
        level=level,
        format=FILE_FORMAT,
        enqueue=True,  # Safe from the background state writer thread
    )
    return logs_dir


def get_logger(name: Optional[str] = None):
    """Get a logger instance with the given name.

    Args:
        name: Module name for the logger (usually __name__)

    Returns:
        Configured logger instance
    """
    if name:
        return logger.bind(name=name)
    return logger


# Export configured logger
__all__ = ["logger", "get_logger", "configure_console_logging", "configure_file_logging"]
