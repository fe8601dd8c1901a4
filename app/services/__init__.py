"""Service layer for the theme manager.

├── themes/      - Theme catalog, host adapter and switching service

Each service module contains:
- interface.py: Abstract base class defining the contract
- implementation.py: Concrete implementation
"""

from .themes import CallbackThemeHost, ThemeCatalog, ThemeHost, ThemeService

__all__ = [
    "CallbackThemeHost",
    "ThemeCatalog",
    "ThemeHost",
    "ThemeService",
]
