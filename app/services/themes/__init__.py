"""Theme service module - Applying themes and tracking their history.

This module provides the host adapter interface, the theme catalog
and the service that keeps persisted state in step with the editor.
"""

from .catalog import ThemeCatalog
from .implementation import ThemeService
from .interface import ApplyCallback, CallbackThemeHost, ThemeHost

__all__ = ["ApplyCallback", "CallbackThemeHost", "ThemeCatalog", "ThemeHost", "ThemeService"]
