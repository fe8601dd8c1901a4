"""ThemeHost interface for the editor side of theme switching.

Responsibility: Know which themes are installed and switch the editor to
one of them. The manager never draws anything itself.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable, Iterable


# Type aliases for callbacks
ApplyCallback = Callable[[str], None]
"""Callback that switches the editor to a theme.

Args:
    theme: Theme name to apply

Raises:
    Any exception to signal that the theme could not be applied
"""


class ThemeHost(ABC):
    """Abstract interface for the host editor."""

    @abstractmethod
    def list_themes(self) -> Iterable[str]:
        """Return the names of all installed themes."""

    @abstractmethod
    def apply_theme(self, theme: str) -> None:
        """Switch the editor to ``theme``.

        Raises:
            ThemeApplyError: If the host could not apply the theme
        """


class CallbackThemeHost(ThemeHost):
    """ThemeHost built from a theme list and an apply callback."""

    def __init__(self, themes: Iterable[str], apply_fn: ApplyCallback):
        self._themes = list(themes)
        self._apply_fn = apply_fn

    def list_themes(self) -> Iterable[str]:
        return list(self._themes)

    def set_themes(self, themes: Iterable[str]) -> None:
        self._themes = list(themes)

    def apply_theme(self, theme: str) -> None:
        self._apply_fn(theme)
