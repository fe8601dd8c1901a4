"""Catalog of installed themes and their aliases."""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from log_config.logger import get_logger

logger = get_logger(__name__)


class ThemeCatalog:
    """Installed theme names plus user-defined aliases.

    Aliases map a short name to an installed theme (``{"dark": "tokyonight"}``).
    """

    def __init__(self, themes: Iterable[str] = (), aliases: Optional[Dict[str, str]] = None):
        self._themes: List[str] = []
        self._aliases: Dict[str, str] = dict(aliases or {})
        self.refresh(themes)

    def refresh(self, themes: Iterable[str]) -> None:
        """Replace the installed theme list."""
        self._themes = sorted({name for name in themes if name})
        logger.debug(f"Theme catalog refreshed: {len(self._themes)} themes")

    def names(self) -> List[str]:
        return list(self._themes)

    def aliases(self) -> Dict[str, str]:
        return dict(self._aliases)

    def resolve(self, name: Optional[str]) -> Optional[str]:
        """Map an alias to its theme; other names pass through."""
        if not name:
            return None
        return self._aliases.get(name, name)

    def is_available(self, name: Optional[str]) -> bool:
        resolved = self.resolve(name)
        return resolved is not None and resolved in self._themes

    def __len__(self) -> int:
        return len(self._themes)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.is_available(name)
