"""ThemeService: applies themes and keeps the persisted state in step.

Coordinates:
- ThemeHost (installed themes, the actual editor switch)
- ThemeCatalog (availability and aliases)
- StateStore (current/saved/previous, usage, recent list, bookmarks)
- HistoryEngine (undo/redo stack)
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Optional

from app.events.notifications import NotificationCategory, NotificationLevel
from app.services.themes.catalog import ThemeCatalog
from app.services.themes.interface import ThemeHost
from app.state.history import HistoryEngine
from app.state.store import StateStore
from configs.settings import AppConfig
from exceptions import ThemeApplyError, ThemeNotAvailableError
from log_config.logger import get_logger

logger = get_logger(__name__)


class ThemeService:
    """Theme switching on top of the state store and history engine.

    Manual applies (picker, commands, keymaps) are recorded in usage, the
    recent list and the undo history and become the saved theme. Automatic
    applies (previews, filetype rules, undo/redo itself) only update the
    current theme and usage.
    """

    def __init__(
        self,
        store: StateStore,
        host: ThemeHost,
        history: Optional[HistoryEngine] = None,
        config: Optional[AppConfig] = None,
        catalog: Optional[ThemeCatalog] = None,
        on_apply: Optional[Callable[[str], Any]] = None,
    ):
        """Initialize theme service.

        Args:
            store: Persistent state store
            host: Editor adapter used to list and apply themes
            history: Undo/redo engine (built on ``store`` if None)
            config: Application configuration (default theme, aliases)
            catalog: Theme catalog (built from the host if None)
            on_apply: Hook called after every successful apply
        """
        self._store = store
        self._host = host
        self._history = history or HistoryEngine(store)
        self._config = config
        aliases = config.themes.aliases if config is not None else {}
        self._catalog = catalog or ThemeCatalog(host.list_themes(), aliases=aliases)
        self._on_apply = on_apply
        self._notifier = store.notifier

    @property
    def history(self) -> HistoryEngine:
        return self._history

    @property
    def catalog(self) -> ThemeCatalog:
        return self._catalog

    def _notify(
        self,
        level: NotificationLevel,
        message: str,
        category: NotificationCategory = NotificationCategory.THEME,
        exception: Optional[Exception] = None,
        **metadata: Any,
    ) -> None:
        self._notifier.notify(category, level, message, source="ThemeService", exception=exception, **metadata)

    def _switch(self, theme: str) -> bool:
        try:
            self._host.apply_theme(theme)
        except Exception as e:
            error = e if isinstance(e, ThemeApplyError) else ThemeApplyError(str(e), theme=theme)
            self._notify(
                NotificationLevel.ERROR,
                f"Failed to apply theme '{theme}': {e}",
                exception=error,
                theme=theme,
            )
            return False
        return True

    # ------------------------------------------------------------------
    # Applying themes
    # ------------------------------------------------------------------

    def apply(self, theme: Optional[str], manual: bool = False) -> bool:
        """Apply a theme by name or alias.

        Args:
            theme: Theme name or alias
            manual: Record the change in saved/recent/undo history

        Returns:
            True if the theme was applied
        """
        if not theme:
            self._notify(NotificationLevel.WARNING, "No theme specified")
            return False

        name = self._catalog.resolve(theme)
        if not self._catalog.is_available(name):
            error = ThemeNotAvailableError(f"Theme not available: {theme}", theme=theme)
            self._notify(NotificationLevel.WARNING, str(error), exception=error, theme=theme)
            return False

        if not self._switch(name):
            return False

        state = self._store.read()
        state["previous"] = state["current"]
        state["current"] = name
        state["usage"][name] = state["usage"].get(name, 0) + 1
        if manual:
            state["saved"] = name
            recent = [entry for entry in state["history"] if entry != name]
            state["history"] = [name] + recent
        self._store.write(state)

        if manual:
            self._history.add(name)

        logger.info(f"Applied theme {name}{' (manual)' if manual else ''}")

        if self._on_apply is not None:
            try:
                self._on_apply(name)
            except Exception as e:
                self._notify(NotificationLevel.ERROR, f"on_apply hook failed for '{name}': {e}", exception=e)
        return True

    def _apply_from_history(self, theme: str) -> None:
        if not self.apply(theme, manual=False):
            raise ThemeApplyError(f"Could not restore theme '{theme}' from history", theme=theme)

    def startup(self) -> Optional[str]:
        """Apply the saved, current or configured default theme.

        Returns:
            The theme applied, or None
        """
        state = self._store.read()
        default_theme = self._config.themes.default_theme if self._config is not None else None
        theme = state["saved"] or state["current"] or default_theme

        if not theme or not self._catalog.is_available(theme):
            self._notify(NotificationLevel.WARNING, f"Startup theme '{theme}' not available", theme=theme)
            return None

        name = self._catalog.resolve(theme)
        if not self._switch(name):
            return None

        state["current"] = name
        state["saved"] = name
        self._store.write(state)
        logger.info(f"Startup theme: {name}")
        return name

    def refresh(self) -> bool:
        """Reload installed themes from the host and re-apply the current one."""
        self._catalog.refresh(self._host.list_themes())
        current = self._store.get_current()
        if current and self._catalog.is_available(current):
            return self.apply(current, manual=False)
        self._notify(NotificationLevel.WARNING, "Current theme not available after refresh", theme=current)
        return False

    def apply_for_filetype(self, filetype: str) -> Optional[str]:
        """Apply the theme configured for ``filetype`` when auto-apply is on.

        Filetypes without a mapping, or whose mapped theme is not
        installed, fall back to the configured default theme. These are
        automatic applies and never touch the undo history.

        Returns:
            The theme applied, or None
        """
        if not self._store.get_auto_apply():
            return None

        themes_config = self._config.themes if self._config is not None else None
        mapping = themes_config.filetype_themes if themes_config is not None else {}
        default_theme = themes_config.default_theme if themes_config is not None else None

        theme = mapping.get(filetype)
        if theme and self._catalog.is_available(theme):
            return self._catalog.resolve(theme) if self.apply(theme) else None

        if theme:
            self._notify(
                NotificationLevel.WARNING,
                f"Filetype theme '{theme}' for {filetype} not available, using default",
                theme=theme,
                filetype=filetype,
            )

        if default_theme and self._catalog.is_available(default_theme):
            return self._catalog.resolve(default_theme) if self.apply(default_theme) else None
        return None

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def undo(self) -> Optional[str]:
        return self._history.undo(self._apply_from_history)

    def redo(self) -> Optional[str]:
        return self._history.redo(self._apply_from_history)

    def jump(self, position: int) -> Optional[str]:
        return self._history.jump(position, self._apply_from_history)

    # ------------------------------------------------------------------
    # Preferences
    # ------------------------------------------------------------------

    def toggle_auto(self) -> bool:
        """Flip auto-apply and return the new value."""
        enabled = not self._store.get_auto_apply()
        self._store.set_auto_apply(enabled)
        self._notify(NotificationLevel.INFO, f"Auto-theme: {'ON' if enabled else 'OFF'}", NotificationCategory.STATE)
        return enabled

    def toggle_bookmark(self, theme: Optional[str]) -> bool:
        if not theme:
            return False
        was_bookmarked = self._store.is_bookmarked(theme)
        bookmarked = self._store.toggle_bookmark(theme)
        if bookmarked:
            self._notify(NotificationLevel.INFO, f"Bookmarked {theme}", NotificationCategory.BOOKMARK)
        elif was_bookmarked:
            self._notify(NotificationLevel.INFO, f"Removed bookmark {theme}", NotificationCategory.BOOKMARK)
        return bookmarked

    def set_quick_slot(self, slot, theme: Optional[str]) -> Optional[str]:
        assigned = self._store.set_quick_slot(slot, theme)
        if assigned:
            self._notify(NotificationLevel.INFO, f"Quick slot {slot} -> {assigned}", NotificationCategory.STATE)
        return assigned

    def apply_quick_slot(self, slot) -> bool:
        theme = self._store.get_quick_slot(slot)
        if theme is None:
            self._notify(NotificationLevel.WARNING, f"Quick slot {slot} is empty", NotificationCategory.STATE)
            return False
        return self.apply(theme, manual=True)

    def status(self) -> str:
        """One-line summary of current theme and auto-apply."""
        state = self._store.read()
        saved_info = ""
        if state["saved"] and state["saved"] != state["current"]:
            saved_info = f" | saved: {state['saved']}"
        auto = "ON" if state["auto_apply"] else "OFF"
        return f"current - {state['current'] or 'none'}{saved_info} | auto-apply: {auto}"

    # ------------------------------------------------------------------
    # Session hand-off
    # ------------------------------------------------------------------

    def export_session(self) -> Dict[str, Any]:
        """Theme state to embed in an editor session."""
        state = self._store.read()
        default_theme = self._config.themes.default_theme if self._config is not None else None
        current = state["current"] or default_theme
        return {
            "theme": current,
            "saved": state["saved"] or current,
            "auto_apply": state["auto_apply"],
            "history": self._history.serialize(),
        }

    def restore_session(self, data: Any) -> bool:
        """Restore theme state exported by `export_session`.

        Returns:
            False if ``data`` carries no theme
        """
        if not isinstance(data, dict) or not data.get("theme"):
            return False

        theme = data["theme"]
        state = self._store.read()
        state["current"] = theme
        state["saved"] = data.get("saved") or theme
        state["auto_apply"] = data.get("auto_apply") is True
        self._store.write(state)

        if "history" in data:
            self._history.deserialize(data["history"])

        if self._catalog.is_available(theme):
            self._switch(self._catalog.resolve(theme))
        return True
