"""Persistent state store backed by a single JSON document.

Every accessor is a read-modify-write over the whole document: it calls
`read()`, changes one field and hands the result to `write()`. Nothing
is cached between calls except the newest document that is still
waiting for the background writer, which `read()` returns in place of
the file so that consecutive updates from this process never lose each
other.
"""

from __future__ import annotations

import copy
import json
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from app.events.notifications import (
    NotificationBus,
    NotificationCategory,
    NotificationLevel,
    get_notification_bus,
)
from app.state.schema import (
    QUICK_SLOTS,
    StateLimits,
    default_state,
    normalize_sort_mode,
    normalize_state,
)
from app.state.writer import StateWriter
from exceptions import StateDecodeError, StateEncodeError
from log_config.logger import get_logger

logger = get_logger(__name__)


def _normalize_slot(slot: Union[int, str, None]) -> Optional[str]:
    if isinstance(slot, bool):
        return None
    if isinstance(slot, int):
        slot = str(slot)
    if isinstance(slot, str) and slot in QUICK_SLOTS:
        return slot
    return None


class StateStore:
    """Durable single-document store for theme manager state."""

    def __init__(
        self,
        path: Union[str, Path],
        limits: Optional[StateLimits] = None,
        notifier: Optional[NotificationBus] = None,
        async_writes: bool = True,
    ):
        """Initialize the store.

        Args:
            path: Location of the JSON state file (parent created on write)
            limits: Caps applied during normalization
            notifier: Sink for user-visible messages (process-wide bus if None)
            async_writes: Write on a background thread instead of inline
        """
        self._path = Path(path).expanduser()
        self._limits = limits or StateLimits()
        self._notifier = notifier or get_notification_bus()
        self._writer = StateWriter(self._path, self._notifier, async_writes=async_writes)

        self._lock = threading.Lock()
        self._seq = 0
        self._pending: Optional[Tuple[int, Dict[str, Any]]] = None
        self._decode_warned = False

    @classmethod
    def from_config(cls, config, notifier: Optional[NotificationBus] = None) -> "StateStore":
        """Build a store from an AppConfig."""
        return cls(
            config.state.state_file,
            limits=StateLimits.from_config(config),
            notifier=notifier,
            async_writes=config.state.async_writes,
        )

    @property
    def path(self) -> Path:
        return self._path

    @property
    def limits(self) -> StateLimits:
        return self._limits

    @property
    def notifier(self) -> NotificationBus:
        return self._notifier

    # ------------------------------------------------------------------
    # Document I/O
    # ------------------------------------------------------------------

    def default(self) -> Dict[str, Any]:
        """Return a fresh default document for this store's limits."""
        return default_state(self._limits)

    def normalize(self, state: Any) -> Dict[str, Any]:
        return normalize_state(state, self._limits)

    def read(self) -> Dict[str, Any]:
        """Load and normalize the document.

        Missing, empty or undecodable files yield the default document.
        Never raises.
        """
        with self._lock:
            if self._pending is not None:
                return copy.deepcopy(self._pending[1])

        try:
            decoded = self._load()
        except StateDecodeError as e:
            self._warn_decode(e)
            return self.default()
        if decoded is None:
            return self.default()
        return self.normalize(decoded)

    def _load(self) -> Any:
        try:
            content = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            raise StateDecodeError(f"Cannot read state file {self._path}: {e}") from e

        if not content.strip():
            return None

        try:
            return json.loads(content)
        except ValueError as e:
            raise StateDecodeError(f"Failed to decode state file {self._path}: {e}") from e

    def _warn_decode(self, error: StateDecodeError) -> None:
        # Warn once per store; a corrupt file would otherwise warn on every read
        if self._decode_warned:
            logger.debug(str(error))
            return
        self._decode_warned = True
        self._notifier.notify(
            NotificationCategory.STATE,
            NotificationLevel.WARNING,
            "Failed to decode state file, using defaults",
            source="StateStore",
            exception=error,
            path=str(self._path),
        )

    def write(self, state: Dict[str, Any]) -> bool:
        """Normalize, serialize and persist ``state``.

        Serialization happens immediately; the disk write is handed to the
        background writer. Writes land in call order.

        Returns:
            False if the document could not be serialized (file untouched)
        """
        normalized = self.normalize(state)
        try:
            encoded = self._encode(normalized)
        except StateEncodeError as e:
            self._notifier.notify(
                NotificationCategory.STATE,
                NotificationLevel.ERROR,
                "Failed to encode state",
                source="StateStore",
                exception=e,
            )
            return False

        with self._lock:
            self._seq += 1
            seq = self._seq
            self._pending = (seq, normalized)

        self._writer.submit(seq, encoded, self._on_write_done)
        return True

    @staticmethod
    def _encode(state: Dict[str, Any]) -> str:
        try:
            encoded = json.dumps(state, indent=2, ensure_ascii=False, allow_nan=False)
            # Lone surrogates survive json.loads but cannot be written as UTF-8
            encoded.encode("utf-8")
        except (TypeError, ValueError) as e:
            raise StateEncodeError(f"State is not JSON serializable: {e}") from e
        return encoded

    def _on_write_done(self, seq: int, ok: bool) -> None:
        # A failed write keeps the pending copy so this process still sees it
        if not ok:
            return
        with self._lock:
            if self._pending is not None and self._pending[0] == seq:
                self._pending = None

    def flush(self, timeout: Optional[float] = None) -> bool:
        """Wait for queued writes to land on disk."""
        return self._writer.flush(timeout)

    def close(self) -> None:
        """Drain queued writes and stop the writer thread."""
        self._writer.close()

    def clear(self) -> bool:
        """Overwrite the document with defaults."""
        logger.info("Clearing theme manager state")
        return self.write(self.default())

    # ------------------------------------------------------------------
    # Current / saved / previous theme
    # ------------------------------------------------------------------

    def get_current(self) -> Optional[str]:
        return self.read()["current"]

    def get_saved(self) -> Optional[str]:
        return self.read()["saved"]

    def get_previous(self) -> Optional[str]:
        return self.read()["previous"]

    def set_current(self, theme: str, save: bool = False) -> None:
        """Record ``theme`` as current, remembering the old one as previous.

        Args:
            theme: Theme that was just applied
            save: Also mark it as the persistently saved theme
        """
        state = self.read()
        state["previous"] = state["current"]
        state["current"] = theme
        if save:
            state["saved"] = theme
        self.write(state)

    # ------------------------------------------------------------------
    # Bookmarks
    # ------------------------------------------------------------------

    def get_bookmarks(self) -> List[str]:
        return self.read()["bookmarks"]

    def is_bookmarked(self, theme: str) -> bool:
        return theme in self.get_bookmarks()

    def toggle_bookmark(self, theme: str) -> bool:
        """Add or remove a bookmark.

        Returns:
            True if the theme is bookmarked afterwards
        """
        state = self.read()
        bookmarks = state["bookmarks"]

        if theme in bookmarks:
            bookmarks.remove(theme)
            self.write(state)
            return False

        max_bookmarks = self._limits.max_bookmarks
        if len(bookmarks) >= max_bookmarks:
            self._notifier.notify(
                NotificationCategory.BOOKMARK,
                NotificationLevel.WARNING,
                f"Max bookmarks ({max_bookmarks}) reached!",
                source="StateStore",
                theme=theme,
            )
            return False

        bookmarks.append(theme)
        self.write(state)
        return True

    # ------------------------------------------------------------------
    # Recent themes and usage
    # ------------------------------------------------------------------

    def add_to_history(self, theme: str) -> None:
        """Move ``theme`` to the front of the recent list."""
        state = self.read()
        recent = [name for name in state["history"] if name != theme]
        recent.insert(0, theme)
        state["history"] = recent[: self._limits.max_recent]
        self.write(state)

    def get_history(self) -> List[str]:
        """Recent themes, newest first."""
        return self.read()["history"]

    def increment_usage(self, theme: str) -> int:
        state = self.read()
        count = state["usage"].get(theme, 0) + 1
        state["usage"][theme] = count
        self.write(state)
        return count

    def get_usage(self, theme: str) -> int:
        return self.read()["usage"].get(theme, 0)

    def get_all_usage(self) -> Dict[str, int]:
        return self.read()["usage"]

    # ------------------------------------------------------------------
    # Picker preferences
    # ------------------------------------------------------------------

    def collapsed(self, group_key: str, collapsed: Optional[bool] = None) -> bool:
        """Get, or set and return, the collapsed flag of a picker group."""
        state = self.read()
        if collapsed is not None:
            state["collapsed"][group_key] = bool(collapsed)
            self.write(state)
        return state["collapsed"].get(group_key, False)

    def get_sort_mode(self) -> str:
        return self.read()["sort_mode"]

    def set_sort_mode(self, mode: str) -> str:
        """Store a sort mode; unknown modes fall back to "alpha".

        Returns:
            The mode actually stored
        """
        state = self.read()
        state["sort_mode"] = normalize_sort_mode(mode)
        self.write(state)
        return state["sort_mode"]

    def get_auto_apply(self) -> bool:
        return self.read()["auto_apply"]

    def set_auto_apply(self, enabled: bool) -> None:
        state = self.read()
        state["auto_apply"] = bool(enabled)
        self.write(state)

    # ------------------------------------------------------------------
    # Quick slots
    # ------------------------------------------------------------------

    def get_quick_slots(self) -> Dict[str, str]:
        return self.read()["quick_slots"]

    def get_quick_slot(self, slot: Union[int, str]) -> Optional[str]:
        key = _normalize_slot(slot)
        if key is None:
            return None
        return self.get_quick_slots().get(key)

    def set_quick_slot(self, slot: Union[int, str], theme: str) -> Optional[str]:
        """Assign a theme to a quick slot 0-9.

        Returns:
            The assigned theme, or None if slot or theme was invalid
        """
        key = _normalize_slot(slot)
        if key is None:
            self._notifier.notify(
                NotificationCategory.STATE,
                NotificationLevel.WARNING,
                "Quick slot must be 0-9",
                source="StateStore",
                slot=slot,
            )
            return None
        if not theme:
            self._notifier.notify(
                NotificationCategory.STATE,
                NotificationLevel.WARNING,
                "Quick slot theme must be non-empty",
                source="StateStore",
                slot=key,
            )
            return None

        state = self.read()
        state["quick_slots"][key] = theme
        self.write(state)
        return theme

    def clear_quick_slot(self, slot: Union[int, str]) -> None:
        key = _normalize_slot(slot)
        if key is None:
            return
        state = self.read()
        if state["quick_slots"].pop(key, None) is not None:
            self.write(state)
