"""Bounded, branch-truncating undo/redo history of applied themes.

The engine keeps no state of its own. Each operation reads the whole
document from the store, edits its ``undo_history`` triple and writes
the document back, so the store stays the single source of truth.

Positions are 1-based: ``index`` points at the theme that is active from
history's point of view, and is 0 only when the stack is empty.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from app.events.notifications import NotificationBus, NotificationCategory, NotificationLevel
from app.state.schema import normalize_undo_history
from app.state.store import StateStore
from exceptions import InvalidHistoryPositionError
from log_config.logger import get_logger

logger = get_logger(__name__)

ApplyCallback = Callable[[str], Any]

UNDO_ICON = "󰓕"
REDO_ICON = "󰓗"
HISTORY_ICON = "󰋚"


@dataclass
class UndoHistory:
    """Undo stack, 1-based cursor and size ceiling."""

    stack: List[str] = field(default_factory=list)
    index: int = 0
    max_size: int = 100

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "UndoHistory":
        return cls(stack=list(data["stack"]), index=data["index"], max_size=data["max_size"])

    def to_dict(self) -> Dict[str, Any]:
        return {"stack": list(self.stack), "index": self.index, "max_size": self.max_size}

    def current(self) -> Optional[str]:
        if 0 < self.index <= len(self.stack):
            return self.stack[self.index - 1]
        return None

    @property
    def can_undo(self) -> bool:
        return self.index > 1

    @property
    def can_redo(self) -> bool:
        return self.index < len(self.stack)

    def push(self, theme: str) -> None:
        """Append ``theme`` as the new tail.

        Drops the redo branch, removes older occurrences of ``theme`` and
        evicts the oldest entries beyond ``max_size``.
        """
        if self.index < len(self.stack):
            del self.stack[self.index:]

        for i in range(len(self.stack) - 1, -1, -1):
            if self.stack[i] == theme:
                del self.stack[i]
                if i + 1 <= self.index:
                    self.index -= 1

        self.stack.append(theme)
        self.index = len(self.stack)

        while len(self.stack) > self.max_size:
            self.stack.pop(0)
            self.index -= 1


@dataclass(frozen=True)
class HistoryEntry:
    """One row of a history slice."""

    index: int
    theme: str
    is_current: bool


@dataclass(frozen=True)
class HistoryStats:
    """Aggregate view of the history stack."""

    total: int = 0
    position: int = 0
    can_undo: bool = False
    can_redo: bool = False
    unique_themes: int = 0
    most_used: Optional[str] = None
    most_used_count: int = 0
    recent: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class HistoryEngine:
    """Undo/redo/jump over the persisted theme history."""

    def __init__(self, store: StateStore, notifier: Optional[NotificationBus] = None):
        self._store = store
        self._notifier = notifier or store.notifier

    @property
    def store(self) -> StateStore:
        return self._store

    def _load(self) -> Tuple[Dict[str, Any], UndoHistory]:
        state = self._store.read()
        undo = normalize_undo_history(state.get("undo_history"), self._store.limits)
        return state, UndoHistory.from_dict(undo)

    def _save(self, state: Dict[str, Any], undo: UndoHistory) -> None:
        state["undo_history"] = undo.to_dict()
        self._store.write(state)

    def _notify(self, level: NotificationLevel, message: str, **metadata: Any) -> None:
        self._notifier.notify(NotificationCategory.HISTORY, level, message, source="HistoryEngine", **metadata)

    def _apply(self, on_apply: Optional[ApplyCallback], theme: str) -> None:
        # History is already persisted; a failing callback must not touch it
        if on_apply is None:
            return
        try:
            on_apply(theme)
        except Exception as e:
            self._notifier.notify(
                NotificationCategory.THEME,
                NotificationLevel.ERROR,
                f"Failed to apply theme '{theme}': {e}",
                source="HistoryEngine",
                exception=e,
                theme=theme,
            )

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add(self, theme: Optional[str]) -> None:
        """Record ``theme`` as the newest history entry. Empty names are ignored."""
        if not theme:
            return

        state, undo = self._load()
        undo.push(theme)
        self._save(state, undo)
        logger.debug(f"History add: {theme} ({undo.index}/{len(undo.stack)})")

    def undo(self, on_apply: Optional[ApplyCallback] = None) -> Optional[str]:
        """Step back one entry.

        Args:
            on_apply: Called with the theme after the new position is persisted

        Returns:
            The theme now current, or None if there is nothing to undo
        """
        state, undo = self._load()
        if undo.index <= 1 or not undo.stack:
            self._notify(NotificationLevel.INFO, f"{UNDO_ICON} Undo: no more history")
            return None

        undo.index -= 1
        self._save(state, undo)

        theme = undo.stack[undo.index - 1]
        self._apply(on_apply, theme)
        self._notify(
            NotificationLevel.INFO,
            f"{UNDO_ICON} Undo: {theme} ({undo.index}/{len(undo.stack)})",
            theme=theme,
        )
        return theme

    def redo(self, on_apply: Optional[ApplyCallback] = None) -> Optional[str]:
        """Step forward one entry; mirror of `undo`."""
        state, undo = self._load()
        if undo.index >= len(undo.stack) or not undo.stack:
            self._notify(NotificationLevel.INFO, f"{REDO_ICON} Redo: no more history")
            return None

        undo.index += 1
        self._save(state, undo)

        theme = undo.stack[undo.index - 1]
        self._apply(on_apply, theme)
        self._notify(
            NotificationLevel.INFO,
            f"{REDO_ICON} Redo: {theme} ({undo.index}/{len(undo.stack)})",
            theme=theme,
        )
        return theme

    def jump(self, position: int, on_apply: Optional[ApplyCallback] = None) -> Optional[str]:
        """Move the cursor straight to ``position`` (1-based).

        Out-of-range positions are reported as errors and change nothing.
        """
        state, undo = self._load()
        size = len(undo.stack)
        valid = isinstance(position, int) and not isinstance(position, bool)
        if not valid or position < 1 or position > size:
            error = InvalidHistoryPositionError(position, size)
            self._notifier.notify(
                NotificationCategory.HISTORY,
                NotificationLevel.ERROR,
                str(error),
                source="HistoryEngine",
                position=position,
            )
            return None

        undo.index = position
        self._save(state, undo)

        theme = undo.stack[position - 1]
        self._apply(on_apply, theme)
        self._notify(NotificationLevel.INFO, f"Jumped to: {theme} ({position}/{size})", theme=theme)
        return theme

    def reset(self) -> None:
        """Empty the history, keeping its max_size."""
        state, undo = self._load()
        undo.stack = []
        undo.index = 0
        self._save(state, undo)
        self._notify(NotificationLevel.INFO, "Theme history cleared")

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def current(self) -> Optional[str]:
        return self._load()[1].current()

    def can_undo(self) -> bool:
        return self._load()[1].can_undo

    def can_redo(self) -> bool:
        return self._load()[1].can_redo

    def stats(self) -> HistoryStats:
        """Totals, position and most frequent theme of the stack."""
        _, undo = self._load()
        if not undo.stack:
            return HistoryStats()

        # Counter keeps first-seen order, so ties go to the oldest entry
        counts = Counter(undo.stack)
        most_used, max_count = None, 0
        for theme, count in counts.items():
            if count > max_count:
                most_used, max_count = theme, count

        return HistoryStats(
            total=len(undo.stack),
            position=undo.index,
            can_undo=undo.can_undo,
            can_redo=undo.can_redo,
            unique_themes=len(counts),
            most_used=most_used,
            most_used_count=max_count,
            recent=undo.stack[-1],
        )

    def get_slice(self, count: int = 10) -> List[HistoryEntry]:
        """The last ``count`` entries, oldest first."""
        if count <= 0:
            return []
        _, undo = self._load()
        start = max(1, len(undo.stack) - count + 1)
        return [
            HistoryEntry(index=i, theme=undo.stack[i - 1], is_current=(i == undo.index))
            for i in range(start, len(undo.stack) + 1)
        ]

    def format_history(self, count: int = 10) -> str:
        """Render the recent history for display and publish it."""
        _, undo = self._load()
        if not undo.stack:
            text = f"{HISTORY_ICON} No theme history"
            self._notify(NotificationLevel.INFO, text)
            return text

        lines = [f"{HISTORY_ICON} Theme History:", ""]
        for entry in self.get_slice(count):
            marker = "→ " if entry.is_current else "  "
            lines.append(f"{marker}[{entry.index}] {entry.theme}")
        lines.append("")
        lines.append(
            f"Position: {undo.index}/{len(undo.stack)} | "
            f"Can undo: {'yes' if undo.can_undo else 'no'} | "
            f"Can redo: {'yes' if undo.can_redo else 'no'}"
        )
        text = "\n".join(lines)
        self._notify(NotificationLevel.INFO, text)
        return text

    # ------------------------------------------------------------------
    # Hand-off
    # ------------------------------------------------------------------

    def serialize(self) -> Dict[str, Any]:
        """Plain ``{stack, index, max_size}`` copy for embedding elsewhere."""
        return self._load()[1].to_dict()

    def deserialize(self, data: Any) -> bool:
        """Replace the history with ``data``, clamping the index into range.

        Returns:
            False if ``data`` is not a mapping (nothing written)
        """
        if not isinstance(data, Mapping):
            logger.warning(f"Ignoring history data of type {type(data).__name__}")
            return False

        stack = data.get("stack")
        stack = list(stack) if isinstance(stack, (list, tuple)) else []
        index = data.get("index")
        if not isinstance(index, int) or isinstance(index, bool):
            index = 0
        index = min(max(index, 0), len(stack))
        max_size = data.get("max_size")
        if not isinstance(max_size, int) or isinstance(max_size, bool) or max_size < 1:
            max_size = self._store.limits.history_max_size

        state = self._store.read()
        state["undo_history"] = {"stack": stack, "index": index, "max_size": max_size}
        self._store.write(state)
        return True
