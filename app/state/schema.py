"""Shape of the persisted state document and its normalization.

The whole manager state lives in one JSON object::

    {
      "current": "tokyonight", "saved": "tokyonight", "previous": "gruvbox",
      "auto_apply": false,
      "bookmarks": ["gruvbox"],
      "history": ["tokyonight", "gruvbox"],      # recent list, newest first
      "usage": {"tokyonight": 3},
      "collapsed": {"dark": true},
      "sort_mode": "alpha",
      "quick_slots": {"1": "gruvbox"},
      "undo_history": {"stack": ["gruvbox", "tokyonight"], "index": 2, "max_size": 13}
    }

`normalize_state` repairs any decoded value into that shape. It never
mutates its input and is idempotent.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

HISTORY_MAX_SIZE = 100
MAX_BOOKMARKS = 50
RECENT_THEMES_MAX = 12

SORT_MODES = ("alpha", "recent", "usage")
DEFAULT_SORT_MODE = "alpha"
LEGACY_SORT_MODES = {"alphabetical": "alpha"}

MAX_SIZE_POLICY_PRESERVE = "preserve"
MAX_SIZE_POLICY_RECONCILE = "reconcile"

QUICK_SLOTS = tuple(str(n) for n in range(10))

# Key used by older files that kept bookmarks and quick slots per scope
LEGACY_GLOBAL_SCOPE = "__global"


@dataclass(frozen=True)
class StateLimits:
    """Caps applied while normalizing a document."""

    history_max_size: int = HISTORY_MAX_SIZE
    max_size_policy: str = MAX_SIZE_POLICY_PRESERVE
    max_bookmarks: int = MAX_BOOKMARKS
    max_recent: int = RECENT_THEMES_MAX

    @classmethod
    def from_config(cls, config) -> "StateLimits":
        return cls(
            history_max_size=config.history.max_size,
            max_size_policy=config.history.max_size_policy,
            max_bookmarks=config.bookmarks.max_bookmarks,
            max_recent=config.recent.max_recent,
        )


def default_undo_history(max_size: int = HISTORY_MAX_SIZE) -> Dict[str, Any]:
    return {"stack": [], "index": 0, "max_size": max_size}


def default_state(limits: Optional[StateLimits] = None) -> Dict[str, Any]:
    """Return a fresh default document."""
    limits = limits or StateLimits()
    return {
        "current": None,
        "saved": None,
        "previous": None,
        "auto_apply": False,
        "bookmarks": [],
        "history": [],
        "usage": {},
        "collapsed": {},
        "sort_mode": DEFAULT_SORT_MODE,
        "quick_slots": {},
        "undo_history": default_undo_history(limits.history_max_size),
    }


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _theme_or_none(value: Any) -> Optional[str]:
    if isinstance(value, str) and value:
        return value
    return None


def _unique_themes(values: Any) -> List[str]:
    if not isinstance(values, list):
        return []
    seen = set()
    themes = []
    for value in values:
        if isinstance(value, str) and value and value not in seen:
            seen.add(value)
            themes.append(value)
    return themes


def normalize_sort_mode(mode: Any) -> str:
    if not isinstance(mode, str):
        return DEFAULT_SORT_MODE
    mode = LEGACY_SORT_MODES.get(mode, mode)
    return mode if mode in SORT_MODES else DEFAULT_SORT_MODE


def _normalize_bookmarks(value: Any, max_bookmarks: int) -> List[str]:
    if isinstance(value, dict):
        value = value.get(LEGACY_GLOBAL_SCOPE, [])
    return _unique_themes(value)[:max_bookmarks]


def _normalize_usage(value: Any) -> Dict[str, int]:
    if not isinstance(value, dict):
        return {}
    return {
        theme: count
        for theme, count in value.items()
        if isinstance(theme, str) and theme and _is_int(count) and count >= 0
    }


def _normalize_collapsed(value: Any) -> Dict[str, bool]:
    if not isinstance(value, dict):
        return {}
    return {key: flag for key, flag in value.items() if isinstance(key, str) and isinstance(flag, bool)}


def _normalize_quick_slots(value: Any) -> Dict[str, str]:
    if not isinstance(value, dict):
        return {}
    if isinstance(value.get(LEGACY_GLOBAL_SCOPE), dict):
        value = value[LEGACY_GLOBAL_SCOPE]
    return {
        slot: theme
        for slot, theme in sorted(value.items(), key=lambda item: str(item[0]))
        if slot in QUICK_SLOTS and isinstance(theme, str) and theme
    }


def normalize_undo_history(value: Any, limits: Optional[StateLimits] = None) -> Dict[str, Any]:
    """Coerce an undo history value into a well-formed triple.

    Invalid entries are dropped and repeated themes keep only their first
    occurrence. The index follows the entry it pointed at, then is clamped
    so that ``index == 0`` exactly when the stack is empty. Stacks longer
    than ``max_size`` lose their oldest entries.
    """
    limits = limits or StateLimits()
    if not isinstance(value, dict):
        return default_undo_history(limits.history_max_size)

    raw_stack = value.get("stack")
    if not isinstance(raw_stack, list):
        raw_stack = []
    raw_index = value.get("index")
    index = raw_index if _is_int(raw_index) else 0

    stack: List[str] = []
    positions: Dict[str, int] = {}
    # new 1-based position for each old 1-based position
    remap = [0]
    for entry in raw_stack:
        if isinstance(entry, str) and entry:
            if entry not in positions:
                stack.append(entry)
                positions[entry] = len(stack)
            remap.append(positions[entry])
        else:
            remap.append(len(stack))

    if 0 < index < len(remap):
        index = remap[index]
    elif index >= len(remap):
        index = len(stack)

    max_size = value.get("max_size")
    if not _is_int(max_size) or max_size < 1:
        max_size = limits.history_max_size
    if limits.max_size_policy == MAX_SIZE_POLICY_RECONCILE:
        max_size = limits.history_max_size

    while len(stack) > max_size:
        stack.pop(0)
        index -= 1

    if stack:
        index = min(max(index, 1), len(stack))
    else:
        index = 0

    return {"stack": stack, "index": index, "max_size": max_size}


def normalize_state(decoded: Any, limits: Optional[StateLimits] = None) -> Dict[str, Any]:
    """Merge a decoded document into the defaults and repair every field.

    Unknown top-level keys are carried through untouched.
    """
    limits = limits or StateLimits()
    state = default_state(limits)
    if not isinstance(decoded, dict):
        return state

    for key, value in decoded.items():
        if key not in state:
            state[key] = copy.deepcopy(value)

    state["current"] = _theme_or_none(decoded.get("current"))
    state["saved"] = _theme_or_none(decoded.get("saved"))
    state["previous"] = _theme_or_none(decoded.get("previous"))
    state["auto_apply"] = decoded.get("auto_apply") is True
    state["bookmarks"] = _normalize_bookmarks(decoded.get("bookmarks"), limits.max_bookmarks)
    state["history"] = _unique_themes(decoded.get("history"))[: limits.max_recent]
    state["usage"] = _normalize_usage(decoded.get("usage"))
    state["collapsed"] = _normalize_collapsed(decoded.get("collapsed"))
    state["sort_mode"] = normalize_sort_mode(decoded.get("sort_mode"))
    state["quick_slots"] = _normalize_quick_slots(decoded.get("quick_slots"))
    state["undo_history"] = normalize_undo_history(decoded.get("undo_history"), limits)
    return state
