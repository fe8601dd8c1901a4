"""Persistent state store and undo/redo history engine."""

from app.state.history import HistoryEngine, HistoryEntry, HistoryStats, UndoHistory
from app.state.schema import StateLimits, default_state, normalize_state, normalize_undo_history
from app.state.store import StateStore
from app.state.writer import StateWriter, atomic_write_text

__all__ = [
    "HistoryEngine",
    "HistoryEntry",
    "HistoryStats",
    "StateLimits",
    "StateStore",
    "StateWriter",
    "UndoHistory",
    "atomic_write_text",
    "default_state",
    "normalize_state",
    "normalize_undo_history",
]
