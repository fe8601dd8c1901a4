"""Tests for app.state.history HistoryEngine."""

from __future__ import annotations

import pytest

from app.events.notifications import NotificationBus, NotificationCategory, NotificationLevel
from app.state.history import HistoryEngine, HistoryEntry, HistoryStats, UndoHistory
from app.state.schema import StateLimits
from app.state.store import StateStore


@pytest.fixture
def bus():
    return NotificationBus()


@pytest.fixture
def store(tmp_path, bus):
    return StateStore(tmp_path / "state.json", notifier=bus, async_writes=False)


@pytest.fixture
def engine(store):
    return HistoryEngine(store)


def seed(engine, *themes):
    for theme in themes:
        engine.add(theme)


def undo_state(store):
    return store.read()["undo_history"]


class TestAdd:
    """Tests for add()."""

    def test_first_add_creates_history(self, engine, store):
        engine.add("A")
        assert undo_state(store) == {"stack": ["A"], "index": 1, "max_size": 100}

    def test_empty_theme_is_ignored(self, engine, store):
        engine.add("")
        engine.add(None)
        assert undo_state(store)["stack"] == []
        assert not store.path.exists()

    def test_add_appends_and_moves_index_to_tail(self, engine, store):
        seed(engine, "A", "B", "C")
        assert undo_state(store)["stack"] == ["A", "B", "C"]
        assert undo_state(store)["index"] == 3

    def test_branch_truncation(self, engine, store):
        seed(engine, "A", "B", "C")
        engine.undo()
        engine.undo()
        assert undo_state(store)["index"] == 1
        assert engine.current() == "A"

        engine.add("D")

        assert undo_state(store)["stack"] == ["A", "D"]
        assert undo_state(store)["index"] == 2

    def test_dedup_moves_existing_theme_to_tail(self, engine, store):
        seed(engine, "A", "B", "C")
        engine.add("A")
        assert undo_state(store)["stack"] == ["B", "C", "A"]
        assert undo_state(store)["index"] == 3

    def test_dedup_of_current_entry_after_undo(self, engine, store):
        seed(engine, "A", "B", "C")
        engine.undo()  # index 2 -> B
        engine.add("B")
        # C is truncated, B is removed at the index position and re-appended
        assert undo_state(store)["stack"] == ["A", "B"]
        assert undo_state(store)["index"] == 2

    def test_dedup_within_truncated_prefix(self, engine, store):
        seed(engine, "A", "B", "C", "D")
        engine.undo()
        engine.undo()  # index 2 -> B, C and D form the redo branch
        engine.add("A")
        assert undo_state(store)["stack"] == ["B", "A"]
        assert undo_state(store)["index"] == 2

    def test_readding_a_truncated_theme(self, engine, store):
        seed(engine, "A", "B", "C")
        engine.undo()
        engine.undo()
        engine.add("C")
        assert undo_state(store)["stack"] == ["A", "C"]
        assert undo_state(store)["index"] == 2

    def test_eviction_drops_oldest(self, tmp_path, bus):
        store = StateStore(
            tmp_path / "state.json",
            limits=StateLimits(history_max_size=2),
            notifier=bus,
            async_writes=False,
        )
        engine = HistoryEngine(store)
        seed(engine, "A", "B", "C")
        assert undo_state(store) == {"stack": ["B", "C"], "index": 2, "max_size": 2}

    @pytest.mark.parametrize("max_size", [1, 3, 5])
    def test_invariants_hold_for_mixed_sequences(self, tmp_path, bus, max_size):
        store = StateStore(
            tmp_path / "state.json",
            limits=StateLimits(history_max_size=max_size),
            notifier=bus,
            async_writes=False,
        )
        engine = HistoryEngine(store)
        script = ["A", "B", "undo", "C", "A", "undo", "undo", "D", "B", "redo", "E", "A", "undo", "F"]
        for step in script:
            if step == "undo":
                engine.undo()
            elif step == "redo":
                engine.redo()
            else:
                engine.add(step)

            undo = undo_state(store)
            stack, index = undo["stack"], undo["index"]
            assert len(stack) <= max_size
            assert len(set(stack)) == len(stack)
            assert 0 <= index <= len(stack)
            assert (index == 0) == (len(stack) == 0)


class TestUndoRedo:
    """Tests for undo(), redo() and their callbacks."""

    def test_round_trip(self, engine, store):
        seed(engine, "A", "B")
        assert engine.undo() == "A"
        assert engine.redo() == "B"

        before = undo_state(store)
        assert engine.redo() is None
        assert undo_state(store) == before

    def test_undo_at_oldest_entry_returns_none(self, engine, store):
        seed(engine, "A")
        assert engine.undo() is None
        assert undo_state(store)["index"] == 1

    def test_undo_on_empty_history_notifies(self, engine, bus):
        assert engine.undo() is None
        messages = [n.message for n in bus.get_history(NotificationCategory.HISTORY)]
        assert any("no more history" in m for m in messages)

    def test_redo_on_empty_history(self, engine):
        assert engine.redo() is None

    def test_callback_receives_theme(self, engine):
        seed(engine, "A", "B")
        applied = []
        engine.undo(applied.append)
        engine.redo(applied.append)
        assert applied == ["A", "B"]

    def test_callback_not_called_when_nothing_to_undo(self, engine):
        applied = []
        engine.undo(applied.append)
        assert applied == []

    def test_failing_callback_keeps_persisted_index(self, engine, store, bus):
        seed(engine, "A", "B", "C")

        def explode(theme):
            raise RuntimeError(f"cannot apply {theme}")

        assert engine.undo(explode) == "B"
        assert undo_state(store)["index"] == 2
        assert undo_state(store)["stack"] == ["A", "B", "C"]

        errors = [n for n in bus.get_history() if n.level == NotificationLevel.ERROR]
        assert len(errors) == 1
        assert isinstance(errors[0].exception, RuntimeError)

    def test_can_undo_and_can_redo(self, engine):
        assert not engine.can_undo()
        assert not engine.can_redo()

        engine.add("A")
        assert not engine.can_undo()  # index 1 has nothing before it
        assert not engine.can_redo()

        engine.add("B")
        assert engine.can_undo()
        engine.undo()
        assert not engine.can_undo()
        assert engine.can_redo()


class TestJump:
    """Tests for jump()."""

    @pytest.mark.parametrize("position", [0, 4, -1])
    def test_out_of_range_fails_without_mutation(self, engine, store, bus, position):
        seed(engine, "A", "B", "C")
        assert engine.jump(position) is None
        assert undo_state(store)["index"] == 3

        errors = [n for n in bus.get_history() if n.level == NotificationLevel.ERROR]
        assert errors
        assert "Invalid position" in errors[-1].message

    def test_jump_sets_index(self, engine, store):
        seed(engine, "A", "B", "C")
        applied = []
        assert engine.jump(2, applied.append) == "B"
        assert undo_state(store)["index"] == 2
        assert applied == ["B"]

    def test_jump_on_empty_history(self, engine):
        assert engine.jump(1) is None

    def test_non_integer_position_is_rejected(self, engine, store):
        seed(engine, "A", "B")
        assert engine.jump("1") is None
        assert engine.jump(True) is None
        assert undo_state(store)["index"] == 2


class TestQueries:
    """Tests for current(), stats(), get_slice() and format_history()."""

    def test_current_on_empty_history(self, engine):
        assert engine.current() is None

    def test_stats_empty_shape(self, engine):
        stats = engine.stats()
        assert stats == HistoryStats()
        assert stats.to_dict() == {
            "total": 0,
            "position": 0,
            "can_undo": False,
            "can_redo": False,
            "unique_themes": 0,
            "most_used": None,
            "most_used_count": 0,
            "recent": None,
        }

    def test_stats_after_undo(self, engine):
        seed(engine, "A", "B", "C")
        engine.undo()
        stats = engine.stats()
        assert stats.total == 3
        assert stats.position == 2
        assert stats.can_undo
        assert stats.can_redo
        assert stats.unique_themes == 3
        # all counts tie at 1; the first-seen entry wins
        assert stats.most_used == "A"
        assert stats.most_used_count == 1
        assert stats.recent == "C"

    def test_get_slice_returns_tail_oldest_first(self, engine):
        seed(engine, "A", "B", "C", "D")
        engine.undo()
        assert engine.get_slice(2) == [
            HistoryEntry(index=3, theme="C", is_current=True),
            HistoryEntry(index=4, theme="D", is_current=False),
        ]

    def test_get_slice_shorter_stack(self, engine):
        seed(engine, "A", "B")
        entries = engine.get_slice()
        assert [e.index for e in entries] == [1, 2]
        assert [e.is_current for e in entries] == [False, True]

    def test_get_slice_non_positive_count(self, engine):
        seed(engine, "A")
        assert engine.get_slice(0) == []

    def test_format_history_marks_current(self, engine):
        seed(engine, "A", "B")
        engine.undo()
        text = engine.format_history()
        assert "→ [1] A" in text
        assert "  [2] B" in text
        assert "Position: 1/2 | Can undo: no | Can redo: yes" in text

    def test_format_history_empty(self, engine):
        assert "No theme history" in engine.format_history()


class TestResetAndSerialization:
    """Tests for reset(), serialize() and deserialize()."""

    def test_reset_preserves_max_size(self, tmp_path, bus):
        store = StateStore(
            tmp_path / "state.json",
            limits=StateLimits(history_max_size=7),
            notifier=bus,
            async_writes=False,
        )
        engine = HistoryEngine(store)
        seed(engine, "A", "B")
        engine.reset()
        assert undo_state(store) == {"stack": [], "index": 0, "max_size": 7}

    def test_reset_keeps_other_state(self, engine, store):
        store.set_current("A")
        seed(engine, "A")
        engine.reset()
        assert store.get_current() == "A"

    def test_serialize_deserialize_round_trip(self, engine):
        seed(engine, "A", "B", "C")
        engine.undo()
        data = engine.serialize()
        assert data == {"stack": ["A", "B", "C"], "index": 2, "max_size": 100}

        engine.reset()
        assert engine.deserialize(data)
        assert engine.serialize() == data

    def test_serialize_returns_a_copy(self, engine, store):
        seed(engine, "A")
        data = engine.serialize()
        data["stack"].append("B")
        assert undo_state(store)["stack"] == ["A"]

    @pytest.mark.parametrize(
        "index, expected",
        [(99, 2), (-5, 1), ("x", 1)],
    )
    def test_deserialize_clamps_index(self, engine, store, index, expected):
        engine.deserialize({"stack": ["A", "B"], "index": index, "max_size": 5})
        assert undo_state(store) == {"stack": ["A", "B"], "index": expected, "max_size": 5}

    def test_deserialize_rejects_non_mapping(self, engine, store):
        seed(engine, "A")
        assert not engine.deserialize(["A", "B"])
        assert undo_state(store)["stack"] == ["A"]

    def test_deserialize_empty_mapping(self, engine, store):
        seed(engine, "A")
        assert engine.deserialize({})
        assert undo_state(store) == {"stack": [], "index": 0, "max_size": 100}


class TestUndoHistory:
    """Tests for the UndoHistory value type."""

    def test_push_matches_engine_semantics(self):
        undo = UndoHistory(stack=["A", "B", "C"], index=1, max_size=10)
        undo.push("D")
        assert undo.stack == ["A", "D"]
        assert undo.index == 2

    def test_current_out_of_bounds(self):
        assert UndoHistory(stack=["A"], index=0).current() is None
        assert UndoHistory(stack=["A"], index=2).current() is None
        assert UndoHistory(stack=["A"], index=1).current() == "A"

    def test_dict_round_trip(self):
        undo = UndoHistory(stack=["A"], index=1, max_size=3)
        assert UndoHistory.from_dict(undo.to_dict()) == undo
