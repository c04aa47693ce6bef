from __future__ import annotations

import itertools
import threading
from typing import Any, List

import pytest

from history_engine.diff import ValueDelta
from history_engine.history import (
    CallbackHandle,
    CellOptions,
    HistoryEntry,
    HistoryGroup,
    HistorySession,
)


def make_session(**kwargs: Any) -> HistorySession:
    ticks = itertools.count(1)
    return HistorySession(clock=lambda: next(ticks), **kwargs)


def test_undo_and_redo_scalar_cell() -> None:
    session = make_session()
    counter = session.cell(0, id="counter")

    counter.set(1)
    counter.set(2)

    assert session.undo() is True
    assert counter.get() == 1
    assert session.undo() is True
    assert counter.get() == 0
    assert session.can_undo is False

    assert session.redo() is True
    assert session.redo() is True
    assert counter.get() == 2
    assert session.can_redo is False


def test_empty_stacks_are_noops() -> None:
    session = make_session()

    assert session.undo() is False
    assert session.redo() is False


def test_replay_does_not_record_new_entries() -> None:
    session = make_session()
    cell = session.cell("a")
    cell.set("b")

    session.undo()

    assert session.status().past == 0
    assert session.status().future == 1


def test_undo_restores_deleted_keys() -> None:
    session = make_session()
    doc = session.cell({"title": "draft", "tags": ["x"]})

    doc.set({"title": "final"})
    session.undo()

    assert doc.get() == {"title": "draft", "tags": ["x"]}

    session.redo()
    assert doc.get() == {"title": "final"}


def test_undo_restores_replaced_array_elements() -> None:
    session = make_session()
    items = session.cell([1, 2, 3])

    items.set([1, 5, 3, 9])
    session.undo()
    assert items.get() == [1, 2, 3]

    session.redo()
    assert items.get() == [1, 5, 3, 9]


def test_group_operations_undo_all_cells_at_once() -> None:
    session = make_session()
    a = session.cell(1, id="a")
    b = session.cell("x", id="b")
    c = session.cell({"n": 0}, id="c")

    def mutate() -> None:
        a.set(2)
        b.set("y")
        c.set({"n": 1})

    session.group_operations(mutate)

    assert session.status().past == 1
    assert session.undo() is True
    assert (a.get(), b.get(), c.get()) == (1, "x", {"n": 0})
    assert session.can_undo is False

    assert session.redo() is True
    assert (a.get(), b.get(), c.get()) == (2, "y", {"n": 1})


def test_group_undo_replays_same_cell_newest_first() -> None:
    session = make_session()
    cell = session.cell(0)

    with session.grouped():
        cell.set(1)
        cell.set(2)
        cell.set(3)

    session.undo()
    assert cell.get() == 0
    session.redo()
    assert cell.get() == 3


def test_group_ends_even_when_callback_raises() -> None:
    session = make_session()
    cell = session.cell(0)

    def boom() -> None:
        cell.set(1)
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        session.group_operations(boom)

    assert session.stack.grouping is False
    assert session.status().past == 1


def test_group_operations_returns_callback_result() -> None:
    session = make_session()

    assert session.group_operations(lambda: 42) == 42


def test_undo_with_unregistered_cell_drops_entry() -> None:
    session = make_session()
    cell = session.cell(0)
    cell.set(1)
    cell.set(2)
    cell.detach()

    assert session.undo() is False

    assert cell.get() == 2
    assert session.status().past == 1
    assert session.status().future == 0


def test_new_mutation_after_undo_clears_redo() -> None:
    session = make_session()
    cell = session.cell(0)
    cell.set(1)
    session.undo()
    assert session.can_redo is True

    cell.set(5)

    assert session.can_redo is False


def test_replaying_flag_only_set_during_write() -> None:
    session = make_session()
    seen: List[bool] = []
    store = {"value": 2}

    def setter(value: Any) -> None:
        seen.append(session.replaying)
        store["value"] = value

    session.register("raw", CallbackHandle(getter=lambda: store["value"], setter=setter))
    session.stack.push_entry("raw", 1, 2)

    assert session.replaying is False
    session.undo()

    assert seen == [True]
    assert store["value"] == 1
    assert session.replaying is False


def test_replaying_flag_released_when_write_fails() -> None:
    session = make_session()

    def setter(_value: Any) -> None:
        raise RuntimeError("write failed")

    session.register("broken", CallbackHandle(getter=lambda: 2, setter=setter))
    session.stack.push_entry("broken", 1, 2)

    assert session.undo() is False

    assert session.replaying is False
    assert session.status().past == 0
    assert session.status().future == 0


def test_failed_write_in_group_keeps_restored_entries() -> None:
    session = make_session()
    a = session.cell(0, id="a")

    def setter(_value: Any) -> None:
        raise RuntimeError("write failed")

    session.register("b", CallbackHandle(getter=lambda: 2, setter=setter))
    with session.grouped():
        session.stack.push_entry("b", 1, 2)
        a.set(1)

    assert session.undo() is True

    assert a.get() == 0
    step = session.stack.future[-1]
    assert isinstance(step, HistoryGroup)
    assert [entry.cell_id for entry in step] == ["a"]
    assert session.redo() is True
    assert a.get() == 1


def test_writes_from_another_thread_wait_for_replay() -> None:
    session = make_session()
    other = session.cell(0, id="other")
    store = {"value": 2}
    entered = threading.Event()
    release = threading.Event()

    def blocking_setter(value: Any) -> None:
        entered.set()
        release.wait(timeout=5)
        store["value"] = value

    session.register(
        "slow", CallbackHandle(getter=lambda: store["value"], setter=blocking_setter)
    )
    session.stack.push_entry("slow", 1, 2)
    seen_replaying: List[bool] = []

    def writer() -> None:
        seen_replaying.append(session.replaying)
        other.set(99)

    replay = threading.Thread(target=session.undo)
    replay.start()
    assert entered.wait(timeout=5)
    write = threading.Thread(target=writer)
    write.start()
    release.set()
    replay.join(timeout=5)
    write.join(timeout=5)

    assert seen_replaying == [False]
    assert store["value"] == 1
    assert other.get() == 99
    last = session.stack.past[-1]
    assert isinstance(last, HistoryEntry)
    assert last.cell_id == "other"
    assert last.delta == ValueDelta(before=0, after=99)


def test_full_value_entries_redo_to_newer_value() -> None:
    session = make_session()
    cell = session.cell({"v": 1}, use_full_value_instead=True)
    cell.set({"v": 2})
    cell.set({"v": 3})

    session.undo()
    assert cell.get() == {"v": 2}
    session.undo()
    assert cell.get() == {"v": 1}

    session.redo()
    assert cell.get() == {"v": 2}
    session.redo()
    assert cell.get() == {"v": 3}


def test_complex_diff_uses_full_value_on_undo() -> None:
    session = make_session()
    before = {f"k{i}": i for i in range(12)}
    after = {key: value + 100 for key, value in before.items()}
    cell = session.cell(before)

    cell.set(after)
    entry = session.stack.past[-1]
    assert isinstance(entry, HistoryEntry) and entry.has_full_value

    session.undo()
    assert cell.get() == before
    session.redo()
    assert cell.get() == after


def test_opaque_custom_diff_cannot_be_replayed() -> None:
    session = make_session()
    cell = session.cell(1, custom_diff=lambda prev, nxt: {"delta": nxt - prev})
    cell.set(4)

    assert session.undo() is False

    assert cell.get() == 4
    assert session.status().past == 0
    assert session.status().future == 0


def test_structural_custom_diff_is_replayed() -> None:
    session = make_session()
    cell = session.cell(
        "a", custom_diff=lambda prev, nxt: ValueDelta(before=prev, after=nxt)
    )
    cell.set("b")

    session.undo()

    assert cell.get() == "a"


def test_group_drops_orphaned_entries_but_keeps_the_rest() -> None:
    session = make_session()
    kept = session.cell(0, id="kept")
    gone = session.cell(0, id="gone")

    with session.grouped():
        kept.set(1)
        gone.set(1)
    gone.detach()

    assert session.undo() is True
    assert kept.get() == 0
    step = session.stack.future[-1]
    assert isinstance(step, HistoryGroup)
    assert [entry.cell_id for entry in step] == ["kept"]


def test_moved_entries_get_fresh_timestamps() -> None:
    session = make_session()
    cell = session.cell(0)
    cell.set(1)
    original = session.stack.past[-1]

    session.undo()
    moved = session.stack.future[-1]

    assert isinstance(original, HistoryEntry) and isinstance(moved, HistoryEntry)
    assert moved.timestamp > original.timestamp
    assert moved.delta == original.delta


def test_clear_keeps_cell_values() -> None:
    session = make_session()
    cell = session.cell(0)
    cell.set(3)

    session.clear()

    assert cell.get() == 3
    assert session.undo() is False


def test_sessions_are_independent() -> None:
    first = make_session()
    second = make_session()
    a = first.cell(0, id="shared")
    b = second.cell(0, id="shared")

    a.set(1)
    b.set(2)
    first.undo()

    assert (a.get(), b.get()) == (0, 2)
    assert second.can_undo is True
