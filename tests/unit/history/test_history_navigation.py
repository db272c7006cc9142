from __future__ import annotations

import pytest

from live_eval.extract import SourceRange
from live_eval.history import HistoryStore


def _record(store: HistoryStore, label: str, **bindings: object):
    return store.record_step(label, SourceRange.from_coords(0, 0, 0, len(label)), None, bindings)


def test_navigation_walks_the_linear_timeline() -> None:
    store = HistoryStore()
    steps = [_record(store, f"x = {value}", x=value) for value in range(3)]

    assert store.current_step_index() == 2
    assert store.current_step() == steps[2]
    assert store.step_back() == steps[1]
    assert store.step_back() == steps[0]
    assert store.step_back() is None
    assert store.current_step_index() == 0
    assert store.step_forward() == steps[1]
    assert store.step_forward() == steps[2]
    assert store.step_forward() is None
    assert store.current_step_index() == 2


def test_go_to_step_out_of_range_keeps_cursor() -> None:
    store = HistoryStore()
    steps = [_record(store, f"x = {value}", x=value) for value in range(3)]

    assert store.go_to_step(0) == steps[0]
    assert store.go_to_step(3) is None
    assert store.go_to_step(-1) is None
    assert store.current_step_index() == 0
    assert store.can_step_forward()
    assert not store.can_step_back()


def test_recording_after_stepping_back_discards_the_future() -> None:
    store = HistoryStore()
    first = _record(store, "a = 1", a=1)
    _record(store, "a = 2", a=2)
    _record(store, "a = 3", a=3)

    store.go_to_step(0)
    replacement = _record(store, "a = 9", a=9)

    assert store.all_steps() == [first, replacement]
    assert store.current_step_index() == 1
    assert not store.can_step_forward()


def test_capacity_evicts_oldest_step() -> None:
    store = HistoryStore(capacity=2)
    _record(store, "a = 1", a=1)
    second = _record(store, "a = 2", a=2)
    third = _record(store, "a = 3", a=3)

    assert len(store) == 2
    assert store.capacity == 2
    assert store.all_steps() == [second, third]
    assert store.current_step_index() == 1


def test_all_steps_returns_a_copy() -> None:
    store = HistoryStore()
    _record(store, "a = 1", a=1)

    steps = store.all_steps()
    steps.clear()

    assert len(store) == 1


def test_empty_store_has_no_current_step() -> None:
    store = HistoryStore()

    assert store.current_step() is None
    assert store.current_step_index() == -1
    assert store.step_back() is None
    assert store.step_forward() is None
    assert store.changed_variables(0) == []


def test_capacity_must_be_positive() -> None:
    with pytest.raises(ValueError, match="capacity"):
        HistoryStore(capacity=0)


def test_step_ids_are_unique_and_steps_serialize() -> None:
    store = HistoryStore()
    first = _record(store, "a = 1", a=1)
    second = _record(store, "b = [1]", a=1, b=[1])

    assert first.id != second.id
    payload = second.to_public_dict()
    assert payload["unit_text"] == "b = [1]"
    assert payload["bindings"] == [
        {"name": "a", "value": 1, "type": "number", "changed": False},
        {"name": "b", "value": [1], "type": "array", "changed": True},
    ]
    assert isinstance(payload["timestamp"], str)


def test_recording_after_two_steps_back_discards_the_redo_branch() -> None:
    store = HistoryStore()
    s0, s1, s2, s3 = (_record(store, f"x = {value}", x=value) for value in range(4))

    store.step_back()
    store.step_back()
    s4 = _record(store, "x = 4", x=4)

    assert store.all_steps() == [s0, s1, s4]
    assert s2 not in store.all_steps() and s3 not in store.all_steps()
    assert store.current_step_index() == 2
    assert store.current_step() == s4
    assert not store.can_step_forward()
