"""Tagged value variant used for snapshots, diffing and serialization."""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from enum import Enum

MAX_CAPTURE_DEPTH = 64
UNSERIALIZABLE = "[Unserializable]"


class ValueKind(str, Enum):
    NULL = "null"
    UNDEFINED = "undefined"
    NUMBER = "number"
    STRING = "string"
    BOOLEAN = "boolean"
    ARRAY = "array"
    OBJECT = "object"
    DATE = "date"
    OPAQUE = "opaque"


@dataclass(slots=True, frozen=True)
class CapturedValue:
    """Immutable structural copy of one sandbox value.

    `data` holds the primitive for scalar kinds, a tuple of CapturedValue for
    arrays, a tuple of (key, CapturedValue) pairs for objects and a
    placeholder string for opaque values.
    """

    kind: ValueKind
    data: object = None

    def to_plain(self) -> object:
        """Return a JSON-compatible rendering."""
        if self.kind in (ValueKind.NULL, ValueKind.UNDEFINED):
            return None
        if self.kind is ValueKind.DATE:
            return self.data.isoformat()  # type: ignore[union-attr]
        if self.kind is ValueKind.ARRAY:
            return [item.to_plain() for item in self.data]  # type: ignore[union-attr]
        if self.kind is ValueKind.OBJECT:
            return {str(key): item.to_plain() for key, item in self.data}  # type: ignore[union-attr]
        return self.data


UNDEFINED = CapturedValue(ValueKind.UNDEFINED)
NULL = CapturedValue(ValueKind.NULL)


class CaptureError(ValueError):
    """Raised internally when a value cannot be cloned structurally."""


def capture_value(value: object) -> CapturedValue:
    """Deep-clone a value; anything that cannot be cloned becomes an opaque placeholder."""
    try:
        return _clone(value, depth=0, active=set())
    except Exception:  # noqa: BLE001 - user-defined __repr__ or properties may raise
        return CapturedValue(ValueKind.OPAQUE, UNSERIALIZABLE)


def values_equal(left: CapturedValue, right: CapturedValue) -> bool:
    """Structural equality: arrays are order-sensitive, objects compare key sets and values."""
    if left.kind is not right.kind:
        return False
    if left.kind is ValueKind.ARRAY:
        left_items = left.data
        right_items = right.data
        if len(left_items) != len(right_items):  # type: ignore[arg-type]
            return False
        return all(
            values_equal(a, b) for a, b in zip(left_items, right_items)  # type: ignore[call-overload]
        )
    if left.kind is ValueKind.OBJECT:
        left_map = dict(left.data)  # type: ignore[call-overload]
        right_map = dict(right.data)  # type: ignore[call-overload]
        if left_map.keys() != right_map.keys():
            return False
        return all(values_equal(left_map[key], right_map[key]) for key in left_map)
    return left.data == right.data


def value_type(value: CapturedValue) -> str:
    return value.kind.value


def _clone(value: object, depth: int, active: set[int]) -> CapturedValue:
    if value is None:
        return NULL
    if isinstance(value, bool):
        return CapturedValue(ValueKind.BOOLEAN, value)
    if isinstance(value, (int, float)):
        return CapturedValue(ValueKind.NUMBER, value)
    if isinstance(value, str):
        return CapturedValue(ValueKind.STRING, value)
    if isinstance(value, (dt.date, dt.time)):
        return CapturedValue(ValueKind.DATE, value)
    if callable(value):
        return _opaque(value)

    if depth >= MAX_CAPTURE_DEPTH:
        raise CaptureError("Value nesting exceeds capture depth.")
    marker = id(value)
    if marker in active:
        raise CaptureError("Cyclic values are not supported.")
    active.add(marker)
    try:
        if isinstance(value, (list, tuple)):
            items = tuple(_clone(item, depth + 1, active) for item in value)
            return CapturedValue(ValueKind.ARRAY, items)
        if isinstance(value, (set, frozenset)):
            ordered = sorted(value, key=repr)
            items = tuple(_clone(item, depth + 1, active) for item in ordered)
            return CapturedValue(ValueKind.ARRAY, items)
        if isinstance(value, dict):
            return CapturedValue(ValueKind.OBJECT, _clone_items(value.items(), depth, active))
        attributes = getattr(value, "__dict__", None)
        if isinstance(attributes, dict):
            public = ((k, v) for k, v in attributes.items() if not str(k).startswith("_"))
            return CapturedValue(ValueKind.OBJECT, _clone_items(public, depth, active))
        return _opaque(value)
    finally:
        active.discard(marker)


def _clone_items(items: object, depth: int, active: set[int]) -> tuple[tuple[object, CapturedValue], ...]:
    cloned: list[tuple[object, CapturedValue]] = []
    for key, item in items:  # type: ignore[attr-defined]
        cloned.append((_clone_key(key), _clone(item, depth + 1, active)))
    return tuple(cloned)


def _clone_key(key: object) -> object:
    if key is None or isinstance(key, (str, int, float, bool)):
        return key
    return repr(key)


def _opaque(value: object) -> CapturedValue:
    return CapturedValue(ValueKind.OPAQUE, f"[{type(value).__name__}]")
