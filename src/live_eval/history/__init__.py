"""Time-travel history of evaluation steps."""

from .models import (
    BindingSnapshot,
    ContextSnapshot,
    ExecutionStep,
    HistoryState,
    VariableHistoryEntry,
)
from .store import DEFAULT_HISTORY_CAPACITY, HistoryStore
from .values import CapturedValue, ValueKind, capture_value, values_equal

__all__ = [
    "BindingSnapshot",
    "CapturedValue",
    "ContextSnapshot",
    "DEFAULT_HISTORY_CAPACITY",
    "ExecutionStep",
    "HistoryState",
    "HistoryStore",
    "ValueKind",
    "VariableHistoryEntry",
    "capture_value",
    "values_equal",
]
