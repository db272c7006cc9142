"""Typed records for recorded evaluation steps."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from live_eval.extract.models import SourceRange
from live_eval.history.values import CapturedValue


@dataclass(slots=True, frozen=True)
class BindingSnapshot:
    """One captured binding and whether it differs from the previous snapshot."""

    name: str
    value: CapturedValue
    type: str
    changed: bool

    def to_public_dict(self) -> dict[str, object]:
        return {
            "name": self.name,
            "value": self.value.to_plain(),
            "type": self.type,
            "changed": self.changed,
        }


@dataclass(slots=True, frozen=True)
class ContextSnapshot:
    variables: Mapping[str, CapturedValue] = field(
        default_factory=lambda: MappingProxyType({})
    )

    @classmethod
    def from_items(cls, items: Mapping[str, CapturedValue]) -> ContextSnapshot:
        return cls(variables=MappingProxyType(dict(items)))


@dataclass(slots=True, frozen=True)
class ExecutionStep:
    """Immutable record of one evaluated unit and the sandbox state after it."""

    id: str
    timestamp: str
    unit_text: str
    unit_range: SourceRange
    result: CapturedValue
    error: str | None
    bindings: tuple[BindingSnapshot, ...]
    context_snapshot: ContextSnapshot

    def to_public_dict(self) -> dict[str, object]:
        """Return a JSON-serializable rendering for display."""
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "unit_text": self.unit_text,
            "unit_range": self.unit_range.to_public_dict(),
            "result": self.result.to_plain(),
            "error": self.error,
            "bindings": [binding.to_public_dict() for binding in self.bindings],
        }


@dataclass(slots=True)
class HistoryState:
    steps: list[ExecutionStep] = field(default_factory=list)
    current_index: int = -1
    capacity: int = 100


@dataclass(slots=True, frozen=True)
class VariableHistoryEntry:
    step: int
    value: CapturedValue
