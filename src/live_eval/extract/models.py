"""Core extraction data types and ordering contract."""

from __future__ import annotations

import ast
from dataclasses import dataclass, field
from enum import Enum


@dataclass(slots=True, frozen=True, order=True)
class Position:
    """Zero-based line and character column within one document snapshot."""

    line: int
    column: int


@dataclass(slots=True, frozen=True)
class SourceRange:
    """Half-open character range within one document snapshot."""

    start: Position
    end: Position

    @classmethod
    def from_coords(
        cls, start_line: int, start_column: int, end_line: int, end_column: int
    ) -> SourceRange:
        return cls(Position(start_line, start_column), Position(end_line, end_column))

    def to_public_dict(self) -> dict[str, object]:
        """Return serializable range for presentation payloads."""
        return {
            "start": {"line": self.start.line, "column": self.start.column},
            "end": {"line": self.end.line, "column": self.end.column},
        }


class DiagnosticSeverity(str, Enum):
    ERROR = "error"


@dataclass(slots=True, frozen=True)
class Diagnostic:
    """Positioned parse failure."""

    range: SourceRange
    message: str
    severity: DiagnosticSeverity = DiagnosticSeverity.ERROR
    source: str = "live-eval"


@dataclass(slots=True, frozen=True)
class EvaluableUnit:
    """One top-level statement with its exact source slice."""

    text: str
    range: SourceRange
    node: ast.stmt = field(compare=False, repr=False)


@dataclass(slots=True, frozen=True)
class ExtractionResult:
    """Units and diagnostics produced by one extraction pass."""

    units: tuple[EvaluableUnit, ...] = ()
    diagnostics: tuple[Diagnostic, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.diagnostics


class ExtractionContractError(ValueError):
    """Raised when extracted units violate the ordering contract."""


def validate_units(units: list[EvaluableUnit]) -> None:
    """Validate that unit ranges are well-formed, ordered and non-overlapping."""
    previous_end: Position | None = None
    for unit in units:
        if unit.range.end < unit.range.start:
            raise ExtractionContractError("Unit range end must not precede its start.")
        if not unit.text.strip():
            raise ExtractionContractError("Unit text must be non-empty.")
        if previous_end is not None and unit.range.start < previous_end:
            raise ExtractionContractError("Unit ranges must be ordered and non-overlapping.")
        previous_end = unit.range.end
