"""Unit extraction and source positions."""

from .document import TextDocument
from .models import (
    Diagnostic,
    DiagnosticSeverity,
    EvaluableUnit,
    ExtractionContractError,
    ExtractionResult,
    Position,
    SourceRange,
    validate_units,
)
from .python import UnitExtractor, is_logging_call

__all__ = [
    "Diagnostic",
    "DiagnosticSeverity",
    "EvaluableUnit",
    "ExtractionContractError",
    "ExtractionResult",
    "Position",
    "SourceRange",
    "TextDocument",
    "UnitExtractor",
    "is_logging_call",
    "validate_units",
]
