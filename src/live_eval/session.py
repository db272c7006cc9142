"""Evaluation session: extract units, run them in order, record history."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from live_eval.config import ConfigOverrides, SessionConfig, default_config, load_effective_config
from live_eval.extract import (
    Diagnostic,
    EvaluableUnit,
    SourceRange,
    UnitExtractor,
    is_logging_call,
)
from live_eval.history import HistoryStore
from live_eval.logging import EvaluationAuditEvent, JsonlAuditLogger, utc_timestamp
from live_eval.sandbox import EvaluationOutcome, SandboxEvaluator
from live_eval.sandbox.output import default_output_sink


class AnnotationKind(str, Enum):
    RESULT = "result"
    LOG = "log"
    ERROR = "error"


@dataclass(slots=True, frozen=True)
class Annotation:
    """Presentation-ready text attached to the range of one unit."""

    range: SourceRange
    text: str
    kind: AnnotationKind

    def to_public_dict(self) -> dict[str, object]:
        return {"range": self.range.to_public_dict(), "text": self.text, "kind": self.kind.value}


@dataclass(slots=True, frozen=True)
class UnitEvaluation:
    unit: EvaluableUnit
    outcome: EvaluationOutcome


@dataclass(slots=True, frozen=True)
class DocumentEvaluation:
    """Everything one pass over a document produced."""

    run_id: str
    diagnostics: tuple[Diagnostic, ...]
    annotations: tuple[Annotation, ...]
    outcomes: tuple[UnitEvaluation, ...]

    @property
    def ok(self) -> bool:
        return not self.diagnostics and all(item.outcome.ok for item in self.outcomes)

    def to_public_dict(self) -> dict[str, object]:
        return {
            "run_id": self.run_id,
            "diagnostics": [
                {
                    "range": diagnostic.range.to_public_dict(),
                    "message": diagnostic.message,
                    "severity": diagnostic.severity.value,
                    "source": diagnostic.source,
                }
                for diagnostic in self.diagnostics
            ],
            "annotations": [annotation.to_public_dict() for annotation in self.annotations],
        }


class EvaluationSession:
    """Drive one document through extraction, sequential evaluation and history.

    Every pass creates a fresh execution context. History is kept across
    passes until cleared; steps from older passes stay valid as a record.
    """

    def __init__(
        self,
        config: SessionConfig | None = None,
        audit_logger: JsonlAuditLogger | None = None,
    ) -> None:
        self._config = config or default_config(Path.cwd())
        self._extractor = UnitExtractor()
        self._evaluator = SandboxEvaluator(self._config.sandbox.timeout_seconds)
        self._history = HistoryStore(self._config.history.capacity)
        self._history_enabled = self._config.history.enabled
        if audit_logger is None and self._config.audit.enabled:
            audit_logger = JsonlAuditLogger(self._config.audit.log_path)
        self._audit_logger = audit_logger
        self._run_counter = 0

    @classmethod
    def from_project(
        cls, project_root: Path, overrides: ConfigOverrides | None = None
    ) -> EvaluationSession:
        """Build a session from live_eval.toml and startup overrides."""
        return cls(load_effective_config(project_root, overrides))

    @property
    def config(self) -> SessionConfig:
        return self._config

    @property
    def history(self) -> HistoryStore:
        return self._history

    @property
    def history_enabled(self) -> bool:
        return self._history_enabled

    def enable_history(self) -> None:
        self._history_enabled = True

    def disable_history(self) -> None:
        self._history_enabled = False

    def clear_history(self) -> None:
        self._history.clear_history()

    def read_audit_entries(
        self, since: str | None = None, limit: int = 50
    ) -> list[dict[str, object]]:
        """Return recent audit records; empty when auditing is disabled."""
        if self._audit_logger is None:
            return []
        return self._audit_logger.read(since=since, limit=limit)

    def evaluate_document(self, text: str) -> DocumentEvaluation:
        """Evaluate every top-level unit of `text` in order.

        A document with syntax errors produces diagnostics and runs nothing.
        """
        run_id = self._next_run_id()
        extraction = self._extractor.extract(text)
        if extraction.diagnostics:
            evaluation = DocumentEvaluation(
                run_id=run_id,
                diagnostics=extraction.diagnostics,
                annotations=(),
                outcomes=(),
            )
            self._audit_document(evaluation, text)
            return evaluation

        annotations: list[Annotation] = []

        def on_output(message: str, origin: SourceRange | None) -> None:
            if origin is not None:
                annotations.append(Annotation(origin, message, AnnotationKind.LOG))
                return
            self._handle_unattributed_output(run_id, message)

        context = self._evaluator.create_context(on_output)
        outcomes: list[UnitEvaluation] = []
        for unit in extraction.units:
            outcome = self._evaluator.evaluate(unit.text, unit.range, context)
            outcomes.append(UnitEvaluation(unit=unit, outcome=outcome))
            if self._history_enabled:
                self._history.record_step(
                    unit.text, unit.range, outcome.result, context, error=outcome.error
                )
            if outcome.error is not None:
                annotations.append(Annotation(unit.range, outcome.error, AnnotationKind.ERROR))
            elif outcome.result is not None and not is_logging_call(unit.node):
                annotations.append(
                    Annotation(unit.range, _render_result(outcome.result), AnnotationKind.RESULT)
                )

        evaluation = DocumentEvaluation(
            run_id=run_id,
            diagnostics=(),
            annotations=tuple(sorted(annotations, key=lambda item: item.range.start.line)),
            outcomes=tuple(outcomes),
        )
        self._audit_document(evaluation, text)
        return evaluation

    def _handle_unattributed_output(self, run_id: str, message: str) -> None:
        if self._audit_logger is None:
            default_output_sink(message, None)
            return
        self._audit_logger.append(
            EvaluationAuditEvent(
                timestamp=utc_timestamp(),
                run_id=run_id,
                kind="sandbox.output",
                ok=True,
                error_code=None,
                metadata={"message": message},
            )
        )

    def _audit_document(self, evaluation: DocumentEvaluation, text: str) -> None:
        if self._audit_logger is None:
            return
        error_code: str | None = None
        if evaluation.diagnostics:
            error_code = "SYNTAX_ERROR"
        elif not evaluation.ok:
            error_code = "EVALUATION_ERROR"
        self._audit_logger.append(
            EvaluationAuditEvent(
                timestamp=utc_timestamp(),
                run_id=evaluation.run_id,
                kind="document.evaluated",
                ok=evaluation.ok,
                error_code=error_code,
                metadata={
                    "source": text,
                    "units": len(evaluation.outcomes),
                    "diagnostics": len(evaluation.diagnostics),
                    "errors": sum(1 for item in evaluation.outcomes if not item.outcome.ok),
                    "history_enabled": self._history_enabled,
                    "history_steps": len(self._history),
                },
            )
        )

    def _next_run_id(self) -> str:
        self._run_counter += 1
        return f"run-{self._run_counter:06d}"


def _render_result(value: object) -> str:
    try:
        return repr(value)
    except Exception:  # noqa: BLE001 - user-defined __repr__ may raise
        return f"<{type(value).__name__}>"
