from __future__ import annotations

from pathlib import Path

from live_eval.config import ConfigOverrides, default_config, load_effective_config
from live_eval.session import AnnotationKind, EvaluationSession

DOCUMENT = """items = [3, 1, 2]
print('sorting', len(items))
ordered = sorted(items)
ordered
console.log(ordered)
ordered[5]
total = sum(ordered); total
"""


def test_document_pass_produces_sorted_annotations(tmp_path: Path) -> None:
    session = EvaluationSession(default_config(tmp_path))

    evaluation = session.evaluate_document(DOCUMENT)

    assert evaluation.diagnostics == ()
    assert [(item.range.start.line, item.kind, item.text) for item in evaluation.annotations] == [
        (1, AnnotationKind.LOG, "sorting 3"),
        (3, AnnotationKind.RESULT, "[1, 2, 3]"),
        (4, AnnotationKind.LOG, "[\n  1,\n  2,\n  3\n]"),
        (5, AnnotationKind.ERROR, "IndexError: list index out of range"),
        (6, AnnotationKind.RESULT, "6"),
    ]
    assert len(evaluation.outcomes) == 8
    assert not evaluation.ok


def test_syntax_error_runs_nothing_and_records_nothing(tmp_path: Path) -> None:
    session = EvaluationSession(default_config(tmp_path))

    evaluation = session.evaluate_document('a = 1\nb = "open\n')

    assert len(evaluation.diagnostics) == 1
    assert evaluation.annotations == ()
    assert evaluation.outcomes == ()
    assert len(session.history) == 0


def test_each_pass_starts_from_a_fresh_context(tmp_path: Path) -> None:
    session = EvaluationSession(default_config(tmp_path))
    session.evaluate_document("counter = 1\n")

    evaluation = session.evaluate_document("counter\n")

    assert evaluation.annotations[0].kind is AnnotationKind.ERROR
    assert evaluation.annotations[0].text.startswith("NameError")


def test_history_accumulates_across_passes_until_cleared(tmp_path: Path) -> None:
    session = EvaluationSession(default_config(tmp_path))
    session.evaluate_document("a = 1\nb = a + 1\n")
    session.evaluate_document("a = 10\n")

    steps = session.history.all_steps()
    assert [step.unit_text for step in steps] == ["a = 1", "b = a + 1", "a = 10"]
    assert [binding.name for binding in session.history.changed_variables(1)] == ["b"]
    assert session.history.step_back() == steps[1]

    session.clear_history()
    assert session.history.all_steps() == []


def test_history_can_be_toggled(tmp_path: Path) -> None:
    config = load_effective_config(tmp_path, ConfigOverrides(history_enabled=False))
    session = EvaluationSession(config)
    session.evaluate_document("a = 1\n")
    assert len(session.history) == 0

    session.enable_history()
    session.evaluate_document("a = 1\n")
    assert len(session.history) == 1

    session.disable_history()
    assert not session.history_enabled


def test_timeout_in_one_unit_does_not_stop_later_units(tmp_path: Path) -> None:
    config = load_effective_config(tmp_path, ConfigOverrides(timeout_seconds=0.2))
    session = EvaluationSession(config)

    evaluation = session.evaluate_document("while True:\n    pass\nafter = 'ran'\nafter\n")

    assert [item.kind for item in evaluation.annotations] == [
        AnnotationKind.ERROR,
        AnnotationKind.RESULT,
    ]
    assert evaluation.annotations[0].text.startswith("EvaluationTimeout")
    assert evaluation.annotations[1].text == "'ran'"
    assert session.history.current_step().error is None


def test_public_dict_is_presentation_ready(tmp_path: Path) -> None:
    session = EvaluationSession(default_config(tmp_path))

    payload = session.evaluate_document("1 + 1\n").to_public_dict()

    assert payload["run_id"] == "run-000001"
    assert payload["diagnostics"] == []
    assert payload["annotations"] == [
        {
            "range": {"start": {"line": 0, "column": 0}, "end": {"line": 0, "column": 5}},
            "text": "2",
            "kind": "result",
        }
    ]
