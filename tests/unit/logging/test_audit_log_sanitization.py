from __future__ import annotations

import json
from pathlib import Path

from live_eval.logging import JsonlAuditLogger, sanitize_metadata
from live_eval.session import EvaluationSession


def test_audit_log_never_contains_source_text(tmp_path: Path) -> None:
    logger = JsonlAuditLogger(tmp_path / "audit.jsonl")
    session = EvaluationSession(audit_logger=logger)
    source = "API_KEY = 'top-secret'\nAPI_KEY\n"

    session.evaluate_document(source)

    raw = logger.path.read_text(encoding="utf-8")
    metadata = json.loads(raw.splitlines()[-1])["metadata"]
    assert metadata["source_present"] is True
    assert metadata["source_length"] == len(source)
    assert "source" not in metadata
    assert "top-secret" not in raw


def test_unattributed_output_is_logged_without_its_text(tmp_path: Path) -> None:
    logger = JsonlAuditLogger(tmp_path / "audit.jsonl")
    session = EvaluationSession(audit_logger=logger)
    evaluation = session.evaluate_document("def later():\n    print('token=abc123')\n\nlater\n")

    later = evaluation.outcomes[-1].outcome.result
    later()

    entries = logger.read()
    assert [entry["kind"] for entry in entries] == ["document.evaluated", "sandbox.output"]
    assert entries[-1]["run_id"] == evaluation.run_id
    assert entries[-1]["metadata"] == {
        "message_length": len("token=abc123"),
        "message_present": True,
    }
    assert "abc123" not in logger.path.read_text(encoding="utf-8")


def test_sanitize_metadata_keeps_shapes_only() -> None:
    sanitized = sanitize_metadata(
        {
            "kind": "document.evaluated",
            "units": 3,
            "message": "secret",
            "names": ["a", "b"],
            "options": {"z": 1, "a": 2},
            "path": Path("x"),
        }
    )

    assert sanitized == {
        "kind": "document.evaluated",
        "message_length": 6,
        "message_present": True,
        "names_length": 2,
        "names_type": "list",
        "options_keys": ["a", "z"],
        "options_type": "dict",
        "path_type": type(Path("x")).__name__,
        "units": 3,
    }
