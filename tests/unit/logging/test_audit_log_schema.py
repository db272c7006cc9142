from __future__ import annotations

import json
from pathlib import Path

from live_eval.config import ConfigOverrides, load_effective_config
from live_eval.logging import EvaluationAuditEvent, JsonlAuditLogger
from live_eval.session import EvaluationSession


def test_audit_log_writes_jsonl_schema(tmp_path: Path) -> None:
    config = load_effective_config(tmp_path, ConfigOverrides(audit_enabled=True))
    session = EvaluationSession(config)
    session.evaluate_document("a = 1\na + 1\n")

    audit_path = tmp_path / ".live_eval" / "audit.jsonl"
    assert audit_path.exists()

    lines = audit_path.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 1
    event = json.loads(lines[-1])

    assert set(event.keys()) == {
        "error_code",
        "kind",
        "metadata",
        "ok",
        "run_id",
        "timestamp",
    }
    assert event["run_id"] == "run-000001"
    assert event["kind"] == "document.evaluated"
    assert event["ok"] is True
    assert event["error_code"] is None
    assert event["timestamp"].endswith("Z")
    assert event["metadata"]["units"] == 2


def test_audit_is_disabled_by_default(tmp_path: Path) -> None:
    session = EvaluationSession.from_project(tmp_path)
    session.evaluate_document("a = 1\n")

    assert not (tmp_path / ".live_eval").exists()


def test_reader_filters_and_limits(tmp_path: Path) -> None:
    logger = JsonlAuditLogger(tmp_path / "nested" / "audit.jsonl")
    for index, stamp in enumerate(["2024-01-01T00:00:00.000Z", "2024-06-01T00:00:00.000Z"]):
        logger.append(
            EvaluationAuditEvent(
                timestamp=stamp,
                run_id=f"run-{index}",
                kind="document.evaluated",
                ok=True,
                error_code=None,
                metadata={},
            )
        )
    with logger.path.open("a", encoding="utf-8") as handle:
        handle.write("not json\n\n")

    assert [entry["run_id"] for entry in logger.read()] == ["run-0", "run-1"]
    assert [entry["run_id"] for entry in logger.read(since="2024-03-01")] == ["run-1"]
    assert [entry["run_id"] for entry in logger.read(limit=1)] == ["run-1"]
    assert logger.read(limit=0) == []
