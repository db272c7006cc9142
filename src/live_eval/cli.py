"""Command line driver: evaluate a document read from stdin, print JSON."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import TextIO

from live_eval.config import ConfigOverrides
from live_eval.session import EvaluationSession

AUDIT_READ_LIMIT_DEFAULT = 50
AUDIT_READ_LIMIT_CAP = 1000


def build_arg_parser() -> argparse.ArgumentParser:
    """Build argument parser for session startup configuration."""
    parser = argparse.ArgumentParser(prog="live-eval")
    parser.add_argument("--project-root", required=False, default=".")
    parser.add_argument("--data-dir", required=False, default=None)
    parser.add_argument("--timeout-seconds", type=float, required=False, default=None)
    parser.add_argument("--history-capacity", type=int, required=False, default=None)
    parser.add_argument("--history", choices=("true", "false"), required=False, default=None)
    parser.add_argument("--audit", choices=("true", "false"), required=False, default=None)
    parser.add_argument(
        "--show-history",
        action="store_true",
        help="Include recorded steps in the output.",
    )
    parser.add_argument(
        "--audit-log",
        action="store_true",
        help="Print recent audit records instead of evaluating stdin.",
    )
    parser.add_argument("--since", required=False, default=None)
    parser.add_argument("--limit", type=int, required=False, default=AUDIT_READ_LIMIT_DEFAULT)
    return parser


def _parse_toggle(value: str | None) -> bool | None:
    if value is None:
        return None
    return value == "true"


def run(session: EvaluationSession, text: str, show_history: bool) -> dict[str, object]:
    """Evaluate `text` once and build the JSON payload."""
    evaluation = session.evaluate_document(text)
    payload = evaluation.to_public_dict()
    payload["ok"] = evaluation.ok
    if show_history:
        payload["history"] = {
            "current_index": session.history.current_step_index(),
            "steps": [step.to_public_dict() for step in session.history.all_steps()],
        }
    return payload


def main(
    argv: list[str] | None = None,
    in_stream: TextIO | None = None,
    out_stream: TextIO | None = None,
) -> int:
    """Entrypoint for the live-eval command."""
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    overrides = ConfigOverrides(
        timeout_seconds=args.timeout_seconds,
        history_enabled=_parse_toggle(args.history),
        history_capacity=args.history_capacity,
        audit_enabled=_parse_toggle(args.audit),
        data_dir=Path(args.data_dir).resolve() if args.data_dir is not None else None,
    )
    session = EvaluationSession.from_project(Path(args.project_root), overrides)
    out = out_stream or sys.stdout
    if args.audit_log:
        limit = min(max(args.limit, 1), AUDIT_READ_LIMIT_CAP)
        _write_json(out, {"entries": session.read_audit_entries(args.since, limit)})
        return 0
    source = (in_stream or sys.stdin).read()
    payload = run(session, source, show_history=args.show_history)
    _write_json(out, payload)
    return 0 if payload["ok"] else 1


def _write_json(out: TextIO, payload: dict[str, object]) -> None:
    out.write(f"{json.dumps(payload, sort_keys=True)}\n")
    out.flush()


if __name__ == "__main__":
    raise SystemExit(main())
