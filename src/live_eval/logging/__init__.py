"""Structured logging utilities."""

from .audit import EvaluationAuditEvent, JsonlAuditLogger, sanitize_metadata, utc_timestamp

__all__ = ["EvaluationAuditEvent", "JsonlAuditLogger", "sanitize_metadata", "utc_timestamp"]
