"""Restricted sandbox and sequential evaluator."""

from .evaluator import (
    DEFAULT_TIMEOUT_SECONDS,
    EvaluationOutcome,
    EvaluationTimeout,
    ExecutionContext,
    SandboxEvaluator,
)
from .output import OutputHandler, format_output, format_output_value
from .policy import PolicyBlockedError, SandboxPolicy, build_safe_builtins, compile_unit

__all__ = [
    "DEFAULT_TIMEOUT_SECONDS",
    "EvaluationOutcome",
    "EvaluationTimeout",
    "ExecutionContext",
    "OutputHandler",
    "PolicyBlockedError",
    "SandboxEvaluator",
    "SandboxPolicy",
    "build_safe_builtins",
    "compile_unit",
    "format_output",
    "format_output_value",
]
