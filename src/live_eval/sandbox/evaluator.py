"""Persistent sequential evaluator over one restricted namespace."""

from __future__ import annotations

import ast
import math
import time
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from types import CodeType

from RestrictedPython.Eval import default_guarded_getiter

from live_eval.extract.models import SourceRange
from live_eval.sandbox.output import (
    OutputChannel,
    OutputHandler,
    SandboxConsole,
    SandboxPrinter,
    default_output_sink,
)
from live_eval.sandbox.policy import (
    DEADLINE_CHECK_NAME,
    SANDBOX_FILENAME,
    build_guard_globals,
    compile_unit,
)

DEFAULT_TIMEOUT_SECONDS = 1.0
CAPABILITY_NAMES = frozenset({"console"})


@dataclass(slots=True, frozen=True)
class EvaluationTimeout(BaseException):
    """Raised inside sandboxed frames once the wall-clock budget is spent."""

    timeout_seconds: float

    def __str__(self) -> str:
        return f"evaluation timed out after {self.timeout_seconds:g}s"


@dataclass(slots=True, frozen=True)
class EvaluationOutcome:
    """Result of one unit: a value on success, a message on failure."""

    result: object = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class _Deadline:
    """Wall-clock budget polled by the checkpoints compiled into sandboxed code.

    Once expired, every later checkpoint raises again until the deadline is
    disarmed, so ``finally`` blocks and handlers cannot keep running.
    """

    __slots__ = ("_expires_at", "_timeout_seconds")

    def __init__(self) -> None:
        self._expires_at: float | None = None
        self._timeout_seconds = 0.0

    def arm(self, timeout_seconds: float) -> None:
        self._timeout_seconds = timeout_seconds
        self._expires_at = time.monotonic() + timeout_seconds

    def disarm(self) -> None:
        self._expires_at = None

    def check(self) -> None:
        if self._expires_at is not None and time.monotonic() >= self._expires_at:
            raise EvaluationTimeout(self._timeout_seconds)

    def guarded_iter(self, ob: Iterable[object]) -> Iterator[object]:
        """`_getiter_` hook: check the deadline before every item."""
        for item in default_guarded_getiter(ob):
            self.check()
            yield item


class ExecutionContext:
    """Long-lived sandbox namespace shared by every unit of one run."""

    def __init__(self, on_output: OutputHandler | None = None) -> None:
        self._current_range: SourceRange | None = None
        self._deadline = _Deadline()
        channel = OutputChannel(on_output or default_output_sink, lambda: self._current_range)
        printer = SandboxPrinter(channel)
        self._namespace: dict[str, object] = build_guard_globals()
        self._namespace[DEADLINE_CHECK_NAME] = self._deadline.check
        self._namespace["_getiter_"] = self._deadline.guarded_iter
        self._namespace["_print_"] = printer
        self._namespace["_print"] = printer
        self._namespace["console"] = SandboxConsole(channel)

    @property
    def current_range(self) -> SourceRange | None:
        """Range of the unit currently executing, if any."""
        return self._current_range

    def bindings(self) -> Iterator[tuple[str, object]]:
        """Yield user-visible bindings in definition order."""
        for name, value in list(self._namespace.items()):
            if name.startswith("_") or name in CAPABILITY_NAMES:
                continue
            yield name, value

    def get(self, name: str, default: object = None) -> object:
        return self._namespace.get(name, default)

    def __contains__(self, name: object) -> bool:
        return name in self._namespace


class SandboxEvaluator:
    """Evaluate unit text against an ExecutionContext with a per-unit deadline."""

    def __init__(self, timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS) -> None:
        if not math.isfinite(timeout_seconds) or timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be a finite positive number.")
        self._timeout_seconds = timeout_seconds

    @property
    def timeout_seconds(self) -> float:
        return self._timeout_seconds

    def create_context(self, on_output: OutputHandler | None = None) -> ExecutionContext:
        """Create a fresh isolated namespace with the sandbox logging facility."""
        return ExecutionContext(on_output)

    def evaluate(
        self, unit_text: str, unit_range: SourceRange, context: ExecutionContext
    ) -> EvaluationOutcome:
        """Run one unit; return its trailing expression value or an error message."""
        if not isinstance(context, ExecutionContext):
            raise TypeError("context must be created by SandboxEvaluator.create_context().")

        context._current_range = unit_range
        try:
            body, trailing = _compile_unit_text(unit_text)
            context._deadline.arm(self._timeout_seconds)
            if body is not None:
                exec(body, context._namespace)  # noqa: S102
            result = eval(trailing, context._namespace) if trailing is not None else None  # noqa: S307
        except Exception as exc:  # noqa: BLE001 - sandbox failures are returned as data
            return EvaluationOutcome(error=_format_error(exc))
        except (KeyboardInterrupt, SystemExit):
            raise
        except BaseException as exc:  # noqa: BLE001 - includes EvaluationTimeout
            return EvaluationOutcome(error=_format_error(exc))
        finally:
            context._deadline.disarm()
            context._current_range = None
        return EvaluationOutcome(result=result)


def _compile_unit_text(unit_text: str) -> tuple[CodeType | None, CodeType | None]:
    """Split text into statement code and a trailing expression whose value is the result."""
    tree = ast.parse(unit_text, filename=SANDBOX_FILENAME)
    if not tree.body or not isinstance(tree.body[-1], ast.Expr):
        return compile_unit(unit_text, "exec"), None
    leading = tree.body[:-1]
    trailing = compile_unit(ast.unparse(tree.body[-1].value), "eval")
    if not leading:
        return None, trailing
    body = compile_unit(ast.unparse(ast.Module(body=leading, type_ignores=[])), "exec")
    return body, trailing


def _format_error(exc: BaseException) -> str:
    message = str(exc)
    if isinstance(exc, SyntaxError) and exc.msg:
        message = exc.msg
    if not message:
        return type(exc).__name__
    return f"{type(exc).__name__}: {message}"
