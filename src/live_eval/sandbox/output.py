"""Sandboxed logging facility and argument formatting."""

from __future__ import annotations

import json
import sys
from collections.abc import Callable

from live_eval.extract.models import SourceRange

OutputHandler = Callable[[str, SourceRange | None], None]
RangeProvider = Callable[[], SourceRange | None]

UNSERIALIZABLE_PLACEHOLDER = "[Unserializable Object]"
_PRIMITIVE_TYPES = (str, int, float, bool, type(None))


def format_output_value(value: object) -> str:
    """Render one logging argument; non-primitives are serialized structurally."""
    if isinstance(value, _PRIMITIVE_TYPES):
        return str(value)
    try:
        return json.dumps(value, indent=2)
    except (TypeError, ValueError, RecursionError):
        return UNSERIALIZABLE_PLACEHOLDER


def format_output(values: tuple[object, ...], sep: str = " ") -> str:
    return sep.join(format_output_value(value) for value in values)


def default_output_sink(message: str, origin: SourceRange | None) -> None:
    """Fallback sink used when a context is created without an output handler."""
    location = f" line {origin.start.line + 1}" if origin is not None else ""
    sys.stderr.write(f"[sandbox{location}] {message}\n")


class OutputChannel:
    """Routes formatted output together with the range of the running unit."""

    __slots__ = ("_handler", "_current_range")

    def __init__(self, handler: OutputHandler, current_range: RangeProvider) -> None:
        self._handler = handler
        self._current_range = current_range

    def emit(self, message: str) -> None:
        self._handler(message, self._current_range())


class SandboxConsole:
    """`console` object exposed to sandboxed code."""

    __slots__ = ("_channel",)

    def __init__(self, channel: OutputChannel) -> None:
        self._channel = channel

    def log(self, *values: object) -> None:
        self._channel.emit(format_output(values))

    def info(self, *values: object) -> None:
        self._channel.emit(format_output(values))

    def warn(self, *values: object) -> None:
        self._channel.emit(format_output(values))

    def error(self, *values: object) -> None:
        self._channel.emit(format_output(values))

    def debug(self, *values: object) -> None:
        self._channel.emit(format_output(values))


class SandboxPrinter:
    """Target of restricted `print(...)` calls.

    Restricted bytecode rewrites `print(...)` into `_print._call_print(...)`,
    where `_print` is obtained from the `_print_` factory.
    """

    __slots__ = ("_channel",)

    def __init__(self, channel: OutputChannel) -> None:
        self._channel = channel

    def __call__(self, _getattr: object = None) -> SandboxPrinter:
        return self

    def _call_print(
        self,
        *values: object,
        sep: str | None = " ",
        end: str | None = "\n",
        file: object = None,
        flush: bool = False,
    ) -> None:
        _ = end
        _ = file
        _ = flush
        self._channel.emit(format_output(values, sep=" " if sep is None else sep))
