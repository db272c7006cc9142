"""Python AST extractor for top-level evaluable units."""

from __future__ import annotations

import ast
import re

from live_eval.extract.document import TextDocument
from live_eval.extract.models import (
    Diagnostic,
    EvaluableUnit,
    ExtractionResult,
    Position,
    SourceRange,
    validate_units,
)

PARSE_FLAGS = ast.PyCF_ONLY_AST | ast.PyCF_ALLOW_TOP_LEVEL_AWAIT
DOCUMENT_FILENAME = "<document>"

ERROR_WIDEN_COLUMNS = 5
FIRST_LINE_HIGHLIGHT_COLUMNS = 10

LOGGING_FUNCTIONS = frozenset({"print"})
LOGGING_OBJECTS = frozenset({"console"})

_LOCATION_SUFFIX = re.compile(r"\s*\(\d+:\d+\)$")
_DECORATOR_GAP = frozenset(" \t\f(\\")


class UnitExtractor:
    """Split a document into top-level statements with character ranges."""

    name = "python"

    def extract(self, text: str) -> ExtractionResult:
        """Parse text and return ordered units, or one diagnostic on failure."""
        document = TextDocument(text)
        try:
            tree = compile(text, DOCUMENT_FILENAME, "exec", flags=PARSE_FLAGS, dont_inherit=True)
        except SyntaxError as exc:
            return ExtractionResult(diagnostics=(_syntax_diagnostic(document, exc),))
        except (ValueError, RecursionError, MemoryError) as exc:
            diagnostic = Diagnostic(
                range=_first_line_range(document),
                message=f"Parsing error: {exc}",
            )
            return ExtractionResult(diagnostics=(diagnostic,))

        units: list[EvaluableUnit] = []
        for node in tree.body:
            source_range = _statement_range(document, node)
            if source_range is None:
                continue
            units.append(
                EvaluableUnit(
                    text=document.get_text(source_range),
                    range=source_range,
                    node=node,
                )
            )
        validate_units(units)
        return ExtractionResult(units=tuple(units))


def is_logging_call(node: ast.stmt) -> bool:
    """Return True for a bare `print(...)` or `console.<method>(...)` statement.

    Only the syntactic form is matched; aliases such as `log = console.log`
    followed by `log(...)` are not recognized.
    """
    if not isinstance(node, ast.Expr) or not isinstance(node.value, ast.Call):
        return False
    dotted = _dotted_name(node.value.func)
    if dotted is None:
        return False
    if dotted in LOGGING_FUNCTIONS:
        return True
    owner, _, method = dotted.partition(".")
    return owner in LOGGING_OBJECTS and bool(method) and "." not in method


def _dotted_name(node: ast.AST) -> str | None:
    if isinstance(node, ast.Name):
        return node.id
    if isinstance(node, ast.Attribute):
        parent = _dotted_name(node.value)
        if parent is None:
            return None
        return f"{parent}.{node.attr}"
    return None


def _statement_range(document: TextDocument, node: ast.stmt) -> SourceRange | None:
    lineno = getattr(node, "lineno", None)
    col_offset = getattr(node, "col_offset", None)
    end_lineno = getattr(node, "end_lineno", None)
    end_col_offset = getattr(node, "end_col_offset", None)
    if lineno is None or col_offset is None or end_lineno is None or end_col_offset is None:
        return None

    start = _char_position(document, lineno, col_offset)
    decorators = getattr(node, "decorator_list", None)
    if decorators:
        first = decorators[0]
        start = _decorator_start(document, _char_position(document, first.lineno, first.col_offset))
    end = _absorb_semicolon(document, _char_position(document, end_lineno, end_col_offset))
    if end < start:
        return None
    return SourceRange(start=start, end=end)


def _char_position(document: TextDocument, lineno: int, byte_column: int) -> Position:
    """Convert an ast (1-based line, UTF-8 byte column) pair to a character position."""
    line = document.clamp_line(lineno - 1)
    encoded = document.line_text(line).encode("utf-8", errors="surrogatepass")
    column = len(encoded[:byte_column].decode("utf-8", errors="ignore"))
    return Position(line=line, column=column)


def _decorator_start(document: TextDocument, expression_start: Position) -> Position:
    """Walk back from a decorator expression to its ``@``.

    Opening parentheses, blanks and line continuations may sit in between,
    as in ``@(deco)`` or ``@ (\\n    deco\\n)``.
    """
    line = expression_start.line
    column = expression_start.column - 1
    while line >= 0:
        text = document.line_text(line)
        while column >= 0 and text[column] in _DECORATOR_GAP:
            column -= 1
        if column >= 0:
            if text[column] == "@":
                return Position(line=line, column=column)
            return expression_start
        line -= 1
        if line >= 0:
            column = len(document.line_text(line)) - 1
    return expression_start


def _absorb_semicolon(document: TextDocument, end: Position) -> Position:
    text = document.line_text(end.line)
    column = end.column
    while column < len(text) and text[column] in " \t\f":
        column += 1
    if column < len(text) and text[column] == ";":
        return Position(line=end.line, column=column + 1)
    return end


def _syntax_diagnostic(document: TextDocument, exc: SyntaxError) -> Diagnostic:
    message = exc.msg if exc.msg else str(exc)
    return Diagnostic(
        range=_syntax_error_range(document, exc),
        message=_LOCATION_SUFFIX.sub("", message),
    )


def _syntax_error_range(document: TextDocument, exc: SyntaxError) -> SourceRange:
    if exc.lineno is None or exc.lineno < 1:
        return _first_line_range(document)

    line = document.clamp_line(exc.lineno - 1)
    line_text = document.line_text(line)
    column = max(0, (exc.offset or 1) - 1)

    end_lineno = getattr(exc, "end_lineno", None)
    end_offset = getattr(exc, "end_offset", None)
    if end_lineno is not None and end_offset is not None and end_lineno >= 1 and end_offset >= 1:
        start = Position(line=line, column=min(column, len(line_text)))
        end_line = document.clamp_line(end_lineno - 1)
        end_column = min(end_offset - 1, len(document.line_text(end_line)))
        end = Position(line=end_line, column=end_column)
        if end > start:
            return SourceRange(start=start, end=end)

    safe_start = max(0, min(column, len(line_text) - 1 if line_text else 0))
    safe_end = min(column + ERROR_WIDEN_COLUMNS, len(line_text))
    return SourceRange.from_coords(line, safe_start, line, max(safe_end, safe_start + 1))


def _first_line_range(document: TextDocument) -> SourceRange:
    width = min(FIRST_LINE_HIGHLIGHT_COLUMNS, len(document.line_text(0)))
    return SourceRange.from_coords(0, 0, 0, width)
