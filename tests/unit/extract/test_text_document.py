from __future__ import annotations

import ast

import pytest

from live_eval.extract import (
    EvaluableUnit,
    ExtractionContractError,
    Position,
    SourceRange,
    TextDocument,
    is_logging_call,
    validate_units,
)


def test_line_index_handles_mixed_line_breaks() -> None:
    document = TextDocument("one\r\ntwo\rthree\nfour")

    assert document.line_count == 4
    assert [document.line_text(line) for line in range(4)] == ["one", "two", "three", "four"]
    assert document.line_start_offset(1) == 5
    assert document.offset_at(Position(2, 2)) == 11
    assert document.position_at(11) == Position(2, 2)


def test_positions_and_offsets_are_clamped() -> None:
    document = TextDocument("ab\ncd")

    assert document.offset_at(Position(9, 9)) == 5
    assert document.offset_at(Position(0, 99)) == 2
    assert document.position_at(-4) == Position(0, 0)
    assert document.position_at(100) == Position(1, 2)
    assert document.clamp_line(-1) == 0
    assert document.clamp_line(7) == 1


def test_get_text_slices_by_range() -> None:
    document = TextDocument("first = 1\nsecond = 2\n")
    source_range = document.range_for_offsets(10, 20)

    assert source_range == SourceRange.from_coords(1, 0, 1, 10)
    assert document.get_text(source_range) == "second = 2"
    assert document.get_text() == "first = 1\nsecond = 2\n"


def test_logging_call_predicate_matches_syntactic_forms_only() -> None:
    def first(source: str) -> ast.stmt:
        return ast.parse(source).body[0]

    assert is_logging_call(first("print('hi')"))
    assert is_logging_call(first("console.log(1, 2)"))
    assert is_logging_call(first("console.warn()"))
    assert not is_logging_call(first("log = console.log"))
    assert not is_logging_call(first("log('aliased')"))
    assert not is_logging_call(first("value = print('x')"))
    assert not is_logging_call(first("console.log.extra(1)"))
    assert not is_logging_call(first("len([1])"))


def test_validate_units_rejects_overlap() -> None:
    node = ast.parse("a = 1").body[0]
    units = [
        EvaluableUnit("a = 1", SourceRange.from_coords(0, 0, 0, 5), node),
        EvaluableUnit("1", SourceRange.from_coords(0, 4, 0, 5), node),
    ]

    with pytest.raises(ExtractionContractError, match="non-overlapping"):
        validate_units(units)


def test_validate_units_rejects_inverted_range() -> None:
    node = ast.parse("a = 1").body[0]
    units = [EvaluableUnit("a = 1", SourceRange.from_coords(0, 5, 0, 0), node)]

    with pytest.raises(ExtractionContractError, match="must not precede"):
        validate_units(units)
