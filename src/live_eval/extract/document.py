"""Line index over one immutable document snapshot."""

from __future__ import annotations

import re
from bisect import bisect_right

from live_eval.extract.models import Position, SourceRange

_LINE_BREAK = re.compile(r"\r\n|\r|\n")


class TextDocument:
    """Offset/position conversion using the same line breaks as the Python tokenizer."""

    def __init__(self, text: str) -> None:
        self._text = text
        self._line_starts = [0]
        self._line_ends: list[int] = []
        for match in _LINE_BREAK.finditer(text):
            self._line_ends.append(match.start())
            self._line_starts.append(match.end())
        self._line_ends.append(len(text))

    @property
    def text(self) -> str:
        return self._text

    @property
    def line_count(self) -> int:
        return len(self._line_starts)

    def clamp_line(self, line: int) -> int:
        """Clamp a line index into [0, line_count - 1]."""
        return max(0, min(line, self.line_count - 1))

    def line_text(self, line: int) -> str:
        """Return the text of a line without its line break."""
        index = self.clamp_line(line)
        return self._text[self._line_starts[index] : self._line_ends[index]]

    def line_start_offset(self, line: int) -> int:
        return self._line_starts[self.clamp_line(line)]

    def offset_at(self, position: Position) -> int:
        """Convert a position to a character offset, clamping out-of-range values."""
        line = self.clamp_line(position.line)
        column = max(0, min(position.column, self._line_ends[line] - self._line_starts[line]))
        return self._line_starts[line] + column

    def position_at(self, offset: int) -> Position:
        """Convert a character offset to a position, clamping out-of-range values."""
        clamped = max(0, min(offset, len(self._text)))
        line = bisect_right(self._line_starts, clamped) - 1
        column = min(clamped, self._line_ends[line]) - self._line_starts[line]
        return Position(line=line, column=column)

    def get_text(self, source_range: SourceRange | None = None) -> str:
        """Return the full text, or the slice covered by a range."""
        if source_range is None:
            return self._text
        start = self.offset_at(source_range.start)
        end = self.offset_at(source_range.end)
        return self._text[start:end]

    def range_for_offsets(self, start: int, end: int) -> SourceRange:
        return SourceRange(self.position_at(start), self.position_at(end))
