"""
Line cursor.

Forward-only reader over the materialized lines of a log with look-ahead
and pushback, so parsers can read past the end of their block and hand
the extra lines back.
"""

from typing import Iterable, List, Optional


class LineCursor:
    """Cursor over a list of lines."""

    def __init__(self, lines: Iterable[str]):
        self._lines: List[str] = [line.rstrip("\r\n") for line in lines]
        self._position = 0

    @property
    def position(self) -> int:
        """Index of the next line to be read; also the number of lines consumed."""
        return self._position

    @property
    def line_number(self) -> int:
        """1-based number of the last line read."""
        return self._position

    @property
    def at_end(self) -> bool:
        return self._position >= len(self._lines)

    def next_line(self) -> Optional[str]:
        """Return the next line and advance, or None at the end."""
        if self.at_end:
            return None
        line = self._lines[self._position]
        self._position += 1
        return line

    def peek(self, offset: int = 0) -> Optional[str]:
        """
        Look ahead without consuming.

        Args:
            offset: 0 for the next line, 1 for the one after, and so on

        Returns:
            The line, or None past the end
        """
        index = self._position + offset
        if index < 0 or index >= len(self._lines):
            return None
        return self._lines[index]

    def pushback(self, count: int = 1) -> None:
        """Step back over lines that were read but belong to the next block."""
        if count > self._position:
            raise ValueError(f"Cannot push back {count} lines at position {self._position}")
        self._position -= count

    def __len__(self) -> int:
        return len(self._lines)
