"""Forward-only line scanner shared by every parsing stage.

Wraps any iterable of text lines (an open text file, ``io.StringIO``, an
``httpx`` response decoded to text) and exposes them one at a time with a
single line of push-back, so a stage can stop *at* a line without consuming it.
"""

from __future__ import annotations

import io
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator


class LineScanner:
    """Lazy, finite, non-restartable sequence of lines without their newlines."""

    def __init__(self, lines: Iterable[str]) -> None:
        self._lines: Iterator[str] = iter(lines)
        self._current: str | None = None
        self._pushed_back = False
        self._line_number = 0

    @classmethod
    def from_text(cls, text: str) -> LineScanner:
        # newline="" keeps "\r\n" intact so _strip_newline sees the original ending
        return cls(io.StringIO(text, newline=""))

    @property
    def line_number(self) -> int:
        """1-based number of the current line (0 before the first advance)."""
        return self._line_number

    def advance(self) -> bool:
        """Move to the next line. Returns False once the input is exhausted."""
        if self._pushed_back:
            self._pushed_back = False
            return True

        raw = next(self._lines, None)
        if raw is None:
            return False

        self._current = _strip_newline(raw)
        self._line_number += 1
        return True

    def current(self) -> str:
        if self._current is None:
            raise RuntimeError("current() called before the first successful advance()")
        return self._current

    def push_back(self) -> None:
        """Make the next ``advance()`` yield the current line again."""
        if self._current is None:
            raise RuntimeError("push_back() called before the first successful advance()")
        self._pushed_back = True


def _strip_newline(line: str) -> str:
    if line.endswith("\r\n"):
        return line[:-2]
    if line.endswith(("\n", "\r")):
        return line[:-1]
    return line
