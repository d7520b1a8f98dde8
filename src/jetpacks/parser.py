"""Markdown-to-document parser for the Jetpacks README.

Line-oriented recursive descent over a ``LineScanner``. The expected layout is::

    # <title>

    <description>

    ## Jetpacks

    ## <article title>

    <article body>

    ## <article title>
    ...

Blank or whitespace-only lines between structural elements are skipped.
Article bodies are fence-aware: a line starting with a fence marker toggles
"inside code", and heading-like lines inside code are kept verbatim in the
body instead of starting a new article.

The parser does no I/O beyond reading its input and emits no logs.
"""

from __future__ import annotations

import io
from dataclasses import dataclass
from typing import TYPE_CHECKING

from jetpacks.errors import StructuralError, StructuralReason
from jetpacks.models.document import Document, ParserConfig, Section
from jetpacks.scanner import LineScanner

if TYPE_CHECKING:
    from collections.abc import Iterable


@dataclass(frozen=True)
class BodyResult:
    """Accumulated body text and whether the input ran out while reading it."""

    text: str
    exhausted: bool


def _is_blank(line: str) -> bool:
    return not line.strip()


def skip_blank_lines(scanner: LineScanner) -> bool:
    """Skip a run of blank lines, leaving the first non-blank line unconsumed.

    Returns False if the input is exhausted before a non-blank line is found.
    """
    while scanner.advance():
        if not _is_blank(scanner.current()):
            scanner.push_back()
            return True
    return False


def parse_heading(scanner: LineScanner, prefix: str) -> str:
    """Consume the next non-blank line as a heading and return its text after *prefix*.

    Raises StructuralError if the input ends first or if the next non-blank
    line does not start with *prefix*. Unrelated content is never skipped.
    """
    if not skip_blank_lines(scanner):
        raise StructuralError(
            StructuralReason.UNEXPECTED_END_OF_INPUT,
            f"Expected a heading starting with {prefix!r}, found end of input",
            scanner.line_number,
        )

    scanner.advance()
    line = scanner.current()
    if not line.startswith(prefix):
        raise StructuralError(
            StructuralReason.UNEXPECTED_LINE,
            f"Expected a heading starting with {prefix!r}, found {line!r}",
            scanner.line_number,
        )
    return line[len(prefix) :]


def _fence_marker(line: str, fence_markers: tuple[str, ...]) -> str | None:
    stripped = line.strip()
    for marker in fence_markers:
        if stripped.startswith(marker):
            return marker
    return None


def parse_body(
    scanner: LineScanner,
    terminator: str,
    fence_markers: tuple[str, ...] = ("```",),
) -> BodyResult:
    """Accumulate lines until a top-level *terminator* line or the end of input.

    The terminating line is pushed back so the caller can parse it as the
    next heading. Each accumulated line gets a trailing newline.
    """
    parts: list[str] = []
    open_fence: str | None = None

    while scanner.advance():
        line = scanner.current()

        marker = _fence_marker(line, fence_markers)
        if marker is not None:
            if open_fence is None:
                open_fence = marker
            elif marker == open_fence:
                open_fence = None
        elif open_fence is None and line.startswith(terminator):
            scanner.push_back()
            return BodyResult(text="".join(parts), exhausted=False)

        parts.append(line + "\n")

    return BodyResult(text="".join(parts), exhausted=True)


def parse_document(
    lines: Iterable[str],
    config: ParserConfig | None = None,
) -> Document:
    """Parse a complete README into a Document.

    *lines* is any iterable of text lines, typically an open text stream.
    Raises StructuralError on malformed input; read errors from *lines*
    propagate unchanged. A plain string is rejected; use parse_document_text.
    """
    if isinstance(lines, str):
        raise TypeError("parse_document() takes an iterable of lines; use parse_document_text()")

    config = config or ParserConfig()
    scanner = LineScanner(lines)

    title = parse_heading(scanner, config.title_prefix)

    skip_blank_lines(scanner)
    description = parse_body(scanner, config.divider, config.fence_markers)
    if description.exhausted:
        raise StructuralError(
            StructuralReason.MISSING_DIVIDER,
            f"Divider {config.divider!r} not found before end of input",
            scanner.line_number,
        )
    # The divider line carries no content of its own.
    parse_heading(scanner, config.divider)

    sections: list[Section] = []
    while skip_blank_lines(scanner):
        article_title = parse_heading(scanner, config.section_prefix)

        if not skip_blank_lines(scanner):
            sections.append(Section(title=article_title, body=""))
            break

        body = parse_body(scanner, config.section_prefix, config.fence_markers)
        sections.append(Section(title=article_title, body=body.text))
        if body.exhausted:
            break

    return Document(title=title, description=description.text, sections=tuple(sections))


def parse_document_text(text: str, config: ParserConfig | None = None) -> Document:
    """Parse a README held in memory."""
    return parse_document(io.StringIO(text, newline=""), config)
