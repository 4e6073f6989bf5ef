"""Reassemble logical statements from the physical lines of a dump.

mysqldump writes each ``INSERT`` on a single line, but hand-edited dumps and
other tools spread them over several lines. The assembler groups the lines of
an ``INSERT`` into a single :class:`Candidate` and hands every other line
through untouched as a :class:`Passthrough`, strictly in input order.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, Union

from shared.observability.logger import get_logger

__all__ = [
    "Candidate",
    "INSERT_KEYWORD",
    "Passthrough",
    "QuoteTracker",
    "StatementAssembler",
    "Unit",
]

logger = get_logger(__name__)

INSERT_KEYWORD = "INSERT"
STATEMENT_END = ";"
_QUOTES = frozenset("'\"`")
_LINE_COMMENT = "line"
_BLOCK_COMMENT = "block"


@dataclass(slots=True, frozen=True)
class Passthrough:
    """A line emitted without transformation."""

    text: str


@dataclass(slots=True, frozen=True)
class Candidate:
    """A complete ``INSERT`` statement that may need anonymization."""

    text: str
    line_number: int


Unit = Union[Passthrough, Candidate]


class QuoteTracker:
    """Follow quoted literals across line boundaries.

    Handles single quotes, double quotes and backticks; backslash escapes
    and doubled quote characters inside string literals do not close them.
    Outside a literal, ``#`` and ``-- `` comments run to the end of the line
    and ``/* */`` comments may span lines; quotes inside them are ignored.
    """

    __slots__ = ("quote", "_escaped", "_pending_close", "_comment")

    def __init__(self) -> None:
        self.quote: str | None = None
        self._escaped = False
        self._pending_close = False
        self._comment: str | None = None

    @property
    def inside_literal(self) -> bool:
        return self.quote is not None and not self._pending_close

    @property
    def inside_comment(self) -> bool:
        """True while a ``/* */`` comment is still open."""

        return self._comment == _BLOCK_COMMENT

    def reset(self) -> None:
        self.quote = None
        self._escaped = False
        self._pending_close = False
        self._comment = None

    def feed(self, text: str) -> None:
        index = 0
        length = len(text)
        while index < length:
            char = text[index]
            index += 1
            if self._pending_close:
                self._pending_close = False
                if char == self.quote:
                    # Doubled quote, still inside the literal.
                    continue
                self.quote = None

            if self.quote is None:
                if self._comment == _LINE_COMMENT:
                    return
                if self._comment == _BLOCK_COMMENT:
                    if char == "*" and text.startswith("/", index):
                        self._comment = None
                        index += 1
                    continue
                if char in _QUOTES:
                    self.quote = char
                elif char == "#" or (char == "-" and _opens_dash_comment(text, index)):
                    self._comment = _LINE_COMMENT
                    return
                elif char == "/" and text.startswith("*", index):
                    self._comment = _BLOCK_COMMENT
                    index += 1
                continue

            if self._escaped:
                self._escaped = False
            elif char == "\\" and self.quote != "`":
                self._escaped = True
            elif char == self.quote:
                self._pending_close = True

    def finish_line(self) -> None:
        """Resolve a quote closed at the very end of a line."""

        if self._pending_close:
            self._pending_close = False
            self.quote = None
        if self._comment == _LINE_COMMENT:
            self._comment = None


def _opens_dash_comment(text: str, index: int) -> bool:
    # ``--`` starts a comment only when followed by whitespace or the line end.
    if not text.startswith("-", index):
        return False
    return index + 1 >= len(text) or text[index + 1].isspace()


class StatementAssembler:
    """Turn an iterable of raw lines into an ordered stream of units."""

    def __init__(self, *, flush_unterminated: bool = False) -> None:
        self._flush_unterminated = flush_unterminated

    def units(self, lines: Iterable[str]) -> Iterator[Unit]:
        """Yield one unit per passthrough line or completed ``INSERT``.

        ``OSError`` raised while reading ``lines`` propagates to the caller.
        """

        accumulating = False
        buffer: list[str] = []
        tracker = QuoteTracker()
        start_line = 0

        for line_number, line in enumerate(lines, start=1):
            if tracker.inside_literal:
                # Continuation of a literal spanning lines; keep it verbatim.
                buffer.append(line)
                tracker.feed(line)
                tracker.finish_line()
                if tracker.inside_literal:
                    continue
                stripped = line.rstrip()
            else:
                if len(line) >= len(INSERT_KEYWORD) and (
                    line[: len(INSERT_KEYWORD)].upper() == INSERT_KEYWORD
                ):
                    if not accumulating:
                        start_line = line_number
                    accumulating = True

                stripped = line.strip()
                if not accumulating:
                    if stripped or line:
                        yield Passthrough(stripped + "\n")
                    continue

                if not stripped:
                    continue
                buffer.append(stripped)
                tracker.feed(stripped)
                tracker.finish_line()
                if tracker.inside_literal:
                    # Preserve the line break that belongs to the literal.
                    buffer[-1] = line.lstrip()
                    if not buffer[-1].endswith("\n"):
                        buffer[-1] += "\n"
                    continue

            if stripped.endswith(STATEMENT_END) and not tracker.inside_comment:
                yield Candidate("".join(buffer).strip(), start_line)
                buffer.clear()
                tracker.reset()
                accumulating = False

        if accumulating and buffer:
            if self._flush_unterminated:
                logger.warning("unterminated_statement_flushed", line=start_line)
                yield Candidate("".join(buffer).strip(), start_line)
            else:
                logger.warning("unterminated_statement_discarded", line=start_line)
