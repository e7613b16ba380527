"""Lexical segmentation of CQL text into executable statements.

The scanner is a small explicit state machine. Each step consumes one or two
characters and classifies them, which is all the segmenter needs to cut
statements and track their line ranges. It is a best-effort lexical pass and
never raises for malformed input.
"""

from __future__ import annotations

import enum
import logging
import re
from collections.abc import Iterable

from cqllens.storage.models import Statement

logger = logging.getLogger(__name__)

COMMAND_KEYWORDS: tuple[str, ...] = (
    "SELECT",
    "INSERT",
    "UPDATE",
    "DELETE",
    "CREATE",
    "ALTER",
    "DROP",
    "TRUNCATE",
    "USE",
    "BEGIN",
    "APPLY",
    "BATCH",
    "DESCRIBE",
    "DESC",
    "LIST",
    "GRANT",
    "REVOKE",
    "COPY",
    "SOURCE",
    "CAPTURE",
    "CONSISTENCY",
    "SERIAL",
    "PAGING",
    "EXPAND",
    "TRACING",
    "HELP",
    "LOGIN",
)

_KEYWORD_RE = re.compile(r"^(%s)\b" % "|".join(COMMAND_KEYWORDS), re.IGNORECASE)
_TABLE_PATH_RE = re.compile(r"\bFROM\s+(\w+\.\w+|\w+)", re.IGNORECASE)


class LexState(enum.Enum):
    CODE = "code"
    STRING = "string"
    LINE_COMMENT = "line_comment"
    BLOCK_COMMENT = "block_comment"


class Token(enum.Enum):
    CODE = "code"
    COMMENT = "comment"
    SPACE = "space"
    NEWLINE = "newline"
    # Newline that cut off an unterminated string literal.
    BROKEN_LINE = "broken_line"
    TERMINATOR = "terminator"


class Scanner:
    """Character classifier tracking string and comment state."""

    def __init__(self) -> None:
        self.state = LexState.CODE
        self.quote = ""
        self.depth = 0
        self.escaped = False

    def advance(self, text: str, pos: int) -> tuple[Token, int]:
        """Classify the character(s) at ``pos``. Returns (token, consumed)."""
        char = text[pos]
        pair = text[pos : pos + 2]

        if char == "\n":
            broken = self.state is LexState.STRING
            self._end_line()
            return (Token.BROKEN_LINE if broken else Token.NEWLINE), 1

        if self.state is LexState.STRING:
            if self.escaped:
                self.escaped = False
            elif char == "\\":
                self.escaped = True
            elif char == self.quote:
                self.state = LexState.CODE
                self.quote = ""
            return Token.CODE, 1

        if self.state is LexState.LINE_COMMENT:
            return Token.COMMENT, 1

        if self.state is LexState.BLOCK_COMMENT:
            if pair == "/*":
                self.depth += 1
                return Token.COMMENT, 2
            if pair == "*/":
                self.depth -= 1
                if self.depth == 0:
                    self.state = LexState.CODE
                return Token.COMMENT, 2
            return Token.COMMENT, 1

        if char in ("'", '"'):
            self.state = LexState.STRING
            self.quote = char
            return Token.CODE, 1
        if pair == "--":
            self.state = LexState.LINE_COMMENT
            return Token.COMMENT, 2
        if pair == "/*":
            self.state = LexState.BLOCK_COMMENT
            self.depth = 1
            return Token.COMMENT, 2
        if char == ";":
            return Token.TERMINATOR, 1
        if char.isspace():
            return Token.SPACE, 1
        return Token.CODE, 1

    def _end_line(self) -> None:
        # Literals and line comments never continue past a newline.
        if self.state in (LexState.STRING, LexState.LINE_COMMENT):
            self.state = LexState.CODE
        self.quote = ""
        self.escaped = False

    def tokens(self, text: str) -> Iterable[tuple[Token, str]]:
        pos = 0
        while pos < len(text):
            token, size = self.advance(text, pos)
            yield token, text[pos : pos + size]
            pos += size


class _Accumulator:
    """Text and line bookkeeping for the statement being built."""

    def __init__(self, terminator_line: int | None = None) -> None:
        self.parts: list[str] = []
        self.code: list[str] = []
        self.start_line: int | None = None
        self.first_code_line: int | None = None
        # Comments trailing the previous statement's ';' on this line belong to it.
        self.terminator_line = terminator_line

    def add(self, token: Token, chunk: str, line: int) -> None:
        self.parts.append(chunk)
        if token is Token.COMMENT:
            self.code.append(" ")
            if self.start_line is None and line != self.terminator_line:
                self.start_line = line
            return
        self.code.append(chunk)
        if token is Token.CODE:
            if self.start_line is None:
                self.start_line = line
            if self.first_code_line is None:
                self.first_code_line = line

    def build(self, end_line: int) -> Statement | None:
        if self.start_line is None or self.first_code_line is None:
            return None
        if not is_command("".join(self.code)):
            logger.debug("Dropping non-command text at line %d", self.first_code_line)
            return None
        return Statement(
            text="".join(self.parts).strip(),
            start_line=self.start_line,
            end_line=end_line,
            first_code_line=self.first_code_line,
        )


def is_command(text: str) -> bool:
    """Check whether comment-free text starts with a known command keyword."""
    return bool(_KEYWORD_RE.match(text.strip()))


def segment(text: str, first_line: int = 0) -> list[Statement]:
    """Split ``text`` into statements with zero-based inclusive line ranges.

    ``first_line`` is added to every line number, which lets a caller pass a
    selection and get document-relative positions back.
    """
    statements: list[Statement] = []
    scanner = Scanner()
    current = _Accumulator()
    line = first_line

    for token, chunk in scanner.tokens(text):
        if token in (Token.TERMINATOR, Token.BROKEN_LINE):
            # An unterminated literal ends its statement at the line break so
            # the following lines are parsed from a clean state.
            statement = current.build(line)
            if statement is not None:
                statements.append(statement)
            if token is Token.BROKEN_LINE:
                logger.debug("Unterminated string literal on line %d", line)
                current = _Accumulator()
                line += 1
            else:
                current = _Accumulator(terminator_line=line)
            continue
        current.add(token, chunk, line)
        if token is Token.NEWLINE:
            line += 1

    statement = current.build(line)
    if statement is not None:
        statements.append(statement)

    if scanner.state is LexState.BLOCK_COMMENT:
        logger.debug("Unterminated block comment, treating end of text as terminator")
    return statements


def strip_comments(text: str) -> str:
    """Remove line and block comments, leaving string literals intact."""
    return "".join(chunk for token, chunk in Scanner().tokens(text) if token is not Token.COMMENT)


def join_statements(statements: Iterable[Statement]) -> str:
    """Render statements back into a script that segments the same way."""
    parts = []
    for statement in statements:
        scanner = Scanner()
        for _ in scanner.tokens(statement.text):
            pass
        # A trailing line comment or open literal would swallow the terminator.
        open_states = (LexState.LINE_COMMENT, LexState.STRING)
        terminator = "\n;" if scanner.state in open_states else ";"
        parts.append(statement.text + terminator)
    return "\n".join(parts)


def extract_table_path(text: str) -> str | None:
    """Return ``keyspace.table`` (or ``table``) named by a FROM clause."""
    match = _TABLE_PATH_RE.search(strip_comments(text))
    return match.group(1) if match else None
