"""Data models for cqllens."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class Statement:
    """One executable command cut out of a larger text buffer.

    Line numbers are zero-based and inclusive. ``start_line`` covers any
    leading comment block, ``first_code_line`` is the first line holding
    actual command text and ``end_line`` is the line of the terminating
    semicolon (or the last line of the buffer when unterminated).
    """

    text: str
    start_line: int
    end_line: int
    first_code_line: int


@dataclass(frozen=True)
class Selection:
    """An inclusive range of document lines chosen by the user."""

    start_line: int
    end_line: int


@dataclass
class Document:
    """A text buffer together with the identity used for history keys."""

    uri: str
    text: str

    @property
    def lines(self) -> list[str]:
        return self.text.split("\n")


@dataclass(frozen=True)
class Column:
    name: str
    type: str = "unknown"


Row = dict[str, Any]


@dataclass
class ResultSet:
    """Tabular result returned by a statement executor."""

    columns: list[Column] = field(default_factory=list)
    rows: list[Row] = field(default_factory=list)
    table_path: str | None = None

    @property
    def row_count(self) -> int:
        return len(self.rows)


@dataclass(frozen=True)
class ExecutionRecord:
    """Outcome of the most recent execution of one statement position."""

    elapsed_ms: int = 0
    row_count: int = 0
    succeeded: bool = True
    observed_at: datetime = field(default_factory=datetime.now)


class RunStatus(enum.Enum):
    EMPTY = "empty"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class StatementOutcome:
    """Everything one statement contributed to a run."""

    statement: Statement
    index: int
    record: ExecutionRecord
    target: str | None = None
    result: ResultSet | None = None
    error: str | None = None
    suggestion: str | None = None


@dataclass
class RunOutcome:
    """Aggregate of one orchestrator run over a text buffer."""

    document_uri: str
    statement_count: int = 0
    outcomes: list[StatementOutcome] = field(default_factory=list)
    status: RunStatus = RunStatus.EMPTY
    total_elapsed_ms: int = 0
    displayed: ResultSet | None = None
    error: str | None = None
    suggestion: str | None = None
    stopped_at: int | None = None

    @property
    def executed_count(self) -> int:
        return len(self.outcomes)

    @property
    def succeeded(self) -> bool:
        return self.status is RunStatus.COMPLETED

    @property
    def total_rows(self) -> int:
        return sum(o.record.row_count for o in self.outcomes)
