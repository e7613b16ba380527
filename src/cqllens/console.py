"""Terminal presentation of runs and result sets using rich."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from cqllens.parsing.directives import resolve_directive
from cqllens.storage.models import ResultSet, RunOutcome, RunStatus, Statement, StatementOutcome
from cqllens.utils.formatting import (
    abort_message,
    completion_message,
    format_duration,
    format_lines,
    preview,
    truncate_error,
)

logger = logging.getLogger(__name__)

MAX_DISPLAY_ROWS = 200


def _cell(value: object) -> str:
    return "null" if value is None else str(value)


def render_result(result: ResultSet, max_rows: int = MAX_DISPLAY_ROWS) -> Table:
    """Build a rich table for a result set, truncated to ``max_rows``."""
    table = Table(title=result.table_path)
    for column in result.columns:
        table.add_column(f"{column.name}\n[dim]{escape(column.type)}[/dim]", overflow="fold")
    for row in result.rows[:max_rows]:
        table.add_row(*(escape(_cell(row.get(column.name))) for column in result.columns))
    if result.row_count > max_rows:
        table.caption = f"Showing {max_rows} of {result.row_count} rows"
    return table


def render_statements(statements: Sequence[Statement], lines: Sequence[str], window: int = 10) -> Table:
    """Table of segmented statements with their line ranges and directives."""
    table = Table(title="Statements")
    table.add_column("#", justify="right")
    table.add_column("Lines", style="cyan")
    table.add_column("Target", style="magenta")
    table.add_column("Statement", style="green")
    for index, statement in enumerate(statements, start=1):
        target = resolve_directive(lines, statement.first_code_line, window)
        table.add_row(
            str(index),
            format_lines(statement.start_line, statement.end_line),
            target or "-",
            escape(preview(statement.text)),
        )
    return table


class ConsolePresenter:
    """Presenter that prints run progress and results to a rich console."""

    def __init__(self, console: Console, message_format: str = "detailed", max_rows: int = MAX_DISPLAY_ROWS) -> None:
        self.console = console
        self.message_format = message_format
        self.max_rows = max_rows

    def nothing_to_execute(self) -> None:
        self.console.print("[yellow]No valid statements found.[/yellow]")

    def executing(self, statement: Statement) -> None:
        lines = format_lines(statement.start_line, statement.end_line)
        self.console.print(f"[dim]Executing (line {lines}): {escape(preview(statement.text))}[/dim]")

    def completed(self, outcome: StatementOutcome, total: int) -> None:
        record = outcome.record
        if total > 1:
            message = completion_message(record.elapsed_ms, record.row_count, self.message_format, outcome.index, total)
        else:
            message = completion_message(record.elapsed_ms, record.row_count, self.message_format)
        self.console.print(f"[green]{escape(message)}[/green]")

    def result(self, result: ResultSet) -> None:
        if not result.columns:
            self.console.print("[dim]No rows returned.[/dim]")
            return
        self.console.print(render_result(result, self.max_rows))

    def error(self, message: str, suggestion: str | None) -> None:
        self.console.print(f"[red]Query execution failed: {escape(truncate_error(message))}[/red]")
        if suggestion:
            self.console.print(f"[yellow]Suggestion: {escape(suggestion)}[/yellow]")

    def cancelled(self, message: str) -> None:
        self.console.print(f"[yellow]{escape(message)}[/yellow]")

    def finished(self, outcome: RunOutcome) -> None:
        if outcome.status is RunStatus.FAILED and outcome.stopped_at and outcome.statement_count > 1:
            self.console.print(f"[yellow]{abort_message(outcome.stopped_at, outcome.statement_count)}[/yellow]")
        if outcome.executed_count:
            self.console.print(
                f"[dim]{outcome.executed_count}/{outcome.statement_count} statements, "
                f"total {format_duration(outcome.total_elapsed_ms)}[/dim]"
            )
