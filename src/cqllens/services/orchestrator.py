"""Sequential execution of the statements found in a document.

One run walks the statements in source order: resolve a ``@conn`` directive,
switch target if needed, execute, record. The first failure (or declined
switch) ends the run; whatever finished before it stays recorded. Only the
last statement's result set is handed to the presenter for display, while
every executed statement contributes to timing and history.

The orchestrator keeps no per-run state on the instance, so one instance can
serve several documents. Runs against the same document are not serialized
here; that is up to the caller.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Protocol

from cqllens.parsing.directives import DIRECTIVE_WINDOW, resolve_directive
from cqllens.parsing.segmenter import extract_table_path, segment
from cqllens.services.suggestions import suggest_for_error
from cqllens.storage.history import HistoryStore
from cqllens.storage.models import (
    Document,
    ExecutionRecord,
    ResultSet,
    RunOutcome,
    RunStatus,
    Selection,
    Statement,
    StatementOutcome,
)

logger = logging.getLogger(__name__)

CANCELLED_MESSAGE = "Query execution cancelled by user."


class StatementExecutor(Protocol):
    async def execute(self, statement: str) -> ResultSet: ...


class TargetSwitcher(Protocol):
    def active_target_name(self) -> str | None: ...

    async def switch_target(self, name: str) -> bool:
        """Make ``name`` active. False means the switch was declined."""
        ...


class Presenter(Protocol):
    def nothing_to_execute(self) -> None: ...

    def executing(self, statement: Statement) -> None: ...

    def completed(self, outcome: StatementOutcome, total: int) -> None: ...

    def result(self, result: ResultSet) -> None: ...

    def error(self, message: str, suggestion: str | None) -> None: ...

    def cancelled(self, message: str) -> None: ...

    def finished(self, outcome: RunOutcome) -> None: ...


class NullPresenter:
    """Presenter that discards every notification."""

    def nothing_to_execute(self) -> None:
        pass

    def executing(self, statement: Statement) -> None:
        pass

    def completed(self, outcome: StatementOutcome, total: int) -> None:
        pass

    def result(self, result: ResultSet) -> None:
        pass

    def error(self, message: str, suggestion: str | None) -> None:
        pass

    def cancelled(self, message: str) -> None:
        pass

    def finished(self, outcome: RunOutcome) -> None:
        pass


class Orchestrator:
    """Run statements against an executor, in order, stopping at the first failure."""

    def __init__(
        self,
        executor: StatementExecutor,
        history: HistoryStore,
        switcher: TargetSwitcher | None = None,
        presenter: Presenter | None = None,
        directive_window: int = DIRECTIVE_WINDOW,
    ) -> None:
        self.executor = executor
        self.history = history
        self.switcher = switcher
        self.presenter: Presenter = presenter or NullPresenter()
        self.directive_window = directive_window

    async def run(self, document: Document, selection: Selection | None = None) -> RunOutcome:
        """Execute every statement in ``document`` (or in the selected lines)."""
        if selection is None:
            statements = segment(document.text)
        else:
            start = max(0, selection.start_line)
            selected = document.lines[start : selection.end_line + 1]
            statements = segment("\n".join(selected), first_line=start)
        return await self._run_statements(document, statements)

    async def run_statement_at(self, document: Document, start_line: int, end_line: int) -> RunOutcome:
        """Execute exactly the text on one line range as a single statement."""
        start_line = max(0, start_line)
        raw = "\n".join(document.lines[start_line : end_line + 1])
        text = raw.strip()
        if text.endswith(";"):
            text = text[:-1].strip()
        if not text:
            return await self._run_statements(document, [])

        # Segment the unstripped lines so leading blanks keep their line numbers.
        parsed = segment(raw, first_line=start_line)
        first_code_line = parsed[0].first_code_line if parsed else start_line
        statement = Statement(text=text, start_line=start_line, end_line=end_line, first_code_line=first_code_line)
        return await self._run_statements(document, [statement])

    async def _run_statements(self, document: Document, statements: list[Statement]) -> RunOutcome:
        outcome = RunOutcome(document_uri=document.uri, statement_count=len(statements))
        if not statements:
            logger.info("Nothing to execute in %s", document.uri)
            self.presenter.nothing_to_execute()
            return outcome

        outcome.status = RunStatus.COMPLETED
        lines = document.lines
        total = len(statements)

        for index, statement in enumerate(statements, start=1):
            directive = resolve_directive(lines, statement.first_code_line, self.directive_window)
            if directive is not None and not await self._ensure_target(directive, outcome, index):
                break

            step = await self._execute(document, statement, index, total)
            outcome.outcomes.append(step)

            if step.error is not None:
                self._abort(outcome, RunStatus.FAILED, index, step.error, step.suggestion)
                break

            outcome.total_elapsed_ms += step.record.elapsed_ms
            # Earlier result sets only count towards totals and history.
            if index == total and step.result is not None:
                outcome.displayed = step.result
                self.presenter.result(step.result)

        if outcome.outcomes:
            self.history.record_file_total(document.uri, outcome.total_elapsed_ms)

        logger.info(
            "Run over %s finished: %s (%d/%d statements, %dms)",
            document.uri,
            outcome.status.value,
            outcome.executed_count,
            total,
            outcome.total_elapsed_ms,
        )
        self.presenter.finished(outcome)
        return outcome

    async def _ensure_target(self, target: str, outcome: RunOutcome, index: int) -> bool:
        if self.switcher is None:
            logger.debug("No target switcher configured, ignoring @conn %s", target)
            return True
        if self.switcher.active_target_name() == target:
            return True

        try:
            switched = await self.switcher.switch_target(target)
        except asyncio.CancelledError:
            logger.info("Switch to target %s was cancelled", target)
            switched = False
        except Exception as e:
            logger.warning("Failed to switch to target %s: %s", target, e)
            self._abort(outcome, RunStatus.FAILED, index, str(e) or f"Failed to switch to target '{target}'", None)
            return False

        if not switched:
            self._abort(outcome, RunStatus.CANCELLED, index, None, None)
            self.presenter.cancelled(CANCELLED_MESSAGE)
            return False

        logger.info("Switched to target %s", target)
        return True

    async def _execute(self, document: Document, statement: Statement, index: int, total: int) -> StatementOutcome:
        target = self.switcher.active_target_name() if self.switcher is not None else None
        self.presenter.executing(statement)

        start = time.monotonic()
        try:
            result = await self.executor.execute(statement.text)
        except asyncio.CancelledError:
            message = "Statement execution was cancelled"
        except Exception as e:
            message = str(e) or e.__class__.__name__
        else:
            elapsed_ms = int((time.monotonic() - start) * 1000)
            if result.table_path is None:
                result.table_path = extract_table_path(statement.text)
            record = ExecutionRecord(elapsed_ms=elapsed_ms, row_count=result.row_count, succeeded=True)
            self.history.record(document.uri, statement.start_line, statement.end_line, record)
            step = StatementOutcome(statement=statement, index=index, record=record, target=target, result=result)
            self.presenter.completed(step, total)
            return step

        logger.warning("Statement %d/%d failed: %s", index, total, message)
        record = ExecutionRecord(elapsed_ms=0, row_count=0, succeeded=False)
        self.history.record(document.uri, statement.start_line, statement.end_line, record)
        return StatementOutcome(
            statement=statement,
            index=index,
            record=record,
            target=target,
            error=message,
            suggestion=suggest_for_error(message),
        )

    def _abort(
        self,
        outcome: RunOutcome,
        status: RunStatus,
        index: int,
        message: str | None,
        suggestion: str | None,
    ) -> None:
        outcome.status = status
        outcome.stopped_at = index
        outcome.error = message
        outcome.suggestion = suggestion
        if message is not None:
            self.presenter.error(message, suggestion)
