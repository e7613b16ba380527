"""Shared test fixtures."""

from __future__ import annotations

import pytest

from cqllens.config import (
    AppConfig,
    EditorConfig,
    HistoryConfig,
    LoggingConfig,
    QueryConfig,
    StorageConfig,
    TargetConfig,
)
from cqllens.errors import ExecutionError, TargetNotFoundError
from cqllens.storage.history import ExecutionHistory
from cqllens.storage.models import Column, ResultSet


@pytest.fixture
def app_config(tmp_path):
    """Create a test configuration."""
    return AppConfig(
        targets=[
            TargetConfig(name="dev", contact_points=["10.0.0.1"], keyspace="app"),
            TargetConfig(name="prod", contact_points=["10.0.1.1", "10.0.1.2"]),
        ],
        default_target="dev",
        editor=EditorConfig(warn_on_target_switch=True, directive_window=10),
        query=QueryConfig(timeout=5),
        history=HistoryConfig(max_entries=100, evict_count=20),
        storage=StorageConfig(db_path=str(tmp_path / "journal.db")),
        logging=LoggingConfig(level="DEBUG", file=str(tmp_path / "test.log")),
    )


class FakeExecutor:
    """Executor double that records calls and fails on chosen statements."""

    def __init__(self, failures: dict[str, str] | None = None, rows: dict[str, int] | None = None) -> None:
        self.failures = failures or {}
        self.rows = rows or {}
        self.calls: list[str] = []

    async def execute(self, statement: str) -> ResultSet:
        self.calls.append(statement)
        for needle, message in self.failures.items():
            if needle in statement:
                raise ExecutionError(message)
        count = next((n for needle, n in self.rows.items() if needle in statement), 0)
        return ResultSet(
            columns=[Column("id", "int")],
            rows=[{"id": i} for i in range(count)],
        )


class FakeSwitcher:
    """Target switcher double with a fixed set of known targets."""

    def __init__(self, known: set[str], active: str | None = None, accept: bool = True) -> None:
        self.known = known
        self.active = active
        self.accept = accept
        self.requested: list[str] = []

    def active_target_name(self) -> str | None:
        return self.active

    async def switch_target(self, name: str) -> bool:
        self.requested.append(name)
        if name not in self.known:
            raise TargetNotFoundError(name)
        if not self.accept:
            return False
        self.active = name
        return True


class RecordingPresenter:
    """Presenter double that keeps every notification in order."""

    def __init__(self) -> None:
        self.events: list[tuple] = []

    def nothing_to_execute(self) -> None:
        self.events.append(("nothing",))

    def executing(self, statement) -> None:
        self.events.append(("executing", statement.text))

    def completed(self, outcome, total) -> None:
        self.events.append(("completed", outcome.index, total))

    def result(self, result) -> None:
        self.events.append(("result", result))

    def error(self, message, suggestion) -> None:
        self.events.append(("error", message, suggestion))

    def cancelled(self, message) -> None:
        self.events.append(("cancelled", message))

    def finished(self, outcome) -> None:
        self.events.append(("finished", outcome.status))

    def of(self, kind: str) -> list[tuple]:
        return [event for event in self.events if event[0] == kind]


@pytest.fixture
def history():
    return ExecutionHistory()


@pytest.fixture
def presenter():
    return RecordingPresenter()
