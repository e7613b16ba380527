"""cassandra-driver backed statement executor and target switcher."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from typing import Any, Callable

from cqllens.config import AppConfig, TargetConfig
from cqllens.errors import ExecutionError, TargetNotFoundError
from cqllens.storage.models import Column, ResultSet

logger = logging.getLogger(__name__)

# (target, currently active target) -> proceed?
ConfirmSwitch = Callable[[str, "str | None"], bool]


def _type_name(cql_type: Any) -> str:
    if cql_type is None:
        return "unknown"
    if hasattr(cql_type, "cql_parameterized_type"):
        return cql_type.cql_parameterized_type()
    return getattr(cql_type, "typename", None) or str(cql_type)


def to_result_set(result: Any) -> ResultSet:
    """Convert a driver result into plain columns and dict rows.

    Only the first page is materialized. DDL and DML results carry no columns
    and produce an empty result set.
    """
    names = list(getattr(result, "column_names", None) or [])
    types = list(getattr(result, "column_types", None) or [])
    columns = [Column(name=name, type=_type_name(types[i] if i < len(types) else None)) for i, name in enumerate(names)]

    rows = []
    for row in getattr(result, "current_rows", None) or []:
        if isinstance(row, Mapping):
            rows.append({column.name: row.get(column.name) for column in columns} if columns else dict(row))
        else:
            rows.append(dict(zip(names, row)))
    return ResultSet(columns=columns, rows=rows)


class CassandraRunner:
    """Execute CQL statements against named targets from the configuration."""

    def __init__(self, config: AppConfig, confirm: ConfirmSwitch | None = None) -> None:
        self.config = config
        self.confirm = confirm
        self._active: TargetConfig | None = None
        self._cluster: Any = None
        self._session: Any = None

    def active_target_name(self) -> str | None:
        return self._active.name if self._active is not None else None

    def is_connected(self) -> bool:
        return self._session is not None

    async def connect(self, name: str) -> None:
        """Open a session on target ``name``, closing any previous one."""
        target = self.config.find_target(name)
        if target is None:
            raise TargetNotFoundError(name)

        await self.close()
        try:
            self._cluster, self._session = await asyncio.to_thread(self._open, target)
        except Exception as e:
            logger.exception("Failed to connect to target %s", name)
            raise ExecutionError(f"Failed to connect to target '{name}': {e}") from e
        self._active = target
        logger.info("Connected to target %s (%s)", name, ", ".join(target.contact_points))

    async def switch_target(self, name: str) -> bool:
        """Switch to ``name``. Returns False when the confirmation is declined."""
        if self.config.find_target(name) is None:
            raise TargetNotFoundError(name)
        current = self.active_target_name()
        if current == name:
            return True

        if self.config.editor.warn_on_target_switch and self.confirm is not None:
            if not self.confirm(name, current):
                logger.info("Switch from %s to %s declined", current, name)
                return False

        await self.connect(name)
        return True

    async def execute(self, statement: str) -> ResultSet:
        """Execute one statement on the active session."""
        if not self.is_connected():
            raise ExecutionError("Not connected to Cassandra. Please connect to a cluster first.")

        try:
            return await asyncio.to_thread(self._run, statement)
        except Exception as e:
            raise ExecutionError(str(e) or e.__class__.__name__) from e

    async def close(self) -> None:
        cluster = self._cluster
        self._cluster = None
        self._session = None
        self._active = None
        if cluster is not None:
            try:
                await asyncio.to_thread(cluster.shutdown)
            except Exception:
                logger.exception("Error during cluster shutdown")

    def _run(self, statement: str) -> ResultSet:
        result = self._session.execute(statement, timeout=self.config.query.timeout)
        return to_result_set(result)

    @staticmethod
    def _open(target: TargetConfig) -> tuple[Any, Any]:
        from cassandra.auth import PlainTextAuthProvider
        from cassandra.cluster import Cluster
        from cassandra.policies import DCAwareRoundRobinPolicy
        from cassandra.query import dict_factory

        auth_provider = None
        if target.username:
            auth_provider = PlainTextAuthProvider(username=target.username, password=target.password)

        cluster = Cluster(
            target.contact_points,
            port=target.port,
            auth_provider=auth_provider,
            load_balancing_policy=DCAwareRoundRobinPolicy(local_dc=target.local_datacenter),
        )
        session = cluster.connect(target.keyspace or None)
        session.row_factory = dict_factory
        return cluster, session
