"""SQLite journal of executed statements."""

from __future__ import annotations

import logging
from pathlib import Path

import aiosqlite

from cqllens.storage.models import RunOutcome

logger = logging.getLogger(__name__)

_db: aiosqlite.Connection | None = None


async def init_db(db_path: str) -> None:
    """Initialize database and create tables."""
    global _db
    resolved = Path(db_path).expanduser().resolve()
    resolved.parent.mkdir(parents=True, exist_ok=True)

    _db = await aiosqlite.connect(str(resolved))
    _db.row_factory = aiosqlite.Row
    await _db.execute("PRAGMA journal_mode = WAL")

    await _db.execute("""
        CREATE TABLE IF NOT EXISTS executions (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            document TEXT NOT NULL,
            start_line INTEGER NOT NULL,
            end_line INTEGER NOT NULL,
            statement TEXT NOT NULL,
            target TEXT DEFAULT '',
            succeeded INTEGER NOT NULL CHECK(succeeded IN (0, 1)),
            row_count INTEGER DEFAULT 0,
            execution_time_ms INTEGER DEFAULT 0,
            error TEXT DEFAULT '',
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """)
    await _db.execute("CREATE INDEX IF NOT EXISTS idx_executions_document ON executions(document)")
    await _db.commit()
    logger.info("Database initialized: %s", resolved)


async def get_db() -> aiosqlite.Connection:
    """Get the database connection."""
    if _db is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")
    return _db


async def close_db() -> None:
    """Close the database connection."""
    global _db
    if _db is not None:
        await _db.close()
        _db = None
        logger.info("Database closed")


async def save_execution(
    document: str,
    start_line: int,
    end_line: int,
    statement: str,
    succeeded: bool,
    row_count: int,
    execution_time_ms: int,
    target: str = "",
    error: str = "",
) -> None:
    """Save one statement execution to the journal."""
    try:
        db = await get_db()
        await db.execute(
            """INSERT INTO executions
                   (document, start_line, end_line, statement, target, succeeded, row_count, execution_time_ms, error)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (document, start_line, end_line, statement, target, int(succeeded), row_count, execution_time_ms, error),
        )
        await db.commit()
    except Exception:
        logger.exception("Failed to save execution journal entry")


async def save_run(outcome: RunOutcome) -> None:
    """Journal every statement that reached the executor in a run."""
    for step in outcome.outcomes:
        await save_execution(
            document=outcome.document_uri,
            start_line=step.statement.start_line,
            end_line=step.statement.end_line,
            statement=step.statement.text,
            succeeded=step.record.succeeded,
            row_count=step.record.row_count,
            execution_time_ms=step.record.elapsed_ms,
            target=step.target or "",
            error=step.error or "",
        )


async def get_recent_executions(limit: int = 10, document: str | None = None) -> list[dict]:
    """Get recent journal entries, newest first."""
    db = await get_db()
    query = (
        "SELECT document, start_line, end_line, statement, target, succeeded, row_count, "
        "execution_time_ms, error, created_at FROM executions"
    )
    params: tuple = ()
    if document is not None:
        query += " WHERE document = ?"
        params = (document,)
    cursor = await db.execute(query + " ORDER BY id DESC LIMIT ?", (*params, limit))
    rows = await cursor.fetchall()
    return [dict(row) for row in rows]
