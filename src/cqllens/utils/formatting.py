"""Message formatting for execution results and progress."""

from __future__ import annotations

import logging

from cqllens.storage.models import ExecutionRecord

logger = logging.getLogger(__name__)

MESSAGE_FORMATS = ("minimal", "detailed", "verbose")
MAX_ERROR_PREVIEW = 100


def format_duration(ms: int) -> str:
    """Format milliseconds to human-readable duration."""
    if ms < 1000:
        return f"{ms}ms"
    elif ms < 60000:
        return f"{ms / 1000:.1f}s"
    else:
        minutes = ms // 60000
        seconds = (ms % 60000) // 1000
        return f"{minutes}m {seconds}s"


def pluralize_rows(count: int) -> str:
    return f"{count} {'row' if count == 1 else 'rows'}"


def completion_message(
    elapsed_ms: int,
    row_count: int,
    fmt: str = "detailed",
    index: int | None = None,
    total: int | None = None,
) -> str:
    """Status line for a finished statement, prefixed with ``[k/n]`` in multi-statement runs."""
    prefix = f"[{index}/{total}] " if index is not None and total is not None else ""

    if fmt == "minimal":
        return f"{prefix}✓ {elapsed_ms}ms"
    if fmt == "verbose":
        return f"{prefix}✓ Query executed successfully • {pluralize_rows(row_count)} • {elapsed_ms}ms"
    if fmt not in MESSAGE_FORMATS:
        logger.debug("Unknown completion message format %r, using detailed", fmt)
    return f"{prefix}✓ Query executed ({elapsed_ms}ms, {pluralize_rows(row_count)})"


def abort_message(index: int, total: int) -> str:
    return f"Stopped at statement {index} of {total} due to error."


def truncate_error(message: str, limit: int = MAX_ERROR_PREVIEW) -> str:
    """Shorten an error message for one-line notifications."""
    if len(message) <= limit:
        return message
    return message[:limit] + "..."


def format_record(record: ExecutionRecord) -> str:
    """Summarize a history record, e.g. ``✓ 23ms, 4 rows``."""
    icon = "✓" if record.succeeded else "✗"
    return f"{icon} {record.elapsed_ms}ms, {pluralize_rows(record.row_count)}"


def format_lines(start_line: int, end_line: int) -> str:
    """One-based, human-facing rendering of a zero-based line range."""
    if start_line == end_line:
        return str(start_line + 1)
    return f"{start_line + 1}-{end_line + 1}"


def preview(text: str, limit: int = 60) -> str:
    """Collapse whitespace and cut ``text`` to a single display line."""
    flat = " ".join(text.split())
    if len(flat) <= limit:
        return flat
    return flat[: limit - 3] + "..."
