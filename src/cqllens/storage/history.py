"""In-memory execution history keyed by document and statement line range.

The data is advisory display state: it lives for the process lifetime and is
dropped per document when the document is closed.
"""

from __future__ import annotations

import logging
from typing import Protocol

from cqllens.storage.models import ExecutionRecord

logger = logging.getLogger(__name__)

MAX_ENTRIES_PER_DOCUMENT = 100
EVICT_COUNT = 20

LineRange = tuple[int, int]


class HistoryStore(Protocol):
    def record(self, document_id: str, start_line: int, end_line: int, record: ExecutionRecord) -> None: ...

    def record_file_total(self, document_id: str, total_ms: int) -> None: ...

    def lookup(self, document_id: str, start_line: int, end_line: int) -> ExecutionRecord | None: ...

    def lookup_file_total(self, document_id: str) -> int | None: ...

    def clear_document(self, document_id: str) -> None: ...


class ExecutionHistory:
    """Bounded per-document store of the latest execution records."""

    def __init__(self, max_entries: int = MAX_ENTRIES_PER_DOCUMENT, evict_count: int = EVICT_COUNT) -> None:
        self.max_entries = max_entries
        self.evict_count = evict_count
        self._records: dict[str, dict[LineRange, ExecutionRecord]] = {}
        self._file_totals: dict[str, int] = {}

    def record(self, document_id: str, start_line: int, end_line: int, record: ExecutionRecord) -> None:
        """Store ``record``, replacing any earlier one for the same range."""
        entries = self._records.setdefault(document_id, {})
        key = (start_line, end_line)
        # Re-insert so ties on observed_at still favour the newest write.
        entries.pop(key, None)
        entries[key] = record
        self._cleanup(document_id)

    def record_file_total(self, document_id: str, total_ms: int) -> None:
        self._file_totals[document_id] = total_ms

    def lookup(self, document_id: str, start_line: int, end_line: int) -> ExecutionRecord | None:
        return self._records.get(document_id, {}).get((start_line, end_line))

    def lookup_file_total(self, document_id: str) -> int | None:
        return self._file_totals.get(document_id)

    def clear_document(self, document_id: str) -> None:
        """Drop statement and file level entries for one document."""
        self._records.pop(document_id, None)
        self._file_totals.pop(document_id, None)

    def clear_all(self) -> None:
        self._records.clear()
        self._file_totals.clear()

    def record_count(self, document_id: str | None = None) -> int:
        if document_id is not None:
            return len(self._records.get(document_id, {}))
        return sum(len(entries) for entries in self._records.values())

    def _cleanup(self, document_id: str) -> None:
        entries = self._records[document_id]
        if len(entries) <= self.max_entries:
            return

        oldest = sorted(entries, key=lambda key: entries[key].observed_at)[: self.evict_count]
        for key in oldest:
            del entries[key]
        logger.debug("Evicted %d history entries for %s", len(oldest), document_id)
