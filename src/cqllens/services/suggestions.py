"""Hints for common CQL execution failures."""

from __future__ import annotations

import logging
import re

logger = logging.getLogger(__name__)

# Checked in order against the lowercased error message; first match wins.
SUGGESTION_PATTERNS: list[tuple[str, str]] = [
    (
        r"unauthorized",
        "Check your connection credentials. You may not have permission to access this resource.",
    ),
    (
        r"^(?=.*\bkeyspace\b)(?=.*does not exist)",
        "The keyspace does not exist. Check the keyspace name or create it first.",
    ),
    (
        r"^(?=.*\btable\b)(?=.*does not exist)|unconfigured table",
        "The table does not exist. Check the table name or create it first.",
    ),
    (
        r"syntax error|invalid syntax",
        "Check your CQL syntax. Common issues: missing semicolons, incorrect keywords, or invalid identifiers.",
    ),
    (
        r"allow filtering",
        "This query requires ALLOW FILTERING. Add it to the end of your query, "
        "but be aware it may be slow on large tables.",
    ),
    (
        r"partition key",
        "You must include the partition key in your WHERE clause, or use ALLOW FILTERING.",
    ),
    (
        r"timeout|timed out",
        "Query timed out. Try adding a LIMIT clause or filtering to reduce the result set.",
    ),
    (
        r"cannot (execute|achieve).*consistency|not enough replicas",
        "Not enough replicas are available. Check your cluster health and consistency level settings.",
    ),
]


class SuggestionMatcher:
    """Regex-based lookup from an error message to a user-facing hint."""

    def __init__(self) -> None:
        self._patterns: list[tuple[re.Pattern[str], str]] = []
        for pattern, suggestion in SUGGESTION_PATTERNS:
            try:
                self._patterns.append((re.compile(pattern, re.DOTALL), suggestion))
            except re.error:
                logger.error("Invalid suggestion pattern: %s", pattern)

    def suggest(self, message: str) -> str | None:
        """Return a hint for ``message``, or None when nothing matches."""
        lowered = message.lower()
        for compiled, suggestion in self._patterns:
            if compiled.search(lowered):
                return suggestion
        return None


suggestion_matcher = SuggestionMatcher()


def suggest_for_error(message: str) -> str | None:
    return suggestion_matcher.suggest(message)
