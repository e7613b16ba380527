"""Per-statement routing directives written as ``-- @conn <name>`` comments."""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence

logger = logging.getLogger(__name__)

DIRECTIVE_WINDOW = 10

DIRECTIVE_PATTERN = re.compile(r"^--\s*@conn\s+([A-Za-z0-9_-]+)", re.IGNORECASE)
_DIRECTIVE_ANYWHERE = re.compile(r"^\s*--\s*@conn\s+([A-Za-z0-9_-]+)", re.IGNORECASE | re.MULTILINE)


def parse_directive(line: str) -> str | None:
    """Return the target named on a single directive line, if any."""
    match = DIRECTIVE_PATTERN.match(line.strip())
    return match.group(1).strip() if match else None


def resolve_directive(
    lines: Sequence[str],
    first_code_line: int,
    window: int = DIRECTIVE_WINDOW,
) -> str | None:
    """Find the directive nearest above ``first_code_line``.

    Scanning starts at ``first_code_line`` itself and walks back through at
    most ``window`` earlier lines, stopping at the first blank line.
    """
    if first_code_line < 0 or first_code_line >= len(lines):
        return None

    lowest = max(0, first_code_line - window)
    for index in range(first_code_line, lowest - 1, -1):
        line = lines[index].strip()
        if not line:
            break
        target = parse_directive(line)
        if target is not None:
            logger.debug("Directive @conn %s found on line %d", target, index)
            return target
    return None


def find_directives(text: str) -> list[str]:
    """List every distinct target named by a directive, in order of appearance."""
    seen: dict[str, None] = {}
    for match in _DIRECTIVE_ANYWHERE.finditer(text):
        seen.setdefault(match.group(1), None)
    return list(seen)
