"""System utility checks."""

from __future__ import annotations

from importlib import metadata
from pathlib import Path


def check_driver() -> tuple[bool, str]:
    """Check if cassandra-driver is installed and return its version."""
    try:
        return True, metadata.version("cassandra-driver")
    except metadata.PackageNotFoundError:
        return False, "cassandra-driver not found. Install: pip install cassandra-driver"


def check_query_file(path: str) -> tuple[bool, str]:
    """Validate a CQL file path."""
    resolved = Path(path).expanduser().resolve()
    if not resolved.exists():
        return False, f"File not found: {resolved}"
    if not resolved.is_file():
        return False, f"Not a file: {resolved}"
    return True, str(resolved)
