"""Exceptions raised across the execution layer."""

from __future__ import annotations


class ExecutionError(Exception):
    """A statement could not be executed by the backing store."""


class TargetNotFoundError(Exception):
    """A directive names a target that is not configured."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Target '{name}' not found. Please check your @conn directive.")
        self.name = name
