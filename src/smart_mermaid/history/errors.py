"""Errors raised by the version store and its persistence layer."""

from __future__ import annotations


class HistoryError(Exception):
    """Base class for version-store failures surfaced to callers."""


class NotFoundError(HistoryError, KeyError):
    """Raised when an operation references an unknown record id."""

    def __init__(self, record_id: str) -> None:
        super().__init__(f"History record not found: {record_id}")
        self.record_id = record_id

    def __str__(self) -> str:
        return str(self.args[0])


class InvalidFormatError(HistoryError, ValueError):
    """Raised when an import payload is structurally invalid."""


class UnsupportedFormatError(HistoryError, ValueError):
    """Raised when an export format is not recognised."""

    def __init__(self, format: str) -> None:
        super().__init__(f"Unsupported export format: {format}")
        self.format = format


class PersistenceWriteError(HistoryError):
    """Raised by storage backends when a write fails.

    The version store logs and swallows it: in-memory state stays the source of
    truth for the running session.
    """

    def __init__(self, key: str, message: str) -> None:
        super().__init__(f"Failed to persist '{key}': {message}")
        self.key = key


__all__ = [
    "HistoryError",
    "InvalidFormatError",
    "NotFoundError",
    "PersistenceWriteError",
    "UnsupportedFormatError",
]
