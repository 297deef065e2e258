"""Bounded undo/redo log of diagram-code snapshots."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple

from smart_mermaid.runtime.clock import Clock, now_ms

MAX_LOG_SIZE = 50


@dataclass(frozen=True, slots=True)
class Snapshot:
    code: str
    timestamp: int


class CommandLog:
    """Linear, single-branch edit history with a cursor.

    ``cursor`` points at the snapshot the editor currently shows. Recording
    after an undo drops everything past the cursor; the oldest snapshots fall
    off the front once ``max_size`` is exceeded.
    """

    def __init__(self, *, max_size: int = MAX_LOG_SIZE, clock: Clock = now_ms) -> None:
        if max_size <= 0:
            raise ValueError("max_size must be positive")
        self.max_size = max_size
        self._clock = clock
        self._entries: List[Snapshot] = []
        self._cursor: int = -1

    @property
    def entries(self) -> Tuple[Snapshot, ...]:
        return tuple(self._entries)

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def current(self) -> Optional[Snapshot]:
        if self._cursor < 0:
            return None
        return self._entries[self._cursor]

    def __len__(self) -> int:
        return len(self._entries)

    def position(self) -> Tuple[int, int]:
        """``(current, total)`` in the 1-based form shown next to undo controls."""

        return self._cursor + 1, len(self._entries)

    def record(self, code: str) -> Snapshot:
        snapshot = Snapshot(code=code, timestamp=self._clock())
        del self._entries[self._cursor + 1 :]
        self._entries.append(snapshot)
        overflow = len(self._entries) - self.max_size
        if overflow > 0:
            del self._entries[:overflow]
        self._cursor = len(self._entries) - 1
        return snapshot

    def can_undo(self) -> bool:
        return self._cursor > 0

    def can_redo(self) -> bool:
        return self._cursor < len(self._entries) - 1

    def undo(self) -> Optional[Snapshot]:
        if not self.can_undo():
            return None
        self._cursor -= 1
        return self._entries[self._cursor]

    def redo(self) -> Optional[Snapshot]:
        if not self.can_redo():
            return None
        self._cursor += 1
        return self._entries[self._cursor]

    def clear(self) -> None:
        self._entries = []
        self._cursor = -1


__all__ = ["CommandLog", "MAX_LOG_SIZE", "Snapshot"]
