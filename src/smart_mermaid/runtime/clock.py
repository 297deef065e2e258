"""Clock helpers shared by the command log, version store and scheduler."""

from __future__ import annotations

import time
from typing import Callable

Clock = Callable[[], int]  # epoch (or monotonic) milliseconds

DAY_MS = 24 * 60 * 60 * 1000


def now_ms() -> int:
    """Wall-clock epoch milliseconds."""

    return int(time.time() * 1000)


def monotonic_ms() -> int:
    return int(time.monotonic() * 1000)


class ManualClock:
    """Settable clock for hosts that drive time themselves (and for tests)."""

    def __init__(self, start: int = 0) -> None:
        self.value = start

    def __call__(self) -> int:
        return self.value

    def advance(self, delta_ms: int) -> int:
        self.value += delta_ms
        return self.value


__all__ = ["Clock", "DAY_MS", "ManualClock", "monotonic_ms", "now_ms"]
