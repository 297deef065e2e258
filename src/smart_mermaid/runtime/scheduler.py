"""Cancelable interval timer driven by the host's event loop."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from smart_mermaid.runtime import telemetry

from .clock import Clock, monotonic_ms


@dataclass
class PendingTick:
    deadline: int
    generation: int


class IntervalTimer:
    """Fires ``callback`` every ``interval_ms`` while started.

    The timer never spawns threads. Hosts call :meth:`poll` from whatever loop
    they already run (a Textual ``set_interval``, an asyncio task, a CLI
    ``while`` loop) and the callback runs synchronously on that loop.
    """

    def __init__(
        self,
        interval_ms: int,
        callback: Callable[[], object],
        *,
        clock: Clock = monotonic_ms,
        name: str = "interval",
    ) -> None:
        if interval_ms <= 0:
            raise ValueError("interval_ms must be positive")
        self.interval_ms = interval_ms
        self.name = name
        self._callback = callback
        self._clock = clock
        self._pending: Optional[PendingTick] = None
        self._generation = 0

    @property
    def active(self) -> bool:
        return self._pending is not None

    def start(self) -> None:
        """(Re)arm the timer; a running timer is restarted from now."""

        self.stop()
        self._arm()
        telemetry.record_event(
            "timer.start",
            level="debug",
            data={"timer": self.name, "interval_ms": self.interval_ms},
        )

    def stop(self) -> None:
        if self._pending is None:
            return
        self._pending = None
        telemetry.record_event("timer.stop", level="debug", data={"timer": self.name})

    def due(self) -> bool:
        return self._pending is not None and self._pending.deadline <= self._clock()

    def poll(self) -> bool:
        """Run the callback if the deadline has passed. Returns whether it fired."""

        pending = self._pending
        if pending is None or pending.deadline > self._clock():
            return False
        return self._fire(pending.generation)

    def _arm(self) -> None:
        self._generation += 1
        self._pending = PendingTick(
            deadline=self._clock() + self.interval_ms,
            generation=self._generation,
        )

    def _fire(self, generation: int) -> bool:
        pending = self._pending
        if pending is None or pending.generation != generation:
            return False
        self._arm()
        self._callback()
        return True


__all__ = ["IntervalTimer", "PendingTick"]
