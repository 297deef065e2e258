"""Runtime services: telemetry, clocks and the host-polled scheduler."""

from .clock import DAY_MS, Clock, ManualClock, monotonic_ms, now_ms
from .scheduler import IntervalTimer

__all__ = [
    "Clock",
    "DAY_MS",
    "IntervalTimer",
    "ManualClock",
    "monotonic_ms",
    "now_ms",
]
