"""Timer-driven auto-save with an explicit start/stop lifecycle."""

from __future__ import annotations

from contextlib import AbstractContextManager
from typing import Optional

from smart_mermaid.runtime import telemetry
from smart_mermaid.runtime.clock import Clock, monotonic_ms
from smart_mermaid.runtime.scheduler import IntervalTimer

from .models import VersionRecord
from .store import VersionStore

AUTO_SAVE_INTERVAL_MS = 30_000


class AutoSaver(AbstractContextManager["AutoSaver"]):
    """Calls :meth:`VersionStore.auto_save` every ``interval_ms`` while active.

    The host drives it by calling :meth:`poll` from its own loop. Usable as a
    context manager: entering starts the timer, leaving stops it.
    """

    def __init__(
        self,
        store: VersionStore,
        *,
        interval_ms: int = AUTO_SAVE_INTERVAL_MS,
        clock: Clock = monotonic_ms,
    ) -> None:
        self.store = store
        self.last_record: Optional[VersionRecord] = None
        self._active = False
        self._timer = IntervalTimer(
            interval_ms, self._on_tick, clock=clock, name="autosave"
        )

    @property
    def active(self) -> bool:
        return self._active

    @property
    def interval_ms(self) -> int:
        return self._timer.interval_ms

    def start(self) -> None:
        self._active = True
        self._timer.start()

    def stop(self) -> None:
        self._active = False
        self._timer.stop()

    def poll(self) -> bool:
        """Run a due auto-save. Returns whether the timer fired."""

        return self._timer.poll()

    def fire_now(self) -> Optional[VersionRecord]:
        """Auto-save immediately, regardless of the timer."""

        return self._run()

    def _on_tick(self) -> None:
        # a stop() issued after the deadline passed but before poll() wins
        if not self._active:
            return
        self._run()

    def _run(self) -> Optional[VersionRecord]:
        try:
            record = self.store.auto_save()
        except Exception as exc:
            telemetry.record_event(
                "autosave.failed", level="error", data={"error": str(exc)}
            )
            return None
        if record is not None:
            self.last_record = record
        return record

    def __enter__(self) -> "AutoSaver":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.stop()
        return False


__all__ = ["AUTO_SAVE_INTERVAL_MS", "AutoSaver"]
