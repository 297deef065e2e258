"""Version store: the persisted catalog of saved editor states."""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Iterator, Mapping, Optional, Sequence, Union

from smart_mermaid.editor.state import EditorStateProvider
from smart_mermaid.runtime import telemetry
from smart_mermaid.runtime.clock import DAY_MS, Clock, now_ms
from smart_mermaid.runtime.telemetry import span

from . import codec
from .errors import NotFoundError, PersistenceWriteError
from .filters import SearchFilters, coerce_filters, matches_query
from .models import (
    CleanupResult,
    HistoryStatistics,
    ImportResult,
    RecordComparison,
    RecordDifferences,
    SizeDiff,
    VersionRecord,
)
from .stats import compute_statistics
from .storage import KeyValueStorage

HISTORY_STORAGE_KEY = "smart-mermaid-history"
MAX_RECORDS = 100
DEFAULT_CLEANUP_AGE_MS = 30 * DAY_MS

Duration = Union[int, timedelta]

_RECORD_ERRORS = (TypeError, ValueError, OverflowError, OSError)


def _duration_ms(value: Duration) -> int:
    if isinstance(value, timedelta):
        return int(value.total_seconds() * 1000)
    return int(value)


@dataclass(frozen=True, slots=True)
class CleanupOptions:
    """Retention policy. A record goes if ANY enabled condition matches it."""

    older_than: Duration = DEFAULT_CLEANUP_AGE_MS
    keep_auto_saved: bool = False
    keep_manual: bool = True
    max_records: Optional[int] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "CleanupOptions":
        def pick(*keys: str, default: Any) -> Any:
            for key in keys:
                if key in data:
                    return data[key]
            return default

        return cls(
            older_than=pick("olderThan", "older_than", default=DEFAULT_CLEANUP_AGE_MS),
            keep_auto_saved=bool(
                pick("keepAutoSaved", "keep_auto_saved", default=False)
            ),
            keep_manual=bool(pick("keepManual", "keep_manual", default=True)),
            max_records=pick("maxRecords", "max_records", default=None),
        )


class VersionStore:
    """Owns version records and the storage key they serialize to.

    Records are kept in insertion order; "store order" as returned by
    :meth:`all_records` is newest first by timestamp with ties left in
    insertion order.
    """

    def __init__(
        self,
        editor: EditorStateProvider,
        *,
        storage: Optional[KeyValueStorage] = None,
        storage_key: str = HISTORY_STORAGE_KEY,
        max_records: int = MAX_RECORDS,
        clock: Clock = now_ms,
        logger_name: Optional[str] = None,
    ) -> None:
        if max_records <= 0:
            raise ValueError("max_records must be positive")
        self.editor = editor
        self.storage = storage
        self.storage_key = storage_key
        self.max_records = max_records
        self._clock = clock
        self._logger_name = logger_name
        self._records: Dict[str, VersionRecord] = {}
        self._load()

    # ------------------------------------------------------------------ lookup

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, record_id: object) -> bool:
        return record_id in self._records

    def __iter__(self) -> Iterator[VersionRecord]:
        return iter(self.all_records())

    def all_records(self) -> list[VersionRecord]:
        return sorted(self._records.values(), key=lambda record: -record.timestamp)

    def latest_record(self) -> Optional[VersionRecord]:
        records = self.all_records()
        return records[0] if records else None

    def get_record(self, record_id: str) -> Optional[VersionRecord]:
        return self._records.get(record_id)

    def require_record(self, record_id: str) -> VersionRecord:
        record = self._records.get(record_id)
        if record is None:
            raise NotFoundError(record_id)
        return record

    # ----------------------------------------------------------------- writing

    def auto_save(self) -> Optional[VersionRecord]:
        """Snapshot the editor unless it is empty or unchanged since the last record."""

        with self._span("auto_save") as handle:
            snapshot = self.editor.snapshot()
            if not snapshot.diagram_code and not snapshot.input_text:
                handle.add_metadata("skipped", "empty")
                return None

            latest = self.latest_record()
            if (
                latest is not None
                and latest.diagram_code == snapshot.diagram_code
                and latest.input_text == snapshot.input_text
            ):
                handle.add_metadata("skipped", "unchanged")
                return None

            now = self._clock()
            clock_time = datetime.fromtimestamp(now / 1000).strftime("%H:%M:%S")
            record = VersionRecord.create(
                snapshot,
                timestamp=now,
                title=f"Auto-save {clock_time}",
                auto_saved=True,
                metadata={
                    "autoSave": True,
                    "editorState": {
                        "codeLength": len(snapshot.diagram_code),
                        "inputLength": len(snapshot.input_text),
                    },
                },
            )
            self.add_record(record)
            self._event("history.auto_saved", {"id": record.id, "title": record.title})
            return record

    def manual_save(
        self,
        title: str,
        description: str = "",
        tags: Sequence[str] = (),
    ) -> VersionRecord:
        if not title or not title.strip():
            raise ValueError("A title is required for a manual save")

        with self._span("manual_save", {"title": title}):
            now = self._clock()
            record = VersionRecord.create(
                self.editor.snapshot(),
                timestamp=now,
                title=title,
                description=description,
                tags=tuple(tags),
                auto_saved=False,
                metadata={"manual": True, "saveTime": now},
            )
            self.add_record(record)
            return record

    def add_record(self, record: VersionRecord) -> None:
        with self._span("add_record", {"record_id": record.id}):
            self._records[record.id] = record
            self._enforce_limit()
            self.persist()

    def delete_record(self, record_id: str) -> bool:
        with self._span("delete_record", {"record_id": record_id}):
            if self._records.pop(record_id, None) is None:
                return False
            self.persist()
            return True

    def restore_record(self, record_id: str) -> VersionRecord:
        """Load a record into the editor and log the restore as a new record."""

        with self._span("restore_record", {"record_id": record_id}):
            record = self.require_record(record_id)
            snapshot = record.to_snapshot()
            self.editor.apply(snapshot)

            restored = VersionRecord.create(
                snapshot,
                timestamp=self._clock(),
                title=f"Restored: {record.title}",
                description=f"Restored from the version saved at {record.formatted_time}",
                parent_id=record.id,
                metadata={
                    "restored": True,
                    "originalId": record.id,
                    "originalTime": record.timestamp,
                },
            )
            self.add_record(restored)
            return restored

    # ---------------------------------------------------------------- querying

    def search_records(
        self,
        query: str = "",
        filters: SearchFilters | Mapping[str, Any] | None = None,
    ) -> list[VersionRecord]:
        active = coerce_filters(filters)
        return [
            record
            for record in self.all_records()
            if matches_query(record, query) and active.matches(record)
        ]

    def compare_records(self, id1: str, id2: str) -> RecordComparison:
        record1 = self.require_record(id1)
        record2 = self.require_record(id2)
        return RecordComparison(
            record1=record1,
            record2=record2,
            differences=RecordDifferences(
                title=record1.title != record2.title,
                diagram_code=record1.diagram_code != record2.diagram_code,
                input_text=record1.input_text != record2.input_text,
                diagram_type=record1.diagram_type != record2.diagram_type,
                render_mode=record1.render_mode != record2.render_mode,
                time_diff=abs(record1.timestamp - record2.timestamp),
                size_diff=SizeDiff(
                    code=len(record1.diagram_code) - len(record2.diagram_code),
                    input=len(record1.input_text) - len(record2.input_text),
                ),
            ),
        )

    def get_statistics(self) -> HistoryStatistics:
        return compute_statistics(self.all_records(), now=self._clock())

    # ----------------------------------------------------------- import/export

    def export_history(self, format: str = "json") -> str:
        with self._span("export_history", {"format": format}):
            return codec.export_records(
                self.all_records(), format, export_time=self._clock()
            )

    def import_history(self, data: str | bytes | Mapping[str, Any]) -> ImportResult:
        """Merge records from an export; existing ids are never overwritten."""

        with self._span("import_history") as handle:
            raw_records = codec.parse_payload(data)
            now = self._clock()
            added: list[str] = []
            skipped = 0
            for raw in raw_records:
                try:
                    record = VersionRecord.from_dict(raw, now=now)
                except _RECORD_ERRORS as exc:
                    skipped += 1
                    self._event(
                        "history.import_skipped",
                        {"reason": str(exc)},
                        level="warning",
                    )
                    continue
                if record.id in self._records:
                    skipped += 1
                    continue
                self._records[record.id] = record
                added.append(record.id)

            self._enforce_limit()
            # cap evictions of fresh records count as skipped
            imported = sum(1 for record_id in added if record_id in self._records)
            skipped += len(added) - imported
            self.persist()
            handle.add_metadata("imported", imported)
            handle.add_metadata("skipped", skipped)
            return ImportResult(imported=imported, skipped=skipped, total=len(raw_records))

    # --------------------------------------------------------------- retention

    def cleanup(
        self, options: CleanupOptions | Mapping[str, Any] | None = None
    ) -> CleanupResult:
        if options is None:
            options = CleanupOptions()
        elif not isinstance(options, CleanupOptions):
            options = CleanupOptions.from_mapping(options)

        with self._span("cleanup") as handle:
            now = self._clock()
            older_than = _duration_ms(options.older_than)
            max_records = (
                self.max_records if options.max_records is None else options.max_records
            )
            records = self.all_records()
            total = len(records)
            removed = 0

            for record in records:
                should_remove = (
                    now - record.timestamp > older_than
                    or total - removed > max_records
                    or (record.auto_saved and not options.keep_auto_saved)
                    or (not record.auto_saved and not options.keep_manual)
                )
                if should_remove:
                    del self._records[record.id]
                    removed += 1

            if removed:
                self.persist()
            handle.add_metadata("removed", removed)
            return CleanupResult(removed=removed, remaining=len(self._records))

    # ------------------------------------------------------------- persistence

    def persist(self) -> None:
        """Best-effort write of every record; failures are logged, not raised."""

        if self.storage is None:
            return
        blob = codec.dump_blob(self._records.values(), timestamp=self._clock())
        try:
            self.storage.set_item(self.storage_key, blob)
        except PersistenceWriteError as exc:
            self._event(
                "history.persist_failed",
                {"key": self.storage_key, "error": str(exc)},
                level="error",
            )

    def reload(self) -> None:
        self._records.clear()
        self._load()

    def _load(self) -> None:
        if self.storage is None:
            return
        try:
            raw = self.storage.get_item(self.storage_key)
        except (OSError, ValueError) as exc:
            self._event("history.load_failed", {"error": str(exc)}, level="error")
            return
        if not raw:
            return
        try:
            data = json.loads(raw)
        except ValueError as exc:
            self._event("history.load_failed", {"error": str(exc)}, level="error")
            return
        if not isinstance(data, Mapping) or not isinstance(data.get("records"), list):
            return

        now = self._clock()
        for raw_record in data["records"]:
            try:
                record = VersionRecord.from_dict(raw_record, now=now)
            except _RECORD_ERRORS as exc:
                self._event(
                    "history.load_skipped", {"reason": str(exc)}, level="warning"
                )
                continue
            self._records[record.id] = record
        self._enforce_limit()

    def _enforce_limit(self) -> None:
        while len(self._records) > self.max_records:
            oldest = min(self._records.values(), key=lambda record: record.timestamp)
            del self._records[oldest.id]
            self._event(
                "history.evicted",
                {"id": oldest.id, "timestamp": oldest.timestamp},
                level="debug",
            )

    def _span(self, operation: str, metadata: Optional[Dict[str, Any]] = None):
        return span(
            f"history::{operation}",
            logger_name=self._logger_name,
            component="history",
            metadata=metadata,
        )

    def _event(
        self, name: str, data: Dict[str, Any], *, level: str = "info"
    ) -> None:
        telemetry.record_event(
            name, level=level, data=data, logger_name=self._logger_name
        )


__all__ = [
    "CleanupOptions",
    "DEFAULT_CLEANUP_AGE_MS",
    "HISTORY_STORAGE_KEY",
    "MAX_RECORDS",
    "VersionStore",
]
