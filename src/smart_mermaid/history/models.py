"""Dataclasses describing version records and the store's result types."""

from __future__ import annotations

import re
import secrets
import string
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any, Iterable, Mapping, MutableMapping, Optional

from smart_mermaid.editor.state import (
    DEFAULT_DIAGRAM_TYPE,
    DEFAULT_RENDER_MODE,
    EditorSnapshot,
)

RECORD_FORMAT_VERSION = "1.0.0"
TIME_FORMAT = "%Y-%m-%d %H:%M:%S"
SHORT_TITLE_LENGTH = 30

_ID_ALPHABET = string.ascii_lowercase + string.digits
_ARROW = "-->"
_BRACKET_NODE = re.compile(r"\[.*?\]")


def generate_record_id(timestamp: int) -> str:
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"history_{timestamp}_{suffix}"


def format_timestamp(timestamp: int) -> str:
    return datetime.fromtimestamp(timestamp / 1000).strftime(TIME_FORMAT)


def count_code_lines(code: str) -> int:
    """Number of non-blank lines."""

    return sum(1 for line in code.split("\n") if line.strip())


def code_complexity(code: str) -> int:
    """Rough size score: lines + ``-->`` arrows + ``[...]`` nodes."""

    return count_code_lines(code) + code.count(_ARROW) + len(_BRACKET_NODE.findall(code))


def _normalize_tags(tags: Iterable[str]) -> tuple[str, ...]:
    seen: MutableMapping[str, None] = {}
    result: list[str] = []
    for tag in tags:
        cleaned = tag.strip()
        if cleaned and cleaned not in seen:
            seen[cleaned] = None
            result.append(cleaned)
    return tuple(result)


def _text(data: Mapping[str, Any], key: str, default: str = "", *aliases: str) -> str:
    value = data.get(key)
    for alias in aliases:
        if value is None:
            value = data.get(alias)
    if value is None:
        return default
    if not isinstance(value, str):
        raise TypeError(f"'{key}' must be a string, got {type(value).__name__}")
    return value


def _timestamp(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"'timestamp' must be a number, got {type(value).__name__}")
    return int(value)


@dataclass(frozen=True, slots=True)
class VersionRecord:
    """One saved editor state. Never mutated once created."""

    id: str
    timestamp: int
    title: str
    description: str = ""
    diagram_code: str = ""
    input_text: str = ""
    diagram_type: str = DEFAULT_DIAGRAM_TYPE
    render_mode: str = DEFAULT_RENDER_MODE
    tags: tuple[str, ...] = ()
    auto_saved: bool = False
    parent_id: Optional[str] = None
    metadata: Mapping[str, Any] = field(default_factory=dict)
    version: str = RECORD_FORMAT_VERSION

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("record id cannot be empty")
        object.__setattr__(self, "tags", _normalize_tags(self.tags))
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))

    @classmethod
    def create(
        cls,
        snapshot: EditorSnapshot,
        *,
        timestamp: int,
        title: Optional[str] = None,
        **fields: Any,
    ) -> "VersionRecord":
        return cls(
            id=generate_record_id(timestamp),
            timestamp=timestamp,
            title=title or f"Version {format_timestamp(timestamp)}",
            diagram_code=snapshot.diagram_code,
            input_text=snapshot.input_text,
            diagram_type=snapshot.diagram_type,
            render_mode=snapshot.render_mode,
            **fields,
        )

    @property
    def formatted_time(self) -> str:
        return format_timestamp(self.timestamp)

    @property
    def short_title(self) -> str:
        if len(self.title) > SHORT_TITLE_LENGTH:
            return self.title[:SHORT_TITLE_LENGTH] + "..."
        return self.title

    @property
    def code_line_count(self) -> int:
        return count_code_lines(self.diagram_code)

    @property
    def complexity(self) -> int:
        return code_complexity(self.diagram_code)

    def to_snapshot(self) -> EditorSnapshot:
        return EditorSnapshot(
            diagram_code=self.diagram_code,
            input_text=self.input_text,
            diagram_type=self.diagram_type,
            render_mode=self.render_mode,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "title": self.title,
            "description": self.description,
            "diagramCode": self.diagram_code,
            "inputText": self.input_text,
            "diagramType": self.diagram_type,
            "renderMode": self.render_mode,
            "metadata": dict(self.metadata),
            "tags": list(self.tags),
            "version": self.version,
            "parentId": self.parent_id,
            "autoSaved": self.auto_saved,
        }

    @classmethod
    def from_dict(cls, data: Any, *, now: int) -> "VersionRecord":
        """Build a record from its plain-object form.

        Unknown keys are ignored and missing optional fields take defaults;
        ``mermaidCode`` is accepted for ``diagramCode``. Raises ``TypeError`` or
        ``ValueError`` when the payload cannot describe a record.
        """

        if not isinstance(data, Mapping):
            raise TypeError(f"record must be an object, got {type(data).__name__}")
        raw_ts = data.get("timestamp")
        timestamp = now if raw_ts is None else _timestamp(raw_ts)
        record_id = _text(data, "id") or generate_record_id(timestamp)
        tags = data.get("tags") or []
        if not isinstance(tags, list) or not all(isinstance(t, str) for t in tags):
            raise TypeError("'tags' must be a list of strings")
        metadata = data.get("metadata") or {}
        if not isinstance(metadata, Mapping):
            raise TypeError("'metadata' must be an object")
        auto_saved = data.get("autoSaved", False)
        if not isinstance(auto_saved, bool):
            raise TypeError("'autoSaved' must be a boolean")
        parent_id = data.get("parentId")
        if parent_id is not None and not isinstance(parent_id, str):
            raise TypeError("'parentId' must be a string")
        return cls(
            id=record_id,
            timestamp=timestamp,
            title=_text(data, "title") or f"Version {format_timestamp(timestamp)}",
            description=_text(data, "description"),
            diagram_code=_text(data, "diagramCode", "", "mermaidCode"),
            input_text=_text(data, "inputText"),
            diagram_type=_text(data, "diagramType") or DEFAULT_DIAGRAM_TYPE,
            render_mode=_text(data, "renderMode") or DEFAULT_RENDER_MODE,
            tags=tuple(tags),
            auto_saved=auto_saved,
            parent_id=parent_id or None,
            metadata=metadata,
            version=_text(data, "version") or RECORD_FORMAT_VERSION,
        )


@dataclass(slots=True)
class SizeDiff:
    code: int
    input: int


@dataclass(slots=True)
class RecordDifferences:
    """Per-field change flags (``True`` means the field differs)."""

    title: bool
    diagram_code: bool
    input_text: bool
    diagram_type: bool
    render_mode: bool
    time_diff: int
    size_diff: SizeDiff


@dataclass(slots=True)
class RecordComparison:
    record1: VersionRecord
    record2: VersionRecord
    differences: RecordDifferences


@dataclass(frozen=True, slots=True)
class TypeUsage:
    type: str
    count: int


@dataclass(slots=True)
class HistoryStatistics:
    total: int
    auto_saved: int
    manual: int
    today: int
    this_week: int
    this_month: int
    average_complexity: int
    total_code_lines: int
    most_used_types: list[TypeUsage]
    oldest_record: Optional[VersionRecord]
    newest_record: Optional[VersionRecord]


@dataclass(slots=True)
class ImportResult:
    imported: int
    skipped: int
    total: int


@dataclass(slots=True)
class CleanupResult:
    removed: int
    remaining: int


__all__ = [
    "CleanupResult",
    "HistoryStatistics",
    "ImportResult",
    "RECORD_FORMAT_VERSION",
    "RecordComparison",
    "RecordDifferences",
    "SizeDiff",
    "TypeUsage",
    "VersionRecord",
    "code_complexity",
    "count_code_lines",
    "format_timestamp",
    "generate_record_id",
]
