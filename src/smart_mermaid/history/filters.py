"""Search query and filter matching for version records."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, Mapping, Optional, Union

from .models import VersionRecord

TimeBound = Union[int, float, datetime, str]


def to_millis(value: TimeBound) -> int:
    """Normalise an epoch-millis number, ``datetime`` or ISO-8601 string."""

    if isinstance(value, bool):
        raise TypeError("boolean is not a valid time bound")
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str):
        value = datetime.fromisoformat(value.strip())
    if isinstance(value, datetime):
        return int(value.timestamp() * 1000)
    raise TypeError(f"unsupported time bound: {type(value).__name__}")


@dataclass(frozen=True, slots=True)
class DateRange:
    """Inclusive timestamp bounds; either side may be open."""

    start: Optional[int] = None
    end: Optional[int] = None

    @classmethod
    def from_bounds(
        cls, start: Optional[TimeBound] = None, end: Optional[TimeBound] = None
    ) -> "DateRange":
        return cls(
            start=to_millis(start) if start not in (None, "") else None,
            end=to_millis(end) if end not in (None, "") else None,
        )

    def contains(self, timestamp: int) -> bool:
        if self.start is not None and timestamp < self.start:
            return False
        if self.end is not None and timestamp > self.end:
            return False
        return True


_FILTER_KEYS = {
    "autoSaved": "auto_saved",
    "auto_saved": "auto_saved",
    "diagramType": "diagram_type",
    "diagram_type": "diagram_type",
    "renderMode": "render_mode",
    "render_mode": "render_mode",
    "dateRange": "date_range",
    "date_range": "date_range",
    "tags": "tags",
}


@dataclass(frozen=True, slots=True)
class SearchFilters:
    """Conjunctive record filters. ``None``/empty values disable a filter."""

    auto_saved: Optional[bool] = None
    diagram_type: Optional[str] = None
    render_mode: Optional[str] = None
    date_range: Optional[DateRange] = None
    tags: frozenset[str] = frozenset()

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "SearchFilters":
        """Accept camelCase or snake_case keys; unknown keys are ignored."""

        values: dict[str, Any] = {}
        for key, value in data.items():
            name = _FILTER_KEYS.get(key)
            if name is not None:
                values[name] = value

        auto_saved = values.get("auto_saved")
        if auto_saved is not None and not isinstance(auto_saved, bool):
            raise TypeError("'autoSaved' filter must be a boolean")
        date_range = values.get("date_range")
        if isinstance(date_range, Mapping):
            date_range = DateRange.from_bounds(date_range.get("start"), date_range.get("end"))
        elif date_range is not None and not isinstance(date_range, DateRange):
            raise TypeError("'dateRange' filter must be a mapping or DateRange")
        return cls(
            auto_saved=auto_saved,
            diagram_type=values.get("diagram_type") or None,
            render_mode=values.get("render_mode") or None,
            date_range=date_range,
            tags=_tag_set(values.get("tags") or ()),
        )

    def matches(self, record: VersionRecord) -> bool:
        if self.auto_saved is not None and record.auto_saved is not self.auto_saved:
            return False
        if self.diagram_type and record.diagram_type != self.diagram_type:
            return False
        if self.render_mode and record.render_mode != self.render_mode:
            return False
        if self.date_range is not None and not self.date_range.contains(record.timestamp):
            return False
        if self.tags and not self.tags.intersection(record.tags):
            return False
        return True


def _tag_set(tags: Iterable[str]) -> frozenset[str]:
    if isinstance(tags, str):
        tags = (tags,)
    return frozenset(tags)


def coerce_filters(
    filters: SearchFilters | Mapping[str, Any] | None,
) -> SearchFilters:
    if filters is None:
        return SearchFilters()
    if isinstance(filters, SearchFilters):
        return filters
    return SearchFilters.from_mapping(filters)


def matches_query(record: VersionRecord, query: str) -> bool:
    """Case-insensitive substring match over the record's text fields."""

    if not query:
        return True
    needle = query.lower()
    return any(
        needle in text.lower()
        for text in (
            record.title,
            record.description,
            record.diagram_code,
            record.input_text,
        )
    )


__all__ = [
    "DateRange",
    "SearchFilters",
    "coerce_filters",
    "matches_query",
    "to_millis",
]
