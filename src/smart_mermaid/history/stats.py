"""Aggregate statistics over a record collection."""

from __future__ import annotations

import math
from typing import Dict, Sequence

from smart_mermaid.runtime.clock import DAY_MS

from .models import HistoryStatistics, TypeUsage, VersionRecord

TOP_TYPES = 5


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def most_used_types(
    records: Sequence[VersionRecord], limit: int = TOP_TYPES
) -> list[TypeUsage]:
    counts: Dict[str, int] = {}
    for record in records:
        counts[record.diagram_type] = counts.get(record.diagram_type, 0) + 1
    ranked = sorted(counts.items(), key=lambda item: -item[1])
    return [TypeUsage(type=name, count=count) for name, count in ranked[:limit]]


def compute_statistics(
    records: Sequence[VersionRecord], *, now: int
) -> HistoryStatistics:
    """Summarise ``records`` (expected newest first).

    The day/week/month buckets are rolling 24h, 7x24h and 30x24h windows
    ending at ``now``.
    """

    def within(window: int) -> int:
        return sum(1 for record in records if now - record.timestamp < window)

    auto_saved = sum(1 for record in records if record.auto_saved)
    average = (
        _round_half_up(sum(r.complexity for r in records) / len(records))
        if records
        else 0
    )
    return HistoryStatistics(
        total=len(records),
        auto_saved=auto_saved,
        manual=len(records) - auto_saved,
        today=within(DAY_MS),
        this_week=within(7 * DAY_MS),
        this_month=within(30 * DAY_MS),
        average_complexity=average,
        total_code_lines=sum(r.code_line_count for r in records),
        most_used_types=most_used_types(records),
        oldest_record=records[-1] if records else None,
        newest_record=records[0] if records else None,
    )


__all__ = ["TOP_TYPES", "compute_statistics", "most_used_types"]
