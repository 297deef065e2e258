"""Serialization of record collections: persisted blob, JSON and CSV exports."""

from __future__ import annotations

import csv
import io
import json
from typing import Any, Iterable, Mapping, Sequence

from .errors import InvalidFormatError, UnsupportedFormatError
from .models import RECORD_FORMAT_VERSION, VersionRecord

CSV_HEADERS = (
    "ID",
    "Title",
    "Time",
    "Type",
    "Render Mode",
    "Code Lines",
    "Auto Saved",
)

EXPORT_FORMATS = ("json", "csv")


def dump_blob(records: Iterable[VersionRecord], *, timestamp: int) -> str:
    """Persisted layout: ``{version, timestamp, records}``."""

    data = {
        "version": RECORD_FORMAT_VERSION,
        "timestamp": timestamp,
        "records": [record.to_dict() for record in records],
    }
    return json.dumps(data, ensure_ascii=False)


def export_json(records: Sequence[VersionRecord], *, export_time: int) -> str:
    data = {
        "exportTime": export_time,
        "version": RECORD_FORMAT_VERSION,
        "total": len(records),
        "records": [record.to_dict() for record in records],
    }
    return json.dumps(data, ensure_ascii=False, indent=2)


def export_csv(records: Iterable[VersionRecord]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for record in records:
        writer.writerow(
            (
                record.id,
                record.title,
                record.formatted_time,
                record.diagram_type,
                record.render_mode,
                record.code_line_count,
                "Yes" if record.auto_saved else "No",
            )
        )
    return buffer.getvalue().rstrip("\n")


def export_records(
    records: Sequence[VersionRecord], format: str, *, export_time: int
) -> str:
    key = format.lower()
    if key == "json":
        return export_json(records, export_time=export_time)
    if key == "csv":
        return export_csv(records)
    raise UnsupportedFormatError(format)


def parse_payload(data: str | bytes | Mapping[str, Any]) -> list[Any]:
    """Return the raw ``records`` list of an import payload.

    Individual entries are left unvalidated; callers decide per record.
    """

    if isinstance(data, (str, bytes, bytearray)):
        try:
            parsed = json.loads(data)
        except ValueError as exc:
            raise InvalidFormatError(f"History payload is not valid JSON: {exc}") from exc
    else:
        parsed = data

    if not isinstance(parsed, Mapping):
        raise InvalidFormatError("History payload must be a JSON object")
    records = parsed.get("records")
    if not isinstance(records, list):
        raise InvalidFormatError("History payload has no 'records' list")
    return records


__all__ = [
    "CSV_HEADERS",
    "EXPORT_FORMATS",
    "dump_blob",
    "export_csv",
    "export_json",
    "export_records",
    "parse_payload",
]
