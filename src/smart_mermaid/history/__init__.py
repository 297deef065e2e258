"""Version store: auto-save, checkpoints, search, diff, import/export, cleanup."""

from .autosave import AUTO_SAVE_INTERVAL_MS, AutoSaver
from .codec import CSV_HEADERS, EXPORT_FORMATS
from .errors import (
    HistoryError,
    InvalidFormatError,
    NotFoundError,
    PersistenceWriteError,
    UnsupportedFormatError,
)
from .filters import DateRange, SearchFilters
from .models import (
    CleanupResult,
    HistoryStatistics,
    ImportResult,
    RecordComparison,
    RecordDifferences,
    SizeDiff,
    TypeUsage,
    VersionRecord,
)
from .storage import FileStorage, KeyValueStorage, MemoryStorage
from .store import (
    HISTORY_STORAGE_KEY,
    MAX_RECORDS,
    CleanupOptions,
    VersionStore,
)

__all__ = [
    "AUTO_SAVE_INTERVAL_MS",
    "AutoSaver",
    "CSV_HEADERS",
    "CleanupOptions",
    "CleanupResult",
    "DateRange",
    "EXPORT_FORMATS",
    "FileStorage",
    "HISTORY_STORAGE_KEY",
    "HistoryError",
    "HistoryStatistics",
    "ImportResult",
    "InvalidFormatError",
    "KeyValueStorage",
    "MAX_RECORDS",
    "MemoryStorage",
    "NotFoundError",
    "PersistenceWriteError",
    "RecordComparison",
    "RecordDifferences",
    "SearchFilters",
    "SizeDiff",
    "TypeUsage",
    "UnsupportedFormatError",
    "VersionRecord",
    "VersionStore",
]
