"""Environment-driven settings for the history core and CLI."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from smart_mermaid.editor.command_log import MAX_LOG_SIZE
from smart_mermaid.editor.state import EDITOR_STORAGE_KEY
from smart_mermaid.history.autosave import AUTO_SAVE_INTERVAL_MS
from smart_mermaid.history.store import HISTORY_STORAGE_KEY, MAX_RECORDS

ENV_PREFIX = "SMART_MERMAID_"
DEFAULT_STORAGE_DIR = "~/.smart-mermaid"


def _env_int(env: Mapping[str, str], key: str, fallback: int) -> int:
    value = env.get(f"{ENV_PREFIX}{key}")
    if value is None:
        return fallback
    try:
        parsed = int(value)
    except ValueError:
        return fallback
    return parsed if parsed > 0 else fallback


@dataclass(frozen=True)
class Settings:
    storage_dir: str = DEFAULT_STORAGE_DIR
    max_records: int = MAX_RECORDS
    autosave_interval_ms: int = AUTO_SAVE_INTERVAL_MS
    max_log_size: int = MAX_LOG_SIZE
    history_key: str = HISTORY_STORAGE_KEY
    editor_key: str = EDITOR_STORAGE_KEY

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        source = os.environ if env is None else env
        return cls(
            storage_dir=source.get(f"{ENV_PREFIX}STORAGE_DIR", DEFAULT_STORAGE_DIR),
            max_records=_env_int(source, "MAX_RECORDS", MAX_RECORDS),
            autosave_interval_ms=_env_int(
                source, "AUTOSAVE_INTERVAL_MS", AUTO_SAVE_INTERVAL_MS
            ),
            max_log_size=_env_int(source, "MAX_LOG_SIZE", MAX_LOG_SIZE),
            history_key=source.get(f"{ENV_PREFIX}HISTORY_KEY", HISTORY_STORAGE_KEY),
            editor_key=source.get(f"{ENV_PREFIX}EDITOR_KEY", EDITOR_STORAGE_KEY),
        )


__all__ = ["DEFAULT_STORAGE_DIR", "ENV_PREFIX", "Settings"]
