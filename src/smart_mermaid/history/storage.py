"""Key-value persistence backends for the version store."""

from __future__ import annotations

import os
import re
import tempfile
from pathlib import Path
from typing import Dict, Optional, Protocol

from .errors import PersistenceWriteError

_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9._-]")


class KeyValueStorage(Protocol):
    """String-to-string store in the shape of the browser's ``localStorage``."""

    def get_item(self, key: str) -> Optional[str]:
        """Return the stored value, or ``None`` when the key is absent."""
        ...

    def set_item(self, key: str, value: str) -> None:
        """Store ``value``; raise ``PersistenceWriteError`` on failure."""
        ...

    def remove_item(self, key: str) -> None:
        """Drop ``key`` if present."""
        ...


class MemoryStorage:
    """Process-local storage; handy for tests and throwaway sessions."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._items: Dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._items)


class FileStorage:
    """One ``<key>.json`` file per key inside ``directory``.

    Writes go to a temporary sibling first and are moved into place, so a
    crash mid-write leaves the previous value intact.
    """

    def __init__(self, directory: str | os.PathLike[str]) -> None:
        self.directory = Path(directory).expanduser()

    def path_for(self, key: str) -> Path:
        return self.directory / f"{_UNSAFE_KEY_CHARS.sub('_', key)}.json"

    def get_item(self, key: str) -> Optional[str]:
        path = self.path_for(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def set_item(self, key: str, value: str) -> None:
        path = self.path_for(key)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.directory, prefix=f".{path.stem}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(value)
                os.replace(tmp_name, path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except OSError as exc:
            raise PersistenceWriteError(key, str(exc)) from exc

    def remove_item(self, key: str) -> None:
        try:
            self.path_for(key).unlink()
        except FileNotFoundError:
            return


__all__ = ["FileStorage", "KeyValueStorage", "MemoryStorage"]
