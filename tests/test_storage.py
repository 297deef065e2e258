from pathlib import Path

import pytest

from smart_mermaid.editor import Editor, load_editor
from smart_mermaid.history import (
    FileStorage,
    MemoryStorage,
    PersistenceWriteError,
    VersionStore,
)


def test_file_storage_round_trip(tmp_path: Path) -> None:
    storage = FileStorage(tmp_path / "state")

    assert storage.get_item("smart-mermaid-history") is None
    storage.set_item("smart-mermaid-history", '{"records": []}')

    assert storage.get_item("smart-mermaid-history") == '{"records": []}'
    assert storage.path_for("smart-mermaid-history").name == "smart-mermaid-history.json"


def test_file_storage_sanitises_keys(tmp_path: Path) -> None:
    storage = FileStorage(tmp_path)

    assert storage.path_for("../escape/key").parent == tmp_path


def test_file_storage_remove_is_idempotent(tmp_path: Path) -> None:
    storage = FileStorage(tmp_path)
    storage.set_item("k", "v")

    storage.remove_item("k")
    storage.remove_item("k")

    assert storage.get_item("k") is None
    assert list(tmp_path.iterdir()) == []


def test_file_storage_write_failure_raises_persistence_error(tmp_path: Path) -> None:
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("occupied")
    storage = FileStorage(blocker)

    with pytest.raises(PersistenceWriteError) as excinfo:
        storage.set_item("k", "v")

    assert excinfo.value.key == "k"


def test_store_survives_unwritable_file_storage(tmp_path: Path) -> None:
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("occupied")
    editor = Editor()
    editor.set_diagram_code("graph TD")
    store = VersionStore(editor, storage=FileStorage(blocker))

    record = store.manual_save("kept in memory")

    assert store.get_record(record.id) is record


def test_store_reloads_from_file_storage(tmp_path: Path) -> None:
    editor = Editor()
    editor.set_diagram_code("graph TD\nA-->B")
    first = VersionStore(editor, storage=FileStorage(tmp_path))
    saved = first.manual_save("on disk", "desc", ["t"])

    second = VersionStore(Editor(), storage=FileStorage(tmp_path))

    assert second.get_record(saved.id) == saved


def test_memory_storage_keys() -> None:
    storage = MemoryStorage({"a": "1"})
    storage.set_item("b", "2")
    storage.remove_item("a")

    assert storage.keys() == ["b"]


def test_store_starts_empty_when_history_file_is_not_utf8(tmp_path: Path) -> None:
    storage = FileStorage(tmp_path)
    storage.path_for("smart-mermaid-history").write_bytes(b"\xff\xfe{garbage")

    store = VersionStore(Editor(), storage=storage)

    assert len(store) == 0


def test_editor_loads_blank_when_editor_file_is_not_utf8(tmp_path: Path) -> None:
    storage = FileStorage(tmp_path)
    storage.path_for("smart-mermaid-storage").write_bytes(b"\xff\xfe{garbage")

    editor = load_editor(storage)

    assert editor.snapshot().diagram_code == ""
