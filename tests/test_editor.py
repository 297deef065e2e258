import json

import pytest

from smart_mermaid.editor import (
    Editor,
    EditorSnapshot,
    RenderMode,
    load_editor,
    save_editor,
)
from smart_mermaid.history import MemoryStorage


def test_set_diagram_code_records_for_undo() -> None:
    editor = Editor()

    editor.set_diagram_code("graph TD")
    editor.set_diagram_code("graph LR")

    assert editor.state.diagram_code == "graph LR"
    assert len(editor.log) == 2
    assert editor.can_undo() is True


def test_undo_and_redo_load_code_without_recording() -> None:
    editor = Editor()
    editor.set_diagram_code("one")
    editor.set_diagram_code("two")

    editor.undo()
    assert editor.state.diagram_code == "one"
    editor.redo()

    assert editor.state.diagram_code == "two"
    assert len(editor.log) == 2


def test_undo_without_history_leaves_state_alone() -> None:
    editor = Editor()
    editor.set_diagram_code("only")

    assert editor.undo() is None
    assert editor.state.diagram_code == "only"


def test_apply_loads_every_field_and_is_undoable() -> None:
    editor = Editor()
    editor.set_diagram_code("before")

    editor.apply(
        EditorSnapshot(
            diagram_code="after",
            input_text="describe it",
            diagram_type="sequence",
            render_mode="mermaid",
        )
    )

    assert editor.snapshot() == EditorSnapshot("after", "describe it", "sequence", "mermaid")
    editor.undo()
    assert editor.state.diagram_code == "before"


def test_render_mode_toggle_and_validation() -> None:
    editor = Editor()

    assert editor.state.render_mode == RenderMode.EXCALIDRAW.value
    assert editor.toggle_render_mode() == "mermaid"
    assert editor.toggle_render_mode() == "excalidraw"
    with pytest.raises(ValueError):
        editor.set_render_mode("canvas")


def test_set_error_tracks_flag() -> None:
    editor = Editor()

    editor.set_error("parse error")
    assert editor.state.has_error is True
    editor.set_error(None)
    assert editor.state.has_error is False


def test_reset_clears_state_and_log_but_keeps_render_mode() -> None:
    editor = Editor()
    editor.set_render_mode("mermaid")
    editor.set_input_text("text")
    editor.set_diagram_code("code")

    editor.reset()

    assert editor.state.diagram_code == ""
    assert editor.state.input_text == ""
    assert editor.state.render_mode == "mermaid"
    assert len(editor.log) == 0


def test_to_dict_round_trip_starts_with_empty_log() -> None:
    editor = Editor()
    editor.set_input_text("a login flow")
    editor.set_diagram_code("graph TD\nA-->B")
    editor.set_diagram_type("flowchart")

    restored = Editor.from_dict(editor.to_dict())

    assert restored.snapshot() == editor.snapshot()
    assert len(restored.log) == 0


def test_from_dict_accepts_legacy_layout() -> None:
    data = {
        "state": {
            "editor": {"inputText": "x", "mermaidCode": "graph TD", "diagramType": "auto"},
            "ui": {"renderMode": "mermaid", "isLeftPanelCollapsed": True},
        },
        "version": 0,
    }

    editor = Editor.from_dict(data)

    assert editor.state.diagram_code == "graph TD"
    assert editor.state.render_mode == "mermaid"


def test_save_and_load_editor_through_storage() -> None:
    storage = MemoryStorage()
    editor = Editor()
    editor.set_diagram_code("graph TD")
    save_editor(editor, storage)

    loaded = load_editor(storage)

    assert loaded.state.diagram_code == "graph TD"
    assert json.loads(storage.get_item("smart-mermaid-storage"))["editor"]["diagramCode"]


def test_load_editor_falls_back_on_corrupt_blob() -> None:
    storage = MemoryStorage({"smart-mermaid-storage": "{not json"})

    editor = load_editor(storage)

    assert editor.snapshot() == EditorSnapshot()
