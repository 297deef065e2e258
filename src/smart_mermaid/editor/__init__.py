"""Editor state and the undo/redo command log."""

from .command_log import MAX_LOG_SIZE, CommandLog, Snapshot
from .state import (
    DEFAULT_DIAGRAM_TYPE,
    DEFAULT_RENDER_MODE,
    EDITOR_STORAGE_KEY,
    DiagramType,
    Editor,
    EditorSnapshot,
    EditorState,
    EditorStateProvider,
    RenderMode,
    load_editor,
    save_editor,
)

__all__ = [
    "CommandLog",
    "DEFAULT_DIAGRAM_TYPE",
    "DEFAULT_RENDER_MODE",
    "DiagramType",
    "EDITOR_STORAGE_KEY",
    "Editor",
    "EditorSnapshot",
    "EditorState",
    "EditorStateProvider",
    "MAX_LOG_SIZE",
    "RenderMode",
    "Snapshot",
    "load_editor",
    "save_editor",
]
