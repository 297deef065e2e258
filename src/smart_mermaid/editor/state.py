"""Live editor state and the accessor the version store talks through."""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional, Protocol

from smart_mermaid.runtime import telemetry
from smart_mermaid.runtime.clock import Clock, now_ms

from .command_log import MAX_LOG_SIZE, CommandLog, Snapshot

EDITOR_STORAGE_KEY = "smart-mermaid-storage"


class RenderMode(str, Enum):
    """Renderers the editor can hand diagram code to."""

    EXCALIDRAW = "excalidraw"
    MERMAID = "mermaid"


class DiagramType(str, Enum):
    """Diagram type tags the generator understands (``auto`` lets it pick)."""

    AUTO = "auto"
    FLOWCHART = "flowchart"
    SEQUENCE = "sequence"
    CLASS = "class"
    STATE = "state"
    ER = "er"
    GANTT = "gantt"
    PIE = "pie"
    MINDMAP = "mindmap"
    TIMELINE = "timeline"
    JOURNEY = "journey"


DEFAULT_DIAGRAM_TYPE = DiagramType.AUTO.value
DEFAULT_RENDER_MODE = RenderMode.EXCALIDRAW.value


@dataclass(frozen=True, slots=True)
class EditorSnapshot:
    """The slice of editor state captured by version records."""

    diagram_code: str = ""
    input_text: str = ""
    diagram_type: str = DEFAULT_DIAGRAM_TYPE
    render_mode: str = DEFAULT_RENDER_MODE


class EditorStateProvider(Protocol):
    """How the version store reads and writes live editor state."""

    def snapshot(self) -> EditorSnapshot:
        """Return the current diagram code, input text and type tags."""
        ...

    def apply(self, snapshot: EditorSnapshot) -> None:
        """Load ``snapshot`` into the editor (used when restoring a version)."""
        ...


@dataclass(slots=True)
class EditorState:
    input_text: str = ""
    diagram_code: str = ""
    diagram_type: str = DEFAULT_DIAGRAM_TYPE
    render_mode: str = DEFAULT_RENDER_MODE
    error_message: Optional[str] = None
    has_error: bool = False


class Editor:
    """Editor state plus the command log backing undo/redo of diagram code."""

    def __init__(
        self,
        *,
        state: Optional[EditorState] = None,
        log: Optional[CommandLog] = None,
        max_log_size: int = MAX_LOG_SIZE,
        clock: Clock = now_ms,
    ) -> None:
        self.state = state or EditorState()
        self.log = log or CommandLog(max_size=max_log_size, clock=clock)

    def snapshot(self) -> EditorSnapshot:
        return EditorSnapshot(
            diagram_code=self.state.diagram_code,
            input_text=self.state.input_text,
            diagram_type=self.state.diagram_type,
            render_mode=self.state.render_mode,
        )

    def apply(self, snapshot: EditorSnapshot) -> None:
        self.set_diagram_code(snapshot.diagram_code)
        self.state.input_text = snapshot.input_text
        self.state.diagram_type = snapshot.diagram_type
        self.state.render_mode = snapshot.render_mode

    def set_input_text(self, text: str) -> None:
        self.state.input_text = text

    def set_diagram_code(self, code: str) -> Snapshot:
        """Replace the diagram code and record the edit for undo."""

        self.state.diagram_code = code
        return self.log.record(code)

    def set_diagram_type(self, diagram_type: str) -> None:
        self.state.diagram_type = str(diagram_type)

    def set_render_mode(self, mode: str) -> None:
        self.state.render_mode = RenderMode(mode).value

    def toggle_render_mode(self) -> str:
        current = self.state.render_mode
        self.state.render_mode = (
            RenderMode.MERMAID.value
            if current == RenderMode.EXCALIDRAW.value
            else RenderMode.EXCALIDRAW.value
        )
        return self.state.render_mode

    def set_error(self, message: Optional[str]) -> None:
        self.state.error_message = message
        self.state.has_error = message is not None

    def can_undo(self) -> bool:
        return self.log.can_undo()

    def can_redo(self) -> bool:
        return self.log.can_redo()

    def undo(self) -> Optional[Snapshot]:
        snapshot = self.log.undo()
        if snapshot is not None:
            self.state.diagram_code = snapshot.code
        return snapshot

    def redo(self) -> Optional[Snapshot]:
        snapshot = self.log.redo()
        if snapshot is not None:
            self.state.diagram_code = snapshot.code
        return snapshot

    def clear_history(self) -> None:
        self.log.clear()

    def reset(self) -> None:
        render_mode = self.state.render_mode
        self.state = EditorState(render_mode=render_mode)
        self.log.clear()

    def to_dict(self) -> dict[str, Any]:
        return {
            "editor": {
                "inputText": self.state.input_text,
                "diagramCode": self.state.diagram_code,
                "diagramType": self.state.diagram_type,
            },
            "ui": {"renderMode": self.state.render_mode},
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], **kwargs: Any) -> "Editor":
        """Rebuild an editor from :meth:`to_dict` output.

        The diagram code is loaded without recording it, so a restored editor
        starts with an empty command log.
        """

        payload = data.get("state", data)
        editor_data = payload.get("editor") or {}
        ui_data = payload.get("ui") or {}
        code = editor_data.get("diagramCode", editor_data.get("mermaidCode", ""))
        state = EditorState(
            input_text=str(editor_data.get("inputText") or ""),
            diagram_code=str(code or ""),
            diagram_type=str(editor_data.get("diagramType") or DEFAULT_DIAGRAM_TYPE),
            render_mode=str(ui_data.get("renderMode") or DEFAULT_RENDER_MODE),
        )
        return cls(state=state, **kwargs)


def load_editor(storage: Any, key: str = EDITOR_STORAGE_KEY, **kwargs: Any) -> Editor:
    """Load the persisted editor, falling back to a blank one."""

    try:
        raw = storage.get_item(key)
        data = json.loads(raw) if raw else None
    except (OSError, ValueError) as exc:
        telemetry.record_event(
            "editor.load_failed", level="warning", data={"key": key, "error": str(exc)}
        )
        return Editor(**kwargs)
    if not isinstance(data, Mapping):
        return Editor(**kwargs)
    return Editor.from_dict(data, **kwargs)


def save_editor(editor: Editor, storage: Any, key: str = EDITOR_STORAGE_KEY) -> None:
    storage.set_item(key, json.dumps(editor.to_dict(), ensure_ascii=False))


__all__ = [
    "DEFAULT_DIAGRAM_TYPE",
    "DEFAULT_RENDER_MODE",
    "DiagramType",
    "EDITOR_STORAGE_KEY",
    "Editor",
    "EditorSnapshot",
    "EditorState",
    "EditorStateProvider",
    "RenderMode",
    "load_editor",
    "save_editor",
]
