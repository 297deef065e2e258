"""Command-line access to the persisted editor state and version history."""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import dataclass, replace
from datetime import timedelta
from pathlib import Path
from typing import Callable, Dict, Optional, Sequence, TextIO

from smart_mermaid.config import Settings
from smart_mermaid.editor import Editor, RenderMode, load_editor, save_editor
from smart_mermaid.history import (
    EXPORT_FORMATS,
    CleanupOptions,
    DateRange,
    FileStorage,
    HistoryError,
    SearchFilters,
    VersionRecord,
    VersionStore,
)


@dataclass
class Workspace:
    """Storage, editor and store wired together for one CLI invocation."""

    settings: Settings
    storage: FileStorage
    editor: Editor
    store: VersionStore
    out: TextIO

    @classmethod
    def open(cls, settings: Settings, *, out: TextIO) -> "Workspace":
        storage = FileStorage(settings.storage_dir)
        editor = load_editor(
            storage, settings.editor_key, max_log_size=settings.max_log_size
        )
        store = VersionStore(
            editor,
            storage=storage,
            storage_key=settings.history_key,
            max_records=settings.max_records,
        )
        return cls(settings=settings, storage=storage, editor=editor, store=store, out=out)

    def save_editor(self) -> None:
        save_editor(self.editor, self.storage, self.settings.editor_key)

    def echo(self, line: str = "") -> None:
        print(line, file=self.out)


def _format_row(record: VersionRecord) -> str:
    kind = "auto" if record.auto_saved else "manual"
    return (
        f"{record.id}  {record.formatted_time}  {kind:<6}  "
        f"{record.diagram_type:<10}  {record.short_title}"
    )


def _cmd_list(ws: Workspace, args: argparse.Namespace) -> int:
    records = ws.store.all_records()
    if args.limit:
        records = records[: args.limit]
    for record in records:
        ws.echo(_format_row(record))
    return 0


def _cmd_show(ws: Workspace, args: argparse.Namespace) -> int:
    record = ws.store.require_record(args.id)
    ws.echo(json.dumps(record.to_dict(), ensure_ascii=False, indent=2))
    return 0


def _cmd_save(ws: Workspace, args: argparse.Namespace) -> int:
    record = ws.store.manual_save(args.title, args.description, args.tag or ())
    ws.echo(record.id)
    return 0


def _cmd_autosave(ws: Workspace, args: argparse.Namespace) -> int:
    del args
    record = ws.store.auto_save()
    ws.echo(record.id if record else "nothing to save")
    return 0


def _cmd_delete(ws: Workspace, args: argparse.Namespace) -> int:
    if not ws.store.delete_record(args.id):
        print(f"error: history record not found: {args.id}", file=sys.stderr)
        return 1
    ws.echo(f"deleted {args.id}")
    return 0


def _cmd_restore(ws: Workspace, args: argparse.Namespace) -> int:
    record = ws.store.restore_record(args.id)
    ws.save_editor()
    ws.echo(record.id)
    return 0


def _cmd_search(ws: Workspace, args: argparse.Namespace) -> int:
    filters = SearchFilters(
        auto_saved=args.auto_saved,
        diagram_type=args.type,
        render_mode=args.render_mode,
        date_range=(
            DateRange.from_bounds(args.since, args.until)
            if args.since or args.until
            else None
        ),
        tags=frozenset(args.tag or ()),
    )
    for record in ws.store.search_records(args.query, filters):
        ws.echo(_format_row(record))
    return 0


def _cmd_compare(ws: Workspace, args: argparse.Namespace) -> int:
    result = ws.store.compare_records(args.id1, args.id2)
    diff = result.differences
    for name in ("title", "diagram_code", "input_text", "diagram_type", "render_mode"):
        state = "changed" if getattr(diff, name) else "same"
        ws.echo(f"{name:<13} {state}")
    ws.echo(f"{'time_diff':<13} {diff.time_diff} ms")
    ws.echo(f"{'code_size':<13} {diff.size_diff.code:+d} chars")
    ws.echo(f"{'input_size':<13} {diff.size_diff.input:+d} chars")
    return 0


def _cmd_stats(ws: Workspace, args: argparse.Namespace) -> int:
    del args
    stats = ws.store.get_statistics()
    ws.echo(f"total: {stats.total} (auto {stats.auto_saved}, manual {stats.manual})")
    ws.echo(
        f"last 24h: {stats.today}  last 7d: {stats.this_week}  "
        f"last 30d: {stats.this_month}"
    )
    ws.echo(f"average complexity: {stats.average_complexity}")
    ws.echo(f"total code lines: {stats.total_code_lines}")
    for usage in stats.most_used_types:
        ws.echo(f"  {usage.type}: {usage.count}")
    return 0


def _cmd_export(ws: Workspace, args: argparse.Namespace) -> int:
    payload = ws.store.export_history(args.format)
    if args.output:
        Path(args.output).write_text(payload, encoding="utf-8")
        ws.echo(f"exported {len(ws.store)} records to {args.output}")
    else:
        ws.echo(payload)
    return 0


def _cmd_import(ws: Workspace, args: argparse.Namespace) -> int:
    if args.file == "-":
        data = sys.stdin.read()
    else:
        data = Path(args.file).read_text(encoding="utf-8")
    result = ws.store.import_history(data)
    ws.echo(
        f"imported {result.imported}, skipped {result.skipped} of {result.total}"
    )
    return 0


def _cmd_cleanup(ws: Workspace, args: argparse.Namespace) -> int:
    options = CleanupOptions(
        older_than=timedelta(days=args.older_than_days),
        keep_auto_saved=args.keep_auto_saved,
        keep_manual=not args.drop_manual,
        max_records=args.max_records,
    )
    result = ws.store.cleanup(options)
    ws.echo(f"removed {result.removed}, {result.remaining} remaining")
    return 0


def _cmd_edit(ws: Workspace, args: argparse.Namespace) -> int:
    if args.code_file:
        ws.editor.set_diagram_code(Path(args.code_file).read_text(encoding="utf-8"))
    if args.input_file:
        ws.editor.set_input_text(Path(args.input_file).read_text(encoding="utf-8"))
    if args.type:
        ws.editor.set_diagram_type(args.type)
    if args.render_mode:
        ws.editor.set_render_mode(args.render_mode)
    ws.save_editor()
    state = ws.editor.state
    ws.echo(
        f"code: {len(state.diagram_code)} chars, input: {len(state.input_text)} chars, "
        f"type: {state.diagram_type}, render: {state.render_mode}"
    )
    return 0


_COMMANDS: Dict[str, Callable[[Workspace, argparse.Namespace], int]] = {
    "list": _cmd_list,
    "show": _cmd_show,
    "save": _cmd_save,
    "autosave": _cmd_autosave,
    "delete": _cmd_delete,
    "restore": _cmd_restore,
    "search": _cmd_search,
    "compare": _cmd_compare,
    "stats": _cmd_stats,
    "export": _cmd_export,
    "import": _cmd_import,
    "cleanup": _cmd_cleanup,
    "edit": _cmd_edit,
}


def build_parser(settings: Optional[Settings] = None) -> argparse.ArgumentParser:
    settings = settings or Settings.from_env()
    parser = argparse.ArgumentParser(
        prog="smart-mermaid", description="Manage smart-mermaid editor history."
    )
    parser.add_argument(
        "--storage-dir",
        default=settings.storage_dir,
        help=f"Directory holding persisted state (default: {settings.storage_dir})",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    listing = sub.add_parser("list", help="List records, newest first")
    listing.add_argument("--limit", type=int, default=0)

    show = sub.add_parser("show", help="Print one record as JSON")
    show.add_argument("id")

    save = sub.add_parser("save", help="Checkpoint the current editor state")
    save.add_argument("--title", required=True)
    save.add_argument("--description", default="")
    save.add_argument("--tag", action="append")

    sub.add_parser("autosave", help="Auto-save if the editor changed")

    delete = sub.add_parser("delete", help="Delete a record")
    delete.add_argument("id")

    restore = sub.add_parser("restore", help="Load a record into the editor")
    restore.add_argument("id")

    search = sub.add_parser("search", help="Search and filter records")
    search.add_argument("query", nargs="?", default="")
    kind = search.add_mutually_exclusive_group()
    kind.add_argument(
        "--auto-saved", dest="auto_saved", action="store_const", const=True
    )
    kind.add_argument("--manual", dest="auto_saved", action="store_const", const=False)
    search.add_argument("--type")
    search.add_argument("--render-mode", choices=[m.value for m in RenderMode])
    search.add_argument("--tag", action="append")
    search.add_argument("--since", help="ISO-8601 lower bound (inclusive)")
    search.add_argument("--until", help="ISO-8601 upper bound (inclusive)")

    compare = sub.add_parser("compare", help="Diff two records")
    compare.add_argument("id1")
    compare.add_argument("id2")

    sub.add_parser("stats", help="Show history statistics")

    export = sub.add_parser("export", help="Export history")
    export.add_argument("--format", default="json", choices=EXPORT_FORMATS)
    export.add_argument("--output", help="Write to a file instead of stdout")

    imp = sub.add_parser("import", help="Import a JSON export ('-' for stdin)")
    imp.add_argument("file")

    cleanup = sub.add_parser("cleanup", help="Apply the retention policy")
    cleanup.add_argument("--older-than-days", type=float, default=30)
    cleanup.add_argument("--keep-auto-saved", action="store_true")
    cleanup.add_argument("--drop-manual", action="store_true")
    cleanup.add_argument("--max-records", type=int)

    edit = sub.add_parser("edit", help="Update the persisted editor state")
    edit.add_argument("--code-file")
    edit.add_argument("--input-file")
    edit.add_argument("--type")
    edit.add_argument("--render-mode", choices=[m.value for m in RenderMode])

    return parser


def main(argv: Optional[Sequence[str]] = None, *, out: Optional[TextIO] = None) -> int:
    base = Settings.from_env()
    args = build_parser(base).parse_args(argv)
    settings = replace(base, storage_dir=args.storage_dir)
    try:
        workspace = Workspace.open(settings, out=out or sys.stdout)
        return _COMMANDS[args.command](workspace, args)
    except (HistoryError, ValueError, OSError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":  # pragma: no cover - manual entry point
    raise SystemExit(main())
