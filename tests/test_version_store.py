from datetime import timedelta

import pytest

from smart_mermaid.editor import Editor
from smart_mermaid.history import (
    CleanupOptions,
    MemoryStorage,
    NotFoundError,
    PersistenceWriteError,
    VersionRecord,
    VersionStore,
)
from smart_mermaid.runtime import DAY_MS, ManualClock

NOW = 1_700_000_000_000
HOUR_MS = 60 * 60 * 1000


def make_store(
    *,
    editor: Editor | None = None,
    clock: ManualClock | None = None,
    storage=None,
    max_records: int = 100,
) -> VersionStore:
    return VersionStore(
        editor or Editor(),
        storage=storage,
        clock=clock or ManualClock(NOW),
        max_records=max_records,
    )


def make_record(
    record_id: str,
    *,
    timestamp: int = NOW,
    code: str = "",
    auto_saved: bool = False,
    diagram_type: str = "auto",
    **fields,
) -> VersionRecord:
    return VersionRecord(
        id=record_id,
        timestamp=timestamp,
        title=fields.pop("title", record_id),
        diagram_code=code,
        auto_saved=auto_saved,
        diagram_type=diagram_type,
        **fields,
    )


class BrokenStorage(MemoryStorage):
    def set_item(self, key: str, value: str) -> None:
        raise PersistenceWriteError(key, "disk full")


def test_manual_save_into_empty_store() -> None:
    store = make_store()

    record = store.manual_save("v1", "first", ["draft"])
    stats = store.get_statistics()

    assert record.auto_saved is False
    assert record.tags == ("draft",)
    assert record.title == "v1"
    assert record.metadata["manual"] is True
    assert (stats.total, stats.manual, stats.auto_saved) == (1, 1, 0)


def test_manual_save_captures_editor_state() -> None:
    editor = Editor()
    editor.set_input_text("user signs in")
    editor.set_diagram_code("graph TD\nA-->B")
    editor.set_diagram_type("flowchart")
    store = make_store(editor=editor)

    record = store.manual_save("checkpoint")

    assert record.diagram_code == "graph TD\nA-->B"
    assert record.input_text == "user signs in"
    assert record.diagram_type == "flowchart"
    assert record.render_mode == "excalidraw"
    assert record.id.startswith(f"history_{NOW}_")


def test_manual_save_requires_title() -> None:
    store = make_store()

    with pytest.raises(ValueError):
        store.manual_save("   ")


def test_add_record_evicts_oldest_over_cap() -> None:
    store = make_store(max_records=100)

    for index in range(101):
        store.add_record(make_record(f"r{index}", timestamp=NOW + index))

    assert len(store) == 100
    assert "r0" not in store
    assert "r100" in store


def test_add_record_evicts_one_at_a_time() -> None:
    store = make_store(max_records=2)
    store.add_record(make_record("old", timestamp=NOW - 10))
    store.add_record(make_record("mid", timestamp=NOW - 5))

    store.add_record(make_record("new", timestamp=NOW))

    assert [record.id for record in store.all_records()] == ["new", "mid"]


def test_auto_save_skips_empty_editor() -> None:
    store = make_store()

    assert store.auto_save() is None
    assert len(store) == 0


def test_auto_save_skips_unchanged_content() -> None:
    editor = Editor()
    editor.set_diagram_code("graph TD")
    clock = ManualClock(NOW)
    store = make_store(editor=editor, clock=clock)

    first = store.auto_save()
    clock.advance(30_000)
    second = store.auto_save()
    editor.set_input_text("new prompt")
    clock.advance(30_000)
    third = store.auto_save()

    assert first is not None and first.auto_saved is True
    assert first.title.startswith("Auto-save ")
    assert second is None
    assert third is not None
    assert len(store) == 2


def test_auto_save_records_editor_lengths() -> None:
    editor = Editor()
    editor.set_input_text("abc")
    store = make_store(editor=editor)

    record = store.auto_save()

    assert record is not None
    assert record.metadata["editorState"] == {"codeLength": 0, "inputLength": 3}


def test_delete_record_reports_presence() -> None:
    store = make_store()
    store.add_record(make_record("a"))

    assert store.delete_record("a") is True
    assert store.delete_record("a") is False


def test_restore_unknown_id_raises() -> None:
    store = make_store()

    with pytest.raises(NotFoundError) as excinfo:
        store.restore_record("missing")

    assert excinfo.value.record_id == "missing"


def test_restore_pushes_state_and_appends_new_record() -> None:
    editor = Editor()
    clock = ManualClock(NOW)
    store = make_store(editor=editor, clock=clock)
    store.add_record(
        make_record(
            "saved",
            timestamp=NOW - DAY_MS,
            code="graph LR",
            input_text="pipeline",
            diagram_type="flowchart",
            render_mode="mermaid",
            title="Pipeline",
        )
    )
    clock.advance(1_000)

    restored = store.restore_record("saved")

    assert editor.snapshot() == store.get_record("saved").to_snapshot()
    assert restored.parent_id == "saved"
    assert restored.title == "Restored: Pipeline"
    assert restored.timestamp == NOW + 1_000
    assert restored.metadata["originalId"] == "saved"
    assert len(store) == 2
    assert store.get_record("saved").title == "Pipeline"


def test_dangling_parent_id_is_tolerated() -> None:
    store = make_store()
    store.add_record(make_record("parent", timestamp=NOW - 1))
    child = store.restore_record("parent")

    store.delete_record("parent")

    assert store.get_record(child.id).parent_id == "parent"


def test_compare_reports_character_size_diff() -> None:
    store = make_store()
    code1 = "\n".join(f"A{i} --> B{i}" for i in range(10))
    code2 = "\n".join(f"A{i} --> B{i}" for i in range(7))
    store.add_record(make_record("one", timestamp=NOW - 500, code=code1, input_text="xy"))
    store.add_record(make_record("two", timestamp=NOW, code=code2, input_text="xyz"))

    result = store.compare_records("one", "two")

    assert result.differences.size_diff.code == len(code1) - len(code2)
    assert result.differences.size_diff.input == -1
    assert result.differences.time_diff == 500
    assert result.differences.diagram_code is True
    assert result.differences.diagram_type is False
    assert result.record1.id == "one"


def test_compare_requires_both_records() -> None:
    store = make_store()
    store.add_record(make_record("one"))

    with pytest.raises(NotFoundError):
        store.compare_records("one", "ghost")


def test_statistics_use_fixed_windows() -> None:
    store = make_store()
    store.add_record(make_record("h", timestamp=NOW - HOUR_MS))
    store.add_record(make_record("d3", timestamp=NOW - 3 * DAY_MS))
    store.add_record(make_record("d10", timestamp=NOW - 10 * DAY_MS))
    store.add_record(make_record("d40", timestamp=NOW - 40 * DAY_MS))
    store.add_record(make_record("edge", timestamp=NOW - DAY_MS))

    stats = store.get_statistics()

    assert stats.today == 1
    assert stats.this_week == 3
    assert stats.this_month == 4
    assert stats.newest_record.id == "h"
    assert stats.oldest_record.id == "d40"


def test_statistics_complexity_and_lines() -> None:
    store = make_store()
    store.add_record(make_record("a", timestamp=NOW - 2, code="graph TD\nA[Start] --> B[End]"))
    store.add_record(make_record("b", timestamp=NOW - 1, code="graph TD\n\nA"))

    stats = store.get_statistics()

    # complexities 5 and 2 -> 3.5 rounds half up
    assert stats.average_complexity == 4
    assert stats.total_code_lines == 4


def test_statistics_rank_types_by_first_encounter_on_ties() -> None:
    store = make_store()
    types = ["pie", "sequence", "flowchart", "sequence", "flowchart"]
    for index, diagram_type in enumerate(types):
        store.add_record(make_record(f"r{index}", timestamp=NOW + index, diagram_type=diagram_type))

    stats = store.get_statistics()

    assert [(u.type, u.count) for u in stats.most_used_types] == [
        ("flowchart", 2),
        ("sequence", 2),
        ("pie", 1),
    ]


def test_statistics_on_empty_store() -> None:
    stats = make_store().get_statistics()

    assert stats.total == 0
    assert stats.average_complexity == 0
    assert stats.most_used_types == []
    assert stats.oldest_record is None


def test_cleanup_default_policy_example() -> None:
    store = make_store()
    store.add_record(make_record("d45", timestamp=NOW - 45 * DAY_MS, auto_saved=True))
    store.add_record(make_record("d20", timestamp=NOW - 20 * DAY_MS, auto_saved=False))
    store.add_record(make_record("d5", timestamp=NOW - 5 * DAY_MS, auto_saved=True))

    result = store.cleanup()

    assert (result.removed, result.remaining) == (2, 1)
    assert "d20" in store


def test_cleanup_can_drop_manual_and_keep_auto_saved() -> None:
    store = make_store()
    store.add_record(make_record("auto", timestamp=NOW - DAY_MS, auto_saved=True))
    store.add_record(make_record("manual", timestamp=NOW - DAY_MS - 1))

    result = store.cleanup(CleanupOptions(keep_auto_saved=True, keep_manual=False))

    assert result.removed == 1
    assert "auto" in store


def test_cleanup_max_records_walks_store_order_and_keeps_oldest() -> None:
    store = make_store()
    for index in range(5):
        store.add_record(make_record(f"r{index}", timestamp=NOW - (5 - index) * HOUR_MS))

    result = store.cleanup({"maxRecords": 2, "olderThan": 90 * DAY_MS})

    assert result.removed == 3
    assert result.remaining == 2
    assert [record.id for record in store.all_records()] == ["r1", "r0"]


def test_cleanup_accepts_timedelta_age() -> None:
    store = make_store()
    store.add_record(make_record("old", timestamp=NOW - 3 * DAY_MS))
    store.add_record(make_record("new", timestamp=NOW - HOUR_MS))

    result = store.cleanup(CleanupOptions(older_than=timedelta(days=2)))

    assert result.removed == 1
    assert "new" in store


def test_records_survive_reload_through_storage() -> None:
    storage = MemoryStorage()
    store = make_store(storage=storage)
    saved = store.manual_save("persisted", tags=["keep"])

    reopened = make_store(storage=storage)

    assert reopened.get_record(saved.id) == saved


def test_load_tolerates_unknown_fields_and_bad_records() -> None:
    storage = MemoryStorage(
        {
            "smart-mermaid-history": (
                '{"version": "1.0.0", "timestamp": 1, "extra": true, "records": ['
                '{"id": "good", "timestamp": 5, "title": "ok", "color": "red"},'
                '{"id": "bad", "timestamp": "yesterday"},'
                '"not-a-record"'
                "]}"
            )
        }
    )

    store = make_store(storage=storage)

    assert [record.id for record in store.all_records()] == ["good"]


def test_corrupt_blob_loads_as_empty_store() -> None:
    storage = MemoryStorage({"smart-mermaid-history": "]]"})

    assert len(make_store(storage=storage)) == 0


def test_persistence_failure_does_not_roll_back() -> None:
    store = make_store(storage=BrokenStorage())

    record = store.manual_save("still here")

    assert store.get_record(record.id) is record
