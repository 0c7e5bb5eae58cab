"""Tests for the SQLite-backed preset, task and run stores, and for
snapshot import/export."""

from datetime import datetime

import pytest

from flowtimer.database.db import get_session
from flowtimer.database.models import PresetRecord, RunRecord
from flowtimer.database.store import (
    PRESETS_KEY, TASKS_KEY, PresetStore, RunLog, TaskStore,
    export_snapshot, import_snapshot,
)
from flowtimer.flow.model import LoopStep, NotificationStep, TimerStep
from flowtimer.timer.attribution import AttributionPolicy, TimeAttributor
from flowtimer.timer.engine import FlowTimerEngine

from helpers import ManualTickSource


# ═══════════════════════════════════════════════════════════════════════════
#  PRESETS
# ═══════════════════════════════════════════════════════════════════════════


class TestPresetStore:

    def test_starts_empty(self):
        assert PresetStore().list_presets() == []

    def test_default_names_count_up(self):
        store = PresetStore()
        assert store.create().name == "Timer 1"
        assert store.create().name == "Timer 2"

    def test_create_with_name_and_flow(self):
        flow = (TimerStep(25, id="t"),)
        preset = PresetStore().create("Focus", flow)
        assert preset.name == "Focus"
        assert preset.flow == flow

    def test_list_keeps_creation_order(self):
        store = PresetStore()
        ids = [store.create(f"P{i}").id for i in range(4)]
        assert [p.id for p in store.list_presets()] == ids

    def test_save_flow_round_trips_nested_steps(self):
        store = PresetStore()
        preset = store.create("Work")
        flow = (
            LoopStep(4, (TimerStep(25, id="w"), NotificationStep(id="n"), TimerStep(5, id="b")), id="l"),
        )
        store.save_flow(preset.id, flow)
        assert store.get(preset.id).flow == flow

    def test_flow_stored_in_serialized_form(self):
        store = PresetStore()
        preset = store.create("Work", (TimerStep(1, id="t"),))
        with get_session() as db:
            record = db.get(PresetRecord, preset.id)
            assert record.flow == [{"id": "t", "type": "timer", "minutes": 1}]

    def test_rename(self):
        store = PresetStore()
        preset = store.create("Old")
        assert store.rename(preset.id, "New").name == "New"
        assert store.get(preset.id).name == "New"

    def test_delete(self):
        store = PresetStore()
        preset = store.create()
        assert store.delete(preset.id) is True
        assert store.get(preset.id) is None
        assert store.delete(preset.id) is False

    def test_missing_ids(self):
        store = PresetStore()
        assert store.get("nope") is None
        assert store.rename("nope", "x") is None
        assert store.save_flow("nope", ()) is None


# ═══════════════════════════════════════════════════════════════════════════
#  TASKS
# ═══════════════════════════════════════════════════════════════════════════


class TestTaskStore:

    def test_create_defaults(self):
        task = TaskStore().create()
        assert task.name == "New Task"
        assert task.tracked_seconds == 0

    def test_list(self):
        store = TaskStore()
        store.create("A")
        store.create("B")
        assert sorted(t.name for t in store.list_tasks()) == ["A", "B"]

    def test_rename_and_delete(self):
        store = TaskStore()
        task = store.create("A")
        assert store.rename(task.id, "B").name == "B"
        assert store.delete(task.id) is True
        assert store.get(task.id) is None

    def test_add_contribution_accumulates(self):
        store = TaskStore()
        task = store.create()
        store.add_contribution(task.id, 60)
        store.add_contribution(task.id, 30)
        assert store.get(task.id).tracked_seconds == 90

    def test_non_positive_contribution_ignored(self):
        store = TaskStore()
        task = store.create()
        store.add_contribution(task.id, 0)
        store.add_contribution(task.id, -10)
        assert store.get(task.id).tracked_seconds == 0

    def test_unknown_task_is_ignored(self, caplog):
        TaskStore().add_contribution("gone", 60)
        assert "gone" in caplog.text

    def test_engine_credits_task_in_database(self, qapp):
        store = TaskStore()
        task = store.create("Write")
        ticks = ManualTickSource()
        engine = FlowTimerEngine(
            tick_source=ticks, attributor=TimeAttributor(store),
        )
        engine.start((TimerStep(1),), task.id)
        ticks.fire(60)
        engine.start((TimerStep(1),), task.id)
        ticks.fire(15)
        engine.stop()
        assert store.get(task.id).tracked_seconds == 75

    def test_minutes_floor_is_stored_as_seconds(self):
        store = TaskStore()
        task = store.create()
        attributor = TimeAttributor(store, policy=AttributionPolicy.MINUTES_FLOOR)
        attributor.on_manual_stop(task.id, 600, 600 - 150)
        assert store.get(task.id).tracked_seconds == 120


# ═══════════════════════════════════════════════════════════════════════════
#  RUN LOG
# ═══════════════════════════════════════════════════════════════════════════


class TestRunLog:

    def _run(self, **overrides):
        data = {
            "task_id": "t",
            "total_seconds": 120,
            "elapsed_seconds": 30,
            "recorded_seconds": 30,
            "started_at": datetime(2024, 1, 1, 9, 0, 0),
            "ended_at": datetime(2024, 1, 1, 9, 0, 30),
        }
        data.update(overrides)
        return data

    def test_record(self):
        log = RunLog()
        run_id = log.record(self._run(), preset_id="p", completed=False)
        with get_session() as db:
            row = db.get(RunRecord, run_id)
            assert row.preset_id == "p"
            assert row.task_id == "t"
            assert row.elapsed_seconds == 30
            assert row.completed is False

    def test_recent_is_newest_first(self):
        log = RunLog()
        log.record(self._run(ended_at=datetime(2024, 1, 1, 9)), completed=True)
        log.record(self._run(ended_at=datetime(2024, 1, 2, 9)), completed=False)
        runs = log.recent()
        assert [r.completed for r in runs] == [False, True]

    def test_recent_limit(self):
        log = RunLog()
        for _ in range(5):
            log.record(self._run(), completed=True)
        assert len(log.recent(limit=3)) == 3

    def test_missing_ended_at_defaults_to_now(self):
        log = RunLog()
        run_id = log.record(self._run(ended_at=None), completed=True)
        with get_session() as db:
            assert db.get(RunRecord, run_id).ended_at is not None


# ═══════════════════════════════════════════════════════════════════════════
#  SNAPSHOTS
# ═══════════════════════════════════════════════════════════════════════════


class TestSnapshots:

    def test_export_uses_storage_keys(self):
        PresetStore().create("Work", (TimerStep(25, id="t"),))
        task = TaskStore().create("Write")
        TaskStore().add_contribution(task.id, 90)

        data = export_snapshot()
        assert data[PRESETS_KEY][0]["name"] == "Work"
        assert data[PRESETS_KEY][0]["flow"] == [{"id": "t", "type": "timer", "minutes": 25}]
        assert data[TASKS_KEY] == [{"id": task.id, "name": "Write", "totalSeconds": 90}]

    def test_export_then_import_into_fresh_database(self):
        PresetStore().create("Work", (LoopStep(2, (TimerStep(5),)),))
        task = TaskStore().create("Write")
        TaskStore().add_contribution(task.id, 42)
        data = export_snapshot()

        from flowtimer.database.db import configure_engine, init_db
        configure_engine("sqlite:///:memory:")
        init_db()

        assert import_snapshot(data) == (1, 1)
        assert export_snapshot() == data

    def test_legacy_minutes_are_converted(self):
        import_snapshot({TASKS_KEY: [{"id": "t", "name": "Old", "totalMinutes": 3}]})
        assert TaskStore().get("t").tracked_seconds == 180

    def test_seconds_take_precedence(self):
        import_snapshot({TASKS_KEY: [
            {"id": "t", "name": "Both", "totalSeconds": 61, "totalMinutes": 1},
        ]})
        assert TaskStore().get("t").tracked_seconds == 61

    def test_import_overwrites_existing_ids(self):
        preset = PresetStore().create("Before")
        import_snapshot({PRESETS_KEY: [{"id": preset.id, "name": "After", "flow": []}]})
        presets = PresetStore().list_presets()
        assert [p.name for p in presets] == ["After"]

    def test_import_coerces_bad_values(self):
        import_snapshot({PRESETS_KEY: [{
            "id": "p", "name": "Bad",
            "flow": [{"type": "timer", "minutes": "-2"}],
        }]})
        assert PresetStore().get("p").flow[0].minutes == 0

    def test_malformed_entry_leaves_database_untouched(self):
        with pytest.raises(ValueError):
            import_snapshot({
                PRESETS_KEY: [{"id": "p", "name": "Ok", "flow": []}],
                TASKS_KEY: ["not a task"],
            })
        assert PresetStore().list_presets() == []

    def test_unknown_step_type_rolls_back(self):
        with pytest.raises(ValueError):
            import_snapshot({PRESETS_KEY: [
                {"id": "a", "name": "Ok", "flow": []},
                {"id": "b", "name": "Bad", "flow": [{"type": "sleep"}]},
            ]})
        assert PresetStore().list_presets() == []

    def test_empty_snapshot(self):
        assert import_snapshot({}) == (0, 0)

    @pytest.mark.parametrize("data", [
        {PRESETS_KEY: 5},
        {TASKS_KEY: "tasks"},
        {PRESETS_KEY: {"id": "p"}},
        {PRESETS_KEY: [{"id": "p", "flow": 5}]},
        {PRESETS_KEY: [{"id": "p", "flow": [{"type": "loop", "children": 3}]}]},
    ])
    def test_wrong_shapes_raise_value_error(self, data):
        with pytest.raises(ValueError):
            import_snapshot(data)
        assert PresetStore().list_presets() == []
        assert TaskStore().list_tasks() == []

    def test_non_string_names_are_stored_as_text(self):
        import_snapshot({
            PRESETS_KEY: [{"id": "p", "name": 7, "flow": []}],
            TASKS_KEY: [{"id": "t", "name": ["x"], "totalSeconds": 1}],
        })
        assert PresetStore().get("p").name == "7"
        assert TaskStore().get("t").name == "['x']"
