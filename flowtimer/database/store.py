"""Preset, task and run-history stores backed by the SQLite database.

Stores hand out plain frozen dataclasses (:class:`Preset`, :class:`Task`)
so callers never hold live ORM rows.

Snapshot format
---------------
``export_snapshot`` / ``import_snapshot`` use the same keys the original
browser build kept in local storage::

    {
      "timerPresets": [{"id": ..., "name": ..., "flow": [...]}],
      "tasks": [{"id": ..., "name": ..., "totalSeconds": 90}]
    }

Older exports counted task time in whole minutes (``totalMinutes``);
those are converted to seconds on import.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import func

from ..flow.model import Flow, Preset, coerce_count, flow_from_data, flow_to_data
from .db import get_session
from .models import PresetRecord, RunRecord, TaskRecord


logger = logging.getLogger(__name__)


PRESETS_KEY = "timerPresets"
TASKS_KEY = "tasks"

DEFAULT_TASK_NAME = "New Task"


def _new_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class Task:
    id: str
    name: str
    tracked_seconds: int = 0


def _to_preset(record: PresetRecord) -> Preset:
    return Preset(id=record.id, name=record.name, flow=flow_from_data(record.flow or []))


def _to_task(record: TaskRecord) -> Task:
    return Task(id=record.id, name=record.name, tracked_seconds=record.tracked_seconds)


# ══════════════════════════════════════════════════════════════════════════
#  PRESETS
# ══════════════════════════════════════════════════════════════════════════


class PresetStore:
    """CRUD for named flows, kept in creation order."""

    def list_presets(self) -> list[Preset]:
        with get_session() as db:
            records = (
                db.query(PresetRecord)
                .order_by(PresetRecord.position, PresetRecord.created_at)
                .all()
            )
            return [_to_preset(r) for r in records]

    def get(self, preset_id: str) -> Preset | None:
        with get_session() as db:
            record = db.get(PresetRecord, preset_id)
            return _to_preset(record) if record else None

    def create(self, name: str | None = None, flow: Flow = ()) -> Preset:
        """Add a preset.  Default name is ``Timer N`` (N = count + 1)."""
        with get_session() as db:
            count = db.query(func.count(PresetRecord.id)).scalar() or 0
            top = db.query(func.max(PresetRecord.position)).scalar()
            record = PresetRecord(
                id=_new_id(),
                name=name or f"Timer {count + 1}",
                position=(top + 1) if top is not None else 0,
                flow=flow_to_data(flow),
            )
            db.add(record)
            db.flush()
            return _to_preset(record)

    def rename(self, preset_id: str, name: str) -> Preset | None:
        with get_session() as db:
            record = db.get(PresetRecord, preset_id)
            if record is None:
                return None
            record.name = name
            return _to_preset(record)

    def save_flow(self, preset_id: str, flow: Flow) -> Preset | None:
        with get_session() as db:
            record = db.get(PresetRecord, preset_id)
            if record is None:
                return None
            record.flow = flow_to_data(flow)
            return _to_preset(record)

    def delete(self, preset_id: str) -> bool:
        with get_session() as db:
            record = db.get(PresetRecord, preset_id)
            if record is None:
                return False
            db.delete(record)
            return True


# ══════════════════════════════════════════════════════════════════════════
#  TASKS
# ══════════════════════════════════════════════════════════════════════════


class TaskStore:
    """CRUD for tasks plus the contribution entry point used by
    :class:`~flowtimer.timer.attribution.TimeAttributor`."""

    def list_tasks(self) -> list[Task]:
        with get_session() as db:
            records = db.query(TaskRecord).order_by(TaskRecord.created_at).all()
            return [_to_task(r) for r in records]

    def get(self, task_id: str) -> Task | None:
        with get_session() as db:
            record = db.get(TaskRecord, task_id)
            return _to_task(record) if record else None

    def create(self, name: str = DEFAULT_TASK_NAME) -> Task:
        with get_session() as db:
            record = TaskRecord(id=_new_id(), name=name, tracked_seconds=0)
            db.add(record)
            db.flush()
            return _to_task(record)

    def rename(self, task_id: str, name: str) -> Task | None:
        with get_session() as db:
            record = db.get(TaskRecord, task_id)
            if record is None:
                return None
            record.name = name
            return _to_task(record)

    def delete(self, task_id: str) -> bool:
        with get_session() as db:
            record = db.get(TaskRecord, task_id)
            if record is None:
                return False
            db.delete(record)
            return True

    def add_contribution(self, task_id: str, amount: int) -> None:
        """Add *amount* seconds to the task.  Unknown ids are ignored
        (the task may have been deleted while a run was in flight)."""
        if amount <= 0:
            return
        with get_session() as db:
            record = db.get(TaskRecord, task_id)
            if record is None:
                logger.warning("Contribution for unknown task %s dropped", task_id)
                return
            record.tracked_seconds += amount


# ══════════════════════════════════════════════════════════════════════════
#  RUN HISTORY
# ══════════════════════════════════════════════════════════════════════════


class RunLog:
    """Writes one ``RunRecord`` per finished run."""

    def record(
        self,
        run: dict[str, Any],
        *,
        preset_id: str | None = None,
        completed: bool,
    ) -> int:
        """Persist a ``run_completed`` / ``run_stopped`` payload from the
        engine.  Returns the new row id."""
        with get_session() as db:
            record = RunRecord(
                preset_id=preset_id,
                task_id=run.get("task_id"),
                started_at=run.get("started_at"),
                ended_at=run.get("ended_at") or datetime.now(),
                total_seconds=run.get("total_seconds", 0),
                elapsed_seconds=run.get("elapsed_seconds", 0),
                recorded_seconds=run.get("recorded_seconds", 0),
                completed=completed,
            )
            db.add(record)
            db.flush()
            return record.id

    def recent(self, limit: int = 20) -> list[RunRecord]:
        with get_session() as db:
            return (
                db.query(RunRecord)
                .order_by(RunRecord.ended_at.desc(), RunRecord.id.desc())
                .limit(limit)
                .all()
            )


# ══════════════════════════════════════════════════════════════════════════
#  SNAPSHOTS
# ══════════════════════════════════════════════════════════════════════════


def export_snapshot() -> dict[str, list[dict[str, Any]]]:
    """All presets and tasks as a JSON-compatible dict."""
    presets = PresetStore().list_presets()
    tasks = TaskStore().list_tasks()
    return {
        PRESETS_KEY: [
            {"id": p.id, "name": p.name, "flow": flow_to_data(p.flow)}
            for p in presets
        ],
        TASKS_KEY: [
            {"id": t.id, "name": t.name, "totalSeconds": t.tracked_seconds}
            for t in tasks
        ],
    }


def _task_seconds(item: dict[str, Any]) -> int:
    if "totalSeconds" in item:
        return coerce_count(item["totalSeconds"])
    return coerce_count(item.get("totalMinutes")) * 60


def import_snapshot(data: dict[str, Any]) -> tuple[int, int]:
    """Merge a snapshot into the database.

    Rows with an existing id are overwritten; new ids are inserted.
    Raises ``ValueError`` for malformed entries, leaving the database
    untouched.
    Returns ``(presets_imported, tasks_imported)``.
    """
    preset_items = data.get(PRESETS_KEY) or []
    task_items = data.get(TASKS_KEY) or []
    for key, items in ((PRESETS_KEY, preset_items), (TASKS_KEY, task_items)):
        if not isinstance(items, list):
            raise ValueError(f"Snapshot {key!r} must be a list, got {items!r}")
    for item in (*preset_items, *task_items):
        if not isinstance(item, dict):
            raise ValueError(f"Snapshot entries must be objects, got {item!r}")

    with get_session() as db:
        top = db.query(func.max(PresetRecord.position)).scalar()
        position = (top + 1) if top is not None else 0

        for item in preset_items:
            flow = flow_from_data(item.get("flow") or [])
            preset_id = str(item.get("id") or _new_id())
            record = db.get(PresetRecord, preset_id)
            if record is None:
                record = PresetRecord(id=preset_id, position=position)
                position += 1
                db.add(record)
            record.name = str(item.get("name") or "Timer")
            record.flow = flow_to_data(flow)

        for item in task_items:
            task_id = str(item.get("id") or _new_id())
            record = db.get(TaskRecord, task_id)
            if record is None:
                record = TaskRecord(id=task_id)
                db.add(record)
            record.name = str(item.get("name") or DEFAULT_TASK_NAME)
            record.tracked_seconds = _task_seconds(item)

    logger.info(
        "Imported %d presets and %d tasks", len(preset_items), len(task_items),
    )
    return len(preset_items), len(task_items)
