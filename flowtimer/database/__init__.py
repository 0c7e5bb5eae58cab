"""Database package."""

from .db import configure_engine, get_session, init_db
from .models import PresetRecord, TaskRecord, RunRecord
from .store import (
    PresetStore,
    TaskStore,
    RunLog,
    Task,
    export_snapshot,
    import_snapshot,
)

__all__ = [
    "configure_engine",
    "get_session",
    "init_db",
    "PresetRecord",
    "TaskRecord",
    "RunRecord",
    "PresetStore",
    "TaskStore",
    "RunLog",
    "Task",
    "export_snapshot",
    "import_snapshot",
]
