"""SQLAlchemy ORM models for FlowTimer."""

from datetime import datetime
from sqlalchemy import (
    JSON, Column, Integer, String, Boolean, DateTime
)
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


class PresetRecord(Base):
    """A named flow.  ``flow`` holds the serialized step list."""

    __tablename__ = "presets"

    id = Column(String(64), primary_key=True)
    name = Column(String(255), nullable=False)
    position = Column(Integer, nullable=False, default=0)
    flow = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    def __repr__(self) -> str:
        return f"<PresetRecord id={self.id} name={self.name!r}>"


class TaskRecord(Base):
    """A task that collects run time."""

    __tablename__ = "tasks"

    id = Column(String(64), primary_key=True)
    name = Column(String(255), nullable=False)
    tracked_seconds = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    def __repr__(self) -> str:
        return (
            f"<TaskRecord id={self.id} name={self.name!r} "
            f"tracked={self.tracked_seconds}s>"
        )


class RunRecord(Base):
    """History row for each finished run (completed or stopped)."""

    __tablename__ = "runs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    preset_id = Column(String(64), nullable=True)
    task_id = Column(String(64), nullable=True)
    started_at = Column(DateTime, nullable=True)
    ended_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    total_seconds = Column(Integer, nullable=False, default=0)
    elapsed_seconds = Column(Integer, nullable=False, default=0)
    recorded_seconds = Column(Integer, nullable=False, default=0)
    completed = Column(Boolean, nullable=False, default=False)

    def __repr__(self) -> str:
        return (
            f"<RunRecord id={self.id} preset={self.preset_id} "
            f"completed={self.completed}>"
        )
