"""Timer package."""

from .engine import FlowTimerEngine, Phase
from .attribution import (
    TimeAttributor,
    AttributionPolicy,
    AttributionEvent,
    COMPLETION_TITLE,
    COMPLETION_BODY,
)
from .scheduling import QtTickSource, TickSource, TICK_INTERVAL_MS

__all__ = [
    "FlowTimerEngine",
    "Phase",
    "TimeAttributor",
    "AttributionPolicy",
    "AttributionEvent",
    "COMPLETION_TITLE",
    "COMPLETION_BODY",
    "QtTickSource",
    "TickSource",
    "TICK_INTERVAL_MS",
]
