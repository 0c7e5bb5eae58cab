"""UI package."""

from .flow_editor import FlowEditor
from .timer_widget import TimerWidget
from .task_panel import TaskPanel
from .progress_ring import ProgressRing

__all__ = [
    "FlowEditor",
    "TimerWidget",
    "TaskPanel",
    "ProgressRing",
]
