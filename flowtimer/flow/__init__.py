"""Flow tree package."""

from .model import (
    Flow,
    Preset,
    Step,
    StepPath,
    StepPathError,
    TimerStep,
    LoopStep,
    NotificationStep,
    NotificationKind,
    STEP_KINDS,
    coerce_count,
    make_step,
    get_step,
    get_sequence,
    walk,
    find_path,
    replace_step,
    update_step,
    insert_step,
    append_step,
    delete_step,
    move_step,
    flow_to_data,
    flow_from_data,
)
from .duration import segment_marks, total_seconds, unroll, timer_count

__all__ = [
    "Flow",
    "Preset",
    "Step",
    "StepPath",
    "StepPathError",
    "TimerStep",
    "LoopStep",
    "NotificationStep",
    "NotificationKind",
    "STEP_KINDS",
    "coerce_count",
    "make_step",
    "get_step",
    "get_sequence",
    "walk",
    "find_path",
    "replace_step",
    "update_step",
    "insert_step",
    "append_step",
    "delete_step",
    "move_step",
    "flow_to_data",
    "flow_from_data",
    "total_seconds",
    "unroll",
    "timer_count",
    "segment_marks",
]
