"""Flow tree data model for FlowTimer.

A *flow* is an ordered tuple of steps.  A step is one of:

TimerStep         ``minutes`` of countdown.
NotificationStep  Zero-duration marker carrying a notification kind.
LoopStep          Repeats its ``children`` ``count`` times.  Children may
                  hold any step, nested loops included, to any depth.

Steps are frozen dataclasses and flows are tuples, so every edit below
returns a *new* flow.  Only the spine from the root to the edited node is
rebuilt; sibling subtrees are shared with the old flow.

Addressing
----------
A step is addressed by a *path*: a tuple of indices, the first into the
root sequence and each following one into the children of the loop found
at the previous index.  ``(2,)`` is the third root step, ``(2, 0)`` the
first child of that (loop) step.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Iterator, Union


# ── enums ─────────────────────────────────────────────────────────────────


class NotificationKind(Enum):
    SOUND = "sound"
    ALERT = "alert"
    NONE = "none"


class StepPathError(IndexError):
    """Raised when a path does not address a step in the flow."""


# ── constants ─────────────────────────────────────────────────────────────

DEFAULT_TIMER_MINUTES = 25
DEFAULT_LOOP_COUNT = 2
DEFAULT_NOTIFICATION = NotificationKind.SOUND

STEP_KINDS = ("timer", "loop", "notification")


def new_step_id() -> str:
    return uuid.uuid4().hex


# ── steps ─────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class TimerStep:
    """``minutes * 60`` seconds of countdown."""

    minutes: int = DEFAULT_TIMER_MINUTES
    id: str = field(default_factory=new_step_id)

    kind = "timer"


@dataclass(frozen=True)
class NotificationStep:
    """Zero-duration marker."""

    notification: NotificationKind = DEFAULT_NOTIFICATION
    id: str = field(default_factory=new_step_id)

    kind = "notification"


@dataclass(frozen=True)
class LoopStep:
    """Repeats the duration of ``children`` exactly ``count`` times."""

    count: int = DEFAULT_LOOP_COUNT
    children: tuple["Step", ...] = ()
    id: str = field(default_factory=new_step_id)

    kind = "loop"


Step = Union[TimerStep, NotificationStep, LoopStep]
Flow = tuple[Step, ...]
StepPath = tuple[int, ...]


@dataclass(frozen=True)
class Preset:
    """A named, reusable flow."""

    id: str
    name: str
    flow: Flow = ()

    @property
    def is_runnable(self) -> bool:
        return len(self.flow) > 0


# ── input coercion ────────────────────────────────────────────────────────


def coerce_count(value: Any) -> int:
    """Turn an upstream ``minutes``/``count`` value into an int >= 0.

    Accepts ints, floats and numeric strings (``" 12 "``, ``"7.9"``).
    Anything negative, non-numeric or missing becomes 0.
    """
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return 0
        try:
            value = float(value)
        except ValueError:
            return 0
    try:
        number = int(value)
    except (TypeError, ValueError, OverflowError):
        return 0
    return max(0, number)


def make_step(
    kind: str,
    *,
    minutes: int = DEFAULT_TIMER_MINUTES,
    count: int = DEFAULT_LOOP_COUNT,
    notification: NotificationKind | str = DEFAULT_NOTIFICATION,
) -> Step:
    """Create a fresh step of *kind* (``timer``, ``loop``, ``notification``)
    with editor defaults."""
    if kind == "timer":
        return TimerStep(minutes=coerce_count(minutes))
    if kind == "loop":
        return LoopStep(count=coerce_count(count))
    if kind == "notification":
        return NotificationStep(notification=_coerce_notification(notification))
    raise ValueError(f"Unknown step kind: {kind!r}")


def _coerce_notification(value: Any) -> NotificationKind:
    if isinstance(value, NotificationKind):
        return value
    try:
        return NotificationKind(value)
    except ValueError:
        return NotificationKind.NONE


# ══════════════════════════════════════════════════════════════════════════
#  TREE ACCESS
# ══════════════════════════════════════════════════════════════════════════


def _children_of(step: Step, path: StepPath) -> Flow:
    if not isinstance(step, LoopStep):
        raise StepPathError(f"Step at {path} is a {step.kind}, not a loop")
    return step.children


def get_sequence(flow: Flow, parent: StepPath = ()) -> Flow:
    """Return the sequence addressed by *parent* (``()`` is the root)."""
    seq = flow
    for depth, index in enumerate(parent):
        if not 0 <= index < len(seq):
            raise StepPathError(f"No step at {parent[:depth + 1]}")
        seq = _children_of(seq[index], parent[:depth + 1])
    return seq


def get_step(flow: Flow, path: StepPath) -> Step:
    if not path:
        raise StepPathError("Empty path does not address a step")
    seq = get_sequence(flow, path[:-1])
    index = path[-1]
    if not 0 <= index < len(seq):
        raise StepPathError(f"No step at {path}")
    return seq[index]


def walk(flow: Flow, _prefix: StepPath = ()) -> Iterator[tuple[StepPath, Step]]:
    """Yield ``(path, step)`` for every step, depth-first, in order."""
    for index, step in enumerate(flow):
        path = _prefix + (index,)
        yield path, step
        if isinstance(step, LoopStep):
            yield from walk(step.children, path)


def find_path(flow: Flow, step_id: str) -> StepPath | None:
    for path, step in walk(flow):
        if step.id == step_id:
            return path
    return None


# ══════════════════════════════════════════════════════════════════════════
#  TREE EDITS (all return a new flow)
# ══════════════════════════════════════════════════════════════════════════


def _edit_sequence(flow: Flow, parent: StepPath, edit) -> Flow:
    """Apply *edit* (``tuple -> tuple``) to the sequence at *parent* and
    rebuild the spine above it."""
    if not parent:
        return tuple(edit(tuple(flow)))
    index = parent[0]
    if not 0 <= index < len(flow):
        raise StepPathError(f"No step at {parent[:1]}")
    loop = flow[index]
    children = _children_of(loop, parent[:1])
    new_children = _edit_sequence(children, parent[1:], edit)
    return flow[:index] + (replace(loop, children=new_children),) + flow[index + 1:]


def replace_step(flow: Flow, path: StepPath, step: Step) -> Flow:
    get_step(flow, path)
    index = path[-1]
    return _edit_sequence(
        flow, path[:-1], lambda seq: seq[:index] + (step,) + seq[index + 1:],
    )


def update_step(flow: Flow, path: StepPath, **changes: Any) -> Flow:
    """Replace fields of the step at *path*.  ``minutes`` and ``count``
    go through :func:`coerce_count`."""
    step = get_step(flow, path)
    for key in ("minutes", "count"):
        if key in changes:
            changes[key] = coerce_count(changes[key])
    if "notification" in changes:
        changes["notification"] = _coerce_notification(changes["notification"])
    if "children" in changes:
        changes["children"] = tuple(changes["children"])
    return replace_step(flow, path, replace(step, **changes))


def insert_step(flow: Flow, path: StepPath, step: Step) -> Flow:
    """Insert *step* so that it ends up at *path*.  The last index may
    equal the length of the target sequence (append)."""
    if not path:
        raise StepPathError("Empty path does not address a position")
    seq = get_sequence(flow, path[:-1])
    index = path[-1]
    if not 0 <= index <= len(seq):
        raise StepPathError(f"Cannot insert at {path}")
    return _edit_sequence(
        flow, path[:-1], lambda s: s[:index] + (step,) + s[index:],
    )


def append_step(flow: Flow, step: Step, parent: StepPath = ()) -> Flow:
    """Append *step* to the root (default) or to the loop at *parent*."""
    seq = get_sequence(flow, parent)
    return insert_step(flow, parent + (len(seq),), step)


def delete_step(flow: Flow, path: StepPath) -> Flow:
    get_step(flow, path)
    index = path[-1]
    return _edit_sequence(flow, path[:-1], lambda seq: seq[:index] + seq[index + 1:])


def move_step(flow: Flow, path: StepPath, to_index: int) -> Flow:
    """Move the step at *path* to *to_index* within its containing
    sequence.  *to_index* is clamped to the sequence bounds."""
    step = get_step(flow, path)
    index = path[-1]
    seq_len = len(get_sequence(flow, path[:-1]))
    to_index = max(0, min(to_index, seq_len - 1))
    if to_index == index:
        return flow

    def _move(seq: Flow) -> Flow:
        rest = seq[:index] + seq[index + 1:]
        return rest[:to_index] + (step,) + rest[to_index:]

    return _edit_sequence(flow, path[:-1], _move)


# ══════════════════════════════════════════════════════════════════════════
#  SERIALIZATION
# ══════════════════════════════════════════════════════════════════════════


def step_to_data(step: Step) -> dict[str, Any]:
    if isinstance(step, TimerStep):
        return {"id": step.id, "type": "timer", "minutes": step.minutes}
    if isinstance(step, LoopStep):
        return {
            "id": step.id,
            "type": "loop",
            "loopCount": step.count,
            "children": flow_to_data(step.children),
        }
    return {
        "id": step.id,
        "type": "notification",
        "notificationType": step.notification.value,
    }


def flow_to_data(flow: Flow) -> list[dict[str, Any]]:
    """JSON-compatible list of step dicts."""
    return [step_to_data(step) for step in flow]


def step_from_data(data: dict[str, Any]) -> Step:
    if not isinstance(data, dict):
        raise ValueError(f"Step must be an object, got {data!r}")
    step_id = str(data.get("id") or new_step_id())
    kind = data.get("type")
    if kind == "timer":
        return TimerStep(minutes=coerce_count(data.get("minutes")), id=step_id)
    if kind == "loop":
        return LoopStep(
            count=coerce_count(data.get("loopCount")),
            children=flow_from_data(data.get("children") or []),
            id=step_id,
        )
    if kind == "notification":
        return NotificationStep(
            notification=_coerce_notification(data.get("notificationType")),
            id=step_id,
        )
    raise ValueError(f"Unknown step type: {kind!r}")


def flow_from_data(data: list[dict[str, Any]]) -> Flow:
    """Inverse of :func:`flow_to_data`.  Malformed ``minutes`` /
    ``loopCount`` values are coerced to 0."""
    if not isinstance(data, list):
        raise ValueError(f"Flow must be a list of steps, got {data!r}")
    return tuple(step_from_data(item) for item in data)
