"""Total duration of a flow tree."""

from __future__ import annotations

from typing import Iterable

from .model import LoopStep, Step, TimerStep


def total_seconds(steps: Iterable[Step]) -> int:
    """Seconds represented by *steps*.

    Timers add ``minutes * 60``, loops add their children's total times
    ``count``, notification markers add nothing.  Values are taken as-is;
    coercion of bad input happens before it reaches the tree.
    """
    total = 0
    for step in steps:
        if isinstance(step, TimerStep):
            total += step.minutes * 60
        elif isinstance(step, LoopStep):
            total += total_seconds(step.children) * step.count
    return total


def unroll(steps: Iterable[Step]) -> tuple[Step, ...]:
    """Expand every loop into ``count`` literal copies of its children.

    The result holds no loops and has the same total duration.
    """
    flat: list[Step] = []
    for step in steps:
        if isinstance(step, LoopStep):
            body = unroll(step.children)
            for _ in range(step.count):
                flat.extend(body)
        else:
            flat.append(step)
    return tuple(flat)


def timer_count(steps: Iterable[Step]) -> int:
    """Number of timer segments a full run passes through."""
    count = 0
    for step in steps:
        if isinstance(step, TimerStep):
            count += 1
        elif isinstance(step, LoopStep):
            count += timer_count(step.children) * step.count
    return count


def segment_marks(steps: Iterable[Step]) -> tuple[float, ...]:
    """Fractions of the run (0..1, exclusive) at which a timer segment
    ends and the next begins.  Zero-length timers add no mark."""
    steps = tuple(steps)
    total = total_seconds(steps)
    if total <= 0:
        return ()
    marks: list[float] = []
    elapsed = 0
    for step in unroll(steps):
        if isinstance(step, TimerStep) and step.minutes > 0:
            elapsed += step.minutes * 60
            if elapsed < total:
                marks.append(elapsed / total)
    return tuple(marks)
