"""Time attribution: turning run time into task contributions.

Events
------
complete     The countdown reached zero.  Contribution is the full run
             (``total_seconds``).  Completion sinks fire.
manual stop  The user stopped early.  Contribution is the elapsed time
             (``total - remaining``); nothing is recorded if that is 0.
             Sinks do not fire.

Policies
--------
SECONDS        Exact seconds (canonical).
MINUTES_FLOOR  Whole minutes only, remainder dropped.  Stored as seconds
               (a multiple of 60) so the task store keeps one unit.
               Lossy: a 59 s stop records nothing.

Sinks are best-effort.  A raising sink is logged and ignored.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Hashable, Protocol


logger = logging.getLogger(__name__)


COMPLETION_TITLE = "Timer Finished"
COMPLETION_BODY = "The timer has completed!"


class AttributionPolicy(Enum):
    SECONDS = "seconds"
    MINUTES_FLOOR = "minutes_floor"

    @classmethod
    def from_setting(cls, value: str) -> "AttributionPolicy":
        """Parse a settings value, falling back to SECONDS."""
        try:
            return cls(value)
        except ValueError:
            logger.warning("Unknown attribution policy %r, using seconds", value)
            return cls.SECONDS


class AttributionEvent(Enum):
    COMPLETE = "complete"
    MANUAL_STOP = "manual_stop"


# ── collaborator contracts ────────────────────────────────────────────────


class ContributionStore(Protocol):
    def add_contribution(self, task_id: Hashable, amount: int) -> None: ...


class NotificationSink(Protocol):
    def notify(self, title: str, body: str) -> None: ...


class AudibleSink(Protocol):
    def play_completion_sound(self) -> None: ...


# ── pure policy ───────────────────────────────────────────────────────────


def elapsed_for(event: AttributionEvent, total: int, remaining: int) -> int:
    """Raw seconds attributable to *event*."""
    if event is AttributionEvent.COMPLETE:
        return max(0, total)
    return max(0, total - remaining)


def apply_policy(policy: AttributionPolicy, seconds: int) -> int:
    if seconds <= 0:
        return 0
    if policy is AttributionPolicy.MINUTES_FLOOR:
        return (seconds // 60) * 60
    return seconds


# ── attributor ────────────────────────────────────────────────────────────


class TimeAttributor:
    """Records run time against the selected task and fires completion
    sinks."""

    def __init__(
        self,
        store: ContributionStore,
        *,
        policy: AttributionPolicy = AttributionPolicy.SECONDS,
        notification_sink: NotificationSink | None = None,
        audible_sink: AudibleSink | None = None,
    ) -> None:
        self._store = store
        self.policy = policy
        self.notification_sink = notification_sink
        self.audible_sink = audible_sink

    def on_complete(self, task_id: Hashable | None, total: int) -> int:
        """Handle natural completion.  Returns the seconds recorded."""
        try:
            return self._record(
                task_id, elapsed_for(AttributionEvent.COMPLETE, total, 0),
            )
        finally:
            self._fire_completion_sinks()

    def on_manual_stop(
        self, task_id: Hashable | None, total: int, remaining: int,
    ) -> int:
        """Handle an early stop.  Returns the seconds recorded."""
        return self._record(
            task_id, elapsed_for(AttributionEvent.MANUAL_STOP, total, remaining),
        )

    # ── internal ──────────────────────────────────────────────────────

    def _record(self, task_id: Hashable | None, seconds: int) -> int:
        if task_id is None or task_id == "":
            return 0
        amount = apply_policy(self.policy, seconds)
        if amount <= 0:
            return 0
        self._store.add_contribution(task_id, amount)
        logger.info("Attributed %ss to task %s", amount, task_id)
        return amount

    def _fire_completion_sinks(self) -> None:
        if self.notification_sink is not None:
            try:
                self.notification_sink.notify(COMPLETION_TITLE, COMPLETION_BODY)
            except Exception:
                logger.warning("Completion notification failed", exc_info=True)
        if self.audible_sink is not None:
            try:
                self.audible_sink.play_completion_sound()
            except Exception:
                logger.warning("Completion sound failed", exc_info=True)
