"""Flow countdown state machine for FlowTimer.

States
------
IDLE      Nothing to count — waiting for a flow to start.
RUNNING   Counting down, subscribed to the tick source.
PAUSED    Countdown frozen, remaining time kept.

Transitions
-----------
IDLE → RUNNING                 (start with a non-empty flow)
RUNNING → PAUSED               (pause)
PAUSED → RUNNING               (start / resume)
RUNNING → IDLE                 (tick with ≤ 1 s left — completion)
RUNNING | PAUSED → IDLE        (stop — manual-stop attribution)
PAUSED → IDLE                  (reset; a no-op when already IDLE)

``reset`` is refused while RUNNING.  Every control returns ``True`` when
the request was accepted.

The total is computed once, when the run starts, from a frozen snapshot
of the flow.  Editing the source preset mid-run changes nothing.
"""

from __future__ import annotations

import logging
from datetime import datetime
from enum import Enum
from typing import Callable, Hashable, Sequence

from PyQt6.QtCore import QObject, pyqtSignal

from ..flow.duration import total_seconds
from ..flow.model import Flow, Step
from .attribution import TimeAttributor
from .scheduling import QtTickSource, TickSource


logger = logging.getLogger(__name__)


# ── enums ─────────────────────────────────────────────────────────────────


class Phase(Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"


# ── engine ────────────────────────────────────────────────────────────────


class FlowTimerEngine(QObject):
    """Runs one flow as a single countdown.

    Signals
    -------
    tick(remaining_seconds: int)
        Emitted after every accepted tick, and with 0 when a run ends.
    phase_changed(new_phase: Phase)
        Emitted on every transition.
    run_started(data: dict)
        Emitted on IDLE → RUNNING.  Keys: ``task_id``,
        ``total_seconds``, ``started_at``.
    run_completed(data: dict)
        Emitted after the countdown reached zero.  Keys: ``task_id``,
        ``total_seconds``, ``elapsed_seconds``, ``recorded_seconds``,
        ``started_at``, ``ended_at``.
    run_stopped(data: dict)
        Emitted after a manual stop or a reset from PAUSED.  Same keys
        as ``run_completed``.
    """

    tick = pyqtSignal(int)
    phase_changed = pyqtSignal(object)
    run_started = pyqtSignal(object)
    run_completed = pyqtSignal(object)
    run_stopped = pyqtSignal(object)

    def __init__(
        self,
        parent: QObject | None = None,
        *,
        tick_source: TickSource | None = None,
        attributor: TimeAttributor | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        super().__init__(parent)

        # ── collaborators ─────────────────────────────────────────────
        self._tick_source: TickSource = (
            tick_source if tick_source is not None else QtTickSource(self)
        )
        self._attributor = attributor
        # Monotonic clock for drift correction; None = one second per tick
        self._clock = clock

        # ── run state ─────────────────────────────────────────────────
        self._phase: Phase = Phase.IDLE
        self._flow: Flow = ()
        self._task_id: Hashable | None = None
        self._total: int = 0
        self._remaining: int = 0
        self._started_at: datetime | None = None

        # ── tick subscription ─────────────────────────────────────────
        self._subscription: Hashable | None = None

        # ── drift correction bookkeeping ──────────────────────────────
        self._running_since: float | None = None
        self._running_accum: float = 0.0

    # ══════════════════════════════════════════════════════════════════
    #  PUBLIC PROPERTIES
    # ══════════════════════════════════════════════════════════════════

    @property
    def phase(self) -> Phase:
        return self._phase

    @property
    def is_running(self) -> bool:
        return self._phase is Phase.RUNNING

    @property
    def total_seconds(self) -> int:
        """Seconds in the current run (0 when idle)."""
        return self._total

    @property
    def remaining_seconds(self) -> int:
        return self._remaining

    @property
    def elapsed_seconds(self) -> int:
        return self._total - self._remaining

    @property
    def percent_complete(self) -> float:
        """0.0 → 1.0 progress through the current run."""
        if self._total <= 0:
            return 0.0
        return max(0.0, min(1.0, self.elapsed_seconds / self._total))

    @property
    def flow(self) -> Flow:
        """Snapshot of the flow being run."""
        return self._flow

    @property
    def task_id(self) -> Hashable | None:
        """Task that receives the run's time.  May change mid-run; the
        task selected when the run ends is credited."""
        return self._task_id

    @task_id.setter
    def task_id(self, value: Hashable | None) -> None:
        self._task_id = value

    @property
    def attributor(self) -> TimeAttributor | None:
        return self._attributor

    @staticmethod
    def can_start(flow: Sequence[Step] | None) -> bool:
        """Whether *flow* may be started from IDLE."""
        return bool(flow)

    # ══════════════════════════════════════════════════════════════════
    #  CONTROLS
    # ══════════════════════════════════════════════════════════════════

    def start(
        self,
        flow: Sequence[Step] | None = None,
        task_id: Hashable | None = None,
    ) -> bool:
        """Start a run, or resume when PAUSED.

        From IDLE the flow must be non-empty; otherwise nothing happens
        and ``False`` is returned.  When resuming, both arguments are
        ignored and the retained countdown continues.
        """
        if self._phase is Phase.PAUSED:
            return self.resume()
        if self._phase is Phase.RUNNING:
            return False
        if not self.can_start(flow):
            logger.debug("Start refused: empty flow")
            return False

        self._flow = tuple(flow)
        self._task_id = task_id
        self._total = total_seconds(self._flow)
        self._remaining = self._total
        self._started_at = datetime.now()
        self._running_accum = 0.0

        self._enter_running()
        logger.debug("Run started: %ss, task=%s", self._total, task_id)
        self.run_started.emit({
            "task_id": self._task_id,
            "total_seconds": self._total,
            "started_at": self._started_at,
        })
        self.tick.emit(self._remaining)
        return True

    def resume(self) -> bool:
        """Continue a PAUSED run from the retained remaining time."""
        if self._phase is not Phase.PAUSED:
            return False
        self._enter_running()
        return True

    def pause(self) -> bool:
        """Freeze the countdown.  Only valid while RUNNING."""
        if self._phase is not Phase.RUNNING:
            return False
        self._unsubscribe()
        if self._running_since is not None and self._clock is not None:
            self._running_accum += self._clock() - self._running_since
        self._running_since = None
        self._set_phase(Phase.PAUSED)
        return True

    def stop(self) -> bool:
        """End the run early and credit the elapsed time."""
        if self._phase is Phase.IDLE:
            return False
        self._finish(completed=False)
        return True

    def reset(self) -> bool:
        """Stop from PAUSED, no-op from IDLE, refused while RUNNING."""
        if self._phase is Phase.RUNNING:
            return False
        if self._phase is Phase.PAUSED:
            self._finish(completed=False)
        return True

    # ══════════════════════════════════════════════════════════════════
    #  INTERNAL — timer mechanics
    # ══════════════════════════════════════════════════════════════════

    def _enter_running(self) -> None:
        if self._clock is not None:
            self._running_since = self._clock()
        if self._subscription is None:
            self._subscription = self._tick_source.subscribe(self._on_tick)
        self._set_phase(Phase.RUNNING)

    def _unsubscribe(self) -> None:
        if self._subscription is not None:
            handle, self._subscription = self._subscription, None
            self._tick_source.unsubscribe(handle)

    def _running_elapsed(self) -> float:
        elapsed = self._running_accum
        if self._running_since is not None:
            elapsed += self._clock() - self._running_since
        return elapsed

    def _on_tick(self) -> None:
        # Ticks queued before a pause/stop must not count
        if self._phase is not Phase.RUNNING:
            return

        remaining = self._remaining - 1
        if self._clock is not None:
            remaining = min(remaining, self._total - round(self._running_elapsed()))

        if remaining <= 0:
            self._remaining = 0
            self._finish(completed=True)
            return

        self._remaining = remaining
        self.tick.emit(remaining)

    def _finish(self, *, completed: bool) -> None:
        self._unsubscribe()

        task_id = self._task_id
        total = self._total
        remaining = 0 if completed else self._remaining
        data = {
            "task_id": task_id,
            "total_seconds": total,
            "elapsed_seconds": total - remaining,
            "recorded_seconds": 0,
            "started_at": self._started_at,
            "ended_at": datetime.now(),
        }

        # ── back to IDLE before any collaborator runs ─────────────────
        self._phase = Phase.IDLE
        self._flow = ()
        self._total = 0
        self._remaining = 0
        self._started_at = None
        self._running_since = None
        self._running_accum = 0.0

        if self._attributor is not None:
            try:
                if completed:
                    data["recorded_seconds"] = self._attributor.on_complete(
                        task_id, total,
                    )
                else:
                    data["recorded_seconds"] = self._attributor.on_manual_stop(
                        task_id, total, remaining,
                    )
            except Exception:
                # Called from Qt slots; an escaping error would abort the app
                logger.exception("Could not record run time for task %s", task_id)

        self.tick.emit(0)
        self.phase_changed.emit(Phase.IDLE)

        logger.debug(
            "Run %s: %s/%ss", "completed" if completed else "stopped",
            data["elapsed_seconds"], total,
        )
        if completed:
            self.run_completed.emit(data)
        else:
            self.run_stopped.emit(data)

    def _set_phase(self, new_phase: Phase) -> None:
        self._phase = new_phase
        self.phase_changed.emit(new_phase)
