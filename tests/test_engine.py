"""Comprehensive tests for the flow timer engine.

Covers: start guards, countdown, completion, pause/resume, stop, reset,
tick subscription hygiene, attribution hand-off, signal payloads and
drift correction.
"""

import pytest

from flowtimer.flow.model import LoopStep, NotificationKind, NotificationStep, TimerStep
from flowtimer.timer.attribution import COMPLETION_BODY, COMPLETION_TITLE, TimeAttributor
from flowtimer.timer.engine import FlowTimerEngine, Phase
from flowtimer.timer.scheduling import QtTickSource

from helpers import (
    FailingStore, RaisingSinks, RecordingSinks, SignalCollector, finish_run,
)


ONE_MINUTE = (TimerStep(1),)
TWO_MINUTES = (TimerStep(2),)


# ═══════════════════════════════════════════════════════════════════════════
#  START
# ═══════════════════════════════════════════════════════════════════════════


class TestStart:

    def test_initial_state_is_idle(self, engine):
        assert engine.phase is Phase.IDLE
        assert engine.remaining_seconds == 0
        assert engine.total_seconds == 0

    def test_start_enters_running(self, engine, ticks):
        assert engine.start(ONE_MINUTE, "task") is True
        assert engine.phase is Phase.RUNNING
        assert engine.total_seconds == 60
        assert engine.remaining_seconds == 60
        assert ticks.active == 1

    def test_start_computes_nested_total(self, engine):
        flow = (LoopStep(2, (TimerStep(1), NotificationStep(NotificationKind.SOUND))),)
        engine.start(flow)
        assert engine.total_seconds == 120

    @pytest.mark.parametrize("flow", [(), None, []])
    def test_start_with_empty_flow_is_refused(self, engine, ticks, store, flow):
        assert engine.start(flow, "task") is False
        assert engine.phase is Phase.IDLE
        assert ticks.active == 0
        assert store.calls == []

    def test_can_start(self):
        assert FlowTimerEngine.can_start(ONE_MINUTE)
        assert not FlowTimerEngine.can_start(())
        assert not FlowTimerEngine.can_start(None)

    def test_start_while_running_is_refused(self, engine, ticks):
        engine.start(ONE_MINUTE)
        ticks.fire(5)
        assert engine.start(TWO_MINUTES) is False
        assert engine.total_seconds == 60
        assert engine.remaining_seconds == 55
        assert ticks.active == 1

    def test_flow_is_snapshotted(self, engine):
        flow = [TimerStep(1)]
        engine.start(flow)
        flow.append(TimerStep(10))
        assert engine.flow == (TimerStep(1, id=flow[0].id),)
        assert engine.total_seconds == 60

    def test_run_started_payload(self, engine):
        c = SignalCollector()
        engine.run_started.connect(c)
        engine.start(ONE_MINUTE, "task")
        assert len(c) == 1
        assert c.last["task_id"] == "task"
        assert c.last["total_seconds"] == 60
        assert c.last["started_at"] is not None

    def test_start_emits_initial_tick(self, engine):
        c = SignalCollector()
        engine.tick.connect(c)
        engine.start(ONE_MINUTE)
        assert c.items == [60]


# ═══════════════════════════════════════════════════════════════════════════
#  COUNTDOWN & COMPLETION
# ═══════════════════════════════════════════════════════════════════════════


class TestCountdown:

    def test_each_tick_decrements_once(self, engine, ticks):
        engine.start(ONE_MINUTE)
        ticks.fire(3)
        assert engine.remaining_seconds == 57
        assert engine.elapsed_seconds == 3

    def test_tick_signal_carries_remaining(self, engine, ticks):
        engine.start(ONE_MINUTE)
        c = SignalCollector()
        engine.tick.connect(c)
        ticks.fire(2)
        assert c.items == [59, 58]

    def test_one_minute_run_completes_after_60_ticks(self, engine, ticks, store, sinks):
        engine.start(ONE_MINUTE, "task")
        ticks.fire(59)
        assert engine.phase is Phase.RUNNING
        assert engine.remaining_seconds == 1

        ticks.fire(1)
        assert engine.phase is Phase.IDLE
        assert engine.remaining_seconds == 0
        assert store.calls == [("task", 60)]
        assert sinks.notifications == [(COMPLETION_TITLE, COMPLETION_BODY)]
        assert sinks.sounds == 1

    def test_completion_unsubscribes(self, engine, ticks):
        engine.start(ONE_MINUTE)
        ticks.fire(60)
        assert ticks.active == 0
        assert ticks.unsubscribe_calls == 1

    def test_ticks_after_completion_are_ignored(self, engine, ticks, store, sinks):
        engine.start(ONE_MINUTE, "task")
        ticks.fire(60)
        engine._on_tick()
        engine._on_tick()
        assert store.calls == [("task", 60)]
        assert sinks.sounds == 1

    def test_completion_signals(self, engine, ticks):
        completed = SignalCollector()
        phases = SignalCollector()
        tick_values = SignalCollector()
        engine.run_completed.connect(completed)
        engine.phase_changed.connect(phases)
        engine.start(ONE_MINUTE, "task")
        engine.tick.connect(tick_values)
        ticks.fire(60)

        assert phases.items == [Phase.RUNNING, Phase.IDLE]
        assert tick_values.last == 0
        assert len(completed) == 1
        data = completed.last
        assert data["task_id"] == "task"
        assert data["total_seconds"] == 60
        assert data["elapsed_seconds"] == 60
        assert data["recorded_seconds"] == 60
        assert data["ended_at"] >= data["started_at"]

    def test_zero_length_flow_completes_on_first_tick(self, engine, ticks, store, sinks):
        assert engine.start((NotificationStep(),), "task") is True
        assert engine.remaining_seconds == 0
        ticks.fire()
        assert engine.phase is Phase.IDLE
        assert store.calls == []
        assert sinks.sounds == 1

    def test_completion_without_task_records_nothing(self, engine, ticks, store, sinks):
        engine.start(ONE_MINUTE)
        ticks.fire(60)
        assert store.calls == []
        assert sinks.sounds == 1

    def test_percent_complete(self, engine, ticks):
        assert engine.percent_complete == 0.0
        engine.start(TWO_MINUTES)
        ticks.fire(30)
        assert engine.percent_complete == pytest.approx(0.25)

    def test_finish_run_helper(self, engine, store):
        engine.start(TWO_MINUTES, "task")
        finish_run(engine)
        assert engine.phase is Phase.IDLE
        assert store.calls == [("task", 120)]


# ═══════════════════════════════════════════════════════════════════════════
#  PAUSE / RESUME
# ═══════════════════════════════════════════════════════════════════════════


class TestPauseResume:

    def test_pause_after_ten_ticks(self, engine, ticks):
        engine.start(ONE_MINUTE)
        ticks.fire(10)
        assert engine.pause() is True
        assert engine.phase is Phase.PAUSED
        assert engine.remaining_seconds == 50
        assert ticks.active == 0

    def test_pause_from_running_slot_unsubscribes(self, engine, ticks):
        def pause_on_running(phase):
            if phase is Phase.RUNNING:
                engine.pause()

        engine.phase_changed.connect(pause_on_running)
        engine.start(ONE_MINUTE)
        assert engine.phase is Phase.PAUSED
        assert ticks.active == 0

    def test_no_decrement_while_paused(self, engine, ticks):
        engine.start(ONE_MINUTE)
        ticks.fire(10)
        engine.pause()
        ticks.fire(5)
        engine._on_tick()  # stray tick delivered anyway
        assert engine.remaining_seconds == 50

    def test_start_resumes_from_retained_time(self, engine, ticks):
        engine.start(ONE_MINUTE)
        ticks.fire(10)
        engine.pause()
        assert engine.start(TWO_MINUTES, "other") is True
        assert engine.phase is Phase.RUNNING
        assert engine.remaining_seconds == 50
        assert engine.total_seconds == 60
        ticks.fire()
        assert engine.remaining_seconds == 49

    def test_resume(self, engine, ticks):
        engine.start(ONE_MINUTE)
        engine.pause()
        assert engine.resume() is True
        assert engine.phase is Phase.RUNNING
        assert ticks.active == 1

    def test_resume_does_not_emit_run_started(self, engine):
        c = SignalCollector()
        engine.run_started.connect(c)
        engine.start(ONE_MINUTE)
        engine.pause()
        engine.resume()
        assert len(c) == 1

    def test_pause_when_idle_is_refused(self, engine):
        assert engine.pause() is False
        assert engine.phase is Phase.IDLE

    def test_pause_when_paused_is_refused(self, engine):
        engine.start(ONE_MINUTE)
        engine.pause()
        assert engine.pause() is False

    def test_resume_when_not_paused_is_refused(self, engine):
        assert engine.resume() is False
        engine.start(ONE_MINUTE)
        assert engine.resume() is False

    def test_pause_resume_cycles_keep_one_subscription(self, engine, ticks):
        engine.start(ONE_MINUTE)
        for _ in range(5):
            engine.pause()
            engine.resume()
        assert ticks.active == 1
        ticks.fire()
        assert engine.remaining_seconds == 59

    def test_phase_changed_on_pause_and_resume(self, engine):
        c = SignalCollector()
        engine.phase_changed.connect(c)
        engine.start(ONE_MINUTE)
        engine.pause()
        engine.resume()
        assert c.items == [Phase.RUNNING, Phase.PAUSED, Phase.RUNNING]


# ═══════════════════════════════════════════════════════════════════════════
#  STOP / RESET
# ═══════════════════════════════════════════════════════════════════════════


class TestStopReset:

    def test_stop_records_elapsed_time(self, engine, ticks, store, sinks):
        engine.start(TWO_MINUTES, "task")
        ticks.fire(30)
        assert engine.stop() is True
        assert engine.phase is Phase.IDLE
        assert engine.remaining_seconds == 0
        assert engine.total_seconds == 0
        assert store.calls == [("task", 30)]
        assert sinks.notifications == []
        assert sinks.sounds == 0

    def test_stop_from_paused(self, engine, ticks, store):
        engine.start(TWO_MINUTES, "task")
        ticks.fire(45)
        engine.pause()
        assert engine.stop() is True
        assert store.calls == [("task", 45)]

    def test_stop_immediately_records_nothing(self, engine, store):
        engine.start(TWO_MINUTES, "task")
        engine.stop()
        assert store.calls == []

    def test_stop_when_idle_is_refused(self, engine, store):
        assert engine.stop() is False
        assert store.calls == []

    def test_stop_unsubscribes(self, engine, ticks):
        engine.start(TWO_MINUTES)
        engine.stop()
        assert ticks.active == 0
        ticks.fire(10)
        assert engine.remaining_seconds == 0

    def test_run_stopped_payload(self, engine, ticks):
        c = SignalCollector()
        engine.run_stopped.connect(c)
        engine.start(TWO_MINUTES, "task")
        ticks.fire(30)
        engine.stop()
        assert c.last["elapsed_seconds"] == 30
        assert c.last["recorded_seconds"] == 30
        assert c.last["total_seconds"] == 120

    def test_reset_while_idle_is_noop(self, engine, store):
        c = SignalCollector()
        engine.phase_changed.connect(c)
        assert engine.reset() is True
        assert engine.phase is Phase.IDLE
        assert c.items == []
        assert store.calls == []

    def test_reset_while_running_is_refused(self, engine, ticks, store):
        engine.start(TWO_MINUTES, "task")
        ticks.fire(10)
        assert engine.reset() is False
        assert engine.phase is Phase.RUNNING
        assert engine.remaining_seconds == 110
        assert store.calls == []

    def test_reset_while_paused_acts_as_stop(self, engine, ticks, store):
        engine.start(TWO_MINUTES, "task")
        ticks.fire(20)
        engine.pause()
        assert engine.reset() is True
        assert engine.phase is Phase.IDLE
        assert store.calls == [("task", 20)]

    def test_can_start_again_after_stop(self, engine, ticks):
        engine.start(TWO_MINUTES)
        engine.stop()
        assert engine.start(ONE_MINUTE) is True
        assert engine.total_seconds == 60
        assert ticks.active == 1


# ═══════════════════════════════════════════════════════════════════════════
#  TASK SELECTION & ATTRIBUTION FAILURES
# ═══════════════════════════════════════════════════════════════════════════


class TestAttributionHandOff:

    def test_task_selected_at_end_is_credited(self, engine, ticks, store):
        engine.start(ONE_MINUTE, "first")
        ticks.fire(20)
        engine.task_id = "second"
        engine.stop()
        assert store.calls == [("second", 20)]

    def test_clearing_task_mid_run_records_nothing(self, engine, ticks, store):
        engine.start(ONE_MINUTE, "task")
        engine.task_id = None
        ticks.fire(60)
        assert store.calls == []

    def test_engine_without_attributor(self, bare_engine, ticks):
        c = SignalCollector()
        bare_engine.run_completed.connect(c)
        bare_engine.start(ONE_MINUTE, "task")
        ticks.fire(60)
        assert bare_engine.phase is Phase.IDLE
        assert c.last["recorded_seconds"] == 0

    def test_raising_sinks_do_not_affect_engine(self, qapp, ticks, store):
        attributor = TimeAttributor(
            store, notification_sink=RaisingSinks(), audible_sink=RaisingSinks(),
        )
        engine = FlowTimerEngine(tick_source=ticks, attributor=attributor)
        c = SignalCollector()
        engine.run_completed.connect(c)
        engine.start(ONE_MINUTE, "task")
        ticks.fire(60)
        assert engine.phase is Phase.IDLE
        assert store.calls == [("task", 60)]
        assert len(c) == 1

    def test_failing_store_still_leaves_engine_idle(self, qapp, ticks):
        sinks = RecordingSinks()
        engine = FlowTimerEngine(
            tick_source=ticks,
            attributor=TimeAttributor(FailingStore(), audible_sink=sinks),
        )
        phases = SignalCollector()
        stopped = SignalCollector()
        engine.phase_changed.connect(phases)
        engine.run_stopped.connect(stopped)
        engine.start(ONE_MINUTE, "task")
        ticks.fire(10)
        assert engine.stop() is True
        assert engine.phase is Phase.IDLE
        assert phases.last is Phase.IDLE
        assert ticks.active == 0
        assert len(stopped) == 1
        assert stopped.last["elapsed_seconds"] == 10
        assert stopped.last["recorded_seconds"] == 0
        assert engine.start(ONE_MINUTE, "task") is True

    def test_failing_store_on_completion_is_logged(self, qapp, ticks, caplog):
        sinks = RecordingSinks()
        engine = FlowTimerEngine(
            tick_source=ticks,
            attributor=TimeAttributor(FailingStore(), audible_sink=sinks),
        )
        completed = SignalCollector()
        engine.run_completed.connect(completed)
        engine.start(ONE_MINUTE, "task")
        ticks.fire(60)
        assert engine.phase is Phase.IDLE
        assert len(completed) == 1
        assert completed.last["recorded_seconds"] == 0
        assert sinks.sounds == 1
        assert "Could not record run time" in caplog.text


# ═══════════════════════════════════════════════════════════════════════════
#  DRIFT CORRECTION
# ═══════════════════════════════════════════════════════════════════════════


class TestDriftCorrection:

    def test_on_time_ticks_behave_normally(self, drift_engine, ticks, clock):
        drift_engine.start(ONE_MINUTE)
        for _ in range(10):
            clock.advance(1.0)
            ticks.fire()
        assert drift_engine.remaining_seconds == 50

    def test_late_ticks_catch_up(self, drift_engine, ticks, clock):
        drift_engine.start(ONE_MINUTE)
        clock.advance(5.0)  # event loop stalled for 5 s
        ticks.fire()
        assert drift_engine.remaining_seconds == 55

    def test_early_ticks_still_decrement_once(self, drift_engine, ticks, clock):
        drift_engine.start(ONE_MINUTE)
        ticks.fire(3)  # no time passed on the clock
        assert drift_engine.remaining_seconds == 57

    def test_paused_time_is_not_counted(self, drift_engine, ticks, clock):
        drift_engine.start(ONE_MINUTE)
        clock.advance(10.0)
        ticks.fire()
        drift_engine.pause()
        clock.advance(300.0)
        drift_engine.resume()
        clock.advance(1.0)
        ticks.fire()
        assert drift_engine.remaining_seconds == 49

    def test_large_stall_completes(self, drift_engine, ticks, clock, store):
        drift_engine.start(ONE_MINUTE, "task")
        clock.advance(120.0)
        ticks.fire()
        assert drift_engine.phase is Phase.IDLE
        assert store.calls == [("task", 60)]


# ═══════════════════════════════════════════════════════════════════════════
#  QT TICK SOURCE
# ═══════════════════════════════════════════════════════════════════════════


@pytest.mark.usefixtures("qapp")
class TestQtTickSource:

    def test_subscribe_and_unsubscribe(self):
        source = QtTickSource()
        first = source.subscribe(lambda: None)
        second = source.subscribe(lambda: None)
        assert first != second
        assert source.active_subscriptions == 2
        source.unsubscribe(first)
        assert source.active_subscriptions == 1

    def test_unknown_handle_is_ignored(self):
        source = QtTickSource()
        source.unsubscribe(42)
        assert source.active_subscriptions == 0

    def test_default_engine_releases_timer_on_pause(self):
        engine = FlowTimerEngine()
        source = engine._tick_source
        engine.start(ONE_MINUTE)
        assert source.active_subscriptions == 1
        engine.pause()
        assert source.active_subscriptions == 0
        engine.stop()
