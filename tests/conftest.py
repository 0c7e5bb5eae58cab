"""Shared pytest fixtures for FlowTimer tests."""

import os
import sys
import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from PyQt6.QtWidgets import QApplication

from flowtimer.database.db import configure_engine, init_db
from flowtimer.timer.attribution import TimeAttributor
from flowtimer.timer.engine import FlowTimerEngine

from helpers import FakeClock, ManualTickSource, RecordingSinks, RecordingStore


@pytest.fixture(scope="session")
def qapp():
    """A single QApplication instance shared across the entire test run."""
    app = QApplication.instance() or QApplication(sys.argv)
    yield app


@pytest.fixture(autouse=True)
def test_db():
    """Point every test at a fresh in-memory SQLite database."""
    configure_engine("sqlite:///:memory:")
    init_db()
    yield


@pytest.fixture
def ticks():
    return ManualTickSource()


@pytest.fixture
def store():
    return RecordingStore()


@pytest.fixture
def sinks():
    return RecordingSinks()


@pytest.fixture
def attributor(store, sinks):
    return TimeAttributor(
        store, notification_sink=sinks, audible_sink=sinks,
    )


@pytest.fixture
def engine(qapp, ticks, attributor):
    """Fresh engine driven by manual ticks, recording into ``store``."""
    return FlowTimerEngine(parent=None, tick_source=ticks, attributor=attributor)


@pytest.fixture
def bare_engine(qapp, ticks):
    """Engine without an attributor (pure state-machine tests)."""
    return FlowTimerEngine(parent=None, tick_source=ticks)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def drift_engine(qapp, ticks, attributor, clock):
    """Engine with drift correction against a controllable clock."""
    return FlowTimerEngine(
        parent=None, tick_source=ticks, attributor=attributor, clock=clock,
    )
