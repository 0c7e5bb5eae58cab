"""Shared test helpers for FlowTimer."""

from flowtimer.timer.engine import FlowTimerEngine


class SignalCollector:
    """Utility to capture pyqtSignal emissions into a list."""

    def __init__(self):
        self.items: list = []

    def slot(self, *args):
        self.items.append(args if len(args) > 1 else args[0] if args else None)

    def __call__(self, *args):
        self.slot(*args)

    def __len__(self):
        return len(self.items)

    def __getitem__(self, idx):
        return self.items[idx]

    @property
    def last(self):
        return self.items[-1] if self.items else None

    def clear(self):
        self.items.clear()


class ManualTickSource:
    """Tick source whose ticks are delivered by calling :meth:`fire`."""

    def __init__(self):
        self._subscribers: dict = {}
        self._next = 0
        self.subscribe_calls = 0
        self.unsubscribe_calls = 0

    def subscribe(self, on_tick):
        self._next += 1
        self._subscribers[self._next] = on_tick
        self.subscribe_calls += 1
        return self._next

    def unsubscribe(self, handle):
        self._subscribers.pop(handle, None)
        self.unsubscribe_calls += 1

    @property
    def active(self) -> int:
        return len(self._subscribers)

    def fire(self, n: int = 1) -> None:
        """Deliver *n* ticks to whoever is subscribed at each tick."""
        for _ in range(n):
            for on_tick in list(self._subscribers.values()):
                on_tick()


class RecordingStore:
    """ContributionStore that remembers every call."""

    def __init__(self):
        self.calls: list[tuple] = []

    def add_contribution(self, task_id, amount):
        self.calls.append((task_id, amount))

    def total(self, task_id) -> int:
        return sum(a for t, a in self.calls if t == task_id)


class FailingStore:
    def add_contribution(self, task_id, amount):
        raise RuntimeError("disk full")


class RecordingSinks:
    """Notification and audible sink in one."""

    def __init__(self):
        self.notifications: list[tuple[str, str]] = []
        self.sounds = 0

    def notify(self, title, body):
        self.notifications.append((title, body))

    def play_completion_sound(self):
        self.sounds += 1


class RaisingSinks:
    def notify(self, title, body):
        raise RuntimeError("no tray")

    def play_completion_sound(self):
        raise RuntimeError("no audio device")


class FakeClock:
    """Monotonic clock advanced by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def finish_run(engine: FlowTimerEngine) -> None:
    """Fast-complete the current run by jumping to the last tick."""
    engine._remaining = 1
    engine._on_tick()
