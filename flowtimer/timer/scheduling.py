"""One-second tick sources for the timer engine.

The engine only needs ``subscribe(on_tick) -> handle`` and
``unsubscribe(handle)``.  :class:`QtTickSource` backs each subscription
with its own ``QTimer`` so that unsubscribing stops delivery before the
call returns.
"""

from __future__ import annotations

import itertools
from typing import Callable, Hashable, Protocol

from PyQt6.QtCore import QObject, QTimer


TICK_INTERVAL_MS = 1000


class TickSource(Protocol):
    def subscribe(self, on_tick: Callable[[], None]) -> Hashable: ...

    def unsubscribe(self, handle: Hashable) -> None: ...


class QtTickSource(QObject):
    """Periodic ``QTimer`` ticks delivered on the Qt event loop."""

    def __init__(
        self,
        parent: QObject | None = None,
        *,
        interval_ms: int = TICK_INTERVAL_MS,
    ) -> None:
        super().__init__(parent)
        self._interval_ms = interval_ms
        self._timers: dict[int, QTimer] = {}
        self._handles = itertools.count(1)

    @property
    def active_subscriptions(self) -> int:
        return len(self._timers)

    def subscribe(self, on_tick: Callable[[], None]) -> int:
        handle = next(self._handles)
        timer = QTimer(self)
        timer.setInterval(self._interval_ms)
        timer.timeout.connect(on_tick)
        timer.start()
        self._timers[handle] = timer
        return handle

    def unsubscribe(self, handle: int) -> None:
        """Stop delivery for *handle*.  Unknown handles are ignored."""
        timer = self._timers.pop(handle, None)
        if timer is None:
            return
        timer.stop()
        timer.timeout.disconnect()
        timer.deleteLater()
