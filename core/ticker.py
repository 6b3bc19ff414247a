"""
Tick sources drive the frame loop: one callback per display refresh.
ManualTickSource is for tests and headless runs; the GUI uses a QTimer-backed one.
"""

from __future__ import annotations

from typing import Callable, Protocol

TickCallback = Callable[[], None]


class TickSource(Protocol):
    def on_tick(self, callback: TickCallback) -> None:
        """Schedule callback for the next tick (one-shot, like requestAnimationFrame)."""
        ...

    def cancel(self) -> None:
        """Drop any pending callback."""
        ...


class ManualTickSource:
    """Fires scheduled callbacks only when fire() or run() is called."""

    def __init__(self) -> None:
        self._pending: list[TickCallback] = []
        self.scheduled = 0
        self.fired = 0

    def on_tick(self, callback: TickCallback) -> None:
        self.scheduled += 1
        self._pending.append(callback)

    def cancel(self) -> None:
        self._pending.clear()

    @property
    def pending(self) -> int:
        return len(self._pending)

    def fire(self) -> bool:
        """Deliver one tick. Returns False if nothing was scheduled."""
        callbacks, self._pending = self._pending, []
        if not callbacks:
            return False
        self.fired += 1
        for callback in callbacks:
            callback()
        return True

    def run(self, ticks: int) -> int:
        """Deliver up to `ticks` ticks; stops early when nothing is scheduled."""
        delivered = 0
        while delivered < ticks and self.fire():
            delivered += 1
        return delivered

