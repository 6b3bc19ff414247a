"""
Timing helpers: stage stopwatch, rolling averages and tick rate.
"""

from __future__ import annotations

import time
from collections import deque
from typing import Deque


class Stopwatch:
    """Measures one stage in milliseconds. Use as a context manager."""

    def __init__(self) -> None:
        self._start: float | None = None
        self.elapsed_ms: float = 0.0

    def __enter__(self) -> Stopwatch:
        self._start = time.perf_counter()
        return self

    def __exit__(self, *exc_info: object) -> None:
        if self._start is not None:
            self.elapsed_ms = (time.perf_counter() - self._start) * 1000.0


def format_ms(value_ms: float) -> str:
    return f"{value_ms:.2f} ms"


class RollingAverage:
    """Rolling average over the last N values."""

    def __init__(self, maxlen: int = 30) -> None:
        self._values: Deque[float] = deque(maxlen=maxlen)

    def add(self, value: float) -> None:
        self._values.append(value)

    @property
    def average(self) -> float:
        if not self._values:
            return 0.0
        return sum(self._values) / len(self._values)

    @property
    def count(self) -> int:
        return len(self._values)

    def clear(self) -> None:
        self._values.clear()


class FPSCounter:
    """Completed cycles per second, from the gap between consecutive cycles."""

    def __init__(self, rolling_size: int = 30) -> None:
        self._last_time: float | None = None
        self._intervals = RollingAverage(maxlen=rolling_size)

    def tick(self) -> float:
        """Call once per completed cycle. Returns the smoothed rate."""
        now = time.perf_counter()
        if self._last_time is not None:
            self._intervals.add(now - self._last_time)
        self._last_time = now
        return self.fps

    @property
    def fps(self) -> float:
        interval = self._intervals.average
        return 1.0 / interval if interval > 0 else 0.0

    def reset(self) -> None:
        self._last_time = None
        self._intervals.clear()
