"""
Qt adapters for the core: QTimer tick source, signal-based reporter and a
logging handler that mirrors records into the Logs panel.
Signals make reporter calls safe from the bootstrap worker thread.
"""

from __future__ import annotations

import logging

import numpy as np
from PySide6.QtCore import QObject, QTimer, Signal

from core.reporter import Severity
from core.ticker import TickCallback

# Loggers that may fire once per tick; kept out of the Logs panel
PER_CYCLE_LOGGERS = ("core.frame_loop",)


class QtTickSource(QObject):
    """Single-shot QTimer per tick on the GUI thread (~60 Hz by default)."""

    def __init__(self, interval_ms: int = 16, parent: QObject | None = None) -> None:
        super().__init__(parent)
        self._timer = QTimer(self)
        self._timer.setSingleShot(True)
        self._timer.setInterval(interval_ms)
        self._timer.timeout.connect(self._on_timeout)
        self._callback: TickCallback | None = None

    def on_tick(self, callback: TickCallback) -> None:
        self._callback = callback
        if not self._timer.isActive():
            self._timer.start()

    def cancel(self) -> None:
        self._callback = None
        self._timer.stop()

    def _on_timeout(self) -> None:
        callback, self._callback = self._callback, None
        if callback is not None:
            callback()


class QtReporter(QObject):
    """UIReporter that forwards every call as a Qt signal."""

    status_changed = Signal(str)
    # (message, severity value)
    alert_raised = Signal(str, str)
    field_updated = Signal(str, str)
    frame_ready = Signal(object)

    def status(self, text: str) -> None:
        self.status_changed.emit(text)

    def alert(self, message: str, severity: Severity) -> None:
        self.alert_raised.emit(message, Severity(severity).value)

    def update_field(self, name: str, value: str) -> None:
        self.field_updated.emit(name, value)

    def show_frame(self, frame: np.ndarray) -> None:
        # The working surface is reused by the next cycle
        self.frame_ready.emit(frame.copy())


class _LogSignal(QObject):
    record_emitted = Signal(str, int)


class LogsPanelHandler(logging.Handler):
    """Routes log records to a Qt slot, across threads."""

    def __init__(self, level: int = logging.INFO) -> None:
        super().__init__(level)
        self.bridge = _LogSignal()
        self.setFormatter(logging.Formatter("%(asctime)s %(name)s: %(message)s", "%H:%M:%S"))
        self.addFilter(self._visible)

    @staticmethod
    def _visible(record: logging.LogRecord) -> bool:
        return record.name not in PER_CYCLE_LOGGERS

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.bridge.record_emitted.emit(self.format(record), record.levelno)
        except RuntimeError:
            # Qt object already deleted during shutdown
            pass
