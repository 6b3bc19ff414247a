"""
UI reporting surface: status line, alerts, per-field updates and the video frame.
"""

from __future__ import annotations

import enum
import logging
from typing import Protocol

import numpy as np

log = logging.getLogger(__name__)

LOAD_TIME = "loadTime"
BUILD_TIME = "buildTime"
COMPUTE_TIME = "computeTime"
FPS = "fps"


def label_field(i: int) -> str:
    return f"label{i}"


def prob_field(i: int) -> str:
    return f"prob{i}"


class Severity(str, enum.Enum):
    INFO = "info"
    SUCCESS = "success"
    DANGER = "danger"


class UIReporter(Protocol):
    def status(self, text: str) -> None:
        ...

    def alert(self, message: str, severity: Severity) -> None:
        ...

    def update_field(self, name: str, value: str) -> None:
        ...

    def show_frame(self, frame: np.ndarray) -> None:
        ...


class LoggingReporter:
    """Headless reporter: everything goes to the log; frames are dropped."""

    _LEVELS = {
        Severity.INFO: logging.INFO,
        Severity.SUCCESS: logging.INFO,
        Severity.DANGER: logging.ERROR,
    }

    def __init__(self) -> None:
        self.fields: dict[str, str] = {}
        self.last_status = ""

    def status(self, text: str) -> None:
        self.last_status = text
        log.info("status: %s", text)

    def alert(self, message: str, severity: Severity) -> None:
        log.log(self._LEVELS[Severity(severity)], "[%s] %s", Severity(severity).value, message)

    def update_field(self, name: str, value: str) -> None:
        self.fields[name] = value
        log.debug("%s = %s", name, value)

    def show_frame(self, frame: np.ndarray) -> None:
        pass
