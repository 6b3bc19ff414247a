"""
Right-side panels: Predictions (top-3), Logs, Performance.
"""

from __future__ import annotations

import html
import logging

from PySide6.QtWidgets import (
    QGridLayout,
    QLabel,
    QPlainTextEdit,
    QVBoxLayout,
    QWidget,
)

from core.reporter import BUILD_TIME, COMPUTE_TIME, FPS, LOAD_TIME, Severity, label_field, prob_field

_SEVERITY_COLORS = {
    Severity.INFO.value: "#31708f",
    Severity.SUCCESS.value: "#3c763d",
    Severity.DANGER.value: "#a94442",
}


class ResultsPanel(QWidget):
    """Top predictions as label / probability rows, updated every cycle."""

    def __init__(self, slots: int = 3, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        layout = QVBoxLayout(self)
        grid = QGridLayout()
        grid.addWidget(QLabel("<b>Label</b>"), 0, 0)
        grid.addWidget(QLabel("<b>Probability</b>"), 0, 1)
        self._labels: dict[str, QLabel] = {}
        for i in range(slots):
            label = QLabel("—")
            prob = QLabel("—")
            grid.addWidget(label, i + 1, 0)
            grid.addWidget(prob, i + 1, 1)
            self._labels[label_field(i)] = label
            self._labels[prob_field(i)] = prob
        layout.addLayout(grid)
        layout.addStretch()

    def handles(self, name: str) -> bool:
        return name in self._labels

    def update_field(self, name: str, value: str) -> None:
        widget = self._labels.get(name)
        if widget is not None:
            widget.setText(value or "—")

    def text_of(self, name: str) -> str:
        return self._labels[name].text()

    def reset(self) -> None:
        for widget in self._labels.values():
            widget.setText("—")


class LogsPanel(QWidget):
    """Shows alerts and log records; danger/error lines are highlighted."""

    def __init__(self, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        layout = QVBoxLayout(self)
        self._text = QPlainTextEdit(self)
        self._text.setReadOnly(True)
        self._text.setMaximumBlockCount(2000)
        layout.addWidget(self._text)

    def append(self, message: str) -> None:
        self._text.appendPlainText(message)
        scrollbar = self._text.verticalScrollBar()
        scrollbar.setValue(scrollbar.maximum())

    def append_alert(self, message: str, severity: str) -> None:
        color = _SEVERITY_COLORS.get(severity, "#000000")
        text = html.escape(f"[{severity}] {message}")
        self._text.appendHtml(f'<span style="color:{color}">{text}</span>')
        scrollbar = self._text.verticalScrollBar()
        scrollbar.setValue(scrollbar.maximum())

    def append_record(self, message: str, levelno: int) -> None:
        if levelno >= logging.WARNING:
            self.append_alert(message, Severity.DANGER.value)
        else:
            self.append(message)

    def text(self) -> str:
        return self._text.toPlainText()

    def clear(self) -> None:
        self._text.clear()


class PerformancePanel(QWidget):
    """Shows load, build and per-frame compute time, plus classified frames per second."""

    _CAPTIONS = {
        LOAD_TIME: "Load time",
        BUILD_TIME: "Build time",
        COMPUTE_TIME: "Compute time",
        FPS: "FPS",
    }

    def __init__(self, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        layout = QVBoxLayout(self)
        self._labels: dict[str, QLabel] = {}
        for name, caption in self._CAPTIONS.items():
            label = QLabel(f"{caption}: —")
            self._labels[name] = label
            layout.addWidget(label)
        layout.addStretch()

    def handles(self, name: str) -> bool:
        return name in self._labels

    def update_field(self, name: str, value: str) -> None:
        label = self._labels.get(name)
        if label is not None:
            label.setText(f"{self._CAPTIONS[name]}: {value}")

    def reset(self, keep_model_times: bool = True) -> None:
        for name, label in self._labels.items():
            if keep_model_times and name in (LOAD_TIME, BUILD_TIME):
                continue
            label.setText(f"{self._CAPTIONS[name]}: —")
