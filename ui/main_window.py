"""
Main window: left sidebar (source, engine, device, start/stop, pause), center
video with status line, right tabs (Predictions, Logs, Performance).
"""

from __future__ import annotations

import logging
from typing import Any

import cv2
import numpy as np
from PySide6.QtCore import QObject, Qt, QThread, Signal, Slot
from PySide6.QtGui import QImage, QPixmap
from PySide6.QtWidgets import (
    QComboBox,
    QFileDialog,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QPushButton,
    QTabWidget,
    QVBoxLayout,
    QWidget,
)

from core.bootstrap import Bootstrapper, BootState
from core.config import DEVICE_TYPES, load_settings, settings_from_env
from core.reporter import Severity
from engines import engine_ids
from ui.panels import LogsPanel, PerformancePanel, ResultsPanel
from ui.qt_bridge import LogsPanelHandler, QtReporter, QtTickSource

# Per-engine overrides on top of default_settings()
ENGINE_PRESETS: dict[str, dict[str, Any]] = {
    "onnx": {},
    "mediapipe": {
        "model": "efficientnet_lite0.tflite",
        "input_layout": "nhwc",
        "dtype": "uint8",
        "mean": None,
        "std": None,
        "norm": False,
        "engine_options": {},
    },
}


class PrepareWorker(QObject):
    """Runs Bootstrapper.prepare() in a background thread so the UI stays responsive."""

    prepared = Signal(bool)

    def __init__(self, bootstrapper: Bootstrapper) -> None:
        super().__init__()
        self._bootstrapper = bootstrapper

    def run(self) -> None:
        self.prepared.emit(self._bootstrapper.prepare())


class MainWindow(QWidget):
    """Main application window with sidebar, video view and right panels."""

    def __init__(self, overrides: dict[str, Any] | None = None) -> None:
        super().__init__()
        self.setWindowTitle("Video Classifier")
        self._base_settings = settings_from_env()
        if overrides:
            self._base_settings.update(overrides)
        self._reporter = QtReporter(self)
        self._ticker = QtTickSource(int(self._base_settings["tick_interval_ms"]), self)
        self._bootstrapper: Bootstrapper | None = None
        self._prepare_thread: QThread | None = None
        self._prepare_worker: PrepareWorker | None = None

        layout = QHBoxLayout(self)
        # --- Left sidebar ---
        sidebar = QWidget()
        sidebar_layout = QVBoxLayout(sidebar)
        sidebar_layout.addWidget(QLabel("Video source"))
        self._source_edit = QLineEdit(str(self._base_settings["video_url"]))
        self._source_edit.setToolTip("Stream URL, video file path or camera index.")
        sidebar_layout.addWidget(self._source_edit)
        self._open_video_btn = QPushButton("Open Video")
        self._open_video_btn.clicked.connect(self._on_open_video)
        sidebar_layout.addWidget(self._open_video_btn)
        sidebar_layout.addWidget(QLabel("Engine"))
        self._engine_combo = QComboBox()
        for engine_id in engine_ids():
            self._engine_combo.addItem(engine_id, engine_id)
        self._engine_combo.setCurrentIndex(
            max(0, self._engine_combo.findData(self._base_settings["engine"]))
        )
        sidebar_layout.addWidget(self._engine_combo)
        sidebar_layout.addWidget(QLabel("Device"))
        self._device_combo = QComboBox()
        for device in DEVICE_TYPES:
            self._device_combo.addItem(device, device)
        self._device_combo.setCurrentIndex(
            max(0, self._device_combo.findData(self._base_settings["device_type"]))
        )
        sidebar_layout.addWidget(self._device_combo)
        self._start_stop_btn = QPushButton("Start")
        self._start_stop_btn.clicked.connect(self._on_start_stop)
        sidebar_layout.addWidget(self._start_stop_btn)
        self._pause_btn = QPushButton("Pause")
        self._pause_btn.setEnabled(False)
        self._pause_btn.clicked.connect(self._on_pause_resume)
        sidebar_layout.addWidget(self._pause_btn)
        sidebar_layout.addStretch()
        layout.addWidget(sidebar)

        # --- Center: status + video ---
        center = QWidget()
        center_layout = QVBoxLayout(center)
        self._status_label = QLabel("Idle")
        center_layout.addWidget(self._status_label)
        self._video_label = QLabel()
        self._video_label.setMinimumSize(640, 480)
        self._video_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self._video_label.setStyleSheet("background-color: #1e1e1e; color: #888;")
        self._video_label.setText("No video")
        center_layout.addWidget(self._video_label, stretch=1)
        layout.addWidget(center, stretch=1)

        # --- Right: tabs ---
        tabs = QTabWidget()
        self._results_panel = ResultsPanel()
        tabs.addTab(self._results_panel, "Predictions")
        self._logs_panel = LogsPanel()
        tabs.addTab(self._logs_panel, "Logs")
        self._performance_panel = PerformancePanel()
        tabs.addTab(self._performance_panel, "Performance")
        layout.addWidget(tabs)

        self._reporter.status_changed.connect(self._status_label.setText)
        self._reporter.alert_raised.connect(self._on_alert)
        self._reporter.field_updated.connect(self._on_field_updated)
        self._reporter.frame_ready.connect(self._on_frame)

        self._log_handler = LogsPanelHandler(logging.WARNING)
        self._log_handler.bridge.record_emitted.connect(self._logs_panel.append_record)
        logging.getLogger().addHandler(self._log_handler)

        self._logs_panel.append("Application started. Choose a source and engine, then Start.")
        self.resize(1200, 700)

    @property
    def reporter(self) -> QtReporter:
        return self._reporter

    def current_settings(self) -> dict[str, Any]:
        """Settings dict for the engine and device selected in the sidebar."""
        settings = dict(self._base_settings)
        engine_id = self._engine_combo.currentData()
        settings.update(ENGINE_PRESETS.get(engine_id, {}))
        settings["engine"] = engine_id
        settings["device_type"] = self._device_combo.currentData()
        settings["video_url"] = self._source_edit.text().strip()
        return settings

    def _on_open_video(self) -> None:
        path, _ = QFileDialog.getOpenFileName(
            self, "Open Video", "", "Video (*.mp4 *.avi *.mov *.mkv *.webm);;All (*)"
        )
        if path:
            self._source_edit.setText(path)

    def _on_start_stop(self) -> None:
        if self._bootstrapper is not None:
            self._stop_processing()
            return
        try:
            settings = load_settings(self.current_settings())
        except ValueError as e:
            self._on_alert(f"Invalid settings: {e}", Severity.DANGER.value)
            return
        self._results_panel.reset()
        self._performance_panel.reset(keep_model_times=False)
        self._bootstrapper = Bootstrapper(settings, self._reporter, self._ticker)
        self._start_stop_btn.setEnabled(False)
        self._start_stop_btn.setText("Loading...")
        self._prepare_worker = PrepareWorker(self._bootstrapper)
        self._prepare_thread = QThread()
        self._prepare_worker.moveToThread(self._prepare_thread)
        self._prepare_thread.started.connect(self._prepare_worker.run)
        self._prepare_worker.prepared.connect(self._on_prepared)
        self._prepare_thread.start()

    def _finish_prepare_thread(self) -> None:
        """Quit the prepare thread and block until prepare() has returned."""
        if self._prepare_worker is not None:
            self._prepare_worker.prepared.disconnect(self._on_prepared)
        if self._prepare_thread is not None:
            self._prepare_thread.quit()
            self._prepare_thread.wait()
            self._prepare_thread = None
        self._prepare_worker = None

    @Slot(bool)
    def _on_prepared(self, success: bool) -> None:
        self._finish_prepare_thread()
        self._start_stop_btn.setEnabled(True)
        if not success or self._bootstrapper is None:
            self._bootstrapper = None
            self._start_stop_btn.setText("Start")
            return
        loop = self._bootstrapper.attach()
        if loop is None:
            self._bootstrapper.shutdown()
            self._bootstrapper = None
            self._start_stop_btn.setText("Start")
            return
        self._start_stop_btn.setText("Stop")
        self._pause_btn.setEnabled(True)
        self._pause_btn.setText("Pause")

    def _stop_processing(self) -> None:
        if self._bootstrapper is None:
            return
        self._bootstrapper.shutdown()
        self._bootstrapper = None
        self._start_stop_btn.setText("Start")
        self._pause_btn.setEnabled(False)
        self._status_label.setText("Stopped")
        self._performance_panel.reset()
        self._logs_panel.append("Processing stopped.")

    def _on_pause_resume(self) -> None:
        if self._bootstrapper is None or self._bootstrapper.state is not BootState.RUNNING:
            return
        source = self._bootstrapper.source
        if source.paused:
            source.resume()
        else:
            source.pause()
        self._sync_pause_button()

    def _sync_pause_button(self) -> None:
        """Button text follows the source, which also pauses itself at end of stream."""
        if self._bootstrapper is None or self._bootstrapper.state is not BootState.RUNNING:
            return
        self._pause_btn.setText("Resume" if self._bootstrapper.source.paused else "Pause")

    @Slot(str, str)
    def _on_alert(self, message: str, severity: str) -> None:
        self._logs_panel.append_alert(message, severity)

    @Slot(str, str)
    def _on_field_updated(self, name: str, value: str) -> None:
        if self._results_panel.handles(name):
            self._results_panel.update_field(name, value)
        elif self._performance_panel.handles(name):
            self._performance_panel.update_field(name, value)

    @Slot(object)
    def _on_frame(self, frame: np.ndarray) -> None:
        rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        h, w = rgb.shape[:2]
        qimg = QImage(rgb.data, w, h, 3 * w, QImage.Format.Format_RGB888)
        self._video_label.setPixmap(QPixmap.fromImage(qimg).scaled(
            self._video_label.size(),
            Qt.AspectRatioMode.KeepAspectRatio,
            Qt.TransformationMode.SmoothTransformation,
        ))
        self._sync_pause_button()

    def closeEvent(self, event) -> None:
        self._finish_prepare_thread()
        self._stop_processing()
        logging.getLogger().removeHandler(self._log_handler)
        event.accept()
