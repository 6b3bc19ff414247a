"""
Video Classifier GUI — entry point.
Run: python main.py
Settings come from core.config defaults and CLASSIFIER_* environment variables.
"""

from __future__ import annotations

import logging
import os
import sys

# Reduce TensorFlow Lite/MediaPipe console noise (INFO and WARNING)
os.environ.setdefault("TF_CPP_MIN_LOG_LEVEL", "2")

from PySide6.QtWidgets import QApplication
from ui.main_window import MainWindow


def configure_logging() -> None:
    level_name = os.environ.get("CLASSIFIER_LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main() -> None:
    configure_logging()
    app = QApplication(sys.argv)
    window = MainWindow()
    window.show()
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
