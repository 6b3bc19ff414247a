from pathlib import Path

import numpy as np
import pytest

from core.config import DeviceOptions, InputOptions, load_settings
from core.errors import InferenceFailure
from core.models import FrameTensor
from core.session import ModelSession
from core.ticker import ManualTickSource


class FakeEngine:
    """Engine double: returns a fixed score vector and records calls."""

    def __init__(self, scores=(0.1, 0.7, 0.05, 0.15), fail_on=(), on_compute=None):
        self.scores = np.asarray(scores, dtype=np.float32)
        self.fail_on = set(fail_on)
        self.on_compute = on_compute
        self.compute_calls = 0
        self.loaded_with = None
        self.built_with = None
        self.closed = False

    def load(self, device):
        self.loaded_with = device
        return "output"

    def build(self, output_name):
        self.built_with = output_name

    def compute(self, tensor: FrameTensor):
        self.compute_calls += 1
        if self.on_compute is not None:
            self.on_compute()
        if self.compute_calls in self.fail_on:
            raise InferenceFailure(f"call {self.compute_calls} failed")
        return {"output": self.scores}

    def close(self):
        self.closed = True


class FakeSource:
    """Frame source double with controllable readiness and pause state."""

    def __init__(self, frame=None, paused=False, width=4, height=4):
        self.frame = frame if frame is not None else np.full((height, width, 3), 128, np.uint8)
        self.paused = paused
        self.width = width
        self.height = height
        self.draw_calls = 0
        self.opened_with = None
        self.closed = False

    def is_playable(self):
        return not self.paused

    def draw(self, surface):
        self.draw_calls += 1
        return self.frame

    def open(self, source):
        from core.capture import SourceMetadata

        self.opened_with = source
        return SourceMetadata(self.width, self.height, 30.0, False)

    def close(self):
        self.closed = True


class RecordingReporter:
    def __init__(self):
        self.statuses = []
        self.alerts = []
        self.fields = {}
        self.frames = 0

    def status(self, text):
        self.statuses.append(text)

    def alert(self, message, severity):
        self.alerts.append((message, severity))

    def update_field(self, name, value):
        self.fields[name] = value

    def show_frame(self, frame):
        self.frames += 1


class FakeDetector:
    def __init__(self, devices=("cpu",)):
        self.devices = list(devices)

    def available_devices(self, engine_id):
        return self.devices

    def supports(self, engine_id, device_type):
        return device_type in self.devices


LABELS = ("cat", "dog", "fish", "bird")


@pytest.fixture
def small_inputs():
    return InputOptions(input_layout="nchw", input_dimensions=(1, 3, 4, 4), channel_scheme="bgr")


@pytest.fixture
def reporter():
    return RecordingReporter()


@pytest.fixture
def ticker():
    return ManualTickSource()


@pytest.fixture
def make_session(small_inputs):
    def _make(engine=None):
        return ModelSession(
            engine=engine if engine is not None else FakeEngine(),
            inputs=small_inputs,
            device=DeviceOptions("cpu"),
            output_name="output",
            labels=LABELS,
        )

    return _make


@pytest.fixture
def settings(monkeypatch):
    for var in ("CLASSIFIER_VIDEO_URL", "CLASSIFIER_LABELS_URL", "CLASSIFIER_ENGINE",
                "CLASSIFIER_DEVICE", "CLASSIFIER_MODEL"):
        monkeypatch.delenv(var, raising=False)
    return load_settings(
        {
            "video_url": "video.mp4",
            "labels_url": "labels.txt",
            "input_dimensions": [1, 3, 4, 4],
        }
    )


@pytest.fixture
def fake_model_resolver():
    return lambda name: Path(name)
