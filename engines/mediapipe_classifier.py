"""
MediaPipe Tasks backend: ImageClassifier on a .tflite model (e.g. EfficientNet-Lite0).
Takes NHWC uint8 RGB input and returns the full score vector by class index.
"""

from __future__ import annotations

import sys
from typing import Any

import mediapipe as mp
import numpy as np

from core.config import DeviceOptions
from core.errors import BuildFailure, InferenceFailure, ModelLoadFailure
from core.models import FrameTensor, InferenceResult
from core.tensor import to_interleaved
from engines.base import InferenceEngine

OUTPUT_NAME = "classifications"


class MediaPipeClassifierEngine(InferenceEngine):
    engine_id = "mediapipe"
    display_name = "MediaPipe Image Classifier"

    def __init__(self, model_path, inputs, **options: Any) -> None:
        super().__init__(model_path, inputs, **{**self.default_options(), **options})
        self._classifier: mp.tasks.vision.ImageClassifier | None = None
        self._base_options: mp.tasks.BaseOptions | None = None
        self._num_classes = int(self.options["num_classes"])

    @staticmethod
    def default_options() -> dict[str, Any]:
        return {"num_classes": 0}

    @classmethod
    def available_devices(cls) -> list[str]:
        # GPU delegate is not shipped in the Windows wheels
        if sys.platform == "win32":
            return ["cpu"]
        return ["cpu", "gpu"]

    def _load(self, device: DeviceOptions) -> str:
        if not self.model_path.is_file():
            raise ModelLoadFailure(f"Model file not found: {self.model_path}")
        delegate = (
            mp.tasks.BaseOptions.Delegate.GPU
            if device.device_type == "gpu"
            else mp.tasks.BaseOptions.Delegate.CPU
        )
        self._base_options = mp.tasks.BaseOptions(
            model_asset_path=str(self.model_path), delegate=delegate
        )
        return OUTPUT_NAME

    def _build(self, output_name: str) -> None:
        if output_name != OUTPUT_NAME:
            raise BuildFailure(f"Unknown output {output_name!r}; expected {OUTPUT_NAME!r}")
        b, c, _, _ = self.inputs.input_dimensions
        if self.inputs.input_layout != "nhwc" or self.inputs.dtype != "uint8":
            raise BuildFailure("MediaPipe classifier needs nhwc uint8 input")
        if b != 1 or c != 3:
            raise BuildFailure(f"MediaPipe classifier needs batch 1 and 3 channels, got {b}x{c}")
        options = mp.tasks.vision.ImageClassifierOptions(
            base_options=self._base_options,
            running_mode=mp.tasks.vision.RunningMode.IMAGE,
            max_results=-1,
        )
        try:
            self._classifier = mp.tasks.vision.ImageClassifier.create_from_options(options)
        except (RuntimeError, ValueError) as e:
            raise BuildFailure(f"Failed to create image classifier: {e}") from e

    def _run(self, tensor: FrameTensor) -> InferenceResult:
        if self._classifier is None:
            raise InferenceFailure("Image classifier is not built")
        rgb = np.ascontiguousarray(to_interleaved(tensor)[0], dtype=np.uint8)
        mp_image = mp.Image(image_format=mp.ImageFormat.SRGB, data=rgb)
        try:
            result = self._classifier.classify(mp_image)
        except (RuntimeError, ValueError) as e:
            raise InferenceFailure(f"MediaPipe classify failed: {e}") from e
        categories = result.classifications[0].categories if result.classifications else []
        size = max([self._num_classes] + [c.index + 1 for c in categories])
        self._num_classes = size
        scores = np.zeros(size, dtype=np.float32)
        for c in categories:
            scores[c.index] = c.score or 0.0
        return {OUTPUT_NAME: scores}

    def close(self) -> None:
        if self._classifier is not None:
            self._classifier.close()
            self._classifier = None
        super().close()


Engine = MediaPipeClassifierEngine
