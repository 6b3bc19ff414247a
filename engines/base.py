"""
Base inference engine interface that every backend must implement.
Lifecycle: unloaded -> loaded -> built -> ready. compute() is not reentrant.
"""

from __future__ import annotations

import enum
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

import numpy as np

from core.config import DeviceOptions, InputOptions
from core.errors import BuildFailure, InferenceFailure, UnsupportedDevice
from core.models import FrameTensor, InferenceResult

log = logging.getLogger(__name__)


class EngineState(enum.Enum):
    UNLOADED = "unloaded"
    LOADED = "loaded"
    BUILT = "built"
    READY = "ready"


class InferenceEngine(ABC):
    """Backend wrapper. Subclass and implement the underscore hooks."""

    engine_id: str = ""
    display_name: str = ""

    def __init__(self, model_path: str | Path, inputs: InputOptions, **options: Any) -> None:
        self.model_path = Path(model_path)
        self.inputs = inputs
        self.options = options
        self.state = EngineState.UNLOADED
        self.device: DeviceOptions | None = None
        self._computing = False

    @staticmethod
    @abstractmethod
    def default_options() -> dict[str, Any]:
        """Return default backend options."""
        ...

    @classmethod
    @abstractmethod
    def available_devices(cls) -> list[str]:
        """Device types ('cpu', 'gpu', 'npu') this backend can use here."""
        ...

    @abstractmethod
    def _load(self, device: DeviceOptions) -> str:
        """Create the runtime context; return the name of the output to read."""
        ...

    @abstractmethod
    def _build(self, output_name: str) -> None:
        """Validate and prepare the graph for the configured input."""
        ...

    @abstractmethod
    def _run(self, tensor: FrameTensor) -> InferenceResult:
        """One forward pass."""
        ...

    def load(self, device: DeviceOptions) -> str:
        available = self.available_devices()
        if device.device_type not in available:
            raise UnsupportedDevice(device.device_type, available)
        output_name = self._load(device)
        self.device = device
        self.state = EngineState.LOADED
        log.debug("%s loaded on %s (output %s)", self.engine_id, device.device_type, output_name)
        return output_name

    def build(self, output_name: str) -> None:
        if self.state is not EngineState.LOADED:
            raise BuildFailure(f"Cannot build {self.engine_id} engine in state {self.state.value}")
        self._build(output_name)
        self.state = EngineState.BUILT
        # Warm-up pass surfaces dtype/shape problems before the loop starts
        try:
            self._run(self._blank_tensor())
        except InferenceFailure as exc:
            self.state = EngineState.LOADED
            raise BuildFailure(f"Warm-up run failed: {exc.message}") from exc
        self.state = EngineState.READY

    def compute(self, tensor: FrameTensor) -> InferenceResult:
        if self.state is not EngineState.READY:
            raise InferenceFailure(f"Engine is {self.state.value}, not ready")
        if self._computing:
            raise InferenceFailure("compute() called while a previous call is in flight")
        self._computing = True
        try:
            return self._run(tensor)
        finally:
            self._computing = False

    def close(self) -> None:
        """Release runtime resources."""
        self.state = EngineState.UNLOADED

    def _blank_tensor(self) -> FrameTensor:
        dtype = np.uint8 if self.inputs.dtype == "uint8" else np.float32
        size = int(np.prod(self.inputs.shape))
        return FrameTensor(
            data=np.zeros(size, dtype=dtype),
            layout=self.inputs.input_layout,
            shape=self.inputs.shape,
        )


def softmax(values: np.ndarray) -> np.ndarray:
    shifted = values - np.max(values)
    exp = np.exp(shifted)
    return exp / np.sum(exp)
