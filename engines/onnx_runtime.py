"""
ONNX Runtime backend: runs an image classification .onnx model.
Device types map to execution providers; CPU is kept as fallback for unsupported ops.
"""

from __future__ import annotations

from typing import Any

import numpy as np
import onnxruntime as ort

from core.config import DeviceOptions
from core.errors import BuildFailure, InferenceFailure, ModelLoadFailure
from core.models import FrameTensor, InferenceResult
from engines.base import InferenceEngine, softmax

DEVICE_PROVIDERS = {
    "cpu": ("CPUExecutionProvider",),
    "gpu": (
        "CUDAExecutionProvider",
        "ROCMExecutionProvider",
        "DmlExecutionProvider",
        "CoreMLExecutionProvider",
    ),
    "npu": (
        "OpenVINOExecutionProvider",
        "QNNExecutionProvider",
        "VitisAIExecutionProvider",
    ),
}

_ORT_DTYPES = {
    "tensor(float)": "float32",
    "tensor(uint8)": "uint8",
}


class OnnxRuntimeEngine(InferenceEngine):
    engine_id = "onnx"
    display_name = "ONNX Runtime"

    def __init__(self, model_path, inputs, **options: Any) -> None:
        super().__init__(model_path, inputs, **{**self.default_options(), **options})
        self._session: ort.InferenceSession | None = None
        self._input_name: str | None = None
        self._output_name: str | None = None

    @staticmethod
    def default_options() -> dict[str, Any]:
        return {"softmax": False, "intra_op_num_threads": 0}

    @classmethod
    def available_devices(cls) -> list[str]:
        available = set(ort.get_available_providers())
        return [
            device
            for device, providers in DEVICE_PROVIDERS.items()
            if any(p in available for p in providers)
        ]

    @staticmethod
    def providers_for(device_type: str) -> list[str]:
        available = ort.get_available_providers()
        providers = [p for p in DEVICE_PROVIDERS[device_type] if p in available]
        if "CPUExecutionProvider" not in providers:
            providers.append("CPUExecutionProvider")
        return providers

    def _load(self, device: DeviceOptions) -> str:
        if not self.model_path.is_file():
            raise ModelLoadFailure(f"Model file not found: {self.model_path}")
        sess_options = ort.SessionOptions()
        sess_options.intra_op_num_threads = int(self.options["intra_op_num_threads"])
        try:
            self._session = ort.InferenceSession(
                str(self.model_path),
                sess_options=sess_options,
                providers=self.providers_for(device.device_type),
            )
        except Exception as e:  # noqa: BLE001
            raise ModelLoadFailure(f"Failed to load {self.model_path.name}: {e}") from e
        self._input_name = self._session.get_inputs()[0].name
        return self._session.get_outputs()[0].name

    def _build(self, output_name: str) -> None:
        if self._session is None:
            raise BuildFailure("Model session is not loaded")
        outputs = [o.name for o in self._session.get_outputs()]
        if output_name not in outputs:
            raise BuildFailure(f"Output {output_name!r} not in model outputs {outputs}")
        model_input = self._session.get_inputs()[0]
        expected = self.inputs.shape
        if len(model_input.shape) != len(expected):
            raise BuildFailure(
                f"Model input rank {len(model_input.shape)} does not match {expected}"
            )
        for model_dim, dim in zip(model_input.shape, expected):
            # Symbolic or missing dims accept any size
            if isinstance(model_dim, int) and model_dim != dim:
                raise BuildFailure(
                    f"Model input shape {model_input.shape} does not match "
                    f"{self.inputs.input_layout} shape {expected}"
                )
        dtype = _ORT_DTYPES.get(model_input.type)
        if dtype != self.inputs.dtype:
            raise BuildFailure(
                f"Model input type {model_input.type} does not match {self.inputs.dtype}"
            )
        self._output_name = output_name

    def _run(self, tensor: FrameTensor) -> InferenceResult:
        if self._session is None or self._output_name is None:
            raise InferenceFailure("Model session is not built")
        try:
            (output,) = self._session.run(
                [self._output_name], {self._input_name: tensor.as_array()}
            )
        except Exception as e:  # noqa: BLE001
            raise InferenceFailure(f"ONNX Runtime run failed: {e}") from e
        scores = np.asarray(output, dtype=np.float32)
        if scores.ndim > 1:
            scores = scores[0]
        scores = scores.ravel()
        if self.options["softmax"]:
            scores = softmax(scores)
        return {self._output_name: scores}

    def close(self) -> None:
        self._session = None
        super().close()


Engine = OnnxRuntimeEngine
