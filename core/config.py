"""
Runtime configuration: device and input options plus application settings.
Defaults live in default_settings(); environment variables override them.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Mapping

DEVICE_TYPES = ("cpu", "gpu", "npu")
LAYOUTS = ("nchw", "nhwc")
CHANNEL_SCHEMES = ("rgb", "bgr")
DTYPES = ("float32", "uint8")

# Environment variable -> settings key
_ENV_OVERRIDES = {
    "CLASSIFIER_VIDEO_URL": "video_url",
    "CLASSIFIER_LABELS_URL": "labels_url",
    "CLASSIFIER_ENGINE": "engine",
    "CLASSIFIER_DEVICE": "device_type",
    "CLASSIFIER_MODEL": "model",
}


@dataclass(frozen=True)
class DeviceOptions:
    device_type: str = "cpu"

    def __post_init__(self) -> None:
        if self.device_type not in DEVICE_TYPES:
            raise ValueError(
                f"device_type must be one of {DEVICE_TYPES}, got {self.device_type!r}"
            )


@dataclass(frozen=True)
class InputOptions:
    """How a frame is turned into the network input tensor."""

    input_layout: str = "nchw"
    input_dimensions: tuple[int, int, int, int] = (1, 3, 224, 224)
    mean: tuple[float, ...] | None = None
    std: tuple[float, ...] | None = None
    norm: bool = False
    channel_scheme: str = "rgb"
    dtype: str = "float32"

    def __post_init__(self) -> None:
        if self.input_layout not in LAYOUTS:
            raise ValueError(
                f"input_layout must be one of {LAYOUTS}, got {self.input_layout!r}"
            )
        dims = tuple(int(d) for d in self.input_dimensions)
        if len(dims) != 4 or any(d <= 0 for d in dims):
            raise ValueError(
                f"input_dimensions must be 4 positive integers, got {self.input_dimensions!r}"
            )
        object.__setattr__(self, "input_dimensions", dims)
        if self.channel_scheme not in CHANNEL_SCHEMES:
            raise ValueError(f"channel_scheme must be one of {CHANNEL_SCHEMES}")
        if self.dtype not in DTYPES:
            raise ValueError(f"dtype must be one of {DTYPES}")
        channels = dims[1]
        for name in ("mean", "std"):
            value = getattr(self, name)
            if value is not None and len(value) != channels:
                raise ValueError(f"{name} needs {channels} values, got {len(value)}")
        if self.dtype == "uint8" and (self.mean is not None or self.std is not None or self.norm):
            raise ValueError("mean, std and norm apply to float32 input only, not uint8")

    @property
    def batch(self) -> int:
        return self.input_dimensions[0]

    @property
    def channels(self) -> int:
        return self.input_dimensions[1]

    @property
    def height(self) -> int:
        return self.input_dimensions[2]

    @property
    def width(self) -> int:
        return self.input_dimensions[3]

    @property
    def shape(self) -> tuple[int, int, int, int]:
        """Tensor shape in the declared layout."""
        b, c, h, w = self.input_dimensions
        if self.input_layout == "nchw":
            return (b, c, h, w)
        return (b, h, w, c)


@dataclass
class AppSettings:
    video_url: str
    labels_url: str
    engine: str
    model: str
    device: DeviceOptions
    inputs: InputOptions
    top_k: int = 3
    tick_interval_ms: int = 16
    engine_options: dict[str, Any] = field(default_factory=dict)


def default_settings() -> dict[str, Any]:
    """Return default settings dict (MobileNetV2 on ImageNet, NCHW float32)."""
    return {
        "video_url": "https://genuine-marzipan-c4a520.netlify.app/video3.mp4",
        "labels_url": "https://raw.githubusercontent.com/pytorch/hub/master/imagenet_classes.txt",
        "engine": "onnx",
        "model": "mobilenetv2-12.onnx",
        "device_type": "cpu",
        "input_layout": "nchw",
        "input_dimensions": [1, 3, 224, 224],
        "mean": [0.485, 0.456, 0.406],
        "std": [0.229, 0.224, 0.225],
        "norm": True,
        "channel_scheme": "rgb",
        "dtype": "float32",
        "top_k": 3,
        "tick_interval_ms": 16,
        "engine_options": {"softmax": True},
    }


def settings_from_env(environ: Mapping[str, str] | None = None) -> dict[str, Any]:
    """Default settings with CLASSIFIER_* environment overrides applied."""
    environ = os.environ if environ is None else environ
    settings = default_settings()
    for var, key in _ENV_OVERRIDES.items():
        value = environ.get(var)
        if value:
            settings[key] = value
    return settings


def load_settings(overrides: Mapping[str, Any] | None = None) -> AppSettings:
    """Build validated AppSettings from defaults, environment and explicit overrides."""
    raw = settings_from_env()
    if overrides:
        raw.update(overrides)
    mean = raw.get("mean")
    std = raw.get("std")
    inputs = InputOptions(
        input_layout=str(raw["input_layout"]),
        input_dimensions=tuple(raw["input_dimensions"]),
        mean=tuple(float(v) for v in mean) if mean is not None else None,
        std=tuple(float(v) for v in std) if std is not None else None,
        norm=bool(raw.get("norm", False)),
        channel_scheme=str(raw.get("channel_scheme", "rgb")),
        dtype=str(raw.get("dtype", "float32")),
    )
    top_k = int(raw.get("top_k", 3))
    if top_k < 1:
        raise ValueError(f"top_k must be >= 1, got {top_k}")
    return AppSettings(
        video_url=str(raw["video_url"]),
        labels_url=str(raw["labels_url"]),
        engine=str(raw["engine"]),
        model=str(raw["model"]),
        device=DeviceOptions(str(raw["device_type"])),
        inputs=inputs,
        top_k=top_k,
        tick_interval_ms=int(raw.get("tick_interval_ms", 16)),
        engine_options=dict(raw.get("engine_options") or {}),
    )
