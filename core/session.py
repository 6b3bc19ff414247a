"""
Model session handle and the single-flight processing state.
"""

from __future__ import annotations

import enum
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from core.config import DeviceOptions, InputOptions

if TYPE_CHECKING:
    from engines.base import InferenceEngine


class ProcessingState(enum.Enum):
    IDLE = "idle"
    BUSY = "busy"


@dataclass
class ModelSession:
    """Everything the frame loop needs to run one network. Owned by the bootstrapper."""

    engine: InferenceEngine
    inputs: InputOptions
    device: DeviceOptions
    loaded_at: float | None = None
    built_at: float | None = None
    load_ms: float = 0.0
    build_ms: float = 0.0
    output_name: str | None = None
    labels: tuple[str, ...] = field(default_factory=tuple)

    @property
    def input_layout(self) -> str:
        return self.inputs.input_layout

    @property
    def input_dimensions(self) -> tuple[int, int, int, int]:
        return self.inputs.input_dimensions

    @property
    def is_ready(self) -> bool:
        return self.built_at is not None

    def mark_loaded(self, elapsed_ms: float) -> None:
        self.loaded_at = time.time()
        self.load_ms = elapsed_ms

    def mark_built(self, elapsed_ms: float) -> None:
        self.built_at = time.time()
        self.build_ms = elapsed_ms
