"""
Engine registry: backends live in engines/<module>.py and expose an `Engine`
class. Modules are imported on first use so a missing runtime only affects
the backend that needs it.
"""

from __future__ import annotations

import importlib
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from core.config import InputOptions
    from engines.base import InferenceEngine

log = logging.getLogger(__name__)

# Engine id -> module name under engines/
_BUILTIN_ENGINES = {
    "onnx": "onnx_runtime",
    "mediapipe": "mediapipe_classifier",
}


def engine_ids() -> list[str]:
    return list(_BUILTIN_ENGINES)


def engine_class(engine_id: str) -> type[InferenceEngine]:
    """Import the backend module for engine_id and return its Engine class."""
    module_name = _BUILTIN_ENGINES.get(engine_id)
    if module_name is None:
        raise ValueError(f"Unknown engine: {engine_id}. Known: {engine_ids()}")
    module = importlib.import_module(f"engines.{module_name}")
    return getattr(module, "Engine")


def create_engine(
    engine_id: str, model_path: str | Path, inputs: InputOptions, **options: Any
) -> InferenceEngine:
    return engine_class(engine_id)(model_path, inputs, **options)


def discover_engines() -> list[type[InferenceEngine]]:
    """Backends whose runtime library imports in this environment."""
    loaded: list[type[InferenceEngine]] = []
    for engine_id in _BUILTIN_ENGINES:
        try:
            loaded.append(engine_class(engine_id))
        except ImportError as e:
            log.warning("Engine %s unavailable: %s", engine_id, e)
    return loaded
