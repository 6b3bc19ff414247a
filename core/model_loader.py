"""
Ensures classifier model files exist; downloads known models if missing.
"""

from __future__ import annotations

import logging
import urllib.error
import urllib.request
from pathlib import Path

from core.errors import ModelLoadFailure

log = logging.getLogger(__name__)

# Directory for cached models (next to project root)
MODELS_DIR = Path(__file__).resolve().parent.parent / "models"

_MODEL_URLS = {
    "mobilenetv2-12.onnx": "https://github.com/onnx/models/raw/main/validated/vision/classification/mobilenet/model/mobilenetv2-12.onnx",
    "efficientnet_lite0.tflite": "https://storage.googleapis.com/mediapipe-models/image_classifier/efficientnet_lite0/float32/latest/efficientnet_lite0.tflite",
}


def get_model_path(name: str, models_dir: Path | None = None) -> Path:
    """
    Resolve a model to a local file. An existing path is used as-is; a known
    model name is downloaded into the cache on first use.
    """
    direct = Path(name)
    if direct.is_file():
        return direct
    cache = models_dir if models_dir is not None else MODELS_DIR
    path = cache / name
    if path.is_file():
        return path
    url = _MODEL_URLS.get(name)
    if not url:
        raise ModelLoadFailure(f"Unknown model: {name}. Known: {list(_MODEL_URLS)}")
    cache.mkdir(parents=True, exist_ok=True)
    log.info("Downloading %s from %s", name, url)
    try:
        urllib.request.urlretrieve(url, path)
    except (urllib.error.URLError, OSError) as exc:
        path.unlink(missing_ok=True)
        raise ModelLoadFailure(f"Failed to download {name}: {exc}") from exc
    return path
