"""
Frame -> input tensor conversion. Frames are HxWxC uint8 arrays as delivered by
OpenCV (BGR); the tensor follows the layout, shape and dtype of InputOptions.
"""

from __future__ import annotations

import cv2
import numpy as np

from core.config import InputOptions
from core.errors import SourceNotReady
from core.models import FrameTensor


class TensorExtractor:
    """Converts a frame surface into a FrameTensor for one network input."""

    def extract(self, frame: np.ndarray | None, options: InputOptions) -> FrameTensor:
        if frame is None or frame.size == 0 or frame.shape[0] == 0 or frame.shape[1] == 0:
            raise SourceNotReady("Frame has zero area; source not ready")
        pixels = self._prepare_pixels(frame, options)
        if options.dtype == "uint8":
            values = pixels.copy()
        else:
            values = pixels.astype(np.float32)
            if options.norm:
                values /= 255.0
            if options.mean is not None:
                values -= np.asarray(options.mean, dtype=np.float32)
            if options.std is not None:
                values /= np.asarray(options.std, dtype=np.float32)
        if options.input_layout == "nchw":
            values = np.transpose(values, (2, 0, 1))
        # Batch > 1 repeats the single frame; batched inference is not supported
        data = np.ascontiguousarray(values).ravel()
        if options.batch > 1:
            data = np.tile(data, options.batch)
        return FrameTensor(data=data, layout=options.input_layout, shape=options.shape)

    @staticmethod
    def _prepare_pixels(frame: np.ndarray, options: InputOptions) -> np.ndarray:
        """Resize to the network size and reorder channels; returns HxWxC uint8."""
        if frame.ndim == 2:
            frame = cv2.cvtColor(frame, cv2.COLOR_GRAY2BGR)
        elif frame.shape[2] == 4:
            frame = cv2.cvtColor(frame, cv2.COLOR_BGRA2BGR)
        h, w = frame.shape[:2]
        if (h, w) != (options.height, options.width):
            frame = cv2.resize(frame, (options.width, options.height), interpolation=cv2.INTER_LINEAR)
        if options.channel_scheme == "rgb":
            frame = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        if options.channels == 1:
            frame = frame.mean(axis=2, keepdims=True).astype(np.uint8)
        return frame


def to_interleaved(tensor: FrameTensor) -> np.ndarray:
    """Return the tensor as a batch of HxWxC images, whatever its layout."""
    arr = tensor.as_array()
    if tensor.layout == "nchw":
        arr = np.transpose(arr, (0, 2, 3, 1))
    return arr
