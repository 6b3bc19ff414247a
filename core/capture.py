"""
Video source: camera index, video file or stream URL, read through OpenCV.
File and URL sources play on a wall-clock timeline so a fast tick rate does not
speed up playback; reaching the end pauses the source.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

import cv2
import numpy as np

from core.errors import SourceUnavailable

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class SourceMetadata:
    width: int
    height: int
    fps: float
    is_live: bool


class PlaybackClock:
    """Media time in seconds; stops advancing while paused."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._started: float | None = None
        self._paused_at: float | None = None
        self._paused_total = 0.0

    def start(self) -> None:
        self._started = self._clock()
        self._paused_at = None
        self._paused_total = 0.0

    def pause(self) -> None:
        if self._paused_at is None:
            self._paused_at = self._clock()

    def resume(self) -> None:
        if self._paused_at is not None:
            self._paused_total += self._clock() - self._paused_at
            self._paused_at = None

    @property
    def position(self) -> float:
        if self._started is None:
            return 0.0
        now = self._paused_at if self._paused_at is not None else self._clock()
        return max(0.0, now - self._started - self._paused_total)


class VideoCaptureSource:
    """Unified source for webcam (by index), video file or URL."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._cap: cv2.VideoCapture | None = None
        self._source: str | int | None = None
        self._metadata: SourceMetadata | None = None
        self._playback = PlaybackClock(clock)
        self._frames_read = 0
        self._last_frame: np.ndarray | None = None
        self._paused = False
        self._ended = False

    def open(self, source: str | int | Path) -> SourceMetadata:
        """Open a source and return its native metadata. Raises SourceUnavailable."""
        self.close()
        if isinstance(source, str) and source.isdigit():
            source = int(source)
        if isinstance(source, Path):
            source = str(source)
        cap = cv2.VideoCapture(source)
        if not cap.isOpened():
            cap.release()
            raise SourceUnavailable(f"Could not open video source: {source}")
        width = int(cap.get(cv2.CAP_PROP_FRAME_WIDTH))
        height = int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
        fps = cap.get(cv2.CAP_PROP_FPS)
        self._cap = cap
        self._source = source
        self._metadata = SourceMetadata(
            width=width,
            height=height,
            fps=fps if fps > 0 else 30.0,
            is_live=isinstance(source, int),
        )
        self._playback.start()
        log.info("Opened %s (%dx%d @ %.1f fps)", source, width, height, self._metadata.fps)
        return self._metadata

    def close(self) -> None:
        """Release the current source."""
        if self._cap is not None:
            self._cap.release()
            self._cap = None
        self._source = None
        self._metadata = None
        self._frames_read = 0
        self._last_frame = None
        self._paused = False
        self._ended = False

    def is_opened(self) -> bool:
        return self._cap is not None and self._cap.isOpened()

    @property
    def metadata(self) -> SourceMetadata | None:
        return self._metadata

    @property
    def paused(self) -> bool:
        return self._paused

    @property
    def ended(self) -> bool:
        return self._ended

    def is_playable(self) -> bool:
        """Opened, metadata known and not paused."""
        return self.is_opened() and self._metadata is not None and not self._paused

    def pause(self) -> None:
        self._paused = True
        self._playback.pause()

    def resume(self) -> None:
        """Resume playback; an ended file restarts from the beginning."""
        if self._ended and self._cap is not None:
            self._cap.set(cv2.CAP_PROP_POS_FRAMES, 0)
            self._frames_read = 0
            self._ended = False
            self._playback.start()
        self._paused = False
        self._playback.resume()

    def current_frame(self) -> np.ndarray | None:
        """Frame at the current playback position, or None if nothing decoded yet."""
        if self._cap is None or self._metadata is None:
            return None
        if self._metadata.is_live:
            ok, frame = self._cap.read()
            if ok and frame is not None:
                self._last_frame = frame
            return self._last_frame
        target = int(self._playback.position * self._metadata.fps)
        # Skip frames that fell behind the clock, decode only the one we show
        while self._frames_read < target:
            if not self._cap.grab():
                self._on_end()
                return self._last_frame
            self._frames_read += 1
        if self._frames_read == target:
            ok, frame = self._cap.read()
            if not ok or frame is None:
                self._on_end()
                return self._last_frame
            self._frames_read += 1
            self._last_frame = frame
        return self._last_frame

    def draw(self, surface: np.ndarray | None) -> np.ndarray | None:
        """Copy the current frame into the working surface, scaling if sizes differ."""
        frame = self.current_frame()
        if frame is None:
            return None
        if surface is None or surface.size == 0:
            return frame.copy()
        h, w = surface.shape[:2]
        if frame.shape[:2] == (h, w) and frame.shape == surface.shape:
            np.copyto(surface, frame)
        else:
            surface[...] = cv2.resize(frame, (w, h)).reshape(surface.shape)
        return surface

    def _on_end(self) -> None:
        if not self._ended:
            log.info("End of stream reached; pausing source")
        self._ended = True
        self.pause()

    def get_fps(self) -> float:
        return self._metadata.fps if self._metadata is not None else 30.0

    def get_size(self) -> tuple[int, int]:
        """(width, height) of the stream."""
        if self._metadata is None:
            return 0, 0
        return self._metadata.width, self._metadata.height

    @property
    def source(self) -> str | int | None:
        return self._source
