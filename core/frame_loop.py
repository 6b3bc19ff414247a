"""
Frame loop: on every tick, draw the current frame, run the network and report
the top predictions. At most one cycle is in flight; a tick that arrives while
busy or while the source is paused is skipped, but the next tick is always
scheduled so the loop keeps running until stop().
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np

from core.errors import InferenceFailure, SourceNotReady
from core.capture import VideoCaptureSource
from core.models import Ranking
from core.ranking import format_probability, top_k
from core.reporter import COMPUTE_TIME, FPS, UIReporter, label_field, prob_field
from core.session import ModelSession, ProcessingState
from core.tensor import TensorExtractor
from core.ticker import TickSource
from core.utils import FPSCounter, RollingAverage, Stopwatch, format_ms

log = logging.getLogger(__name__)

DISPLAY_SLOTS = 3


@dataclass
class LoopStats:
    ticks: int = 0
    cycles: int = 0
    skipped_busy: int = 0
    skipped_paused: int = 0
    not_ready: int = 0
    failures: int = 0


class FrameLoop:
    """Single-flight classify loop driven by a TickSource."""

    def __init__(
        self,
        session: ModelSession,
        source: VideoCaptureSource,
        reporter: UIReporter,
        ticker: TickSource,
        extractor: TensorExtractor | None = None,
        k: int = 3,
    ) -> None:
        self._session = session
        self._source = source
        self._reporter = reporter
        self._ticker = ticker
        self._extractor = extractor if extractor is not None else TensorExtractor()
        self._k = k
        self._surface: np.ndarray | None = None
        self._running = False
        self.state = ProcessingState.IDLE
        self.stats = LoopStats()
        self.last_ranking: Ranking = []
        self._compute_ms = RollingAverage()
        self._fps = FPSCounter()

    @property
    def running(self) -> bool:
        return self._running

    @property
    def surface(self) -> np.ndarray | None:
        return self._surface

    @property
    def average_compute_ms(self) -> float:
        return self._compute_ms.average

    def set_surface_size(self, width: int, height: int) -> None:
        """Allocate the working surface at the source's native size."""
        if width > 0 and height > 0:
            self._surface = np.zeros((height, width, 3), dtype=np.uint8)
        else:
            self._surface = None

    def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._fps.reset()
        self._ticker.on_tick(self._on_tick)
        log.info("Frame loop started")

    def stop(self) -> None:
        """Stop ticking. A cycle in progress finishes normally."""
        if not self._running:
            return
        self._running = False
        self._ticker.cancel()
        log.info("Frame loop stopped after %d ticks, %d cycles", self.stats.ticks, self.stats.cycles)

    def _on_tick(self) -> None:
        if not self._running:
            return
        self.stats.ticks += 1
        # Next tick is scheduled unconditionally
        self._ticker.on_tick(self._on_tick)
        if self.state is ProcessingState.BUSY:
            self.stats.skipped_busy += 1
            return
        if not self._source.is_playable():
            self.stats.skipped_paused += 1
            return
        self.run_cycle()

    def run_cycle(self) -> bool:
        """Draw, extract, compute, rank and report once. Returns True on success."""
        self.state = ProcessingState.BUSY
        try:
            frame = self._source.draw(self._surface)
            tensor = self._extractor.extract(frame, self._session.inputs)
            with Stopwatch() as sw:
                outputs = self._session.engine.compute(tensor)
            scores = self._select_output(outputs)
            ranking = top_k(scores, self._session.labels, self._k)
            self.last_ranking = ranking
            self.stats.cycles += 1
            self._compute_ms.add(sw.elapsed_ms)
            self._fps.tick()
            self._report(frame, ranking, sw.elapsed_ms)
            return True
        except SourceNotReady as e:
            self.stats.not_ready += 1
            log.debug("Skipping frame: %s", e.message)
        except InferenceFailure as e:
            self.stats.failures += 1
            log.warning("Inference failed: %s", e.message)
        except Exception:  # noqa: BLE001
            self.stats.failures += 1
            log.exception("Unexpected error in frame cycle")
        finally:
            self.state = ProcessingState.IDLE
        return False

    def _select_output(self, outputs: dict[str, np.ndarray]) -> np.ndarray:
        if not outputs:
            raise InferenceFailure("Engine returned no outputs")
        name = self._session.output_name
        if name is not None and name in outputs:
            return outputs[name]
        return next(iter(outputs.values()))

    def _report(self, frame: np.ndarray | None, ranking: Ranking, compute_ms: float) -> None:
        try:
            if frame is not None:
                self._reporter.show_frame(frame)
            self._reporter.update_field(COMPUTE_TIME, format_ms(compute_ms))
            self._reporter.update_field(FPS, f"{self._fps.fps:.1f}")
            for i in range(DISPLAY_SLOTS):
                if i < len(ranking):
                    entry = ranking[i]
                    self._reporter.update_field(label_field(i), entry.label)
                    self._reporter.update_field(prob_field(i), format_probability(entry.probability))
                else:
                    self._reporter.update_field(label_field(i), "")
                    self._reporter.update_field(prob_field(i), "")
        except Exception:  # noqa: BLE001
            log.exception("Reporter failed; continuing")
