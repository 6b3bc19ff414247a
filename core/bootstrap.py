"""
One-shot startup: device check, labels, model load/build, video attach, loop start.
Any failure is reported and leaves the frame loop unstarted.

prepare() does the slow part and may run on a worker thread; attach() and
source_ready() must run on the thread that owns the tick source.
"""

from __future__ import annotations

import enum
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Callable

from core.capability import CapabilityDetector
from core.capture import SourceMetadata, VideoCaptureSource
from core.config import AppSettings
from core.errors import ClassifierError, UnsupportedDevice
from core.frame_loop import FrameLoop
from core.labels import fetch_labels
from core.model_loader import get_model_path
from core.models import LabelTable
from core.reporter import BUILD_TIME, LOAD_TIME, Severity, UIReporter
from core.session import ModelSession
from core.ticker import TickSource
from core.utils import Stopwatch, format_ms
from engines import create_engine

if TYPE_CHECKING:
    from engines.base import InferenceEngine

log = logging.getLogger(__name__)


class BootState(enum.Enum):
    CREATED = "created"
    PREPARING = "preparing"
    PREPARED = "prepared"
    ATTACHING = "attaching"
    RUNNING = "running"
    FAILED = "failed"


class Bootstrapper:
    """Owns the model session and starts the frame loop once the source is ready."""

    def __init__(
        self,
        settings: AppSettings,
        reporter: UIReporter,
        ticker: TickSource,
        source: VideoCaptureSource | None = None,
        detector: CapabilityDetector | None = None,
        label_loader: Callable[[str], LabelTable] = fetch_labels,
        engine_factory: Callable[..., InferenceEngine] = create_engine,
        model_resolver: Callable[[str], Path] = get_model_path,
    ) -> None:
        self.settings = settings
        self._reporter = reporter
        self._ticker = ticker
        self.source = source if source is not None else VideoCaptureSource()
        self._detector = detector if detector is not None else CapabilityDetector()
        self._label_loader = label_loader
        self._engine_factory = engine_factory
        self._model_resolver = model_resolver
        self.state = BootState.CREATED
        self.session: ModelSession | None = None
        self.loop: FrameLoop | None = None
        self.error: Exception | None = None

    def run(self) -> FrameLoop | None:
        """Full startup on the calling thread. Returns the running loop, or None."""
        if not self.prepare():
            return None
        return self.attach()

    def prepare(self) -> bool:
        """Device check, labels, load and build. Returns False if startup failed."""
        if self.state is not BootState.CREATED:
            raise RuntimeError(f"prepare() called in state {self.state.value}")
        self.state = BootState.PREPARING
        settings = self.settings
        self._reporter.alert("Loading model...", Severity.INFO)
        self._reporter.status("Loading model...")
        try:
            device_type = settings.device.device_type
            if not self._detector.supports(settings.engine, device_type):
                raise UnsupportedDevice(
                    device_type, self._detector.available_devices(settings.engine)
                )
            labels = self._label_loader(settings.labels_url)
            engine = self._engine_factory(
                settings.engine,
                self._model_resolver(settings.model),
                settings.inputs,
                **settings.engine_options,
            )
            session = ModelSession(
                engine=engine, inputs=settings.inputs, device=settings.device, labels=labels
            )
            with Stopwatch() as sw:
                session.output_name = engine.load(settings.device)
            session.mark_loaded(sw.elapsed_ms)
            with Stopwatch() as sw:
                engine.build(session.output_name)
            session.mark_built(sw.elapsed_ms)
        except ClassifierError as e:
            self._fail(e.message, e)
            return False
        except Exception as e:  # noqa: BLE001
            log.exception("Unexpected startup error")
            self._fail(str(e), e)
            return False
        self.session = session
        self._reporter.update_field(LOAD_TIME, format_ms(session.load_ms))
        self._reporter.update_field(BUILD_TIME, format_ms(session.build_ms))
        self._reporter.alert("Model loaded successfully!", Severity.SUCCESS)
        self._reporter.status("Model ready. Processing video...")
        log.info(
            "Model %s ready on %s (load %.2f ms, build %.2f ms)",
            settings.model, device_type, session.load_ms, session.build_ms,
        )
        self.state = BootState.PREPARED
        return True

    def attach(self) -> FrameLoop | None:
        """Open the video source; the loop starts once its metadata is known."""
        if self.state is not BootState.PREPARED:
            raise RuntimeError(f"attach() called in state {self.state.value}")
        self.state = BootState.ATTACHING
        try:
            metadata = self.source.open(self.settings.video_url)
        except ClassifierError as e:
            self._fail(e.message, e)
            return None
        return self.source_ready(metadata)

    def source_ready(self, metadata: SourceMetadata) -> FrameLoop | None:
        """Metadata-ready transition: size the working surface and start the loop."""
        if self.state is not BootState.ATTACHING:
            log.warning("Ignoring source-ready event in state %s", self.state.value)
            return self.loop
        if self.session is None:
            raise RuntimeError("source_ready() called without a prepared session")
        loop = FrameLoop(
            self.session, self.source, self._reporter, self._ticker, k=self.settings.top_k
        )
        loop.set_surface_size(metadata.width, metadata.height)
        self.loop = loop
        self.state = BootState.RUNNING
        loop.start()
        return loop

    def shutdown(self) -> None:
        """Stop the loop and release the source and engine."""
        if self.loop is not None:
            self.loop.stop()
        self.source.close()
        if self.session is not None:
            self.session.engine.close()

    def _fail(self, message: str, error: Exception) -> None:
        self.state = BootState.FAILED
        self.error = error
        log.error("Startup failed: %s", message)
        self._reporter.alert(f"Error: {message}", Severity.DANGER)
        self._reporter.status(f"Error: {message}")
