import pytest

from conftest import FakeDetector, FakeEngine, FakeSource
from core.bootstrap import Bootstrapper, BootState
from core.capture import SourceMetadata
from core.errors import BuildFailure, LabelLoadFailure, SourceUnavailable, UnsupportedDevice
from core.labels import fetch_labels
from core.reporter import BUILD_TIME, LOAD_TIME, Severity


def _bootstrapper(settings, reporter, ticker, **kwargs):
    engine = kwargs.pop("engine", FakeEngine())
    kwargs.setdefault("source", FakeSource(width=8, height=6))
    kwargs.setdefault("detector", FakeDetector())
    kwargs.setdefault("label_loader", lambda url: ("cat", "dog", "fish", "bird"))
    kwargs.setdefault("engine_factory", lambda engine_id, path, inputs, **opts: engine)
    kwargs.setdefault("model_resolver", lambda name: name)
    return Bootstrapper(settings, reporter, ticker, **kwargs), engine


def test_successful_startup_starts_loop(settings, reporter, ticker):
    boot, engine = _bootstrapper(settings, reporter, ticker)
    loop = boot.run()
    assert loop is not None and loop.running
    assert boot.state is BootState.RUNNING
    assert engine.loaded_with == settings.device
    assert engine.built_with == "output"
    assert boot.source.opened_with == "video.mp4"
    assert loop.surface.shape == (6, 8, 3)
    assert boot.session.labels == ("cat", "dog", "fish", "bird")
    assert boot.session.is_ready
    assert reporter.fields[LOAD_TIME].endswith(" ms")
    assert reporter.fields[BUILD_TIME].endswith(" ms")
    assert reporter.alerts[0] == ("Loading model...", Severity.INFO)
    assert reporter.alerts[-1] == ("Model loaded successfully!", Severity.SUCCESS)
    assert reporter.statuses[-1] == "Model ready. Processing video..."
    ticker.fire()
    assert engine.compute_calls == 1
    assert reporter.fields["label0"] == "dog"


def test_unreachable_labels_never_start_loop(settings, reporter, ticker):
    boot, engine = _bootstrapper(
        settings, reporter, ticker, label_loader=lambda url: fetch_labels("/nonexistent/labels.txt")
    )
    assert boot.run() is None
    assert boot.state is BootState.FAILED
    assert isinstance(boot.error, LabelLoadFailure)
    assert boot.loop is None
    assert ticker.scheduled == 0
    assert engine.compute_calls == 0
    message, severity = reporter.alerts[-1]
    assert severity is Severity.DANGER
    assert message.startswith("Error: Failed to load labels")
    assert reporter.statuses[-1].startswith("Error:")


def test_unsupported_device_stops_before_labels(settings, reporter, ticker):
    loaded = []
    boot, engine = _bootstrapper(
        settings,
        reporter,
        ticker,
        detector=FakeDetector(devices=[]),
        label_loader=lambda url: loaded.append(url) or ("a",),
    )
    assert boot.run() is None
    assert isinstance(boot.error, UnsupportedDevice)
    assert loaded == []
    assert engine.loaded_with is None
    assert "cpu" in reporter.statuses[-1]


def test_build_failure_is_terminal(settings, reporter, ticker):
    class BadBuild(FakeEngine):
        def build(self, output_name):
            raise BuildFailure("shape mismatch")

    boot, engine = _bootstrapper(settings, reporter, ticker, engine=BadBuild())
    assert boot.run() is None
    assert isinstance(boot.error, BuildFailure)
    assert reporter.alerts[-1] == ("Error: shape mismatch", Severity.DANGER)
    assert ticker.scheduled == 0


def test_unexpected_error_is_reported(settings, reporter, ticker):
    def factory(*args, **kwargs):
        raise ValueError("Unknown engine: foo")

    boot, _ = _bootstrapper(settings, reporter, ticker, engine_factory=factory)
    assert boot.run() is None
    assert boot.state is BootState.FAILED
    assert reporter.alerts[-1] == ("Error: Unknown engine: foo", Severity.DANGER)


def test_source_unavailable_is_terminal(settings, reporter, ticker):
    class ClosedSource(FakeSource):
        def open(self, source):
            raise SourceUnavailable(f"Could not open video source: {source}")

    boot, _ = _bootstrapper(settings, reporter, ticker, source=ClosedSource())
    assert boot.run() is None
    assert boot.state is BootState.FAILED
    assert boot.loop is None
    assert ticker.scheduled == 0


def test_prepare_then_attach(settings, reporter, ticker):
    boot, _ = _bootstrapper(settings, reporter, ticker)
    assert boot.prepare()
    assert boot.state is BootState.PREPARED
    assert ticker.scheduled == 0
    loop = boot.attach()
    assert loop.running
    with pytest.raises(RuntimeError):
        boot.prepare()


def test_duplicate_source_ready_keeps_single_loop(settings, reporter, ticker):
    boot, _ = _bootstrapper(settings, reporter, ticker)
    loop = boot.run()
    again = boot.source_ready(SourceMetadata(8, 6, 30.0, False))
    assert again is loop
    assert ticker.pending == 1


def test_shutdown_releases_everything(settings, reporter, ticker):
    boot, engine = _bootstrapper(settings, reporter, ticker)
    loop = boot.run()
    boot.shutdown()
    assert not loop.running
    assert boot.source.closed
    assert engine.closed
    assert ticker.pending == 0


def test_source_ready_without_session_raises(settings, reporter, ticker):
    boot, _ = _bootstrapper(settings, reporter, ticker)
    boot.state = BootState.ATTACHING
    with pytest.raises(RuntimeError):
        boot.source_ready(SourceMetadata(8, 6, 30.0, False))
    assert boot.loop is None
