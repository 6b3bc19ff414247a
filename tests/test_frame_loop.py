import numpy as np
import pytest

from conftest import FakeEngine, FakeSource
from core.errors import SourceNotReady
from core.frame_loop import FrameLoop
from core.reporter import COMPUTE_TIME
from core.session import ProcessingState
from core.tensor import TensorExtractor


class SpyExtractor(TensorExtractor):
    def __init__(self):
        self.calls = 0
        self.errors = []

    def extract(self, frame, options):
        self.calls += 1
        try:
            return super().extract(frame, options)
        except SourceNotReady as e:
            self.errors.append(e)
            raise


def _loop(make_session, reporter, ticker, engine=None, source=None, extractor=None):
    session = make_session(engine)
    source = source if source is not None else FakeSource()
    loop = FrameLoop(session, source, reporter, ticker, extractor=extractor)
    return loop, session.engine, source


def test_cycle_reports_top3(make_session, reporter, ticker):
    loop, engine, _ = _loop(make_session, reporter, ticker)
    loop.start()
    ticker.fire()
    assert engine.compute_calls == 1
    assert reporter.fields["label0"] == "dog"
    assert reporter.fields["prob0"] == "70.00%"
    assert reporter.fields["label1"] == "bird"
    assert reporter.fields["label2"] == "cat"
    assert reporter.fields[COMPUTE_TIME].endswith(" ms")
    assert reporter.frames == 1
    assert [e.label for e in loop.last_ranking] == ["dog", "bird", "cat"]


def test_idle_before_and_after_cycles(make_session, reporter, ticker):
    loop, engine, _ = _loop(make_session, reporter, ticker, engine=FakeEngine(fail_on={2}))
    states = []
    engine.on_compute = lambda: states.append(loop.state)
    loop.start()
    for _ in range(3):
        assert loop.state is ProcessingState.IDLE
        ticker.fire()
        assert loop.state is ProcessingState.IDLE
    assert states == [ProcessingState.BUSY] * 3
    assert loop.stats.cycles == 2
    assert loop.stats.failures == 1


def test_failure_does_not_stop_the_loop(make_session, reporter, ticker):
    loop, engine, _ = _loop(make_session, reporter, ticker, engine=FakeEngine(fail_on={1, 2, 3}))
    loop.start()
    assert ticker.run(5) == 5
    assert engine.compute_calls == 5
    assert loop.stats.failures == 3
    assert loop.stats.cycles == 2
    assert ticker.pending == 1


def test_unexpected_exception_is_recovered(make_session, reporter, ticker):
    engine = FakeEngine()

    def boom():
        raise KeyError("bad output")

    engine.on_compute = boom
    loop, _, _ = _loop(make_session, reporter, ticker, engine=engine)
    loop.start()
    ticker.run(2)
    assert loop.state is ProcessingState.IDLE
    assert loop.stats.failures == 2
    assert ticker.pending == 1


def test_paused_source_skips_inference_but_keeps_ticking(make_session, reporter, ticker):
    source = FakeSource(paused=True)
    loop, engine, _ = _loop(make_session, reporter, ticker, source=source)
    loop.start()
    n = 10
    assert ticker.run(n) == n
    assert engine.compute_calls == 0
    assert source.draw_calls == 0
    assert ticker.scheduled == n + 1
    assert loop.stats.skipped_paused == n


def test_resume_after_pause(make_session, reporter, ticker):
    source = FakeSource(paused=True)
    loop, engine, _ = _loop(make_session, reporter, ticker, source=source)
    loop.start()
    ticker.run(3)
    source.paused = False
    ticker.run(2)
    assert engine.compute_calls == 2


@pytest.mark.parametrize("frame", [np.zeros((0, 0, 3), np.uint8), None])
def test_not_ready_source_skips_compute(make_session, reporter, ticker, frame):
    source = FakeSource()
    source.frame = frame
    extractor = SpyExtractor()
    loop, engine, _ = _loop(make_session, reporter, ticker, source=source, extractor=extractor)
    loop.start()
    ticker.fire()
    assert extractor.calls == 1
    assert len(extractor.errors) == 1
    assert engine.compute_calls == 0
    assert loop.state is ProcessingState.IDLE
    assert loop.stats.not_ready == 1
    assert ticker.pending == 1


def test_tick_while_busy_is_skipped(make_session, reporter, ticker):
    engine = FakeEngine()
    # A tick delivered while compute is running (nested event processing)
    engine.on_compute = lambda: ticker.fire() if engine.compute_calls == 1 else None
    loop, _, _ = _loop(make_session, reporter, ticker, engine=engine)
    loop.start()
    ticker.fire()
    assert engine.compute_calls == 1
    assert loop.stats.skipped_busy == 1
    assert loop.state is ProcessingState.IDLE
    assert ticker.pending == 1
    ticker.fire()
    assert engine.compute_calls == 2


def test_reporter_errors_do_not_affect_loop(make_session, ticker):
    class BrokenReporter:
        def status(self, text):
            pass

        def alert(self, message, severity):
            pass

        def update_field(self, name, value):
            raise RuntimeError("widget gone")

        def show_frame(self, frame):
            pass

    loop, engine, _ = _loop(make_session, BrokenReporter(), ticker)
    loop.start()
    ticker.run(3)
    assert engine.compute_calls == 3
    assert loop.stats.cycles == 3
    assert loop.stats.failures == 0


def test_fewer_scores_than_slots_clears_remaining(make_session, reporter, ticker):
    loop, _, _ = _loop(make_session, reporter, ticker, engine=FakeEngine(scores=[0.4, 0.6]))
    loop.start()
    ticker.fire()
    assert reporter.fields["label0"] == "dog"
    assert reporter.fields["label1"] == "cat"
    assert reporter.fields["label2"] == ""
    assert reporter.fields["prob2"] == ""


def test_stop_cancels_ticks(make_session, reporter, ticker):
    loop, engine, _ = _loop(make_session, reporter, ticker)
    loop.start()
    ticker.run(2)
    loop.stop()
    assert ticker.run(5) == 0
    assert engine.compute_calls == 2
    assert not loop.running


def test_start_twice_schedules_once(make_session, reporter, ticker):
    loop, _, _ = _loop(make_session, reporter, ticker)
    loop.start()
    loop.start()
    assert ticker.pending == 1


def test_surface_sizing(make_session, reporter, ticker):
    loop, _, _ = _loop(make_session, reporter, ticker)
    loop.set_surface_size(640, 360)
    assert loop.surface.shape == (360, 640, 3)
    loop.set_surface_size(0, 0)
    assert loop.surface is None
