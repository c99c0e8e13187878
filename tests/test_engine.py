import threading

import pytest

from capture.frame_buffer import FrameBuffer
from motion.box import MotionBox
from motion.config import EngineConfig
from motion.engine import CycleStatus, EngineState, MotionEngine
from motion.errors import DimensionMismatch, EngineStateError, FrameUnavailable
from tests.conftest import ScriptedSource, make_frame


def test_first_cycle_primes_without_emitting(engine_factory, sinks, small_config):
    engine, _ = engine_factory(small_config, [make_frame(4, 3)])
    assert not engine.has_previous

    outcome = engine.run_cycle()

    assert outcome.status is CycleStatus.PRIMED
    assert outcome.score is None
    assert engine.has_previous
    assert sinks.scores == [] and sinks.diffs == [] and sinks.boxes == []


def test_unchanged_frame_yields_zero_score_and_empty_box(engine_factory, sinks, small_config):
    frame = make_frame(4, 3, value=80)
    engine, _ = engine_factory(small_config, [frame, frame])

    engine.run_cycle()
    outcome = engine.run_cycle()

    assert outcome.status is CycleStatus.COMPLETED
    assert outcome.score == 0
    assert outcome.box == MotionBox.empty(4)
    assert sinks.scores == [0]
    assert sinks.boxes == [None]
    assert not sinks.diffs[0].pixels[..., :3].any()


def test_single_pixel_scenario(engine_factory, sinks):
    config = EngineConfig(width=4, height=1, sensitivity=10)
    black = (0, 0, 0, 255)
    previous = FrameBuffer.from_pixels(4, 1, [black] * 4)
    current = FrameBuffer.from_pixels(4, 1, [(30, 30, 30, 255)] + [black] * 3)
    engine, _ = engine_factory(config, [previous, current])

    engine.run_cycle()
    outcome = engine.run_cycle()

    assert outcome.score == 1
    assert outcome.box == MotionBox(x_min=0, x_max=0, y_min=0, y_max=0)
    assert sinks.boxes == [MotionBox(0, 0, 0, 0)]
    assert outcome.diff_buffer.pixel(0)[:3] == (255, 255, 255)
    assert all(outcome.diff_buffer.pixel(i)[:3] == (0, 0, 0) for i in range(1, 4))


def test_box_bounds_all_changed_pixels(engine_factory, small_config):
    base = make_frame(4, 3)
    moved = make_frame(4, 3, changes={1: (99, 99, 99), 6: (99, 99, 99), 9: (99, 99, 99)})
    engine, _ = engine_factory(small_config, [base, moved])

    engine.run_cycle()
    outcome = engine.run_cycle()

    # indices 1, 6, 9 -> (1, 0), (2, 1), (1, 2)
    assert outcome.score == 3
    assert outcome.box == MotionBox(x_min=1, x_max=2, y_min=0, y_max=2)


def test_no_stale_box_after_motion(engine_factory, small_config):
    base = make_frame(4, 3)
    moved = make_frame(4, 3, changes={11: (200, 200, 200)})
    engine, _ = engine_factory(small_config, [base, moved, moved])

    engine.run_cycle()
    assert engine.run_cycle().box == MotionBox(3, 3, 2, 2)
    outcome = engine.run_cycle()

    assert outcome.score == 0
    assert outcome.box.is_empty


def test_tracker_is_reset_after_emission(engine_factory, small_config):
    base = make_frame(4, 3)
    moved = make_frame(4, 3, changes={5: (200, 200, 200)})
    engine, _ = engine_factory(small_config, [base, moved])

    engine.run_cycle()
    outcome = engine.run_cycle()

    assert not outcome.box.is_empty
    assert engine.tracker.current() == MotionBox.empty(4)


def test_previous_frame_is_last_captured(engine_factory, small_config):
    a = make_frame(4, 3)
    b = make_frame(4, 3, changes={0: (100, 100, 100)})
    c = make_frame(4, 3, changes={0: (100, 100, 100), 1: (100, 100, 100)})
    engine, _ = engine_factory(small_config, [a, b, c])

    engine.run_cycle()
    engine.run_cycle()
    assert engine.previous_frame is b
    outcome = engine.run_cycle()

    # c compared with b, not with a
    assert outcome.score == 1
    assert engine.previous_frame is c
    assert engine.cycle_count == 2


def test_box_not_emitted_when_disabled(engine_factory, sinks):
    config = EngineConfig(width=4, height=3, sensitivity=10, emit_box=False)
    engine, _ = engine_factory(config, [make_frame(4, 3), make_frame(4, 3, changes={2: (90, 90, 90)})])

    engine.run_cycle()
    outcome = engine.run_cycle()

    assert outcome.box == MotionBox(2, 2, 0, 0)
    assert sinks.boxes == []
    assert sinks.scores == [1]


@pytest.mark.parametrize("failure", [None, FrameUnavailable("device gone"), OSError("io")])
def test_unavailable_frame_skips_and_keeps_previous(engine_factory, sinks, small_config, failure):
    first = make_frame(4, 3)
    engine, _ = engine_factory(small_config, [first, failure, make_frame(4, 3, changes={0: (90, 90, 90)})])

    engine.run_cycle()
    skipped = engine.run_cycle()

    assert skipped.status is CycleStatus.SKIPPED
    assert isinstance(skipped.error, FrameUnavailable)
    assert engine.previous_frame is first
    assert sinks.errors == [skipped.error]

    outcome = engine.run_cycle()
    assert outcome.status is CycleStatus.COMPLETED
    assert outcome.score == 1


def test_unavailable_first_frame_leaves_engine_unprimed(engine_factory, small_config):
    engine, _ = engine_factory(small_config, [None, make_frame(4, 3)])

    assert engine.run_cycle().status is CycleStatus.SKIPPED
    assert not engine.has_previous
    assert engine.run_cycle().status is CycleStatus.PRIMED


def test_dimension_mismatch_fails_cycle_only(engine_factory, sinks, small_config):
    first = make_frame(4, 3)
    engine, _ = engine_factory(small_config, [first, make_frame(3, 4), make_frame(4, 3)])

    engine.run_cycle()
    failed = engine.run_cycle()

    assert failed.status is CycleStatus.FAILED
    assert isinstance(failed.error, DimensionMismatch)
    assert sinks.errors == [failed.error]
    assert engine.previous_frame is first
    assert engine.run_cycle().status is CycleStatus.COMPLETED


def test_dimension_mismatch_on_first_frame(engine_factory, small_config):
    engine, _ = engine_factory(small_config, [make_frame(8, 8)])

    outcome = engine.run_cycle()

    assert outcome.status is CycleStatus.FAILED
    assert not engine.has_previous


def test_failing_sink_does_not_break_cycle(small_config):
    def broken(_):
        raise RuntimeError("display gone")

    engine = MotionEngine(small_config, score_sink=broken)
    engine.start(ScriptedSource([make_frame(4, 3), make_frame(4, 3)]))

    engine.run_cycle()
    outcome = engine.run_cycle()

    assert outcome.status is CycleStatus.COMPLETED
    assert engine.cycle_count == 1


def test_state_machine_transitions(small_config):
    engine = MotionEngine(small_config)
    assert engine.state is EngineState.IDLE

    with pytest.raises(EngineStateError):
        engine.run_cycle()

    engine.start(ScriptedSource([]))
    assert engine.state is EngineState.RUNNING
    with pytest.raises(EngineStateError):
        engine.start(ScriptedSource([]))

    engine.stop()
    assert engine.state is EngineState.STOPPED
    with pytest.raises(EngineStateError):
        engine.start(ScriptedSource([]))


def test_stop_from_idle(small_config):
    engine = MotionEngine(small_config)
    engine.stop()

    assert engine.state is EngineState.STOPPED
    assert engine.run_cycle().status is CycleStatus.STOPPED


def test_no_state_mutation_after_stop(engine_factory, sinks, small_config):
    engine, source = engine_factory(
        small_config, [make_frame(4, 3), make_frame(4, 3, changes={1: (80, 80, 80)}), make_frame(4, 3)]
    )
    engine.run_cycle()
    engine.run_cycle()

    engine.stop()
    reads = source.reads
    outcome = engine.run_cycle()

    assert outcome.status is CycleStatus.STOPPED
    assert source.reads == reads
    assert engine.previous_frame is None
    assert not engine.has_previous
    assert engine.cycle_count == 1
    assert sinks.scores == [1]


def test_stop_from_sink_discards_rotation(small_config):
    engine = MotionEngine(small_config, score_sink=lambda score: engine.stop())
    engine.start(ScriptedSource([make_frame(4, 3), make_frame(4, 3)]))

    engine.run_cycle()
    outcome = engine.run_cycle()

    assert outcome.status is CycleStatus.COMPLETED
    assert engine.state is EngineState.STOPPED
    assert engine.previous_frame is None
    assert engine.cycle_count == 0


def test_stop_waits_for_in_flight_cycle(small_config):
    entered = threading.Event()
    release = threading.Event()

    class SlowSource:
        def read(self):
            entered.set()
            release.wait(5)
            return make_frame(4, 3)

    engine = MotionEngine(small_config)
    engine.start(SlowSource())
    worker = threading.Thread(target=engine.run_cycle)
    worker.start()
    assert entered.wait(5)

    stopper = threading.Thread(target=engine.stop)
    stopper.start()
    release.set()
    worker.join(5)
    stopper.join(5)

    assert engine.state is EngineState.STOPPED
    assert engine.previous_frame is None


def test_source_returning_raw_array_is_unavailable(small_config):
    class RawSource:
        def read(self):
            return make_frame(4, 3).pixels

    engine = MotionEngine(small_config)
    engine.start(RawSource())

    outcome = engine.run_cycle()

    assert outcome.status is CycleStatus.SKIPPED
    assert isinstance(outcome.error, FrameUnavailable)


def test_box_on_frame_taller_than_wide(engine_factory, sinks):
    config = EngineConfig(width=2, height=10, sensitivity=10)
    base = make_frame(2, 10)
    moved = make_frame(2, 10, changes={15: (60, 60, 60)})
    engine, _ = engine_factory(config, [base, moved])

    engine.run_cycle()
    outcome = engine.run_cycle()

    assert outcome.score == 1
    assert outcome.box == MotionBox(x_min=1, x_max=1, y_min=7, y_max=7)
    assert sinks.boxes == [MotionBox(1, 1, 7, 7)]
