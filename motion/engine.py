# ============================================================
# FILE: motion/engine.py
# ============================================================

import logging
import threading
from enum import Enum
from typing import Callable, Optional

from capture.frame_buffer import FrameBuffer
from motion.box import MotionBox, MotionBoxTracker
from motion.config import EngineConfig
from motion.difference import DifferenceComputer
from motion.errors import DimensionMismatch, EngineStateError, FrameUnavailable, MotionError

logger = logging.getLogger(__name__)


class EngineState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


class CycleStatus(Enum):
    PRIMED = "primed"        # first frame stored, nothing to compare yet
    COMPLETED = "completed"
    SKIPPED = "skipped"      # frame unavailable, previous frame kept
    FAILED = "failed"        # dimension mismatch, previous frame kept
    STOPPED = "stopped"


class CycleOutcome:
    def __init__(self, status: CycleStatus, score: Optional[int] = None,
                 diff_buffer: Optional[FrameBuffer] = None, box: Optional[MotionBox] = None,
                 frame: Optional[FrameBuffer] = None, error: Optional[MotionError] = None):
        self.status = status
        self.score = score
        self.diff_buffer = diff_buffer
        self.box = box
        self.frame = frame
        self.error = error

    @property
    def has_motion(self) -> bool:
        return bool(self.score)

    def __repr__(self):
        return f"CycleOutcome(status={self.status.value}, score={self.score}, box={self.box})"


class MotionEngine:
    """
    Runs capture-diff-score-emit cycles against an attached frame source.

    The engine owns the previous frame and the box tracker. Cycles and stop()
    are serialized on a re-entrant lock, so a stop() issued from a sink during
    a cycle takes effect before the frame rotation.
    """

    def __init__(self, config: EngineConfig,
                 score_sink: Optional[Callable[[int], None]] = None,
                 diff_sink: Optional[Callable[[FrameBuffer], None]] = None,
                 box_sink: Optional[Callable[[Optional[MotionBox]], None]] = None,
                 error_sink: Optional[Callable[[MotionError], None]] = None,
                 computer: Optional[DifferenceComputer] = None):
        self.config = config
        self.score_sink = score_sink
        self.diff_sink = diff_sink
        self.box_sink = box_sink
        self.error_sink = error_sink
        self.computer = computer or DifferenceComputer.from_engine_config(config)

        self.tracker = MotionBoxTracker(config.width)
        self.frame_source = None
        self.previous_frame: Optional[FrameBuffer] = None
        self.has_previous = False
        self.cycle_count = 0

        self._state = EngineState.IDLE
        self._lock = threading.RLock()

    @property
    def state(self) -> EngineState:
        return self._state

    def start(self, frame_source):
        with self._lock:
            if self._state is not EngineState.IDLE:
                raise EngineStateError(
                    f"Cannot start engine in state {self._state.value}; create a new engine"
                )
            self.frame_source = frame_source
            self._state = EngineState.RUNNING
        logger.info(f"Motion engine started: {self.config}")

    def stop(self):
        with self._lock:
            if self._state is EngineState.STOPPED:
                return
            self._state = EngineState.STOPPED
            self.frame_source = None
            self.previous_frame = None
            self.has_previous = False
            self.tracker.reset()
        logger.info(f"Motion engine stopped after {self.cycle_count} cycles")

    def run_cycle(self) -> CycleOutcome:
        with self._lock:
            if self._state is EngineState.IDLE:
                raise EngineStateError("Engine has no frame source; call start() first")
            if self._state is EngineState.STOPPED:
                return CycleOutcome(CycleStatus.STOPPED)

            try:
                current = self._acquire_frame()
                self._check_dimensions(current)
            except FrameUnavailable as e:
                logger.warning(f"Skipping cycle: {e}")
                return self._report(CycleOutcome(CycleStatus.SKIPPED, error=e))
            except DimensionMismatch as e:
                logger.error(f"Cycle failed: {e}")
                return self._report(CycleOutcome(CycleStatus.FAILED, error=e))

            if not self.has_previous:
                self._rotate(current)
                logger.debug("First frame stored")
                return CycleOutcome(CycleStatus.PRIMED, frame=current)

            outcome = self._difference(current)
            self._emit(outcome)
            self.tracker.reset()

            if self._state is EngineState.RUNNING:
                self._rotate(current)
                self.cycle_count += 1
            return outcome

    def _acquire_frame(self) -> FrameBuffer:
        try:
            frame = self.frame_source.read()
        except FrameUnavailable:
            raise
        except Exception as e:
            raise FrameUnavailable(f"Frame source error: {e}") from e

        if frame is None:
            raise FrameUnavailable("Frame source returned no frame")
        if not isinstance(frame, FrameBuffer):
            raise FrameUnavailable(f"Frame source returned {type(frame).__name__}, not a FrameBuffer")
        return frame

    def _check_dimensions(self, frame: FrameBuffer):
        if frame.size != self.config.size:
            raise DimensionMismatch(self.config.size, frame.size)

    def _difference(self, current: FrameBuffer) -> CycleOutcome:
        result = self.computer.compute(self.previous_frame, current, self.config.sensitivity)

        self.tracker.reset()
        self.tracker.observe_indices(result.indices)
        box = self.tracker.current() if result.score > 0 else MotionBox.empty(self.config.width)

        logger.debug(f"Cycle score={result.score} box={box}")
        return CycleOutcome(CycleStatus.COMPLETED, score=result.score,
                            diff_buffer=result.diff_buffer, box=box, frame=current)

    def _emit(self, outcome: CycleOutcome):
        self._call_sink(self.score_sink, outcome.score)
        self._call_sink(self.diff_sink, outcome.diff_buffer)
        if self.config.emit_box:
            self._call_sink(self.box_sink, None if outcome.box.is_empty else outcome.box)

    def _report(self, outcome: CycleOutcome) -> CycleOutcome:
        self._call_sink(self.error_sink, outcome.error)
        return outcome

    def _call_sink(self, sink, value):
        if sink is None:
            return
        try:
            sink(value)
        except Exception:
            logger.exception(f"Sink {getattr(sink, '__name__', sink)!r} failed")

    def _rotate(self, current: FrameBuffer):
        self.previous_frame = current
        self.has_previous = True
