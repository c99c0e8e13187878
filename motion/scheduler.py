# ============================================================
# FILE: motion/scheduler.py
# ============================================================

import logging
import threading
import time
from typing import Callable, Optional

from motion.engine import CycleOutcome, CycleStatus, MotionEngine
from motion.errors import EngineStateError

logger = logging.getLogger(__name__)


class CycleScheduler:
    """Triggers engine cycles every interval_ms on a single worker thread.

    Cycles never overlap: a cycle that overruns the interval delays the next
    one. stop() prevents any further cycle from starting.
    """

    def __init__(self, engine: MotionEngine, interval_ms: int,
                 on_outcome: Optional[Callable[[CycleOutcome], None]] = None):
        if interval_ms <= 0:
            raise ValueError(f"interval_ms must be positive, got {interval_ms}")
        self.engine = engine
        self.interval = interval_ms / 1000.0
        self.on_outcome = on_outcome
        self._stop_event = threading.Event()
        self._thread = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self):
        if self.running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._loop, name="motion-cycles", daemon=True)
        self._thread.start()
        logger.info(f"Cycle scheduler started: every {self.interval * 1000:.0f} ms")

    def stop(self, timeout: Optional[float] = None):
        self._stop_event.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout)
        logger.info("Cycle scheduler stopped")

    def tick(self) -> CycleOutcome:
        outcome = self.engine.run_cycle()
        if self.on_outcome is not None and outcome.status is not CycleStatus.STOPPED:
            try:
                self.on_outcome(outcome)
            except Exception as e:
                logger.error(f"Error handling cycle outcome: {e}")
        return outcome

    def _loop(self):
        next_run = time.monotonic()
        while not self._stop_event.is_set():
            try:
                outcome = self.tick()
            except EngineStateError as e:
                logger.error(f"Engine cannot run cycles, leaving cycle loop: {e}")
                break
            except Exception as e:
                logger.error(f"Error in cycle loop: {e}")
            else:
                if outcome.status is CycleStatus.STOPPED:
                    logger.info("Engine stopped, leaving cycle loop")
                    break

            next_run += self.interval
            delay = next_run - time.monotonic()
            if delay < 0:
                # Overran; restart the cadence from now.
                next_run = time.monotonic()
                delay = 0
            self._stop_event.wait(delay)
