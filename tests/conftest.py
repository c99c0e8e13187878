import numpy as np
import pytest

from capture.frame_buffer import FrameBuffer
from motion.config import EngineConfig
from motion.engine import MotionEngine
from motion.errors import FrameUnavailable


def make_frame(width, height, value=0, changes=None):
    """Opaque frame filled with value; changes maps linear index -> (r, g, b)."""
    pixels = np.full((height, width, 4), value, dtype=np.uint8)
    pixels[..., 3] = 255
    for index, rgb in (changes or {}).items():
        y, x = divmod(index, width)
        pixels[y, x, :3] = rgb
    return FrameBuffer(pixels)


class ScriptedSource:
    """Replays frames in order; items may be exceptions to raise or None."""

    def __init__(self, frames):
        self.frames = list(frames)
        self.reads = 0

    def read(self):
        self.reads += 1
        if not self.frames:
            raise FrameUnavailable("script exhausted")
        item = self.frames.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


class RecordingSinks:
    def __init__(self):
        self.scores = []
        self.diffs = []
        self.boxes = []
        self.errors = []

    def kwargs(self):
        return {
            'score_sink': self.scores.append,
            'diff_sink': self.diffs.append,
            'box_sink': self.boxes.append,
            'error_sink': self.errors.append,
        }


@pytest.fixture
def sinks():
    return RecordingSinks()


@pytest.fixture
def small_config():
    return EngineConfig(width=4, height=3, sensitivity=10)


@pytest.fixture
def engine_factory(sinks):
    def factory(config, frames):
        engine = MotionEngine(config, **sinks.kwargs())
        source = ScriptedSource(frames)
        engine.start(source)
        return engine, source
    return factory
