# ============================================================
# FILE: motion/errors.py
# ============================================================


class MotionError(Exception):
    """Base class for motion engine errors."""


class FrameUnavailable(MotionError):
    """The frame source could not supply a frame this cycle."""


class DimensionMismatch(MotionError):
    def __init__(self, expected, actual):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Frame size {actual[0]}x{actual[1]} does not match "
            f"expected {expected[0]}x{expected[1]}"
        )


class EngineStateError(MotionError):
    """Operation not allowed in the engine's current state."""
