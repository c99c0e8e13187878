# ============================================================
# FILE: motion/box.py
# ============================================================

from dataclasses import dataclass
from typing import Iterable, Optional

import numpy as np


@dataclass(frozen=True)
class MotionBox:
    """
    Smallest axis-aligned rectangle holding every over-threshold pixel of a cycle.

    Bounds are inclusive pixel coordinates. The empty box is the reset
    sentinel x_min = y_min = frame width, x_max = y_max = 0.
    """

    x_min: int
    x_max: int
    y_min: int
    y_max: int

    @classmethod
    def empty(cls, width: int) -> "MotionBox":
        return cls(x_min=width, x_max=0, y_min=width, y_max=0)

    @property
    def is_empty(self) -> bool:
        return self.x_min > self.x_max or self.y_min > self.y_max

    @property
    def width(self) -> int:
        return 0 if self.is_empty else self.x_max - self.x_min + 1

    @property
    def height(self) -> int:
        return 0 if self.is_empty else self.y_max - self.y_min + 1

    def as_dict(self):
        return {
            'x_min': self.x_min,
            'x_max': self.x_max,
            'y_min': self.y_min,
            'y_max': self.y_max,
        }


class MotionBoxTracker:
    def __init__(self, width: int):
        self.width = width
        self.reset()

    def reset(self, width: Optional[int] = None):
        if width is not None:
            self.width = width
        self._seen = False
        self._x_min = self._x_max = 0
        self._y_min = self._y_max = 0

    def observe(self, x: int, y: int):
        if x < 0 or y < 0:
            raise ValueError(f"Negative pixel coordinate ({x}, {y})")
        self._extend(x, x, y, y)

    def observe_index(self, index: int):
        y, x = divmod(index, self.width)
        self.observe(x, y)

    def observe_indices(self, indices: Iterable[int]):
        """Min/max-reduce a batch of linear indices into the box."""
        indices = np.asarray(indices, dtype=np.int64).ravel()
        if indices.size == 0:
            return
        if indices.min() < 0:
            raise ValueError("Negative pixel index")

        xs = indices % self.width
        ys = indices // self.width
        self._extend(int(xs.min()), int(xs.max()), int(ys.min()), int(ys.max()))

    def current(self) -> MotionBox:
        if not self._seen:
            return MotionBox.empty(self.width)
        return MotionBox(self._x_min, self._x_max, self._y_min, self._y_max)

    def _extend(self, x_min: int, x_max: int, y_min: int, y_max: int):
        # The first observation sets the bounds; the width sentinel is only reported while empty.
        if not self._seen:
            self._x_min, self._x_max, self._y_min, self._y_max = x_min, x_max, y_min, y_max
            self._seen = True
            return
        self._x_min = min(self._x_min, x_min)
        self._y_min = min(self._y_min, y_min)
        self._x_max = max(self._x_max, x_max)
        self._y_max = max(self._y_max, y_max)
