# ============================================================
# FILE: capture/frame_buffer.py
# ============================================================

import cv2
import numpy as np
from typing import Iterable, Optional, Tuple

CHANNELS = 4
OPAQUE = 255


class FrameBuffer:
    """
    One sampled RGBA frame.

    Pixels are held as a read-only uint8 array of shape (height, width, 4),
    row-major, so linear pixel index i maps to (x, y) = (i % width, i // width).
    """

    def __init__(self, pixels: np.ndarray):
        if not isinstance(pixels, np.ndarray):
            raise ValueError("FrameBuffer expects a numpy array")
        if pixels.ndim != 3 or pixels.shape[2] != CHANNELS:
            raise ValueError(f"Expected shape (height, width, 4), got {pixels.shape}")
        if pixels.dtype != np.uint8:
            raise ValueError(f"Expected uint8 pixels, got {pixels.dtype}")
        if pixels.shape[0] == 0 or pixels.shape[1] == 0:
            raise ValueError("Frame must have at least one pixel")

        self._pixels = np.ascontiguousarray(pixels).copy()
        self._pixels.setflags(write=False)

    @classmethod
    def from_pixels(cls, width: int, height: int,
                    pixels: Iterable[Tuple[int, int, int, int]]) -> "FrameBuffer":
        data = np.asarray(list(pixels), dtype=np.int64)
        if data.shape != (width * height, CHANNELS):
            raise ValueError(
                f"Expected {width * height} RGBA pixels, got {data.shape[0] if data.ndim else 0}"
            )
        if data.min() < 0 or data.max() > 255:
            raise ValueError("Channel values must be in [0, 255]")
        return cls(data.astype(np.uint8).reshape(height, width, CHANNELS))

    @classmethod
    def from_bgr(cls, image: np.ndarray,
                 size: Optional[Tuple[int, int]] = None) -> "FrameBuffer":
        """Build a frame from an OpenCV image, optionally resized to (width, height)."""
        if size is not None and (image.shape[1], image.shape[0]) != tuple(size):
            image = cv2.resize(image, tuple(size), interpolation=cv2.INTER_AREA)

        if image.ndim == 2:
            rgba = cv2.cvtColor(image, cv2.COLOR_GRAY2RGBA)
        elif image.shape[2] == 4:
            rgba = cv2.cvtColor(image, cv2.COLOR_BGRA2RGBA)
        else:
            rgba = cv2.cvtColor(image, cv2.COLOR_BGR2RGBA)
        return cls(rgba)

    @classmethod
    def blank(cls, width: int, height: int, value: int = 0) -> "FrameBuffer":
        pixels = np.full((height, width, CHANNELS), value, dtype=np.uint8)
        pixels[..., 3] = OPAQUE
        return cls(pixels)

    @property
    def pixels(self) -> np.ndarray:
        return self._pixels

    @property
    def width(self) -> int:
        return self._pixels.shape[1]

    @property
    def height(self) -> int:
        return self._pixels.shape[0]

    @property
    def size(self) -> Tuple[int, int]:
        return self.width, self.height

    def pixel(self, index: int) -> Tuple[int, int, int, int]:
        if not 0 <= index < len(self):
            raise IndexError(f"Pixel index {index} out of range")
        y, x = divmod(index, self.width)
        return tuple(int(c) for c in self._pixels[y, x])

    def to_bgr(self) -> np.ndarray:
        return cv2.cvtColor(self._pixels, cv2.COLOR_RGBA2BGR)

    def __len__(self):
        return self.width * self.height

    def __eq__(self, other):
        if not isinstance(other, FrameBuffer):
            return NotImplemented
        return self.size == other.size and np.array_equal(self._pixels, other._pixels)

    def __repr__(self):
        return f"FrameBuffer(width={self.width}, height={self.height})"
