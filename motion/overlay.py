# ============================================================
# FILE: motion/overlay.py
# ============================================================

import cv2
import numpy as np
from typing import Optional, Tuple, Union

from capture.frame_buffer import FrameBuffer
from motion.box import MotionBox
from utils.colors import parse_color


def draw_motion_box(frame: FrameBuffer, box: Optional[MotionBox],
                    color: Union[str, Tuple[int, int, int]] = "#ff0000",
                    thickness: int = 1) -> FrameBuffer:
    """Return a copy of frame with the box stroked in color."""
    if box is None or box.is_empty:
        return frame

    rgb = parse_color(color) if isinstance(color, str) else tuple(color)
    pixels = np.array(frame.pixels, copy=True)
    cv2.rectangle(pixels, (box.x_min, box.y_min), (box.x_max, box.y_max),
                  (int(rgb[0]), int(rgb[1]), int(rgb[2]), 255), thickness)
    return FrameBuffer(pixels)


def encode_image(frame: FrameBuffer, ext: str = '.png') -> bytes:
    ret, buffer = cv2.imencode(ext, frame.to_bgr())
    if not ret:
        raise ValueError(f"Failed to encode frame as {ext}")
    return buffer.tobytes()
