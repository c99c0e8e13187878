import numpy as np
import pytest

from capture.frame_buffer import FrameBuffer


def test_from_pixels_is_row_major():
    pixels = [(i, 0, 0, 255) for i in range(6)]
    frame = FrameBuffer.from_pixels(3, 2, pixels)

    assert frame.size == (3, 2)
    assert len(frame) == 6
    assert frame.pixels[1, 0, 0] == 3
    assert frame.pixel(5) == (5, 0, 0, 255)


def test_from_pixels_length_must_match():
    with pytest.raises(ValueError):
        FrameBuffer.from_pixels(2, 2, [(0, 0, 0, 255)] * 3)


def test_from_pixels_rejects_out_of_range_channels():
    with pytest.raises(ValueError):
        FrameBuffer.from_pixels(1, 1, [(256, 0, 0, 255)])


@pytest.mark.parametrize("array", [
    np.zeros((2, 2, 3), dtype=np.uint8),
    np.zeros((2, 2, 4), dtype=np.float32),
    np.zeros((2, 8), dtype=np.uint8),
    np.zeros((0, 2, 4), dtype=np.uint8),
])
def test_invalid_arrays_rejected(array):
    with pytest.raises(ValueError):
        FrameBuffer(array)


def test_frame_is_immutable():
    source = np.zeros((2, 2, 4), dtype=np.uint8)
    frame = FrameBuffer(source)

    source[0, 0, 0] = 9
    assert frame.pixel(0)[0] == 0

    with pytest.raises(ValueError):
        frame.pixels[0, 0, 0] = 1


def test_from_bgr_converts_and_resizes():
    bgr = np.zeros((20, 30, 3), dtype=np.uint8)
    bgr[..., 0] = 200  # blue

    frame = FrameBuffer.from_bgr(bgr, (15, 10))

    assert frame.size == (15, 10)
    assert frame.pixel(0) == (0, 0, 200, 255)


def test_from_bgr_grayscale():
    gray = np.full((4, 4), 77, dtype=np.uint8)

    assert FrameBuffer.from_bgr(gray).pixel(3) == (77, 77, 77, 255)


def test_blank_and_to_bgr():
    frame = FrameBuffer.blank(5, 4, value=12)

    assert frame.pixel(19) == (12, 12, 12, 255)
    assert frame.to_bgr().shape == (4, 5, 3)


def test_equality():
    assert FrameBuffer.blank(2, 2) == FrameBuffer.blank(2, 2)
    assert FrameBuffer.blank(2, 2) != FrameBuffer.blank(2, 2, value=1)
    assert FrameBuffer.blank(2, 2) != FrameBuffer.blank(4, 1)


def test_pixel_index_out_of_range():
    with pytest.raises(IndexError):
        FrameBuffer.blank(2, 2).pixel(4)
