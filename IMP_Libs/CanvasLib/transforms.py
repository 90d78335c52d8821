"""
Geometric transforms for pixel buffers.

Functions:
    bilinear_resize: Resample a buffer to a new size
    rotate_cw: Rotate 90 degrees clockwise
    rotate_ccw: Rotate 90 degrees counter-clockwise
    rotate_180: Rotate half a turn
    flip_vertical: Mirror top-to-bottom
    flip_horizontal: Mirror left-to-right
"""

import numpy as np

from IMP_Libs.CanvasLib.pixel_buffer import PixelBuffer


def _sample_positions(source_size: int, target_size: int) -> np.ndarray:
    """Source coordinates for each target index, stepped by (n-1)/(m-1)."""
    if target_size == 1:
        return np.zeros(1, dtype=np.float64)
    delta = (source_size - 1) / (target_size - 1)
    steps = np.full(target_size - 1, delta, dtype=np.float64)
    return np.concatenate(([0.0], np.cumsum(steps)))


def bilinear_resize(buffer: PixelBuffer, new_width: int, new_height: int) -> PixelBuffer:
    """
    Resize a buffer with bilinear interpolation.

    The first and last target pixels land exactly on the first and last
    source pixels. The source is padded by one replicated column and row so
    the right/bottom neighbours always exist. Channels are truncated to int
    and alpha is forced to 255.

    Args:
        buffer: Source buffer
        new_width: Target width (>= 1)
        new_height: Target height (>= 1)

    Returns:
        New resized PixelBuffer

    Raises:
        ValueError: If a target dimension is < 1 or the source is empty
    """
    if new_width < 1 or new_height < 1:
        raise ValueError(f"Target size must be at least 1x1, got {new_width}x{new_height}")
    if buffer.width < 1 or buffer.height < 1:
        raise ValueError("Cannot resize an empty buffer")

    xs = _sample_positions(buffer.width, new_width)
    ys = _sample_positions(buffer.height, new_height)
    x1 = xs.astype(np.int64)
    y1 = ys.astype(np.int64)
    x_off = (xs - x1)[np.newaxis, :]
    y_off = (ys - y1)[:, np.newaxis]

    planes = []
    for plane in buffer.rgb_planes():
        padded = np.pad(plane, ((0, 1), (0, 1)), mode="edge").astype(np.float64)
        top_left = padded[np.ix_(y1, x1)]
        top_right = padded[np.ix_(y1, x1 + 1)]
        bottom_left = padded[np.ix_(y1 + 1, x1)]
        bottom_right = padded[np.ix_(y1 + 1, x1 + 1)]
        top = top_left + (top_right - top_left) * x_off
        bottom = bottom_left + (bottom_right - bottom_left) * x_off
        value = top + (bottom - top) * y_off
        planes.append(value.astype(np.int64))

    return PixelBuffer.from_channels(new_width, new_height, *planes)


def rotate_cw(buffer: PixelBuffer) -> PixelBuffer:
    return PixelBuffer.from_grid(np.rot90(buffer.grid(), k=-1))


def rotate_ccw(buffer: PixelBuffer) -> PixelBuffer:
    return PixelBuffer.from_grid(np.rot90(buffer.grid(), k=1))


def rotate_180(buffer: PixelBuffer) -> PixelBuffer:
    return PixelBuffer.from_grid(np.rot90(buffer.grid(), k=2))


def flip_vertical(buffer: PixelBuffer) -> PixelBuffer:
    return PixelBuffer.from_grid(np.flipud(buffer.grid()))


def flip_horizontal(buffer: PixelBuffer) -> PixelBuffer:
    return PixelBuffer.from_grid(np.fliplr(buffer.grid()))
