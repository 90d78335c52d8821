"""
Painterly and distortion effects.

Functions:
    oil_paint: Posterize, then replace each pixel by its brush window's most common colour
    wave: Shift each row horizontally along a sine wave
"""

from collections import Counter
import math

import numpy as np

from IMP_Libs.CanvasLib.pixel_buffer import PixelBuffer
from IMP_Libs.FiltersLib.tone import posterize


def _mode_filter(grid: np.ndarray, brush_size: int) -> np.ndarray:
    height, width = grid.shape
    result = np.empty_like(grid)
    for y in range(height):
        for x in range(width):
            window = grid[y:y + brush_size, x:x + brush_size].ravel().tolist()
            # Counter keeps first-seen order, so ties go to the earliest colour.
            result[y, x] = Counter(window).most_common(1)[0][0]
    return result


def oil_paint(buffer: PixelBuffer, brush_size: int, colors: int, passes: int = 1) -> PixelBuffer:
    """
    Oil paint effect.

    Each pass posterizes to ``colors`` levels, then sets every pixel to the
    most frequent colour of the brush_size x brush_size window whose
    top-left corner is that pixel (clipped at the right and bottom edges).

    Args:
        buffer: Source buffer
        brush_size: Window side length (>= 1)
        colors: Posterize levels per channel (1-256)
        passes: Number of times the effect is applied (>= 1)

    Returns:
        New painted PixelBuffer

    Raises:
        ValueError: If brush_size or passes is < 1, or colors is out of range
    """
    if brush_size < 1:
        raise ValueError(f"brush_size must be >= 1, got {brush_size}")
    if passes < 1:
        raise ValueError(f"passes must be >= 1, got {passes}")

    result = buffer
    for _ in range(passes):
        quantized = posterize(result, colors)
        result = PixelBuffer.from_grid(_mode_filter(quantized.grid(), int(brush_size)))
    return result


def wave(buffer: PixelBuffer, frequency: float, amplitude: float) -> PixelBuffer:
    """
    Horizontal sine-wave distortion.

    Row i is shifted by int(sin(2*pi*frequency/height * i) * amplitude).
    Pixels whose source column falls outside the row become transparent black.

    Args:
        buffer: Source buffer
        frequency: Number of full waves over the image height
        amplitude: Maximum shift in pixels

    Returns:
        New distorted PixelBuffer
    """
    height, width = buffer.height, buffer.width
    grid = buffer.grid()
    result = np.zeros((height, width), dtype=np.uint32)
    clock = 2.0 * math.pi * frequency / height if height else 0.0
    columns = np.arange(width)

    for row in range(height):
        delta = int(math.sin(clock * row) * amplitude)
        source = columns + delta
        valid = (source >= 0) & (source < width)
        result[row, valid] = grid[row, source[valid]]

    return PixelBuffer.from_grid(result)
