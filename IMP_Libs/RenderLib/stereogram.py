"""
Single-image random-dot and ASCII autostereograms.

The blue channel of the flattened image is read as a height field. Each
row walks a repeating pattern strip left to right and, at every pixel,
copies into the strip the entry offset by the local height. Pixels with
more height therefore repeat at a shorter period, which the eye reads as
depth.

Functions:
    stereogram: Random-dot stereogram as a new PixelBuffer
    ascii_stereogram: Character stereogram over an 8x16 block grid
"""

from typing import Optional
import logging

import numpy as np

from IMP_Libs.CanvasLib.pixel_buffer import PixelBuffer, pack_argb
from IMP_Libs.MosaicLib.mosaic import mosaic
from IMP_Libs.constants import (
    ASCII_STEREOGRAM_CHAR_SPAN,
    ASCII_STEREOGRAM_FIRST_CHAR,
    ASCII_STEREOGRAM_TILE,
    ASCII_STEREOGRAM_WIDTH,
    STEREOGRAM_DEPTH_RANGE,
)

logger = logging.getLogger(__name__)


def _walk_pattern(pattern: np.ndarray, shifts: np.ndarray) -> np.ndarray:
    """
    Run the strip-copy recurrence on every row at once.

    Args:
        pattern: (rows, width) strip, modified in place
        shifts: (rows, columns) height offsets, each below the strip width

    Returns:
        (rows, columns) array of the values written at each column
    """
    rows, width = pattern.shape
    row_index = np.arange(rows)
    output = np.empty(shifts.shape, dtype=pattern.dtype)
    for column in range(shifts.shape[1]):
        position = column % width
        source = (position + shifts[:, column]) % width
        pattern[:, position] = pattern[row_index, source]
        output[:, column] = pattern[:, position]
    return output


def stereogram(flat: PixelBuffer, width: int, rng: Optional[np.random.Generator] = None) -> PixelBuffer:
    """
    Render a random-dot autostereogram of a height field.

    Args:
        flat: Flattened image; its blue channel is the height field
        width: Pattern strip width in pixels (1-1020)
        rng: Random generator for the noise strip

    Returns:
        New opaque PixelBuffer the size of flat

    Raises:
        ValueError: If width is outside 1-1020
    """
    if not 1 <= width <= STEREOGRAM_DEPTH_RANGE:
        raise ValueError(f"width must be 1-{STEREOGRAM_DEPTH_RANGE}, got {width}")
    rng = rng if rng is not None else np.random.default_rng()

    depth = STEREOGRAM_DEPTH_RANGE // width
    noise = rng.integers(0, 256, size=(flat.height, width, 3))
    pattern = pack_argb(255, noise[..., 0], noise[..., 1], noise[..., 2])

    _, _, blue = flat.rgb_planes()
    logger.debug(f"Stereogram {flat.width}x{flat.height}, strip {width}px, depth step {depth}")
    return PixelBuffer.from_grid(_walk_pattern(pattern, blue // depth))


def ascii_stereogram(flat: PixelBuffer, rng: Optional[np.random.Generator] = None) -> str:
    """
    Render an autostereogram made of capital letters.

    The image is reduced to 8x16 blocks first; each block becomes one
    character and each row of blocks one line.

    Returns:
        The text, one line per block row, every line ending in a newline
    """
    rng = rng if rng is not None else np.random.default_rng()
    tile_width, tile_height = ASCII_STEREOGRAM_TILE
    width = ASCII_STEREOGRAM_WIDTH
    depth = STEREOGRAM_DEPTH_RANGE // width

    if flat.width == 0 or flat.height == 0:
        return ""

    _, _, blue = mosaic(flat, tile_width, tile_height).rgb_planes()
    heights = blue[::tile_height, ::tile_width]
    shifts = np.where(heights != 0, heights // depth + 1, 0)

    # Row 0 of the strip is never read.
    codes = ASCII_STEREOGRAM_FIRST_CHAR + rng.integers(
        0, ASCII_STEREOGRAM_CHAR_SPAN, size=(heights.shape[0] + 1, width)
    )
    rows = _walk_pattern(codes[1:].copy(), shifts)
    return "".join("".join(chr(int(code)) for code in row) + "\n" for row in rows)
