"""
Block mosaic.

Functions:
    tile_means: Integer mean colour of every tile
    mosaic: Fill every tile with its mean colour
"""

from typing import Tuple

import numpy as np

from IMP_Libs.CanvasLib.pixel_buffer import PixelBuffer, pack_argb


def _validate_tile(tile_width: int, tile_height: int) -> None:
    if tile_width < 1 or tile_height < 1:
        raise ValueError(f"Tile size must be at least 1x1, got {tile_width}x{tile_height}")


def tile_means(
    buffer: PixelBuffer,
    tile_width: int,
    tile_height: int,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Compute the floor-mean R, G, B of each tile.

    Tiles on the right and bottom edges are clipped to the image and averaged
    over the pixels they actually contain.

    Returns:
        Three int64 arrays shaped (tile_rows, tile_columns)
    """
    _validate_tile(tile_width, tile_height)
    row_starts = np.arange(0, buffer.height, tile_height)
    col_starts = np.arange(0, buffer.width, tile_width)
    row_counts = np.diff(np.append(row_starts, buffer.height))
    col_counts = np.diff(np.append(col_starts, buffer.width))
    counts = np.outer(row_counts, col_counts)

    means = []
    for plane in buffer.rgb_planes():
        sums = np.add.reduceat(np.add.reduceat(plane, row_starts, axis=0), col_starts, axis=1)
        means.append(sums // counts)
    return means[0], means[1], means[2]


def mosaic(buffer: PixelBuffer, tile_width: int, tile_height: int) -> PixelBuffer:
    """
    Pixelate a buffer into tile_width x tile_height blocks.

    Args:
        buffer: Source buffer
        tile_width: Block width (>= 1)
        tile_height: Block height (>= 1)

    Returns:
        New PixelBuffer where each block holds its mean colour, alpha 255

    Raises:
        ValueError: If a tile dimension is < 1
    """
    if buffer.width == 0 or buffer.height == 0:
        _validate_tile(tile_width, tile_height)
        return buffer.copy()

    means = tile_means(buffer, tile_width, tile_height)
    expanded = [
        np.repeat(np.repeat(plane, tile_height, axis=0), tile_width, axis=1)[
            :buffer.height, :buffer.width
        ]
        for plane in means
    ]
    return PixelBuffer(
        buffer.width,
        buffer.height,
        pack_argb(255, expanded[0], expanded[1], expanded[2]),
    )
