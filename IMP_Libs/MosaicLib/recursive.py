"""
Recursive mosaic: an image assembled from tinted copies of itself.

The flattened image is shrunk by ``m_scale`` to make a stamp. Separately it
is resized by ``i_scale`` and pixelated with stamp-sized tiles, and every
tile is multiplied by the stamp so that each block shows the whole picture
tinted with the block's colour.
"""

from typing import Tuple

import numpy as np
from PIL import Image

from IMP_Libs.CanvasLib.pixel_buffer import PixelBuffer, pack_argb
from IMP_Libs.CanvasLib.transforms import bilinear_resize
from IMP_Libs.MosaicLib.mosaic import mosaic


def recursive_mosaic_sizes(
    width: int,
    height: int,
    i_scale: float,
    m_scale: float,
) -> Tuple[int, int, int, int]:
    """
    Compute (tile_width, tile_height, output_width, output_height).

    Raises:
        ValueError: If any of the resulting sizes is below 1 pixel
    """
    tile_width = int(width * m_scale)
    tile_height = int(height * m_scale)
    out_width = int(width * i_scale)
    out_height = int(height * i_scale)
    if tile_width < 1 or tile_height < 1:
        raise ValueError(
            f"m_scale {m_scale} gives an empty stamp ({tile_width}x{tile_height})"
        )
    if out_width < 1 or out_height < 1:
        raise ValueError(
            f"i_scale {i_scale} gives an empty image ({out_width}x{out_height})"
        )
    return tile_width, tile_height, out_width, out_height


def recursive_mosaic(flat: PixelBuffer, i_scale: float, m_scale: float) -> PixelBuffer:
    """
    Build the recursive mosaic of a flattened image.

    Args:
        flat: Flattened canvas image
        i_scale: Output size relative to the input
        m_scale: Stamp (tile) size relative to the input

    Returns:
        New PixelBuffer of int(width * i_scale) x int(height * i_scale)

    Raises:
        ValueError: If either scale yields an empty image
    """
    tile_width, tile_height, out_width, out_height = recursive_mosaic_sizes(
        flat.width, flat.height, i_scale, m_scale
    )

    stamp_image = flat.to_image().resize((tile_width, tile_height), Image.Resampling.BICUBIC)
    stamp = PixelBuffer.from_image(stamp_image)

    body = mosaic(bilinear_resize(flat, out_width, out_height), tile_width, tile_height)

    reps_y = -(-out_height // tile_height)
    reps_x = -(-out_width // tile_width)
    channels = []
    for body_plane, stamp_plane in zip(body.rgb_planes(), stamp.rgb_planes()):
        tiled = np.tile(stamp_plane, (reps_y, reps_x))[:out_height, :out_width]
        channels.append(body_plane * tiled // 255)

    return PixelBuffer(
        out_width,
        out_height,
        pack_argb(255, channels[0], channels[1], channels[2]),
    )
