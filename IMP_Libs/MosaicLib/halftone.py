"""
Halftone synthesis.

The image is reduced to ``size`` gray levels, pixelated into tiles and each
tile is replaced by a precomputed pattern whose ink coverage matches the
tile's luminance. Two screens are available: circles (a brick-offset dot
screen) and lines (horizontal line screen).

Classes:
    HalftonePattern: Screen type selector

Functions:
    raster_circle: Rasterize a filled disc
    raster_line: Rasterize a centred span on a 1-pixel row
    build_pattern_tiles: Precompute one pattern tile per coverage level
    halftone: Apply the halftone screen to a buffer
"""

from enum import IntEnum

import numpy as np
from PIL import Image

from IMP_Libs.CanvasLib.pixel_buffer import PixelBuffer
from IMP_Libs.FiltersLib.dither import dithered_posterize
from IMP_Libs.FiltersLib.tone import desaturate
from IMP_Libs.MosaicLib.mosaic import mosaic
from IMP_Libs.constants import BLACK, WHITE


class HalftonePattern(IntEnum):
    CIRCLES = 0
    LINES = 1


# ============================================================================
# Rasterizers
# ============================================================================

def _circle_outline(radius: int):
    """Midpoint-circle outline points relative to the centre."""
    points = [(0, radius), (0, -radius), (radius, 0), (-radius, 0)]
    f = 1 - radius
    ddf_x = 1
    ddf_y = -2 * radius
    x = 0
    y = radius
    while x < y:
        if f >= 0:
            y -= 1
            ddf_y += 2
            f += ddf_y
        x += 1
        ddf_x += 2
        f += ddf_x
        points.extend([
            (x, y), (-x, y), (x, -y), (-x, -y),
            (y, x), (-y, x), (y, -x), (-y, -x),
        ])
    return points


def raster_circle(size: int, radius: int, color: int, bcolor: int) -> np.ndarray:
    """
    Rasterize a filled disc centred on a size x size grid.

    Args:
        size: Grid side length
        radius: Disc radius; > size fills the grid, < 1 leaves it empty
        color: Packed ARGB disc colour
        bcolor: Packed ARGB background colour

    Returns:
        uint32 array shaped (size, size)
    """
    if radius > size:
        return np.full((size, size), color, dtype=np.uint32)

    grid = np.full((size, size), bcolor, dtype=np.uint32)
    if radius < 1:
        return grid

    center = size // 2
    spans = {}
    for dx, dy in _circle_outline(radius):
        row, col = center + dy, center + dx
        if not 0 <= row < size:
            continue
        low, high = spans.get(row, (col, col))
        spans[row] = (min(low, col), max(high, col))

    for row, (low, high) in spans.items():
        grid[row, max(low, 0):min(high, size - 1) + 1] = color
    return grid


def raster_line(size: int, radius: int, color: int, bcolor: int) -> np.ndarray:
    """
    Rasterize a span on a single row of ``size`` pixels.

    Pixels in [radius, size - radius) take ``color``; when radius is past
    the middle the span runs to the end of the row instead.

    Returns:
        uint32 array of length size
    """
    if radius > size:
        return np.full(size, color, dtype=np.uint32)

    line = np.full(size, bcolor, dtype=np.uint32)
    if radius < 1:
        return line

    limit = size - radius
    if limit > radius:
        line[radius:limit] = color
    elif limit < radius:
        line[radius:] = color
    return line


def _downscale(raster: np.ndarray, width: int, height: int, resample) -> np.ndarray:
    image = PixelBuffer.from_grid(raster).to_image()
    box = (0, 0, width * 2, min(height * 2, raster.shape[0]))
    return PixelBuffer.from_image(image.resize((width, height), resample, box=box)).grid()


def build_pattern_tiles(size: int, pattern: HalftonePattern) -> np.ndarray:
    """
    Precompute the halftone pattern for each of ``size`` coverage levels.

    Level 0 is the darkest. Circles are drawn black on white at double
    resolution and reduced with bilinear filtering; lines are white on black
    and reduced horizontally with bicubic filtering.

    Returns:
        uint32 array shaped (size, tile_height, size) where tile_height is
        size for circles and 1 for lines
    """
    full = size * 2 + 1
    tiles = []
    for level in range(size):
        radius = size - level
        if pattern == HalftonePattern.CIRCLES:
            raster = raster_circle(full, radius, BLACK, WHITE)
            tiles.append(_downscale(raster, size, size, Image.Resampling.BILINEAR))
        else:
            raster = raster_line(full, radius, WHITE, BLACK).reshape(1, full)
            tiles.append(_downscale(raster, size, 1, Image.Resampling.BICUBIC))
    return np.stack(tiles)


# ============================================================================
# Halftone
# ============================================================================

def _tile_level(blue: int, size: int) -> int:
    return int((blue / 255.0) * (size - 1))


def halftone(buffer: PixelBuffer, size: int, pattern=HalftonePattern.CIRCLES) -> PixelBuffer:
    """
    Apply a halftone screen.

    Pipeline: desaturate, dithered posterize to ``size`` levels, mosaic into
    size x size (circles) or size x 1 (lines) tiles, then stamp the pattern
    tile picked from each tile's luminance. With circles, every other row of
    tiles is shifted right by half a tile and its uncovered leading strip is
    painted white.

    Args:
        buffer: Source buffer
        size: Pattern size in pixels (>= 1)
        pattern: HalftonePattern or its integer value

    Returns:
        New halftoned PixelBuffer

    Raises:
        ValueError: If size < 1 or pattern is unknown
    """
    if size < 1:
        raise ValueError(f"size must be >= 1, got {size}")
    pattern = HalftonePattern(pattern)

    tiles = build_pattern_tiles(size, pattern)
    prepared = desaturate(buffer, 1, 1, 1)
    prepared = dithered_posterize(prepared, size)
    if pattern == HalftonePattern.CIRCLES:
        prepared = mosaic(prepared, size, size)
    else:
        prepared = mosaic(prepared, size, 1)

    source = prepared.grid()
    blue = (source & 0xFF).astype(np.int64)
    output = np.array(source, dtype=np.uint32)
    height, width = output.shape

    if pattern == HalftonePattern.CIRCLES:
        for row, top in enumerate(range(0, height, size)):
            bottom = min(top + size, height)
            offset = 0
            if row % 2:
                offset = size // 2
                output[top:bottom, :offset] = WHITE
            for left in range(offset, width, size):
                right = min(left + size, width)
                tile = tiles[_tile_level(blue[top, left], size)]
                output[top:bottom, left:right] = tile[:bottom - top, :right - left]
    else:
        for top in range(height):
            for left in range(0, width, size):
                right = min(left + size, width)
                tile = tiles[_tile_level(blue[top, left], size)]
                output[top, left:right] = tile[0, :right - left]

    return PixelBuffer.from_grid(output)
