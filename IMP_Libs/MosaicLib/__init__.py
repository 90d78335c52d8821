"""
MosaicLib - Tile-based effects

This module provides the block mosaic, the recursive self-similar mosaic
and halftone screen synthesis.
"""

from IMP_Libs.MosaicLib.mosaic import mosaic, tile_means
from IMP_Libs.MosaicLib.halftone import (
    HalftonePattern,
    raster_circle,
    raster_line,
    build_pattern_tiles,
    halftone,
)
from IMP_Libs.MosaicLib.recursive import recursive_mosaic, recursive_mosaic_sizes

__all__ = [
    "mosaic",
    "tile_means",
    "HalftonePattern",
    "raster_circle",
    "raster_line",
    "build_pattern_tiles",
    "halftone",
    "recursive_mosaic",
    "recursive_mosaic_sizes",
]
