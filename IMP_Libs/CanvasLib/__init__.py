"""
CanvasLib - Layered document model

This module provides pixel buffers, per-layer undo history, the layer
compositor, the canvas document and geometric transforms.
"""

from IMP_Libs.CanvasLib.pixel_buffer import PixelBuffer, pack_argb, unpack_argb
from IMP_Libs.CanvasLib.layer_history import HistoryError, LayerHistory
from IMP_Libs.CanvasLib.layer import BlendMode, Layer
from IMP_Libs.CanvasLib.compositor import (
    STOP_PER_PIXEL,
    STOP_PER_ROW,
    composite_layers,
    project_layer,
)
from IMP_Libs.CanvasLib.canvas import Canvas, InvalidSelectionError
from IMP_Libs.CanvasLib.transforms import (
    bilinear_resize,
    rotate_cw,
    rotate_ccw,
    rotate_180,
    flip_vertical,
    flip_horizontal,
)

__all__ = [
    "PixelBuffer",
    "pack_argb",
    "unpack_argb",
    "HistoryError",
    "LayerHistory",
    "BlendMode",
    "Layer",
    "STOP_PER_PIXEL",
    "STOP_PER_ROW",
    "composite_layers",
    "project_layer",
    "Canvas",
    "InvalidSelectionError",
    "bilinear_resize",
    "rotate_cw",
    "rotate_ccw",
    "rotate_180",
    "flip_vertical",
    "flip_horizontal",
]
