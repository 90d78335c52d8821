"""
Layer compositor.

Renders an ordered run of layers into one opaque canvas buffer. The first
layer in the sequence is the front-most: its Normal-blend coverage hides
whatever lies behind it.

Per pixel the compositor keeps the accumulated channel sums R, G, B,
multiplicative factors cR, cG, cB (Multiply and Divide layers) and the
coverage F built up by Normal layers. A layer's contribution is

    contrib = srcAlpha * (1 - F) * opacity / 255

and the final pixel is clamp(trunc(R * cR), 0, 255) per channel, alpha 255.

Functions:
    composite_layers: Render layers onto a width x height canvas
    project_layer: Place one layer's buffer in canvas coordinates
"""

from typing import Callable, Dict, Optional, Sequence, Tuple
import logging

import numpy as np

from IMP_Libs.CanvasLib.layer import BlendMode, Layer
from IMP_Libs.CanvasLib.pixel_buffer import PixelBuffer, pack_argb, unpack_argb
from IMP_Libs.constants import DIVIDE_EPSILON

logger = logging.getLogger(__name__)

STOP_PER_PIXEL = "pixel"
STOP_PER_ROW = "row"


class _Accumulator:
    """Running compositing state for one canvas render."""

    def __init__(self, width: int, height: int):
        shape = (height, width)
        self.coverage = np.zeros(shape, dtype=np.float64)
        self.sums = [np.zeros(shape, dtype=np.float64) for _ in range(3)]
        self.factors = [np.ones(shape, dtype=np.float64) for _ in range(3)]


def project_layer(
    layer: Layer,
    width: int,
    height: int,
) -> Optional[Tuple[np.ndarray, np.ndarray]]:
    """
    Place a layer's current buffer onto a width x height canvas.

    Negative offsets are clipped on the near edge, overflow on the far edge.

    Args:
        layer: Layer to project
        width: Canvas width
        height: Canvas height

    Returns:
        (pixels, footprint) pair of (height, width) arrays: the projected
        uint32 pixels (0 outside the layer) and a boolean mask of the canvas
        pixels the layer covers. None when the layer lies fully off-canvas.
    """
    source = layer.current
    x0 = max(layer.x, 0)
    y0 = max(layer.y, 0)
    x1 = min(layer.x + source.width, width)
    y1 = min(layer.y + source.height, height)
    if x0 >= x1 or y0 >= y1:
        return None

    pixels = np.zeros((height, width), dtype=np.uint32)
    footprint = np.zeros((height, width), dtype=bool)
    src = source.grid()
    pixels[y0:y1, x0:x1] = src[y0 - layer.y:y1 - layer.y, x0 - layer.x:x1 - layer.x]
    footprint[y0:y1, x0:x1] = True
    return pixels, footprint


# ============================================================================
# Blend laws
# ============================================================================

def _blend_normal(acc, active, opacity, alpha, channels, footprint):
    contrib = np.where(active, alpha * (1.0 - acc.coverage) * opacity / 255.0, 0.0)
    for total, channel in zip(acc.sums, channels):
        total += channel * contrib
    acc.coverage += contrib


def _blend_add(acc, active, opacity, alpha, channels, footprint):
    contrib = np.where(active, alpha * (1.0 - acc.coverage) * opacity / 255.0, 0.0)
    for total, channel in zip(acc.sums, channels):
        total += channel * contrib


def _blend_subtract(acc, active, opacity, alpha, channels, footprint):
    contrib = np.where(active, alpha * (1.0 - acc.coverage) * opacity / 255.0, 0.0)
    for total, channel in zip(acc.sums, channels):
        total -= channel * contrib


def _blend_multiply(acc, active, opacity, alpha, channels, footprint):
    contrib = np.where(active, alpha * (1.0 - acc.coverage) * opacity / 255.0, 0.0)
    for factor, channel in zip(acc.factors, channels):
        factor *= channel / 255.0 * contrib + (1.0 - contrib)


def _blend_divide(acc, active, opacity, alpha, channels, footprint):
    # Divide weighs by the layer's transparency instead of its opacity.
    mask = active & footprint
    contrib = np.where(mask, alpha * (1.0 - acc.coverage) * (1.0 - opacity) / 255.0, 0.0)
    for factor, channel in zip(acc.factors, channels):
        fraction = channel / 255.0
        factor *= fraction * contrib + (1.0 - contrib)
        divisor = np.where(fraction != 0, fraction, DIVIDE_EPSILON)
        np.divide(factor, divisor, out=factor, where=mask)


_BLEND_LAWS: Dict[BlendMode, Callable] = {
    BlendMode.NORMAL: _blend_normal,
    BlendMode.ADD: _blend_add,
    BlendMode.SUBTRACT: _blend_subtract,
    BlendMode.MULTIPLY: _blend_multiply,
    BlendMode.DIVIDE: _blend_divide,
}


def _active_pixels(coverage: np.ndarray, stop_mode: str) -> np.ndarray:
    covered = coverage >= 1.0
    if stop_mode == STOP_PER_ROW:
        # Legacy behaviour: the first covered pixel ends the row for this layer.
        return ~np.logical_or.accumulate(covered, axis=1)
    return ~covered


def composite_layers(
    layers: Sequence[Layer],
    width: int,
    height: int,
    stop_mode: str = STOP_PER_PIXEL,
) -> PixelBuffer:
    """
    Composite layers front-to-back into an opaque canvas buffer.

    Args:
        layers: Layers in z-order, front-most first
        width: Canvas width
        height: Canvas height
        stop_mode: "pixel" skips only pixels already fully covered;
                   "row" skips the remainder of a row once a covered pixel
                   is reached (the legacy renderer's output)

    Returns:
        New PixelBuffer of width x height with alpha forced to 255

    Raises:
        ValueError: If stop_mode is unknown
    """
    if stop_mode not in (STOP_PER_PIXEL, STOP_PER_ROW):
        raise ValueError(f"stop_mode must be 'pixel' or 'row', got {stop_mode!r}")

    acc = _Accumulator(width, height)

    for layer in layers:
        if not layer.visible or layer.opacity == 0.0:
            continue

        projected = project_layer(layer, width, height)
        if projected is None:
            continue
        pixels, footprint = projected

        alpha, red, green, blue = unpack_argb(pixels)
        active = _active_pixels(acc.coverage, stop_mode)
        _BLEND_LAWS[layer.blend_mode](
            acc,
            active,
            layer.opacity,
            alpha.astype(np.float64),
            (red.astype(np.float64), green.astype(np.float64), blue.astype(np.float64)),
            footprint,
        )

    channels = [
        np.clip(np.trunc(total * factor), 0, 255).astype(np.int64)
        for total, factor in zip(acc.sums, acc.factors)
    ]
    packed = pack_argb(255, channels[0], channels[1], channels[2])
    return PixelBuffer(width, height, packed)
