"""
Tone and colour operations.

Every function takes a PixelBuffer and returns a new one. Channel
arithmetic truncates toward zero before clamping to 0-255. Alpha is kept
except where noted (posterize forces it opaque).

Functions:
    brightness_contrast: Additive brightness, multiplicative contrast around 127
    color_balance: Per-channel additive offsets
    colorize: Per-channel multiplicative tint
    color_weight_balance: Channel weights normalized to a mean of 1
    desaturate: Weighted balance followed by channel averaging
    invert: Photographic negative
    posterize: Uniform quantization to a number of levels
    grayscale: Per-pixel (r + g + b) // 3 luminance
    threshold: Black and white split at mid-gray
"""

from typing import Tuple

import numpy as np

from IMP_Libs.CanvasLib.pixel_buffer import PixelBuffer, pack_argb


def _rebuild(buffer: PixelBuffer, alpha, r, g, b) -> PixelBuffer:
    return PixelBuffer(buffer.width, buffer.height, pack_argb(alpha, r, g, b))


def _trunc_clamp(values: np.ndarray) -> np.ndarray:
    return np.clip(np.trunc(values), 0, 255).astype(np.int64)


def brightness_contrast(buffer: PixelBuffer, brightness: float, contrast: float) -> PixelBuffer:
    """
    Adjust brightness and contrast.

    Args:
        buffer: Source buffer
        brightness: Offset as a fraction of full scale (-1.0 to 1.0)
        contrast: Contrast change (-1.0 to 1.0); the factor applied around
                  127 is ((contrast * 100 + 100) / 100) ** 2

    Returns:
        New adjusted PixelBuffer
    """
    offset = brightness * 255.0
    factor = ((contrast * 100.0 + 100.0) / 100.0) ** 2
    a, *channels = buffer.channels()

    adjusted = []
    for channel in channels:
        value = np.trunc(channel + offset)
        if factor != 0:
            value = np.trunc((value - 127.0) * factor + 127.0)
        adjusted.append(np.clip(value, 0, 255).astype(np.int64))
    return _rebuild(buffer, a, *adjusted)


def color_balance(buffer: PixelBuffer, red: float, green: float, blue: float) -> PixelBuffer:
    a, r, g, b = buffer.channels()
    return _rebuild(
        buffer,
        a,
        _trunc_clamp(r + red),
        _trunc_clamp(g + green),
        _trunc_clamp(b + blue),
    )


def colorize(buffer: PixelBuffer, red: float, green: float, blue: float) -> PixelBuffer:
    """Scale each channel by the tint colour's component / 255."""
    a, r, g, b = buffer.channels()
    return _rebuild(
        buffer,
        a,
        _trunc_clamp(r * (red / 255.0)),
        _trunc_clamp(g * (green / 255.0)),
        _trunc_clamp(b * (blue / 255.0)),
    )


def channel_weights(red: float, green: float, blue: float) -> Tuple[float, float, float]:
    """
    Normalize three channel weights so that their mean is 1.

    Raises:
        ValueError: If all three weights are zero
    """
    mean = (red + green + blue) / 3.0
    if mean == 0:
        raise ValueError("Channel weights cannot all be zero")
    return red / mean, green / mean, blue / mean


def color_weight_balance(buffer: PixelBuffer, red: float, green: float, blue: float) -> PixelBuffer:
    """
    Reweight the colour channels.

    Args:
        buffer: Source buffer
        red, green, blue: Relative channel weights; only their ratios matter

    Returns:
        New reweighted PixelBuffer

    Raises:
        ValueError: If all three weights are zero
    """
    w_red, w_green, w_blue = channel_weights(red, green, blue)
    a, r, g, b = buffer.channels()
    return _rebuild(
        buffer,
        a,
        _trunc_clamp(r * w_red),
        _trunc_clamp(g * w_green),
        _trunc_clamp(b * w_blue),
    )


def desaturate(buffer: PixelBuffer, red: float = 1.0, green: float = 1.0, blue: float = 1.0) -> PixelBuffer:
    """
    Convert to gray after reweighting the channels.

    Each pixel becomes the plain average of its rebalanced R, G and B.
    """
    balanced = color_weight_balance(buffer, red, green, blue)
    a, r, g, b = balanced.channels()
    gray = (r + g + b) // 3
    return _rebuild(buffer, a, gray, gray, gray)


def invert(buffer: PixelBuffer) -> PixelBuffer:
    a, r, g, b = buffer.channels()
    return _rebuild(buffer, a, 255 - r, 255 - g, 255 - b)


def posterize(buffer: PixelBuffer, levels: int) -> PixelBuffer:
    """
    Quantize every channel to floor(v / step) * step with step = 256 // levels.

    Args:
        buffer: Source buffer
        levels: Number of levels per channel (1-256)

    Returns:
        New posterized PixelBuffer with alpha 255

    Raises:
        ValueError: If levels is outside 1-256
    """
    if not 1 <= levels <= 256:
        raise ValueError(f"levels must be 1-256, got {levels}")

    step = 256 // int(levels)
    _, r, g, b = buffer.channels()
    return _rebuild(buffer, 255, (r // step) * step, (g // step) * step, (b // step) * step)


def grayscale(buffer: PixelBuffer) -> np.ndarray:
    """Return the flat int64 array of (r + g + b) // 3 per pixel."""
    _, r, g, b = buffer.channels()
    return (r + g + b) // 3


def threshold(buffer: PixelBuffer) -> PixelBuffer:
    """Desaturate, then map values above 127 to white and the rest to black."""
    gray = desaturate(buffer)
    a, value, _, _ = gray.channels()
    level = np.where(value > 127, 255, 0)
    return _rebuild(buffer, a, level, level, level)
