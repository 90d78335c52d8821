"""
FiltersLib - Pixel filters

This module provides convolution kernels, tone operations, error-diffusion
dithering and distortion effects. All filters take a PixelBuffer and return
a new one.
"""

from IMP_Libs.FiltersLib.convolution import (
    Kernel,
    KERNEL_PRESETS,
    convolve,
    get_kernel,
    apply_kernel,
)
from IMP_Libs.FiltersLib.tone import (
    brightness_contrast,
    color_balance,
    colorize,
    channel_weights,
    color_weight_balance,
    desaturate,
    invert,
    posterize,
    grayscale,
    threshold,
)
from IMP_Libs.FiltersLib.dither import dithered_posterize, quantization_step
from IMP_Libs.FiltersLib.effects import oil_paint, wave

__all__ = [
    "Kernel",
    "KERNEL_PRESETS",
    "convolve",
    "get_kernel",
    "apply_kernel",
    "brightness_contrast",
    "color_balance",
    "colorize",
    "channel_weights",
    "color_weight_balance",
    "desaturate",
    "invert",
    "posterize",
    "grayscale",
    "threshold",
    "dithered_posterize",
    "quantization_step",
    "oil_paint",
    "wave",
]
