"""
Matrix convolution filters.

Provides a generic N x N convolution with edge replication plus the preset
kernels exposed by the editor (blur, sharpen, edge, emboss, motion blur).

Example:
    >>> from IMP_Libs.FiltersLib.convolution import convolve, KERNEL_PRESETS
    >>> blurred = convolve(buffer, KERNEL_PRESETS["blur"].weights, 1)
    >>> sharper = apply_kernel(buffer, "more_sharpen")
"""

from dataclasses import dataclass
from typing import Any, Dict, List

import numpy as np

from IMP_Libs.CanvasLib.pixel_buffer import PixelBuffer


@dataclass(frozen=True)
class Kernel:
    """A named convolution kernel.

    Attributes:
        name: Preset identifier
        weights: Square kernel as nested lists (odd size)
        normalizer: Divisor applied to the weighted sum (0 means none)
    """
    name: str
    weights: List[List[float]]
    normalizer: float = 1.0

    @property
    def size(self) -> int:
        return len(self.weights)


def _as_kernel_array(kernel: Any) -> np.ndarray:
    weights = np.asarray(kernel, dtype=np.float64)
    if weights.ndim == 1:
        size = int(round(weights.size ** 0.5))
        if size * size != weights.size:
            raise ValueError(f"Flat kernel of {weights.size} taps is not square")
        weights = weights.reshape(size, size)
    if weights.ndim != 2 or weights.shape[0] != weights.shape[1]:
        raise ValueError(f"Kernel must be square, got shape {weights.shape}")
    if weights.shape[0] % 2 == 0:
        raise ValueError(f"Kernel size must be odd, got {weights.shape[0]}")
    return weights


def convolve(buffer: PixelBuffer, kernel: Any, normalizer: float = 1.0) -> PixelBuffer:
    """
    Convolve every colour channel with a square kernel.

    Samples outside the image repeat the nearest edge pixel along each axis.
    Zero taps are skipped. The weighted sum is divided by normalizer when it
    is non-zero, then truncated and clamped to 0-255. Alpha becomes 255.

    Args:
        buffer: Source buffer (left untouched)
        kernel: N x N nested sequence or array, or a flat list of N*N taps
        normalizer: Divisor for the weighted sum; 0 disables division

    Returns:
        New convolved PixelBuffer

    Raises:
        ValueError: If the kernel is not square with odd size
    """
    weights = _as_kernel_array(kernel)
    half = weights.shape[0] // 2

    results = []
    for plane in buffer.rgb_planes():
        padded = np.pad(plane.astype(np.float64), half, mode="edge")
        total = np.zeros(plane.shape, dtype=np.float64)
        for i, j in zip(*np.nonzero(weights)):
            total += weights[i, j] * padded[i:i + buffer.height, j:j + buffer.width]
        if normalizer != 0:
            total /= normalizer
        results.append(np.clip(total, 0, 255).astype(np.int64))

    return PixelBuffer.from_channels(buffer.width, buffer.height, *results)


def _negated(weights: List[List[float]]) -> List[List[float]]:
    return [[-w for w in row] for row in weights]


_EDGE_HORIZONTAL = [[1, 0, -1], [2, 0, -2], [1, 0, -1]]
_EDGE_VERTICAL = [[1, 2, 1], [0, 0, 0], [-1, -2, -1]]

KERNEL_PRESETS: Dict[str, Kernel] = {
    "blur": Kernel("blur", [[0, 0.2, 0], [0.2, 0.2, 0.2], [0, 0.2, 0]], 1),
    "more_blur": Kernel(
        "more_blur",
        [
            [0, 0, 1, 0, 0],
            [0, 1, 1, 1, 0],
            [1, 1, 1, 1, 1],
            [0, 1, 1, 1, 0],
            [0, 0, 1, 0, 0],
        ],
        13,
    ),
    "sharpen": Kernel("sharpen", [[-1, -1, -1], [-1, 9, -1], [-1, -1, -1]], 1),
    "more_sharpen": Kernel(
        "more_sharpen",
        [
            [-1, -1, -1, -1, -1],
            [-1, 2, 2, 2, -1],
            [-1, 2, 16, 2, -1],
            [-1, 2, 2, 2, -1],
            [-1, -1, -1, -1, -1],
        ],
        16,
    ),
    "edge_horizontal_lr": Kernel("edge_horizontal_lr", _EDGE_HORIZONTAL, 6),
    "edge_horizontal_rl": Kernel("edge_horizontal_rl", _negated(_EDGE_HORIZONTAL), 6),
    "edge_vertical_ud": Kernel("edge_vertical_ud", _EDGE_VERTICAL, 6),
    "edge_vertical_du": Kernel("edge_vertical_du", _negated(_EDGE_VERTICAL), 6),
    "emboss": Kernel("emboss", [[2, 0, 0], [0, -1, 0], [0, 0, -1]], 1),
    "motion_blur": Kernel(
        "motion_blur",
        [[1 if i == j else 0 for j in range(9)] for i in range(9)],
        9,
    ),
}


def get_kernel(name: str) -> Kernel:
    """
    Look up a preset kernel.

    Raises:
        KeyError: If no preset has that name
    """
    if name not in KERNEL_PRESETS:
        available = ", ".join(sorted(KERNEL_PRESETS))
        raise KeyError(f"Unknown kernel '{name}'. Available kernels: {available}")
    return KERNEL_PRESETS[name]


def apply_kernel(buffer: PixelBuffer, name: str) -> PixelBuffer:
    kernel = get_kernel(name)
    return convolve(buffer, kernel.weights, kernel.normalizer)
