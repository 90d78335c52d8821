"""
Packed ARGB pixel buffers for IMP.

A PixelBuffer is the unit of state shared by every layer, filter and
renderer. Pixels are 32-bit packed ARGB values stored row-major in a flat
numpy array (bits 31-24 alpha, 23-16 red, 15-8 green, 7-0 blue).

Buffers are immutable: the backing array is flagged read-only on
construction, so every transform has to allocate a fresh output.

Classes:
    PixelBuffer: Immutable width x height ARGB pixel grid

Functions:
    pack_argb: Pack channel arrays into ARGB words
    unpack_argb: Split ARGB words into (a, r, g, b) channel arrays
"""

from typing import Any, Optional, Tuple

import numpy as np
from PIL import Image

from IMP_Libs.constants import OPAQUE_ALPHA, RGB_MASK

Channels = Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]


def pack_argb(a: Any, r: Any, g: Any, b: Any) -> np.ndarray:
    """
    Pack channel values into 32-bit ARGB words.

    Each channel is clipped to 0-255 before packing, so callers may hand in
    int64 or float intermediates straight from their arithmetic.

    Args:
        a, r, g, b: Scalars or equally-shaped arrays of channel values

    Returns:
        uint32 array of packed pixels
    """
    a = np.clip(np.asarray(a, dtype=np.int64), 0, 255).astype(np.uint32)
    r = np.clip(np.asarray(r, dtype=np.int64), 0, 255).astype(np.uint32)
    g = np.clip(np.asarray(g, dtype=np.int64), 0, 255).astype(np.uint32)
    b = np.clip(np.asarray(b, dtype=np.int64), 0, 255).astype(np.uint32)
    return (a << 24) | (r << 16) | (g << 8) | b


def unpack_argb(values: Any) -> Channels:
    """Split packed ARGB words into int64 (a, r, g, b) arrays."""
    values = np.asarray(values, dtype=np.uint32).astype(np.int64)
    return (
        (values >> 24) & 0xFF,
        (values >> 16) & 0xFF,
        (values >> 8) & 0xFF,
        values & 0xFF,
    )


class PixelBuffer:
    """
    Immutable ARGB pixel grid.

    Attributes:
        width: Number of columns
        height: Number of rows
        pixels: Read-only flat uint32 array of length width * height
    """

    __slots__ = ("width", "height", "pixels")

    def __init__(self, width: int, height: int, pixels: Any):
        width = int(width)
        height = int(height)
        if width < 0 or height < 0:
            raise ValueError(f"Buffer dimensions must be non-negative, got {width}x{height}")

        data = np.array(pixels, dtype=np.uint32).reshape(-1)
        if data.size != width * height:
            raise ValueError(
                f"Buffer length {data.size} does not match dimensions {width}x{height}"
            )
        data.setflags(write=False)

        object.__setattr__(self, "width", width)
        object.__setattr__(self, "height", height)
        object.__setattr__(self, "pixels", data)

    def __setattr__(self, name, value):
        raise AttributeError("PixelBuffer is immutable")

    def __eq__(self, other):
        if not isinstance(other, PixelBuffer):
            return NotImplemented
        return (
            self.width == other.width
            and self.height == other.height
            and np.array_equal(self.pixels, other.pixels)
        )

    def __hash__(self):
        return hash((self.width, self.height, self.pixels.tobytes()))

    def __repr__(self):
        return f"PixelBuffer({self.width}x{self.height})"

    def __len__(self):
        return int(self.pixels.size)

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------

    @classmethod
    def blank(cls, width: int, height: int, fill: int = 0) -> "PixelBuffer":
        """Create a buffer with every pixel set to ``fill`` (transparent black by default)."""
        return cls(width, height, np.full(int(width) * int(height), fill, dtype=np.uint32))

    @classmethod
    def from_grid(cls, grid: Any) -> "PixelBuffer":
        """Create a buffer from a (height, width) array of packed pixels."""
        grid = np.asarray(grid, dtype=np.uint32)
        if grid.ndim != 2:
            raise ValueError(f"Expected a 2-D pixel grid, got shape {grid.shape}")
        height, width = grid.shape
        return cls(width, height, grid)

    @classmethod
    def from_channels(
        cls,
        width: int,
        height: int,
        r: Any,
        g: Any,
        b: Any,
        a: Optional[Any] = None,
    ) -> "PixelBuffer":
        """
        Pack separate channel planes into a buffer.

        Args:
            width: Buffer width
            height: Buffer height
            r, g, b: Channel arrays (any shape with width * height elements)
            a: Alpha channel, defaults to fully opaque

        Returns:
            A new PixelBuffer
        """
        if a is None:
            a = 255
        packed = pack_argb(
            np.broadcast_to(np.asarray(a), np.shape(r)),
            r,
            g,
            b,
        )
        return cls(width, height, packed)

    @classmethod
    def from_image(cls, image: Any) -> "PixelBuffer":
        """
        Convert a PIL Image into a PixelBuffer.

        Args:
            image: PIL Image in any mode

        Returns:
            A new PixelBuffer holding the image's RGBA pixels

        Raises:
            TypeError: If image is not a PIL Image
        """
        if not hasattr(image, "convert"):
            raise TypeError(f"Expected PIL Image, got {type(image)}")

        rgba = np.asarray(image.convert("RGBA"), dtype=np.uint32)
        height, width = rgba.shape[:2]
        packed = (
            (rgba[..., 3] << 24) | (rgba[..., 0] << 16) | (rgba[..., 1] << 8) | rgba[..., 2]
        )
        return cls(width, height, packed)

    # ------------------------------------------------------------------
    # Views and conversions
    # ------------------------------------------------------------------

    def grid(self) -> np.ndarray:
        """Return a read-only (height, width) view of the pixels."""
        return self.pixels.reshape(self.height, self.width)

    def channels(self) -> Channels:
        """Return flat int64 (a, r, g, b) channel arrays."""
        return unpack_argb(self.pixels)

    def rgb_planes(self) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Return (r, g, b) as int64 arrays shaped (height, width)."""
        _, r, g, b = self.channels()
        shape = (self.height, self.width)
        return r.reshape(shape), g.reshape(shape), b.reshape(shape)

    def pixel(self, x: int, y: int) -> int:
        """Return the packed ARGB value at column x, row y."""
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise IndexError(f"Pixel ({x}, {y}) outside {self.width}x{self.height} buffer")
        return int(self.pixels[y * self.width + x])

    def with_opaque_alpha(self) -> "PixelBuffer":
        """Return a copy with every alpha byte forced to 255."""
        return PixelBuffer(self.width, self.height, self.pixels | np.uint32(OPAQUE_ALPHA))

    def without_alpha(self) -> "PixelBuffer":
        """Return a copy with every alpha byte cleared to 0."""
        return PixelBuffer(self.width, self.height, self.pixels & np.uint32(RGB_MASK))

    def copy(self) -> "PixelBuffer":
        return PixelBuffer(self.width, self.height, self.pixels)

    def to_image(self) -> Image.Image:
        """Convert the buffer to an RGBA PIL Image."""
        a, r, g, b = self.channels()
        rgba = np.stack([r, g, b, a], axis=-1).astype(np.uint8)
        return Image.fromarray(rgba.reshape(self.height, self.width, 4))
