"""
Pytest configuration and shared fixtures for IMP tests.

This module provides shared test fixtures and configuration
used across multiple test modules.
"""

import numpy as np
import pytest
from PIL import Image

from IMP_Libs.CanvasLib.pixel_buffer import PixelBuffer, pack_argb


def solid(width, height, r, g, b, a=255):
    """Build a buffer filled with one colour."""
    return PixelBuffer.blank(width, height, int(pack_argb(a, r, g, b)))


def gradient(width, height):
    """Build an opaque buffer with red along x, green along y and blue fixed at 64."""
    ys, xs = np.mgrid[0:height, 0:width]
    red = (xs * 255) // max(width - 1, 1)
    green = (ys * 255) // max(height - 1, 1)
    return PixelBuffer.from_channels(width, height, red, green, np.full_like(red, 64))


@pytest.fixture
def temp_project_dir(tmp_path):
    """
    Provide a temporary directory for image and corpus files.

    Args:
        tmp_path: Pytest's built-in temporary directory fixture

    Returns:
        Path object pointing to a temporary directory
    """
    return tmp_path


@pytest.fixture
def rng():
    """Seeded random generator so stereograms and photomosaics are repeatable."""
    return np.random.default_rng(1234)


@pytest.fixture
def gradient_buffer():
    """A 16x12 opaque gradient buffer."""
    return gradient(16, 12)


@pytest.fixture
def sample_rgba_colors():
    """
    Provide a list of sample RGBA color tuples for testing.

    Returns:
        List of (R, G, B, A) tuples with common test colors
    """
    return [
        (255, 0, 0, 255),    # Red
        (0, 255, 0, 255),    # Green
        (0, 0, 255, 255),    # Blue
        (255, 255, 255, 255),  # White
        (0, 0, 0, 255),      # Black
        (128, 128, 128, 255),  # Gray
    ]


@pytest.fixture
def sample_image_file(tmp_path):
    """
    Write a small RGB gradient PNG to disk.

    Returns:
        Path to a 20x10 PNG
    """
    path = tmp_path / "sample.png"
    data = np.zeros((10, 20, 3), dtype=np.uint8)
    data[..., 0] = np.arange(20, dtype=np.uint8)[np.newaxis, :] * 12
    data[..., 1] = np.arange(10, dtype=np.uint8)[:, np.newaxis] * 25
    data[..., 2] = 200
    Image.fromarray(data, "RGB").save(path)
    return path


@pytest.fixture
def photo_files(tmp_path, sample_rgba_colors):
    """
    Write one solid 8x8 photo per sample colour.

    Returns:
        List of paths, in sample colour order
    """
    folder = tmp_path / "photos"
    folder.mkdir()
    paths = []
    for position, color in enumerate(sample_rgba_colors):
        path = folder / f"photo_{position}.png"
        Image.new("RGBA", (8, 8), color).save(path)
        paths.append(path)
    return paths
