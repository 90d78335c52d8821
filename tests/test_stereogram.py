"""
Tests for random-dot and ASCII autostereograms.
"""

import unittest

import numpy as np

from conftest import gradient, solid
from IMP_Libs.CanvasLib.pixel_buffer import PixelBuffer
from IMP_Libs.RenderLib.stereogram import ascii_stereogram, stereogram


class TestStereogram(unittest.TestCase):
    """Test the random-dot stereogram."""

    def test_output_size_and_alpha(self):
        result = stereogram(gradient(40, 12), 10, np.random.default_rng(0))

        self.assertEqual((result.width, result.height), (40, 12))
        self.assertTrue(all((value >> 24) == 0xFF for value in result.pixels.tolist()))

    def test_flat_field_repeats_with_strip_width(self):
        result = stereogram(solid(50, 6, 0, 0, 0), 10, np.random.default_rng(1)).grid()
        self.assertTrue(np.array_equal(result[:, :40], result[:, 10:50]))

    def test_raised_field_shortens_period(self):
        """A raised region breaks the plain strip repetition."""
        blue = np.zeros((6, 50), dtype=np.int64)
        blue[:, 20:30] = 255
        field = PixelBuffer.from_channels(50, 6, np.zeros_like(blue), np.zeros_like(blue), blue)

        result = stereogram(field, 10, np.random.default_rng(1)).grid()

        self.assertTrue(np.array_equal(result[:, :10], result[:, 10:20]))
        self.assertFalse(np.array_equal(result[:, 10:20], result[:, 20:30]))

    def test_seeded_output_is_repeatable(self):
        source = gradient(30, 8)
        first = stereogram(source, 6, np.random.default_rng(5))
        second = stereogram(source, 6, np.random.default_rng(5))
        self.assertEqual(first, second)

    def test_width_bounds(self):
        with self.assertRaises(ValueError):
            stereogram(gradient(4, 4), 0)
        with self.assertRaises(ValueError):
            stereogram(gradient(4, 4), 1021)


class TestAsciiStereogram:
    """Tests for the character stereogram."""

    def test_shape(self):
        text = ascii_stereogram(solid(80, 40, 0, 0, 0), np.random.default_rng(0))
        lines = text.split("\n")

        # 40 rows of 16-pixel blocks -> 3 lines, each ending in a newline.
        assert lines[-1] == ""
        assert len(lines) == 4
        assert all(len(line) == 10 for line in lines[:-1])

    def test_capital_letters_only(self):
        text = ascii_stereogram(gradient(64, 32), np.random.default_rng(2))
        assert set(text.replace("\n", "")) <= set("ABCDEFGHIJKLMNOPQRSTUVWXY")

    def test_flat_field_repeats_every_twelve(self):
        text = ascii_stereogram(solid(8 * 30, 16, 0, 0, 0), np.random.default_rng(3))
        line = text.split("\n")[0]
        assert line[:18] == line[12:30]

    def test_short_image(self):
        text = ascii_stereogram(solid(16, 1, 0, 0, 200), np.random.default_rng(4))
        assert text.count("\n") == 1

    def test_empty_image(self):
        assert ascii_stereogram(PixelBuffer(0, 0, [])) == ""
