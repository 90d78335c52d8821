"""
Tests for the layer compositor.

Tests cover:
- Empty and single-layer renders
- Normal blending with opacity
- Add, subtract, multiply and divide laws
- Coverage stop modes
- Offsets and clipping
"""

import numpy as np
import pytest

from conftest import gradient, solid
from IMP_Libs.CanvasLib.compositor import (
    STOP_PER_PIXEL,
    STOP_PER_ROW,
    composite_layers,
    project_layer,
)
from IMP_Libs.CanvasLib.layer import BlendMode, Layer
from IMP_Libs.CanvasLib.pixel_buffer import PixelBuffer, pack_argb


def rgb(buffer, x=0, y=0):
    value = buffer.pixel(x, y)
    return ((value >> 16) & 0xFF, (value >> 8) & 0xFF, value & 0xFF)


class TestBasicRender:
    """Tests for renders without blending interactions."""

    def test_no_layers_gives_opaque_black(self):
        result = composite_layers([], 3, 2)

        assert (result.width, result.height) == (3, 2)
        assert set(result.pixels.tolist()) == {0xFF000000}

    def test_single_opaque_layer_is_identity(self):
        source = gradient(5, 4)
        result = composite_layers([Layer(source)], 5, 4)

        assert result == source

    def test_output_alpha_is_opaque(self):
        source = solid(2, 2, 10, 20, 30, a=255)
        result = composite_layers([Layer(source)], 2, 2)

        assert all((value >> 24) == 0xFF for value in result.pixels.tolist())

    def test_hidden_layer_is_skipped(self):
        layer = Layer(solid(2, 2, 255, 255, 255), visible=False)
        result = composite_layers([layer], 2, 2)

        assert rgb(result) == (0, 0, 0)

    def test_unknown_stop_mode(self):
        with pytest.raises(ValueError):
            composite_layers([], 1, 1, stop_mode="column")


class TestNormalBlend:
    """Tests for Normal coverage and opacity."""

    def test_half_opacity_red_over_white(self):
        red = Layer(solid(2, 2, 255, 0, 0), opacity=0.5)
        white = Layer(solid(2, 2, 255, 255, 255))

        result = composite_layers([red, white], 2, 2)

        assert rgb(result) == (255, 127, 127)

    def test_front_layer_hides_back(self):
        front = Layer(solid(2, 2, 0, 0, 255))
        back = Layer(solid(2, 2, 255, 0, 0))

        assert rgb(composite_layers([front, back], 2, 2)) == (0, 0, 255)

    def test_transparent_pixels_show_through(self):
        front = Layer(solid(2, 2, 0, 255, 0, a=0))
        back = Layer(solid(2, 2, 255, 0, 0))

        assert rgb(composite_layers([front, back], 2, 2)) == (255, 0, 0)

    def test_partial_alpha(self):
        front = Layer(solid(1, 1, 0, 0, 255, a=51))
        back = Layer(solid(1, 1, 0, 0, 0))

        # 255 * 51 / 255 = 51
        assert rgb(composite_layers([front, back], 1, 1)) == (0, 0, 51)


class TestBlendLaws:
    """Tests for the non-Normal blend modes."""

    def test_add_sums_channels(self):
        top = Layer(solid(1, 1, 100, 50, 0), blend_mode=BlendMode.ADD)
        base = Layer(solid(1, 1, 100, 250, 10))

        assert rgb(composite_layers([top, base], 1, 1)) == (200, 255, 10)

    def test_subtract_removes_channels(self):
        top = Layer(solid(1, 1, 50, 100, 0), blend_mode=BlendMode.SUBTRACT)
        base = Layer(solid(1, 1, 100, 50, 10))

        assert rgb(composite_layers([top, base], 1, 1)) == (50, 0, 10)

    def test_multiply_scales(self):
        top = Layer(solid(1, 1, 255, 0, 51), blend_mode=BlendMode.MULTIPLY)
        base = Layer(solid(1, 1, 200, 200, 200))

        assert rgb(composite_layers([top, base], 1, 1)) == (200, 0, 40)

    def test_divide_at_zero_opacity_brightens(self):
        top = Layer(solid(1, 1, 255, 255, 255), opacity=0.0, blend_mode=BlendMode.DIVIDE)
        base = Layer(solid(1, 1, 100, 100, 100))

        # Zero opacity skips the layer entirely.
        assert rgb(composite_layers([top, base], 1, 1)) == (100, 100, 100)

    def test_divide_by_white_is_identity(self):
        top = Layer(solid(1, 1, 255, 255, 255), opacity=0.5, blend_mode=BlendMode.DIVIDE)
        base = Layer(solid(1, 1, 100, 60, 20))

        assert rgb(composite_layers([top, base], 1, 1)) == (100, 60, 20)

    def test_divide_outside_footprint_untouched(self):
        top = Layer(solid(1, 1, 128, 128, 128), opacity=0.5, blend_mode=BlendMode.DIVIDE)
        base = Layer(solid(2, 1, 100, 100, 100))

        result = composite_layers([top, base], 2, 1)

        assert rgb(result, 1, 0) == (100, 100, 100)
        assert rgb(result, 0, 0) != (100, 100, 100)


class TestStopModes:
    """Tests for the per-pixel and per-row coverage stop rules."""

    def _layers(self):
        # Front layer covers only the first pixel of a 3-pixel row.
        mask = PixelBuffer(3, 1, [int(pack_argb(255, 0, 0, 255)), 0, 0])
        back = solid(3, 1, 255, 0, 0)
        return [Layer(mask), Layer(back)]

    def test_pixel_mode_continues_after_covered_pixel(self):
        result = composite_layers(self._layers(), 3, 1, stop_mode=STOP_PER_PIXEL)

        assert rgb(result, 0) == (0, 0, 255)
        assert rgb(result, 2) == (255, 0, 0)

    def test_row_mode_stops_row(self):
        result = composite_layers(self._layers(), 3, 1, stop_mode=STOP_PER_ROW)

        assert rgb(result, 0) == (0, 0, 255)
        assert rgb(result, 2) == (0, 0, 0)


class TestOffsets:
    """Tests for layer placement."""

    def test_positive_offset(self):
        layer = Layer(solid(1, 1, 255, 255, 255), x=2, y=1)
        result = composite_layers([layer], 3, 2)

        assert rgb(result, 2, 1) == (255, 255, 255)
        assert rgb(result, 0, 0) == (0, 0, 0)

    def test_negative_offset_clips_near_edge(self):
        grid = np.array([[1, 2, 3], [4, 5, 6]], dtype=np.uint32) | np.uint32(0xFF000000)
        layer = Layer(PixelBuffer.from_grid(grid), x=-1, y=-1)

        result = composite_layers([layer], 2, 1)

        assert rgb(result, 0) == (0, 0, 5)
        assert rgb(result, 1) == (0, 0, 6)

    def test_fully_offscreen_layer(self):
        layer = Layer(solid(2, 2, 255, 255, 255), x=5, y=0)

        assert project_layer(layer, 3, 3) is None
        assert rgb(composite_layers([layer], 3, 3)) == (0, 0, 0)

    def test_projection_footprint(self):
        layer = Layer(solid(2, 2, 1, 1, 1), x=1, y=0)
        pixels, footprint = project_layer(layer, 4, 1)

        assert footprint.tolist() == [[False, True, True, False]]
        assert pixels[0, 0] == 0
