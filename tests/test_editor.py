"""
Tests for the ImpEditor facade.

Tests cover:
- Loading and saving images
- Whole-image geometry
- Filters committed as single history entries
- Edge detection through layer operations
- Renderers and photomosaic integration
"""

import unittest

import numpy as np
import pytest
from PIL import Image

from conftest import gradient, solid
from IMP_Libs.CanvasLib.layer import BlendMode
from IMP_Libs.CanvasLib.pixel_buffer import PixelBuffer
from IMP_Libs.OperationsLib.editor import EDGE_DETECT_SEQUENCE, ImpEditor
from IMP_Libs.PhotomosaicLib.codec import ConversionError
from IMP_Libs.constants import MOSAIC_OUTPUT_PREFIX


def editor_with(buffer, **kwargs):
    editor = ImpEditor(buffer.width, buffer.height, **kwargs)
    editor.add_layer(buffer)
    return editor


class TestFiles:
    """Tests for load_image and save_image."""

    def test_load_fits_empty_canvas(self, sample_image_file):
        editor = ImpEditor()
        editor.load_image(sample_image_file)

        assert (editor.width, editor.height) == (20, 10)
        assert editor.layer_count == 1

    def test_second_load_keeps_canvas(self, sample_image_file, tmp_path):
        small = tmp_path / "small.png"
        Image.new("RGB", (3, 3), (1, 2, 3)).save(small)
        editor = ImpEditor()
        editor.load_image(sample_image_file)
        editor.load_image(small)

        assert (editor.width, editor.height) == (20, 10)
        assert editor.layer_count == 2

    def test_load_missing_file(self, tmp_path):
        with pytest.raises(OSError):
            ImpEditor().load_image(tmp_path / "missing.png")

    def test_load_non_image(self, tmp_path):
        path = tmp_path / "notes.png"
        path.write_text("hello")
        with pytest.raises(ConversionError):
            ImpEditor().load_image(path)

    def test_save_png_round_trip(self, tmp_path):
        source = gradient(6, 4)
        editor = editor_with(source)
        path = tmp_path / "out.png"

        editor.save_image(path)

        with Image.open(path) as image:
            assert image.size == (6, 4)
            assert image.getpixel((5, 3))[:3] == (255, 255, 64)

    def test_save_jpg_extension(self, tmp_path):
        editor = editor_with(gradient(6, 4))
        path = tmp_path / "out.jpg"

        editor.save_image(path)

        with Image.open(path) as image:
            assert image.format == "JPEG"

    def test_describe(self):
        editor = editor_with(gradient(6, 4))
        summary = editor.describe()
        assert summary["layers"][0]["width"] == 6


class TestGeometry(unittest.TestCase):
    """Test whole-image transforms."""

    def test_resize_replaces_stack(self):
        editor = editor_with(gradient(8, 6))
        editor.add_layer(solid(2, 2, 255, 0, 0))

        editor.resize(16, 3)

        self.assertEqual(editor.layer_count, 1)
        self.assertEqual((editor.width, editor.height), (16, 3))
        self.assertEqual(editor.layer_width, 16)

    def test_rotate_swaps_canvas(self):
        editor = editor_with(gradient(8, 6))
        editor.rotate_cw()
        self.assertEqual((editor.width, editor.height), (6, 8))

    def test_rotate_back(self):
        source = gradient(8, 6)
        editor = editor_with(source)
        editor.rotate_cw()
        editor.rotate_ccw()
        self.assertEqual(editor.canvas.selected.current, source)

    def test_flip_twice(self):
        source = gradient(5, 5)
        editor = editor_with(source)
        editor.flip_horizontal()
        editor.flip_horizontal()
        editor.flip_vertical()
        editor.rotate_180()
        editor.flip_horizontal()
        self.assertEqual(editor.canvas.selected.current, source)


class TestFilters(unittest.TestCase):
    """Test filters on the selected layer."""

    def test_filter_then_undo(self):
        source = gradient(6, 6)
        editor = editor_with(source)

        editor.invert()
        self.assertEqual(editor.undo_levels, 1)
        editor.undo()
        self.assertEqual(editor.canvas.selected.current, source)
        editor.redo()
        self.assertNotEqual(editor.canvas.selected.current, source)

    def test_filter_applies_to_selected_layer_only(self):
        editor = editor_with(solid(4, 4, 10, 10, 10))
        editor.add_layer(solid(4, 4, 20, 20, 20))
        editor.select_layer(1)

        editor.invert()

        self.assertEqual(editor.canvas.layer_at(0).history.undo_levels, 0)
        self.assertEqual(editor.canvas.layer_at(1).history.undo_levels, 1)

    def test_emboss_is_one_history_entry(self):
        editor = editor_with(gradient(8, 8))
        editor.emboss()
        self.assertEqual(editor.undo_levels, 1)

    def test_emboss_is_gray(self):
        editor = editor_with(gradient(8, 8))
        result = editor.emboss()
        _, r, g, b = result.channels()
        self.assertTrue(np.array_equal(r, g) and np.array_equal(g, b))

    def test_emboss_flat_image_is_mid_gray(self):
        editor = editor_with(solid(5, 5, 100, 100, 100))
        result = editor.emboss()
        # (2 - 1 - 1) * 100 = 0, lifted by 127.5.
        self.assertEqual(result.pixel(2, 2), 0xFF7F7F7F)

    def test_halftone_is_one_history_entry(self):
        editor = editor_with(gradient(12, 12))
        editor.halftone(3)
        self.assertEqual(editor.undo_levels, 1)

    def test_oil_paint_is_one_history_entry(self):
        editor = editor_with(gradient(6, 6))
        editor.oil_paint_effect(2, 2, 4)
        self.assertEqual(editor.undo_levels, 1)

    def test_presets(self):
        editor = editor_with(solid(6, 6, 100, 100, 100))
        for operation in (editor.blur, editor.more_blur, editor.sharpen, editor.more_sharpen, editor.motion_blur):
            operation()
        self.assertEqual(editor.undo_levels, 5)

    def test_unknown_preset(self):
        editor = editor_with(gradient(4, 4))
        with self.assertRaises(KeyError):
            editor.apply_preset("glow")
        self.assertEqual(editor.undo_levels, 0)

    def test_list_presets(self):
        self.assertIn("emboss", ImpEditor().list_presets())

    def test_filters_need_a_layer(self):
        with self.assertRaises(IndexError):
            ImpEditor(4, 4).invert()


class TestEdgeDetect:
    """Tests for edge detection through layer operations."""

    def test_sequence(self):
        assert EDGE_DETECT_SEQUENCE == (
            "edge_vertical_du",
            "edge_horizontal_lr",
            "edge_vertical_ud",
            "edge_horizontal_rl",
        )

    def test_single_history_entry_and_layer_count(self):
        editor = editor_with(gradient(8, 8))
        editor.add_layer(solid(8, 8, 1, 2, 3), position=1)
        editor.select_layer(0)

        editor.edge_detect()

        assert editor.layer_count == 2
        assert editor.selected_layer == 0
        assert editor.canvas.layer_at(0).history.undo_levels == 1
        assert editor.canvas.layer_at(1).history.undo_levels == 0

    def test_flat_image_has_no_edges(self):
        editor = editor_with(solid(6, 6, 100, 100, 100))
        layer = editor.edge_detect()
        assert set(layer.current.pixels.tolist()) == {0xFF000000}

    def test_step_has_edges(self):
        red = np.zeros((6, 6), dtype=np.int64)
        red[:, 3:] = 255
        step = PixelBuffer.from_channels(6, 6, red, red, red)
        editor = editor_with(step)

        layer = editor.edge_detect()

        grid = layer.current.grid() & 0xFF
        assert grid[:, 2:4].max() > 0
        assert grid[:, 0].max() == 0

    def test_undo_restores_original(self):
        source = gradient(6, 6)
        editor = editor_with(source)
        editor.edge_detect()
        editor.undo()
        assert editor.canvas.selected.current == source

    def test_blend_mode_of_result(self):
        editor = editor_with(gradient(6, 6))
        layer = editor.edge_detect()
        assert layer.blend_mode == BlendMode.NORMAL


class TestRenderers:
    """Tests for stereograms, recursive mosaic and HTML export."""

    def test_stereogram_adds_front_layer(self, rng):
        editor = editor_with(gradient(30, 10), rng=rng)
        editor.stereogram(10)

        assert editor.layer_count == 2
        assert editor.canvas.layer_at(0).width == 30

    def test_ascii_stereogram(self, rng):
        editor = editor_with(gradient(32, 32), rng=rng)
        assert editor.ascii_stereogram().count("\n") == 2

    def test_recur_mosaic_grows_canvas(self):
        editor = editor_with(gradient(16, 16))
        editor.add_layer(solid(4, 4, 255, 0, 0))

        editor.recur_mosaic(2.0, 0.25)

        assert editor.layer_count == 1
        assert (editor.width, editor.height) == (32, 32)

    def test_recur_mosaic_never_shrinks_canvas(self):
        editor = editor_with(gradient(16, 16))
        editor.recur_mosaic(0.5, 0.25)
        assert (editor.width, editor.height) == (16, 16)
        assert editor.layer_width == 8

    def test_html_exports(self):
        editor = editor_with(gradient(16, 16))

        assert "<PRE>" in editor.get_ascii_html(2)
        assert "<span id=" in editor.get_color_ascii_html(2, option=1)
        assert "<span id=" in editor.get_msg_html(2, "IMP", web_safe=True)

    def test_export_flattens_every_layer(self):
        editor = editor_with(solid(4, 4, 0, 0, 0))
        editor.add_layer(solid(4, 4, 255, 255, 255))
        editor.select_layer(1)

        document = editor.get_ascii_html(2)

        assert "MM" in document
        assert editor.selected_layer == 0


class TestPhotomosaic:
    """Tests for the photomosaic workflow on the editor."""

    def test_build_and_render(self, tmp_path, photo_files, sample_image_file, rng):
        folder = tmp_path / "corpus"
        editor = ImpEditor(rng=rng)
        corpus = editor.process_images(photo_files, folder, 4, 4)
        editor.load_image(sample_image_file)

        result = editor.process_image_mosaic(folder, "beach", i_scale=2.0)

        assert len(corpus.nodes) == 6
        assert result.tiles_placed == 50
        assert editor.layer_count == 2
        assert (editor.width, editor.height) == (40, 20)
        outputs = list(folder.glob(f"{MOSAIC_OUTPUT_PREFIX}*_beach.png"))
        assert len(outputs) == 1

    def test_missing_corpus(self, tmp_path, sample_image_file, rng):
        editor = ImpEditor(rng=rng)
        editor.load_image(sample_image_file)

        assert editor.process_image_mosaic(tmp_path, "none") is None
        assert editor.layer_count == 1

    def test_process_images_clears_resident_corpus(self, tmp_path, photo_files, rng):
        editor = ImpEditor(rng=rng)
        editor.process_images(photo_files[:2], tmp_path / "first", 4, 4)
        editor.photomosaic.load(tmp_path / "first")
        assert editor.photomosaic.corpus is not None

        editor.process_images(photo_files, tmp_path / "second", 4, 4)

        assert editor.photomosaic.corpus is None
