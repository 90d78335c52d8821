"""
Tests for photomosaic corpus building and rendering.

Tests cover:
- Corpus preprocessing and skipped files
- Average colour offsets
- Tile blending
- Mosaic rendering, jitter, scaling and tile failures
"""

import logging

import numpy as np
import pytest
from PIL import Image

from conftest import solid
from IMP_Libs.PhotomosaicLib.codec import PillowCodec, PillowConverter
from IMP_Libs.PhotomosaicLib.corpus_store import load_corpus
from IMP_Libs.PhotomosaicLib.photomosaic import (
    PhotomosaicBuilder,
    average_color,
    blend_tile,
    build_corpus,
)
from IMP_Libs.constants import CORPUS_FILE_NAME, TILES_DIR_NAME


@pytest.fixture
def corpus_folder(tmp_path, photo_files, rng):
    """Build a 4x4-tile corpus from the sample photos."""
    folder = tmp_path / "corpus"
    build_corpus(photo_files, folder, 4, 4, converter=PillowConverter(), codec=PillowCodec(), rng=rng)
    return folder


class TestBuildCorpus:
    """Tests for corpus preprocessing."""

    def test_writes_tiles_and_index(self, tmp_path, photo_files, rng):
        folder = tmp_path / "corpus"
        corpus = build_corpus(photo_files, folder, 4, 4, rng=rng)

        assert len(corpus.nodes) == len(photo_files)
        assert (folder / CORPUS_FILE_NAME).exists()
        with Image.open(folder / TILES_DIR_NAME / "0.png") as tile:
            assert tile.size == (4, 4)

    def test_index_matches_returned_corpus(self, corpus_folder):
        loaded = load_corpus(corpus_folder / CORPUS_FILE_NAME)

        assert (loaded.tile_width, loaded.tile_height) == (4, 4)
        assert [node.file_ref for node in loaded.nodes] == [f"{i}.png" for i in range(6)]

    def test_average_colours_near_source(self, corpus_folder, sample_rgba_colors):
        loaded = load_corpus(corpus_folder / CORPUS_FILE_NAME)
        for node, color in zip(loaded.nodes, sample_rgba_colors):
            assert np.allclose(node.rgb, color[:3], atol=0.5)

    def test_unreadable_files_are_skipped(self, tmp_path, photo_files, rng, caplog):
        broken = tmp_path / "broken.png"
        broken.write_text("not an image")

        with caplog.at_level(logging.WARNING):
            corpus = build_corpus([broken] + photo_files, tmp_path / "corpus", 4, 4, rng=rng)

        assert len(corpus.nodes) == len(photo_files)
        assert "Skipping" in caplog.text

    def test_no_index_without_tiles(self, tmp_path, rng):
        broken = tmp_path / "broken.png"
        broken.write_text("not an image")
        folder = tmp_path / "corpus"

        corpus = build_corpus([broken], folder, 4, 4, rng=rng)

        assert corpus.nodes == []
        assert not (folder / CORPUS_FILE_NAME).exists()

    def test_invalid_tile_size(self, tmp_path, photo_files):
        with pytest.raises(ValueError):
            build_corpus(photo_files, tmp_path, 0, 4)


class TestHelpers:
    """Tests for average_color and blend_tile."""

    def test_average_color_offset_bounded(self, rng):
        r, g, b = average_color(solid(4, 4, 100, 50, 0), rng)
        assert 99.5 <= r < 100.5
        assert 49.5 <= g < 50.5
        assert -0.5 <= b < 0.5

    def test_blend_zero_amount_keeps_tile(self):
        tile = np.full((2, 2), 0x00102030, dtype=np.uint32)
        assert blend_tile(tile, (255, 0, 0), 0.0).tolist() == [[0xFF102030] * 2] * 2

    def test_blend_full_amount_tints(self):
        tile = np.full((1, 1), 0xFFFFFFFF, dtype=np.uint32)
        assert int(blend_tile(tile, (255, 0, 128), 1.0)[0, 0]) == 0xFFFF0080


class TestPhotomosaicBuilder:
    """Tests for rendering."""

    def test_blocks_use_nearest_tile(self, corpus_folder, rng):
        builder = PhotomosaicBuilder(codec=PillowCodec(), rng=rng)
        result = builder.build(solid(8, 8, 250, 5, 5), corpus_folder)

        red_tile = PillowCodec().decode(corpus_folder / TILES_DIR_NAME / "0.png")
        assert result.tiles_placed == 4
        assert result.tiles_failed == 0
        assert result.corpus_size == 6
        assert result.buffer.grid()[0:4, 0:4].tolist() == (red_tile.grid() | 0xFF000000).tolist()

    def test_every_pixel_covered(self, corpus_folder, rng):
        target = solid(10, 6, 0, 0, 250)
        result = PhotomosaicBuilder(rng=rng).build(target, corpus_folder)

        blue_tile = PillowCodec().decode(corpus_folder / TILES_DIR_NAME / "2.png").grid()
        grid = result.buffer.grid()
        for top in range(0, 6, 4):
            for left in range(0, 10, 4):
                block = grid[top:top + 4, left:left + 4]
                expected = blue_tile[:block.shape[0], :block.shape[1]] | 0xFF000000
                assert block.tolist() == expected.tolist()

    def test_scaled_output(self, corpus_folder, rng):
        result = PhotomosaicBuilder(rng=rng).build(solid(8, 8, 0, 0, 0), corpus_folder, i_scale=2.0)
        assert (result.buffer.width, result.buffer.height) == (16, 16)

    def test_jitter_picks_among_nearest(self, corpus_folder, rng):
        result = PhotomosaicBuilder(rng=rng).build(solid(8, 8, 128, 128, 128), corpus_folder, jitter=3)
        assert result.tiles_placed == 4

    def test_blend(self, corpus_folder, rng):
        result = PhotomosaicBuilder(rng=rng).build(
            solid(4, 4, 255, 255, 255), corpus_folder, blend=True, blend_amount=1.0
        )
        # Full blend toward white leaves the white tile white.
        assert set(result.buffer.pixels.tolist()) == {0xFFFFFFFF}

    def test_corpus_released_after_build(self, corpus_folder, rng):
        builder = PhotomosaicBuilder(rng=rng)
        builder.build(solid(4, 4, 0, 0, 0), corpus_folder)
        assert builder.corpus is None

    def test_missing_corpus_returns_none(self, tmp_path, rng, caplog):
        with caplog.at_level(logging.ERROR):
            result = PhotomosaicBuilder(rng=rng).build(solid(4, 4, 0, 0, 0), tmp_path)

        assert result is None
        assert "rebuild the corpus" in caplog.text

    def test_small_tile_is_skipped(self, corpus_folder, rng):
        Image.new("RGBA", (2, 2), (255, 0, 0, 255)).save(corpus_folder / TILES_DIR_NAME / "0.png")
        target = solid(8, 8, 250, 5, 5)

        result = PhotomosaicBuilder(rng=rng).build(target, corpus_folder)

        assert result.tiles_failed == 4
        assert result.tiles_placed == 0

    def test_negative_jitter(self, corpus_folder, rng):
        with pytest.raises(ValueError):
            PhotomosaicBuilder(rng=rng).build(solid(4, 4, 0, 0, 0), corpus_folder, jitter=-1)

    def test_empty_scale(self, corpus_folder, rng):
        with pytest.raises(ValueError):
            PhotomosaicBuilder(rng=rng).build(solid(4, 4, 0, 0, 0), corpus_folder, i_scale=0.1)
