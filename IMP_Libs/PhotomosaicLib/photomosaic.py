"""
Photomosaic builder.

Two phases share only the corpus index file:

1. build_corpus() force-resizes a batch of source photos to the tile size,
   saves them as ``<folder>/mosaicTiles/<i>.png`` and records each tile's
   average colour in ``<folder>/imageTiles.data``.
2. PhotomosaicBuilder.build() indexes those colours in a KD-tree, pixelates
   the target image at tile granularity and replaces every block with the
   corpus tile whose average colour is closest.

Files that fail to convert and tiles that fail to load are logged and
skipped; neither aborts the run.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Optional, Tuple
import logging

import numpy as np

from IMP_Libs.CanvasLib.pixel_buffer import PixelBuffer, pack_argb
from IMP_Libs.CanvasLib.transforms import bilinear_resize
from IMP_Libs.MosaicLib.mosaic import mosaic
from IMP_Libs.PhotomosaicLib.codec import (
    ConversionError,
    ExternalConverter,
    ImageCodec,
    PillowCodec,
    PillowConverter,
)
from IMP_Libs.PhotomosaicLib.corpus_store import (
    CorpusFormatError,
    CorpusIndex,
    ImageNode,
    load_corpus,
    save_corpus,
)
from IMP_Libs.PhotomosaicLib.spatial_index import DuplicateCoordinateError, KDTreeIndex
from IMP_Libs.constants import CORPUS_FILE_NAME, TILES_DIR_NAME

logger = logging.getLogger(__name__)


@dataclass
class PhotomosaicResult:
    """Outcome of a photomosaic build."""
    buffer: PixelBuffer
    tiles_placed: int
    tiles_failed: int
    corpus_size: int


def average_color(buffer: PixelBuffer, rng: np.random.Generator) -> Tuple[float, float, float]:
    """
    Mean R, G, B of a buffer, each nudged by a uniform offset in [-0.5, 0.5).

    The offset keeps tiles with identical averages from colliding in the
    spatial index.
    """
    _, r, g, b = buffer.channels()
    return (
        float(rng.random() - 0.5 + r.mean()),
        float(rng.random() - 0.5 + g.mean()),
        float(rng.random() - 0.5 + b.mean()),
    )


def build_corpus(
    files: Iterable[Path],
    folder: Path,
    tile_width: int,
    tile_height: int,
    converter: Optional[ExternalConverter] = None,
    codec: Optional[ImageCodec] = None,
    rng: Optional[np.random.Generator] = None,
) -> CorpusIndex:
    """
    Preprocess source photos into a photomosaic tile corpus.

    Args:
        files: Source image paths
        folder: Corpus folder; tiles go to folder/mosaicTiles
        tile_width: Tile width in pixels
        tile_height: Tile height in pixels
        converter: Forced-resize collaborator (Pillow by default)
        codec: Image writer (Pillow by default)
        rng: Random generator for the colour offsets

    Returns:
        The CorpusIndex, also written to folder/imageTiles.data when it
        holds at least one tile

    Raises:
        ValueError: If the tile size is below 1x1
        OSError: If the corpus folder or index file cannot be written
    """
    if tile_width < 1 or tile_height < 1:
        raise ValueError(f"Tile size must be at least 1x1, got {tile_width}x{tile_height}")

    converter = converter or PillowConverter()
    codec = codec or PillowCodec()
    rng = rng if rng is not None else np.random.default_rng()

    folder = Path(folder)
    tiles_dir = folder / TILES_DIR_NAME
    tiles_dir.mkdir(parents=True, exist_ok=True)

    files = list(files)
    logger.info(f"Processing {len(files)} images into {tiles_dir}")
    corpus = CorpusIndex(tile_width=tile_width, tile_height=tile_height)

    for position, source in enumerate(files):
        destination = tiles_dir / f"{position}.png"
        try:
            tile = converter.resize(source, tile_width, tile_height)
            codec.encode(tile, destination, "PNG")
        except (ConversionError, OSError, ValueError) as exc:
            logger.warning(f"Skipping {source}: {exc}")
            continue
        corpus.nodes.append(ImageNode(rgb=average_color(tile, rng), file_ref=destination.name))
        logger.debug(f"Processed {source} -> {destination.name}")

    logger.info(f"Processed {len(corpus.nodes)} of {len(files)} images")

    if corpus.nodes:
        index_path = folder / CORPUS_FILE_NAME
        save_corpus(index_path, corpus)
        logger.info(f"Wrote tile index to {index_path}")
    return corpus


def blend_tile(tile: np.ndarray, target: Tuple[int, int, int], amount: float) -> np.ndarray:
    """
    Tint a tile toward the target colour.

    Each channel becomes int(c * (t * amount / 255 + 1 - amount)).

    Args:
        tile: (h, w) uint32 packed pixels
        target: Target (r, g, b)
        amount: Blend strength, 0.0 keeps the tile unchanged

    Returns:
        New (h, w) uint32 array with alpha 255
    """
    packed = tile.astype(np.int64)
    channels = [(packed >> 16) & 0xFF, (packed >> 8) & 0xFF, packed & 0xFF]
    if amount != 0:
        channels = [
            np.trunc(channel * (value * amount / 255.0 + 1.0 - amount))
            for channel, value in zip(channels, target)
        ]
    return pack_argb(255, channels[0], channels[1], channels[2])


class PhotomosaicBuilder:
    """
    Matches target image blocks against a preprocessed tile corpus.

    The corpus list is loaded lazily from the folder's index file and is
    released once it has been turned into a spatial index.
    """

    def __init__(
        self,
        codec: Optional[ImageCodec] = None,
        rng: Optional[np.random.Generator] = None,
        index_factory: Callable[[], KDTreeIndex] = KDTreeIndex,
    ):
        self.codec = codec or PillowCodec()
        self.rng = rng if rng is not None else np.random.default_rng()
        self.index_factory = index_factory
        self.corpus: Optional[CorpusIndex] = None

    def load(self, folder: Path) -> Optional[CorpusIndex]:
        """Load the corpus index unless one is already resident; None if unusable."""
        if self.corpus is not None:
            return self.corpus

        index_path = Path(folder) / CORPUS_FILE_NAME
        logger.info(f"Reading tile index {index_path}")
        try:
            self.corpus = load_corpus(index_path)
        except CorpusFormatError as exc:
            logger.error(f"Unusable tile index, rebuild the corpus first: {exc}")
            return None
        return self.corpus

    def _build_index(self, corpus: CorpusIndex, tiles_dir: Path) -> KDTreeIndex:
        index = self.index_factory()
        for node in corpus.nodes:
            try:
                index.insert(node.rgb, tiles_dir / node.file_ref)
            except DuplicateCoordinateError:
                logger.warning(f"Duplicate coordinate for {node.file_ref}, skipping image")
        return index

    def _pick_tile(self, index: KDTreeIndex, rgb: Tuple[int, int, int], jitter: int) -> Path:
        if jitter > 0:
            rank = int(self.rng.integers(jitter))
            candidates = index.nearest_k(rgb, rank + 1)
        else:
            candidates = index.nearest_k(rgb, 1)
        if not candidates:
            raise LookupError("Tile index is empty")
        return candidates[-1]

    def build(
        self,
        flat: PixelBuffer,
        folder: Path,
        i_scale: float = 1.0,
        blend: bool = False,
        blend_amount: float = 0.0,
        jitter: int = 0,
    ) -> Optional[PhotomosaicResult]:
        """
        Render a photomosaic of a flattened image.

        Args:
            flat: Target image
            folder: Corpus folder holding imageTiles.data and mosaicTiles/
            i_scale: Output size relative to the target
            blend: Tint tiles toward their block colour
            blend_amount: Tint strength (0.0-1.0)
            jitter: When > 0, pick uniformly among the ``jitter`` nearest tiles

        Returns:
            PhotomosaicResult, or None when no usable corpus index exists

        Raises:
            ValueError: If i_scale yields an empty image or jitter is negative
        """
        if jitter < 0:
            raise ValueError(f"jitter must be >= 0, got {jitter}")
        out_width = int(flat.width * i_scale)
        out_height = int(flat.height * i_scale)
        if out_width < 1 or out_height < 1:
            raise ValueError(f"i_scale {i_scale} gives an empty image ({out_width}x{out_height})")

        corpus = self.load(folder)
        if corpus is None:
            return None

        tile_width, tile_height = corpus.tile_width, corpus.tile_height
        logger.info(f"Building KD-tree over {len(corpus.nodes)} tiles")
        index = self._build_index(corpus, Path(folder) / TILES_DIR_NAME)
        self.corpus = None

        blocks = mosaic(bilinear_resize(flat, out_width, out_height), tile_width, tile_height)
        source = blocks.grid()
        output = np.array(source, dtype=np.uint32)

        logger.info(
            f"Rendering {out_width}x{out_height} mosaic from {len(index)} tiles "
            f"of {tile_width}x{tile_height}px"
        )
        placed = failed = 0
        for top in range(0, out_height, tile_height):
            bottom = min(top + tile_height, out_height)
            for left in range(0, out_width, tile_width):
                right = min(left + tile_width, out_width)
                value = int(source[top, left])
                rgb = ((value >> 16) & 0xFF, (value >> 8) & 0xFF, value & 0xFF)
                try:
                    tile_path = self._pick_tile(index, rgb, jitter)
                    tile = self.codec.decode(tile_path).grid()
                    if tile.shape[0] < tile_height or tile.shape[1] < tile_width:
                        raise ValueError(
                            f"Tile {tile_path} is {tile.shape[1]}x{tile.shape[0]}, "
                            f"expected {tile_width}x{tile_height}"
                        )
                except (OSError, ValueError, LookupError) as exc:
                    logger.warning(f"Tile at ({left}, {top}) skipped: {exc}")
                    failed += 1
                    continue

                patch = tile[:bottom - top, :right - left]
                if blend:
                    patch = blend_tile(patch, rgb, blend_amount)
                else:
                    patch = patch | np.uint32(0xFF000000)
                output[top:bottom, left:right] = patch
                placed += 1

        logger.info(f"Mosaic done: {placed} tiles placed, {failed} skipped")
        return PhotomosaicResult(
            buffer=PixelBuffer.from_grid(output),
            tiles_placed=placed,
            tiles_failed=failed,
            corpus_size=len(index),
        )
