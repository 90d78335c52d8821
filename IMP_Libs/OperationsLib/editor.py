"""
Editor facade.

ImpEditor owns one Canvas plus the injected collaborators (image codec,
external converter, random source) and exposes the complete operation
surface used by the CLI and the operation registry. Filters run as pure
functions on the selected layer's current buffer and are committed with a
single history update; whole-image operations flatten the stack first.

Classes:
    ImpEditor: Operation surface over a Canvas
"""

from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union
import logging

import numpy as np

from IMP_Libs.CanvasLib.canvas import Canvas
from IMP_Libs.CanvasLib.compositor import STOP_PER_PIXEL
from IMP_Libs.CanvasLib.layer import BlendMode, Layer
from IMP_Libs.CanvasLib.pixel_buffer import PixelBuffer
from IMP_Libs.CanvasLib import transforms
from IMP_Libs.FiltersLib import tone
from IMP_Libs.FiltersLib.convolution import KERNEL_PRESETS, convolve
from IMP_Libs.FiltersLib.dither import dithered_posterize
from IMP_Libs.FiltersLib.effects import oil_paint, wave
from IMP_Libs.MosaicLib.halftone import HalftonePattern, halftone
from IMP_Libs.MosaicLib.mosaic import mosaic
from IMP_Libs.MosaicLib.recursive import recursive_mosaic
from IMP_Libs.PhotomosaicLib.codec import (
    ExternalConverter,
    ImageCodec,
    PillowCodec,
    PillowConverter,
)
from IMP_Libs.PhotomosaicLib.corpus_store import CorpusIndex
from IMP_Libs.PhotomosaicLib.photomosaic import (
    PhotomosaicBuilder,
    PhotomosaicResult,
    build_corpus,
)
from IMP_Libs.RenderLib.stereogram import ascii_stereogram, stereogram
from IMP_Libs.RenderLib.text_render import ascii_html, color_ascii_html, message_html
from IMP_Libs.constants import (
    DEFAULT_OUTPUT_FORMAT,
    MOSAIC_OUTPUT_PREFIX,
    MOSAIC_TIMESTAMP_FORMAT,
)

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

# Edge kernels applied in this order by edge_detect; all but the last are
# blended additively.
EDGE_DETECT_SEQUENCE = (
    "edge_vertical_du",
    "edge_horizontal_lr",
    "edge_vertical_ud",
    "edge_horizontal_rl",
)


class ImpEditor:
    """
    Layered image editor.

    Args:
        width: Initial canvas width
        height: Initial canvas height
        codec: Image reader/writer (Pillow by default)
        converter: Forced-resize collaborator for corpus building
        rng: Random generator used by stereograms and photomosaics
        stop_mode: Compositor coverage stop rule

    Example:
        >>> editor = ImpEditor(320, 240)
        >>> editor.load_image("photo.png")
        >>> editor.blur()
        >>> editor.save_image("blurred.png")
    """

    def __init__(
        self,
        width: int = 1,
        height: int = 1,
        codec: Optional[ImageCodec] = None,
        converter: Optional[ExternalConverter] = None,
        rng: Optional[np.random.Generator] = None,
        stop_mode: str = STOP_PER_PIXEL,
    ):
        self.canvas = Canvas(width, height, stop_mode)
        self.codec = codec or PillowCodec()
        self.converter = converter or PillowConverter()
        self.rng = rng if rng is not None else np.random.default_rng()
        self.photomosaic = PhotomosaicBuilder(codec=self.codec, rng=self.rng)

    # ========================================================================
    # Canvas
    # ========================================================================

    def initialize(self, width: int, height: int) -> None:
        self.canvas.initialize(width, height)

    def resize_canvas(self, width: int, height: int) -> None:
        self.canvas.resize_canvas(width, height)

    @property
    def width(self) -> int:
        return self.canvas.width

    @property
    def height(self) -> int:
        return self.canvas.height

    def get_canvas(self) -> PixelBuffer:
        return self.canvas.get_canvas()

    def get_canvas_no_alpha(self) -> PixelBuffer:
        return self.canvas.get_canvas_no_alpha()

    def draw_canvas(self, n_layers: int = -1) -> PixelBuffer:
        return self.canvas.composite(n_layers)

    def update_canvas(self) -> PixelBuffer:
        return self.canvas.update_canvas()

    def _flatten(self) -> PixelBuffer:
        """Render all layers; the stack is kept and the selection returns to 0."""
        return self.canvas.composite(-1)

    def _replace_with(self, buffer: PixelBuffer) -> Layer:
        """Swap the whole stack for one layer and size the canvas to it."""
        layer = self.canvas.replace_layers(buffer)
        self.canvas.resize_canvas(buffer.width, buffer.height)
        return layer

    # ========================================================================
    # Layers
    # ========================================================================

    @property
    def layer_count(self) -> int:
        return self.canvas.layer_count

    @property
    def selected_layer(self) -> int:
        return self.canvas.selected_layer

    def select_layer(self, index: int) -> None:
        self.canvas.selected_layer = index

    def add_layer(self, buffer: PixelBuffer, position: int = 0, x: int = 0, y: int = 0) -> Layer:
        return self.canvas.add_layer(buffer, position, x, y)

    def add_empty_layer(self, position: int = 0) -> Layer:
        return self.canvas.add_layer(PixelBuffer.blank(self.width, self.height), position)

    def import_image(self, buffer: PixelBuffer, position: int = 0) -> Layer:
        return self.canvas.import_image(buffer, position)

    def delete_layer(self, index: Optional[int] = None) -> Layer:
        return self.canvas.delete_layer(index)

    def duplicate_layer(self) -> Layer:
        return self.canvas.duplicate_layer()

    def bypass_last_state(self) -> None:
        self.canvas.bypass_last_state()

    def move_up(self) -> None:
        self.canvas.move_up()

    def move_down(self) -> None:
        self.canvas.move_down()

    def set_offset(self, x: int, y: int) -> None:
        self.canvas.set_offset(x, y)

    def is_visible(self) -> bool:
        return self.canvas.is_visible()

    def toggle_visible(self) -> None:
        self.canvas.toggle_visible()

    def flatten_to_new_layer(self) -> Layer:
        return self.canvas.flatten_to_new_layer()

    def merge_down(self) -> Layer:
        return self.canvas.merge_down()

    def merge_down_into_layer(self) -> Layer:
        return self.canvas.merge_down_into_layer()

    def flatten_layers(self) -> Layer:
        return self.canvas.flatten_layers()

    @property
    def layer_width(self) -> int:
        return self.canvas.layer_width

    @property
    def layer_height(self) -> int:
        return self.canvas.layer_height

    def set_opacity(self, opacity: float) -> None:
        self.canvas.set_opacity(opacity)

    def get_opacity(self) -> int:
        return self.canvas.get_opacity()

    def set_blend_mode(self, mode: Any) -> None:
        self.canvas.set_blend_mode(mode)

    def get_blend_mode(self) -> BlendMode:
        return self.canvas.get_blend_mode()

    # ========================================================================
    # History
    # ========================================================================

    def undo(self) -> int:
        return self.canvas.undo()

    def redo(self) -> int:
        return self.canvas.redo()

    @property
    def undo_levels(self) -> int:
        return self.canvas.undo_levels

    @property
    def redo_levels(self) -> int:
        return self.canvas.redo_levels

    # ========================================================================
    # Geometry (whole image)
    # ========================================================================

    def _transform_all(self, transform, *args) -> Layer:
        result = transform(self._flatten(), *args)
        logger.debug(f"{transform.__name__}: canvas now {result.width}x{result.height}")
        return self._replace_with(result)

    def resize(self, new_width: int, new_height: int) -> Layer:
        return self._transform_all(transforms.bilinear_resize, new_width, new_height)

    def rotate_cw(self) -> Layer:
        return self._transform_all(transforms.rotate_cw)

    def rotate_ccw(self) -> Layer:
        return self._transform_all(transforms.rotate_ccw)

    def rotate_180(self) -> Layer:
        return self._transform_all(transforms.rotate_180)

    def flip_vertical(self) -> Layer:
        return self._transform_all(transforms.flip_vertical)

    def flip_horizontal(self) -> Layer:
        return self._transform_all(transforms.flip_horizontal)

    # ========================================================================
    # Tone (selected layer)
    # ========================================================================

    def _apply(self, transform, *args, **kwargs) -> PixelBuffer:
        logger.debug(f"Applying {transform.__name__} to layer {self.canvas.selected_layer}")
        return self.canvas.apply(transform, *args, **kwargs)

    def brightness_contrast(self, brightness: float, contrast: float) -> PixelBuffer:
        return self._apply(tone.brightness_contrast, brightness, contrast)

    def color_balance(self, red: float, green: float, blue: float) -> PixelBuffer:
        return self._apply(tone.color_balance, red, green, blue)

    def colorize(self, red: float, green: float, blue: float) -> PixelBuffer:
        return self._apply(tone.colorize, red, green, blue)

    def color_weight_balance(self, red: float, green: float, blue: float) -> PixelBuffer:
        return self._apply(tone.color_weight_balance, red, green, blue)

    def invert(self) -> PixelBuffer:
        return self._apply(tone.invert)

    def desaturate(self, red: float = 1.0, green: float = 1.0, blue: float = 1.0) -> PixelBuffer:
        return self._apply(tone.desaturate, red, green, blue)

    def posterize(self, levels: int) -> PixelBuffer:
        return self._apply(tone.posterize, levels)

    def dithered_posterize(self, levels: int) -> PixelBuffer:
        return self._apply(dithered_posterize, levels)

    def threshold(self) -> PixelBuffer:
        return self._apply(tone.threshold)

    # ========================================================================
    # Effects (selected layer)
    # ========================================================================

    def halftone(self, size: int, pattern: Any = HalftonePattern.CIRCLES) -> PixelBuffer:
        return self._apply(halftone, size, HalftonePattern(pattern))

    def oil_paint_effect(self, passes: int, brush_size: int, colors: int) -> PixelBuffer:
        return self._apply(oil_paint, brush_size, colors, passes)

    def wave_effect(self, frequency: float, amplitude: float) -> PixelBuffer:
        return self._apply(wave, frequency, amplitude)

    def mosaic(self, tile_width: int, tile_height: int) -> PixelBuffer:
        return self._apply(mosaic, tile_width, tile_height)

    # ========================================================================
    # Convolution
    # ========================================================================

    def matrix_convolution(self, kernel: Any, normalizer: float = 1.0) -> PixelBuffer:
        """
        Convolve the selected layer with a square kernel.

        Args:
            kernel: N x N nested list, numpy array or flat list of N*N weights
            normalizer: Divisor for the weighted sum (0 disables it)
        """
        return self._apply(convolve, kernel, normalizer)

    def apply_preset(self, name: str) -> PixelBuffer:
        """
        Convolve the selected layer with a named kernel preset.

        Raises:
            KeyError: If the preset does not exist
        """
        if name not in KERNEL_PRESETS:
            available = ", ".join(sorted(KERNEL_PRESETS))
            raise KeyError(f"Unknown kernel preset '{name}'. Available presets: {available}")
        preset = KERNEL_PRESETS[name]
        return self.matrix_convolution(preset.weights, preset.normalizer)

    def blur(self) -> PixelBuffer:
        return self.apply_preset("blur")

    def more_blur(self) -> PixelBuffer:
        return self.apply_preset("more_blur")

    def sharpen(self) -> PixelBuffer:
        return self.apply_preset("sharpen")

    def more_sharpen(self) -> PixelBuffer:
        return self.apply_preset("more_sharpen")

    def motion_blur(self) -> PixelBuffer:
        return self.apply_preset("motion_blur")

    def emboss(self) -> PixelBuffer:
        """Emboss, lift to mid-gray and desaturate as a single history entry."""
        preset = KERNEL_PRESETS["emboss"]

        def embossed(buffer: PixelBuffer) -> PixelBuffer:
            relief = convolve(buffer, preset.weights, preset.normalizer)
            return tone.desaturate(tone.brightness_contrast(relief, 0.5, 0.0), 1.0, 1.0, 1.0)

        return self._apply(embossed)

    def edge_detect(self) -> Layer:
        """
        Sum the four directional edge responses of the selected layer.

        Works through layer operations: each direction is convolved on a
        duplicate, the duplicates are merged pairwise and the result is
        folded back onto the original layer as one new history state.
        """
        canvas = self.canvas
        top = canvas.selected_layer
        last = len(EDGE_DETECT_SEQUENCE) - 1

        for step, name in enumerate(EDGE_DETECT_SEQUENCE):
            if step > 0:
                canvas.selected_layer = top + 1
            canvas.duplicate_layer()
            self.apply_preset(name)
            if step < last:
                canvas.set_blend_mode(BlendMode.ADD)
            if step > 0:
                canvas.selected_layer = top
                canvas.merge_down()

        canvas.selected_layer = top
        return canvas.merge_down_into_layer()

    # ========================================================================
    # Whole-image renderers
    # ========================================================================

    def recur_mosaic(self, i_scale: float, m_scale: float) -> Layer:
        """Replace the stack with the recursive mosaic of the flattened image."""
        result = recursive_mosaic(self._flatten(), i_scale, m_scale)
        layer = self.canvas.replace_layers(result)
        self.canvas.grow_canvas(result.width, result.height)
        return layer

    def stereogram(self, width: int) -> Layer:
        """Insert a random-dot stereogram of the flattened image as the front layer."""
        result = stereogram(self._flatten(), width, self.rng)
        return self.canvas.add_layer(result, 0)

    def ascii_stereogram(self) -> str:
        return ascii_stereogram(self._flatten(), self.rng)

    def get_ascii_html(self, resolution: int, option: int = 0, web_safe: bool = False) -> str:
        return ascii_html(self._flatten(), resolution, web_safe, option)

    def get_color_ascii_html(self, resolution: int, option: int = 0, web_safe: bool = False) -> str:
        return color_ascii_html(self._flatten(), resolution, web_safe, option)

    def get_msg_html(self, resolution: int, message: str, web_safe: bool = False) -> str:
        return message_html(self._flatten(), resolution, message, web_safe)

    # ========================================================================
    # Photomosaic
    # ========================================================================

    def process_images(
        self,
        files: Iterable[PathLike],
        folder: PathLike,
        tile_width: int,
        tile_height: int,
    ) -> CorpusIndex:
        """Build a photomosaic tile corpus in folder; see build_corpus."""
        corpus = build_corpus(
            [Path(path) for path in files],
            Path(folder),
            tile_width,
            tile_height,
            converter=self.converter,
            codec=self.codec,
            rng=self.rng,
        )
        # A resident corpus from an earlier folder is stale now.
        self.photomosaic.corpus = None
        return corpus

    def process_image_mosaic(
        self,
        folder: PathLike,
        name: str,
        i_scale: float = 1.0,
        blend: bool = False,
        blend_amount: float = 0.0,
        jitter: int = 0,
    ) -> Optional[PhotomosaicResult]:
        """
        Render a photomosaic of the flattened canvas.

        The mosaic is inserted as the front layer, the canvas grows to fit it
        and a copy is written to ``folder/mosaic-HHMMSS_<name>.png``.

        Returns:
            PhotomosaicResult, or None when the folder has no usable corpus
        """
        folder = Path(folder)
        result = self.photomosaic.build(
            self._flatten(),
            folder,
            i_scale=i_scale,
            blend=blend,
            blend_amount=blend_amount,
            jitter=jitter,
        )
        if result is None:
            return None

        stamp = datetime.now().strftime(MOSAIC_TIMESTAMP_FORMAT)
        output_path = folder / f"{MOSAIC_OUTPUT_PREFIX}{stamp}_{name}.png"
        try:
            self.codec.encode(result.buffer, output_path, DEFAULT_OUTPUT_FORMAT)
            logger.info(f"Wrote {output_path}")
        except OSError as exc:
            logger.error(f"Error writing {output_path}: {exc}")

        self.canvas.add_layer(result.buffer, 0)
        self.canvas.grow_canvas(result.buffer.width, result.buffer.height)
        return result

    # ========================================================================
    # Files
    # ========================================================================

    def load_image(self, path: PathLike, position: int = 0, fit_canvas: bool = True) -> Layer:
        """
        Decode an image file into a new layer.

        Args:
            path: Image file
            position: Layer index to insert at
            fit_canvas: Reinitialize the canvas to the image size when the
                        canvas holds no layers yet

        Raises:
            OSError: If the file cannot be read
        """
        buffer = self.codec.decode(path)
        if fit_canvas and self.canvas.layer_count == 0:
            self.canvas.initialize(buffer.width, buffer.height)
        logger.debug(f"Loaded {path} ({buffer.width}x{buffer.height})")
        return self.canvas.import_image(buffer, position)

    def save_image(self, path: PathLike, format: Optional[str] = None) -> PixelBuffer:
        """
        Flatten the canvas and write it to path.

        The format is taken from the file extension unless given.

        Raises:
            OSError: If the file cannot be written
        """
        path = Path(path)
        if format is None:
            format = path.suffix.lstrip(".").upper() or DEFAULT_OUTPUT_FORMAT
            if format == "JPG":
                format = "JPEG"
            elif format == "TIF":
                format = "TIFF"
        flat = self._flatten()
        self.codec.encode(flat, path, format)
        logger.debug(f"Saved {path} as {format}")
        return flat

    def list_presets(self) -> List[str]:
        return sorted(KERNEL_PRESETS)

    def describe(self) -> Dict[str, Any]:
        return self.canvas.describe()
