"""
Canvas document: the ordered layer stack, the selection cursor and the
rendered canvas image.

Layer index 0 is the front-most layer. New and imported layers are inserted
at the front unless a position is given. Most operations act on the
selected layer; ``composite(n)`` renders the run of n layers starting at the
selection, or every layer when n is -1.

Classes:
    Canvas: Layered image document
    InvalidSelectionError: Raised when no valid layer is selected
"""

from typing import Any, Callable, Dict, List, Optional
import logging

from IMP_Libs.CanvasLib.compositor import STOP_PER_PIXEL, composite_layers
from IMP_Libs.CanvasLib.layer import BlendMode, Layer
from IMP_Libs.CanvasLib.pixel_buffer import PixelBuffer

logger = logging.getLogger(__name__)


class InvalidSelectionError(IndexError):
    """Raised when an operation needs a layer that does not exist."""


class Canvas:
    """
    Layered image document.

    Attributes:
        stop_mode: Coverage stop rule handed to the compositor ("pixel" or "row")

    Example:
        >>> canvas = Canvas(64, 64)
        >>> canvas.add_layer(PixelBuffer.blank(64, 64, 0xFFFFFFFF))
        >>> canvas.add_layer(red_buffer)
        >>> canvas.set_opacity(0.5)
        >>> image = canvas.composite()
    """

    def __init__(self, width: int, height: int, stop_mode: str = STOP_PER_PIXEL):
        self.stop_mode = stop_mode
        self._layers: List[Layer] = []
        self._selected = 0
        self.initialize(width, height)

    # ------------------------------------------------------------------
    # Canvas geometry and rendering
    # ------------------------------------------------------------------

    def initialize(self, width: int, height: int) -> None:
        """Drop every layer and start an empty canvas of the given size."""
        if width < 1 or height < 1:
            raise ValueError(f"Canvas size must be at least 1x1, got {width}x{height}")
        self._layers = []
        self._selected = 0
        self._width = int(width)
        self._height = int(height)
        self._rendered = PixelBuffer.blank(self._width, self._height)

    def resize_canvas(self, width: int, height: int) -> None:
        """Change the canvas bounds without touching any layer."""
        if width < 1 or height < 1:
            raise ValueError(f"Canvas size must be at least 1x1, got {width}x{height}")
        self._width = int(width)
        self._height = int(height)

    def grow_canvas(self, width: int, height: int) -> None:
        """Enlarge the canvas so it is at least width x height."""
        self.resize_canvas(max(self._width, width), max(self._height, height))

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    def composite(self, n_layers: int = -1) -> PixelBuffer:
        """
        Render layers into the canvas image.

        Args:
            n_layers: Number of layers to render starting at the selected
                      one, or -1 for all layers (this also resets the
                      selection to 0)

        Returns:
            The rendered, fully opaque canvas buffer

        Raises:
            ValueError: If n_layers is neither -1 nor positive
        """
        if n_layers == -1:
            self._selected = 0
            run = self._layers
        elif n_layers > 0:
            run = self._layers[self._selected:self._selected + n_layers]
        else:
            raise ValueError(f"n_layers must be -1 or positive, got {n_layers}")

        self._rendered = composite_layers(run, self._width, self._height, self.stop_mode)
        return self._rendered

    def update_canvas(self) -> PixelBuffer:
        return self.composite(-1)

    def get_canvas(self) -> PixelBuffer:
        """Return the most recent render, resized to the canvas if it is stale."""
        if self._rendered.width != self._width or self._rendered.height != self._height:
            self._rendered = PixelBuffer.blank(self._width, self._height)
        return self._rendered

    def get_canvas_no_alpha(self) -> PixelBuffer:
        return self.get_canvas().without_alpha()

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    @property
    def layers(self) -> List[Layer]:
        return list(self._layers)

    @property
    def layer_count(self) -> int:
        return len(self._layers)

    @property
    def selected_layer(self) -> int:
        return self._selected

    @selected_layer.setter
    def selected_layer(self, index: int) -> None:
        if not 0 <= index < len(self._layers):
            raise InvalidSelectionError(
                f"Layer index {index} out of range for {len(self._layers)} layers"
            )
        self._selected = int(index)

    @property
    def selected(self) -> Layer:
        """The selected Layer."""
        if not self._layers:
            raise InvalidSelectionError("Canvas has no layers")
        if not 0 <= self._selected < len(self._layers):
            raise InvalidSelectionError(f"Selected layer {self._selected} no longer exists")
        return self._layers[self._selected]

    def layer_at(self, index: int) -> Layer:
        if not 0 <= index < len(self._layers):
            raise InvalidSelectionError(
                f"Layer index {index} out of range for {len(self._layers)} layers"
            )
        return self._layers[index]

    def _clamp_selection(self) -> None:
        if self._selected >= len(self._layers):
            self._selected = max(0, len(self._layers) - 1)

    # ------------------------------------------------------------------
    # Layer management
    # ------------------------------------------------------------------

    def add_layer(
        self,
        buffer: PixelBuffer,
        position: int = 0,
        x: int = 0,
        y: int = 0,
    ) -> Layer:
        """
        Insert a new layer holding buffer.

        Args:
            buffer: Initial layer contents
            position: Index to insert at (0 is the front)
            x, y: Canvas offset of the layer

        Returns:
            The new Layer
        """
        if not 0 <= position <= len(self._layers):
            raise InvalidSelectionError(
                f"Cannot insert at {position} into {len(self._layers)} layers"
            )
        layer = Layer(buffer, x, y)
        self._layers.insert(position, layer)
        logger.debug(f"Added {layer!r} at position {position}")
        return layer

    def import_image(self, buffer: PixelBuffer, position: int = 0) -> Layer:
        return self.add_layer(buffer, position)

    def delete_layer(self, index: Optional[int] = None) -> Layer:
        """Remove the layer at index (the selected layer by default)."""
        index = self._selected if index is None else index
        layer = self.layer_at(index)
        del self._layers[index]
        self._clamp_selection()
        return layer

    def duplicate_layer(self) -> Layer:
        """Insert a copy of the selected layer's current buffer at the selected index."""
        return self.add_layer(self.selected.current.copy(), self._selected)

    def bypass_last_state(self) -> None:
        """Drop the state beneath the selected layer's current one."""
        self.selected.history.discard(1)

    @property
    def layer_width(self) -> int:
        return self.selected.width

    @property
    def layer_height(self) -> int:
        return self.selected.height

    def set_opacity(self, opacity: float) -> None:
        self.selected.opacity = opacity

    def get_opacity(self) -> int:
        """Selected layer opacity as an integer percentage."""
        return int(self.selected.opacity * 100)

    def set_blend_mode(self, mode: Any) -> None:
        """Set the selected layer's blend mode from a BlendMode or its integer value."""
        self.selected.blend_mode = BlendMode(mode)

    def get_blend_mode(self) -> BlendMode:
        return self.selected.blend_mode

    def set_offset(self, x: int, y: int) -> None:
        layer = self.selected
        layer.x = int(x)
        layer.y = int(y)

    def move_up(self) -> None:
        """Swap the selected layer with the one in front of it."""
        if self._selected > 0:
            index = self._selected
            self._layers[index - 1], self._layers[index] = self._layers[index], self._layers[index - 1]
            self._selected -= 1

    def move_down(self) -> None:
        """Swap the selected layer with the one behind it."""
        if self._selected < len(self._layers) - 1:
            index = self._selected
            self._layers[index + 1], self._layers[index] = self._layers[index], self._layers[index + 1]
            self._selected += 1

    def is_visible(self) -> bool:
        return self.selected.visible

    def toggle_visible(self) -> None:
        layer = self.selected
        layer.visible = not layer.visible

    def flatten_to_new_layer(self) -> Layer:
        """Render every layer and insert the result as a new front layer."""
        flat = self.composite(-1)
        return self.add_layer(flat, 0)

    def merge_down(self) -> Layer:
        """
        Replace the selected layer and the one behind it with their composite.

        The merged layer keeps the blend mode of the layer behind.

        Raises:
            InvalidSelectionError: If no layer lies behind the selection
        """
        lower = self.layer_at(self._selected + 1)
        blend_mode = lower.blend_mode
        merged = self.composite(2)

        del self._layers[self._selected:self._selected + 2]
        layer = self.add_layer(merged, self._selected)
        layer.blend_mode = blend_mode
        return layer

    def merge_down_into_layer(self) -> Layer:
        """
        Composite the selected layer onto the one behind it as a new history state.

        The render covers the whole canvas, so the lower layer moves to (0, 0).

        Raises:
            InvalidSelectionError: If no layer lies behind the selection
        """
        lower = self.layer_at(self._selected + 1)
        merged = self.composite(2)
        del self._layers[self._selected]
        lower.x, lower.y = 0, 0
        lower.update(merged)
        return lower

    def flatten_layers(self) -> Layer:
        """Collapse the whole stack into one layer."""
        flat = self.composite(-1)
        self._layers = []
        return self.add_layer(flat, 0)

    def replace_layers(self, buffer: PixelBuffer) -> Layer:
        """Discard every layer in favour of a single layer holding buffer."""
        self._layers = []
        self._selected = 0
        return self.add_layer(buffer, 0)

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def apply(self, transform: Callable[..., PixelBuffer], *args, **kwargs) -> PixelBuffer:
        """
        Run a buffer transform on the selected layer and record the result.

        The transform receives the layer's current (read-only) buffer and
        must return a new one; history only changes once it has returned.
        """
        layer = self.selected
        result = transform(layer.current, *args, **kwargs)
        layer.update(result)
        return result

    def undo(self) -> int:
        return self.selected.history.undo()

    def redo(self) -> int:
        return self.selected.history.redo()

    @property
    def undo_levels(self) -> int:
        return self.selected.history.undo_levels

    @property
    def redo_levels(self) -> int:
        return self.selected.history.redo_levels

    def describe(self) -> Dict[str, Any]:
        """Summary of the document used by the CLI and logs."""
        return {
            "width": self._width,
            "height": self._height,
            "selected_layer": self._selected,
            "layers": [layer.to_dict(name=f"layer {i}") for i, layer in enumerate(self._layers)],
        }
