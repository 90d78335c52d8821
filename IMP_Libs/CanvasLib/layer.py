"""
Canvas layers.

A Layer pairs a LayerHistory with its placement and compositing settings.
Its width and height always follow the current history state.
"""

from enum import IntEnum
from typing import Any, Dict, Optional

from IMP_Libs.CanvasLib.layer_history import LayerHistory
from IMP_Libs.CanvasLib.pixel_buffer import PixelBuffer


class BlendMode(IntEnum):
    """Compositing law applied when a layer is drawn onto the canvas."""

    NORMAL = 0
    ADD = 1
    SUBTRACT = 2
    MULTIPLY = 3
    DIVIDE = 4


class Layer:
    """
    One layer of the canvas.

    Attributes:
        history: Undo/redo snapshots; ``history.current`` is the visible buffer
        x, y: Canvas offset of the top-left corner (may be negative)
        blend_mode: How the layer combines with what lies behind it
        visible: Hidden layers are skipped by the compositor
    """

    def __init__(
        self,
        buffer: PixelBuffer,
        x: int = 0,
        y: int = 0,
        opacity: float = 1.0,
        blend_mode: BlendMode = BlendMode.NORMAL,
        visible: bool = True,
    ):
        self.history = LayerHistory(buffer)
        self.x = int(x)
        self.y = int(y)
        self.opacity = opacity
        self.blend_mode = BlendMode(blend_mode)
        self.visible = bool(visible)

    @classmethod
    def empty(cls, width: int, height: int) -> "Layer":
        """Create a fully transparent layer."""
        return cls(PixelBuffer.blank(width, height))

    @property
    def opacity(self) -> float:
        return self._opacity

    @opacity.setter
    def opacity(self, value: float) -> None:
        self._opacity = min(1.0, max(0.0, float(value)))

    @property
    def current(self) -> PixelBuffer:
        return self.history.current

    @property
    def width(self) -> int:
        return self.history.current.width

    @property
    def height(self) -> int:
        return self.history.current.height

    def update(self, buffer: PixelBuffer) -> None:
        self.history.update(buffer)

    def to_dict(self, name: Optional[str] = None) -> Dict[str, Any]:
        """Summarize the layer's settings for listings and logs."""
        summary: Dict[str, Any] = {
            "width": self.width,
            "height": self.height,
            "x": self.x,
            "y": self.y,
            "opacity": self.opacity,
            "blend_mode": self.blend_mode.name.lower(),
            "visible": self.visible,
            "undo_levels": self.history.undo_levels,
            "redo_levels": self.history.redo_levels,
        }
        if name is not None:
            summary["name"] = name
        return summary

    def __repr__(self):
        return (
            f"Layer({self.width}x{self.height} at ({self.x}, {self.y}), "
            f"{self.blend_mode.name}, opacity={self.opacity:.2f})"
        )
