"""
Operation Registry.

Named editor operations for the command line and pipeline files. Each
operation is described by an OperationSpec: the executor, the parameters it
requires or accepts, and its scope, which says what part of the document a
run changes:

- ``layer``: rewrites the selected layer as one new history state
- ``image``: flattens the canvas and replaces or extends the layer stack
- ``document``: manages layers, the selection or history without new pixels

Parameters are checked against the spec before the executor runs, so a
misspelt or missing parameter fails before any layer is touched.

Classes:
    OperationSpec: Declaration of one named operation
    OperationRegistry: Lookup and checked execution of operations

Functions:
    get_default_registry: The shared registry holding the built-in operations
    register_default_operations: Register all built-in operations
"""

from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple
import logging

logger = logging.getLogger(__name__)

# Type alias for executor function
OperationFunction = Callable[[Any, Dict[str, Any]], Any]

SCOPE_LAYER = "layer"
SCOPE_IMAGE = "image"
SCOPE_DOCUMENT = "document"
SCOPES = (SCOPE_LAYER, SCOPE_IMAGE, SCOPE_DOCUMENT)


@dataclass(frozen=True)
class OperationSpec:
    """
    Declaration of a named operation.

    Attributes:
        name: Operation name used on the command line and in pipelines
        executor: Callable accepting (editor, params)
        scope: One of SCOPES
        required: Parameters that must be given
        optional: Parameters that fall back to the editor's defaults
        description: One-line summary for listings
        tags: Free-form categories
    """

    name: str
    executor: OperationFunction
    scope: str
    required: Tuple[str, ...] = ()
    optional: Tuple[str, ...] = ()
    description: str = ""
    tags: Tuple[str, ...] = ()

    @property
    def params(self) -> Tuple[str, ...]:
        return self.required + self.optional

    def check_params(self, params: Dict[str, Any]) -> List[str]:
        """Return one message per missing or unrecognized parameter."""
        problems = [
            f"Missing required parameter '{name}' for {self.name}"
            for name in self.required
            if name not in params
        ]
        unknown = sorted(set(params) - set(self.params))
        if unknown:
            accepted = ", ".join(self.params) or "none"
            problems.append(
                f"Unknown parameter(s) {', '.join(unknown)} for {self.name} (accepted: {accepted})"
            )
        return problems

    def signature(self) -> str:
        """Parameter list for listings; optional names carry a '?'."""
        return ", ".join(list(self.required) + [f"{name}?" for name in self.optional])


class OperationRegistry:
    """
    Registry of named editor operations.

    Example:
        >>> registry = OperationRegistry()
        >>> registry.register("posterize", execute_posterize, SCOPE_LAYER, required=["levels"])
        >>> registry.execute("posterize", editor, {"levels": 4})
    """

    def __init__(self):
        self._specs: Dict[str, OperationSpec] = {}

    def __contains__(self, name: str) -> bool:
        return str(name).strip() in self._specs

    def __len__(self) -> int:
        return len(self._specs)

    def register(
        self,
        name: str,
        executor: OperationFunction,
        scope: str,
        required: Sequence[str] = (),
        optional: Sequence[str] = (),
        description: str = "",
        tags: Sequence[str] = (),
    ) -> OperationSpec:
        """
        Declare an operation.

        Raises:
            ValueError: If the name is empty or taken, the executor is not
                        callable, the scope is unknown or a parameter is
                        listed as both required and optional
        """
        name = str(name).strip()
        if not name:
            raise ValueError("operation name cannot be empty")
        if name in self._specs:
            raise ValueError(f"Operation '{name}' is already registered")
        if not callable(executor):
            raise ValueError(f"executor must be callable, got {type(executor)}")
        if scope not in SCOPES:
            raise ValueError(f"Unknown scope {scope!r} for {name}; expected one of {', '.join(SCOPES)}")
        overlap = set(required) & set(optional)
        if overlap:
            raise ValueError(f"{name}: {', '.join(sorted(overlap))} both required and optional")

        spec = OperationSpec(
            name=name,
            executor=executor,
            scope=scope,
            required=tuple(required),
            optional=tuple(optional),
            description=str(description),
            tags=tuple(tags),
        )
        self._specs[name] = spec
        logger.debug(f"Registered {scope} operation: {name}")
        return spec

    def get(self, name: str) -> OperationSpec:
        """
        Look up an operation.

        Raises:
            KeyError: If name is not registered
        """
        name = str(name).strip()
        if name not in self._specs:
            available = ", ".join(self.names())
            raise KeyError(f"No operation registered as '{name}'. Available operations: {available}")
        return self._specs[name]

    def names(self, scope: Optional[str] = None) -> List[str]:
        """Sorted operation names, optionally only those of one scope."""
        return sorted(
            name for name, spec in self._specs.items()
            if scope is None or spec.scope == scope
        )

    def filter_by_tag(self, tag: str) -> List[str]:
        """Sorted names of operations carrying tag (case-insensitive)."""
        tag = str(tag).strip().lower()
        return sorted(
            name for name, spec in self._specs.items()
            if tag in (t.lower() for t in spec.tags)
        )

    def execute(self, name: str, editor: Any, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        Check params against the operation's declaration and run it.

        Args:
            name: The operation to run
            editor: ImpEditor instance
            params: Operation parameters

        Returns:
            Result from the executor

        Raises:
            KeyError: If name is not registered
            ValueError: If a required parameter is missing or an unknown
                        one is given, or the executor rejects a value
        """
        spec = self.get(name)
        params = dict(params or {})
        problems = spec.check_params(params)
        if problems:
            raise ValueError("; ".join(problems))

        logger.debug(f"Executing {spec.scope} operation {spec.name} with {params}")
        return spec.executor(editor, params)


@lru_cache(maxsize=None)
def get_default_registry() -> OperationRegistry:
    """The shared registry, built with the built-in operations on first use."""
    registry = OperationRegistry()
    register_default_operations(registry)
    return registry


def register_default_operations(registry: OperationRegistry) -> None:
    """Register every built-in editor operation with registry."""
    from IMP_Libs.OperationsLib import operations as ops

    rgb = ("red", "green", "blue")

    # (name, executor, scope, required, optional, description, tags)
    builtins = [
        # Tone
        ("brightness_contrast", ops.execute_brightness_contrast, SCOPE_LAYER, (), ("brightness", "contrast"),
         "Additive brightness and contrast around mid-gray", ("tone",)),
        ("color_balance", ops.execute_color_balance, SCOPE_LAYER, (), rgb,
         "Add per-channel offsets", ("tone", "color")),
        ("colorize", ops.execute_colorize, SCOPE_LAYER, (), rgb,
         "Tint by scaling each channel by colour / 255", ("tone", "color")),
        ("color_weight_balance", ops.execute_color_weight_balance, SCOPE_LAYER, (), rgb,
         "Scale channels by weights normalized to a mean of 1", ("tone", "color")),
        ("desaturate", ops.execute_desaturate, SCOPE_LAYER, (), rgb,
         "Weighted gray conversion", ("tone",)),
        ("invert", ops.execute_invert, SCOPE_LAYER, (), (), "Photographic negative", ("tone",)),
        ("posterize", ops.execute_posterize, SCOPE_LAYER, ("levels",), (),
         "Quantize channels to a number of levels", ("tone",)),
        ("dithered_posterize", ops.execute_dithered_posterize, SCOPE_LAYER, ("levels",), (),
         "Posterize with error diffusion", ("tone", "dither")),
        ("threshold", ops.execute_threshold, SCOPE_LAYER, (), (),
         "Black and white split at mid-gray", ("tone",)),
        # Effects
        ("halftone", ops.execute_halftone, SCOPE_LAYER, ("size",), ("pattern",),
         "Halftone screen of circles or lines", ("effect", "mosaic")),
        ("oil_paint", ops.execute_oil_paint, SCOPE_LAYER, ("brush_size", "colors"), ("passes",),
         "Most frequent colour in a brush window", ("effect",)),
        ("wave", ops.execute_wave, SCOPE_LAYER, ("frequency", "amplitude"), (),
         "Sinusoidal row displacement", ("effect",)),
        ("mosaic", ops.execute_mosaic, SCOPE_LAYER, ("tile_width", "tile_height"), (),
         "Pixelate into blocks of their mean colour", ("effect", "mosaic")),
        # Convolution
        ("convolve", ops.execute_convolve, SCOPE_LAYER, ("kernel",), ("normalizer",),
         "Convolve with a custom square kernel", ("convolution",)),
        ("kernel_preset", ops.execute_kernel_preset, SCOPE_LAYER, ("name",), (),
         "Convolve with a named kernel preset", ("convolution",)),
        ("blur", ops.execute_blur, SCOPE_LAYER, (), (), "3x3 cross blur", ("convolution", "blur")),
        ("more_blur", ops.execute_more_blur, SCOPE_LAYER, (), (), "5x5 diamond blur", ("convolution", "blur")),
        ("sharpen", ops.execute_sharpen, SCOPE_LAYER, (), (), "3x3 sharpen", ("convolution",)),
        ("more_sharpen", ops.execute_more_sharpen, SCOPE_LAYER, (), (), "5x5 sharpen", ("convolution",)),
        ("motion_blur", ops.execute_motion_blur, SCOPE_LAYER, (), (),
         "9x9 diagonal motion blur", ("convolution", "blur")),
        ("emboss", ops.execute_emboss, SCOPE_LAYER, (), (), "Gray relief", ("convolution", "effect")),
        ("edge_detect", ops.execute_edge_detect, SCOPE_LAYER, (), (),
         "Sum of four directional edge responses", ("convolution",)),
        # Geometry
        ("resize", ops.execute_resize, SCOPE_IMAGE, ("width", "height"), (),
         "Bilinear resize of the flattened image", ("geometry",)),
        ("rotate_cw", ops.execute_rotate_cw, SCOPE_IMAGE, (), (), "Quarter turn clockwise", ("geometry",)),
        ("rotate_ccw", ops.execute_rotate_ccw, SCOPE_IMAGE, (), (),
         "Quarter turn counter-clockwise", ("geometry",)),
        ("rotate_180", ops.execute_rotate_180, SCOPE_IMAGE, (), (), "Half turn", ("geometry",)),
        ("flip_vertical", ops.execute_flip_vertical, SCOPE_IMAGE, (), (), "Mirror top to bottom", ("geometry",)),
        ("flip_horizontal", ops.execute_flip_horizontal, SCOPE_IMAGE, (), (),
         "Mirror left to right", ("geometry",)),
        # Whole-image renderers
        ("recursive_mosaic", ops.execute_recursive_mosaic, SCOPE_IMAGE, ("m_scale",), ("i_scale",),
         "Mosaic whose tiles are tinted copies of the image", ("mosaic",)),
        ("stereogram", ops.execute_stereogram, SCOPE_IMAGE, ("width",), (),
         "Random-dot autostereogram of the blue channel", ("render",)),
        ("photomosaic", ops.execute_photomosaic, SCOPE_IMAGE, ("folder",),
         ("name", "i_scale", "blend", "blend_amount", "jitter"),
         "Photomosaic from a preprocessed tile corpus", ("mosaic", "render")),
        # Layers and history
        ("select_layer", ops.execute_select_layer, SCOPE_DOCUMENT, ("index",), (),
         "Select a layer by index", ("layer",)),
        ("set_opacity", ops.execute_set_opacity, SCOPE_DOCUMENT, ("opacity",), (),
         "Selected layer opacity (0-1)", ("layer",)),
        ("set_blend_mode", ops.execute_set_blend_mode, SCOPE_DOCUMENT, ("mode",), (),
         "Selected layer blend mode (name or 0-4)", ("layer",)),
        ("duplicate_layer", ops.execute_duplicate_layer, SCOPE_DOCUMENT, (), (),
         "Duplicate the selected layer", ("layer",)),
        ("merge_down", ops.execute_merge_down, SCOPE_DOCUMENT, (), (),
         "Merge the selected layer with the one behind", ("layer",)),
        ("flatten", ops.execute_flatten, SCOPE_DOCUMENT, (), (), "Collapse all layers into one", ("layer",)),
        ("undo", ops.execute_undo, SCOPE_DOCUMENT, (), (), "Undo on the selected layer", ("history",)),
        ("redo", ops.execute_redo, SCOPE_DOCUMENT, (), (), "Redo on the selected layer", ("history",)),
    ]

    for name, executor, scope, required, optional, description, tags in builtins:
        registry.register(name, executor, scope, required, optional, description, tags)

    logger.debug(f"Registered {len(builtins)} default operations")
