"""
Named operation executors.

Each executor has the signature ``(editor, params) -> Any`` so it can be
registered in an OperationRegistry and driven from pipeline files or the
command line. Parameters arrive as a plain dictionary; missing optional
values fall back to the defaults of the matching ImpEditor method.

Example:
    >>> from IMP_Libs.OperationsLib.operation_registry import get_default_registry
    >>> registry = get_default_registry()
    >>> registry.execute("posterize", editor, {"levels": 4})
"""

from typing import Any, Dict

from IMP_Libs.CanvasLib.layer import BlendMode
from IMP_Libs.MosaicLib.halftone import HalftonePattern

Params = Dict[str, Any]

_MISSING = object()


def _param(params: Params, name: str, cast, default: Any = _MISSING) -> Any:
    """
    Fetch and convert one parameter.

    Raises:
        ValueError: If a required parameter is missing or cannot be converted
    """
    value = params.get(name, default)
    if value is _MISSING:
        raise ValueError(f"Missing required parameter '{name}'")
    try:
        return cast(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid value for '{name}': {value!r}") from exc


def _flag(value: Any) -> bool:
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("1", "true", "yes", "on"):
            return True
        if lowered in ("0", "false", "no", "off", ""):
            return False
        raise ValueError(f"Not a boolean: {value!r}")
    return bool(value)


def _pattern(value: Any) -> HalftonePattern:
    if isinstance(value, str) and not value.strip().isdigit():
        try:
            return HalftonePattern[value.strip().upper()]
        except KeyError:
            raise ValueError(f"Unknown halftone pattern: {value!r}") from None
    return HalftonePattern(int(value))


def _blend_mode(value: Any) -> BlendMode:
    if isinstance(value, str) and not value.strip().isdigit():
        try:
            return BlendMode[value.strip().upper()]
        except KeyError:
            raise ValueError(f"Unknown blend mode: {value!r}") from None
    return BlendMode(int(value))


def _rgb(params: Params, default: float):
    return (
        _param(params, "red", float, default),
        _param(params, "green", float, default),
        _param(params, "blue", float, default),
    )


# ============================================================================
# Tone
# ============================================================================

def execute_brightness_contrast(editor, params: Params) -> Any:
    return editor.brightness_contrast(
        _param(params, "brightness", float, 0.0),
        _param(params, "contrast", float, 0.0),
    )


def execute_color_balance(editor, params: Params) -> Any:
    return editor.color_balance(*_rgb(params, 0.0))


def execute_colorize(editor, params: Params) -> Any:
    return editor.colorize(*_rgb(params, 255.0))


def execute_color_weight_balance(editor, params: Params) -> Any:
    return editor.color_weight_balance(*_rgb(params, 1.0))


def execute_desaturate(editor, params: Params) -> Any:
    return editor.desaturate(*_rgb(params, 1.0))


def execute_invert(editor, params: Params) -> Any:
    return editor.invert()


def execute_posterize(editor, params: Params) -> Any:
    return editor.posterize(_param(params, "levels", int))


def execute_dithered_posterize(editor, params: Params) -> Any:
    return editor.dithered_posterize(_param(params, "levels", int))


def execute_threshold(editor, params: Params) -> Any:
    return editor.threshold()


# ============================================================================
# Effects and convolution
# ============================================================================

def execute_halftone(editor, params: Params) -> Any:
    return editor.halftone(
        _param(params, "size", int),
        _param(params, "pattern", _pattern, HalftonePattern.CIRCLES),
    )


def execute_oil_paint(editor, params: Params) -> Any:
    return editor.oil_paint_effect(
        _param(params, "passes", int, 1),
        _param(params, "brush_size", int),
        _param(params, "colors", int),
    )


def execute_wave(editor, params: Params) -> Any:
    return editor.wave_effect(
        _param(params, "frequency", float),
        _param(params, "amplitude", float),
    )


def execute_mosaic(editor, params: Params) -> Any:
    return editor.mosaic(
        _param(params, "tile_width", int),
        _param(params, "tile_height", int),
    )


def execute_convolve(editor, params: Params) -> Any:
    """
    Convolve with a custom kernel.

    Params:
        - 'kernel': N x N nested list, or a flat list of N*N weights
        - 'normalizer': Optional divisor (default 1)
    """
    return editor.matrix_convolution(
        _param(params, "kernel", list),
        _param(params, "normalizer", float, 1.0),
    )


def execute_kernel_preset(editor, params: Params) -> Any:
    return editor.apply_preset(_param(params, "name", str))


def execute_blur(editor, params: Params) -> Any:
    return editor.blur()


def execute_more_blur(editor, params: Params) -> Any:
    return editor.more_blur()


def execute_sharpen(editor, params: Params) -> Any:
    return editor.sharpen()


def execute_more_sharpen(editor, params: Params) -> Any:
    return editor.more_sharpen()


def execute_motion_blur(editor, params: Params) -> Any:
    return editor.motion_blur()


def execute_emboss(editor, params: Params) -> Any:
    return editor.emboss()


def execute_edge_detect(editor, params: Params) -> Any:
    return editor.edge_detect()


# ============================================================================
# Geometry and whole-image renderers
# ============================================================================

def execute_resize(editor, params: Params) -> Any:
    return editor.resize(_param(params, "width", int), _param(params, "height", int))


def execute_rotate_cw(editor, params: Params) -> Any:
    return editor.rotate_cw()


def execute_rotate_ccw(editor, params: Params) -> Any:
    return editor.rotate_ccw()


def execute_rotate_180(editor, params: Params) -> Any:
    return editor.rotate_180()


def execute_flip_vertical(editor, params: Params) -> Any:
    return editor.flip_vertical()


def execute_flip_horizontal(editor, params: Params) -> Any:
    return editor.flip_horizontal()


def execute_recursive_mosaic(editor, params: Params) -> Any:
    return editor.recur_mosaic(
        _param(params, "i_scale", float, 1.0),
        _param(params, "m_scale", float),
    )


def execute_stereogram(editor, params: Params) -> Any:
    return editor.stereogram(_param(params, "width", int))


def execute_photomosaic(editor, params: Params) -> Any:
    return editor.process_image_mosaic(
        _param(params, "folder", str),
        _param(params, "name", str, "output"),
        i_scale=_param(params, "i_scale", float, 1.0),
        blend=_param(params, "blend", _flag, False),
        blend_amount=_param(params, "blend_amount", float, 0.0),
        jitter=_param(params, "jitter", int, 0),
    )


# ============================================================================
# Layers and history
# ============================================================================

def execute_select_layer(editor, params: Params) -> Any:
    return editor.select_layer(_param(params, "index", int))


def execute_set_opacity(editor, params: Params) -> Any:
    return editor.set_opacity(_param(params, "opacity", float))


def execute_set_blend_mode(editor, params: Params) -> Any:
    return editor.set_blend_mode(_param(params, "mode", _blend_mode))


def execute_duplicate_layer(editor, params: Params) -> Any:
    return editor.duplicate_layer()


def execute_merge_down(editor, params: Params) -> Any:
    return editor.merge_down()


def execute_flatten(editor, params: Params) -> Any:
    return editor.flatten_layers()


def execute_undo(editor, params: Params) -> Any:
    return editor.undo()


def execute_redo(editor, params: Params) -> Any:
    return editor.redo()
