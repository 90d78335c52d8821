"""
Tests for the Operation Registry.

Tests cover:
- Registry creation and basic operations
- Operation registration and lookup
- Scopes and declared parameters
- Checked execution
- Filtering by tags
- Singleton pattern
- Built-in operations driving an editor
"""

import unittest

import pytest

from conftest import solid
from IMP_Libs.OperationsLib.editor import ImpEditor
from IMP_Libs.OperationsLib.operation_registry import (
    SCOPE_DOCUMENT,
    SCOPE_IMAGE,
    SCOPE_LAYER,
    SCOPES,
    OperationRegistry,
    OperationSpec,
    get_default_registry,
    register_default_operations,
)
from IMP_Libs.CanvasLib.layer import BlendMode


def noop(editor, params):
    return params


class TestOperationRegistry(unittest.TestCase):
    """Test OperationRegistry declarations and checked execution."""

    def setUp(self):
        """Create a fresh registry for each test."""
        self.registry = OperationRegistry()

    def test_registry_creation(self):
        self.assertEqual(len(self.registry), 0)
        self.assertEqual(self.registry.names(), [])

    def test_register_returns_spec(self):
        spec = self.registry.register(
            "tint",
            noop,
            SCOPE_LAYER,
            required=["red"],
            optional=["green"],
            description="A test operation",
            tags=["tone"],
        )

        self.assertIn("tint", self.registry)
        self.assertIs(self.registry.get("tint"), spec)
        self.assertEqual(spec.params, ("red", "green"))
        self.assertEqual(spec.signature(), "red, green?")

    def test_register_rejects_bad_declarations(self):
        with self.assertRaises(ValueError):
            self.registry.register("  ", noop, SCOPE_LAYER)
        with self.assertRaises(ValueError):
            self.registry.register("bad", "not callable", SCOPE_LAYER)
        with self.assertRaises(ValueError):
            self.registry.register("bad", noop, "canvas")
        with self.assertRaises(ValueError):
            self.registry.register("bad", noop, SCOPE_LAYER, required=["a"], optional=["a"])

    def test_register_duplicate_raises_error(self):
        self.registry.register("op", noop, SCOPE_LAYER)
        with self.assertRaises(ValueError):
            self.registry.register("op", noop, SCOPE_IMAGE)

    def test_get_unknown_lists_available(self):
        self.registry.register("blur", noop, SCOPE_LAYER)
        with self.assertRaises(KeyError) as context:
            self.registry.get("glow")
        self.assertIn("blur", str(context.exception))

    def test_names_by_scope(self):
        self.registry.register("b", noop, SCOPE_LAYER)
        self.registry.register("a", noop, SCOPE_LAYER)
        self.registry.register("c", noop, SCOPE_DOCUMENT)

        self.assertEqual(self.registry.names(), ["a", "b", "c"])
        self.assertEqual(self.registry.names(SCOPE_LAYER), ["a", "b"])
        self.assertEqual(self.registry.names(SCOPE_IMAGE), [])

    def test_filter_by_tag_is_case_insensitive(self):
        self.registry.register("a", noop, SCOPE_LAYER, tags=["Tone"])
        self.registry.register("b", noop, SCOPE_LAYER, tags=["layer"])

        self.assertEqual(self.registry.filter_by_tag("tone"), ["a"])

    def test_execute_passes_params_copy(self):
        """Executors receive a copy of the params dictionary."""
        def capture(editor, params):
            params["extra"] = True
            return params

        params = {"levels": 4}
        self.registry.register("capture", capture, SCOPE_LAYER, required=["levels"])

        self.assertEqual(self.registry.execute("capture", None, params), {"levels": 4, "extra": True})
        self.assertEqual(params, {"levels": 4})

    def test_execute_without_params(self):
        self.registry.register("count", lambda editor, params: len(params), SCOPE_DOCUMENT)
        self.assertEqual(self.registry.execute("count", None), 0)

    def test_missing_required_param_is_not_run(self):
        calls = []
        self.registry.register("op", lambda editor, params: calls.append(params), SCOPE_LAYER, required=["size"])

        with self.assertRaises(ValueError) as context:
            self.registry.execute("op", None, {})

        self.assertIn("'size'", str(context.exception))
        self.assertEqual(calls, [])

    def test_unknown_param_is_not_run(self):
        calls = []
        self.registry.register(
            "op", lambda editor, params: calls.append(params), SCOPE_LAYER, optional=["pattern"]
        )

        with self.assertRaises(ValueError) as context:
            self.registry.execute("op", None, {"patern": "lines"})

        self.assertIn("patern", str(context.exception))
        self.assertIn("accepted: pattern", str(context.exception))
        self.assertEqual(calls, [])


class TestOperationSpec:
    """Tests for parameter checks on a declaration."""

    def test_check_params_reports_each_problem(self):
        spec = OperationSpec("halftone", noop, SCOPE_LAYER, required=("size",), optional=("pattern",))

        problems = spec.check_params({"colour": 1, "shape": 2})

        assert len(problems) == 2
        assert "Missing required parameter 'size'" in problems[0]
        assert "colour, shape" in problems[1]

    def test_check_params_accepts_optional_subset(self):
        spec = OperationSpec("halftone", noop, SCOPE_LAYER, required=("size",), optional=("pattern",))
        assert spec.check_params({"size": 4}) == []

    def test_no_params_signature(self):
        assert OperationSpec("invert", noop, SCOPE_LAYER).signature() == ""


class TestDefaultRegistry(unittest.TestCase):
    """Test the shared registry and built-in declarations."""

    def test_singleton(self):
        self.assertIs(get_default_registry(), get_default_registry())

    def test_builtins_registered(self):
        registry = get_default_registry()
        for name in (
            "posterize",
            "dithered_posterize",
            "halftone",
            "oil_paint",
            "convolve",
            "edge_detect",
            "recursive_mosaic",
            "stereogram",
            "photomosaic",
            "merge_down",
            "undo",
        ):
            self.assertIn(name, registry)

    def test_register_defaults_into_fresh_registry(self):
        registry = OperationRegistry()
        register_default_operations(registry)
        self.assertEqual(registry.names(), get_default_registry().names())

    def test_scopes(self):
        registry = get_default_registry()
        self.assertEqual(registry.get("posterize").scope, SCOPE_LAYER)
        self.assertEqual(registry.get("edge_detect").scope, SCOPE_LAYER)
        self.assertEqual(registry.get("rotate_cw").scope, SCOPE_IMAGE)
        self.assertEqual(registry.get("photomosaic").scope, SCOPE_IMAGE)
        self.assertEqual(registry.get("undo").scope, SCOPE_DOCUMENT)
        self.assertEqual(set(registry.names()), {
            name for scope in SCOPES for name in registry.names(scope)
        })

    def test_declared_params(self):
        registry = get_default_registry()
        self.assertEqual(registry.get("halftone").signature(), "size, pattern?")
        self.assertEqual(registry.get("oil_paint").required, ("brush_size", "colors"))
        self.assertEqual(registry.get("photomosaic").required, ("folder",))

    def test_tags(self):
        registry = get_default_registry()
        self.assertIn("blur", registry.filter_by_tag("convolution"))
        self.assertIn("rotate_cw", registry.filter_by_tag("geometry"))


class TestBuiltinExecution:
    """Tests that built-in operations drive an ImpEditor."""

    def _editor(self):
        editor = ImpEditor(4, 4)
        editor.add_layer(solid(4, 4, 200, 63, 64))
        return editor

    def test_posterize(self):
        editor = self._editor()
        get_default_registry().execute("posterize", editor, {"levels": 4})
        assert editor.canvas.selected.current.pixel(0, 0) == 0xFFC00040

    def test_string_parameters_are_converted(self):
        editor = self._editor()
        get_default_registry().execute("posterize", editor, {"levels": "4"})
        assert editor.undo_levels == 1

    def test_missing_parameter(self):
        editor = self._editor()
        with pytest.raises(ValueError, match="levels"):
            get_default_registry().execute("posterize", editor, {})

    def test_invalid_parameter(self):
        editor = self._editor()
        with pytest.raises(ValueError, match="Invalid value"):
            get_default_registry().execute("posterize", editor, {"levels": "many"})

    def test_blend_mode_by_name(self):
        editor = self._editor()
        get_default_registry().execute("set_blend_mode", editor, {"mode": "multiply"})
        assert editor.get_blend_mode() == BlendMode.MULTIPLY

    def test_halftone_pattern_by_name(self):
        editor = self._editor()
        get_default_registry().execute("halftone", editor, {"size": 2, "pattern": "lines"})
        assert editor.undo_levels == 1

    def test_undo_redo(self):
        editor = self._editor()
        registry = get_default_registry()
        registry.execute("invert", editor)
        assert registry.execute("undo", editor) == 0
        assert registry.execute("redo", editor) == 0

    def test_convolve_with_flat_kernel(self):
        editor = self._editor()
        get_default_registry().execute(
            "convolve", editor, {"kernel": [0, 0, 0, 0, 1, 0, 0, 0, 0], "normalizer": 1}
        )
        assert editor.canvas.selected.current == solid(4, 4, 200, 63, 64)

    def test_unknown_parameter_leaves_layer_untouched(self):
        editor = self._editor()
        with pytest.raises(ValueError, match="Unknown parameter"):
            get_default_registry().execute("posterize", editor, {"levels": 4, "level": 3})
        assert editor.undo_levels == 0
