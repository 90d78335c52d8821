"""
Command-line front end for the IMP editor core.

Subcommands:
    apply: Run one operation or a pipeline file on an image
    ops: List the registered operations
    info: Show the layer summary of an image
    corpus-build: Preprocess photos into a photomosaic tile corpus
    photomosaic: Render a photomosaic from a tile corpus
    ascii: Export an image as ASCII/HTML art

Example:
    python imp_cli.py apply photo.png out.png --op posterize --param levels=4
    python imp_cli.py corpus-build tiles/ photos/*.jpg --tile-size 16x16
    python imp_cli.py photomosaic photo.png tiles/ --name beach --scale 2
"""

from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Set, Tuple
import argparse
import json
import logging
import sys

import numpy as np

from IMP_Libs import __version__
from IMP_Libs.CanvasLib.layer_history import HistoryError
from IMP_Libs.OperationsLib.editor import ImpEditor
from IMP_Libs.OperationsLib.operation_registry import (
    SCOPE_IMAGE,
    SCOPE_LAYER,
    SCOPES,
    get_default_registry,
)
from IMP_Libs.OperationsLib.pipeline_store import (
    execute_pipeline,
    get_pipeline_summary,
    load_pipeline,
)
from IMP_Libs.PhotomosaicLib.codec import ImageMagickConverter, PillowConverter
from IMP_Libs.constants import FIELD_OPERATION, FIELD_STEPS

logger = logging.getLogger("imp_cli")


def parse_param(text: str) -> Tuple[str, Any]:
    """
    Parse a ``key=value`` operation parameter.

    The value is read as JSON when possible (numbers, booleans, lists) and
    kept as a plain string otherwise.

    Raises:
        argparse.ArgumentTypeError: If there is no '=' or the key is empty
    """
    key, sep, raw = text.partition("=")
    key = key.strip()
    if not sep or not key:
        raise argparse.ArgumentTypeError(f"Expected key=value, got {text!r}")
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        value = raw
    return key, value


def parse_tile_size(text: str) -> Tuple[int, int]:
    """Parse ``WxH`` into (width, height)."""
    width, sep, height = text.lower().partition("x")
    try:
        size = (int(width), int(height))
    except ValueError:
        size = (0, 0)
    if not sep or size[0] < 1 or size[1] < 1:
        raise argparse.ArgumentTypeError(f"Expected a tile size like 16x16, got {text!r}")
    return size


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="imp",
        description="Layered raster image editor core: filters, mosaics, stereograms and photomosaics.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    apply_parser = subparsers.add_parser("apply", help="Apply an operation or pipeline to an image.")
    apply_parser.add_argument("input", type=Path, help="Input image")
    apply_parser.add_argument("output", type=Path, help="Output image; format from the extension")
    action = apply_parser.add_mutually_exclusive_group(required=True)
    action.add_argument("--op", dest="operation", type=str, help="Registered operation name")
    action.add_argument("--pipeline", type=Path, help="JSON pipeline file")
    apply_parser.add_argument(
        "--param",
        dest="params",
        action="append",
        type=parse_param,
        default=[],
        metavar="KEY=VALUE",
        help="Operation parameter (repeatable)",
    )
    apply_parser.add_argument("--seed", type=int, default=None, help="Random seed")

    ops_parser = subparsers.add_parser("ops", help="List registered operations.")
    ops_parser.add_argument("--tag", type=str, default=None, help="Only operations with this tag")
    ops_parser.add_argument(
        "--scope", choices=SCOPES, default=None, help="Only operations that change this part of the document"
    )

    info_parser = subparsers.add_parser("info", help="Show image and layer information.")
    info_parser.add_argument("input", type=Path, help="Input image")

    corpus_parser = subparsers.add_parser("corpus-build", help="Preprocess photos into a tile corpus.")
    corpus_parser.add_argument("folder", type=Path, help="Corpus folder")
    corpus_parser.add_argument("files", type=Path, nargs="+", help="Source photos")
    corpus_parser.add_argument(
        "--tile-size", dest="tile_size", type=parse_tile_size, required=True, help="Tile size as WxH"
    )
    corpus_parser.add_argument(
        "--converter",
        choices=("pillow", "imagemagick"),
        default="pillow",
        help="Resizer used for the tiles",
    )
    corpus_parser.add_argument("--seed", type=int, default=None, help="Random seed")

    mosaic_parser = subparsers.add_parser("photomosaic", help="Render a photomosaic from a tile corpus.")
    mosaic_parser.add_argument("input", type=Path, help="Target image")
    mosaic_parser.add_argument("folder", type=Path, help="Corpus folder built by corpus-build")
    mosaic_parser.add_argument("--name", type=str, required=True, help="Output name suffix")
    mosaic_parser.add_argument("--scale", type=float, default=1.0, help="Output size relative to the input")
    mosaic_parser.add_argument(
        "--blend", type=float, default=None, metavar="AMOUNT", help="Tint tiles toward the target (0-1)"
    )
    mosaic_parser.add_argument("--jitter", type=int, default=0, help="Pick among the K nearest tiles")
    mosaic_parser.add_argument("--seed", type=int, default=None, help="Random seed")

    ascii_parser = subparsers.add_parser("ascii", help="Export an image as ASCII/HTML art.")
    ascii_parser.add_argument("input", type=Path, help="Input image")
    ascii_parser.add_argument("output", type=Path, help="Output HTML file")
    ascii_parser.add_argument("--mode", choices=("plain", "color", "message"), default="plain")
    ascii_parser.add_argument("--resolution", type=int, default=4, help="Cell width in pixels")
    ascii_parser.add_argument("--palette", type=int, default=0, help="Character palette (0-3)")
    ascii_parser.add_argument("--web-safe", dest="web_safe", action="store_true", help="Use 5 colour levels")
    ascii_parser.add_argument("--message", type=str, default="", help="Text for --mode message")

    return parser


def _load_editor(path: Path, seed: Optional[int] = None, **kwargs) -> ImpEditor:
    editor = ImpEditor(rng=np.random.default_rng(seed), **kwargs)
    editor.load_image(path)
    return editor


def cmd_apply(args: argparse.Namespace) -> int:
    editor = _load_editor(args.input, args.seed)
    registry = get_default_registry()

    if args.pipeline is not None:
        pipeline = load_pipeline(args.pipeline, registry)
        logger.info(get_pipeline_summary(pipeline))
        execute_pipeline(editor, pipeline, registry)
        scopes = {registry.get(step[FIELD_OPERATION]).scope for step in pipeline[FIELD_STEPS]}
    else:
        params: Dict[str, Any] = dict(args.params)
        registry.execute(args.operation, editor, params)
        scopes = {registry.get(args.operation).scope}

    _report_changes(editor, scopes)
    editor.save_image(args.output)
    logger.info(f"Wrote {args.output}")
    return 0


def _report_changes(editor: ImpEditor, scopes: Set[str]) -> None:
    """Log what the operations changed, by scope."""
    if SCOPE_IMAGE in scopes:
        logger.info(f"Canvas is now {editor.width}x{editor.height} with {editor.layer_count} layer(s)")
    if SCOPE_LAYER in scopes:
        logger.info(f"Layer {editor.selected_layer} has {editor.undo_levels} undo level(s)")


def cmd_ops(args: argparse.Namespace) -> int:
    registry = get_default_registry()
    names = registry.names(args.scope)
    if args.tag:
        names = [name for name in names if name in registry.filter_by_tag(args.tag)]
    for name in names:
        spec = registry.get(name)
        signature = spec.signature()
        print(f"{name:22} {spec.scope:9} {spec.description}" + (f" [{signature}]" if signature else ""))
    return 0


def cmd_info(args: argparse.Namespace) -> int:
    editor = _load_editor(args.input)
    print(json.dumps(editor.describe(), indent=2))
    return 0


def cmd_corpus_build(args: argparse.Namespace) -> int:
    converter = ImageMagickConverter() if args.converter == "imagemagick" else PillowConverter()
    editor = ImpEditor(converter=converter, rng=np.random.default_rng(args.seed))
    tile_width, tile_height = args.tile_size
    corpus = editor.process_images(args.files, args.folder, tile_width, tile_height)
    print(f"{len(corpus.nodes)} of {len(args.files)} images added to {args.folder}")
    return 0 if corpus.nodes else 1


def cmd_photomosaic(args: argparse.Namespace) -> int:
    editor = _load_editor(args.input, args.seed)
    result = editor.process_image_mosaic(
        args.folder,
        args.name,
        i_scale=args.scale,
        blend=args.blend is not None,
        blend_amount=args.blend or 0.0,
        jitter=args.jitter,
    )
    if result is None:
        return 1
    print(
        f"{result.tiles_placed} tiles placed, {result.tiles_failed} skipped, "
        f"{result.corpus_size} tiles in corpus"
    )
    return 0


def cmd_ascii(args: argparse.Namespace) -> int:
    editor = _load_editor(args.input)
    if args.mode == "color":
        document = editor.get_color_ascii_html(args.resolution, args.palette, args.web_safe)
    elif args.mode == "message":
        document = editor.get_msg_html(args.resolution, args.message, args.web_safe)
    else:
        document = editor.get_ascii_html(args.resolution, args.palette, args.web_safe)
    args.output.write_text(document, encoding="utf-8")
    logger.info(f"Wrote {args.output}")
    return 0


COMMANDS = {
    "apply": cmd_apply,
    "ops": cmd_ops,
    "info": cmd_info,
    "corpus-build": cmd_corpus_build,
    "photomosaic": cmd_photomosaic,
    "ascii": cmd_ascii,
}


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        return COMMANDS[args.command](args)
    except (OSError, ValueError, TypeError, KeyError, IndexError, HistoryError) as exc:
        logger.error(f"{args.command} failed: {exc}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
