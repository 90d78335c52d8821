"""
ASCII and HTML text export.

An image is reduced to character cells of resolution x (2 * resolution)
pixels, which keeps the aspect ratio of a typical monospace font. Each cell
becomes one character, picked from a 256-entry luminance palette or taken
from a repeating message, and colour modes wrap runs of equal colour in a
styled span.

Functions:
    fill_ascii_map: Expand a sparse luminance palette to 256 entries
    ascii_map: One of the built-in palettes
    ascii_html: Monochrome (white on black) character art
    color_ascii_html: Coloured character art
    message_html: Coloured art spelling out a repeating message
"""

from html import escape
from itertools import cycle
from typing import Dict, Iterator, List, Optional, Tuple
import logging

import numpy as np

from IMP_Libs.CanvasLib.pixel_buffer import PixelBuffer
from IMP_Libs.FiltersLib.tone import grayscale, posterize
from IMP_Libs.MosaicLib.mosaic import mosaic
from IMP_Libs.constants import DEFAULT_HTML_LEVELS, HTML_TITLE, RGB_MASK, WEB_SAFE_LEVELS

logger = logging.getLogger(__name__)

# Sparse palettes: luminance threshold -> character
ASCII_PALETTES: Dict[int, Dict[int, str]] = {
    0: {0: " ", 28: ".", 56: ":", 84: "+", 112: "j", 140: "6", 168: "b", 196: "H", 224: "M"},
    1: {0: " ", 28: ".", 56: ":", 84: "c", 112: "o", 140: "C", 168: "0", 196: "8", 224: "@"},
    2: {
        0: " ", 16: ".", 32: ":", 48: "i", 64: "c", 80: "u", 96: "o", 112: "e",
        128: "C", 144: "U", 160: "0", 176: "Q", 192: "G", 208: "S", 224: "8", 240: "@",
    },
    3: {
        0: " ", 9: "'", 27: ".", 36: "~", 45: ":", 54: ";", 63: "!", 72: ">",
        81: "+", 90: "=", 99: "i", 107: "c", 115: "j", 126: "t", 135: "J", 144: "Y",
        153: "5", 162: "6", 171: "S", 180: "X", 189: "D", 198: "Q", 207: "K", 216: "H",
        225: "N", 234: "W", 243: "M",
    },
}
DEFAULT_PALETTE = {0: " ", 127: "#"}


def fill_ascii_map(partial: Dict[int, str]) -> List[str]:
    """
    Expand a sparse palette to one character per luminance value.

    Each undefined entry repeats the closest defined entry below it; entries
    before the first definition are spaces.
    """
    filled = []
    last = " "
    for value in range(256):
        last = partial.get(value, last)
        filled.append(last)
    return filled


def ascii_map(option: int) -> List[str]:
    """Return built-in palette 0-3, or the two-character default for any other option."""
    return fill_ascii_map(ASCII_PALETTES.get(option, DEFAULT_PALETTE))


def _document_head(body_style: str) -> List[str]:
    return [
        "<html>\n  <head>\n",
        f"    <title>{HTML_TITLE}</title>\n  </head>\n",
        f'<body style="{body_style}" lang=en leftmargin=0 topmargin=0>\n',
        "<STYLE>\n<!--\n",
    ]


def _document_tail() -> str:
    return "  </PRE>\n</body>\n</html>"


def _cells(buffer: PixelBuffer, resolution: int) -> np.ndarray:
    """Top-left pixel of every character cell as an (rows, columns) array."""
    return buffer.grid()[::resolution * 2, ::resolution]


def _validate_resolution(resolution: int) -> None:
    if resolution < 1:
        raise ValueError(f"resolution must be >= 1, got {resolution}")


def ascii_html(
    flat: PixelBuffer,
    resolution: int,
    web_safe: bool = False,
    option: int = 0,
) -> str:
    """
    Export white-on-black character art as an HTML document.

    Args:
        flat: Flattened image
        resolution: Cell width in pixels; cells are twice as tall
        web_safe: Posterize to 5 levels before sampling
        option: Palette number (see ascii_map)

    Returns:
        The HTML document

    Raises:
        ValueError: If resolution < 1
    """
    _validate_resolution(resolution)
    palette = ascii_map(option)
    source = posterize(flat, WEB_SAFE_LEVELS) if web_safe else flat
    tiles = mosaic(source, resolution, resolution * 2)
    luminance = grayscale(tiles).reshape(tiles.height, tiles.width)
    cells = luminance[::resolution * 2, ::resolution]

    parts = _document_head("background: Black; color: White;")
    parts.append("  // -->\n</STYLE>\n<PRE>")
    for row in cells:
        parts.append(escape("".join(palette[int(value)] for value in row), quote=False))
        parts.append("\n")
    parts.append(_document_tail())
    logger.debug(f"ASCII export: {cells.shape[1]}x{cells.shape[0]} cells")
    return "".join(parts)


def _colored_document(colors: np.ndarray, characters: Iterator[str]) -> str:
    """
    Build the HTML for a grid of packed colours and a character stream.

    One style rule is emitted per distinct colour, in order of first use,
    and one span per run of equal colour within a row.
    """
    rules: List[str] = []
    seen = set()
    body = ["<PRE>"]
    for row in colors:
        last: Optional[int] = None
        for value in row:
            color = int(value) & RGB_MASK
            if color != last:
                if last is not None:
                    body.append("</span>")
                last = color
                body.append(f'<span id="c{color:06x}">')
                if color not in seen:
                    seen.add(color)
                    rules.append(f"  #c{color:06x} {{ color: #{color:06x}; }}\n")
            body.append(escape(next(characters), quote=False))
        body.append("</span>\n")

    parts = _document_head("background: Black;")
    parts.extend(rules)
    parts.append("  // -->\n</STYLE>\n")
    parts.extend(body)
    parts.append(_document_tail())
    return "".join(parts)


def _colored_cells(flat: PixelBuffer, resolution: int, web_safe: bool) -> Tuple[PixelBuffer, np.ndarray]:
    tiles = mosaic(flat, resolution, resolution * 2)
    levels = WEB_SAFE_LEVELS if web_safe else DEFAULT_HTML_LEVELS
    return tiles, _cells(posterize(tiles, levels), resolution)


def color_ascii_html(
    flat: PixelBuffer,
    resolution: int,
    web_safe: bool = False,
    option: int = 0,
) -> str:
    """
    Export coloured character art as an HTML document.

    Characters come from the luminance of each cell before posterization;
    colours come from the posterized cell.

    Raises:
        ValueError: If resolution < 1
    """
    _validate_resolution(resolution)
    palette = ascii_map(option)
    tiles, colors = _colored_cells(flat, resolution, web_safe)
    luminance = grayscale(tiles).reshape(tiles.height, tiles.width)
    cells = luminance[::resolution * 2, ::resolution]
    characters = (palette[int(value)] for value in cells.ravel())

    logger.debug(f"Colour ASCII export: {colors.shape[1]}x{colors.shape[0]} cells")
    return _colored_document(colors, characters)


def message_html(
    flat: PixelBuffer,
    resolution: int,
    message: str,
    web_safe: bool = False,
) -> str:
    """
    Export coloured art that spells out message, repeating it cell by cell.

    Raises:
        ValueError: If message is empty or resolution < 1
    """
    if not message:
        raise ValueError("message must not be empty")
    _validate_resolution(resolution)
    _, colors = _colored_cells(flat, resolution, web_safe)

    logger.debug(f"Message export: {colors.shape[1]}x{colors.shape[0]} cells")
    return _colored_document(colors, cycle(message))
