"""
RenderLib - Stereogram and text renderers

This module provides the random-dot and ASCII autostereograms and the
ASCII/HTML exporters.
"""

from IMP_Libs.RenderLib.stereogram import stereogram, ascii_stereogram
from IMP_Libs.RenderLib.text_render import (
    ASCII_PALETTES,
    DEFAULT_PALETTE,
    fill_ascii_map,
    ascii_map,
    ascii_html,
    color_ascii_html,
    message_html,
)

__all__ = [
    "stereogram",
    "ascii_stereogram",
    "ASCII_PALETTES",
    "DEFAULT_PALETTE",
    "fill_ascii_map",
    "ascii_map",
    "ascii_html",
    "color_ascii_html",
    "message_html",
]
