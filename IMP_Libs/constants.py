"""
Constants and configuration values for IMP.

This module centralizes all constant values, magic numbers, and
configuration settings used throughout the editor core.
"""

# Layer history
UNDO_LIMIT = 8

# Compositing
DIVIDE_EPSILON = 0.000976563
OPAQUE_ALPHA = 0xFF000000
RGB_MASK = 0x00FFFFFF
WHITE = 0xFFFFFFFF
BLACK = 0xFF000000

# Photomosaic corpus files
CORPUS_FILE_NAME = "imageTiles.data"
TILES_DIR_NAME = "mosaicTiles"
CORPUS_FORMAT_VERSION = 1
MOSAIC_OUTPUT_PREFIX = "mosaic-"
MOSAIC_TIMESTAMP_FORMAT = "%H%M%S"

# Stereograms
STEREOGRAM_DEPTH_RANGE = 1020
ASCII_STEREOGRAM_WIDTH = 12
ASCII_STEREOGRAM_TILE = (8, 16)
ASCII_STEREOGRAM_FIRST_CHAR = 65
ASCII_STEREOGRAM_CHAR_SPAN = 25

# HTML export
HTML_TITLE = "IMP: Ascii Image Export"
WEB_SAFE_LEVELS = 5
DEFAULT_HTML_LEVELS = 8

# Pipeline files
PIPELINE_SCHEMA_VERSION = 1
PIPELINE_FILE_EXTENSION = ".imppipe"
FIELD_SCHEMA_VERSION = "schema_version"
FIELD_NAME = "name"
FIELD_STEPS = "steps"
FIELD_OPERATION = "operation"
FIELD_PARAMS = "params"

# File naming
DEFAULT_OUTPUT_FORMAT = "PNG"
SUPPORTED_IMAGE_EXTENSIONS = (".png", ".jpg", ".jpeg", ".bmp", ".gif", ".tif", ".tiff")

# External converter executables, tried in order
IMAGEMAGICK_EXECUTABLES = ("magick", "convert")
