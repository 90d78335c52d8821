"""
PhotomosaicLib - Photomosaic tile matching

This module provides the image codec and converter collaborators, the
KD-tree colour index, corpus index persistence and the photomosaic builder.
"""

from IMP_Libs.PhotomosaicLib.codec import (
    ConversionError,
    ImageCodec,
    ExternalConverter,
    PillowCodec,
    PillowConverter,
    ImageMagickConverter,
)
from IMP_Libs.PhotomosaicLib.spatial_index import (
    DuplicateCoordinateError,
    SpatialIndex,
    KDTreeIndex,
)
from IMP_Libs.PhotomosaicLib.corpus_store import (
    CorpusFormatError,
    CorpusIndex,
    ImageNode,
    encode_corpus,
    decode_corpus,
    save_corpus,
    load_corpus,
)
from IMP_Libs.PhotomosaicLib.photomosaic import (
    PhotomosaicBuilder,
    PhotomosaicResult,
    average_color,
    blend_tile,
    build_corpus,
)

__all__ = [
    "ConversionError",
    "ImageCodec",
    "ExternalConverter",
    "PillowCodec",
    "PillowConverter",
    "ImageMagickConverter",
    "DuplicateCoordinateError",
    "SpatialIndex",
    "KDTreeIndex",
    "CorpusFormatError",
    "CorpusIndex",
    "ImageNode",
    "encode_corpus",
    "decode_corpus",
    "save_corpus",
    "load_corpus",
    "PhotomosaicBuilder",
    "PhotomosaicResult",
    "average_color",
    "blend_tile",
    "build_corpus",
]
