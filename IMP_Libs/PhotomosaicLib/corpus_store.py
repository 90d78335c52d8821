"""
Photomosaic tile corpus persistence.

The corpus index records the tile size used during preprocessing and, per
tile, its average colour and file name. It is stored as little-endian
binary data:

    u32 version
    u32 tile_width
    u32 tile_height
    u32 count
    count x { f64 r, f64 g, f64 b, u32 name_length, name_length bytes UTF-8 }

Functions:
    encode_corpus: Serialize a CorpusIndex to bytes
    decode_corpus: Parse bytes into a CorpusIndex
    save_corpus: Write a CorpusIndex file
    load_corpus: Read a CorpusIndex file
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Tuple
import struct

from IMP_Libs.constants import CORPUS_FORMAT_VERSION

_HEADER = struct.Struct("<IIII")
_COLOR = struct.Struct("<ddd")
_LENGTH = struct.Struct("<I")


class CorpusFormatError(ValueError):
    """Raised when a corpus index file is missing data or malformed."""


@dataclass
class ImageNode:
    """One corpus tile: its average colour and file name within the tiles folder."""
    rgb: Tuple[float, float, float]
    file_ref: str


@dataclass
class CorpusIndex:
    """Tile size plus the list of preprocessed tiles."""
    tile_width: int
    tile_height: int
    nodes: List[ImageNode] = field(default_factory=list)
    version: int = CORPUS_FORMAT_VERSION

    def __post_init__(self):
        if self.tile_width < 1 or self.tile_height < 1:
            raise ValueError(
                f"Tile size must be at least 1x1, got {self.tile_width}x{self.tile_height}"
            )


def encode_corpus(corpus: CorpusIndex) -> bytes:
    chunks = [_HEADER.pack(CORPUS_FORMAT_VERSION, corpus.tile_width, corpus.tile_height, len(corpus.nodes))]
    for node in corpus.nodes:
        name = node.file_ref.encode("utf-8")
        chunks.append(_COLOR.pack(*node.rgb))
        chunks.append(_LENGTH.pack(len(name)))
        chunks.append(name)
    return b"".join(chunks)


def _unpack(layout: struct.Struct, data: bytes, offset: int, what: str) -> Tuple[Any, ...]:
    if offset + layout.size > len(data):
        raise CorpusFormatError(f"Corpus data truncated while reading {what}")
    return layout.unpack_from(data, offset)


def decode_corpus(data: bytes) -> CorpusIndex:
    """
    Parse a serialized corpus index.

    Raises:
        CorpusFormatError: On truncated data, an unknown version, bad file
            names or trailing bytes
    """
    version, tile_width, tile_height, count = _unpack(_HEADER, data, 0, "header")
    if version != CORPUS_FORMAT_VERSION:
        raise CorpusFormatError(
            f"Unsupported corpus version {version} (expected {CORPUS_FORMAT_VERSION})"
        )
    if tile_width < 1 or tile_height < 1:
        raise CorpusFormatError(f"Invalid tile size {tile_width}x{tile_height}")

    offset = _HEADER.size
    nodes: List[ImageNode] = []
    for position in range(count):
        rgb = _unpack(_COLOR, data, offset, f"entry {position} colour")
        offset += _COLOR.size
        (length,) = _unpack(_LENGTH, data, offset, f"entry {position} name length")
        offset += _LENGTH.size
        if offset + length > len(data):
            raise CorpusFormatError(f"Corpus data truncated while reading entry {position} name")
        try:
            name = data[offset:offset + length].decode("utf-8")
        except UnicodeDecodeError as exc:
            raise CorpusFormatError(f"Entry {position} has an invalid file name") from exc
        offset += length
        nodes.append(ImageNode(rgb=(rgb[0], rgb[1], rgb[2]), file_ref=name))

    if offset != len(data):
        raise CorpusFormatError(f"{len(data) - offset} unexpected trailing bytes in corpus data")

    return CorpusIndex(tile_width=tile_width, tile_height=tile_height, nodes=nodes, version=version)


def save_corpus(path: Path, corpus: CorpusIndex) -> None:
    """
    Write the corpus index to path.

    Raises:
        OSError: If the file cannot be written
    """
    Path(path).write_bytes(encode_corpus(corpus))


def load_corpus(path: Path) -> CorpusIndex:
    """
    Read a corpus index file.

    Raises:
        CorpusFormatError: If the file is missing, unreadable or malformed
    """
    try:
        data = Path(path).read_bytes()
    except OSError as exc:
        raise CorpusFormatError(f"Cannot read corpus index {path}: {exc}") from exc
    return decode_corpus(data)
