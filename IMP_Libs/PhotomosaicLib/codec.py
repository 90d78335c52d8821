"""
Image codec and converter collaborators.

The editor core never decodes files itself: it goes through an ImageCodec
for reading and writing images and an ExternalConverter for the forced
resize used when preparing photomosaic tiles.

Classes:
    ImageCodec: Protocol for decode/encode
    ExternalConverter: Protocol for forced resizing of image files
    PillowCodec: ImageCodec backed by Pillow
    PillowConverter: ExternalConverter backed by Pillow
    ImageMagickConverter: ExternalConverter running ImageMagick as a subprocess
    ConversionError: Raised when a file cannot be converted
"""

from io import BytesIO
from pathlib import Path
from typing import Optional, Protocol, Sequence, Union
import logging
import shutil
import subprocess

from PIL import Image, UnidentifiedImageError

from IMP_Libs.CanvasLib.pixel_buffer import PixelBuffer
from IMP_Libs.constants import DEFAULT_OUTPUT_FORMAT, IMAGEMAGICK_EXECUTABLES

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class ConversionError(OSError):
    """Raised when an image file cannot be decoded or converted."""


class ImageCodec(Protocol):
    def decode(self, path: PathLike) -> PixelBuffer:
        ...

    def encode(self, buffer: PixelBuffer, path: PathLike, format: str = DEFAULT_OUTPUT_FORMAT) -> None:
        ...


class ExternalConverter(Protocol):
    def resize(self, path: PathLike, width: int, height: int) -> PixelBuffer:
        ...


class PillowCodec:
    """Read and write images with Pillow."""

    def decode(self, path: PathLike) -> PixelBuffer:
        """
        Load an image file.

        Raises:
            OSError: If the file is missing or is not a readable image
        """
        try:
            with Image.open(path) as image:
                return PixelBuffer.from_image(image)
        except UnidentifiedImageError as exc:
            raise ConversionError(f"Not a readable image: {path}") from exc

    def encode(self, buffer: PixelBuffer, path: PathLike, format: str = DEFAULT_OUTPUT_FORMAT) -> None:
        """
        Save a buffer to disk.

        Formats without alpha support (JPEG, BMP) are written as RGB.

        Raises:
            OSError: If the file cannot be written
        """
        image = buffer.to_image()
        if format.upper() in ("JPEG", "JPG", "BMP"):
            image = image.convert("RGB")
        image.save(path, format=format)


class PillowConverter:
    """Forced (aspect-ignoring) resize using Pillow."""

    def resize(self, path: PathLike, width: int, height: int) -> PixelBuffer:
        try:
            with Image.open(path) as image:
                resized = image.convert("RGBA").resize((width, height), Image.Resampling.LANCZOS)
        except (UnidentifiedImageError, OSError) as exc:
            raise ConversionError(f"Could not convert {path}: {exc}") from exc
        return PixelBuffer.from_image(resized)


class ImageMagickConverter:
    """
    Forced resize through the ImageMagick command line tool.

    Runs ``<executable> <src> -resize WxH! png:-`` and decodes the PNG it
    writes to stdout.
    """

    def __init__(self, executable: Optional[str] = None, timeout: Optional[float] = None):
        self.executable = executable or self.find_executable()
        self.timeout = timeout

    @staticmethod
    def find_executable(candidates: Sequence[str] = IMAGEMAGICK_EXECUTABLES) -> str:
        """
        Locate an ImageMagick binary on PATH.

        Raises:
            ConversionError: If none of the candidates is installed
        """
        for name in candidates:
            found = shutil.which(name)
            if found:
                return found
        raise ConversionError(f"ImageMagick not found (looked for {', '.join(candidates)})")

    def resize(self, path: PathLike, width: int, height: int) -> PixelBuffer:
        command = [self.executable, str(path), "-resize", f"{width}x{height}!", "png:-"]
        logger.debug(f"Running {' '.join(command)}")
        try:
            completed = subprocess.run(
                command,
                capture_output=True,
                check=True,
                timeout=self.timeout,
            )
        except subprocess.CalledProcessError as exc:
            message = exc.stderr.decode("utf-8", errors="replace").strip()
            raise ConversionError(f"ImageMagick failed on {path}: {message}") from exc
        except subprocess.TimeoutExpired as exc:
            raise ConversionError(f"ImageMagick timed out on {path}") from exc

        try:
            with Image.open(BytesIO(completed.stdout)) as image:
                return PixelBuffer.from_image(image)
        except UnidentifiedImageError as exc:
            raise ConversionError(f"ImageMagick produced no image for {path}") from exc
