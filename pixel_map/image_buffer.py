"""Decoded RGBA pixel data and the decoders that build it.

``ImageBuffer`` is the single pixel container passed between pipeline stages.
It is immutable: stages that need to change pixels copy the array first.
"""

from __future__ import annotations

import base64
import binascii
import logging
import re
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import Union

import numpy as np
from PIL import Image, UnidentifiedImageError

from .errors import DecodeError, InvalidDimensionsError

logger = logging.getLogger(__name__)

# e.g. "data:image/png;base64,"
_DATA_URL_PREFIX = re.compile(r"^data:[\w.+-]+/[\w.+-]+;base64,", re.IGNORECASE)

CHANNELS = 4

# integer greyscale modes that convert("RGBA") clips instead of scaling
_WIDE_GREY_MODES = ("I", "I;16", "I;16L", "I;16B", "I;16N")


@dataclass(frozen=True)
class ImageBuffer:
    """Row-major RGBA bytes, ``width * height * 4`` long."""

    width: int
    height: int
    data: bytes

    def __post_init__(self):
        if self.width <= 0 or self.height <= 0:
            raise InvalidDimensionsError(
                f"Image dimensions must be positive, got {self.width}x{self.height}"
            )
        expected = self.width * self.height * CHANNELS
        if len(self.data) != expected:
            raise InvalidDimensionsError(
                f"Pixel data is {len(self.data)} bytes, expected {expected} "
                f"for {self.width}x{self.height} RGBA"
            )

    @property
    def size(self) -> tuple[int, int]:
        return self.width, self.height

    def as_array(self) -> np.ndarray:
        """Read-only ``(height, width, 4)`` uint8 view of the pixel data."""
        arr = np.frombuffer(self.data, dtype=np.uint8)
        return arr.reshape(self.height, self.width, CHANNELS)

    def pixel(self, x: int, y: int) -> tuple[int, int, int, int]:
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise IndexError(f"Pixel ({x}, {y}) outside {self.width}x{self.height}")
        idx = (y * self.width + x) * CHANNELS
        r, g, b, a = self.data[idx:idx + CHANNELS]
        return r, g, b, a

    @classmethod
    def from_array(cls, arr: np.ndarray) -> "ImageBuffer":
        """Build a buffer from an ``(H, W)``, ``(H, W, 3)`` or ``(H, W, 4)`` array."""
        arr = np.asarray(arr)
        if arr.ndim == 2:
            arr = np.stack([arr, arr, arr], axis=-1)
        if arr.ndim != 3 or arr.shape[2] not in (3, 4):
            raise InvalidDimensionsError(f"Unsupported pixel array shape {arr.shape}")
        if arr.shape[2] == 3:
            alpha = np.full(arr.shape[:2] + (1,), 255, dtype=np.uint8)
            arr = np.concatenate([arr.astype(np.uint8), alpha], axis=2)
        h, w = arr.shape[:2]
        return cls(width=w, height=h, data=np.ascontiguousarray(arr, dtype=np.uint8).tobytes())

    @classmethod
    def from_pil(cls, image: Image.Image) -> "ImageBuffer":
        if image.mode in _WIDE_GREY_MODES:
            # keep the top byte of each 16-bit sample
            wide = np.asarray(image).astype(np.int64)
            return cls.from_array(np.clip(wide >> 8, 0, 255).astype(np.uint8))
        if image.mode != "RGBA":
            image = image.convert("RGBA")
        return cls(width=image.width, height=image.height, data=image.tobytes())

    def to_pil(self) -> Image.Image:
        return Image.frombytes("RGBA", (self.width, self.height), self.data)


def strip_data_url(encoded: str) -> str:
    """Drop a leading ``data:<media-type>;base64,`` declaration, if any."""
    return _DATA_URL_PREFIX.sub("", encoded.strip(), count=1)


def _open_image(raw: bytes) -> ImageBuffer:
    try:
        image = Image.open(BytesIO(raw))
        image.load()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as exc:
        raise DecodeError(f"Failed to decode image data: {exc}") from exc
    logger.debug("Decoded %s image %dx%d (mode %s)",
                 image.format, image.width, image.height, image.mode)
    return ImageBuffer.from_pil(image)


def decode_image(encoded: Union[str, bytes, None]) -> ImageBuffer:
    """Decode a base64 string (optionally a data URL) or raw file bytes.

    Raises:
        DecodeError: if the input is missing or empty, is not valid base64,
            or does not hold an image Pillow can read.
    """
    if encoded is None:
        raise DecodeError("Image data is required")

    if isinstance(encoded, (bytes, bytearray)):
        raw = bytes(encoded)
    else:
        # wrapped base64 (e.g. from `base64` without -w0) carries newlines
        payload = "".join(strip_data_url(encoded).split())
        if not payload:
            raise DecodeError("Image data is empty")
        try:
            raw = base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise DecodeError(f"Image data is not valid base64: {exc}") from exc

    if not raw:
        raise DecodeError("Image data is empty")
    return _open_image(raw)


def encode_image(buffer: ImageBuffer, fmt: str = "PNG") -> str:
    """Encode a buffer as a base64 data URL."""
    out = BytesIO()
    buffer.to_pil().save(out, format=fmt)
    b64 = base64.b64encode(out.getvalue()).decode("ascii")
    return f"data:image/{fmt.lower()};base64,{b64}"


def load_image(file_path: Union[str, Path]) -> ImageBuffer:
    """Read an image file from disk.

    Raises:
        FileNotFoundError: if the path does not point at a file.
        DecodeError: if the file is empty or not an image.
    """
    path = Path(file_path)
    if not path.is_file():
        raise FileNotFoundError(f"Image file not found: {path}")
    raw = path.read_bytes()
    if not raw:
        raise DecodeError(f"Image file is empty: {path}")
    return _open_image(raw)
