"""Luminance quantization: RGBA pixels to inverted shade indices.

Shade 0 is the lightest cell (white) and ``shade_count - 1`` the darkest
(black). For each pixel::

    shade = (shade_count - 1) - floor(grey * shade_count / 256)

clamped into ``[0, shade_count - 1]``. The same pass renders a display
buffer holding ``255 - shade * 255 / (shade_count - 1)`` in R, G and B with
an opaque alpha, so a preview shows exactly the grey each shade stands for.

Quantizing that display buffer again with the same shade count yields the
same pixel map: every rendered grey falls back into the bucket it came from.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

import numpy as np

from .classifier import GreyscaleLuminance, LuminanceSource, select_luminance_source
from .config import DEFAULT_SHADES, check_shade_count
from .errors import PixelIndexError
from .image_buffer import CHANNELS, ImageBuffer

logger = logging.getLogger(__name__)

PixelMap = List[List[int]]

# trace(x, y, grey, shade), called once per pixel when supplied
TraceHook = Callable[[int, int, float, int], None]


@dataclass
class QuantizationResult:
    """Shade grid plus the greyscale image rendered from it."""

    pixel_map: PixelMap
    display: ImageBuffer
    shade_count: int
    greyscale_input: bool

    @property
    def width(self) -> int:
        return self.display.width

    @property
    def height(self) -> int:
        return self.display.height


def shade_indices(grey: np.ndarray, shade_count: int) -> np.ndarray:
    """Map grey values in [0, 255] to clamped inverted shade indices."""
    top = shade_count - 1
    shades = top - np.floor(grey * shade_count / 256.0).astype(np.int64)
    return np.clip(shades, 0, top)


def display_values(shades: np.ndarray, shade_count: int) -> np.ndarray:
    """Grey byte each shade index is rendered as (0 -> 255, max -> 0)."""
    grey = 255.0 - shades * 255.0 / (shade_count - 1)
    # round half to even, then clamp, as a clamped byte store would
    return np.clip(np.rint(grey), 0, 255).astype(np.uint8)


def _check_bounds(buffer: ImageBuffer, width: int, height: int) -> None:
    if width * height * CHANNELS > len(buffer.data) or width > buffer.width:
        raise PixelIndexError(
            f"Cannot read {width}x{height} pixels from a "
            f"{buffer.width}x{buffer.height} buffer"
        )
    # a smaller grid would misread rows (stride is the buffer width)
    if (width, height) != buffer.size:
        raise PixelIndexError(
            f"Requested grid {width}x{height} does not match buffer "
            f"{buffer.width}x{buffer.height}; resample first"
        )


def quantize(
    buffer: ImageBuffer,
    shade_count: int = DEFAULT_SHADES,
    width: Optional[int] = None,
    height: Optional[int] = None,
    trace: Optional[TraceHook] = None,
    source: Optional[LuminanceSource] = None,
) -> QuantizationResult:
    """Quantize ``buffer`` into a pixel map and its display buffer.

    Args:
        buffer: Image already resampled to the chart grid.
        shade_count: Number of shades, 9 to 12.
        width: Expected grid width; defaults to the buffer width.
        height: Expected grid height; defaults to the buffer height.
        trace: Optional per-pixel hook ``(x, y, grey, shade)``.
        source: Luminance source override; classified from ``buffer``
            when omitted.

    Raises:
        InvalidShadeCountError: if ``shade_count`` is out of range.
        PixelIndexError: if ``width``/``height`` would index outside the buffer.
    """
    shade_count = check_shade_count(shade_count)
    width = buffer.width if width is None else width
    height = buffer.height if height is None else height
    _check_bounds(buffer, width, height)

    if source is None:
        source = select_luminance_source(buffer)
    logger.debug("Quantizing %dx%d into %d shades (%s source)",
                  width, height, shade_count, source.name)

    rgba = buffer.as_array()
    grey = source.grey(rgba)
    shades = shade_indices(grey, shade_count)

    display = np.empty_like(rgba)
    display[..., :3] = display_values(shades, shade_count)[..., None]
    display[..., 3] = 255

    if trace is not None:
        for y in range(height):
            for x in range(width):
                trace(x, y, float(grey[y, x]), int(shades[y, x]))

    return QuantizationResult(
        pixel_map=shades.tolist(),
        display=ImageBuffer(width=width, height=height, data=display.tobytes()),
        shade_count=shade_count,
        greyscale_input=isinstance(source, GreyscaleLuminance),
    )
