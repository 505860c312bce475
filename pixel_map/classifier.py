"""Greyscale detection and the luminance source chosen from it."""

from __future__ import annotations

import numpy as np

from .image_buffer import ImageBuffer

# ITU-R BT.601 luma weights
LUMA_WEIGHTS = (0.299, 0.587, 0.114)


def is_greyscale(buffer: ImageBuffer) -> bool:
    """True iff every pixel has R == G == B. Alpha is ignored."""
    rgba = buffer.as_array()
    r, g, b = rgba[..., 0], rgba[..., 1], rgba[..., 2]
    return bool(np.all((r == g) & (g == b)))


class LuminanceSource:
    """Turns an RGBA array into a float grey value per pixel."""

    name = "abstract"

    def grey(self, rgba: np.ndarray) -> np.ndarray:
        raise NotImplementedError


class GreyscaleLuminance(LuminanceSource):
    """Pass-through for images that are already grey: ``grey = R``.

    Skipping the weighted sum keeps a grey input's values unchanged.
    """

    name = "greyscale"

    def grey(self, rgba: np.ndarray) -> np.ndarray:
        return rgba[..., 0].astype(np.float64)


class ColorLuminance(LuminanceSource):
    """Weighted luma: ``0.299 R + 0.587 G + 0.114 B``."""

    name = "color"

    def grey(self, rgba: np.ndarray) -> np.ndarray:
        rgb = rgba[..., :3].astype(np.float64)
        wr, wg, wb = LUMA_WEIGHTS
        return wr * rgb[..., 0] + wg * rgb[..., 1] + wb * rgb[..., 2]


GREYSCALE = GreyscaleLuminance()
COLOR = ColorLuminance()


def select_luminance_source(buffer: ImageBuffer) -> LuminanceSource:
    """Classify ``buffer`` once and return the matching luminance source."""
    return GREYSCALE if is_greyscale(buffer) else COLOR
