"""Structural and range checks for produced pixel maps."""

import logging
from numbers import Integral

from .config import DEFAULT_SHADES
from .errors import ValidationError

logger = logging.getLogger(__name__)


def _is_int(value) -> bool:
    return isinstance(value, Integral) and not isinstance(value, bool)


def validate_pixel_map(pixel_map, width: int, height: int,
                       shade_count: int = DEFAULT_SHADES) -> bool:
    """Return True if ``pixel_map`` is a ``height`` x ``width`` grid of shades.

    Never raises: anything that is not a list of lists of integers in
    ``[0, shade_count)`` simply fails the check.
    """
    if not isinstance(pixel_map, list) or len(pixel_map) != height:
        return False
    for row in pixel_map:
        if not isinstance(row, list) or len(row) != width:
            return False
        for value in row:
            if not _is_int(value) or value < 0 or value >= shade_count:
                return False
    return True


def ensure_valid(pixel_map, width: int, height: int,
                 shade_count: int = DEFAULT_SHADES) -> None:
    """Raise ValidationError unless ``validate_pixel_map`` passes."""
    if not validate_pixel_map(pixel_map, width, height, shade_count):
        logger.error("Pixel map failed validation (%dx%d, %d shades)",
                     width, height, shade_count)
        raise ValidationError(
            f"Generated pixel map is invalid for {width}x{height} "
            f"with {shade_count} shades"
        )
