"""Nearest-neighbour resampling to the chart grid."""

import logging

import cv2
import numpy as np

from .errors import InvalidDimensionsError
from .image_buffer import ImageBuffer

logger = logging.getLogger(__name__)


def resample(buffer: ImageBuffer, width: int, height: int) -> ImageBuffer:
    """Resize ``buffer`` to exactly ``width`` x ``height``.

    Aspect ratio is not preserved: the image is stretched or squashed so each
    output pixel becomes one chart cell. Nearest-neighbour keeps cell edges
    crisp; no smoothing is applied.

    Raises:
        InvalidDimensionsError: if ``width`` or ``height`` is not positive.
    """
    if width <= 0 or height <= 0:
        raise InvalidDimensionsError(
            f"Resample target must be positive, got {width}x{height}"
        )
    if buffer.size == (width, height):
        return buffer

    src = buffer.as_array().copy()
    # cv2.resize takes (width, height)
    out = cv2.resize(src, (width, height), interpolation=cv2.INTER_NEAREST)
    logger.debug("Resampled %dx%d -> %dx%d", buffer.width, buffer.height, width, height)
    return ImageBuffer(width=width, height=height, data=np.ascontiguousarray(out).tobytes())
