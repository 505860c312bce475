"""Blown-up preview images of a display buffer.

Each chart cell becomes a ``scale`` x ``scale`` block (nearest-neighbour, no
smoothing) outlined by a thin grid, so the preview reads like the printed
chart.
"""

import logging
from pathlib import Path
from typing import Tuple, Union

import cv2
import numpy as np
from PIL import Image

from .config import PREVIEW_SCALE
from .errors import InvalidDimensionsError
from .image_buffer import ImageBuffer

logger = logging.getLogger(__name__)

GRID_COLOR = (200, 200, 200)


def render_preview(
    display: ImageBuffer,
    scale: int = PREVIEW_SCALE,
    grid_color: Tuple[int, int, int] = GRID_COLOR,
    grid_width: int = 1,
) -> np.ndarray:
    """Blow up ``display`` and overlay the cell grid.

    Args:
        display: Display buffer from the quantizer (one pixel per cell).
        scale: Output pixels per cell edge.
        grid_color: RGB colour for the grid lines.
        grid_width: Width of grid lines in output pixels; 0 disables the grid.

    Returns:
        RGB uint8 numpy array of shape ``(height * scale, width * scale, 3)``.
    """
    if scale <= 0:
        raise InvalidDimensionsError(f"Preview scale must be positive, got {scale}")
    w, h = display.size
    rgb = display.as_array()[:, :, :3].copy()
    big = cv2.resize(rgb, (w * scale, h * scale), interpolation=cv2.INTER_NEAREST)

    if grid_width > 0 and scale > grid_width:
        out_h, out_w = big.shape[:2]
        for y in range(0, out_h + 1, scale):
            y_clamped = min(y, out_h - 1)
            big[max(0, y_clamped - grid_width + 1):y_clamped + 1, :] = grid_color
        for x in range(0, out_w + 1, scale):
            x_clamped = min(x, out_w - 1)
            big[:, max(0, x_clamped - grid_width + 1):x_clamped + 1] = grid_color

    return big


def save_preview(
    display: ImageBuffer,
    output_path: Union[str, Path],
    scale: int = PREVIEW_SCALE,
) -> Path:
    """Render and save a PNG preview. Returns the output path."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    Image.fromarray(render_preview(display, scale=scale)).save(output_path)
    logger.info("Preview saved: %s", output_path)
    return output_path
