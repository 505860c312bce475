"""End-to-end conversion of one request into a validated, exported chart.

decode -> resample -> classify/quantize -> validate -> export

Every stage raises on failure; nothing here retries, since a conversion is a
pure function of its request.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Union

from .config import ConversionRequest, ConverterConfig, OutputFormat
from .exporter import export
from .image_buffer import ImageBuffer, decode_image
from .quantizer import PixelMap, TraceHook, quantize
from .resampler import resample
from .validator import ensure_valid

logger = logging.getLogger(__name__)


@dataclass
class ConversionResult:
    """Validated pixel map, its display buffer and the exported payload."""

    request: ConversionRequest
    pixel_map: PixelMap
    display: ImageBuffer
    width: int
    height: int
    greyscale_input: bool
    timestamp: datetime
    payload: Union[dict, str]

    @property
    def shade_count(self) -> int:
        return self.request.shade_count

    @property
    def output_format(self) -> OutputFormat:
        return self.request.output_format


def convert_image(
    image: ImageBuffer,
    request: ConversionRequest,
    config: Optional[ConverterConfig] = None,
    timestamp: Optional[datetime] = None,
    trace: Optional[TraceHook] = None,
    indices: bool = False,
) -> ConversionResult:
    """Run the pipeline on an already decoded image."""
    config = config or ConverterConfig()
    width, height = config.target_width, config.target_height
    timestamp = timestamp or datetime.now(timezone.utc)

    grid = resample(image, width, height)
    result = quantize(grid, request.shade_count, width=width, height=height, trace=trace)
    ensure_valid(result.pixel_map, width, height, request.shade_count)

    payload = export(
        result.pixel_map,
        request.shade_count,
        request.output_format,
        timestamp=timestamp,
        indices=indices,
    )
    logger.info(
        "Converted %dx%d image -> %dx%d chart, %d shades, %s (%s input)",
        image.width, image.height, width, height, request.shade_count,
        request.output_format.value,
        "greyscale" if result.greyscale_input else "colour",
    )
    return ConversionResult(
        request=request,
        pixel_map=result.pixel_map,
        display=result.display,
        width=width,
        height=height,
        greyscale_input=result.greyscale_input,
        timestamp=timestamp,
        payload=payload,
    )


def convert(
    request: ConversionRequest,
    config: Optional[ConverterConfig] = None,
    timestamp: Optional[datetime] = None,
    trace: Optional[TraceHook] = None,
    indices: bool = False,
) -> ConversionResult:
    """Decode ``request.encoded_image`` and convert it.

    Raises:
        DecodeError: if the image cannot be decoded.
        InvalidDimensionsError: if the configured grid is not positive.
        ValidationError: if the produced pixel map breaks its invariants.
    """
    image = decode_image(request.encoded_image)
    return convert_image(image, request, config=config, timestamp=timestamp,
                         trace=trace, indices=indices)
