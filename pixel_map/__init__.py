"""Public interface for the pixel map chart converter."""

from __future__ import annotations

from .classifier import is_greyscale, select_luminance_source
from .config import (
    ConversionRequest,
    ConverterConfig,
    OutputFormat,
    load_config,
)
from .converter import ConversionResult, convert, convert_image
from .errors import (
    DecodeError,
    InvalidDimensionsError,
    InvalidFormatError,
    InvalidShadeCountError,
    PixelIndexError,
    PixelMapError,
    ValidationError,
)
from .exporter import read_csv, to_csv, to_dict, to_text
from .image_buffer import ImageBuffer, decode_image, encode_image, load_image
from .quantizer import QuantizationResult, quantize
from .resampler import resample
from .validator import ensure_valid, validate_pixel_map

__all__ = [
    "ConversionRequest",
    "ConversionResult",
    "ConverterConfig",
    "DecodeError",
    "ImageBuffer",
    "InvalidDimensionsError",
    "InvalidFormatError",
    "InvalidShadeCountError",
    "OutputFormat",
    "PixelIndexError",
    "PixelMapError",
    "QuantizationResult",
    "ValidationError",
    "convert",
    "convert_image",
    "decode_image",
    "encode_image",
    "ensure_valid",
    "is_greyscale",
    "load_config",
    "load_image",
    "quantize",
    "read_csv",
    "resample",
    "select_luminance_source",
    "to_csv",
    "to_dict",
    "to_text",
    "validate_pixel_map",
]
