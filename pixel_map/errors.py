"""Exceptions raised by the pixel map pipeline."""


class PixelMapError(Exception):
    """Base class for every error the conversion pipeline raises."""


class DecodeError(PixelMapError, ValueError):
    """The encoded image is missing, empty or not a readable image."""


class InvalidDimensionsError(PixelMapError, ValueError):
    """A width or height is not positive, or does not match the pixel data."""


class InvalidShadeCountError(PixelMapError, ValueError):
    """The shade count is non-numeric or outside the supported range."""


class InvalidFormatError(PixelMapError, ValueError):
    """The requested output format is not one of the known formats."""


class ValidationError(PixelMapError):
    """A produced pixel map is not rectangular or holds out-of-range values."""


class PixelIndexError(PixelMapError, IndexError):
    """A pixel index fell outside the image buffer being quantized."""
