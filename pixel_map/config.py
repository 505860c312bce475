"""Converter configuration: target grid, shade bounds, request model."""

import json
from dataclasses import dataclass
from enum import Enum
from numbers import Integral
from pathlib import Path
from typing import Optional, Union

from .errors import InvalidFormatError, InvalidShadeCountError


# ---------------------------------------------------------------------------
# Chart geometry and shade scale
# ---------------------------------------------------------------------------
TARGET_WIDTH = 50
TARGET_HEIGHT = 70

MIN_SHADES = 9
MAX_SHADES = 12
DEFAULT_SHADES = 10

# Preview cells are blown up by this factor (50x70 -> 500x700)
PREVIEW_SCALE = 10


class OutputFormat(str, Enum):
    JSON = "json"
    CSV = "csv"
    PDF_TEXT = "pdf-text"

    @property
    def extension(self) -> str:
        return {"json": "json", "csv": "csv", "pdf-text": "txt"}[self.value]

    @classmethod
    def parse(cls, value: Union[str, "OutputFormat"]) -> "OutputFormat":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            known = ", ".join(f.value for f in cls)
            raise InvalidFormatError(
                f"Unknown output format {value!r} (expected one of: {known})"
            ) from None


def check_shade_count(
    value,
    minimum: int = MIN_SHADES,
    maximum: int = MAX_SHADES,
) -> int:
    """Coerce ``value`` to an int shade count and check it is in range.

    Accepts ints (numpy integers included) and numeric strings, the way form
    fields arrive from a web front end. Booleans and floats with a fractional
    part are rejected.
    """
    if isinstance(value, bool):
        raise InvalidShadeCountError(f"Shade count must be a number, got {value!r}")
    if isinstance(value, str):
        text = value.strip()
        try:
            value = int(text)
        except ValueError:
            raise InvalidShadeCountError(
                f"Shade count must be a number, got {text!r}"
            ) from None
    elif isinstance(value, float):
        if not value.is_integer():
            raise InvalidShadeCountError(f"Shade count must be whole, got {value!r}")
        value = int(value)
    elif isinstance(value, Integral):
        value = int(value)
    else:
        raise InvalidShadeCountError(f"Shade count must be a number, got {value!r}")

    if not minimum <= value <= maximum:
        raise InvalidShadeCountError(
            f"Shade count must be between {minimum} and {maximum}, got {value}"
        )
    return value


@dataclass
class ConverterConfig:
    """Runtime settings for the conversion pipeline."""

    target_width: int = TARGET_WIDTH
    target_height: int = TARGET_HEIGHT
    default_shades: int = DEFAULT_SHADES
    preview_scale: int = PREVIEW_SCALE

    def to_dict(self) -> dict:
        return dict(self.__dict__)

    @classmethod
    def from_dict(cls, d: dict) -> "ConverterConfig":
        return cls(**{k: v for k, v in d.items() if k in cls.__dataclass_fields__})


def load_config(path: Optional[Union[str, Path]]) -> ConverterConfig:
    """Load a JSON config file; ``None`` gives the defaults."""
    if path is None:
        return ConverterConfig()
    with open(path) as f:
        return ConverterConfig.from_dict(json.load(f))


@dataclass(frozen=True)
class ConversionRequest:
    """One image to convert, with its shade count and output format."""

    encoded_image: Union[str, bytes, None]
    shade_count: int = DEFAULT_SHADES
    output_format: OutputFormat = OutputFormat.JSON

    def __post_init__(self):
        # normalise loose inputs in place; the dataclass is frozen
        object.__setattr__(self, "shade_count", check_shade_count(self.shade_count))
        object.__setattr__(self, "output_format", OutputFormat.parse(self.output_format))

    @classmethod
    def create(
        cls,
        encoded_image,
        shade_count=DEFAULT_SHADES,
        output_format="json",
        config: Optional[ConverterConfig] = None,
    ) -> "ConversionRequest":
        """Build a request from loosely typed inputs (form fields, CLI args)."""
        config = config or ConverterConfig()
        if shade_count is None:
            shade_count = config.default_shades
        if output_format is None:
            output_format = OutputFormat.JSON
        return cls(
            encoded_image=encoded_image,
            shade_count=shade_count,
            output_format=output_format,
        )
