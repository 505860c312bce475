"""Serialize validated pixel maps to CSV, fixed-width text and JSON shapes.

The exporters assume a rectangular, validated map (see ``validator``).
"""

from __future__ import annotations

import csv
import io
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional, Tuple, Union

from .config import OutputFormat
from .errors import ValidationError

PixelMap = List[List[int]]

CSV_TITLE = "Pixel Map"


@dataclass
class CsvMetadata:
    """Header fields carried at the top of an exported CSV chart."""

    width: int
    height: int
    shades: int
    date: str


def _timestamp(timestamp: Optional[datetime]) -> str:
    if timestamp is None:
        timestamp = datetime.now(timezone.utc)
    elif timestamp.tzinfo is None:
        # naive values are taken as UTC
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    else:
        timestamp = timestamp.astimezone(timezone.utc)
    text = timestamp.isoformat(timespec="milliseconds")
    return text.replace("+00:00", "Z")


def _dimensions(pixel_map: PixelMap) -> Tuple[int, int]:
    height = len(pixel_map)
    width = len(pixel_map[0]) if height else 0
    return width, height


def to_csv(pixel_map: PixelMap, shade_count: int,
           timestamp: Optional[datetime] = None) -> str:
    """Metadata header, a blank line, then one comma-joined line per row."""
    width, height = _dimensions(pixel_map)
    out = io.StringIO()
    out.write(f"{CSV_TITLE}\n")
    out.write(f"Dimensions: {width}x{height}\n")
    out.write(f"Shades: {shade_count}\n")
    out.write(f"Date: {_timestamp(timestamp)}\n\n")
    writer = csv.writer(out, lineterminator="\n")
    writer.writerows(pixel_map)
    return out.getvalue()


def _header_value(line: str, key: str) -> str:
    prefix = f"{key}:"
    if not line.startswith(prefix):
        raise ValidationError(f"Expected '{prefix}' header line, got {line!r}")
    return line[len(prefix):].strip()


def read_csv(text: str) -> Tuple[CsvMetadata, PixelMap]:
    """Parse a document written by ``to_csv`` back into metadata and rows."""
    lines = text.splitlines()
    if len(lines) < 5 or lines[0].strip() != CSV_TITLE:
        raise ValidationError("Not a pixel map CSV document")

    dims = _header_value(lines[1], "Dimensions")
    try:
        width_text, height_text = dims.split("x")
        meta = CsvMetadata(
            width=int(width_text),
            height=int(height_text),
            shades=int(_header_value(lines[2], "Shades")),
            date=_header_value(lines[3], "Date"),
        )
        rows = [[int(v) for v in row] for row in csv.reader(lines[5:]) if row]
    except ValueError as exc:
        raise ValidationError(f"Malformed pixel map CSV: {exc}") from exc
    return meta, rows


def to_text(pixel_map: PixelMap, shade_count: int,
            timestamp: Optional[datetime] = None,
            indices: bool = False) -> str:
    """Fixed-width chart: two-digit cells separated by single spaces.

    With ``indices`` a column-number header and a row-number column are added,
    as on a printed chart.
    """
    width, height = _dimensions(pixel_map)
    lines = [
        f"{CSV_TITLE} ({width}x{height}) - {shade_count} Shades",
        f"Generated: {_timestamp(timestamp)}",
        "",
    ]
    if indices:
        header = " ".join(f"{x:02d}" for x in range(width))
        lines.append(f"   {header}")
    for y, row in enumerate(pixel_map):
        cells = " ".join(f"{value:02d}" for value in row)
        lines.append(f"{y:02d} {cells}" if indices else cells)
    return "\n".join(lines) + "\n"


def to_dict(pixel_map: PixelMap, shade_count: int,
            timestamp: Optional[datetime] = None) -> dict:
    width, height = _dimensions(pixel_map)
    return {
        "pixelMap": [list(row) for row in pixel_map],
        "dimensions": {"width": width, "height": height},
        "shades": int(shade_count),
        "timestamp": _timestamp(timestamp),
    }


def export(pixel_map: PixelMap, shade_count: int,
           output_format: Union[str, OutputFormat] = OutputFormat.JSON,
           timestamp: Optional[datetime] = None,
           indices: bool = False) -> Union[dict, str]:
    """Dispatch to the exporter for ``output_format``."""
    fmt = OutputFormat.parse(output_format)
    if fmt is OutputFormat.CSV:
        return to_csv(pixel_map, shade_count, timestamp)
    if fmt is OutputFormat.PDF_TEXT:
        return to_text(pixel_map, shade_count, timestamp, indices=indices)
    return to_dict(pixel_map, shade_count, timestamp)
