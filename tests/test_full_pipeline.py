"""End-to-end tests for the conversion pipeline.

Feeds encoded images through ``convert`` and checks the chart properties the
downstream printing and export layers rely on.
"""

from __future__ import annotations

import base64
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from io import BytesIO

import numpy as np
import pytest
from PIL import Image

from pixel_map import (
    ConversionRequest,
    ConverterConfig,
    DecodeError,
    InvalidDimensionsError,
    OutputFormat,
    convert,
    convert_image,
    quantize,
    read_csv,
    validate_pixel_map,
)
from pixel_map.image_buffer import ImageBuffer

FIXED_TIME = datetime(2024, 5, 6, 7, 8, 9, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Synthetic image helpers
# ---------------------------------------------------------------------------


def _encode(pixels: np.ndarray, fmt: str = "PNG", data_url: bool = True) -> str:
    out = BytesIO()
    Image.fromarray(pixels).save(out, format=fmt)
    b64 = base64.b64encode(out.getvalue()).decode("ascii")
    return f"data:image/{fmt.lower()};base64,{b64}" if data_url else b64


def _solid_pixels(width: int, height: int, rgb) -> np.ndarray:
    pixels = np.zeros((height, width, 3), dtype=np.uint8)
    pixels[:, :] = rgb
    return pixels


def _photo_like(width: int = 120, height: int = 90, seed: int = 7) -> np.ndarray:
    """Smooth colour gradient with noise, roughly like a small photo."""
    rng = np.random.RandomState(seed)
    ys, xs = np.mgrid[0:height, 0:width]
    img = np.stack(
        [xs * 255 // max(width - 1, 1), ys * 255 // max(height - 1, 1), (xs + ys) % 256],
        axis=-1,
    ).astype(np.int16)
    noise = rng.randint(-8, 9, img.shape, dtype=np.int16)
    return np.clip(img + noise, 0, 255).astype(np.uint8)


def _cells(pixel_map):
    return [v for row in pixel_map for v in row]


# ---------------------------------------------------------------------------
# Tests: conversion properties
# ---------------------------------------------------------------------------


class TestConvert:
    def test_solid_red_csv(self):
        request = ConversionRequest.create(_encode(_solid_pixels(2, 2, (255, 0, 0))), 10, "csv")
        result = convert(request, timestamp=FIXED_TIME)
        meta, rows = read_csv(result.payload)
        assert (meta.width, meta.height, meta.shades) == (50, 70, 10)
        assert rows == result.pixel_map
        assert set(_cells(rows)) == {7}, "0.299 * 255 = 76.2 should land on shade 7"

    def test_json_payload(self):
        request = ConversionRequest.create(_encode(_photo_like()), "12", "json")
        result = convert(request, timestamp=FIXED_TIME)
        payload = result.payload
        assert payload["dimensions"] == {"width": 50, "height": 70}
        assert payload["shades"] == 12
        assert payload["pixelMap"] == result.pixel_map
        assert payload["timestamp"] == "2024-05-06T07:08:09.000Z"

    def test_pdf_text_payload(self):
        request = ConversionRequest.create(_encode(_photo_like()), 9, "pdf-text")
        result = convert(request, timestamp=FIXED_TIME)
        lines = result.payload.splitlines()
        assert lines[0] == "Pixel Map (50x70) - 9 Shades"
        rows = lines[3:]
        assert len(rows) == 70
        assert all(len(row.split(" ")) == 50 for row in rows)
        assert rows[0].split(" ") == [f"{v:02d}" for v in result.pixel_map[0]]

    @pytest.mark.parametrize("shades", [9, 10, 11, 12])
    def test_rectangular_and_in_range(self, shades):
        request = ConversionRequest(_encode(_photo_like()), shade_count=shades)
        result = convert(request)
        assert len(result.pixel_map) == 70
        assert all(len(row) == 50 for row in result.pixel_map)
        assert all(0 <= v < shades for v in _cells(result.pixel_map))
        assert validate_pixel_map(result.pixel_map, 50, 70, shades)

    def test_monochrome_input_is_uniform(self):
        request = ConversionRequest(_encode(_solid_pixels(37, 23, (128, 128, 128))))
        result = convert(request)
        assert result.greyscale_input
        assert set(_cells(result.pixel_map)) == {4}

    def test_white_and_black(self):
        white = convert(ConversionRequest(_encode(_solid_pixels(8, 8, (255, 255, 255)))))
        black = convert(ConversionRequest(_encode(_solid_pixels(8, 8, (0, 0, 0)))))
        assert set(_cells(white.pixel_map)) == {0}
        assert set(_cells(black.pixel_map)) == {9}

    @pytest.mark.parametrize("shades", [9, 10, 11, 12])
    def test_display_buffer_requantizes_identically(self, shades):
        result = convert(ConversionRequest(_encode(_photo_like()), shade_count=shades))
        again = quantize(result.display, shades)
        assert again.greyscale_input
        assert again.pixel_map == result.pixel_map

    def test_greyscale_photo_round_trip(self):
        grey = _photo_like()[:, :, 0]
        pixels = np.stack([grey, grey, grey], axis=-1)
        result = convert(ConversionRequest(_encode(pixels)))
        assert result.greyscale_input
        assert quantize(result.display, 10).pixel_map == result.pixel_map

    def test_jpeg_input(self):
        request = ConversionRequest(_encode(_photo_like(), fmt="JPEG", data_url=False))
        result = convert(request)
        assert result.display.size == (50, 70)

    def test_rgba_input_with_transparency(self):
        pixels = np.zeros((10, 10, 4), dtype=np.uint8)
        pixels[..., :3] = 60
        pixels[..., 3] = 0
        result = convert(ConversionRequest(_encode(pixels)))
        assert result.greyscale_input
        display = result.display.as_array()
        assert np.all(display[..., 3] == 255), "Display buffer is always opaque"

    def test_custom_grid(self):
        config = ConverterConfig(target_width=10, target_height=5)
        result = convert(ConversionRequest(_encode(_photo_like())), config=config)
        assert (result.width, result.height) == (10, 5)
        assert len(result.pixel_map) == 5
        assert all(len(row) == 10 for row in result.pixel_map)

    def test_invalid_grid(self):
        config = ConverterConfig(target_width=0, target_height=70)
        with pytest.raises(InvalidDimensionsError):
            convert(ConversionRequest(_encode(_photo_like())), config=config)

    @pytest.mark.parametrize("encoded", [None, "", "data:image/png;base64,", "%%%"])
    def test_decode_errors_propagate(self, encoded):
        with pytest.raises(DecodeError):
            convert(ConversionRequest(encoded))

    def test_convert_image_from_buffer(self):
        buf = ImageBuffer.from_array(_photo_like())
        request = ConversionRequest(None, output_format=OutputFormat.CSV)
        result = convert_image(buf, request, timestamp=FIXED_TIME)
        assert result.output_format is OutputFormat.CSV
        assert result.shade_count == 10
        assert result.timestamp == FIXED_TIME

    def test_trace_hook_sees_every_cell(self):
        seen = []
        convert(ConversionRequest(_encode(_photo_like())),
                trace=lambda x, y, grey, shade: seen.append((x, y)))
        assert len(seen) == 50 * 70
        assert seen[0] == (0, 0) and seen[-1] == (49, 69)


# ---------------------------------------------------------------------------
# Tests: concurrent conversions
# ---------------------------------------------------------------------------


class TestConcurrency:
    def test_parallel_conversions_are_independent(self):
        encoded = [_encode(_photo_like(seed=s)) for s in range(4)]
        requests = [ConversionRequest(e, shade_count=9 + i) for i, e in enumerate(encoded)]
        sequential = [convert(r, timestamp=FIXED_TIME).pixel_map for r in requests]

        with ThreadPoolExecutor(max_workers=4) as ex:
            parallel = list(ex.map(lambda r: convert(r, timestamp=FIXED_TIME).pixel_map,
                                   requests))
        assert parallel == sequential
