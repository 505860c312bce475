"""
Command line front end for the pixel map converter.

Converts images into fixed-size grey-shade charts and writes them as JSON,
CSV or fixed-width text, optionally with a blown-up PNG preview.

Usage examples
--------------

Convert one photo to a 10-shade CSV chart on stdout::

    python -m pixel_map.cli photo.jpg --format csv

Convert a folder with 12 shades, writing charts and previews to ``charts/``::

    python -m pixel_map.cli photos/ --shades 12 --output-dir charts --preview

Read a base64 string or data URL from stdin::

    base64 -w0 photo.png | python -m pixel_map.cli - --format pdf-text
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass
from functools import partial
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Union

from .config import ConversionRequest, ConverterConfig, OutputFormat, load_config
from .converter import ConversionResult, convert
from .errors import InvalidDimensionsError, PixelMapError
from .preview import save_preview

logger = logging.getLogger("pixel_map")

IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".bmp", ".gif", ".tif", ".tiff", ".webp"}

STDIN = "-"


def _setup_logging(debug: bool = False):
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )


@dataclass
class BatchConfig:
    """Runtime configuration derived from CLI arguments."""

    shade_count: int
    output_format: OutputFormat
    output_dir: Optional[Path]
    preview: bool
    preview_scale: int
    indices: bool
    workers: int
    converter: ConverterConfig


@dataclass
class Job:
    """One input to convert; picklable so it can cross a process pool."""

    name: str
    request: ConversionRequest
    converter: ConverterConfig
    indices: bool


def _gather_images(sources: Sequence[str], recursive: bool) -> List[Union[Path, str]]:
    """Collect image files from file/directory arguments; ``-`` means stdin."""
    seen: set[Path] = set()
    images: List[Union[Path, str]] = []

    for source in sources:
        if source == STDIN:
            images.append(STDIN)
            continue
        path = Path(source)
        if path.is_dir():
            iterator: Iterable[Path]
            iterator = path.rglob("*") if recursive else path.iterdir()
            found = sorted(
                p.resolve() for p in iterator
                if p.is_file() and p.suffix.lower() in IMAGE_EXTENSIONS
            )
        elif path.is_file():
            if path.suffix.lower() not in IMAGE_EXTENSIONS:
                logger.warning("Skipping unsupported file: %s", path)
                continue
            found = [path.resolve()]
        else:
            logger.warning("Input path not found: %s", path)
            continue
        for candidate in found:
            if candidate not in seen:
                seen.add(candidate)
                images.append(candidate)

    return images


def _build_job(source: Union[Path, str], cfg: BatchConfig) -> Job:
    if source == STDIN:
        name, encoded = "stdin", sys.stdin.read()
    else:
        name, encoded = source.stem, source.read_bytes()
    request = ConversionRequest(
        encoded_image=encoded,
        shade_count=cfg.shade_count,
        output_format=cfg.output_format,
    )
    return Job(name=name, request=request, converter=cfg.converter, indices=cfg.indices)


def _run_job(job: Job) -> ConversionResult:
    return convert(job.request, config=job.converter, indices=job.indices)


def _render_payload(result: ConversionResult) -> str:
    if isinstance(result.payload, dict):
        return json.dumps(result.payload) + "\n"
    return result.payload


def _emit(job: Job, result: ConversionResult, cfg: BatchConfig) -> None:
    """Write the chart (and preview) for one converted input."""
    text = _render_payload(result)
    if cfg.output_dir is None:
        sys.stdout.write(text)
    else:
        out_path = cfg.output_dir / f"{job.name}.{cfg.output_format.extension}"
        out_path.write_text(text)
        logger.info("Wrote %s", out_path)

    if cfg.preview:
        preview_dir = cfg.output_dir or Path.cwd()
        save_preview(result.display, preview_dir / f"{job.name}_preview.png",
                     scale=cfg.preview_scale)


def run_batch(sources: Sequence[Union[Path, str]], cfg: BatchConfig) -> int:
    """Convert every source; returns the number of failed inputs."""
    if cfg.output_dir is not None:
        cfg.output_dir.mkdir(parents=True, exist_ok=True)

    jobs: List[Job] = []
    failures = 0
    for source in sources:
        try:
            jobs.append(_build_job(source, cfg))
        except (PixelMapError, OSError) as exc:
            logger.error("Failed to read %s: %s", source, exc)
            failures += 1

    executor = None
    if cfg.workers > 1 and len(jobs) > 1:
        executor = ProcessPoolExecutor(max_workers=min(cfg.workers, len(jobs)))
        runners = [executor.submit(_run_job, job).result for job in jobs]
    else:
        runners = [partial(_run_job, job) for job in jobs]

    # results are collected in input order
    outcomes = []
    try:
        for job, run in zip(jobs, runners):
            try:
                outcomes.append((job, run()))
            except PixelMapError as exc:
                logger.error("Failed to convert %s: %s", job.name, exc)
                failures += 1
    finally:
        if executor is not None:
            executor.shutdown()

    for job, result in outcomes:
        try:
            _emit(job, result, cfg)
        except OSError as exc:
            logger.error("Failed to write output for %s: %s", job.name, exc)
            failures += 1

    logger.info("Converted %d of %d inputs", len(sources) - failures, len(sources))
    return failures


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pixel-map",
        description="Convert images into grey-shade pixel charts for craft patterns.",
    )
    parser.add_argument("inputs", nargs="+",
                        help="Image files, directories, or '-' for base64 on stdin")
    parser.add_argument("--shades", type=str, default=None,
                        help="Number of shades, 9-12 (default: 10)")
    parser.add_argument("--format", dest="output_format", default="json",
                        choices=[f.value for f in OutputFormat],
                        help="Output format (default: json)")
    parser.add_argument("-o", "--output-dir", default=None,
                        help="Directory for chart files (default: stdout)")
    parser.add_argument("--preview", action="store_true",
                        help="Also save a blown-up PNG preview per input")
    parser.add_argument("--preview-scale", type=int, default=None,
                        help="Preview pixels per cell (default from config)")
    parser.add_argument("--indices", action="store_true",
                        help="Add row/column numbers to pdf-text output")
    parser.add_argument("--config", default=None,
                        help="JSON file overriding converter settings")
    parser.add_argument("--workers", type=int, default=1,
                        help="Convert inputs in parallel processes")
    parser.add_argument("--recursive", "-r", action="store_true",
                        help="Recurse into input directories")
    parser.add_argument("--debug", action="store_true", help="Verbose logging")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    _setup_logging(args.debug)

    try:
        converter = load_config(args.config)
        # validates shade count and preview scale before any image is read
        settings = ConversionRequest.create(None, args.shades, args.output_format,
                                            config=converter)
        preview_scale = (args.preview_scale if args.preview_scale is not None
                         else converter.preview_scale)
        if preview_scale <= 0:
            raise InvalidDimensionsError(
                f"Preview scale must be positive, got {preview_scale}"
            )
    except (PixelMapError, OSError, ValueError) as exc:
        logger.error("%s", exc)
        return 1

    cfg = BatchConfig(
        shade_count=settings.shade_count,
        output_format=settings.output_format,
        output_dir=Path(args.output_dir) if args.output_dir else None,
        preview=args.preview,
        preview_scale=preview_scale,
        indices=args.indices,
        workers=max(1, args.workers),
        converter=converter,
    )

    sources = _gather_images(args.inputs, recursive=args.recursive)
    if not sources:
        logger.error("No images found in %s", args.inputs)
        return 1

    failures = run_batch(sources, cfg)
    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(main())
