"""Thread-pool batch conversion with per-image failure isolation."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path

from PIL import Image

from pixel_art.errors import DecodeFailure, EncodeFailure
from pixel_art.image_io import load_image, output_path_for, save_png

logger = logging.getLogger(__name__)

Converter = Callable[[Image.Image], Image.Image]


@dataclass(frozen=True)
class ItemResult:
    """Outcome of converting one input image."""

    source: Path
    output: Path
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class BatchReport:
    results: list[ItemResult] = field(default_factory=list)

    @property
    def succeeded(self) -> list[ItemResult]:
        return [r for r in self.results if r.ok]

    @property
    def failed(self) -> list[ItemResult]:
        return [r for r in self.results if not r.ok]


def convert_one(source: Path, output: Path, convert: Converter) -> ItemResult:
    """Decode, transform and encode a single image.

    Decode and encode failures are returned in the result, not raised.
    """
    try:
        img = load_image(source)
        save_png(convert(img), output)
    except (DecodeFailure, EncodeFailure) as exc:
        logger.error("%s", exc)
        return ItemResult(source, output, error=str(exc))
    logger.debug("Wrote %s", output)
    return ItemResult(source, output)


def run_batch(
    paths: Sequence[Path],
    input_root: Path,
    output_dir: Path,
    convert: Converter,
    suffix: str,
    workers: int = 4,
    on_done: Callable[[ItemResult], None] | None = None,
) -> BatchReport:
    """Convert every path in *paths* on a pool of *workers* threads.

    *convert* must only read shared state (palette, tile library); each
    image writes to its own output path. Inputs that differ only by
    extension (``photo.png``, ``photo.jpg``) map to the same output; the
    first in *paths* keeps it and the rest are reported as failures
    without being converted. Blocks until all images are done.

    Args:
        paths:      Input images.
        input_root: Root the output layout is mirrored from.
        output_dir: Destination root, created if missing.
        convert:    Image-to-image transform applied to each input.
        suffix:     Appended to each output stem before ``.png``.
        workers:    Thread pool size.
        on_done:    Called with each result as it completes.
    """
    output_dir.mkdir(parents=True, exist_ok=True)

    claimed: dict[Path, Path] = {}
    jobs = []
    for src in paths:
        out = output_path_for(src, input_root, output_dir, suffix)
        owner = claimed.setdefault(out, src)
        jobs.append((src, out, None if owner == src else owner))

    def _job(job: tuple[Path, Path, Path | None]) -> ItemResult:
        src, out, owner = job
        if owner is None:
            result = convert_one(src, out, convert)
        else:
            logger.warning("Skipping %s: %s is already written from %s", src, out, owner)
            result = ItemResult(src, out, error=f"output {out} collides with {owner}")
        if on_done is not None:
            on_done(result)
        return result

    logger.info("Converting %d images with %d workers", len(paths), workers)
    with ThreadPoolExecutor(max_workers=workers) as pool:
        results = list(pool.map(_job, jobs))

    report = BatchReport(results)
    logger.info(
        "Batch finished: %d ok, %d failed", len(report.succeeded), len(report.failed),
    )
    return report
