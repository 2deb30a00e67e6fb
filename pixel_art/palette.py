"""Palette learning: colour sampling and k-means over a corpus of images."""

from __future__ import annotations

import logging
import math
import time
from pathlib import Path

import numpy as np
from PIL import Image

from pixel_art.color_utils import as_color_vectors
from pixel_art.config import PixelArtConfig
from pixel_art.errors import CorpusEmpty, DecodeFailure, NoSamplesCollected
from pixel_art.image_io import collect_images, load_image, to_rgb_image
from pixel_art.matching import nearest_indices

logger = logging.getLogger(__name__)

DEFAULT_KMEANS_ITERATIONS = 40


def sample_colors(image: Image.Image | np.ndarray, max_samples: int) -> np.ndarray:
    """Take up to *max_samples* colours from a regular grid over *image*.

    The stride is ``ceil(sqrt(area / max_samples))`` so density adapts to
    the image size. Pixels are visited row by row and the scan stops once
    *max_samples* colours are collected. ``max_samples <= 0`` samples
    every pixel. Arrays may be grayscale (H, W) or colour (H, W, 3|4).

    Returns:
        (N, 3) float64 array, N <= max_samples.
    """
    if isinstance(image, np.ndarray) and image.size == 0:
        return np.empty((0, 3), dtype=np.float64)
    pixels = np.asarray(to_rgb_image(image))
    h, w = pixels.shape[:2]
    area = w * h
    if max_samples <= 0:
        max_samples = area

    step = max(1, math.ceil(math.sqrt(area / max_samples)))
    grid = pixels[::step, ::step]
    return as_color_vectors(grid)[:max_samples].copy()


def build_palette(
    samples: np.ndarray,
    k: int,
    max_iterations: int = DEFAULT_KMEANS_ITERATIONS,
    rng: np.random.Generator | None = None,
) -> np.ndarray:
    """Cluster *samples* into *k* representative colours (Lloyd's k-means).

    Centroids start at *k* distinct random samples. Each round assigns
    every sample to its nearest centroid (lowest index on ties), moves
    each centroid to the mean of its members and re-seeds any centroid
    left without members from a random sample. Iteration stops once an
    assignment pass changes nothing.

    With fewer samples than *k* the samples themselves are the palette.

    Args:
        samples:        (N, 3) colours.
        k:              Requested palette size.
        max_iterations: Cap on assignment/update rounds.
        rng:            Random source (``None`` = freshly seeded from OS entropy,
            so repeated runs may differ).

    Returns:
        (min(k, N), 3) float64 array in centroid order (not sorted).
    """
    data = as_color_vectors(samples)
    n = len(data)
    if n == 0 or k <= 0:
        return np.empty((0, 3), dtype=np.float64)
    if k >= n:
        return data.copy()

    if rng is None:
        rng = np.random.default_rng()

    centroids = data[rng.permutation(n)[:k]].copy()
    labels = np.zeros(n, dtype=np.intp)

    for iteration in range(max_iterations):
        new_labels = nearest_indices(data, centroids)
        changed = bool(np.any(new_labels != labels))
        labels = new_labels
        if not changed and iteration > 0:
            logger.debug("k-means converged after %d iterations", iteration)
            break

        counts = np.bincount(labels, minlength=k)
        sums = np.zeros((k, 3), dtype=np.float64)
        np.add.at(sums, labels, data)

        filled = counts > 0
        centroids[filled] = sums[filled] / counts[filled, np.newaxis]
        for j in np.flatnonzero(~filled):
            centroids[j] = data[rng.integers(n)]

    return centroids


def build_palette_from_dir(
    directory: str | Path,
    palette_size: int,
    samples_per_image: int = 500,
    max_images: int = 200,
    max_iterations: int = DEFAULT_KMEANS_ITERATIONS,
    seed: int | None = None,
    extensions: frozenset[str] = PixelArtConfig.SUPPORTED_EXTENSIONS,
) -> np.ndarray:
    """Learn a palette from every image under *directory*.

    Images that fail to decode are logged and skipped.

    Raises:
        CorpusEmpty: no image files were found.
        NoSamplesCollected: none of the files could be decoded.

    Returns:
        Read-only (k, 3) float64 palette.
    """
    directory = Path(directory)
    paths = collect_images(directory, extensions)
    if not paths:
        msg = f"No images found in palette directory {directory}"
        raise CorpusEmpty(msg)
    if max_images > 0 and len(paths) > max_images:
        paths = paths[:max_images]

    chunks = []
    for p in paths:
        try:
            img = load_image(p)
        except DecodeFailure as exc:
            logger.warning("Skipping %s (%s)", p, exc.reason)
            continue
        chunks.append(sample_colors(img, samples_per_image))

    if not chunks or sum(len(c) for c in chunks) == 0:
        msg = f"No colour samples collected from {directory}"
        raise NoSamplesCollected(msg)
    samples = np.concatenate(chunks)

    logger.info(
        "Running k-means: %d samples from %d images, k=%d",
        len(samples), len(chunks), palette_size,
    )
    t0 = time.perf_counter()
    palette = build_palette(
        samples, palette_size, max_iterations, np.random.default_rng(seed),
    )
    logger.info(
        "Palette ready: %d colours  (%.1f s)", len(palette), time.perf_counter() - t0,
    )

    palette.setflags(write=False)
    return palette
