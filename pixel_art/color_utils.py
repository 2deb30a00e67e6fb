"""RGB colour vectors: conversion, distance, clamping and averaging."""

from __future__ import annotations

import numpy as np
from scipy.spatial.distance import cdist


def as_color_vectors(colors: np.ndarray) -> np.ndarray:
    """Coerce any (..., 3) RGB array to flat (N, 3) float64."""
    arr = np.asarray(colors, dtype=np.float64)
    if arr.shape[-1] != 3:
        msg = f"Expected trailing dimension of 3 (RGB), got shape {arr.shape}"
        raise ValueError(msg)
    return arr.reshape(-1, 3)


def squared_distance(a: np.ndarray, b: np.ndarray) -> float:
    """Squared Euclidean distance between two colour vectors."""
    d = np.asarray(a, dtype=np.float64) - np.asarray(b, dtype=np.float64)
    return float(d[0] ** 2 + d[1] ** 2 + d[2] ** 2)


def squared_distance_matrix(
    queries: np.ndarray,
    candidates: np.ndarray,
    chunk_size: int = 4096,
) -> np.ndarray:
    """Pairwise squared Euclidean distance between two colour sets.

    Args:
        queries:    (M, 3) colours.
        candidates: (K, 3) colours.
        chunk_size: Query rows computed per batch (controls peak RAM).

    Returns:
        (M, K) float64 distance matrix.
    """
    q = as_color_vectors(queries)
    c = as_color_vectors(candidates)

    m = len(q)
    dist = np.empty((m, len(c)), dtype=np.float64)
    for i in range(0, m, chunk_size):
        j = min(i + chunk_size, m)
        dist[i:j] = cdist(q[i:j], c, metric="sqeuclidean")
    return dist


def clamp_colors(colors: np.ndarray) -> np.ndarray:
    """Round and clamp float colours into displayable uint8 RGB."""
    return np.clip(np.rint(colors), 0, 255).astype(np.uint8)


def average_color(pixels: np.ndarray) -> np.ndarray:
    """Per-channel mean of an (H, W, 3) or (N, 3) pixel array.

    An empty array averages to black.
    """
    flat = as_color_vectors(pixels)
    if len(flat) == 0:
        return np.zeros(3, dtype=np.float64)
    return flat.mean(axis=0)
