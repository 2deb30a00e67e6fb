"""Nearest-colour lookup shared by palette quantisation and tile selection.

Both searches minimise squared Euclidean RGB distance. Ties resolve to the
first candidate holding the minimum, which keeps results stable for a fixed
candidate order.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import TypeVar

import numpy as np

from pixel_art.color_utils import as_color_vectors, squared_distance, squared_distance_matrix
from pixel_art.errors import EmptyCandidateSet

T = TypeVar("T")


def nearest(
    query: np.ndarray,
    candidates: Sequence[T],
    color_of: Callable[[T], np.ndarray],
) -> T:
    """Return the candidate whose colour is closest to *query*.

    Raises:
        EmptyCandidateSet: if *candidates* is empty.
    """
    if len(candidates) == 0:
        msg = "nearest() needs at least one candidate"
        raise EmptyCandidateSet(msg)

    best = candidates[0]
    best_d = squared_distance(query, color_of(best))
    for cand in candidates[1:]:
        d = squared_distance(query, color_of(cand))
        if d < best_d:
            best_d = d
            best = cand
    return best


def nearest_indices(queries: np.ndarray, keys: np.ndarray) -> np.ndarray:
    """Vectorised :func:`nearest` over many queries.

    Args:
        queries: (M, 3) or (H, W, 3) colours to look up.
        keys:    (K, 3) candidate colours.

    Returns:
        (M,) int array of indices into *keys*.
    """
    k = as_color_vectors(keys)
    if len(k) == 0:
        msg = "nearest_indices() needs at least one candidate colour"
        raise EmptyCandidateSet(msg)
    # argmin returns the first minimum, matching nearest()'s tie rule
    return np.argmin(squared_distance_matrix(queries, k), axis=1)
