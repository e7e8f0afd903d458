"""Similarity metrics between two rating vectors.

Every metric shares one contract: the two vectors have the same length, a
missing rating is NaN, and only the co-rated positions (present in both
vectors) take part. A metric returns ``None`` when it is undefined on that
subset: fewer than two co-rated positions, or a degenerate case such as a zero
norm. Metrics are symmetric in their arguments.
"""

from __future__ import annotations

from typing import Callable, Dict, Optional, Tuple, Union

import numpy as np

SimilarityFn = Callable[[np.ndarray, np.ndarray], Optional[float]]

MIN_CO_RATED = 2


def _co_rated(a: np.ndarray, b: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    if a.shape != b.shape:
        raise ValueError(f"rating vectors differ in shape: {a.shape} vs {b.shape}")
    mask = ~np.isnan(a) & ~np.isnan(b)
    return a[mask], b[mask]


def _cosine_of(a: np.ndarray, b: np.ndarray) -> Optional[float]:
    denom = float(np.linalg.norm(a)) * float(np.linalg.norm(b))
    if denom == 0.0:
        return None
    return float(np.dot(a, b) / denom)


def cosine(a: np.ndarray, b: np.ndarray) -> Optional[float]:
    """Cosine similarity over the co-rated subset, in [-1, 1]."""
    a_c, b_c = _co_rated(a, b)
    if a_c.size < MIN_CO_RATED:
        return None
    return _cosine_of(a_c, b_c)


def msd(a: np.ndarray, b: np.ndarray) -> Optional[float]:
    """Mean squared difference similarity: 1 / (1 + msd), in (0, 1]."""
    a_c, b_c = _co_rated(a, b)
    if a_c.size < MIN_CO_RATED:
        return None
    return float(1.0 / (1.0 + np.mean((a_c - b_c) ** 2)))


def pearson(a: np.ndarray, b: np.ndarray) -> Optional[float]:
    """Pearson-style correlation, in [-1, 1].

    Each vector is centered by the mean of all of its present ratings (not only
    the co-rated ones) before the cosine of the co-rated values is taken.
    """
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    a_c, b_c = _co_rated(a, b)
    if a_c.size < MIN_CO_RATED:
        return None
    return _cosine_of(a_c - np.nanmean(a), b_c - np.nanmean(b))


SIMILARITIES: Dict[str, SimilarityFn] = {
    "cosine": cosine,
    "msd": msd,
    "pearson": pearson,
}

DEFAULT_SIMILARITY = "msd"


def get_similarity(sim: Union[str, SimilarityFn]) -> SimilarityFn:
    """Resolve a metric by registry name, or pass a callable through."""
    if callable(sim):
        return sim
    name = str(sim).strip().lower()
    if name not in SIMILARITIES:
        raise ValueError(f"Unknown similarity {sim!r}; expected one of {sorted(SIMILARITIES)}")
    return SIMILARITIES[name]
