"""Pairwise similarity matrix between entities of one orientation."""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, Optional

import numpy as np

from ..similarity import SimilarityFn

logger = logging.getLogger(__name__)

UNCOMPUTED = 0
DEFINED = 1
UNDEFINED = 2


class FitCancelledError(RuntimeError):
    """Raised when a fit is cancelled through its cancel event."""


class SimilarityMatrix:
    """Symmetric table of optional similarities.

    ``values`` holds the similarity of DEFINED cells only; ``state`` tells an
    uncomputed cell apart from one whose metric was undefined. UNDEFINED is
    terminal: ``build`` never calls the metric again for such a pair.
    """

    def __init__(self, size: int) -> None:
        self.size = int(size)
        self.values = np.zeros((self.size, self.size), dtype=np.float64)
        self.state = np.full((self.size, self.size), UNCOMPUTED, dtype=np.int8)

    def get(self, i: int, j: int) -> Optional[float]:
        if self.state[i, j] != DEFINED:
            return None
        return float(self.values[i, j])

    def is_defined(self, i: int, j: int) -> bool:
        return bool(self.state[i, j] == DEFINED)

    def defined_mask(self, row: int) -> np.ndarray:
        """Boolean mask over entities with a defined similarity to ``row``."""
        mask = self.state[row] == DEFINED
        mask[row] = False
        return mask

    def _set(self, i: int, j: int, sim: Optional[float]) -> None:
        if sim is None or not np.isfinite(sim):
            self.state[i, j] = self.state[j, i] = UNDEFINED
            return
        self.values[i, j] = self.values[j, i] = float(sim)
        self.state[i, j] = self.state[j, i] = DEFINED

    def _fill_rows(
        self,
        rows: Iterable[int],
        ratings: np.ndarray,
        sim: SimilarityFn,
        cancel_event: Optional[threading.Event],
    ) -> None:
        # Row i owns the pairs (i, j) for j > i, and both of their cells.
        for i in rows:
            if cancel_event is not None and cancel_event.is_set():
                raise FitCancelledError("similarity build cancelled")
            for j in range(i + 1, self.size):
                if self.state[i, j] != UNCOMPUTED:
                    continue
                self._set(i, j, sim(ratings[i], ratings[j]))

    def build(
        self,
        ratings: np.ndarray,
        sim: SimilarityFn,
        *,
        n_jobs: int = 1,
        cancel_event: Optional[threading.Event] = None,
    ) -> "SimilarityMatrix":
        """Fill every uncomputed pair from the rows of ``ratings``.

        Cost is O(E^2 * L) for E entities with L ratings columns each. With
        ``n_jobs > 1`` rows are interleaved across worker threads so that the
        quadratic work per worker stays balanced.
        """
        ratings = np.asarray(ratings, dtype=np.float64)
        if ratings.shape[0] != self.size:
            raise ValueError(f"expected {self.size} rating rows, got {ratings.shape[0]}")

        t0 = time.perf_counter()
        n_jobs = max(1, min(int(n_jobs), self.size))
        if n_jobs == 1:
            self._fill_rows(range(self.size), ratings, sim, cancel_event)
        else:
            with ThreadPoolExecutor(max_workers=n_jobs) as pool:
                futures = [
                    pool.submit(self._fill_rows, range(w, self.size, n_jobs), ratings, sim, cancel_event)
                    for w in range(n_jobs)
                ]
                for fut in futures:
                    fut.result()

        off_diag = ~np.eye(self.size, dtype=bool)
        logger.info(
            "Similarity matrix: entities=%d defined_pairs=%d undefined_pairs=%d n_jobs=%d elapsed=%.3fs",
            self.size,
            int(((self.state == DEFINED) & off_diag).sum()) // 2,
            int(((self.state == UNDEFINED) & off_diag).sum()) // 2,
            n_jobs,
            time.perf_counter() - t0,
        )
        return self
