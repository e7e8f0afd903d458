from __future__ import annotations

import threading

import numpy as np
import pytest

from knncf.knn.sim_matrix import DEFINED, UNDEFINED, FitCancelledError, SimilarityMatrix
from knncf.similarity import msd, pearson


def _random_ratings(n_rows: int, n_cols: int, seed: int = 0) -> np.ndarray:
    rng = np.random.default_rng(seed)
    mat = rng.integers(1, 6, size=(n_rows, n_cols)).astype(float)
    mat[rng.random((n_rows, n_cols)) < 0.4] = np.nan
    return mat


def test_matrix_is_symmetric() -> None:
    ratings = _random_ratings(12, 15)
    sims = SimilarityMatrix(12).build(ratings, pearson)
    np.testing.assert_array_equal(sims.state, sims.state.T)
    np.testing.assert_array_equal(sims.values, sims.values.T)
    for i in range(12):
        for j in range(12):
            if i != j:
                assert sims.get(i, j) == pearson(ratings[i], ratings[j])


def test_undefined_pairs_are_never_recomputed() -> None:
    ratings = np.array(
        [
            [1.0, np.nan, 3.0],
            [np.nan, 2.0, 4.0],
            [2.0, 2.0, 5.0],
        ]
    )
    calls: list[int] = []

    def counting(a: np.ndarray, b: np.ndarray):
        calls.append(1)
        return msd(a, b)

    sims = SimilarityMatrix(3).build(ratings, counting)
    assert len(calls) == 3
    assert sims.state[0, 1] == UNDEFINED
    assert sims.get(0, 1) is None
    assert not sims.is_defined(1, 0)
    assert sims.state[0, 2] == DEFINED

    sims.build(ratings, counting)
    assert len(calls) == 3


def test_defined_mask_excludes_diagonal_and_undefined() -> None:
    ratings = np.array(
        [
            [1.0, np.nan, 3.0],
            [np.nan, 2.0, 4.0],
            [2.0, 2.0, 5.0],
        ]
    )
    sims = SimilarityMatrix(3).build(ratings, msd)
    assert sims.defined_mask(0).tolist() == [False, False, True]
    assert sims.defined_mask(2).tolist() == [True, True, False]


def test_parallel_build_matches_serial() -> None:
    ratings = _random_ratings(30, 20, seed=3)
    serial = SimilarityMatrix(30).build(ratings, msd)
    parallel = SimilarityMatrix(30).build(ratings, msd, n_jobs=4)
    np.testing.assert_array_equal(serial.state, parallel.state)
    np.testing.assert_array_equal(serial.values, parallel.values)


def test_cancelled_build_raises() -> None:
    cancel = threading.Event()
    cancel.set()
    with pytest.raises(FitCancelledError):
        SimilarityMatrix(5).build(_random_ratings(5, 5), msd, cancel_event=cancel)


def test_row_count_must_match() -> None:
    with pytest.raises(ValueError):
        SimilarityMatrix(3).build(_random_ratings(4, 5), msd)


def test_non_finite_similarity_is_stored_as_undefined() -> None:
    ratings = _random_ratings(4, 6)

    def nan_metric(a: np.ndarray, b: np.ndarray) -> float:
        return float("nan")

    sims = SimilarityMatrix(4).build(ratings, nan_metric)
    off_diag = ~np.eye(4, dtype=bool)
    assert (sims.state[off_diag] == UNDEFINED).all()
    assert not sims.defined_mask(0).any()
    assert sims.get(0, 1) is None
