from __future__ import annotations

import numpy as np
import pytest

from knncf.similarity import SIMILARITIES, cosine, get_similarity, msd, pearson

NAN = np.nan
A = np.array([3.0, 4.0, 5.0, NAN])
B = np.array([NAN, 1.0, 2.0, 3.0])


def test_cosine_over_co_rated_subset() -> None:
    assert cosine(A, B) == pytest.approx(0.978, abs=0.01)


def test_msd_over_co_rated_subset() -> None:
    assert msd(A, B) == pytest.approx(0.1, abs=0.01)


def test_pearson_centers_by_full_vector_mean() -> None:
    assert pearson(A, B) == pytest.approx(0.0, abs=0.01)


@pytest.mark.parametrize("name", sorted(SIMILARITIES))
def test_metrics_are_symmetric(name: str) -> None:
    rng = np.random.default_rng(7)
    a = rng.integers(1, 6, size=20).astype(float)
    b = rng.integers(1, 6, size=20).astype(float)
    a[rng.random(20) < 0.3] = NAN
    b[rng.random(20) < 0.3] = NAN
    fn = SIMILARITIES[name]
    assert fn(a, b) == fn(b, a)


@pytest.mark.parametrize("name", sorted(SIMILARITIES))
def test_fewer_than_two_co_rated_is_undefined(name: str) -> None:
    a = np.array([1.0, NAN, 3.0])
    b = np.array([2.0, 4.0, NAN])
    assert SIMILARITIES[name](a, b) is None


def test_pearson_undefined_for_constant_vectors() -> None:
    a = np.array([3.0, 3.0, 3.0])
    b = np.array([1.0, 2.0, 3.0])
    assert pearson(a, b) is None


def test_cosine_undefined_for_zero_vector() -> None:
    assert cosine(np.zeros(3), np.array([1.0, 2.0, 3.0])) is None


def test_msd_identical_vectors_is_one() -> None:
    a = np.array([1.0, 2.0, NAN, 4.0])
    assert msd(a, a) == 1.0


def test_unequal_lengths_rejected() -> None:
    with pytest.raises(ValueError):
        cosine(np.ones(3), np.ones(4))


def test_get_similarity_by_name_and_callable() -> None:
    assert get_similarity("Pearson") is pearson

    def custom(a: np.ndarray, b: np.ndarray) -> float:
        return 1.0

    assert get_similarity(custom) is custom
    with pytest.raises(ValueError, match="Unknown similarity"):
        get_similarity("jaccard")
