"""Centering terms for the three neighbourhood variants."""

from __future__ import annotations

import enum
import logging

import numpy as np

from ..baseline import BaselineEstimator
from ..config import BaselineConfig
from ..trainset import TrainSet

logger = logging.getLogger(__name__)


class Variant(str, enum.Enum):
    BASIC = "basic"
    CENTERED = "centered"
    BASELINE = "baseline"


class Centering:
    """Zero centering: neighbour ratings are aggregated as-is."""

    def term(self, entity: int) -> float:
        return 0.0


class VectorCentering(Centering):
    """Centering by a per-entity vector (mean rating or baseline bias)."""

    def __init__(self, values: np.ndarray) -> None:
        self.values = np.asarray(values, dtype=np.float64)

    def term(self, entity: int) -> float:
        return float(self.values[entity])


def entity_means(ratings: np.ndarray, fallback: float) -> np.ndarray:
    """Row means over present ratings; rows without ratings get ``fallback``."""
    present = ~np.isnan(ratings)
    counts = present.sum(axis=1)
    sums = np.where(present, ratings, 0.0).sum(axis=1)
    means = np.full(ratings.shape[0], float(fallback), dtype=np.float64)
    np.divide(sums, counts, out=means, where=counts > 0)
    return means


def make_centering(
    variant: Variant,
    *,
    trainset: TrainSet,
    ratings: np.ndarray,
    user_based: bool,
    baseline_cfg: BaselineConfig | None = None,
) -> Centering:
    if variant is Variant.BASIC:
        return Centering()
    if variant is Variant.CENTERED:
        means = entity_means(ratings, fallback=trainset.global_mean)
        empty = int((np.isnan(ratings).all(axis=1)).sum())
        if empty:
            logger.warning("%d entities have no ratings; using the global mean as their mean", empty)
        return VectorCentering(means)

    estimator = BaselineEstimator(baseline_cfg).fit(trainset)
    return VectorCentering(estimator.user_bias if user_based else estimator.item_bias)
