"""k-nearest-neighbour rating prediction (user-user or item-item)."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Optional

import numpy as np
import pandas as pd
from sklearn.exceptions import NotFittedError

from ..config import BaselineConfig, KNNConfig
from ..trainset import NOBODY, TrainSet
from .centering import Centering, Variant, make_centering
from .sim_matrix import SimilarityMatrix

logger = logging.getLogger(__name__)

# Similarity mass below this is treated as zero.
ZERO_WEIGHT_ATOL = 1e-12


@dataclass(frozen=True)
class Neighbor:
    entity_id: Any
    inner_id: int
    similarity: float
    rating: float


@dataclass(frozen=True)
class SimilarEntity:
    entity_id: Any
    similarity: float
    co_rated: int


@dataclass(frozen=True, eq=False)
class _Fitted:
    trainset: TrainSet
    config: KNNConfig
    global_mean: float
    ratings: np.ndarray
    classes: np.ndarray
    sims: SimilarityMatrix
    centering: Centering


def oriented_ratings(trainset: TrainSet, user_based: bool) -> tuple[np.ndarray, np.ndarray]:
    """Rating rows and raw ids of the entities of the active orientation."""
    if user_based:
        return trainset.user_ratings(), trainset.user_classes
    return trainset.item_ratings(), trainset.item_classes


class KNN:
    """Memory-based collaborative filtering with a cached similarity matrix.

    ``fit`` computes every pairwise similarity once; ``predict`` then takes the
    ``k`` most similar entities that rated the target and returns their
    similarity-weighted (optionally centered) rating. Whenever the evidence is
    missing the global mean is returned instead:

    - the user or the item is unknown,
    - at most ``min_k`` candidates qualify,
    - the selected similarities sum to zero.

    A fitted model is read-only, so ``predict`` may be called from several
    threads at once.
    """

    def __init__(
        self,
        variant: Variant | str = Variant.BASIC,
        config: KNNConfig | None = None,
        *,
        baseline_config: BaselineConfig | None = None,
    ) -> None:
        self.variant = Variant(variant)
        self.config = config if config is not None else KNNConfig()
        self.baseline_config = baseline_config
        self._state: Optional[_Fitted] = None

    @classmethod
    def basic(cls, config: KNNConfig | None = None) -> "KNN":
        return cls(Variant.BASIC, config)

    @classmethod
    def with_mean(cls, config: KNNConfig | None = None) -> "KNN":
        return cls(Variant.CENTERED, config)

    @classmethod
    def with_baseline(cls, config: KNNConfig | None = None, baseline_config: BaselineConfig | None = None) -> "KNN":
        return cls(Variant.BASELINE, config, baseline_config=baseline_config)

    @property
    def is_fitted(self) -> bool:
        return self._state is not None

    def _fitted(self) -> _Fitted:
        state = self._state
        if state is None:
            raise NotFittedError("KNN model is not fitted yet; call fit() before predict().")
        return state

    def fit(
        self,
        trainset: TrainSet,
        config: KNNConfig | None = None,
        *,
        cancel_event: Optional[threading.Event] = None,
    ) -> "KNN":
        cfg = config if config is not None else self.config
        ratings, classes = oriented_ratings(trainset, cfg.user_based)
        logger.info(
            "KNN fit: variant=%s user_based=%s entities=%d sim=%s k=%d min_k=%d",
            self.variant.value,
            cfg.user_based,
            ratings.shape[0],
            getattr(cfg.sim, "__name__", cfg.sim),
            int(cfg.k),
            int(cfg.min_k),
        )

        centering = make_centering(
            self.variant,
            trainset=trainset,
            ratings=ratings,
            user_based=cfg.user_based,
            baseline_cfg=self.baseline_config,
        )
        sims = SimilarityMatrix(ratings.shape[0]).build(
            ratings,
            cfg.sim_fn,
            n_jobs=int(cfg.n_jobs),
            cancel_event=cancel_event,
        )

        # Publish all fitted state at once.
        self.config = cfg
        self._state = _Fitted(
            trainset=trainset,
            config=cfg,
            global_mean=trainset.global_mean,
            ratings=ratings,
            classes=classes,
            sims=sims,
            centering=centering,
        )
        return self

    def _orient(self, state: _Fitted, user_id: Any, item_id: Any) -> tuple[int, int]:
        inner_user = state.trainset.convert_user_id(user_id)
        inner_item = state.trainset.convert_item_id(item_id)
        if state.config.user_based:
            return inner_user, inner_item
        return inner_item, inner_user

    def _select(self, state: _Fitted, left: int, right: int) -> Optional[np.ndarray]:
        """Top-k candidates that rated ``right`` and have a defined similarity to ``left``.

        Sorted by descending similarity; ties keep discovery order. ``None``
        when there are at most ``min_k`` candidates.
        """
        mask = ~np.isnan(state.ratings[:, right]) & state.sims.defined_mask(left)
        candidates = np.flatnonzero(mask)
        if candidates.size <= int(state.config.min_k):
            return None
        order = np.argsort(-state.sims.values[left, candidates], kind="stable")
        return candidates[order[: int(state.config.k)]]

    def predict(self, user_id: Any, item_id: Any) -> float:
        state = self._fitted()
        left, right = self._orient(state, user_id, item_id)
        if left == NOBODY or right == NOBODY:
            logger.debug("Unknown user=%r or item=%r; using global mean", user_id, item_id)
            return state.global_mean

        neighbors = self._select(state, left, right)
        if neighbors is None:
            logger.debug("Too few neighbours for user=%r item=%r; using global mean", user_id, item_id)
            return state.global_mean

        weights = state.sims.values[left, neighbors]
        weight_sum = float(weights.sum())
        if np.isclose(weight_sum, 0.0, atol=ZERO_WEIGHT_ATOL):
            logger.debug("Zero similarity mass for user=%r item=%r; using global mean", user_id, item_id)
            return state.global_mean

        centering = state.centering
        offsets = np.array([centering.term(int(o)) for o in neighbors], dtype=np.float64)
        weighted = float(np.dot(weights, state.ratings[neighbors, right] - offsets))
        pred = weighted / weight_sum + centering.term(left)
        if not np.isfinite(pred):
            logger.debug("Non-finite prediction for user=%r item=%r; using global mean", user_id, item_id)
            return state.global_mean
        return pred

    def neighbors(self, user_id: Any, item_id: Any) -> list[Neighbor]:
        """The neighbourhood ``predict`` aggregates for this pair (empty on fallback)."""
        state = self._fitted()
        left, right = self._orient(state, user_id, item_id)
        if left == NOBODY or right == NOBODY:
            return []
        selected = self._select(state, left, right)
        if selected is None:
            return []
        return [
            Neighbor(
                entity_id=_raw(state.classes, int(o)),
                inner_id=int(o),
                similarity=float(state.sims.values[left, o]),
                rating=float(state.ratings[o, right]),
            )
            for o in selected
        ]

    def similar_entities(self, entity_id: Any, *, top_n: int = 10) -> list[SimilarEntity]:
        """Most similar users (user-based) or items (item-based) to ``entity_id``."""
        state = self._fitted()
        if state.config.user_based:
            inner = state.trainset.convert_user_id(entity_id)
        else:
            inner = state.trainset.convert_item_id(entity_id)
        if inner == NOBODY:
            raise KeyError(f"Unknown id: {entity_id!r}")

        others = np.flatnonzero(state.sims.defined_mask(inner))
        order = np.argsort(-state.sims.values[inner, others], kind="stable")
        present = ~np.isnan(state.ratings)

        out: list[SimilarEntity] = []
        for j in others[order[: int(top_n)]]:
            out.append(
                SimilarEntity(
                    entity_id=_raw(state.classes, int(j)),
                    similarity=float(state.sims.values[inner, j]),
                    co_rated=int((present[inner] & present[j]).sum()),
                )
            )
        return out

    def predict_frame(
        self,
        df: pd.DataFrame,
        *,
        user_col: str = "userId",
        item_col: str = "movieId",
    ) -> pd.Series:
        """Predict every (user, item) row of ``df``; index is preserved."""
        missing = {user_col, item_col} - set(df.columns)
        if missing:
            raise ValueError(f"frame missing required columns: {sorted(missing)}")
        self._fitted()
        preds = [self.predict(u, i) for u, i in zip(df[user_col].tolist(), df[item_col].tolist())]
        return pd.Series(preds, index=df.index, name="prediction", dtype="float64")


def _raw(classes: np.ndarray, inner: int) -> Any:
    value = classes[inner]
    return value.item() if isinstance(value, np.generic) else value
