"""Training ratings encoded to dense inner indices."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Tuple

import numpy as np
import pandas as pd
from sklearn.preprocessing import LabelEncoder

logger = logging.getLogger(__name__)

# Inner index returned for ids absent from the training data.
NOBODY = -1


def _index_of(classes: np.ndarray) -> dict[Any, int]:
    return {c: int(i) for i, c in enumerate(classes.tolist())}


@dataclass(frozen=True, eq=False)
class TrainSet:
    """Ratings keyed by inner user/item indices.

    ``user_classes[i]`` is the raw id of inner user ``i`` (same for items).
    Missing cells of the dense rating matrices are NaN.
    """

    user_idx: np.ndarray
    item_idx: np.ndarray
    ratings: np.ndarray
    user_classes: np.ndarray
    item_classes: np.ndarray
    _user_lookup: dict[Any, int] = field(init=False, repr=False, compare=False)
    _item_lookup: dict[Any, int] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_user_lookup", _index_of(self.user_classes))
        object.__setattr__(self, "_item_lookup", _index_of(self.item_classes))

    @classmethod
    def from_dataframe(
        cls,
        df: pd.DataFrame,
        *,
        user_col: str = "userId",
        item_col: str = "movieId",
        rating_col: str = "rating",
    ) -> "TrainSet":
        required = {user_col, item_col, rating_col}
        missing = required - set(df.columns)
        if missing:
            raise ValueError(f"ratings missing required columns: {sorted(missing)}")

        df = df[[user_col, item_col, rating_col]].dropna().reset_index(drop=True)
        if df.empty:
            raise ValueError("ratings frame has no usable rows")
        if df.duplicated(subset=[user_col, item_col]).any():
            raise ValueError(f"ratings contain duplicate ({user_col}, {item_col}) rows")

        # Label encoders to map raw ids => contiguous indices [0..n)
        le_user = LabelEncoder()
        le_item = LabelEncoder()
        user_idx = le_user.fit_transform(df[user_col].to_numpy())
        item_idx = le_item.fit_transform(df[item_col].to_numpy())

        trainset = cls(
            user_idx=np.asarray(user_idx, dtype=np.int64),
            item_idx=np.asarray(item_idx, dtype=np.int64),
            ratings=df[rating_col].to_numpy(dtype=np.float64),
            user_classes=le_user.classes_,
            item_classes=le_item.classes_,
        )
        logger.info(
            "TrainSet: users=%d items=%d ratings=%d global_mean=%.4f",
            trainset.user_count,
            trainset.item_count,
            len(trainset.ratings),
            trainset.global_mean,
        )
        return trainset

    @property
    def user_count(self) -> int:
        return int(len(self.user_classes))

    @property
    def item_count(self) -> int:
        return int(len(self.item_classes))

    @property
    def global_mean(self) -> float:
        return float(self.ratings.mean())

    def triples(self) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        return self.user_idx, self.item_idx, self.ratings

    def user_ratings(self) -> np.ndarray:
        """Dense users x items matrix, NaN where the user has no rating."""
        mat = np.full((self.user_count, self.item_count), np.nan, dtype=np.float64)
        mat[self.user_idx, self.item_idx] = self.ratings
        return mat

    def item_ratings(self) -> np.ndarray:
        return self.user_ratings().T.copy()

    def convert_user_id(self, raw_id: Any) -> int:
        return self._user_lookup.get(raw_id, NOBODY)

    def convert_item_id(self, raw_id: Any) -> int:
        return self._item_lookup.get(raw_id, NOBODY)

