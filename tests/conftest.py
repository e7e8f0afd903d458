from __future__ import annotations

import sys
from pathlib import Path

import pandas as pd
import pytest

# Ensure `import knncf...` works when pytest uses importlib import mode.
REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT))

from knncf.trainset import TrainSet  # noqa: E402


@pytest.fixture()
def ratings_df() -> pd.DataFrame:
    rows = [
        (1, 10, 5.0), (1, 20, 3.0), (1, 30, 4.0),
        (2, 10, 4.0), (2, 20, 2.0), (2, 30, 5.0), (2, 40, 3.0),
        (3, 10, 1.0), (3, 20, 5.0), (3, 40, 2.0),
        (4, 10, 5.0), (4, 30, 4.0),
    ]
    return pd.DataFrame(rows, columns=["userId", "movieId", "rating"])


@pytest.fixture()
def trainset(ratings_df: pd.DataFrame) -> TrainSet:
    return TrainSet.from_dataframe(ratings_df)

