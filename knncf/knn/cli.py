"""Predict one rating with a k-nearest-neighbour model fitted on a ratings CSV."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path

import pandas as pd

from ..config import BaselineConfig, KNNConfig, load_config, override
from ..paths import get_repo_root, resolve_path
from ..similarity import SIMILARITIES
from ..trainset import TrainSet
from ..utils import setup_logging
from .centering import Variant
from .model import KNN


logger = logging.getLogger(__name__)


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="k-nearest-neighbour rating prediction")
    p.add_argument("--ratings", type=Path, required=True, help="CSV with user, item and rating columns")
    p.add_argument("--user-id", type=str, required=True, help="Raw user id")
    p.add_argument("--item-id", type=str, required=True, help="Raw item id")
    p.add_argument("--user-col", type=str, default="userId")
    p.add_argument("--item-col", type=str, default="movieId")
    p.add_argument("--rating-col", type=str, default="rating")
    p.add_argument("--variant", choices=[v.value for v in Variant], default=Variant.BASIC.value)
    p.add_argument("--sim", choices=sorted(SIMILARITIES), default=None, help="Similarity metric")
    p.add_argument("--item-based", action="store_true", help="Item-item instead of user-user neighbourhoods")
    p.add_argument("--k", type=int, default=None, help="Max neighbourhood size")
    p.add_argument("--min-k", type=int, default=None, help="Min candidates before falling back to the global mean")
    p.add_argument("--n-jobs", type=int, default=None, help="Threads for the similarity matrix")
    p.add_argument("--config", type=Path, default=None, help="Path to config YAML (default: <repo>/config.yaml if present)")
    p.add_argument("--show-neighbors", action="store_true", help="Print the neighbourhood used")
    p.add_argument("--log-level", type=str, default="INFO")
    return p


def _load_configs(config_path: Path | None) -> tuple[KNNConfig, BaselineConfig]:
    if config_path is None:
        try:
            candidate = get_repo_root() / "config.yaml"
        except FileNotFoundError:
            return KNNConfig(), BaselineConfig()
        if not candidate.is_file():
            return KNNConfig(), BaselineConfig()
        config_path = candidate
    elif not config_path.is_absolute():
        config_path = resolve_path(Path.cwd(), config_path)
    logger.info("Loading config from %s", config_path)
    return load_config(config_path)


def _coerce_id(raw: str, column: pd.Series) -> object:
    # Raw ids from the command line are strings; match the column dtype.
    # An id that does not parse as the column dtype cannot be known; pass it through.
    try:
        if pd.api.types.is_integer_dtype(column):
            return int(raw)
        if pd.api.types.is_float_dtype(column):
            return float(raw)
    except ValueError:
        logger.warning("Id %r does not match column %r dtype %s", raw, column.name, column.dtype)
    return raw


def main(argv: list[str] | None = None) -> None:
    args = build_arg_parser().parse_args(argv)
    setup_logging(args.log_level)

    knn_cfg, baseline_cfg = _load_configs(args.config)
    knn_cfg = override(
        knn_cfg,
        sim=args.sim,
        user_based=(False if args.item_based else None),
        k=args.k,
        min_k=args.min_k,
        n_jobs=args.n_jobs,
    )

    df = pd.read_csv(args.ratings)
    trainset = TrainSet.from_dataframe(
        df,
        user_col=args.user_col,
        item_col=args.item_col,
        rating_col=args.rating_col,
    )
    model = KNN(args.variant, knn_cfg, baseline_config=baseline_cfg).fit(trainset)

    user_id = _coerce_id(args.user_id, df[args.user_col])
    item_id = _coerce_id(args.item_id, df[args.item_col])
    pred = model.predict(user_id, item_id)

    print(f"\n=== Prediction ===\nuser={user_id} item={item_id} rating={pred:.4f}")

    if args.show_neighbors:
        print("\n=== Neighbors ===")
        neighbors = model.neighbors(user_id, item_id)
        if neighbors:
            print(pd.DataFrame([n.__dict__ for n in neighbors]).to_string(index=False))
        else:
            print("No neighbourhood (fell back to the global mean).")


if __name__ == "__main__":
    main()
