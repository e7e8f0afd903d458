"""Configuration dataclasses and YAML loading."""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Optional, Tuple, Union

import yaml

from .similarity import DEFAULT_SIMILARITY, SimilarityFn, get_similarity

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class KNNConfig:
    """Neighbourhood options supplied at fit time.

    sim:
        Registry name (``"msd"``, ``"cosine"``, ``"pearson"``) or a callable
        following the similarity contract.
    user_based:
        True for user-user neighbourhoods, False for item-item.
    k:
        Maximum number of neighbours aggregated per prediction.
    min_k:
        A prediction needs strictly more than ``min_k`` candidates, otherwise
        the global mean is returned.
    n_jobs:
        Worker threads used to build the similarity matrix.
    """

    sim: Union[str, SimilarityFn] = DEFAULT_SIMILARITY
    user_based: bool = True
    k: int = 40
    min_k: int = 1
    n_jobs: int = 1

    def __post_init__(self) -> None:
        if int(self.k) < 1:
            raise ValueError(f"k must be >= 1, got {self.k}")
        if int(self.min_k) < 0:
            raise ValueError(f"min_k must be >= 0, got {self.min_k}")
        if int(self.n_jobs) < 1:
            raise ValueError(f"n_jobs must be >= 1, got {self.n_jobs}")
        get_similarity(self.sim)

    @property
    def sim_fn(self) -> SimilarityFn:
        return get_similarity(self.sim)


@dataclass(frozen=True)
class BaselineConfig:
    epochs: int = 20
    lr: float = 1e-2
    reg: float = 0.02
    batch_size: int = 1024
    device: Optional[str] = None

    def __post_init__(self) -> None:
        if int(self.epochs) < 0:
            raise ValueError(f"epochs must be >= 0, got {self.epochs}")
        if int(self.batch_size) < 1:
            raise ValueError(f"batch_size must be >= 1, got {self.batch_size}")
        if float(self.reg) < 0.0:
            raise ValueError(f"reg must be >= 0, got {self.reg}")


def _section(cfg: dict[str, Any], name: str) -> dict[str, Any]:
    raw = cfg.get(name, {})
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ValueError(f"config section {name!r} must be a mapping, got {type(raw).__name__}")
    return raw


def _from_section(cls: type, section: dict[str, Any]) -> Any:
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(section) - known)
    if unknown:
        logger.warning("Ignoring unknown %s options: %s", cls.__name__, unknown)
    return cls(**{k: v for k, v in section.items() if k in known})


def load_config(path: Path | str) -> Tuple[KNNConfig, BaselineConfig]:
    """Load ``knn:`` and ``baseline:`` sections from a YAML file."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config not found: {path}")
    obj = yaml.safe_load(path.read_text())
    if obj is None:
        obj = {}
    if not isinstance(obj, dict):
        raise ValueError(f"Expected YAML mapping at {path}, got {type(obj)}")

    knn_cfg = _from_section(KNNConfig, _section(obj, "knn"))
    baseline_cfg = _from_section(BaselineConfig, _section(obj, "baseline"))
    return knn_cfg, baseline_cfg


def override(cfg: Any, **changes: Any) -> Any:
    """Return ``cfg`` with every non-None keyword applied (CLI overrides)."""
    changes = {k: v for k, v in changes.items() if v is not None}
    if not changes:
        return cfg
    return replace(cfg, **changes)
