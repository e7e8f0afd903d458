"""Memory-based collaborative filtering (k-nearest-neighbour rating prediction)."""

from .config import BaselineConfig, KNNConfig, load_config
from .knn import KNN, Variant
from .trainset import NOBODY, TrainSet

__all__ = [
    "BaselineConfig",
    "KNN",
    "KNNConfig",
    "NOBODY",
    "TrainSet",
    "Variant",
    "load_config",
]
