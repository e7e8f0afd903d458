"""Neighbourhood models: similarity matrix, centering variants and the KNN predictor."""

from .centering import Variant
from .model import KNN, Neighbor, SimilarEntity
from .sim_matrix import FitCancelledError, SimilarityMatrix

__all__ = ["FitCancelledError", "KNN", "Neighbor", "SimilarEntity", "SimilarityMatrix", "Variant"]
