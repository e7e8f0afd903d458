"""Baseline bias estimator: r = mu + b_user + b_item."""

from .estimator import BaselineEstimator
from .model import BiasModel

__all__ = ["BaselineEstimator", "BiasModel"]
