"""Anomaly Detection package.

This package provides unsupervised anomaly detectors:
- isolation: Isolation Forest using random partitioning
- robust_zscore: global detector based on the median and median absolute deviation
"""

from . import isolation
from . import robust_zscore
from .base import Detector, Probabilistic
from .datasets import ColumnType, Dataset
from .exceptions import AnomalyDetectorError, InvalidArgumentError, NotFittedError
from .isolation import IsolationForest, IsolationTree
from .log import configure_logging
from .robust_zscore import RobustZScore

__all__ = [
    "isolation",
    "robust_zscore",
    "AnomalyDetectorError",
    "ColumnType",
    "Dataset",
    "Detector",
    "InvalidArgumentError",
    "IsolationForest",
    "IsolationTree",
    "NotFittedError",
    "Probabilistic",
    "RobustZScore",
    "configure_logging",
]
