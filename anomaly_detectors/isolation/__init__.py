"""Isolation Forest implementation for anomaly detection.

This package provides the Isolation Forest algorithm using random
partitioning of the feature space.
"""

from .forest import IsolationForest
from .tree import (
    IsolationTree,
    IsolationTreeNode,
    SearchResult,
    average_path_length,
    harmonic_number,
)

__all__ = [
    "IsolationTree",
    "IsolationTreeNode",
    "IsolationForest",
    "SearchResult",
    "average_path_length",
    "harmonic_number",
]
