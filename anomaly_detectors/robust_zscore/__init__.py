"""Robust Z-Score, a global anomaly detector based on the median and MAD."""

from .detector import RobustZScore

__all__ = [
    "RobustZScore",
]
