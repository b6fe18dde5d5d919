"""
Capabilities shared by the detectors. Detectors do not inherit from these,
they only need the methods.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

import numpy as np
import numpy.typing as npt


@runtime_checkable
class Detector(Protocol):
    def train(self, dataset: Any) -> None:
        ...

    def predict(self, dataset: Any) -> list[int]:
        ...


@runtime_checkable
class Probabilistic(Protocol):
    def proba(self, dataset: Any) -> npt.NDArray[np.floating[Any]]:
        ...
