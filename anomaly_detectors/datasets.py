"""
This module contains the in-memory Dataset the detectors train on and
score: an ordered collection of feature vectors with column type
introspection and random sub-sampling.
"""

from __future__ import annotations

import numbers
from collections.abc import Iterator
from enum import Enum
from typing import Any

import numpy as np
import numpy.typing as npt

from .exceptions import InvalidArgumentError
from .utils import check_random_state


class ColumnType(Enum):
    CONTINUOUS = "continuous"
    CATEGORICAL = "categorical"


def _is_continuous(value: Any) -> bool:
    return isinstance(value, (numbers.Real, np.number)) and not isinstance(
        value, (bool, np.bool_)
    )


class Dataset:
    """
    Rows of feature vectors, all of the same arity.

    Columns made only of real numbers are continuous, anything else makes a
    column categorical. Purely continuous data is held as a float64 matrix.

    Attributes:
        samples: Matrix of shape (n_samples, n_features).
    """

    def __init__(self, samples: Any) -> None:
        """
        Args:
            samples: 2-D array-like, one row per sample.
        """
        if isinstance(samples, np.ndarray) and samples.dtype.kind in "iuf":
            if samples.ndim != 2:
                raise InvalidArgumentError(
                    f"Samples must be 2-dimensional, got {samples.ndim} dimension(s)."
                )
            self._column_types = [ColumnType.CONTINUOUS] * samples.shape[1]
            self.samples = np.array(samples, dtype=np.float64)
            self.samples.setflags(write=False)
            return

        rows = [list(row) for row in samples]
        n_features = len(rows[0]) if rows else 0
        for offset, row in enumerate(rows):
            if len(row) != n_features:
                raise InvalidArgumentError(
                    f"Row {offset} has {len(row)} features, expected {n_features}."
                )

        self._column_types = [
            ColumnType.CONTINUOUS
            if all(_is_continuous(row[column]) for row in rows)
            else ColumnType.CATEGORICAL
            for column in range(n_features)
        ]

        dtype = np.float64 if self.is_continuous() else object
        matrix = np.empty((len(rows), n_features), dtype=dtype)
        for offset, row in enumerate(rows):
            matrix[offset, :] = row
        matrix.setflags(write=False)
        self.samples: npt.NDArray[Any] = matrix

    @classmethod
    def coerce(cls, data: Dataset | Any) -> Dataset:
        """Return ``data`` unchanged if it is a Dataset, otherwise wrap it."""
        if isinstance(data, Dataset):
            return data
        return cls(data)

    def num_rows(self) -> int:
        return self.samples.shape[0]

    def num_columns(self) -> int:
        return self.samples.shape[1]

    def column_types(self) -> list[ColumnType]:
        return list(self._column_types)

    def is_continuous(self) -> bool:
        return ColumnType.CATEGORICAL not in self._column_types

    def check_continuous(self) -> None:
        """Raise InvalidArgumentError if any column is categorical."""
        if not self.is_continuous():
            raise InvalidArgumentError(
                "This estimator only works with continuous features."
            )

    def columns(self) -> Iterator[npt.NDArray[Any]]:
        """Yield the feature columns one at a time."""
        for column in range(self.num_columns()):
            yield self.samples[:, column]

    def random_subset(
        self,
        n: int,
        random_state: int | np.random.Generator | None = None,
    ) -> Dataset:
        """
        Draw ``n`` rows without replacement. The dataset itself is left untouched.
        Args:
            n: Number of rows to draw.
            random_state: Seed or Generator driving the draw.
        Returns:
            A new Dataset holding the drawn rows.
        """
        if n < 0 or n > self.num_rows():
            raise InvalidArgumentError(
                f"Cannot draw a subset of {n} rows from a dataset"
                f" of {self.num_rows()} rows."
            )
        rng = check_random_state(random_state)
        indices = rng.choice(self.num_rows(), size=n, replace=False)

        subset = Dataset.__new__(Dataset)
        subset._column_types = list(self._column_types)
        subset.samples = self.samples[indices]
        subset.samples.setflags(write=False)
        return subset

    def __len__(self) -> int:
        return self.num_rows()

    def __iter__(self) -> Iterator[npt.NDArray[Any]]:
        return iter(self.samples)

    def __repr__(self) -> str:
        return f"Dataset(rows={self.num_rows()}, columns={self.num_columns()})"
