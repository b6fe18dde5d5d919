"""
This module contains the RobustZScore detector, a quick global anomaly
detector that flags samples whose features sit too many robust standard
deviations away from the training median.
"""

from __future__ import annotations

import logging
from typing import Any

import numpy as np
import numpy.typing as npt

from ..datasets import Dataset
from ..exceptions import InvalidArgumentError, NotFittedError

logger = logging.getLogger(__name__)


class RobustZScore:
    """
    Modified Z score detector.

    The median and median absolute deviation (MAD) stand in for the mean and
    standard deviation, which keeps the statistic robust to training sets that
    already contain outliers. Columns whose MAD is 0 fall back to the mean
    absolute deviation.

    Attributes:
        tolerance: Mean z score across features above which a sample is an anomaly.
        threshold: z score of any single feature above which a sample is an anomaly.
        medians_: Median of each training column.
        mads_: Median absolute deviation of each training column.
        scales_: Denominator applied to x - median for each column.
    """

    LAMBDA = 0.6745
    MEAN_AD_SCALE = 1.253314

    def __init__(self, tolerance: float = 3.0, threshold: float = 3.5) -> None:
        if tolerance < 0:
            raise InvalidArgumentError(
                f"Z score tolerance must be 0 or greater, {tolerance} given."
            )
        if threshold < 0:
            raise InvalidArgumentError(
                f"Z score threshold must be 0 or greater, {threshold} given."
            )

        self.tolerance = tolerance
        self.threshold = threshold

        self.medians_: npt.NDArray[np.floating[Any]] | None = None
        self.mads_: npt.NDArray[np.floating[Any]] | None = None
        self.scales_: npt.NDArray[np.floating[Any]] | None = None

    def medians(self) -> list[float]:
        return [] if self.medians_ is None else self.medians_.tolist()

    def mads(self) -> list[float]:
        return [] if self.mads_ is None else self.mads_.tolist()

    def train(self, dataset: Dataset | Any) -> None:
        """
        Compute the median and spread of every feature column.
        Args:
            dataset: Continuous training samples, shape (n_samples, n_features).
        """
        dataset = Dataset.coerce(dataset)

        try:
            dataset.check_continuous()
            if dataset.num_rows() == 0 or dataset.num_columns() == 0:
                raise InvalidArgumentError("Cannot train on an empty dataset.")
        except InvalidArgumentError as err:
            logger.warning("Rejected training set: %s", err)
            raise

        Xs = dataset.samples
        medians = np.median(Xs, axis=0)
        deviations = np.abs(Xs - medians)
        mads = np.median(deviations, axis=0)

        scales = mads / self.LAMBDA
        degenerate = mads == 0
        if np.any(degenerate):
            mean_ads = np.mean(deviations, axis=0)
            scales[degenerate] = self.MEAN_AD_SCALE * mean_ads[degenerate]
            logger.debug(
                "MAD is 0 for columns %s, using mean absolute deviation",
                np.flatnonzero(degenerate).tolist(),
            )

        self.medians_, self.mads_, self.scales_ = medians, mads, scales

    def z_scores(self, dataset: Dataset | Any) -> npt.NDArray[np.floating[Any]]:
        """
        Args:
            dataset: Data samples of shape (n_samples, n_features).
        Returns:
            Signed modified z score of every feature, shape (n_samples, n_features).
            A deviation in a column that was constant at training time is +/- infinite.
        """
        if self.medians_ is None or self.scales_ is None:
            raise NotFittedError("The robust z score detector has not been trained.")

        dataset = Dataset.coerce(dataset)
        n_features = self.medians_.shape[0]
        if dataset.num_rows() == 0:
            return np.empty((0, n_features), dtype=np.float64)

        dataset.check_continuous()
        if dataset.num_columns() != n_features:
            raise InvalidArgumentError(
                f"Samples have {dataset.num_columns()} features,"
                f" the detector was trained on {n_features}."
            )

        diffs = dataset.samples - self.medians_
        z = np.where(diffs > 0, np.inf, np.where(diffs < 0, -np.inf, 0.0))
        np.divide(diffs, self.scales_, out=z, where=self.scales_ > 0)
        return z

    def scores(self, dataset: Dataset | Any) -> npt.NDArray[np.floating[Any]]:
        """Mean z score across the features of every sample."""
        return np.mean(self.z_scores(dataset), axis=1)

    def predict(self, dataset: Dataset | Any) -> list[int]:
        """
        A sample is an anomaly as soon as one feature's z score exceeds the
        threshold, or when its mean z score exceeds the tolerance.
        Args:
            dataset: Data samples of shape (n_samples, n_features).
        Returns:
            Binary labels (0=normal, 1=anomaly), one per sample.
        """
        z = self.z_scores(dataset)
        if z.shape[0] == 0:
            return []
        flagged = np.any(z > self.threshold, axis=1) | (np.mean(z, axis=1) > self.tolerance)
        return [int(label) for label in flagged]
