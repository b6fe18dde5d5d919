"""
This module contains the IsolationForest class that implements an ensemble
of isolation trees for robust anomaly detection.
"""

from __future__ import annotations

import logging
import math
from typing import Any

import numpy as np
import numpy.typing as npt
from joblib import Parallel, delayed

from .. import config
from ..datasets import Dataset
from ..exceptions import InvalidArgumentError, NotFittedError
from ..utils import check_random_state, spawn_seeds
from .tree import IsolationTree

logger = logging.getLogger(__name__)


def _fit_single_tree(
    seed: int,
    dataset: Dataset,
    subsample_size: int,
    max_depth: int,
) -> IsolationTree:
    """
    Worker function to fit an isolation tree with a given seed.
    This function is designed to be called in parallel using joblib.
    The seed drives both the subsample draw and the tree's own splits, so a
    tree only depends on its seed, not on which worker built it.

    Args:
        seed: Random seed for this tree (integer).
        dataset: Full training set.
        subsample_size: Number of rows drawn (without replacement) for the tree.
        max_depth: Depth limit shared by every tree of the forest.
    Returns:
        Fitted IsolationTree instance.
    """
    rng = np.random.default_rng(seed)

    tree = IsolationTree(max_depth=max_depth, min_samples=1, random_state=rng)
    tree.train(dataset.random_subset(subsample_size, rng))
    return tree


def _score_single_tree(
    tree: IsolationTree,
    Xs: npt.NDArray[np.floating[Any]],
) -> npt.NDArray[np.floating[Any]]:
    """
    Worker function to score samples on a single tree.
    This function is designed to be called in parallel using joblib.
    ``Xs`` must already be validated against the forest.
    Args:
        tree: Fitted IsolationTree instance.
        Xs: Data samples of shape (n_samples, n_features).
    Returns:
        Isolation scores for each sample of shape (n_samples,).
    """
    path_lengths = tree.root.get_path_lengths_batch(Xs)  # type: ignore[union-attr]
    return 2.0 ** (-path_lengths / tree.normalizer)


class IsolationForest:
    """
    Ensemble of Isolation Trees for anomaly detection.

    Each tree is trained on a different random subsample of the data, and
    a sample's anomaly score is its isolation score averaged across all trees.
    Scores above the threshold are labelled anomalies.

    Attributes:
        ensemble_size: Number of trees in the ensemble.
        subsample_ratio: Fraction of the training rows each tree is trained on.
        threshold: Averaged score above which a sample is an anomaly.
        n_jobs: Number of parallel jobs, None to use the configured default.
        random_state: Random seed or Generator, None to use the configured default.
        subsample_size: Rows per tree in the last training run.
        max_depth: Depth limit of the trees in the last training run.
        trees: List of fitted IsolationTree instances.
    """

    EPSILON = 1e-8

    def __init__(
        self,
        ensemble_size: int = 300,
        subsample_ratio: float = 0.1,
        threshold: float = 0.5,
        n_jobs: int | None = None,
        random_state: int | np.random.Generator | None = None,
    ) -> None:
        """
        Initialize an IsolationForest.
        Args:
            ensemble_size: Number of isolation trees to create in the ensemble.
            subsample_ratio: Fraction of training rows drawn for each tree,
                between 0.01 and 1.
            threshold: Isolation score between 0 and 1 above which samples are
                flagged. Scores above 0.5 signify outlier territory.
            n_jobs: Number of parallel jobs to run for tree building.
                - If 1: sequential execution (no parallelization)
                - If -1: use all available processors
                - If > 1: use specified number of processors
                - If None: ``settings.n_jobs``
            random_state: Random seed for reproducibility. If an integer, same
                seed produces identical results in both sequential and
                parallel modes.
        """
        if ensemble_size < 1:
            raise InvalidArgumentError(
                f"The number of trees cannot be less than 1, {ensemble_size} given."
            )

        if not 0.01 <= subsample_ratio <= 1.0:
            raise InvalidArgumentError(
                "Subsample ratio must be a float value between 0.01 and 1.0,"
                f" {subsample_ratio} given."
            )

        if not 0.0 <= threshold <= 1.0:
            raise InvalidArgumentError(
                f"Threshold isolation score must be between 0 and 1, {threshold} given."
            )

        self.ensemble_size = ensemble_size
        self.subsample_ratio = subsample_ratio
        self.threshold = threshold
        self.n_jobs = n_jobs
        self.random_state = random_state

        self.subsample_size: int | None = None
        self.max_depth: int | None = None

        self.trees: list[IsolationTree] = []

    def _n_jobs(self) -> int:
        return config.settings.n_jobs if self.n_jobs is None else self.n_jobs

    def _random_state(self) -> int | np.random.Generator | None:
        return config.settings.random_state if self.random_state is None else self.random_state

    def estimators(self) -> tuple[IsolationTree, ...]:
        """Read-only view of the trained trees."""
        return tuple(self.trees)

    def train(self, dataset: Dataset | Any) -> None:
        """
        Creates ``ensemble_size`` isolation trees, each trained on a fresh
        random subsample of the data. The previous trees are replaced only
        once every new tree has been built.

        Args:
            dataset: Continuous training samples, shape (n_samples, n_features).
        """
        dataset = Dataset.coerce(dataset)

        try:
            dataset.check_continuous()
            if dataset.num_rows() == 0:
                raise InvalidArgumentError("Cannot train on an empty dataset.")
        except InvalidArgumentError as err:
            logger.warning("Rejected training set: %s", err)
            raise

        n_rows = dataset.num_rows()
        subsample_size = min(max(1, math.floor(self.subsample_ratio * n_rows + 0.5)), n_rows)
        max_depth = max(1, math.ceil(math.log2(subsample_size)))

        logger.info(
            "Training %d isolation trees on %d of %d rows (max depth %d)",
            self.ensemble_size, subsample_size, n_rows, max_depth,
        )

        rng = check_random_state(self._random_state())
        seeds = spawn_seeds(rng, self.ensemble_size)

        n_jobs = self._n_jobs()
        if n_jobs == 1:
            # Sequential execution
            trees = []
            for seed in seeds:
                trees.append(_fit_single_tree(seed, dataset, subsample_size, max_depth))
        else:
            # Parallel execution using joblib
            trees_list = Parallel(n_jobs=n_jobs, backend="loky")(
                delayed(_fit_single_tree)(seed, dataset, subsample_size, max_depth)
                for seed in seeds
            )
            trees = list(trees_list)  # type: ignore[arg-type]

        self.trees = trees
        self.subsample_size = subsample_size
        self.max_depth = max_depth

        logger.info("Trained %d isolation trees", len(self.trees))

    def proba(self, dataset: Dataset | Any) -> npt.NDArray[np.floating[Any]]:
        """
        Anomaly scores are in [0, 1] where higher scores indicate anomalies.
        Past EXACT_HARMONIC_LIMIT rows per tree the normalizer uses the
        logarithmic approximation of H(m), which shifts scores near the
        threshold by a small amount.

        Per-tree scores are averaged, not path lengths. Since 2^-x is convex
        the mean score is never below 2 raised to minus the mean path length,
        so averaged scores of inliers sit slightly higher than in the
        path-averaging formulation and cluster edges can cross 0.5.
        Args:
            dataset: Data samples of shape (n_samples, n_features).
        Returns:
            Averaged isolation scores for each sample of shape (n_samples,).
        """
        if not self.trees:
            raise NotFittedError("The isolation forest has not been trained.")

        dataset = Dataset.coerce(dataset)
        n_features = self.trees[0].n_features
        if dataset.num_rows() == 0:
            return np.zeros(0, dtype=np.float64)

        dataset.check_continuous()
        if dataset.num_columns() != n_features:
            raise InvalidArgumentError(
                f"Samples have {dataset.num_columns()} features,"
                f" the forest was trained on {n_features}."
            )
        Xs = dataset.samples

        n_jobs = self._n_jobs()
        if n_jobs == 1:
            # Sequential execution
            totals = np.zeros(Xs.shape[0], dtype=np.float64)
            for tree in self.trees:
                totals += _score_single_tree(tree, Xs)
        else:
            # Parallel execution using joblib
            score_results = Parallel(n_jobs=n_jobs, backend="loky")(
                delayed(_score_single_tree)(tree, Xs) for tree in self.trees
            )
            # summed in tree order to match the sequential result bit for bit
            totals = np.zeros(Xs.shape[0], dtype=np.float64)
            for tree_scores in score_results:
                totals += tree_scores

        return totals / (len(self.trees) + self.EPSILON)

    def predict(self, dataset: Dataset | Any) -> list[int]:
        """
        Predict anomaly labels for samples.
        Args:
            dataset: Data samples of shape (n_samples, n_features).
        Returns:
            Binary labels (0=normal, 1=anomaly), one per sample.
        """
        scores_arr = self.proba(dataset)
        return [int(label) for label in scores_arr > self.threshold]
