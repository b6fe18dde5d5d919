"""
This module contains the IsolationTreeNode and IsolationTree classes that
implement a single randomized isolation tree, along with the path length
normalization used to turn leaf depths into isolation scores.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import Any, NamedTuple

import matplotlib.pyplot as plt
import numpy as np
import numpy.typing as npt

from ..datasets import Dataset
from ..exceptions import InvalidArgumentError, NotFittedError
from ..utils import check_random_state

logger = logging.getLogger(__name__)

EULER_MASCHERONI = 0.5772156649

# H(m) is summed exactly up to this many terms, approximated above it
EXACT_HARMONIC_LIMIT = 50


def harmonic_number(m: int) -> float:
    """
    The m-th harmonic number H(m) = 1 + 1/2 + ... + 1/m.
    Summed exactly for m <= EXACT_HARMONIC_LIMIT, otherwise approximated as
    ln(m) + Euler-Mascheroni, which falls short of the exact value by about
    1/(2m), i.e. 0.01 at the crossover.
    """
    if m <= 0:
        return 0.0
    if m <= EXACT_HARMONIC_LIMIT:
        return float(sum(1.0 / i for i in range(1, m + 1)))
    return float(np.log(m) + EULER_MASCHERONI)


def average_path_length(k: int) -> float:
    """
    Expected path length c(k) of an unsuccessful search in a binary search
    tree built from k points. c(0) = c(1) = 0.
    """
    if k <= 1:
        return 0.0
    return 2.0 * harmonic_number(k - 1) - 2.0 * (k - 1) / k


class SearchResult(NamedTuple):
    """Leaf reached by a sample: training rows in it, its depth and the isolation score."""

    n_samples: int
    depth: int
    score: float


class IsolationTreeNode:
    """
    Node in an Isolation Tree.
    A node is either a split, holding a feature index, a threshold and two
    children, or a leaf, holding the number of training rows that reached it.
    Attributes:
        depth: Depth of the node in the tree (root is 0).
        idx_feature: Index of the feature used for splitting (None for leaves).
        split_threshold: Samples with feature < threshold go left (None for leaves).
        children: [lower, upper] child nodes (empty for leaves).
        n_samples: Training rows that ended in this leaf (None for splits).
    """

    def __init__(self, depth: int) -> None:
        self.depth = depth

        self.idx_feature: int | None = None
        self.split_threshold: float | None = None

        self.children: list[IsolationTreeNode] = []
        self.n_samples: int | None = None

    @property
    def is_leaf(self) -> bool:
        return self.n_samples is not None

    def partition_space(
        self,
        Xs: npt.NDArray[np.floating[Any]],
        max_depth: int,
        min_samples: int,
        rng: np.random.Generator,
    ) -> None:
        """
        Recursively split the samples on a random feature at a random value
        until the depth limit is hit, the node is small enough, or the chosen
        feature is constant.
        Args:
            Xs: Training samples reaching this node, shape (n_samples, n_features).
            max_depth: Depth at which splitting stops.
            min_samples: Nodes with this many samples or fewer become leaves.
            rng: Random source for the feature and threshold choice.
        """
        if self.depth >= max_depth or Xs.shape[0] <= min_samples or Xs.shape[1] == 0:
            self.n_samples = Xs.shape[0]
            return

        idx_feature = int(rng.integers(Xs.shape[1]))
        values = Xs[:, idx_feature]
        lower, upper = float(values.min()), float(values.max())

        if lower == upper:
            self.n_samples = Xs.shape[0]
            return

        # drawn from (lower, upper] so that neither side is empty
        self.idx_feature = idx_feature
        self.split_threshold = upper - (upper - lower) * float(rng.random())

        mask_lower = values < self.split_threshold

        self.children = [
            IsolationTreeNode(depth=self.depth + 1),
            IsolationTreeNode(depth=self.depth + 1),
        ]
        self.children[0].partition_space(Xs[mask_lower], max_depth, min_samples, rng)
        self.children[1].partition_space(Xs[~mask_lower], max_depth, min_samples, rng)

    def get_leaf(self, x: npt.NDArray[np.floating[Any]]) -> IsolationTreeNode:
        """Follow the split rule from this node down to the leaf ``x`` falls into."""
        node = self
        while not node.is_leaf:
            node = node.children[0 if x[node.idx_feature] < node.split_threshold else 1]
        return node

    def get_path_lengths_batch(
        self, Xs: npt.NDArray[np.floating[Any]],
    ) -> npt.NDArray[np.floating[Any]]:
        """
        Path length of every sample: the depth of the leaf it reaches plus
        c(leaf size) for the subtree that was never grown.
        Args:
            Xs: Data samples of shape (n_samples, n_features).
        Returns:
            Path lengths for each sample of shape (n_samples,).
        """
        if self.is_leaf:
            assert self.n_samples is not None
            adjustment = self.depth + average_path_length(self.n_samples)
            return np.full(Xs.shape[0], adjustment, dtype=np.float64)

        path_lengths = np.zeros(Xs.shape[0], dtype=np.float64)
        mask_lower = Xs[:, self.idx_feature] < self.split_threshold

        if np.any(mask_lower):
            path_lengths[mask_lower] = self.children[0].get_path_lengths_batch(Xs[mask_lower])

        if np.any(~mask_lower):
            path_lengths[~mask_lower] = self.children[1].get_path_lengths_batch(Xs[~mask_lower])

        return path_lengths

    def iter_leaves(self) -> Iterator[IsolationTreeNode]:
        if self.is_leaf:
            yield self
            return
        for child in self.children:
            yield from child.iter_leaves()

    def plot_partition_space_2D(self, ax: Any, limits: list[list[float]]) -> None:
        """
        Draws a line for each split, bounded by the region the node covers.
        Args:
            ax: Matplotlib axes to draw on.
            limits: [[x_min, x_max], [y_min, y_max]] of this node's region.
        """
        if self.is_leaf:
            return

        assert self.idx_feature is not None and self.split_threshold is not None

        if self.idx_feature == 0:
            ax.plot([self.split_threshold, self.split_threshold], limits[1], c="gray")
        else:
            ax.plot(limits[0], [self.split_threshold, self.split_threshold], c="gray")

        limits_lower = [list(limit) for limit in limits]
        limits_lower[self.idx_feature][1] = self.split_threshold

        limits_upper = [list(limit) for limit in limits]
        limits_upper[self.idx_feature][0] = self.split_threshold

        self.children[0].plot_partition_space_2D(ax, limits_lower)
        self.children[1].plot_partition_space_2D(ax, limits_upper)


class IsolationTree:
    """
    Single Isolation Tree for anomaly detection.
    Attributes:
        max_depth: Depth at which splitting stops.
        min_samples: Nodes with this many training rows or fewer become leaves.
        random_state: Seed or Generator used to grow the tree.
        root: Root node of the tree (None until trained).
        n_samples: Number of rows the tree was trained on.
        n_features: Number of features the tree was trained on.
        feature_limits: [min, max] of every training feature, padded by PADDING.
        expected_path_length: c(n_samples), the normalizer for isolation scores.
    """

    PADDING = 1.0

    def __init__(
        self,
        max_depth: int,
        min_samples: int = 1,
        random_state: int | np.random.Generator | None = None,
    ) -> None:
        if max_depth < 1:
            raise InvalidArgumentError(
                f"Maximum depth must be at least 1, {max_depth} given."
            )
        if min_samples < 1:
            raise InvalidArgumentError(
                f"Minimum samples per node must be at least 1, {min_samples} given."
            )

        self.max_depth = max_depth
        self.min_samples = min_samples
        self.random_state = random_state

        self.root: IsolationTreeNode | None = None
        self.n_samples: int | None = None
        self.n_features: int | None = None
        self.feature_limits: list[list[float]] | None = None
        self.expected_path_length: float | None = None

    def train(self, dataset: Dataset | Any) -> None:
        """
        Grow the tree on every row of ``dataset``.
        Args:
            dataset: Continuous training samples, shape (n_samples, n_features).
        """
        dataset = Dataset.coerce(dataset)

        try:
            dataset.check_continuous()
            if dataset.num_rows() == 0:
                raise InvalidArgumentError("Cannot train an isolation tree on an empty dataset.")
        except InvalidArgumentError as err:
            logger.warning("Rejected training set: %s", err)
            raise

        Xs = dataset.samples
        rng = check_random_state(self.random_state)

        root = IsolationTreeNode(depth=0)
        root.partition_space(Xs, self.max_depth, self.min_samples, rng)

        self.root = root
        self.n_samples = Xs.shape[0]
        self.n_features = Xs.shape[1]
        self.feature_limits = [
            [float(Xs[:, i].min()) - self.PADDING, float(Xs[:, i].max()) + self.PADDING]
            for i in range(Xs.shape[1])
        ]
        self.expected_path_length = average_path_length(self.n_samples)

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "Grew isolation tree on %d rows (depth %d, limit %d)",
                self.n_samples, self.depth(), self.max_depth,
            )

    @property
    def normalizer(self) -> float:
        """c(n), or 1.0 when the tree saw a single row and c(n) vanishes."""
        assert self.expected_path_length is not None
        return self.expected_path_length if self.expected_path_length > 0 else 1.0

    def _check_samples(self, dataset: Dataset | Any) -> npt.NDArray[np.floating[Any]]:
        if self.root is None:
            raise NotFittedError("The isolation tree has not been trained.")

        dataset = Dataset.coerce(dataset)
        if dataset.num_rows() == 0:
            return np.empty((0, self.n_features), dtype=np.float64)

        dataset.check_continuous()
        if dataset.num_columns() != self.n_features:
            raise InvalidArgumentError(
                f"Samples have {dataset.num_columns()} features,"
                f" the tree was trained on {self.n_features}."
            )
        return dataset.samples

    def search(self, sample: Any) -> SearchResult:
        """
        Route one sample to its leaf.
        Args:
            sample: Feature vector of length n_features.
        Returns:
            The leaf's training row count, its depth and the isolation score.
        """
        x = self._check_samples([list(sample)])[0]

        leaf = self.root.get_leaf(x)  # type: ignore[union-attr]
        assert leaf.n_samples is not None

        path_length = leaf.depth + average_path_length(leaf.n_samples)
        score = 2.0 ** (-path_length / self.normalizer)
        return SearchResult(n_samples=leaf.n_samples, depth=leaf.depth, score=score)

    def path_lengths(self, dataset: Dataset | Any) -> npt.NDArray[np.floating[Any]]:
        """
        Args:
            dataset: Data samples of shape (n_samples, n_features).
        Returns:
            Path lengths for each sample of shape (n_samples,).
        """
        Xs = self._check_samples(dataset)
        return self.root.get_path_lengths_batch(Xs)  # type: ignore[union-attr]

    def scores(self, dataset: Dataset | Any) -> npt.NDArray[np.floating[Any]]:
        """
        Isolation scores in [0, 1], higher meaning easier to isolate.
        Based on the formula: 2^(-path_length / c(n_samples)).
        Args:
            dataset: Data samples of shape (n_samples, n_features).
        Returns:
            Isolation scores for each sample of shape (n_samples,).
        """
        return 2.0 ** (-self.path_lengths(dataset) / self.normalizer)

    def leaves(self) -> Iterator[IsolationTreeNode]:
        if self.root is None:
            raise NotFittedError("The isolation tree has not been trained.")
        return self.root.iter_leaves()

    def depth(self) -> int:
        """Depth of the deepest leaf."""
        return max(leaf.depth for leaf in self.leaves())

    def plot_partition_space_2D(
        self,
        samples: Dataset | Any | None = None,
        ax: Any = None,
    ) -> Any:
        """
        Visualize the 2D space partitioning created by this tree.
        Args:
            samples: Optional points to scatter on top of the partition.
            ax: Matplotlib axes to draw on, a new figure is created if None.
        Returns:
            The axes drawn on.
        """
        if self.root is None:
            raise NotFittedError("The isolation tree has not been trained.")
        if self.n_features != 2:
            raise InvalidArgumentError(
                f"Partition plots need 2-dimensional data, the tree has {self.n_features}."
            )
        assert self.feature_limits is not None

        if ax is None:
            _, ax = plt.subplots()

        ax.set_title("Space Partition Isolation Tree")
        ax.set_xlabel("X")
        ax.set_ylabel("Y")

        (x_min, x_max), (y_min, y_max) = self.feature_limits
        ax.plot([x_min, x_max], [y_min, y_min], c="gray")
        ax.plot([x_min, x_max], [y_max, y_max], c="gray")
        ax.plot([x_min, x_min], [y_min, y_max], c="gray")
        ax.plot([x_max, x_max], [y_min, y_max], c="gray")

        self.root.plot_partition_space_2D(ax, self.feature_limits)

        if samples is not None:
            Xs = self._check_samples(samples)
            ax.scatter(Xs[:, 0], Xs[:, 1], c="lightgray", s=5)

        return ax
