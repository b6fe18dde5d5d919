import logging
import math
from collections import Counter

import matplotlib.pyplot as plt
import numpy as np
import pytest

from anomaly_detectors import Dataset, InvalidArgumentError, NotFittedError
from anomaly_detectors.isolation import (
    IsolationTree,
    SearchResult,
    average_path_length,
    harmonic_number,
)
from anomaly_detectors.isolation.tree import EXACT_HARMONIC_LIMIT


def test_harmonic_number_exact_below_limit():
    assert harmonic_number(0) == 0.0
    assert harmonic_number(1) == 1.0
    assert harmonic_number(2) == pytest.approx(1.5)
    assert harmonic_number(EXACT_HARMONIC_LIMIT) == pytest.approx(
        sum(1.0 / i for i in range(1, EXACT_HARMONIC_LIMIT + 1))
    )


def test_harmonic_number_approximation_above_limit():
    exact = sum(1.0 / i for i in range(1, 1001))
    assert harmonic_number(1000) == pytest.approx(exact, abs=1e-3)
    assert harmonic_number(1000) == pytest.approx(math.log(1000) + 0.5772156649)


def test_average_path_length():
    assert average_path_length(0) == 0.0
    assert average_path_length(1) == 0.0
    assert average_path_length(2) == pytest.approx(1.0)
    assert average_path_length(3) == pytest.approx(2.0 * 1.5 - 4.0 / 3.0)
    assert average_path_length(256) > average_path_length(64) > average_path_length(16)


def test_invalid_limits_rejected():
    with pytest.raises(InvalidArgumentError):
        IsolationTree(max_depth=0)
    with pytest.raises(InvalidArgumentError):
        IsolationTree(max_depth=3, min_samples=0)


def test_leaves_partition_training_rows(gaussian_samples):
    tree = IsolationTree(max_depth=6, random_state=1)
    tree.train(gaussian_samples)

    leaves = list(tree.leaves())
    assert sum(leaf.n_samples for leaf in leaves) == len(gaussian_samples)

    reached = Counter(id(tree.root.get_leaf(x)) for x in gaussian_samples)
    for leaf in leaves:
        assert reached.get(id(leaf), 0) == leaf.n_samples


def test_depth_limit_respected(gaussian_samples):
    tree = IsolationTree(max_depth=3, random_state=2)
    tree.train(gaussian_samples)

    assert tree.depth() <= 3
    assert all(leaf.depth <= 3 for leaf in tree.leaves())


def test_constant_column_terminates():
    samples = np.column_stack([np.arange(64, dtype=float), np.full(64, 7.0)])
    tree = IsolationTree(max_depth=1000, random_state=3)
    tree.train(samples)

    assert sum(leaf.n_samples for leaf in tree.leaves()) == 64


def test_identical_rows_make_a_single_leaf():
    tree = IsolationTree(max_depth=10, random_state=4)
    tree.train(np.ones((20, 3)))

    assert tree.root.is_leaf
    assert tree.root.n_samples == 20


def test_search_returns_leaf_and_score(gaussian_samples):
    tree = IsolationTree(max_depth=7, random_state=5)
    tree.train(gaussian_samples)

    result = tree.search(gaussian_samples[0])
    assert isinstance(result, SearchResult)
    assert result.depth <= 7
    assert 0.0 < result.score <= 1.0

    expected = 2.0 ** (
        -(result.depth + average_path_length(result.n_samples))
        / average_path_length(len(gaussian_samples))
    )
    assert result.score == pytest.approx(expected)
    assert tree.scores(gaussian_samples[:1])[0] == pytest.approx(result.score)


def test_search_outside_training_range(gaussian_samples):
    tree = IsolationTree(max_depth=7, random_state=6)
    tree.train(gaussian_samples)

    result = tree.search([1e6, -1e6, 1e6])
    assert 0.0 < result.score <= 1.0


def test_single_row_tree_scores_one():
    tree = IsolationTree(max_depth=1, random_state=7)
    tree.train([[1.0, 2.0]])

    assert tree.expected_path_length == 0.0
    assert tree.search([5.0, 5.0]).score == 1.0


def test_isolated_point_scores_higher(gaussian_samples):
    tree = IsolationTree(max_depth=10, random_state=8)
    samples = np.vstack([gaussian_samples, [[25.0, 25.0, 25.0]]])
    tree.train(samples)

    scores = tree.scores(samples)
    assert scores[-1] > np.median(scores[:-1])


def test_untrained_tree_raises():
    tree = IsolationTree(max_depth=3)
    with pytest.raises(NotFittedError):
        tree.search([1.0])
    with pytest.raises(NotFittedError):
        list(tree.leaves())


def test_rejects_categorical_and_wrong_arity(gaussian_samples):
    tree = IsolationTree(max_depth=3)
    with pytest.raises(InvalidArgumentError):
        tree.train([[1.0, "red"], [2.0, "blue"]])

    tree.train(Dataset(gaussian_samples))
    with pytest.raises(InvalidArgumentError):
        tree.scores([[1.0, 2.0]])


def test_rejected_training_set_is_logged(caplog):
    caplog.set_level(logging.WARNING, logger="anomaly_detectors")
    tree = IsolationTree(max_depth=3)

    with pytest.raises(InvalidArgumentError):
        tree.train(np.empty((0, 2)))

    assert "Rejected training set" in caplog.text
    assert tree.root is None


def test_plot_partition_space_2D():
    samples = np.random.default_rng(9).normal(size=(50, 2))
    tree = IsolationTree(max_depth=4, random_state=9)
    tree.train(samples)

    ax = tree.plot_partition_space_2D(samples)
    n_splits = sum(not node.is_leaf for node in _nodes(tree.root))
    assert len(ax.lines) == 4 + n_splits
    plt.close("all")


def test_plot_needs_two_features(gaussian_samples):
    tree = IsolationTree(max_depth=4, random_state=10)
    tree.train(gaussian_samples)

    with pytest.raises(InvalidArgumentError):
        tree.plot_partition_space_2D()


def _nodes(node):
    yield node
    for child in node.children:
        yield from _nodes(child)
