import logging

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pytest

from anomaly_detectors import config


@pytest.fixture
def cluster_with_outliers():
    """200 points from a tight 2-D Gaussian followed by 10 far away points."""
    rng = np.random.default_rng(42)
    cluster = rng.normal(0.0, 1.0, size=(200, 2))

    angles = np.linspace(0.0, 2.0 * np.pi, 10, endpoint=False)
    radii = rng.uniform(50.0, 100.0, size=10)
    outliers = np.column_stack([radii * np.cos(angles), radii * np.sin(angles)])

    return np.vstack([cluster, outliers])


@pytest.fixture
def gaussian_samples():
    return np.random.default_rng(0).normal(size=(100, 3))


@pytest.fixture(autouse=True)
def default_settings(monkeypatch):
    monkeypatch.setattr(config, "settings", config.Settings(n_jobs=1, random_state=None))


@pytest.fixture
def package_logger():
    logger = logging.getLogger("anomaly_detectors")
    handlers, level = list(logger.handlers), logger.level
    yield logger
    logger.handlers = handlers
    logger.setLevel(level)
