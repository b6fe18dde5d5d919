import logging

import pytest

from anomaly_detectors import InvalidArgumentError, configure_logging
from anomaly_detectors.config import get_settings
from anomaly_detectors.log import LOG_FORMAT
from anomaly_detectors.utils import check_random_state


def test_settings_defaults(monkeypatch):
    for name in ("LOG_LEVEL", "N_JOBS", "RANDOM_STATE"):
        monkeypatch.delenv(f"ANOMALY_DETECTORS_{name}", raising=False)

    settings = get_settings()
    assert settings.log_level == "INFO"
    assert settings.n_jobs == 1
    assert settings.random_state is None


def test_settings_from_environment(monkeypatch):
    monkeypatch.setenv("ANOMALY_DETECTORS_N_JOBS", "4")
    monkeypatch.setenv("ANOMALY_DETECTORS_RANDOM_STATE", "17")
    monkeypatch.setenv("ANOMALY_DETECTORS_LOG_LEVEL", "DEBUG")

    settings = get_settings()
    assert settings.n_jobs == 4
    assert settings.random_state == 17
    assert settings.log_level == "DEBUG"


def test_configure_logging(package_logger):
    logger = configure_logging("debug")
    assert logger is package_logger
    assert logger.level == logging.DEBUG

    configure_logging("warning")
    handlers = [h for h in logger.handlers if getattr(h, "_anomaly_detectors", False)]
    assert len(handlers) == 1
    assert handlers[0].formatter._fmt == LOG_FORMAT
    assert logger.level == logging.WARNING


def test_check_random_state():
    rng = check_random_state(5)
    assert check_random_state(rng) is rng
    assert check_random_state(5).integers(1000) == check_random_state(5).integers(1000)
    with pytest.raises(InvalidArgumentError):
        check_random_state("seed")
