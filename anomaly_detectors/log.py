"""Logging helpers. Importing the package never installs handlers."""

from __future__ import annotations

import logging

from . import config

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s – %(message)s"


def configure_logging(level: str | int | None = None) -> logging.Logger:
    """
    Attach a stream handler to the package logger.
    Args:
        level: Logging level name or number. Defaults to ``settings.log_level``.
    Returns:
        The configured ``anomaly_detectors`` logger.
    """
    logger = logging.getLogger("anomaly_detectors")
    if level is None:
        level = config.settings.log_level
    if isinstance(level, str):
        level = level.upper()
    logger.setLevel(level)

    if not any(getattr(h, "_anomaly_detectors", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler._anomaly_detectors = True  # type: ignore[attr-defined]
        logger.addHandler(handler)

    for h in logger.handlers:
        h.setFormatter(logging.Formatter(LOG_FORMAT))
    return logger
