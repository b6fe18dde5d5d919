"""Exceptions raised by the anomaly detectors."""


class AnomalyDetectorError(Exception):
    """Base class for every error raised by this package."""


class InvalidArgumentError(AnomalyDetectorError, ValueError):
    """
    Raised for out-of-range hyperparameters and for training data the
    estimator cannot handle (e.g. categorical columns).
    """


class NotFittedError(AnomalyDetectorError, RuntimeError):
    """Raised when inference is requested from an estimator that was never trained."""
