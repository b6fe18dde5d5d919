"""Small helpers shared by the estimators."""

from __future__ import annotations

import numbers

import numpy as np

from .exceptions import InvalidArgumentError

MAX_INT = np.iinfo(np.int32).max


def check_random_state(
    seed: int | np.random.Generator | None,
) -> np.random.Generator:
    """
    Turn ``seed`` into a numpy Generator.
    Args:
        seed: None for fresh OS entropy, an integer seed, or an existing
            Generator (returned as is).
    Returns:
        A numpy random Generator.
    """
    if seed is None or isinstance(seed, (numbers.Integral, np.integer)):
        return np.random.default_rng(seed)
    if isinstance(seed, np.random.Generator):
        return seed
    raise InvalidArgumentError(
        f"{seed!r} cannot be used to seed a numpy random Generator."
    )


def spawn_seeds(rng: np.random.Generator, count: int) -> list[int]:
    """Draw ``count`` independent integer seeds from ``rng``."""
    return [int(seed) for seed in rng.integers(MAX_INT, size=count)]
