"""Utility helpers for dataset factories."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

import numpy as np

from ..core.errors import ConfigurationError


@dataclass(frozen=True)
class SplitIndices:
    """Indices for train/test partitions."""

    train: np.ndarray
    test: np.ndarray

    @property
    def sizes(self) -> Mapping[str, int]:
        return {"train": int(self.train.size), "test": int(self.test.size)}


def deterministic_split(n_samples: int, *, test_split: float = 0.2, seed: int = 0) -> SplitIndices:
    """Return deterministic shuffled indices for the requested test ratio."""

    if not 0 <= test_split < 1:
        raise ConfigurationError("test_split must be in [0, 1)")

    rng = np.random.default_rng(seed)
    indices = rng.permutation(n_samples)

    test_size = int(round(n_samples * test_split))
    # Ensure at least one test sample when a test split was requested
    test_size = min(max(test_size, 1 if test_split > 0 else 0), n_samples)
    if n_samples - test_size <= 0:
        raise ConfigurationError("Not enough samples for the requested split")

    return SplitIndices(train=np.sort(indices[test_size:]), test=np.sort(indices[:test_size]))


def standardize(
    array: np.ndarray,
    *,
    mean: np.ndarray | None = None,
    std: np.ndarray | None = None,
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Apply standard scaling returning the scaled array and parameters.

    Constant columns keep a unit scale so they map to zero.
    """

    if mean is None or std is None:
        mean = array.mean(axis=0, keepdims=True)
        std = array.std(axis=0, keepdims=True)
        std = np.where(std == 0, 1.0, std)
    scaled = (array - mean) / std
    return scaled, mean, std


__all__ = ["SplitIndices", "deterministic_split", "standardize"]
