"""Pure in-memory synthetic datasets."""

from __future__ import annotations

import numpy as np

from .registry import Dataset, register_dataset
from .utils import deterministic_split, standardize


@register_dataset("separable")
def make_separable(
    n_points: int = 100,
    d_in: int = 2,
    margin: float = 0.5,
    seed: int = 0,
    test_split: float = 0.2,
    scale: bool = False,
) -> Dataset:
    """Two classes split by a random hyperplane through the origin.

    Every point is pushed ``margin`` away from the plane, so the classes are
    linearly separable. Targets are a single 0/1 column.
    """

    rng = np.random.default_rng(seed)
    direction = rng.standard_normal(d_in)
    direction /= np.linalg.norm(direction)
    x = rng.uniform(-1.0, 1.0, size=(n_points, d_in))
    side = np.where(x @ direction >= 0.0, 1.0, -1.0)
    x = x + margin * side[:, None] * direction[None, :]
    y = (side > 0).astype(np.float64).reshape(-1, 1)
    if scale:
        x, _, _ = standardize(x)
    return Dataset(
        name="separable",
        X=x,
        Y=y,
        task_type="binary",
        splits=deterministic_split(n_points, test_split=test_split, seed=seed),
        num_classes=2,
        provenance={
            "type": "synthetic",
            "generator": "separable",
            "n_points": n_points,
            "d_in": d_in,
            "margin": margin,
            "seed": seed,
            "test_split": test_split,
            "scale": scale,
        },
    )


@register_dataset("blobs")
def make_blobs(
    n_points: int = 150,
    centers: int = 3,
    d_in: int = 2,
    spread: float = 0.4,
    seed: int = 0,
    test_split: float = 0.2,
    scale: bool = False,
) -> Dataset:
    """Gaussian clusters around random centres, with one-hot targets."""

    rng = np.random.default_rng(seed)
    means = rng.uniform(-3.0, 3.0, size=(centers, d_in))
    labels = np.arange(n_points) % centers
    x = means[labels] + spread * rng.standard_normal((n_points, d_in))
    y = np.eye(centers, dtype=np.float64)[labels]
    if scale:
        x, _, _ = standardize(x)
    return Dataset(
        name="blobs",
        X=x,
        Y=y,
        task_type="multiclass",
        splits=deterministic_split(n_points, test_split=test_split, seed=seed),
        num_classes=centers,
        provenance={
            "type": "synthetic",
            "generator": "blobs",
            "n_points": n_points,
            "centers": centers,
            "d_in": d_in,
            "spread": spread,
            "seed": seed,
            "test_split": test_split,
            "scale": scale,
        },
    )


@register_dataset("sine")
def make_sine(
    freq: float = 1.0,
    n_points: int = 128,
    noise: float = 0.05,
    seed: int = 0,
    test_split: float = 0.2,
) -> Dataset:
    """Noisy ``sin(freq * pi * x)`` on ``[-1, 1]``."""

    rng = np.random.default_rng(seed)
    x = np.linspace(-1.0, 1.0, n_points).reshape(-1, 1)
    y = np.sin(freq * np.pi * x) + noise * rng.standard_normal(size=x.shape)
    return Dataset(
        name="sine",
        X=x,
        Y=y,
        task_type="regression",
        splits=deterministic_split(n_points, test_split=test_split, seed=seed),
        provenance={
            "type": "synthetic",
            "generator": "sine",
            "freq": freq,
            "n_points": n_points,
            "noise": noise,
            "seed": seed,
            "test_split": test_split,
        },
    )


__all__ = ["make_separable", "make_blobs", "make_sine"]
