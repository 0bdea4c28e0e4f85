"""Cost functions and the registry used to resolve them by name."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Iterable, Optional

import numpy as np

from ..core.errors import ConfigurationError
from ..core.types import Array

CostFn = Callable[[Array, Array], float]
CostDerivative = Callable[[Array, Array], Array]

_EPS = 1e-15


@dataclass(frozen=True)
class Cost:
    """A per-record cost ``cf(y_hat, y)`` with its optional derivative in ``y_hat``."""

    name: str
    fn: CostFn
    derivative: Optional[CostDerivative] = None

    def __call__(self, y_hat: Array, y: Array) -> float:
        return self.fn(y_hat, y)


class CostRegistry:
    """Central registry for cost functions."""

    def __init__(self) -> None:
        self._registry: Dict[str, Cost] = {}

    def register(self, name: str, fn: CostFn, derivative: Optional[CostDerivative] = None) -> None:
        self._registry[name] = Cost(name, fn, derivative)

    def names(self) -> Iterable[str]:
        return sorted(self._registry)

    def get(self, name: str) -> Cost:
        if name not in self._registry:
            available = ", ".join(sorted(self._registry))
            raise ConfigurationError(f"Unknown cost {name!r}. Available costs: {available}")
        return self._registry[name]


REGISTRY = CostRegistry()


def squared_cost(y_hat: Array, y: Array) -> float:
    """Half the squared Euclidean distance between ``y_hat`` and ``y``."""

    diff = np.asarray(y_hat, dtype=np.float64) - np.asarray(y, dtype=np.float64)
    return float(0.5 * np.sum(diff**2))


def d_squared_cost(y_hat: Array, y: Array) -> Array:
    return np.asarray(y_hat, dtype=np.float64) - np.asarray(y, dtype=np.float64)


def cross_entropy(y_hat: Array, y: Array) -> float:
    """Cross-entropy of the probability vector ``y_hat`` against target ``y``."""

    y_hat = np.asarray(y_hat, dtype=np.float64)
    return float(-np.sum(np.asarray(y, dtype=np.float64) * np.log(y_hat + _EPS)))


def d_cross_entropy(y_hat: Array, y: Array) -> Array:
    return -np.asarray(y, dtype=np.float64) / (np.asarray(y_hat, dtype=np.float64) + _EPS)


def absolute_cost(y_hat: Array, y: Array) -> float:
    diff = np.asarray(y_hat, dtype=np.float64) - np.asarray(y, dtype=np.float64)
    return float(np.sum(np.abs(diff)))


def d_absolute_cost(y_hat: Array, y: Array) -> Array:
    return np.sign(np.asarray(y_hat, dtype=np.float64) - np.asarray(y, dtype=np.float64))


REGISTRY.register("squared", squared_cost, d_squared_cost)
REGISTRY.register("cross_entropy", cross_entropy, d_cross_entropy)
REGISTRY.register("absolute", absolute_cost, d_absolute_cost)
# Aliases matching common naming
REGISTRY.register("mse", squared_cost, d_squared_cost)
REGISTRY.register("ce", cross_entropy, d_cross_entropy)

__all__ = [
    "Cost",
    "CostRegistry",
    "REGISTRY",
    "squared_cost",
    "d_squared_cost",
    "cross_entropy",
    "d_cross_entropy",
    "absolute_cost",
    "d_absolute_cost",
]
