"""Element-wise arithmetic on nested parameter/gradient bundles.

A bundle is an array or an arbitrarily nested list/tuple of arrays, e.g. the
``[(W0, b0), (W1,)]`` layout returned by ``Network.get_params``. Containers
keep their type; leaves are combined with numpy broadcasting.
"""

from __future__ import annotations

from typing import Callable, Sequence

import numpy as np

from .errors import ConfigurationError


def _zip_map(fn: Callable, a, b):
    if isinstance(a, (list, tuple)):
        if len(a) != len(b):
            raise ConfigurationError(f"Bundle structure mismatch: {len(a)} vs {len(b)} entries")
        return type(a)(_zip_map(fn, x, y) for x, y in zip(a, b))
    return fn(np.asarray(a), np.asarray(b))


def _map(fn: Callable, a):
    if isinstance(a, (list, tuple)):
        return type(a)(_map(fn, x) for x in a)
    return fn(np.asarray(a))


def grad_map(fn: Callable, a, b):
    """Apply ``fn`` leaf by leaf to two bundles of the same structure."""

    return _zip_map(fn, a, b)


def grad_sum(a, b):
    return _zip_map(np.add, a, b)


def grad_sub(a, b):
    return _zip_map(np.subtract, a, b)


def grad_mul(a, k: float):
    return _map(lambda x: x * k, a)


def grad_div(a, k: float):
    return _map(lambda x: x / k, a)


def grad_sum_all(bundles: Sequence):
    """Sum a non-empty sequence of structurally identical bundles."""

    if not bundles:
        raise ConfigurationError("Cannot sum an empty sequence of gradients")
    total = bundles[0]
    for bundle in bundles[1:]:
        total = grad_sum(total, bundle)
    return total


def all_finite(a) -> bool:
    if isinstance(a, (list, tuple)):
        return all(all_finite(x) for x in a)
    return bool(np.all(np.isfinite(a)))


__all__ = [
    "grad_map",
    "grad_sum",
    "grad_sub",
    "grad_mul",
    "grad_div",
    "grad_sum_all",
    "all_finite",
]
