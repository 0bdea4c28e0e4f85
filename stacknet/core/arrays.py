"""Array coercion helpers."""

from __future__ import annotations

import numpy as np

from .types import Array


def make_matrix(x) -> Array:
    """Return ``x`` as a 2-D float array, treating a vector as one column.

    Scalars become a ``(1, 1)`` matrix. Matrices are returned unchanged
    (converted to ``float64``).
    """

    arr = np.asarray(x, dtype=np.float64)
    if arr.ndim == 0:
        return arr.reshape(1, 1)
    if arr.ndim == 1:
        return arr.reshape(-1, 1)
    return arr


def make_col_vector(x) -> Array:
    """Flatten ``x`` into a 1-D float vector."""

    return np.asarray(x, dtype=np.float64).reshape(-1)


__all__ = ["make_matrix", "make_col_vector"]
