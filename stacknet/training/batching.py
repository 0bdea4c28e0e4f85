"""Mini-batch index generation."""

from __future__ import annotations

from typing import List, Optional

import numpy as np

from ..core.errors import ConfigurationError


def batch(
    n: int,
    batch_size: int,
    *,
    sequential: bool = False,
    rng: Optional[np.random.Generator] = None,
) -> List[List[int]]:
    """Split the record indices ``0..n-1`` into batches of ``batch_size``.

    Indices are shuffled with ``rng`` unless ``sequential`` is set. Only full
    batches are returned: the ``n % batch_size`` records left over are not
    part of this epoch's batches, which keeps every gradient average over
    the same number of records. When ``batch_size > n`` a single batch with
    all the indices is returned.

    >>> batch(6, 2, sequential=True)
    [[0, 1], [2, 3], [4, 5]]
    """

    if n <= 0:
        raise ConfigurationError(f"Cannot batch {n} records")
    if batch_size <= 0:
        raise ConfigurationError(f"batch_size must be positive, got {batch_size}")
    if sequential:
        order = np.arange(n)
    else:
        if rng is None:
            raise ConfigurationError("Shuffled batching needs an explicit random generator")
        order = rng.permutation(n)
    if batch_size > n:
        return [order.tolist()]
    n_batches = n // batch_size
    return [order[b * batch_size : (b + 1) * batch_size].tolist() for b in range(n_batches)]


__all__ = ["batch"]
