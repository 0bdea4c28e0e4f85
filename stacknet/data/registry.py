"""Dataset registry and metadata contracts."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, MutableMapping, Optional, Tuple

import numpy as np

from ..core.errors import ConfigurationError
from ..core.types import Array
from .utils import SplitIndices

TASK_TYPES = ("regression", "binary", "multiclass")


@dataclass(frozen=True)
class Dataset:
    """An in-memory dataset with a fixed train/test partition.

    Attributes
    ----------
    name:
        Registry identifier.
    X, Y:
        ``(n, d_in)`` inputs and ``(n, d_out)`` targets.
    task_type:
        One of ``{"regression", "binary", "multiclass"}``.
    splits:
        Row indices of the train and test partitions.
    num_classes:
        Number of classes for classification tasks.
    provenance:
        Generation parameters, recorded in run manifests.
    """

    name: str
    X: Array
    Y: Array
    task_type: str
    splits: SplitIndices
    num_classes: Optional[int] = None
    provenance: Dict[str, Any] = field(default_factory=dict)

    @property
    def d_in(self) -> int:
        return int(self.X.shape[1])

    @property
    def d_out(self) -> int:
        return int(self.Y.shape[1])

    def split(self, name: str) -> Tuple[Array, Array]:
        """Return the ``(X, Y)`` rows of the ``"train"`` or ``"test"`` partition."""

        if name not in {"train", "test"}:
            raise ConfigurationError(f"Unsupported split: {name}")
        idx = getattr(self.splits, name)
        return self.X[idx], self.Y[idx]


DatasetFactory = Callable[..., Dataset]

_REGISTRY: MutableMapping[str, DatasetFactory] = {}


def register_dataset(
    name: str | None = None,
    factory: DatasetFactory | None = None,
) -> Callable[[DatasetFactory], DatasetFactory] | DatasetFactory:
    """Register a dataset factory.

    ``register_dataset`` can be used both as a decorator::

        @register_dataset("blobs")
        def make_blobs(**kwargs):
            ...

    or directly::

        register_dataset("blobs", make_blobs)
    """

    def _decorator(func: DatasetFactory) -> DatasetFactory:
        _REGISTRY[str(name or func.__name__)] = func
        return func

    if factory is not None:
        return _decorator(factory)
    return _decorator


def get_dataset(name: str, **options: Any) -> Dataset:
    """Build the dataset registered as ``name`` with ``options``."""

    if name not in _REGISTRY:
        available = ", ".join(sorted(_REGISTRY))
        raise ConfigurationError(f"Unknown dataset {name!r}. Available datasets: {available}")
    try:
        dataset = _REGISTRY[name](**options)
    except TypeError as exc:
        raise ConfigurationError(f"Invalid options for dataset {name!r}: {exc}") from exc
    _validate(dataset)
    return dataset


def available_datasets() -> Iterable[str]:
    """Return the sorted list of available dataset identifiers."""

    return sorted(_REGISTRY)


def _validate(dataset: Dataset) -> None:
    if dataset.task_type not in TASK_TYPES:
        raise ConfigurationError(f"Invalid task type: {dataset.task_type}")
    if dataset.task_type == "multiclass" and dataset.num_classes is None:
        raise ConfigurationError("Multiclass datasets must define num_classes")
    if dataset.X.ndim != 2 or dataset.Y.ndim != 2:
        raise ConfigurationError(f"Dataset {dataset.name!r} must provide 2-D X and Y")
    if dataset.X.shape[0] != dataset.Y.shape[0]:
        raise ConfigurationError(
            f"Dataset {dataset.name!r} has {dataset.X.shape[0]} inputs but {dataset.Y.shape[0]} targets"
        )
    if not np.all(np.isfinite(dataset.X)):
        raise ConfigurationError(f"Dataset {dataset.name!r} contains non-finite inputs")


__all__ = ["Dataset", "available_datasets", "get_dataset", "register_dataset"]
