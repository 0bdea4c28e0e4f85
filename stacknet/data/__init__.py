"""Dataset registry and synthetic datasets."""

# Ensure built-in datasets register themselves when the package is imported.
from . import synthetic as _synthetic  # noqa: F401
from .registry import Dataset, available_datasets, get_dataset, register_dataset
from .utils import SplitIndices, deterministic_split, standardize

__all__ = [
    "Dataset",
    "SplitIndices",
    "available_datasets",
    "deterministic_split",
    "get_dataset",
    "register_dataset",
    "standardize",
]
