"""Evaluation metrics and label helpers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

import numpy as np

from ..core.arrays import make_matrix
from ..core.errors import ConfigurationError
from ..core.types import Array


@dataclass(frozen=True)
class MetricResult:
    name: str
    value: float


def one_hot_encoder(labels: Sequence, classes: Optional[Sequence] = None) -> Array:
    """Encode ``labels`` as one-hot rows, columns ordered like ``classes``.

    ``classes`` defaults to the sorted distinct labels.
    """

    labels = list(np.asarray(labels).reshape(-1))
    if classes is None:
        classes = sorted(set(labels))
    index = {c: i for i, c in enumerate(classes)}
    out = np.zeros((len(labels), len(classes)), dtype=np.float64)
    for row, label in enumerate(labels):
        if label not in index:
            raise ConfigurationError(f"Label {label!r} is not one of the classes {list(classes)}")
        out[row, index[label]] = 1.0
    return out


def _class_indices(values: Array, threshold: float) -> Array:
    values = make_matrix(values)
    if values.shape[1] > 1:
        return np.argmax(values, axis=1)
    return (values[:, 0] >= threshold).astype(int)


def accuracy(y_true, y_pred, *, threshold: float = 0.5) -> float:
    """Share of records whose predicted class matches the true class.

    Multi-column inputs are compared by ``argmax`` (one-hot targets,
    probability outputs); single columns are thresholded at ``threshold``.
    """

    return float(np.mean(_class_indices(y_true, threshold) == _class_indices(y_pred, threshold)))


def default_metrics(task_type: str) -> List[str]:
    if task_type == "regression":
        return ["mae", "rmse", "r2"]
    if task_type in {"binary", "multiclass"}:
        return ["accuracy"]
    raise ConfigurationError(f"Unknown task type: {task_type}")


def compute_metric(name: str, predictions: Array, targets: Array) -> MetricResult:
    key = name.lower()
    preds = make_matrix(predictions)
    targs = make_matrix(targets)
    if key == "mae":
        value = float(np.mean(np.abs(preds - targs)))
    elif key == "rmse":
        value = float(np.sqrt(np.mean((preds - targs) ** 2)))
    elif key == "r2":
        mean = np.mean(targs, axis=0, keepdims=True)
        ss_res = float(np.sum((targs - preds) ** 2))
        ss_tot = float(np.sum((targs - mean) ** 2))
        value = 1.0 if ss_tot == 0 else float(1 - ss_res / (ss_tot + 1e-9))
    elif key == "accuracy":
        value = accuracy(targs, preds)
    else:
        raise ConfigurationError(f"Unknown metric: {name}")
    return MetricResult(name=key, value=value)


def compute_metrics(names: Iterable[str], predictions: Array, targets: Array) -> Mapping[str, float]:
    results: Dict[str, float] = {}
    for name in names:
        metric = compute_metric(name, predictions, targets)
        results[metric.name] = metric.value
    return results


__all__ = [
    "MetricResult",
    "one_hot_encoder",
    "accuracy",
    "default_metrics",
    "compute_metric",
    "compute_metrics",
]
