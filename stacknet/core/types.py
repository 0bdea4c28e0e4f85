"""Core typing contracts for stacknet."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import List, Tuple

import numpy as np

Array = np.ndarray

ParamTuple = Tuple[Array, ...]
"""Trainable parameters of a single layer."""

Params = List[ParamTuple]
"""Trainable parameters (or gradients) of a whole network, one tuple per layer."""


class Verbosity(IntEnum):
    """How much a training run reports and records."""

    NONE = 0
    LOW = 10
    STD = 20
    HIGH = 30
    FULL = 40


@dataclass(frozen=True)
class BatchInfo:
    """Progress metadata handed to the per-batch training callback."""

    n_records: int
    batch_size: int
    epochs: int
    verbosity: Verbosity
    epoch: int
    batch_index: int
    n_batches: int


@dataclass(frozen=True)
class UpdateResult:
    """Outcome of a single optimiser step."""

    params: Params
    stop: bool = False


@dataclass
class TrainResult:
    """Summary returned by :meth:`stacknet.training.trainer.Trainer.run`."""

    epochs: int
    losses: List[float] = field(default_factory=list)
    params: List[Params] = field(default_factory=list)
    early_stopped: bool = False


@dataclass(frozen=True)
class RunResult:
    """Summary returned by :func:`stacknet.training.pipelines.run_pipeline`."""

    epochs: int
    final_loss: float
    metrics_path: str
    manifest_path: str
    summary_path: str = ""
