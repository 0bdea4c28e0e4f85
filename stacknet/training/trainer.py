"""Mini-batch training loop for :class:`~stacknet.training.network.Network`."""

from __future__ import annotations

import logging
import math
import numbers
from typing import Callable, Mapping, Optional, Sequence

import numpy as np
from tqdm import tqdm

from ..core.arrays import make_matrix
from ..core.errors import ConfigurationError
from ..core.grads import grad_div, grad_sum_all
from ..core.types import Array, BatchInfo, Params, TrainResult, Verbosity
from .batching import batch
from .network import Network
from .optimizers import SGD, OptimisationAlgorithm

logger = logging.getLogger(__name__)

BatchCallback = Callable[[Network, Array, Array, BatchInfo], None]

_MESSAGES_PER_RUN = {
    Verbosity.LOW: 1,
    Verbosity.STD: 10,
    Verbosity.HIGH: 100,
}


def training_info(network: Network, x_batch: Array, y_batch: Array, info: BatchInfo) -> None:
    """Default per-batch callback: log the batch loss at a throttled rate."""

    if info.verbosity == Verbosity.NONE:
        return
    if info.verbosity >= Verbosity.FULL:
        show = True
    else:
        n_msgs = _MESSAGES_PER_RUN[Verbosity(info.verbosity)]
        every = max(1, math.ceil(info.epochs / n_msgs))
        last_batch = info.batch_index == info.n_batches
        show = last_batch and (info.epoch == 1 or info.epoch % every == 0)
    if show:
        logger.info(
            "Training.. loss on (epoch %d batch %d): %.6g",
            info.epoch,
            info.batch_index,
            network.loss(x_batch, y_batch),
        )


def _positive_int(name: str, value) -> int:
    if isinstance(value, bool) or not isinstance(value, numbers.Integral) or value <= 0:
        raise ConfigurationError(f"{name} must be a positive integer, got {value!r}")
    return int(value)


class Trainer:
    """Run mini-batch gradient training of a network with a pluggable optimiser.

    ``callback`` is invoked after every parameter update with the network,
    the batch and a :class:`BatchInfo`; ``epoch_callbacks`` receive
    ``on_epoch(epoch, metrics)`` (or are called directly) after every epoch.
    Exceptions raised by callbacks abort the run.
    """

    def __init__(
        self,
        network: Network,
        optimizer: Optional[OptimisationAlgorithm] = None,
        callback: Optional[BatchCallback] = training_info,
        epoch_callbacks: Sequence[object] | None = None,
    ) -> None:
        self.network = network
        self.optimizer = optimizer if optimizer is not None else SGD()
        self.callback = callback
        self.epoch_callbacks = list(epoch_callbacks or [])

    def run(
        self,
        X,
        Y,
        *,
        epochs: int = 100,
        batch_size: Optional[int] = None,
        sequential: bool = False,
        verbosity: Verbosity = Verbosity.STD,
        rng: Optional[np.random.Generator] = None,
    ) -> TrainResult:
        X = make_matrix(X)
        Y = make_matrix(Y)
        n = X.shape[0]
        if Y.shape[0] != n:
            raise ConfigurationError(f"train: {n} input records but {Y.shape[0]} targets")
        epochs = _positive_int("epochs", epochs)
        batch_size = min(n, 32) if batch_size is None else _positive_int("batch_size", batch_size)
        batch_size = min(n, batch_size)
        verbosity = Verbosity(verbosity)
        rng = rng if rng is not None else np.random.default_rng()

        network = self.network
        optimizer = self.optimizer
        optimizer.reset()
        if verbosity > Verbosity.NONE:
            logger.info(
                "Training %s for %d epochs with algorithm %s",
                network.name,
                epochs,
                type(optimizer).__name__,
            )

        result = TrainResult(epochs=0)
        previous_loss = math.inf
        epoch_loss = network.loss(X, Y)
        self._record(result, epoch_loss, network.get_params(), verbosity)

        with tqdm(
            range(1, epochs + 1),
            desc=f"Training {network.name}",
            disable=verbosity == Verbosity.NONE,
            leave=False,
        ) as progress:
            for epoch in progress:
                batches = batch(n, batch_size, sequential=sequential, rng=rng)
                for batch_index, indices in enumerate(batches, start=1):
                    x_batch = X[indices, :]
                    y_batch = Y[indices, :]
                    params = network.get_params()
                    gradient = self._batch_gradient(x_batch, y_batch)
                    update = optimizer.single_update(
                        params,
                        gradient,
                        epoch=epoch,
                        batch_index=batch_index,
                        batch_size=len(indices),
                        epoch_loss=epoch_loss,
                        previous_epoch_loss=previous_loss,
                    )
                    network.set_params(update.params)
                    if self.callback is not None:
                        info = BatchInfo(
                            n_records=n,
                            batch_size=len(indices),
                            epochs=epochs,
                            verbosity=verbosity,
                            epoch=epoch,
                            batch_index=batch_index,
                            n_batches=len(batches),
                        )
                        self.callback(network, x_batch, y_batch, info)
                    if update.stop:
                        network.trained = True
                        result.epochs = epoch
                        result.early_stopped = True
                        if verbosity > Verbosity.NONE:
                            logger.info("Early stop requested by %s at epoch %d", type(optimizer).__name__, epoch)
                        return result

                previous_loss = epoch_loss
                epoch_loss = network.loss(X, Y)
                self._record(result, epoch_loss, network.get_params(), verbosity)
                self._emit_epoch(epoch, {"loss": epoch_loss})
                progress.set_postfix(loss=f"{epoch_loss:.4g}")

        network.trained = True
        result.epochs = epochs
        if verbosity > Verbosity.NONE:
            logger.info("Training of %d epochs completed. Final epoch loss: %.6g", epochs, epoch_loss)
        return result

    # ------------------------------------------------------------------
    # Internal helpers

    def _batch_gradient(self, x_batch: Array, y_batch: Array) -> Params:
        per_record = [
            self.network.get_gradient(x_batch[j, :], y_batch[j, :]) for j in range(x_batch.shape[0])
        ]
        return grad_div(grad_sum_all(per_record), x_batch.shape[0])

    @staticmethod
    def _record(result: TrainResult, loss: float, params: Params, verbosity: Verbosity) -> None:
        if verbosity >= Verbosity.STD:
            result.losses.append(float(loss))
        if verbosity > Verbosity.STD:
            result.params.append(params)

    def _emit_epoch(self, epoch: int, metrics: Mapping[str, float]) -> None:
        for callback in self.epoch_callbacks:
            if hasattr(callback, "on_epoch"):
                callback.on_epoch(epoch, metrics)  # type: ignore[attr-defined]
            elif callable(callback):
                callback(epoch, metrics)


def train(
    network: Network,
    X,
    Y,
    *,
    epochs: int = 100,
    batch_size: Optional[int] = None,
    sequential: bool = False,
    verbosity: Verbosity = Verbosity.STD,
    callback: Optional[BatchCallback] = training_info,
    optimizer: Optional[OptimisationAlgorithm] = None,
    rng: Optional[np.random.Generator] = None,
) -> TrainResult:
    """Train ``network`` on ``(X, Y)``; see :class:`Trainer`."""

    trainer = Trainer(network, optimizer=optimizer, callback=callback)
    return trainer.run(
        X,
        Y,
        epochs=epochs,
        batch_size=batch_size,
        sequential=sequential,
        verbosity=verbosity,
        rng=rng,
    )


__all__ = ["BatchCallback", "Trainer", "train", "training_info"]
