"""Optimisation algorithms turning averaged gradients into parameter updates."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Callable, Optional, Protocol

import numpy as np

from ..core.errors import ConfigurationError
from ..core.grads import grad_map
from ..core.types import Params, UpdateResult

LearningRate = Callable[[int], float]


def inverse_decay(epoch: int) -> float:
    """Default schedule ``1 / (1 + epoch)``."""

    return 1.0 / (1.0 + epoch)


def constant_rate(rate: float) -> LearningRate:
    """Return the schedule ``epoch -> rate``."""

    def schedule(epoch: int) -> float:
        return rate

    schedule.__name__ = f"constant_rate({rate})"
    return schedule


class OptimisationAlgorithm(Protocol):
    """Protocol implemented by optimisation algorithms.

    Running state (momentum, moment estimates) lives on the algorithm object
    and is tied to one parameter layout; :meth:`reset` clears it and is
    called by the trainer at the start of every run.
    """

    def reset(self) -> None:
        """Drop any running state."""

    def single_update(
        self,
        params: Params,
        gradient: Params,
        *,
        epoch: int,
        batch_index: int,
        batch_size: int,
        epoch_loss: float,
        previous_epoch_loss: float,
    ) -> UpdateResult:
        """Return the updated parameters and whether training should stop."""


def _zeros_like(params: Params) -> Params:
    return [tuple(np.zeros_like(np.asarray(p, dtype=np.float64)) for p in layer) for layer in params]


@dataclass
class SGD:
    """Stochastic gradient descent with an epoch-dependent learning rate.

    The step is ``learning_rate(epoch) * scale``. With ``momentum > 0`` a
    velocity ``v = momentum * v - step * gradient`` is accumulated and added
    to the parameters. When ``tol > 0`` the update asks to stop once the
    relative change between the last two epoch losses drops below ``tol``.
    """

    learning_rate: LearningRate = inverse_decay
    scale: float = 1.0
    momentum: float = 0.0
    tol: float = 0.0
    _velocity: Optional[Params] = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        if not 0.0 <= self.momentum < 1.0:
            raise ConfigurationError(f"SGD momentum must be in [0, 1), got {self.momentum}")
        if self.tol < 0:
            raise ConfigurationError(f"SGD tol must be non-negative, got {self.tol}")

    def reset(self) -> None:
        self._velocity = None

    def _converged(self, epoch_loss: float, previous_epoch_loss: float) -> bool:
        if self.tol <= 0 or not math.isfinite(previous_epoch_loss):
            return False
        return abs(previous_epoch_loss - epoch_loss) < self.tol * abs(previous_epoch_loss)

    def single_update(
        self,
        params: Params,
        gradient: Params,
        *,
        epoch: int,
        batch_index: int,
        batch_size: int,
        epoch_loss: float,
        previous_epoch_loss: float,
    ) -> UpdateResult:
        step = self.learning_rate(epoch) * self.scale
        if self.momentum == 0.0:
            new_params = grad_map(lambda p, g: p - step * g, params, gradient)
        else:
            if self._velocity is None:
                self._velocity = _zeros_like(params)
            self._velocity = grad_map(lambda v, g: self.momentum * v - step * g, self._velocity, gradient)
            new_params = grad_map(lambda p, v: p + v, params, self._velocity)
        return UpdateResult(params=new_params, stop=self._converged(epoch_loss, previous_epoch_loss))


@dataclass
class ADAM:
    """Adaptive moment estimation (Kingma & Ba) with bias correction.

    The step size is ``learning_rate(epoch) * scale`` and the bias
    correction uses the epoch number as time step.
    """

    learning_rate: LearningRate = field(default_factory=lambda: constant_rate(0.001))
    scale: float = 1.0
    beta1: float = 0.9
    beta2: float = 0.999
    epsilon: float = 1e-8
    _m: Optional[Params] = field(default=None, init=False, repr=False)
    _v: Optional[Params] = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        for name in ("beta1", "beta2"):
            value = getattr(self, name)
            if not 0.0 <= value < 1.0:
                raise ConfigurationError(f"ADAM {name} must be in [0, 1), got {value}")

    def reset(self) -> None:
        self._m = None
        self._v = None

    def single_update(
        self,
        params: Params,
        gradient: Params,
        *,
        epoch: int,
        batch_index: int,
        batch_size: int,
        epoch_loss: float,
        previous_epoch_loss: float,
    ) -> UpdateResult:
        if self._m is None or self._v is None:
            self._m = _zeros_like(params)
            self._v = _zeros_like(params)
        b1, b2 = self.beta1, self.beta2
        self._m = grad_map(lambda m, g: b1 * m + (1.0 - b1) * g, self._m, gradient)
        self._v = grad_map(lambda v, g: b2 * v + (1.0 - b2) * g**2, self._v, gradient)
        t = max(1, epoch)
        m_hat = [tuple(m / (1.0 - b1**t) for m in layer) for layer in self._m]
        v_hat = [tuple(v / (1.0 - b2**t) for v in layer) for layer in self._v]
        step = self.learning_rate(epoch) * self.scale
        direction = grad_map(lambda m, v: m / (np.sqrt(v) + self.epsilon), m_hat, v_hat)
        new_params = grad_map(lambda p, d: p - step * d, params, direction)
        return UpdateResult(params=new_params, stop=False)


_OPTIMIZERS = {"sgd": SGD, "adam": ADAM}


def build_optimizer(name: str = "sgd", **options) -> OptimisationAlgorithm:
    """Instantiate an optimiser from a configuration section.

    ``learning_rate`` may be a number (constant schedule), ``"inverse"`` for
    :func:`inverse_decay`, or a callable.
    """

    key = name.lower()
    if key not in _OPTIMIZERS:
        available = ", ".join(sorted(_OPTIMIZERS))
        raise ConfigurationError(f"Unknown optimizer {name!r}. Available optimizers: {available}")
    rate = options.pop("learning_rate", None)
    if isinstance(rate, (int, float)):
        options["learning_rate"] = constant_rate(float(rate))
    elif rate == "inverse":
        options["learning_rate"] = inverse_decay
    elif callable(rate):
        options["learning_rate"] = rate
    elif rate is not None:
        raise ConfigurationError(f"Unsupported learning_rate setting: {rate!r}")
    try:
        return _OPTIMIZERS[key](**options)
    except TypeError as exc:
        raise ConfigurationError(f"Invalid options for optimizer {name!r}: {exc}") from exc


__all__ = [
    "LearningRate",
    "inverse_decay",
    "constant_rate",
    "OptimisationAlgorithm",
    "SGD",
    "ADAM",
    "build_optimizer",
]
