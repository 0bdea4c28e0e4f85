"""Activation functions and their derivatives."""

from __future__ import annotations

from typing import Callable, Dict, Optional

import numpy as np

from .errors import ConfigurationError
from .types import Array

ActivationFn = Callable[[Array], Array]


def identity(x: Array) -> Array:
    """Return ``x`` unchanged."""

    return x


def didentity(x: Array) -> Array:
    return np.ones_like(x, dtype=np.float64)


def relu(x: Array) -> Array:
    """Return the ReLU activation."""

    return np.maximum(x, 0.0)


def drelu(x: Array) -> Array:
    return (np.asarray(x) > 0).astype(np.float64)


def sigmoid(x: Array) -> Array:
    """Return the logistic sigmoid."""

    return 1.0 / (1.0 + np.exp(-x))


def dsigmoid(x: Array) -> Array:
    s = sigmoid(x)
    return s * (1.0 - s)


def tanh(x: Array) -> Array:
    return np.tanh(x)


def dtanh(x: Array) -> Array:
    return 1.0 - np.tanh(x) ** 2


def softplus(x: Array) -> Array:
    """Return ``log(1 + exp(x))`` computed without overflow."""

    return np.logaddexp(0.0, x)


def dsoftplus(x: Array) -> Array:
    return sigmoid(x)


def softmax(x: Array, beta: float = 1.0) -> Array:
    """Return the softmax of the whole vector ``x``."""

    z = beta * np.asarray(x, dtype=np.float64)
    z = z - z.max()
    e = np.exp(z)
    return e / e.sum()


def dsoftmax(x: Array, beta: float = 1.0) -> Array:
    """Return the Jacobian of :func:`softmax` at ``x`` (``d x d``)."""

    s = softmax(x, beta)
    return beta * (np.diag(s) - np.outer(s, s))


_DERIVATIVES: Dict[ActivationFn, ActivationFn] = {
    identity: didentity,
    relu: drelu,
    sigmoid: dsigmoid,
    tanh: dtanh,
    np.tanh: dtanh,
    softplus: dsoftplus,
}

_JACOBIANS: Dict[ActivationFn, ActivationFn] = {
    softmax: dsoftmax,
}

_BY_NAME: Dict[str, ActivationFn] = {
    "identity": identity,
    "linear": identity,
    "relu": relu,
    "sigmoid": sigmoid,
    "tanh": tanh,
    "softplus": softplus,
    "softmax": softmax,
}


def derivative_of(fn: ActivationFn) -> Optional[ActivationFn]:
    """Return the closed-form derivative of a built-in activation, if known."""

    return _DERIVATIVES.get(fn)


def jacobian_of(fn: ActivationFn) -> Optional[ActivationFn]:
    """Return the closed-form Jacobian of a built-in vector function, if known.

    Element-wise activations get a diagonal Jacobian built from their
    derivative.
    """

    if fn in _JACOBIANS:
        return _JACOBIANS[fn]
    deriv = _DERIVATIVES.get(fn)
    if deriv is None:
        return None
    return lambda x: np.diag(deriv(np.asarray(x, dtype=np.float64)))


def get(name: str) -> ActivationFn:
    """Resolve an activation by its configuration name."""

    key = name.lower()
    if key not in _BY_NAME:
        available = ", ".join(sorted(_BY_NAME))
        raise ConfigurationError(f"Unknown activation {name!r}. Available activations: {available}")
    return _BY_NAME[key]


__all__ = [
    "identity",
    "didentity",
    "relu",
    "drelu",
    "sigmoid",
    "dsigmoid",
    "tanh",
    "dtanh",
    "softplus",
    "dsoftplus",
    "softmax",
    "dsoftmax",
    "derivative_of",
    "jacobian_of",
    "get",
]
