"""Layer contract and the built-in layer variants.

Every layer maps an input vector of length ``n_in`` to an output vector of
length ``n_out`` and must implement six operations consistently:

``forward(x)``
    Output of the layer for the input ``x``. Must not modify the layer.
``backward(x, next_gradient)``
    Gradient of the loss with respect to ``x`` given the gradient of the loss
    with respect to this layer's output.
``get_params()``
    Current trainable parameters as a tuple of arrays (copies).
``get_gradient(x, next_gradient)``
    Gradient of the loss with respect to each trainable array, shaped like
    ``get_params()``.
``set_params(params)``
    Overwrite the trainable parameters with copies of ``params``.
``shape()``
    ``(n_in, n_out)``.

Custom layers subclass :class:`Layer` and override all six; the network
checks this with :func:`check_layer` when it is built.
"""

from __future__ import annotations

from typing import Callable, Optional, Sequence, Tuple

import numpy as np

from . import activations
from .autodiff import JacobianFn, elementwise_derivative, numerical_jacobian
from .errors import ConfigurationError, LayerCapabilityError
from .types import Array, ParamTuple

LAYER_OPERATIONS = (
    "forward",
    "backward",
    "get_params",
    "get_gradient",
    "set_params",
    "shape",
)


class Layer:
    """Base class for network layers; every operation must be overridden."""

    def forward(self, x: Array) -> Array:
        raise LayerCapabilityError(self, "forward")

    def backward(self, x: Array, next_gradient: Array) -> Array:
        raise LayerCapabilityError(self, "backward")

    def get_params(self) -> ParamTuple:
        raise LayerCapabilityError(self, "get_params")

    def get_gradient(self, x: Array, next_gradient: Array) -> ParamTuple:
        raise LayerCapabilityError(self, "get_gradient")

    def set_params(self, params: Sequence[Array]) -> None:
        raise LayerCapabilityError(self, "set_params")

    def shape(self) -> Tuple[int, int]:
        raise LayerCapabilityError(self, "shape")

    def __repr__(self) -> str:
        try:
            n_in, n_out = self.shape()
        except LayerCapabilityError:
            return f"{type(self).__name__}()"
        return f"{type(self).__name__}(n_in={n_in}, n_out={n_out})"


def check_layer(layer: object) -> None:
    """Raise :class:`LayerCapabilityError` unless ``layer`` honours the contract."""

    for name in LAYER_OPERATIONS:
        impl = getattr(type(layer), name, None)
        if impl is None or not callable(impl) or impl is getattr(Layer, name):
            raise LayerCapabilityError(layer, name)


def _check_params(layer: Layer, params: Sequence[Array], expected: ParamTuple) -> ParamTuple:
    if len(params) != len(expected):
        raise ConfigurationError(
            f"set_params() on {type(layer).__name__} expects {len(expected)} arrays, "
            f"got {len(params)}"
        )
    copied = []
    for idx, (new, old) in enumerate(zip(params, expected)):
        arr = np.array(new, dtype=np.float64, copy=True)
        if arr.shape != old.shape:
            raise ConfigurationError(
                f"set_params() on {type(layer).__name__}: array {idx} has shape "
                f"{arr.shape}, expected {old.shape}"
            )
        copied.append(arr)
    return tuple(copied)


def _xavier(rng: np.random.Generator, n_in: int, n_out: int, size) -> Array:
    bound = np.sqrt(6.0 / (n_in + n_out))
    return rng.uniform(-bound, bound, size=size)


def _resolve_activation(
    fn: Callable[[Array], Array] | str,
    dfn: Optional[Callable[[Array], Array]],
) -> tuple[Callable[[Array], Array], Callable[[Array], Array]]:
    if isinstance(fn, str):
        fn = activations.get(fn)
    if dfn is None:
        dfn = activations.derivative_of(fn)
    if dfn is None:
        f = fn

        def dfn(z: Array) -> Array:
            return elementwise_derivative(f, z)

    return fn, dfn


class DenseNoBiasLayer(Layer):
    """Fully connected layer without bias: ``y = f(W @ x)``.

    Parameters
    ----------
    n_in, n_out:
        Input and output dimensions.
    activation:
        Element-wise activation, a callable or a name from
        :mod:`stacknet.core.activations`.
    activation_derivative:
        Its derivative. Looked up for the built-in activations and computed
        numerically otherwise.
    weights:
        Initial ``(n_out, n_in)`` weight matrix. Xavier-uniform when omitted.
    rng:
        Generator used for the initial weights.
    """

    def __init__(
        self,
        n_in: int,
        n_out: int,
        *,
        activation: Callable[[Array], Array] | str = activations.identity,
        activation_derivative: Optional[Callable[[Array], Array]] = None,
        weights: Optional[Array] = None,
        rng: Optional[np.random.Generator] = None,
    ) -> None:
        if n_in <= 0 or n_out <= 0:
            raise ConfigurationError(f"Layer dimensions must be positive, got ({n_in}, {n_out})")
        self.n_in = int(n_in)
        self.n_out = int(n_out)
        self.f, self.df = _resolve_activation(activation, activation_derivative)
        rng = rng if rng is not None else np.random.default_rng()
        if weights is None:
            self.w = _xavier(rng, self.n_in, self.n_out, (self.n_out, self.n_in))
        else:
            (self.w,) = _check_params(self, (weights,), (np.empty((self.n_out, self.n_in)),))

    def _preactivation(self, x: Array) -> Array:
        return self.w @ x

    def forward(self, x: Array) -> Array:
        return self.f(self._preactivation(x))

    def _output_delta(self, x: Array, next_gradient: Array) -> Array:
        return self.df(self._preactivation(x)) * next_gradient

    def backward(self, x: Array, next_gradient: Array) -> Array:
        return self.w.T @ self._output_delta(x, next_gradient)

    def get_params(self) -> ParamTuple:
        return (self.w.copy(),)

    def get_gradient(self, x: Array, next_gradient: Array) -> ParamTuple:
        return (np.outer(self._output_delta(x, next_gradient), x),)

    def set_params(self, params: Sequence[Array]) -> None:
        (self.w,) = _check_params(self, params, (self.w,))

    def shape(self) -> Tuple[int, int]:
        return self.n_in, self.n_out


class DenseLayer(DenseNoBiasLayer):
    """Fully connected layer: ``y = f(W @ x + b)``.

    Takes the same arguments as :class:`DenseNoBiasLayer` plus ``bias``, the
    initial length-``n_out`` bias vector (Xavier-uniform when omitted).
    """

    def __init__(
        self,
        n_in: int,
        n_out: int,
        *,
        activation: Callable[[Array], Array] | str = activations.identity,
        activation_derivative: Optional[Callable[[Array], Array]] = None,
        weights: Optional[Array] = None,
        bias: Optional[Array] = None,
        rng: Optional[np.random.Generator] = None,
    ) -> None:
        rng = rng if rng is not None else np.random.default_rng()
        super().__init__(
            n_in,
            n_out,
            activation=activation,
            activation_derivative=activation_derivative,
            weights=weights,
            rng=rng,
        )
        if bias is None:
            self.wb = _xavier(rng, self.n_in, self.n_out, self.n_out)
        else:
            (self.wb,) = _check_params(self, (bias,), (np.empty(self.n_out),))

    def _preactivation(self, x: Array) -> Array:
        return self.w @ x + self.wb

    def get_params(self) -> ParamTuple:
        return self.w.copy(), self.wb.copy()

    def get_gradient(self, x: Array, next_gradient: Array) -> ParamTuple:
        delta = self._output_delta(x, next_gradient)
        return np.outer(delta, x), delta

    def set_params(self, params: Sequence[Array]) -> None:
        self.w, self.wb = _check_params(self, params, (self.w, self.wb))


class VectorFunctionLayer(Layer):
    """Parameter-free layer applying a function to the whole input vector.

    ``function`` receives the full input (e.g. :func:`activations.softmax`);
    ``jacobian`` returns its ``(n_out, n_in)`` Jacobian. Without one the
    Jacobian is looked up for the built-in functions and otherwise estimated
    with the injected ``differentiator``. ``n_out`` is probed by evaluating
    ``function`` on a zero vector when not given.
    """

    def __init__(
        self,
        n_in: int,
        *,
        function: Callable[[Array], Array] | str = activations.softmax,
        jacobian: Optional[Callable[[Array], Array]] = None,
        n_out: Optional[int] = None,
        differentiator: JacobianFn = numerical_jacobian,
    ) -> None:
        if n_in <= 0:
            raise ConfigurationError(f"Layer input dimension must be positive, got {n_in}")
        if isinstance(function, str):
            function = activations.get(function)
        self.n_in = int(n_in)
        self.f = function
        self.df = jacobian if jacobian is not None else activations.jacobian_of(function)
        self.differentiator = differentiator
        if n_out is None:
            n_out = np.asarray(function(np.zeros(self.n_in))).reshape(-1).size
        self.n_out = int(n_out)

    def forward(self, x: Array) -> Array:
        return np.asarray(self.f(x), dtype=np.float64).reshape(-1)

    def _jacobian(self, x: Array) -> Array:
        if self.df is not None:
            return np.asarray(self.df(x), dtype=np.float64).reshape(self.n_out, self.n_in)
        return self.differentiator(self.f, x)

    def backward(self, x: Array, next_gradient: Array) -> Array:
        return self._jacobian(x).T @ next_gradient

    def get_params(self) -> ParamTuple:
        return ()

    def get_gradient(self, x: Array, next_gradient: Array) -> ParamTuple:
        return ()

    def set_params(self, params: Sequence[Array]) -> None:
        _check_params(self, params, ())

    def shape(self) -> Tuple[int, int]:
        return self.n_in, self.n_out


__all__ = [
    "LAYER_OPERATIONS",
    "Layer",
    "check_layer",
    "DenseLayer",
    "DenseNoBiasLayer",
    "VectorFunctionLayer",
]
