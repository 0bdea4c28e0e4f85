"""Feed-forward network container and backpropagation."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence

import numpy as np

from ..core.arrays import make_col_vector, make_matrix
from ..core.autodiff import GradientFn, numerical_gradient
from ..core.errors import ConfigurationError, NumericalError
from ..core.grads import all_finite
from ..core.layers import Layer, check_layer
from ..core.types import Array, Params
from .losses import REGISTRY as COST_REGISTRY
from .losses import CostDerivative, CostFn


@dataclass
class Network:
    """An ordered stack of layers trained against a per-record cost.

    Use :func:`build_network` to construct one: it validates the layers and
    resolves the cost. ``cost_derivative`` is the gradient of ``cost`` with
    respect to the network output; when it is ``None`` the ``autodiff``
    capability (``gradient(f, *args) -> per-arg gradients``) provides it.
    """

    layers: List[Layer]
    cost: CostFn
    cost_derivative: Optional[CostDerivative] = None
    name: str = "Neural Network"
    autodiff: Optional[GradientFn] = field(default=numerical_gradient, repr=False)
    trained: bool = False

    # ------------------------------------------------------------------
    # Shape helpers

    @property
    def n_in(self) -> int:
        return self.layers[0].shape()[0]

    @property
    def n_out(self) -> int:
        return self.layers[-1].shape()[1]

    # ------------------------------------------------------------------
    # Forward pass

    def _forward_stack(self, x: Array) -> List[Array]:
        stack = [x]
        for idx, layer in enumerate(self.layers):
            n_in, n_out = layer.shape()
            current = stack[-1]
            if current.size != n_in:
                raise ConfigurationError(
                    f"forward: layer {idx} ({type(layer).__name__}) expects {n_in} inputs, "
                    f"got {current.size}"
                )
            out = make_col_vector(layer.forward(current))
            if out.size != n_out:
                raise ConfigurationError(
                    f"forward: layer {idx} ({type(layer).__name__}) returned {out.size} "
                    f"values, declared {n_out}"
                )
            stack.append(out)
        return stack

    def _records(self, X, width: int) -> Array:
        X = np.asarray(X, dtype=np.float64)
        if X.ndim == 1 and X.shape[0] == width:
            X = X.reshape(1, -1)
        return make_matrix(X)

    def predict(self, X) -> Array:
        """Run every row of ``X`` through the network; returns ``(n, n_out)``.

        A 1-D input of length ``n_in`` is a single record.
        """

        X = self._records(X, self.n_in)
        out = np.zeros((X.shape[0], self.n_out), dtype=np.float64)
        for i in range(X.shape[0]):
            out[i, :] = self._forward_stack(X[i, :])[-1]
        return out

    def loss(self, X, Y) -> float:
        """Average per-record cost of the predictions on ``X`` against ``Y``.

        Follows the record convention of :meth:`predict`; a single input
        record takes a 1-D target of length ``n_out``.
        """

        X = self._records(X, self.n_in)
        Y = self._records(Y, self.n_out) if X.shape[0] == 1 else make_matrix(Y)
        if X.shape[0] != Y.shape[0]:
            raise ConfigurationError(f"loss: {X.shape[0]} input records but {Y.shape[0]} targets")
        total = 0.0
        for i in range(X.shape[0]):
            y_hat = self._forward_stack(X[i, :])[-1]
            total += float(self.cost(y_hat, Y[i, :]))
        return total / X.shape[0]

    # ------------------------------------------------------------------
    # Parameters

    def get_params(self) -> Params:
        return [tuple(layer.get_params()) for layer in self.layers]

    def set_params(self, params: Sequence[Sequence[Array]]) -> None:
        if len(params) != len(self.layers):
            raise ConfigurationError(
                f"set_params: got parameters for {len(params)} layers, network has {len(self.layers)}"
            )
        for layer, layer_params in zip(self.layers, params):
            layer.set_params(layer_params)

    # ------------------------------------------------------------------
    # Backpropagation

    def _output_gradient(self, y_hat: Array, y: Array) -> Array:
        if self.cost_derivative is not None:
            return make_col_vector(self.cost_derivative(y_hat, y))
        if self.autodiff is None:
            raise ConfigurationError(
                f"{self.name}: no cost derivative and no differentiation capability available"
            )
        return make_col_vector(self.autodiff(self.cost, y_hat, y)[0])

    def get_gradient(self, x, y) -> Params:
        """Gradient of the cost for the single record ``(x, y)``.

        Returns one tuple per layer, shaped like :meth:`get_params`.
        """

        x = make_col_vector(x)
        y = make_col_vector(y)
        n_layers = len(self.layers)

        forward_stack = self._forward_stack(x)

        backward_stack = [self._output_gradient(forward_stack[-1], y)]
        if not all_finite(backward_stack[0]):
            raise NumericalError(f"get_gradient: non-finite cost gradient at the output of layer {n_layers - 1}")
        for idx in reversed(range(n_layers)):
            layer = self.layers[idx]
            grad_in = make_col_vector(layer.backward(forward_stack[idx], backward_stack[-1]))
            if not all_finite(grad_in):
                raise NumericalError(
                    f"backward: non-finite gradient from layer {idx} ({type(layer).__name__})"
                )
            backward_stack.append(grad_in)
        # backward_stack[i] is now dL/d(input of layer i); the last entry is dL/d(output)
        backward_stack.reverse()

        grads: Params = []
        for idx, layer in enumerate(self.layers):
            layer_grad = tuple(layer.get_gradient(forward_stack[idx], backward_stack[idx + 1]))
            if not all_finite(layer_grad):
                raise NumericalError(
                    f"get_gradient: non-finite parameter gradient in layer {idx} ({type(layer).__name__})"
                )
            grads.append(layer_grad)
        return grads

    # ------------------------------------------------------------------
    # Presentation

    def describe(self) -> str:
        status = "trained" if self.trained else "non trained"
        lines = [f"*** {self.name} ({len(self.layers)} layers, {status})", "", "#\t# In\t# Out\tType"]
        for idx, layer in enumerate(self.layers, start=1):
            n_in, n_out = layer.shape()
            lines.append(f"{idx}\t{n_in}\t{n_out}\t{type(layer).__name__}")
        return "\n".join(lines)

    def __str__(self) -> str:
        return self.describe()

    def parameter_count(self) -> int:
        return int(sum(int(np.size(p)) for params in self.get_params() for p in params))

    def subnetwork(self, indices: slice | Iterable[int]) -> "Network":
        """Return a network over a subset of the layers.

        The layer objects are shared with this network, not copied.
        """

        if isinstance(indices, slice):
            layers = self.layers[indices]
        else:
            layers = [self.layers[i] for i in indices]
        return build_network(
            layers,
            self.cost,
            self.cost_derivative,
            name=self.name,
            autodiff=self.autodiff,
        )


def build_network(
    layers: Iterable[Layer],
    cost: CostFn | str = "squared",
    cost_derivative: Optional[CostDerivative] = None,
    *,
    name: str = "Neural Network",
    autodiff: Optional[GradientFn] = numerical_gradient,
) -> Network:
    """Validate ``layers`` and assemble them into a :class:`Network`.

    ``cost`` is either a callable ``cf(y_hat, y)`` or the name of a registered
    cost, whose derivative is then used unless ``cost_derivative`` is given.
    """

    layers = list(layers)
    if not layers:
        raise ConfigurationError("A network needs at least one layer")
    for layer in layers:
        check_layer(layer)
    for idx in range(len(layers) - 1):
        out_dim = layers[idx].shape()[1]
        in_dim = layers[idx + 1].shape()[0]
        if out_dim != in_dim:
            raise ConfigurationError(
                f"Layer {idx} outputs {out_dim} values but layer {idx + 1} expects {in_dim}"
            )

    if isinstance(cost, str):
        registered = COST_REGISTRY.get(cost)
        cost = registered.fn
        if cost_derivative is None:
            cost_derivative = registered.derivative
    elif not callable(cost):
        raise ConfigurationError(f"cost must be callable or a registered name, got {cost!r}")

    if cost_derivative is None and autodiff is None:
        raise ConfigurationError(
            f"{name}: the cost has no derivative and no differentiation capability was supplied"
        )
    return Network(
        layers=layers,
        cost=cost,
        cost_derivative=cost_derivative,
        name=name,
        autodiff=autodiff,
    )


__all__ = ["Network", "build_network"]
