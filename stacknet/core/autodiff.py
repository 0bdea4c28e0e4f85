"""Numerical differentiation used when no closed-form derivative is supplied.

The network and the layers only depend on the *shape* of these callables:

* a gradient capability ``gradient(f, *args) -> tuple`` returning one array
  per positional argument of the scalar function ``f``;
* a Jacobian capability ``jacobian(f, x) -> matrix`` for vector functions.

Any automatic-differentiation engine exposing the same signatures can be
injected in their place.
"""

from __future__ import annotations

from typing import Callable, Tuple

import numpy as np

from .types import Array

GradientFn = Callable[..., Tuple[Array, ...]]
JacobianFn = Callable[[Callable[[Array], Array], Array], Array]

DEFAULT_STEP = 1e-6


def _as_float(x) -> Array:
    return np.array(x, dtype=np.float64, copy=True)


def numerical_gradient(f: Callable[..., float], *args, step: float = DEFAULT_STEP) -> Tuple[Array, ...]:
    """Central-difference gradient of the scalar function ``f`` at ``args``.

    Returns a tuple with the gradient with respect to each positional
    argument, each with the shape of the corresponding argument.
    """

    points = [_as_float(a) for a in args]
    grads = []
    for pos, point in enumerate(points):
        grad = np.zeros_like(point)
        flat_point = point.reshape(-1)
        flat_grad = grad.reshape(-1)
        for i in range(flat_point.size):
            original = flat_point[i]
            flat_point[i] = original + step
            f_plus = float(f(*points))
            flat_point[i] = original - step
            f_minus = float(f(*points))
            flat_point[i] = original
            flat_grad[i] = (f_plus - f_minus) / (2.0 * step)
        grads.append(grad)
    return tuple(grads)


def numerical_jacobian(f: Callable[[Array], Array], x, step: float = DEFAULT_STEP) -> Array:
    """Central-difference Jacobian of the vector function ``f`` at ``x``.

    Row ``i`` holds the partial derivatives of output ``i``; the result has
    shape ``(len(f(x)), len(x))``.
    """

    point = _as_float(x).reshape(-1)
    n_out = np.asarray(f(point)).reshape(-1).size
    jac = np.zeros((n_out, point.size), dtype=np.float64)
    for j in range(point.size):
        original = point[j]
        point[j] = original + step
        f_plus = np.asarray(f(point), dtype=np.float64).reshape(-1)
        point[j] = original - step
        f_minus = np.asarray(f(point), dtype=np.float64).reshape(-1)
        point[j] = original
        jac[:, j] = (f_plus - f_minus) / (2.0 * step)
    return jac


def elementwise_derivative(f: Callable[[Array], Array], x, step: float = DEFAULT_STEP) -> Array:
    """Derivative of an element-wise function, evaluated at every entry of ``x``."""

    point = _as_float(x)
    return (np.asarray(f(point + step)) - np.asarray(f(point - step))) / (2.0 * step)


__all__ = [
    "GradientFn",
    "JacobianFn",
    "numerical_gradient",
    "numerical_jacobian",
    "elementwise_derivative",
]
