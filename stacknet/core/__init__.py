"""Numerical building blocks: arrays, activations, layers and gradients."""

from . import activations, autodiff, grads, layers, types
from .errors import ConfigurationError, LayerCapabilityError, NumericalError, StackNetError

__all__ = [
    "activations",
    "autodiff",
    "grads",
    "layers",
    "types",
    "ConfigurationError",
    "LayerCapabilityError",
    "NumericalError",
    "StackNetError",
]
