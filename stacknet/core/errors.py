"""Exception hierarchy shared by every stacknet module."""

from __future__ import annotations


class StackNetError(Exception):
    """Root of all errors raised by stacknet."""


class ConfigurationError(StackNetError, ValueError):
    """A network, layer or training run has been set up inconsistently."""


class LayerCapabilityError(ConfigurationError, NotImplementedError):
    """A layer variant does not implement one of the layer operations."""

    def __init__(self, layer: object, operation: str) -> None:
        self.layer_type = type(layer).__name__
        self.operation = operation
        super().__init__(
            f"{operation}() is not implemented for layers of type {self.layer_type}; "
            f"implement `{operation}` to use this layer in a network"
        )


class NumericalError(StackNetError, FloatingPointError):
    """Non-finite values appeared while propagating gradients."""


__all__ = [
    "StackNetError",
    "ConfigurationError",
    "LayerCapabilityError",
    "NumericalError",
]
