"""stacknet public API."""

from .core import activations  # noqa: F401
from .core import types  # noqa: F401
from .core.errors import ConfigurationError, LayerCapabilityError, NumericalError, StackNetError
from .core.grads import grad_div, grad_mul, grad_sub, grad_sum, grad_sum_all
from .core.layers import DenseLayer, DenseNoBiasLayer, Layer, VectorFunctionLayer
from .core.types import TrainResult, Verbosity
from .training.losses import cross_entropy, d_cross_entropy, d_squared_cost, squared_cost
from .training.metrics import accuracy, one_hot_encoder
from .training.network import Network, build_network
from .training.optimizers import ADAM, SGD, OptimisationAlgorithm, constant_rate, inverse_decay
from .training.pipelines import load_preset, presets, run_pipeline
from .training.trainer import Trainer, train

__version__ = "0.1.0"

__all__ = [
    "ADAM",
    "ConfigurationError",
    "DenseLayer",
    "DenseNoBiasLayer",
    "Layer",
    "LayerCapabilityError",
    "Network",
    "NumericalError",
    "OptimisationAlgorithm",
    "SGD",
    "StackNetError",
    "TrainResult",
    "Trainer",
    "Verbosity",
    "VectorFunctionLayer",
    "accuracy",
    "activations",
    "build_network",
    "constant_rate",
    "cross_entropy",
    "d_cross_entropy",
    "d_squared_cost",
    "grad_div",
    "grad_mul",
    "grad_sub",
    "grad_sum",
    "grad_sum_all",
    "inverse_decay",
    "load_preset",
    "one_hot_encoder",
    "presets",
    "run_pipeline",
    "squared_cost",
    "train",
    "types",
]
