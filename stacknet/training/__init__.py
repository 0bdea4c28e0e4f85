"""Networks, optimisers and the training loop."""

from .batching import batch
from .network import Network, build_network
from .optimizers import ADAM, SGD, OptimisationAlgorithm, build_optimizer, constant_rate, inverse_decay
from .trainer import Trainer, train, training_info

__all__ = [
    "ADAM",
    "Network",
    "OptimisationAlgorithm",
    "SGD",
    "Trainer",
    "batch",
    "build_network",
    "build_optimizer",
    "constant_rate",
    "inverse_decay",
    "train",
    "training_info",
]
