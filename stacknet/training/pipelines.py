"""Config-driven assembly of datasets, networks and training runs."""

from __future__ import annotations

import json
import logging
import time
from copy import deepcopy
from pathlib import Path
from typing import Dict, List, Mapping, Sequence

import numpy as np

from ..core.errors import ConfigurationError
from ..core.layers import DenseLayer, DenseNoBiasLayer, Layer, VectorFunctionLayer
from ..core.types import Array, RunResult, Verbosity
from ..data import get_dataset
from ..data.registry import Dataset
from ..reporting.artifacts import write_manifest
from ..reporting.metrics import CsvSink, JsonlSink
from ..reporting.plots import PlotAdapter
from ..reporting.summary import write_summary
from .metrics import compute_metrics, default_metrics
from .network import Network, build_network
from .optimizers import OptimisationAlgorithm, build_optimizer
from .trainer import Trainer

logger = logging.getLogger(__name__)

_PRESETS: Dict[str, Mapping[str, object]] = {
    "separable-sigmoid-sgd": {
        "data": {"name": "separable", "options": {"n_points": 80, "margin": 0.5, "seed": 0}},
        "model": {
            "cost": "squared",
            "layers": [{"type": "dense", "n_out": 1, "activation": "sigmoid"}],
        },
        "train": {
            "epochs": 40,
            "batch_size": 8,
            "seed": 0,
            "optimizer": {"name": "sgd", "learning_rate": 0.5, "scale": 1.0},
            "verbosity": "std",
            "run_dir": "runs/separable-sigmoid-sgd",
            "enable_plots": False,
        },
    },
    "blobs-softmax-adam": {
        "data": {"name": "blobs", "options": {"n_points": 150, "centers": 3, "seed": 0}},
        "model": {
            "cost": "cross_entropy",
            "layers": [
                {"type": "dense", "n_out": 8, "activation": "tanh"},
                {"type": "dense", "n_out": 3},
                {"type": "vector_function", "function": "softmax"},
            ],
        },
        "train": {
            "epochs": 30,
            "batch_size": 16,
            "seed": 1,
            "optimizer": {"name": "adam", "learning_rate": 0.05},
            "verbosity": "std",
            "run_dir": "runs/blobs-softmax-adam",
            "enable_plots": False,
        },
    },
    "sine-regression": {
        "data": {"name": "sine", "options": {"freq": 1.0, "n_points": 128, "noise": 0.05, "seed": 0}},
        "model": {
            "cost": "squared",
            "layers": [
                {"type": "dense", "n_out": 16, "activation": "tanh"},
                {"type": "dense", "n_out": 1},
            ],
        },
        "train": {
            "epochs": 60,
            "batch_size": 8,
            "seed": 2,
            "optimizer": {"name": "sgd", "learning_rate": 0.05, "scale": 1.0, "momentum": 0.9},
            "verbosity": "std",
            "run_dir": "runs/sine-regression",
            "enable_plots": False,
        },
    },
}

_PRESET_DIR = Path(__file__).resolve().parents[2] / "configs" / "presets"
_FILE_PRESETS_CACHE: Dict[str, Mapping[str, object]] | None = None
_REQUIRED_SECTIONS = ("data", "model", "train")


def _read_preset_file(path: Path) -> Mapping[str, object]:
    text = path.read_text()
    suffix = path.suffix.lower()
    if suffix in {".yaml", ".yml"}:
        import yaml

        data = yaml.safe_load(text) or {}
    elif suffix == ".json":
        data = json.loads(text or "{}")
    else:
        raise ConfigurationError(f"Unsupported preset file type: {path.suffix}")

    if not isinstance(data, Mapping):
        raise ConfigurationError(f"Preset {path.name} must decode to a mapping")
    missing = [section for section in _REQUIRED_SECTIONS if section not in data]
    if missing:
        raise ConfigurationError(f"Preset {path.name} is missing required sections: {', '.join(missing)}")
    return data


def _file_presets() -> Dict[str, Mapping[str, object]]:
    global _FILE_PRESETS_CACHE
    if _FILE_PRESETS_CACHE is None:
        found: Dict[str, Mapping[str, object]] = {}
        if _PRESET_DIR.exists():
            for file in sorted(_PRESET_DIR.iterdir()):
                if file.suffix.lower() in {".yaml", ".yml", ".json"}:
                    found[file.stem] = json.loads(json.dumps(_read_preset_file(file)))
        _FILE_PRESETS_CACHE = found
    return {name: deepcopy(cfg) for name, cfg in _FILE_PRESETS_CACHE.items()}


def presets() -> Mapping[str, Mapping[str, object]]:
    """All known presets; file presets override built-ins of the same name."""

    combined: Dict[str, Mapping[str, object]] = {name: deepcopy(cfg) for name, cfg in _PRESETS.items()}
    combined.update(_file_presets())
    return combined


def load_preset(name: str) -> Mapping[str, object]:
    available = presets()
    if name not in available:
        raise ConfigurationError(f"Unknown preset {name!r}. Available presets: {', '.join(sorted(available))}")
    return available[name]


# ----------------------------------------------------------------------
# Builders


def resolve_verbosity(value: object) -> Verbosity:
    """Accept a :class:`Verbosity`, its integer value or its name."""

    if isinstance(value, str):
        try:
            return Verbosity[value.upper()]
        except KeyError as exc:
            names = ", ".join(v.name.lower() for v in Verbosity)
            raise ConfigurationError(f"Unknown verbosity {value!r}. Available: {names}") from exc
    try:
        return Verbosity(int(value))  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid verbosity: {value!r}") from exc


def _dense(spec: Mapping[str, object], n_in: int, rng: np.random.Generator) -> Layer:
    return DenseLayer(n_in, int(spec["n_out"]), activation=str(spec.get("activation", "identity")), rng=rng)


def _dense_nobias(spec: Mapping[str, object], n_in: int, rng: np.random.Generator) -> Layer:
    return DenseNoBiasLayer(n_in, int(spec["n_out"]), activation=str(spec.get("activation", "identity")), rng=rng)


def _vector_function(spec: Mapping[str, object], n_in: int, rng: np.random.Generator) -> Layer:
    n_out = spec.get("n_out")
    return VectorFunctionLayer(
        n_in,
        function=str(spec.get("function", "softmax")),
        n_out=int(n_out) if n_out is not None else None,
    )


_LAYER_TYPES = {
    "dense": _dense,
    "dense_nobias": _dense_nobias,
    "vector_function": _vector_function,
}


def build_layers(specs: Sequence[Mapping[str, object]], d_in: int, rng: np.random.Generator) -> List[Layer]:
    """Instantiate layers from config entries, chaining ``n_in`` from ``d_in``."""

    if not specs:
        raise ConfigurationError("model.layers must list at least one layer")
    layers: List[Layer] = []
    n_in = int(d_in)
    for idx, spec in enumerate(specs):
        kind = str(spec.get("type", "dense"))
        if kind not in _LAYER_TYPES:
            available = ", ".join(sorted(_LAYER_TYPES))
            raise ConfigurationError(f"Unknown layer type {kind!r} at index {idx}. Available: {available}")
        if kind != "vector_function" and "n_out" not in spec:
            raise ConfigurationError(f"Layer {idx} ({kind}) needs n_out")
        layer = _LAYER_TYPES[kind](spec, int(spec.get("n_in", n_in)), rng)
        layers.append(layer)
        n_in = layer.shape()[1]
    return layers


def _build_optimizer(setting: object) -> OptimisationAlgorithm:
    if isinstance(setting, str):
        return build_optimizer(setting)
    if isinstance(setting, Mapping):
        options = dict(setting)
        return build_optimizer(str(options.pop("name", "sgd")), **options)
    raise ConfigurationError(f"train.optimizer must be a name or a mapping, got {setting!r}")


class _SplitEvaluator:
    """Epoch callback computing loss and task metrics on one split."""

    def __init__(
        self,
        split: str,
        network: Network,
        X: Array,
        Y: Array,
        metric_names: Sequence[str],
        sinks: Sequence[object],
        *,
        every: int = 1,
        reuse_loss: bool = False,
    ) -> None:
        self.split = split
        self.network = network
        self.X = X
        self.Y = Y
        self.metric_names = list(metric_names)
        self.sinks = list(sinks)
        self.every = max(1, int(every))
        self.reuse_loss = reuse_loss

    def evaluate(self, loss: float | None = None) -> Dict[str, float]:
        metrics = {"loss": float(loss) if loss is not None else self.network.loss(self.X, self.Y)}
        metrics.update(compute_metrics(self.metric_names, self.network.predict(self.X), self.Y))
        return metrics

    def on_epoch(self, epoch: int, metrics: Mapping[str, float]) -> None:
        if epoch % self.every:
            return
        payload = self.evaluate(metrics.get("loss") if self.reuse_loss else None)
        for sink in self.sinks:
            sink.on_epoch(epoch, payload)  # type: ignore[attr-defined]


# ----------------------------------------------------------------------
# Pipeline


def run_pipeline(config: Mapping[str, object]) -> RunResult:
    """Build and train the network described by ``config``, writing run artifacts."""

    missing = [section for section in _REQUIRED_SECTIONS if section not in config]
    if missing:
        raise ConfigurationError(f"Config is missing required sections: {', '.join(missing)}")
    data_cfg = dict(config["data"])  # type: ignore[arg-type]
    model_cfg = dict(config["model"])  # type: ignore[arg-type]
    train_cfg = dict(config["train"])  # type: ignore[arg-type]

    dataset = get_dataset(str(data_cfg["name"]), **dict(data_cfg.get("options", {})))
    X_train, Y_train = dataset.split("train")
    X_test, Y_test = dataset.split("test")

    seed = int(train_cfg.get("seed", 0))
    rng = np.random.default_rng(seed)
    layers = build_layers(model_cfg.get("layers", []), dataset.d_in, rng)
    network = build_network(
        layers,
        cost=str(model_cfg.get("cost", "squared")),
        name=str(model_cfg.get("name", f"{dataset.name} network")),
    )
    if network.n_out != dataset.d_out:
        raise ConfigurationError(
            f"Network produces {network.n_out} outputs but dataset {dataset.name!r} has {dataset.d_out} targets"
        )

    optimizer = _build_optimizer(train_cfg.get("optimizer", "sgd"))
    verbosity = resolve_verbosity(train_cfg.get("verbosity", "std"))
    epochs = train_cfg.get("epochs", 10)
    batch_size = train_cfg.get("batch_size")
    metric_names = train_cfg.get("metrics") or default_metrics(dataset.task_type)
    if isinstance(metric_names, str):
        metric_names = [name.strip() for name in metric_names.split(",") if name.strip()]

    run_dir = _resolve_run_dir(train_cfg, dataset.name)
    run_dir.mkdir(parents=True, exist_ok=True)
    _log_startup_summary(network, dataset, optimizer, metric_names, run_dir)

    train_jsonl = JsonlSink(run_dir / "metrics_train.jsonl", split="train", seed=seed)
    train_csv = CsvSink(run_dir / "metrics_train.csv", split="train")
    test_jsonl = JsonlSink(run_dir / "metrics_test.jsonl", split="test", seed=seed, sha=train_jsonl.sha)
    test_csv = CsvSink(run_dir / "metrics_test.csv", split="test")
    plots = PlotAdapter(run_dir, enable_plots=bool(train_cfg.get("enable_plots", False)))

    eval_every = int(train_cfg.get("eval_every", 1))
    callbacks: List[object] = [
        _SplitEvaluator(
            "train",
            network,
            X_train,
            Y_train,
            metric_names,
            [train_jsonl, train_csv, plots],
            reuse_loss=True,
        )
    ]
    test_evaluator = _SplitEvaluator(
        "test", network, X_test, Y_test, metric_names, [test_jsonl, test_csv], every=eval_every
    )
    if X_test.shape[0]:
        callbacks.append(test_evaluator)

    trainer = Trainer(network, optimizer=optimizer, epoch_callbacks=callbacks)
    result = trainer.run(
        X_train,
        Y_train,
        epochs=epochs,
        batch_size=batch_size,
        sequential=bool(train_cfg.get("sequential", False)),
        verbosity=verbosity,
        rng=rng,
    )

    final_loss = network.loss(X_train, Y_train)
    test_metrics = test_evaluator.evaluate() if X_test.shape[0] else {}
    (run_dir / "metrics_test.json").write_text(json.dumps(test_metrics, indent=2))
    plots.close()

    safe_config = json.loads(json.dumps(config))
    manifest = write_manifest(
        run_dir / "manifest.json",
        config=safe_config,
        dataset_provenance=dataset.provenance,
        network=network.describe(),
    )
    summary_path = write_summary(
        train_jsonl.path, run_dir / "summary.json", tail=int(train_cfg.get("summary_tail", 32))
    )
    (run_dir / "config.json").write_text(json.dumps(safe_config, indent=2))
    (run_dir / "metrics.jsonl").write_text(train_jsonl.path.read_text())
    (run_dir / "metrics.csv").write_text(train_csv.path.read_text())

    if verbosity > Verbosity.NONE:
        logger.info("Run finished after %d epochs; artifacts in %s", result.epochs, run_dir)
    return RunResult(
        epochs=result.epochs,
        final_loss=float(final_loss),
        metrics_path=str(train_jsonl.path),
        manifest_path=manifest,
        summary_path=summary_path,
    )


def _resolve_run_dir(train_cfg: Mapping[str, object], dataset: str) -> Path:
    if "run_dir" in train_cfg:
        return Path(str(train_cfg["run_dir"]))
    timestamp = time.strftime("%Y%m%d-%H%M%S")
    return Path("runs") / timestamp / dataset


def _log_startup_summary(
    network: Network,
    dataset: Dataset,
    optimizer: OptimisationAlgorithm,
    metric_names: Sequence[str],
    run_dir: Path,
) -> None:
    logger.info("=== stacknet run ===")
    logger.info("Dataset    : %s (%s, %d records)", dataset.name, dataset.task_type, dataset.X.shape[0])
    for line in network.describe().splitlines():
        logger.info("%s", line)
    logger.info("Parameters : %d", network.parameter_count())
    logger.info("Optimizer  : %s", optimizer)
    logger.info("Metrics    : %s", ", ".join(metric_names))
    logger.info("Run dir    : %s", run_dir)


__all__ = ["build_layers", "load_preset", "presets", "resolve_verbosity", "run_pipeline"]
