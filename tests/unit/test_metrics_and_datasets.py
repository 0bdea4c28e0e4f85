import numpy as np
import pytest

from stacknet.core.errors import ConfigurationError
from stacknet.data import available_datasets, deterministic_split, get_dataset, register_dataset, standardize
from stacknet.data import registry
from stacknet.data.registry import Dataset
from stacknet.training.metrics import accuracy, compute_metrics, default_metrics, one_hot_encoder


def test_one_hot_encoder_orders_columns_by_classes():
    encoded = one_hot_encoder(["b", "a", "b"])
    assert np.array_equal(encoded, [[0, 1], [1, 0], [0, 1]])

    explicit = one_hot_encoder([2, 0], classes=[0, 1, 2])
    assert np.array_equal(explicit, [[0, 0, 1], [1, 0, 0]])

    with pytest.raises(ConfigurationError):
        one_hot_encoder(["z"], classes=["a", "b"])


def test_accuracy_for_one_hot_and_single_column_targets():
    y_true = np.array([[1, 0, 0], [0, 1, 0], [0, 0, 1], [0, 1, 0]])
    y_pred = np.array([[0.7, 0.2, 0.1], [0.1, 0.8, 0.1], [0.5, 0.2, 0.3], [0.2, 0.5, 0.3]])
    assert accuracy(y_true, y_pred) == pytest.approx(0.75)

    binary_true = np.array([0.0, 1.0, 1.0, 0.0])
    binary_pred = np.array([0.2, 0.9, 0.4, 0.1])
    assert accuracy(binary_true, binary_pred) == pytest.approx(0.75)


def test_regression_metrics_on_perfect_predictions():
    targets = np.array([[1.0], [2.0], [3.0]])
    metrics = compute_metrics(default_metrics("regression"), targets, targets)
    assert metrics == {"mae": 0.0, "rmse": 0.0, "r2": 1.0}
    assert default_metrics("multiclass") == ["accuracy"]
    with pytest.raises(ConfigurationError):
        compute_metrics(["f1"], targets, targets)


def test_separable_dataset_shapes_and_split():
    dataset = get_dataset("separable", n_points=40, seed=1)
    assert dataset.X.shape == (40, 2)
    assert dataset.Y.shape == (40, 1)
    assert set(np.unique(dataset.Y)) == {0.0, 1.0}
    assert dataset.splits.sizes == {"train": 32, "test": 8}
    x_train, y_train = dataset.split("train")
    assert x_train.shape == (32, 2)
    assert y_train.shape == (32, 1)
    assert dataset.provenance["generator"] == "separable"

    again = get_dataset("separable", n_points=40, seed=1)
    assert np.array_equal(dataset.X, again.X)


def test_blobs_and_sine_datasets():
    blobs = get_dataset("blobs", n_points=30, centers=3, seed=0)
    assert blobs.Y.shape == (30, 3)
    assert np.allclose(blobs.Y.sum(axis=1), 1.0)
    assert blobs.num_classes == 3
    assert blobs.task_type == "multiclass"

    sine = get_dataset("sine", n_points=16, noise=0.0)
    assert sine.task_type == "regression"
    assert np.allclose(sine.Y, np.sin(np.pi * sine.X))


def test_registry_rejects_unknown_names_and_options():
    assert {"blobs", "separable", "sine"} <= set(available_datasets())
    with pytest.raises(ConfigurationError) as excinfo:
        get_dataset("mnist")
    assert "separable" in str(excinfo.value)
    with pytest.raises(ConfigurationError):
        get_dataset("sine", wavelength=2)
    with pytest.raises(ConfigurationError):
        dataset = get_dataset("separable")
        dataset.split("val")


def test_register_dataset_directly():
    def tiny():
        x = np.arange(6, dtype=float).reshape(3, 2)
        y = np.ones((3, 1))
        return Dataset("tiny", x, y, "regression", deterministic_split(3, test_split=0.0))

    register_dataset("tiny", tiny)
    try:
        dataset = get_dataset("tiny")
        assert dataset.d_in == 2
        assert dataset.d_out == 1
        assert dataset.splits.sizes == {"train": 3, "test": 0}
    finally:
        registry._REGISTRY.pop("tiny")


def test_deterministic_split_partitions_indices():
    split = deterministic_split(10, test_split=0.3, seed=0)
    assert split.sizes == {"train": 7, "test": 3}
    assert sorted(np.concatenate([split.train, split.test]).tolist()) == list(range(10))
    with pytest.raises(ConfigurationError):
        deterministic_split(10, test_split=1.0)


def test_standardize_keeps_constant_columns_finite():
    data = np.array([[1.0, 5.0], [3.0, 5.0]])
    scaled, mean, std = standardize(data)
    assert np.allclose(scaled[:, 0], [-1.0, 1.0])
    assert np.allclose(scaled[:, 1], 0.0)
    assert std[0, 1] == 1.0
