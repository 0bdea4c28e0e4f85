import logging

import numpy as np
import pytest

from stacknet.core.errors import ConfigurationError
from stacknet.core.grads import grad_div, grad_sum_all
from stacknet.core.layers import DenseLayer
from stacknet.core.types import UpdateResult, Verbosity
from stacknet.data import get_dataset
from stacknet.training.metrics import accuracy
from stacknet.training.network import build_network
from stacknet.training.optimizers import SGD, constant_rate
from stacknet.training.trainer import Trainer, train


class RecordingOptimizer:
    """Plain gradient step that remembers every call."""

    def __init__(self, stop_at_epoch=None):
        self.stop_at_epoch = stop_at_epoch
        self.calls = []
        self.resets = 0

    def reset(self):
        self.resets += 1

    def single_update(self, params, gradient, *, epoch, batch_index, batch_size, epoch_loss, previous_epoch_loss):
        self.calls.append({"epoch": epoch, "batch_index": batch_index, "batch_size": batch_size, "gradient": gradient})
        new_params = [tuple(p - 0.01 * g for p, g in zip(lp, lg)) for lp, lg in zip(params, gradient)]
        return UpdateResult(params=new_params, stop=epoch == self.stop_at_epoch)


def _regression_problem(n=6, seed=0):
    rng = np.random.default_rng(seed)
    X = rng.standard_normal((n, 2))
    Y = X @ np.array([[1.0], [-2.0]]) + 0.5
    network = build_network([DenseLayer(2, 1, rng=rng)], "squared")
    return network, X, Y


def test_training_converges_on_separable_data():
    dataset = get_dataset("separable", n_points=60, margin=0.5, seed=0)
    X, Y = dataset.split("train")
    network = build_network(
        [DenseLayer(2, 1, activation="sigmoid", rng=np.random.default_rng(0))], "squared"
    )
    initial = network.loss(X, Y)

    result = train(
        network,
        X,
        Y,
        epochs=200,
        batch_size=4,
        optimizer=SGD(learning_rate=constant_rate(0.1), scale=1.0),
        verbosity=Verbosity.STD,
        callback=None,
        rng=np.random.default_rng(0),
    )

    assert network.trained
    assert result.epochs == 200
    assert len(result.losses) == 201
    assert result.losses[0] == pytest.approx(initial)
    assert result.losses[-1] < initial
    assert result.losses[-1] < 0.01
    assert accuracy(Y, network.predict(X)) >= 0.95


def test_recorded_history_depends_on_verbosity():
    for verbosity, n_losses, n_params in [
        (Verbosity.NONE, 0, 0),
        (Verbosity.LOW, 0, 0),
        (Verbosity.STD, 4, 0),
        (Verbosity.HIGH, 4, 4),
    ]:
        network, X, Y = _regression_problem()
        result = train(network, X, Y, epochs=3, batch_size=2, verbosity=verbosity, rng=np.random.default_rng(1))
        assert len(result.losses) == n_losses
        assert len(result.params) == n_params


def test_optimizer_can_stop_training_early():
    network, X, Y = _regression_problem()
    optimizer = RecordingOptimizer(stop_at_epoch=3)
    batches_seen = []

    def callback(net, x_batch, y_batch, info):
        batches_seen.append((info.epoch, info.batch_index))

    result = Trainer(network, optimizer=optimizer, callback=callback).run(
        X, Y, epochs=10, batch_size=2, sequential=True, verbosity=Verbosity.STD
    )

    assert result.early_stopped
    assert result.epochs == 3
    assert network.trained
    assert batches_seen[-1] == (3, 1)
    assert len(result.losses) == 3
    assert optimizer.resets == 1


def test_batch_size_larger_than_records_updates_once_per_epoch():
    network, X, Y = _regression_problem(n=5)
    optimizer = RecordingOptimizer()
    train(network, X, Y, epochs=4, batch_size=10, optimizer=optimizer, verbosity=Verbosity.NONE, rng=np.random.default_rng(2))
    assert len(optimizer.calls) == 4
    assert all(call["batch_size"] == 5 for call in optimizer.calls)


def test_remainder_records_do_not_form_a_batch():
    network, X, Y = _regression_problem(n=7)
    optimizer = RecordingOptimizer()
    infos = []
    train(
        network,
        X,
        Y,
        epochs=2,
        batch_size=2,
        optimizer=optimizer,
        callback=lambda net, xb, yb, info: infos.append(info),
        verbosity=Verbosity.NONE,
        rng=np.random.default_rng(3),
    )
    assert len(optimizer.calls) == 6
    assert {info.n_batches for info in infos} == {3}
    assert infos[0].n_records == 7
    assert infos[-1].epoch == 2


def test_update_receives_average_of_record_gradients():
    network, X, Y = _regression_problem(n=4)
    expected = grad_div(grad_sum_all([network.get_gradient(X[i], Y[i]) for i in range(4)]), 4)
    optimizer = RecordingOptimizer()
    train(network, X, Y, epochs=1, batch_size=4, sequential=True, optimizer=optimizer, verbosity=Verbosity.NONE)

    got = optimizer.calls[0]["gradient"]
    for got_layer, want_layer in zip(got, expected):
        for g, w in zip(got_layer, want_layer):
            assert np.allclose(g, w)


def test_callback_errors_abort_training():
    network, X, Y = _regression_problem()

    def failing(net, x_batch, y_batch, info):
        raise RuntimeError("stop here")

    with pytest.raises(RuntimeError, match="stop here"):
        train(network, X, Y, epochs=2, batch_size=2, callback=failing, verbosity=Verbosity.NONE, rng=np.random.default_rng(0))
    assert not network.trained


def test_epoch_callbacks_receive_loss():
    network, X, Y = _regression_problem()
    seen = []

    class Sink:
        def on_epoch(self, epoch, metrics):
            seen.append((epoch, metrics["loss"]))

    result = Trainer(network, epoch_callbacks=[Sink(), lambda epoch, metrics: None]).run(
        X, Y, epochs=3, batch_size=3, verbosity=Verbosity.STD, rng=np.random.default_rng(0)
    )
    assert [epoch for epoch, _ in seen] == [1, 2, 3]
    assert [loss for _, loss in seen] == pytest.approx(result.losses[1:])


def test_training_is_reproducible_with_same_generator():
    finals = []
    for _ in range(2):
        network, X, Y = _regression_problem(seed=5)
        train(network, X, Y, epochs=5, batch_size=2, verbosity=Verbosity.NONE, rng=np.random.default_rng(9))
        finals.append(network.get_params())
    for a, b in zip(finals[0][0], finals[1][0]):
        assert np.array_equal(a, b)


def test_invalid_training_arguments():
    network, X, Y = _regression_problem()
    with pytest.raises(ConfigurationError):
        train(network, X, Y, epochs=0)
    with pytest.raises(ConfigurationError):
        train(network, X, Y, epochs=2.7)
    with pytest.raises(ConfigurationError):
        train(network, X, Y, epochs=True)
    with pytest.raises(ConfigurationError):
        train(network, X, Y, batch_size=0)
    with pytest.raises(ConfigurationError):
        train(network, X, Y, batch_size=2.5)
    with pytest.raises(ConfigurationError):
        train(network, X, Y[:3])


def test_progress_messages_are_throttled(caplog):
    caplog.set_level(logging.INFO, logger="stacknet.training.trainer")

    network, X, Y = _regression_problem(n=4)
    train(network, X, Y, epochs=20, batch_size=4, verbosity=Verbosity.STD, rng=np.random.default_rng(0))
    progress = [r for r in caplog.records if r.getMessage().startswith("Training.. loss")]
    # epoch 1 plus every second epoch
    assert len(progress) == 11

    caplog.clear()
    network, X, Y = _regression_problem(n=6)
    train(network, X, Y, epochs=2, batch_size=2, verbosity=Verbosity.FULL, rng=np.random.default_rng(0))
    progress = [r for r in caplog.records if r.getMessage().startswith("Training.. loss")]
    assert len(progress) == 6
