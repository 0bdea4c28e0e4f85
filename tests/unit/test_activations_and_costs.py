import numpy as np
import pytest

from stacknet.core import activations
from stacknet.core.autodiff import elementwise_derivative, numerical_gradient, numerical_jacobian
from stacknet.core.errors import ConfigurationError
from stacknet.training.losses import (
    REGISTRY,
    absolute_cost,
    cross_entropy,
    d_cross_entropy,
    d_squared_cost,
    squared_cost,
)


def test_basic_activation_values():
    x = np.array([-1.0, 0.0, 2.5])
    assert np.allclose(activations.relu(x), [0.0, 0.0, 2.5])
    assert np.allclose(activations.drelu(x), [0.0, 0.0, 1.0])
    assert float(activations.sigmoid(np.array(0.0))) == pytest.approx(0.5)
    assert float(activations.dsigmoid(np.array(0.0))) == pytest.approx(0.25)
    assert np.allclose(activations.identity(x), x)
    assert np.allclose(activations.softplus(np.array([0.0])), [np.log(2.0)])


@pytest.mark.parametrize("name", ["identity", "relu", "sigmoid", "tanh", "softplus"])
def test_closed_form_derivatives_match_numerical(name):
    fn = activations.get(name)
    x = np.array([-1.3, -0.2, 0.4, 2.1])
    deriv = activations.derivative_of(fn)
    assert deriv is not None
    assert np.allclose(deriv(x), elementwise_derivative(fn, x), atol=1e-6)


def test_softmax_is_normalised_and_shift_invariant():
    x = np.array([1.0, 2.0, 3.0])
    s = activations.softmax(x)
    assert np.isclose(s.sum(), 1.0)
    assert np.allclose(s, activations.softmax(x + 100.0))
    assert np.argmax(s) == 2


def test_softmax_jacobian_matches_numerical():
    x = np.array([0.3, -0.4, 1.1, 0.0])
    assert np.allclose(activations.dsoftmax(x), numerical_jacobian(activations.softmax, x), atol=1e-6)
    assert np.allclose(activations.jacobian_of(activations.softmax)(x), activations.dsoftmax(x))


def test_elementwise_jacobian_is_diagonal():
    x = np.array([0.5, -0.5])
    jac = activations.jacobian_of(activations.sigmoid)(x)
    assert np.allclose(jac, np.diag(activations.dsigmoid(x)))


def test_unknown_activation_lists_available_names():
    with pytest.raises(ConfigurationError) as excinfo:
        activations.get("swish")
    assert "sigmoid" in str(excinfo.value)


def test_squared_cost_and_derivative():
    y_hat = np.array([1.0, 2.0])
    y = np.array([0.0, 0.0])
    assert squared_cost(y_hat, y) == pytest.approx(2.5)
    assert np.allclose(d_squared_cost(y_hat, y), [1.0, 2.0])


def test_cross_entropy_and_derivative():
    y_hat = np.array([0.2, 0.8])
    y = np.array([0.0, 1.0])
    assert cross_entropy(y_hat, y) == pytest.approx(-np.log(0.8))
    (numeric, _) = numerical_gradient(cross_entropy, y_hat, y)
    assert np.allclose(d_cross_entropy(y_hat, y), numeric, rtol=1e-5)


def test_cost_registry_resolves_names_and_aliases():
    assert REGISTRY.get("squared").fn is squared_cost
    assert REGISTRY.get("mse").derivative is d_squared_cost
    assert REGISTRY.get("absolute")(np.array([1.0, -1.0]), np.zeros(2)) == absolute_cost(
        np.array([1.0, -1.0]), np.zeros(2)
    )
    assert "cross_entropy" in REGISTRY.names()
    with pytest.raises(ConfigurationError):
        REGISTRY.get("hinge")
