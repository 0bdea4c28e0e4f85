import numpy as np
import pytest

from stacknet.core.arrays import make_col_vector, make_matrix
from stacknet.core.autodiff import numerical_gradient, numerical_jacobian
from stacknet.core.errors import ConfigurationError
from stacknet.core.grads import all_finite, grad_div, grad_mul, grad_sub, grad_sum, grad_sum_all


def test_numerical_gradient_returns_one_gradient_per_argument():
    a = np.array([1.0, -2.0, 0.5])
    b = np.array([3.0, 0.25, -1.0])
    grad_a, grad_b = numerical_gradient(lambda u, v: float(np.sum(u * v)), a, b)
    assert np.allclose(grad_a, b, atol=1e-6)
    assert np.allclose(grad_b, a, atol=1e-6)


def test_numerical_gradient_keeps_argument_shapes_and_values():
    m = np.array([[1.0, 2.0], [3.0, 4.0]])
    (grad,) = numerical_gradient(lambda x: float(np.sum(x**2)), m)
    assert grad.shape == m.shape
    assert np.allclose(grad, 2 * m, atol=1e-5)
    assert np.array_equal(m, [[1.0, 2.0], [3.0, 4.0]])


def test_numerical_jacobian_of_linear_map():
    A = np.array([[1.0, 2.0, 0.0], [-1.0, 0.5, 3.0]])
    jac = numerical_jacobian(lambda x: A @ x, np.array([0.1, 0.2, 0.3]))
    assert jac.shape == (2, 3)
    assert np.allclose(jac, A, atol=1e-6)


def test_make_matrix_and_col_vector():
    assert make_matrix(3.0).shape == (1, 1)
    assert make_matrix([1, 2, 3]).shape == (3, 1)
    assert make_matrix(np.ones((2, 4))).shape == (2, 4)
    assert make_matrix([1, 2]).dtype == np.float64
    assert make_col_vector(np.ones((2, 1))).shape == (2,)


def _bundle(scale):
    return [
        (np.full((2, 2), scale), np.full(2, scale)),
        (np.full((1, 2), scale),),
    ]


def test_grad_arithmetic_preserves_structure():
    total = grad_sum(_bundle(1.0), _bundle(2.0))
    assert isinstance(total, list)
    assert isinstance(total[0], tuple)
    assert np.allclose(total[0][0], 3.0)
    assert np.allclose(grad_sub(total, _bundle(1.0))[1][0], 2.0)
    assert np.allclose(grad_mul(total, 2.0)[0][1], 6.0)
    assert np.allclose(grad_div(total, 3.0)[1][0], 1.0)


def test_grad_sum_all_averages_with_grad_div():
    bundles = [_bundle(float(k)) for k in range(1, 5)]
    mean = grad_div(grad_sum_all(bundles), len(bundles))
    assert np.allclose(mean[0][0], 2.5)
    assert np.allclose(mean[1][0], 2.5)


def test_grad_helpers_reject_mismatched_or_empty_bundles():
    with pytest.raises(ConfigurationError):
        grad_sum(_bundle(1.0), _bundle(1.0)[:1])
    with pytest.raises(ConfigurationError):
        grad_sum_all([])


def test_all_finite_detects_nan_in_nested_bundle():
    bundle = _bundle(1.0)
    assert all_finite(bundle)
    bundle[1][0][0, 0] = np.nan
    assert not all_finite(bundle)
