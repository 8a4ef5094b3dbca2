import numpy as np
import pytest
from numpy.testing import assert_allclose
from scipy import special

from epsteinpy import (
    EpsteinZeta,
    QuadraticForm,
    ToleranceSpec,
    evaluate_epstein_zeta,
    evaluate_epstein_zeta_reg,
)

OBLIQUE = np.array([[1.0, 0.3], [0.0, 1.2]])
X = np.array([0.2, -0.1])


def singular_part(nu: complex, dim: int, y: np.ndarray) -> complex:
    return (
        np.pi ** (nu - dim / 2)
        * special.gamma((dim - nu) / 2)
        / special.gamma(nu / 2)
        * np.linalg.norm(y) ** (nu - dim)
    )


@pytest.mark.parametrize("nu", [1.3, 3.7, 0.5 + 0.8j, -1.2])
def test_relation_to_epstein_zeta(nu: complex) -> None:
    y = np.array([0.2, -0.1])
    volume = abs(np.linalg.det(OBLIQUE))
    value = evaluate_epstein_zeta(nu, 2, OBLIQUE, X, y)
    expected = np.exp(2j * np.pi * np.dot(X, y)) * value - singular_part(nu, 2, y) / volume
    assert_allclose(evaluate_epstein_zeta_reg(nu, 2, OBLIQUE, X, y), expected, rtol=1e-11)


@pytest.mark.parametrize("nu", [1.3, 2.0, 4.0, 0.5 + 0.8j])
def test_continuous_at_zero(nu: complex) -> None:
    at_zero = evaluate_epstein_zeta_reg(nu, 2, OBLIQUE, X, np.zeros(2))
    assert np.isfinite(at_zero)
    for scale in [1e-4, 1e-6]:
        near = evaluate_epstein_zeta_reg(nu, 2, OBLIQUE, X, scale * np.array([0.6, -0.8]))
        assert abs(near - at_zero) < 100 * scale * max(abs(at_zero), 1.0)


@pytest.mark.parametrize("nu", [1.0, 3.0, 5.0])
def test_logarithmic_orders_in_one_dimension(nu: float) -> None:
    # nu = d + 2n removes a log |y| singularity
    basis = [[1.0]]
    at_zero = evaluate_epstein_zeta_reg(nu, 1, basis, [0.3], [0.0])
    near = evaluate_epstein_zeta_reg(nu, 1, basis, [0.3], [1e-7])
    assert abs(near - at_zero) < 1e-5 * max(abs(at_zero), 1.0)


@pytest.mark.parametrize("nu", [1.0, 3.0, 2.4])
@pytest.mark.parametrize("y", [0.0, 0.01, 0.3])
def test_independent_of_splitting_parameter(nu: float, y: float) -> None:
    values = [
        evaluate_epstein_zeta_reg(nu, 1, [[1.0]], [0.3], [y], ToleranceSpec(ewald_scale=scale))
        for scale in (0.8, 1.25)
    ]
    assert_allclose(values[0], values[1], rtol=1e-11, atol=1e-13)


def test_periodic_in_shift() -> None:
    y = np.array([0.05, 0.1])
    shift = OBLIQUE @ np.array([-1, 2])
    value = evaluate_epstein_zeta_reg(2.5, 2, OBLIQUE, X, y)
    shifted = evaluate_epstein_zeta_reg(2.5, 2, OBLIQUE, X + shift, y)
    assert_allclose(shifted, value, rtol=1e-12)


def test_lattice_point_shift() -> None:
    # x on the lattice keeps the excluded term out of both functions
    y = np.array([0.25, 0.1])
    volume = abs(np.linalg.det(OBLIQUE))
    value = evaluate_epstein_zeta(1.5, 2, OBLIQUE, np.zeros(2), y)
    regularized = evaluate_epstein_zeta_reg(1.5, 2, OBLIQUE, np.zeros(2), y)
    assert_allclose(regularized, value - singular_part(1.5, 2, y) / volume, rtol=1e-11)


def test_result_is_flagged() -> None:
    result = EpsteinZeta(QuadraticForm.from_basis(OBLIQUE)).evaluate(
        1.5, X, np.zeros(2), regularized=True
    )
    assert result.regularized
    assert result.error < 1e-12 * max(abs(result.value), 1.0)
