import itertools

import numpy as np
import pytest
from numpy.testing import assert_allclose

from epsteinpy import QuadraticForm, ToleranceSpec
from epsteinpy.functions.incomplete_gamma import upper_gamma_scaled
from epsteinpy.precision import Precision, ball_volume, gamma_decay_bound

BASIS = np.array([[1.0, 0.6], [0.0, 0.8]])


def test_splitting_parameter() -> None:
    form = QuadraticForm.from_basis(BASIS)
    assert Precision(form, ToleranceSpec()).splitting_parameter == pytest.approx(np.sqrt(0.8))
    scaled = Precision(form, ToleranceSpec(ewald_scale=2.0))
    assert scaled.splitting_parameter == pytest.approx(2 * np.sqrt(0.8))


def test_ball_volume() -> None:
    assert ball_volume(1) == pytest.approx(2.0)
    assert ball_volume(2) == pytest.approx(np.pi)
    assert ball_volume(3) == pytest.approx(4 * np.pi / 3)


@pytest.mark.parametrize("a", [0.5, 2.5, -3.0, 1.0 + 4j])
def test_decay_bound(a: complex) -> None:
    x = np.array([4.0, 6.0, 11.0, 25.0])
    assert np.all(np.abs(upper_gamma_scaled(a, x)) <= gamma_decay_bound(np.real(a), x))


@pytest.mark.parametrize("a", [0.5, 3.0])
@pytest.mark.parametrize("radius", [1.5, 2.5])
def test_tail_bound_covers_the_tail(a: float, radius: float) -> None:
    form = QuadraticForm.from_basis(BASIS)
    precision = Precision(form, ToleranceSpec())
    length = precision.splitting_parameter
    center = np.array([0.2, -0.1])

    grid = np.array(list(itertools.product(range(-30, 31), repeat=2)))
    distances = np.linalg.norm(grid @ BASIS.T - center, axis=1)
    tail = distances[distances >= radius]
    actual = np.sum(np.abs(upper_gamma_scaled(a, np.pi * (tail / length) ** 2)))

    bound = precision.tail_bound(a, radius, length, form.smallest_singular_value, form)
    assert actual <= bound


def test_tail_bound_is_infinite_close_to_center() -> None:
    form = QuadraticForm.from_basis(BASIS)
    precision = Precision(form, ToleranceSpec())
    assert precision.tail_bound(4.0, 0.1, 1.0, 0.5, form) == np.inf


def test_estimated_radius_grows_with_accuracy() -> None:
    form = QuadraticForm.from_basis(BASIS)
    loose = Precision(form, ToleranceSpec(relative=1e-6)).estimated_radius(0.5, 1.0)
    tight = Precision(form, ToleranceSpec(relative=1e-14)).estimated_radius(0.5, 1.0)
    assert 0 < loose < tight


def test_normalization_at_poles() -> None:
    form = QuadraticForm.from_basis(np.eye(2))
    precision = Precision(form, ToleranceSpec())
    prefactor, lattice_point = precision.normalization(0.0)
    assert prefactor == 0
    assert lattice_point == pytest.approx(1.0)
    prefactor, lattice_point = precision.normalization(2.0)
    assert_allclose(prefactor, np.pi)
    assert_allclose(lattice_point, np.pi)


def test_log_prefactor() -> None:
    precision = Precision(QuadraticForm.from_basis(np.eye(2)), ToleranceSpec())
    assert precision.log_prefactor(-4.0) is None
    assert precision.log_prefactor(0.0) is None
    assert_allclose(np.exp(precision.log_prefactor(2.5)), precision.normalization(2.5)[0])
    assert_allclose(np.exp(precision.log_prefactor(1 + 3j)), precision.normalization(1 + 3j)[0])
    # Gamma(nu/2) overflows here, its logarithm does not
    assert np.isfinite(precision.log_prefactor(1000.0))
    assert np.isfinite(precision.log_prefactor(400.0))
