import numpy as np
import pytest
from numpy.testing import assert_allclose
from scipy import integrate, special

from epsteinpy import evaluate_incomplete_bessel
from epsteinpy.errors import InvalidLatticeError, NumericOverflowError
from epsteinpy.functions.incomplete_bessel import incomplete_bessel, saddle_point
from epsteinpy.functions.incomplete_gamma import lower_gamma_scaled, upper_gamma_scaled


def _reference(nu: complex, k: float, r: float) -> complex:
    big_k, big_r = np.pi * k**2, np.pi * r**2

    def part(t: float, fn) -> float:
        return fn(np.exp((-nu / 2 - 1) * np.log(t) - big_k / t - big_r * t))

    real, _ = integrate.quad(part, 0, 1, args=(np.real,), epsabs=0, epsrel=1e-13, limit=200)
    imag, _ = integrate.quad(part, 0, 1, args=(np.imag,), epsabs=0, epsrel=1e-13, limit=200)
    return real + 1j * imag


def test_reference_values() -> None:
    assert_allclose(
        evaluate_incomplete_bessel(2.1, 1, [1.2], [1.3]), 3.616792891719726e-5, rtol=1e-14
    )
    assert_allclose(
        evaluate_incomplete_bessel(2.1, 1, [1.3], [1.2]), 2.2500045995757836e-5, rtol=1e-14
    )


def test_grid_at_negative_even_exponent() -> None:
    grid = np.linspace(0.1, 1.1, 11)
    values = np.array([[evaluate_incomplete_bessel(-4.0, 1, [x], [y]) for y in grid] for x in grid])
    assert np.all(np.isfinite(values))
    expected = np.array([[_reference(-4.0, x, y) for y in grid] for x in grid])
    assert_allclose(values, expected, rtol=1e-11)


def test_large_arguments_warn(caplog: pytest.LogCaptureFixture) -> None:
    k = 7.0
    with caplog.at_level("WARNING", logger="epsteinpy.functions.incomplete_bessel"):
        value = incomplete_bessel(2.1, k, 0.5)
    assert "relative accuracy" in caplog.text
    assert_allclose(value, _reference(2.1, k, 0.5), rtol=1e-10)


def test_only_norms_matter() -> None:
    one = evaluate_incomplete_bessel(2.1, 1, [1.2], [1.3])
    three = evaluate_incomplete_bessel(2.1, 3, [0.0, 1.2, 0.0], [1.3, 0.0, 0.0])
    assert one == three


@pytest.mark.parametrize(
    "nu, k, r", [(1 + 2j, 0.7, 0.9), (-3.5, 0.4, 1.1), (6.0, 0.2, 0.3), (0.5j, 1.0, 0.1)]
)
def test_against_quadrature(nu: complex, k: float, r: float) -> None:
    assert_allclose(incomplete_bessel(nu, k, r), _reference(nu, k, r), rtol=1e-10)


@pytest.mark.parametrize("nu", [2.1, -1.3, 0.0, 4.0, 7.5])
@pytest.mark.parametrize("k, r", [(1.2, 1.3), (0.3, 0.8), (1.5, 0.2)])
def test_swap_identity(nu: float, k: float, r: float) -> None:
    big_k, big_r = np.pi * k**2, np.pi * r**2
    expected = 2 * (big_r / big_k) ** (nu / 4) * special.kv(nu / 2, 2 * np.sqrt(big_k * big_r))
    total = incomplete_bessel(nu, k, r) + incomplete_bessel(-nu, r, k)
    assert_allclose(total, expected, rtol=1e-12)


def test_degenerate_arguments() -> None:
    nu = 1.4 + 0.3j
    assert incomplete_bessel(nu, 0.0, 0.0) == pytest.approx(-2 / nu)
    assert incomplete_bessel(nu, 0.8, 0.0) == pytest.approx(
        upper_gamma_scaled(nu / 2, np.pi * 0.8**2), rel=1e-13
    )
    assert incomplete_bessel(nu, 0.0, 0.8) == pytest.approx(
        lower_gamma_scaled(-nu / 2, np.pi * 0.8**2), rel=1e-13
    )
    with pytest.raises(NumericOverflowError):
        incomplete_bessel(0.0, 0.0, 0.0)


def test_small_arguments_match_limits() -> None:
    assert_allclose(
        incomplete_bessel(2.5, 0.8, 1e-9),
        upper_gamma_scaled(1.25, np.pi * 0.64),
        rtol=1e-12,
    )
    # k -> 0 is continuous only for Re(nu) < 0
    assert_allclose(
        incomplete_bessel(-2.5, 1e-9, 0.8),
        lower_gamma_scaled(1.25, np.pi * 0.64),
        rtol=1e-12,
    )


def test_extreme_arguments_stay_finite() -> None:
    tiny = incomplete_bessel(2.0, 5.0, 5.0)
    assert np.isfinite(tiny) and 0 < tiny.real < 1e-60
    steep = incomplete_bessel(-40.0, 0.1, 4.0)
    assert np.isfinite(steep) and steep.real > 0


def test_saddle_point() -> None:
    # Re phi'(u) = c - K exp(u) + R exp(-u) vanishes at the saddle
    for c, big_k, big_r in [(1.05, 4.5, 5.3), (-3.0, 0.2, 1e-6), (0.0, 2.0, 8.0)]:
        u = saddle_point(c, big_k, big_r)
        if u > 0:
            assert c - big_k * np.exp(u) + big_r * np.exp(-u) == pytest.approx(0, abs=1e-12)
        else:
            assert c - big_k + big_r <= 1e-12


def test_dimension_mismatch() -> None:
    with pytest.raises(InvalidLatticeError):
        evaluate_incomplete_bessel(2.1, 2, [1.2], [1.3, 0.0])
    with pytest.raises(InvalidLatticeError):
        evaluate_incomplete_bessel(2.1, 0, [], [])
