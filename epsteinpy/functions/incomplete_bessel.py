"""Upper incomplete Bessel function.

``G_nu(k, r) = int_0^1 t**(-nu/2) exp(-pi |k|**2 / t) exp(-pi |r|**2 t) dt / t``

is the kernel that couples the direct and the reciprocal lattice sums. Only the
squared norms ``K = pi |k|**2`` and ``R = pi |r|**2`` enter, the dimension of
the vectors is irrelevant.
"""

import logging
import math

import numpy as np

from epsteinpy.config import ToleranceSpec, resolve_tolerance
from epsteinpy.errors import NumericOverflowError
from epsteinpy.functions.incomplete_gamma import lower_gamma_scaled, upper_gamma_scaled
from epsteinpy.functions.quadrature import tanh_sinh
from epsteinpy.precision import EPS, quadrature_tolerance

log = logging.getLogger(__name__)

# Integration range ends where Re(phi) dropped this far below its maximum.
PHI_MARGIN = 50.0
_MAX_DOUBLINGS = 64


def _phi_real(c: float, big_k: float, big_r: float, u: float) -> float:
    return c * u - big_k * math.exp(u) - big_r * math.exp(-u)


def saddle_point(c: float, big_k: float, big_r: float) -> float:
    """Maximum of ``Re phi(u) = c u - K exp(u) - R exp(-u)`` over ``u >= 0``.

    ``w = exp(u)`` solves ``K w**2 - c w - R = 0``; the root is taken in the
    form free of cancellation for either sign of ``c``.
    """
    s = math.sqrt(c * c + 4.0 * big_k * big_r)
    if c >= 0:
        w = (c + s) / (2.0 * big_k)
    else:
        w = 2.0 * big_r / (s - c)
    return max(0.0, math.log(w))


def _integration_range(c: float, big_k: float, big_r: float) -> tuple[float, float, float]:
    peak = saddle_point(c, big_k, big_r)
    phi_max = _phi_real(c, big_k, big_r, peak)
    threshold = phi_max - PHI_MARGIN

    step = 1.0
    for _ in range(_MAX_DOUBLINGS):
        if _phi_real(c, big_k, big_r, peak + step) <= threshold:
            break
        step *= 2.0
    upper = peak + step

    lower = 0.0
    if peak > 0:
        step = 1.0
        for _ in range(_MAX_DOUBLINGS):
            if step >= peak or _phi_real(c, big_k, big_r, peak - step) <= threshold:
                break
            step *= 2.0
        lower = max(0.0, peak - step)
    return lower, peak, upper


def incomplete_bessel(
    nu: complex,
    k,
    r,
    tolerance: ToleranceSpec | float | None = None,
) -> complex:
    """Evaluate the upper incomplete Bessel function ``G_nu(k, r)``.

    Parameters
    ----------
    nu:
        Complex exponent.
    k, r:
        Real vectors (or scalars) of equal length.
    tolerance:
        Tolerance specification.

    Returns
    -------
    complex

    Raises
    ------
    NumericOverflowError
        At the pole ``k = r = 0``, ``nu = 0``, or if the value is not representable.
    NonConvergenceError
        If the quadrature does not settle within the level budget.

    Notes
    -----
    With ``t = exp(-u)`` the integral becomes ``int_0^inf exp(phi(u)) du`` with
    ``phi(u) = nu/2 u - K exp(u) - R exp(-u)``. ``Re phi`` is strictly concave,
    so the integrand is a single bump; the range is split at its maximum and
    both pieces are integrated with tanh-sinh quadrature after scaling by
    ``exp(-max Re phi)``.

    The swap identity
    ``G_nu(k, r) + G_{-nu}(r, k) = 2 (R/K)**(nu/4) K_{nu/2}(2 sqrt(K R))``
    relates the function to the modified Bessel function of the second kind.

    The exponent is formed in double precision, so its rounding error grows
    with ``K`` and ``R``. The relative error is about ``max(K, R)**2 * EPS``:
    full precision for ``K, R`` up to a few units, about ``1e-12`` near 50
    (``|k|, |r|`` near 4). A warning is logged when this loss exceeds the
    requested relative tolerance.
    """
    tolerance = resolve_tolerance(tolerance)
    nu = complex(nu)
    big_k = math.pi * float(np.sum(np.square(np.asarray(k, dtype=float))))
    big_r = math.pi * float(np.sum(np.square(np.asarray(r, dtype=float))))

    if big_k == 0 and big_r == 0:
        if abs(nu) <= tolerance.pole_tolerance:
            raise NumericOverflowError("G_nu(0, 0) = -2/nu has a pole at nu = 0")
        return -2.0 / nu
    if big_r == 0:
        return complex(upper_gamma_scaled(nu / 2, big_k, tolerance))
    if big_k == 0:
        return lower_gamma_scaled(-nu / 2, big_r, tolerance)

    loss = EPS * max(big_k, big_r) ** 2
    if loss > tolerance.relative:
        log.warning(
            f"G_{nu}: K = {big_k:.6g}, R = {big_r:.6g} "
            f"limit the relative accuracy to about {loss:.1e}"
        )

    c = nu.real / 2
    lower, peak, upper = _integration_range(c, big_k, big_r)
    phi_max = _phi_real(c, big_k, big_r, peak)
    half_nu = nu / 2

    def integrand(u: np.ndarray) -> np.ndarray:
        return np.exp(half_nu * u - big_k * np.exp(u) - big_r * np.exp(-u) - phi_max)

    log.debug(
        f"G_{nu}: K = {big_k:.6g}, R = {big_r:.6g}, "
        f"range [{lower:.4g}, {peak:.4g}, {upper:.4g}], max Re phi = {phi_max:.6g}"
    )
    quad_tol = quadrature_tolerance(tolerance)
    total = 0j
    if peak > lower:
        value, _ = tanh_sinh(integrand, lower, peak, quad_tol, tolerance.quadrature_max_level)
        total += value
    value, _ = tanh_sinh(integrand, peak, upper, quad_tol, tolerance.quadrature_max_level)
    total += value

    with np.errstate(over="ignore"):
        result = complex(np.exp(phi_max) * total)
    if not np.isfinite(result):
        raise NumericOverflowError(f"G_{nu}(k, r) is not representable")
    return result
