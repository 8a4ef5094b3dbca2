import numpy as np
from scipy import special

from epsteinpy.config import ToleranceSpec, resolve_tolerance
from epsteinpy.continuation import classify_order, is_exact_pole
from epsteinpy.errors import NonConvergenceError, NumericOverflowError
from epsteinpy.functions.cpu_numba import gamma_series_sum, upper_gamma_scaled_array
from epsteinpy.precision import KERNEL_TOLERANCE


class ScaledUpperGamma:
    """``g(a, x) = x**(-a) Gamma(a, x)`` for one fixed order ``a``.

    The order is classified once on construction; every call then evaluates
    arrays of arguments with the branch constants computed here. A constant
    factor ``exp(log_scale)`` can be folded into the values, which keeps them
    representable when ``g`` itself would overflow but the product does not.

    Parameters
    ----------
    a:
        Complex order.
    tolerance:
        Tolerance specification, see :func:`epsteinpy.config.resolve_tolerance`.
    log_scale:
        Logarithm of the factor applied to every value.
    """

    def __init__(
        self,
        a: complex,
        tolerance: ToleranceSpec | float | None = None,
        log_scale: complex = 0j,
    ):
        self.a = complex(a)
        self.log_scale = complex(log_scale)
        self.tolerance = resolve_tolerance(tolerance)
        self.order = classify_order(self.a, self.tolerance.expansion_radius)
        self._constants = self.order.branch_constants(self.a)

    @property
    def at_zero(self) -> complex:
        """``g(a, 0) = -1/a``, times the scale factor."""
        if abs(self.a) <= self.tolerance.pole_tolerance:
            raise NumericOverflowError(
                "g(a, 0) = -1/a has a pole at a = 0 "
                "(use the regularized Epstein zeta function)"
            )
        return -np.exp(self.log_scale) / self.a

    def __call__(self, x: np.ndarray) -> np.ndarray:
        x = np.asarray(x, dtype=float)
        if np.any(x < 0) or not np.all(np.isfinite(x)):
            raise ValueError("The arguments of g(a, x) need to be finite and >= 0")
        result = np.empty(x.shape, dtype=complex)
        positive = x > 0
        if not np.all(positive):
            result[~positive] = self.at_zero

        values = np.ascontiguousarray(x[positive])
        out = np.empty(values.shape, dtype=complex)
        singular, k, offset, first, second = self._constants
        failures = upper_gamma_scaled_array(
            self.a,
            values,
            singular,
            k,
            offset,
            first,
            second,
            self.log_scale,
            KERNEL_TOLERANCE,
            self.tolerance.max_iterations,
            out,
        )
        if failures:
            raise NonConvergenceError(
                f"g({self.a}, x) did not converge for {failures} arguments "
                f"within {self.tolerance.max_iterations} iterations",
                partial=complex(out[0]) if out.size else complex("nan"),
            )
        if not np.all(np.isfinite(out)):
            raise NumericOverflowError(f"g({self.a}, x) is not representable")
        result[positive] = out
        return result


def upper_gamma_scaled(
    a: complex, x, tolerance: ToleranceSpec | float | None = None
) -> np.ndarray | complex:
    """Scaled upper incomplete Gamma function ``g(a, x) = x**(-a) Gamma(a, x)``.

    Equivalent to ``int_1^inf s**(a - 1) exp(-x s) ds``; entire in ``a`` for
    ``x > 0``. For ``a = -n`` it is the generalized exponential integral
    ``E_{n+1}(x)``.

    Parameters
    ----------
    a:
        Complex order.
    x:
        Scalar or array of nonnegative arguments.
    tolerance:
        Tolerance specification.

    Returns
    -------
    np.ndarray | complex
        Same shape as ``x``.
    """
    values = ScaledUpperGamma(a, tolerance)(np.asarray(x, dtype=float))
    if np.ndim(x) == 0:
        return complex(values)
    return values


def lower_gamma_scaled(
    a: complex, x: float, tolerance: ToleranceSpec | float | None = None
) -> complex:
    """Scaled lower incomplete Gamma function ``h(a, x) = x**(-a) gamma(a, x)``.

    Equivalent to ``int_0^1 s**(a - 1) exp(-x s) ds``.

    Raises
    ------
    NumericOverflowError
        At the poles ``a = 0, -1, -2, ...``.
    """
    tolerance = resolve_tolerance(tolerance)
    a = complex(a)
    x = float(x)
    if x < 0 or not np.isfinite(x):
        raise ValueError("The argument of h(a, x) needs to be finite and >= 0")
    pole = is_exact_pole(a, tolerance.pole_tolerance)
    if pole is not None:
        raise NumericOverflowError(f"h(a, x) has a pole at a = {-pole}")
    if x == 0:
        return 1.0 / a

    if x <= max(2.0, a.real + 1.0):
        total, ok = gamma_series_sum(
            a, x, KERNEL_TOLERANCE, tolerance.max_iterations
        )
        if not ok:
            raise NonConvergenceError(
                f"The power series of h({a}, {x}) did not converge",
                partial=complex(np.exp(-x) * total),
            )
        value = complex(np.exp(-x) * total)
    else:
        value = complex(
            np.exp(special.loggamma(a) - a * np.log(x))
            - upper_gamma_scaled(a, x, tolerance)
        )
    if not np.isfinite(value):
        raise NumericOverflowError(f"h({a}, {x}) is not representable")
    return value
