"""Numba kernels of the scaled incomplete Gamma functions.

All kernels work on the scaled functions

``g(a, x) = x**(-a) * Gamma(a, x) = int_1^inf s**(a - 1) exp(-x s) ds``

and ``h(a, x) = x**(-a) * gamma(a, x) = int_0^1 s**(a - 1) exp(-x s) ds``,

so that no power ``x**a`` has to be formed on its own. Every kernel also takes a
complex ``log_scale`` and returns ``exp(log_scale) g(a, x)``; the factor is
applied inside the exponentials, so ``Gamma(a)`` is only ever used through its
logarithm and large orders stay representable. The kernels never raise;
they report failed convergence through their return flags and leave the
decision to the Python wrappers in :mod:`epsteinpy.functions.incomplete_gamma`.
"""

import cmath
import math

import numpy as np
from numba import jit

FPMIN = 1e-300


@jit(nopython=True, nogil=True, cache=True)
def exprel(z: complex) -> complex:
    """``(exp(z) - 1) / z`` without cancellation near ``z = 0``."""
    if abs(z) < 0.5:
        term = 1.0 + 0.0j
        total = 1.0 + 0.0j
        for m in range(2, 40):
            term *= z / m
            total += term
            if abs(term) < 1e-17 * abs(total):
                break
        return total
    return (cmath.exp(z) - 1.0) / z


@jit(nopython=True, nogil=True, cache=True)
def log1p_ratio(z: complex) -> complex:
    """``log(1 + z) / z`` without cancellation near ``z = 0``."""
    if abs(z) < 0.5:
        power = 1.0 + 0.0j
        total = 1.0 + 0.0j
        for m in range(1, 80):
            power *= -z
            term = power / (m + 1)
            total += term
            if abs(term) < 1e-17 * abs(total):
                break
        return total
    return cmath.log(1.0 + z) / z


@jit(nopython=True, nogil=True, cache=True)
def upper_gamma_cf(a: complex, x: float, log_scale: complex, tol: float, max_iter: int):
    """Legendre continued fraction of ``exp(log_scale) g(a, x)`` (modified Lentz).

    Converges for every ``x > 0``, quickly once ``x > Re(a) + 1``.
    """
    b = x + 1.0 - a
    if abs(b) < FPMIN:
        b = FPMIN + 0.0j
    c = 1.0 / FPMIN + 0.0j
    d = 1.0 / b
    h = d
    for i in range(1, max_iter + 1):
        an = -i * (i - a)
        b += 2.0
        d = an * d + b
        if abs(d) < FPMIN:
            d = FPMIN + 0.0j
        c = b + an / c
        if abs(c) < FPMIN:
            c = FPMIN + 0.0j
        d = 1.0 / d
        delta = d * c
        h *= delta
        if abs(delta - 1.0) < tol:
            return cmath.exp(log_scale - x) * h, True
    return cmath.exp(log_scale - x) * h, False


@jit(nopython=True, nogil=True, cache=True)
def gamma_series_sum(a: complex, x: float, tol: float, max_iter: int):
    """``sum_n x**n / (a (a + 1) ... (a + n))``.

    ``exp(-x)`` times this sum is ``h(a, x)``; ``a`` must stay away from the
    nonpositive integers.
    """
    term = 1.0 / a
    total = term
    for n in range(1, max_iter):
        term *= x / (a + n)
        total += term
        if n > x - a.real and abs(term) <= tol * abs(total):
            return total, True
    return total, False


@jit(nopython=True, nogil=True, cache=True)
def upper_gamma_series(
    a: complex,
    x: float,
    log_gamma_a: complex,
    log_scale: complex,
    tol: float,
    max_iter: int,
):
    """``g(a, x) = Gamma(a) x**(-a) - exp(-x) sum_n x**n / (a)_{n+1}``, scaled.

    ``log_gamma_a`` is ``log Gamma(a)``, so the leading term is a single
    exponential for every ``Re a``.
    """
    total, ok = gamma_series_sum(a, x, tol, max_iter)
    leading = cmath.exp(log_scale + log_gamma_a - a * math.log(x))
    return leading - cmath.exp(log_scale - x) * total, ok


@jit(nopython=True, nogil=True, cache=True)
def upper_gamma_laurent(
    k: int,
    offset: complex,
    regular_part: complex,
    residue: complex,
    x: float,
    log_scale: complex,
    tol: float,
    max_iter: int,
):
    """``g(a, x)`` for ``a = -k + offset`` close to the pole of ``Gamma`` at ``-k``.

    The pole of ``Gamma(a)`` and the ``n = k`` term of the lower series cancel
    analytically::

        g = x**k (x**(-offset) R + residue (-log x) exprel(-offset log x))
            - sum_{n != k} (-1)**n x**n / (n! (a + n))

    with ``R = Gamma(a) - residue / offset`` and ``residue = (-1)**k / k!``.
    """
    a = offset - k
    lx = math.log(x)
    z = -offset * lx
    main = x**k * (cmath.exp(z) * regular_part + residue * (-lx) * exprel(z))
    total = 0.0 + 0.0j
    power = 1.0
    for n in range(max_iter):
        if n > 0:
            power *= x / n
        if n != k:
            if n % 2 == 0:
                total += power / (a + n)
            else:
                total -= power / (a + n)
        if n > k and n > x and power <= tol * abs(main - total):
            return cmath.exp(log_scale) * (main - total), True
    return cmath.exp(log_scale) * (main - total), False


@jit(nopython=True, nogil=True, cache=True)
def upper_gamma_scaled_array(
    a: complex,
    xs: np.ndarray,
    singular: bool,
    k: int,
    offset: complex,
    first: complex,
    second: complex,
    log_scale: complex,
    tol: float,
    max_iter: int,
    out: np.ndarray,
) -> int:
    """Evaluate ``exp(log_scale) g(a, x)`` for every positive entry of ``xs`` into ``out``.

    ``first`` and ``second`` are the branch constants of the order
    classification: ``log Gamma(a)`` for regular orders, or the regular part and the
    residue of ``Gamma`` at ``-k`` for singular ones. Returns the number of
    entries that did not converge.
    """
    failures = 0
    for i in range(xs.size):
        x = xs[i]
        if x >= 1.5 and x >= a.real + 1.0:
            value, ok = upper_gamma_cf(a, x, log_scale, tol, max_iter)
        elif singular:
            value, ok = upper_gamma_laurent(
                k, offset, first, second, x, log_scale, tol, max_iter
            )
        else:
            value, ok = upper_gamma_series(a, x, first, log_scale, tol, max_iter)
        out[i] = value
        if not ok:
            failures += 1
    return failures
