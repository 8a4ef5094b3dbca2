"""Analytic continuation through the poles of the Gamma function.

The direct and the reciprocal sum both use ``g(a, x) = x**(-a) Gamma(a, x)``.
Its textbook representation ``Gamma(a) x**(-a) - exp(-x) sum_n x**n / (a)_{n+1}``
is the difference of two terms that both blow up when ``a`` approaches one of
``0, -1, -2, ...``. The classification below decides once per order whether
the kernel can use that representation or has to switch to the form with the
pole removed analytically.
"""

from dataclasses import dataclass

import numpy as np
from scipy import special

from epsteinpy.functions.cpu_numba import exprel, log1p_ratio

# Terms of the Taylor series of log Gamma(1 + e); |e| < 1/2 needs ~55 of them
# for double precision.
_ZETA_TERMS = 64
_ZETA_VALUES = special.zeta(np.arange(2, _ZETA_TERMS + 2, dtype=float))
_SIGNS = (-1.0) ** np.arange(2, _ZETA_TERMS + 2)
_DIVISORS = np.arange(2, _ZETA_TERMS + 2, dtype=float)


@dataclass(frozen=True)
class Regular:
    """Order far from any pole of ``Gamma``."""

    def branch_constants(self, a: complex) -> tuple[bool, int, complex, complex, complex]:
        """Constants handed to the kernel: ``log Gamma(a)`` for the power series."""
        return False, 0, 0j, complex(special.loggamma(complex(a))), 0j


@dataclass(frozen=True)
class SingularOrder:
    """Order ``a = -k + offset`` within the expansion radius of the pole ``-k``.

    Attributes
    ----------
    k:
        Index of the nearest pole.
    offset:
        Distance ``a + k`` to the pole, possibly zero.
    """

    k: int
    offset: complex

    @property
    def residue(self) -> complex:
        """Residue ``(-1)**k / k!`` of ``Gamma`` at ``-k``."""
        return complex((-1.0) ** self.k * special.rgamma(self.k + 1))

    def regular_part(self) -> complex:
        """``Gamma(-k + offset) - residue / offset``, free of the pole."""
        return regular_part_gamma(self.k, self.offset)

    def branch_constants(self, a: complex) -> tuple[bool, int, complex, complex, complex]:
        return True, self.k, self.offset, self.regular_part(), self.residue


def classify_order(a: complex, expansion_radius: float) -> Regular | SingularOrder:
    """Classify the order of ``g(a, x)`` relative to the poles of ``Gamma``.

    Parameters
    ----------
    a:
        Order of the incomplete Gamma function.
    expansion_radius:
        Orders closer than this to ``-k`` (``k = 0, 1, ...``) are singular.

    Returns
    -------
    Regular | SingularOrder
    """
    a = complex(a)
    k = int(np.rint(-a.real))
    if k < 0:
        return Regular()
    offset = a + k
    if abs(offset) <= expansion_radius:
        return SingularOrder(k, offset)
    return Regular()


def is_exact_pole(a: complex, tolerance: float) -> int | None:
    """Return ``k`` if ``a`` is within ``tolerance`` of the pole ``-k``, else ``None``."""
    a = complex(a)
    k = int(np.rint(-a.real))
    if k >= 0 and abs(a + k) <= tolerance:
        return k
    return None


def gamma_one_plus_ratio(offset: complex) -> complex:
    """``(Gamma(1 + e) - 1) / e``, analytic at ``e = 0`` where it is ``-euler_gamma``.

    Uses ``log Gamma(1 + e) = -euler_gamma e + sum_n (-1)**n zeta(n) e**n / n``
    for ``|e| < 1``.
    """
    offset = complex(offset)
    powers = offset ** np.arange(1, _ZETA_TERMS + 1)
    log_ratio = -np.euler_gamma + np.sum(_SIGNS * _ZETA_VALUES * powers / _DIVISORS)
    return complex(exprel(offset * log_ratio) * log_ratio)


def regular_part_gamma(k: int, offset: complex) -> complex:
    """``Gamma(-k + e) - (-1)**k / (k! e)`` for ``|e| < 1/2``.

    With ``Q(e) = prod_{i=1..k} (e - i)`` one has ``Gamma(-k + e) = Gamma(1 + e) / (e Q(e))``,
    hence the regular part equals ``(g1 - (rho - 1) / e) / Q(e)`` where
    ``g1 = (Gamma(1 + e) - 1) / e`` and ``rho = Q(e) / Q(0)``. Both quotients are
    evaluated without cancellation.
    """
    offset = complex(offset)
    g1 = gamma_one_plus_ratio(offset)
    if k == 0:
        return g1
    # log rho / e = sum_i log(1 - e / i) / e
    log_rho_ratio = sum(-log1p_ratio(-offset / i) / i for i in range(1, k + 1))
    log_rho = offset * log_rho_ratio
    rho_ratio = exprel(log_rho) * log_rho_ratio
    # 1 / Q(0) = (-1)**k / k! underflows quietly for large k
    inverse_q0 = (-1.0) ** k * special.rgamma(k + 1)
    return complex((g1 - rho_ratio) * inverse_q0 / np.exp(log_rho))
