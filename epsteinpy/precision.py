"""Precision and error control.

Turns a :class:`~epsteinpy.config.ToleranceSpec` into the concrete numbers an
evaluation works with: the splitting parameter, the inner tolerances of the
kernel loops and the quadrature, and rigorous bounds of the lattice sum tails.
"""

import math
from functools import cached_property

import numpy as np
from scipy import special

from epsteinpy.config import ToleranceSpec
from epsteinpy.lattice import QuadraticForm

EPS = float(np.finfo(float).eps)

# Drop of the exponent (in nepers) after which a tail contribution is dropped
# relative to the first tail shell.
_TAIL_MARGIN = 60.0

# Stopping criterion of the continued fraction and power series loops. Always
# full double precision, the rounding estimate of the lattice sums assumes it.
KERNEL_TOLERANCE = 1e-16


def quadrature_tolerance(tolerance: ToleranceSpec) -> float:
    """Agreement required between two tanh-sinh levels."""
    return max(1e-1 * tolerance.relative, 4 * EPS)


def ball_volume(dim: int) -> float:
    """Volume of the unit ball in ``dim`` dimensions."""
    return math.pi ** (dim / 2) / math.gamma(dim / 2 + 1)


def _gamma_pole(z: complex) -> bool:
    """Whether ``z`` is one of the poles ``0, -1, -2, ...`` of ``Gamma``."""
    return z.imag == 0 and z.real <= 0 and z.real == math.floor(z.real)


def gamma_decay_bound(
    order_real: float, x: np.ndarray, log_scale: float = 0.0
) -> np.ndarray:
    """Upper bound of ``exp(log_scale) |g(a, x)|`` valid for ``x > max(Re a - 1, 0)``.

    From ``|g(a, x)| <= g(Re a, x) <= exp(-x) / (x - max(Re a - 1, 0))``.
    """
    shift = max(order_real - 1.0, 0.0)
    return np.exp(log_scale - x) / (x - shift)


class Precision:
    """Truncation control of the two lattice sums of one lattice.

    Parameters
    ----------
    form:
        Lattice of the direct sum; the reciprocal sum runs over its dual.
    tolerance:
        Accuracy targets and budgets.
    """

    def __init__(self, form: QuadraticForm, tolerance: ToleranceSpec):
        self.form = form
        self.tolerance = tolerance

    @cached_property
    def splitting_parameter(self) -> float:
        """``lambda = ewald_scale * V ** (1 / d)``, balancing both sums."""
        return self.tolerance.ewald_scale * self.form.volume ** (1.0 / self.form.dim)

    def target(self, scale: float) -> float:
        """Admissible tail of one sum whose terms add up to ``scale`` in magnitude."""
        return self.tolerance.safety * self.tolerance.relative * scale

    def tail_bound(
        self,
        order_real: float,
        radius: float,
        length: float,
        thickness: float,
        form: QuadraticForm,
        log_scale: float = 0.0,
    ) -> float:
        """Bound of the terms of all lattice points at distance ``>= radius``.

        The terms are ``exp(log_scale) g(a, pi (r / length) ** 2)`` times a unimodular
        phase.
        Summing the decay bound over shells of width ``thickness`` with the
        point count ``N(r) <= omega_d (r + cell_radius) ** d / V`` gives

        ``sum_j f(radius + j thickness) N(radius + (j + 1) thickness)``.

        Parameters
        ----------
        order_real:
            Real part of the order ``a``.
        radius:
            Inner radius of the first shell not yet summed.
        length:
            Length scale of the sum (``lambda`` or ``1 / lambda``).
        thickness:
            Shell thickness of the enumeration.
        form:
            Lattice the sum runs over.
        log_scale:
            Logarithm of the modulus of the factor carried by the terms.

        Returns
        -------
        float
            ``inf`` while ``radius`` is inside the region where the decay bound
            does not hold yet.
        """
        shift = max(order_real - 1.0, 0.0)
        x0 = math.pi * (radius / length) ** 2
        if x0 <= shift + 1.0:
            return math.inf
        # Shells up to an exponent drop of _TAIL_MARGIN; the remaining ones are
        # smaller than the first by exp(-_TAIL_MARGIN).
        reach = math.sqrt(radius**2 + _TAIL_MARGIN * length**2 / math.pi) - radius
        count = int(math.ceil(reach / thickness)) + 1
        radii = radius + thickness * np.arange(count + 1)
        decay = gamma_decay_bound(
            order_real, math.pi * (radii[:-1] / length) ** 2, log_scale
        )
        points = (
            ball_volume(form.dim)
            * (radii[1:] + form.cell_radius) ** form.dim
            / form.volume
        )
        return float(np.sum(decay * points))

    def estimated_radius(self, order_real: float, length: float) -> float:
        """Radius beyond which single terms drop below the relative tolerance.

        Closed form of ``exp(-x) / (x - max(Re a - 1, 0)) = relative`` solved
        to leading order, ``x = log(1 / relative) + max(Re a - 1, 0) + 1``.
        """
        x = math.log(1.0 / self.tolerance.relative) + max(order_real - 1.0, 0.0) + 1.0
        return length * math.sqrt(x / math.pi)

    def max_radius(self, length: float) -> float:
        return self.tolerance.max_radius * length

    def _log_power(self, nu: complex) -> complex:
        return nu / 2 * math.log(math.pi) - nu * math.log(self.splitting_parameter)

    def log_prefactor(self, nu: complex) -> complex | None:
        """``log(pi**(nu/2) lambda**(-nu) / Gamma(nu/2))``, ``None`` where the factor vanishes.

        The prefactor is folded into the kernels of both lattice sums through
        this logarithm, so neither ``Gamma(nu/2)`` nor the incomplete Gamma
        values have to be representable on their own.
        """
        nu = complex(nu)
        if _gamma_pole(nu / 2):
            return None
        return complex(self._log_power(nu) - special.loggamma(nu / 2))

    def normalization(self, nu: complex) -> tuple[complex, complex]:
        """``pi**(nu/2) lambda**(-nu)`` divided by ``Gamma(nu/2)`` and by ``Gamma(nu/2 + 1)``.

        The second factor is the coefficient of the lattice-point correction;
        writing it with ``1 / Gamma(nu/2 + 1)`` keeps ``nu = 0, -2, ...`` finite.
        """
        nu = complex(nu)
        log_power = self._log_power(nu)
        with np.errstate(over="ignore"):
            prefactor = (
                0j
                if _gamma_pole(nu / 2)
                else complex(np.exp(log_power - special.loggamma(nu / 2)))
            )
            lattice_point = (
                0j
                if _gamma_pole(nu / 2 + 1)
                else complex(np.exp(log_power - special.loggamma(nu / 2 + 1)))
            )
        return prefactor, lattice_point
