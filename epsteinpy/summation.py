"""Crandall representation of the Epstein zeta function.

With splitting parameter ``lambda``,

``Z(x, y) = pi**(nu/2) lambda**(-nu) / Gamma(nu/2) * [D + lambda**d / V * R - [x in L] exp(-2 pi i y.x) 2/nu]``

with the direct sum ``D = sum'_z exp(-2 pi i y.z) g(nu/2, pi |z - x|**2 / lambda**2)``
over the lattice and the reciprocal sum
``R = sum_k exp(-2 pi i x.(k + y)) g((d - nu)/2, pi lambda**2 |k + y|**2)`` over the
dual lattice. Both sums decay like Gaussians and are truncated adaptively with a
rigorous tail bound. The prefactor is folded into the kernels of both sums in
log space, so large exponents do not overflow in intermediate values.
"""

import logging
import math
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum, auto

import numpy as np

from epsteinpy.config import ToleranceSpec, resolve_tolerance
from epsteinpy.continuation import is_exact_pole
from epsteinpy.enumeration import Shell, iter_shells
from epsteinpy.errors import (
    InvalidLatticeError,
    NonConvergenceError,
    NumericOverflowError,
)
from epsteinpy.functions.incomplete_gamma import (
    ScaledUpperGamma,
    lower_gamma_scaled,
    upper_gamma_scaled,
)
from epsteinpy.lattice import QuadraticForm
from epsteinpy.precision import EPS, Precision

# Rounding error of one term in units of its magnitude.
_ROUNDING_ULPS = 4.0


class EvaluationState(Enum):
    INIT = auto()
    DIRECT_SUM = auto()
    RECIPROCAL_SUM = auto()
    COMBINE = auto()
    DONE = auto()
    FAILED = auto()


@dataclass
class PartialSum:
    """Running state of one truncated lattice sum.

    Attributes
    ----------
    value:
        Sum of the terms added so far.
    absolute:
        Sum of their magnitudes, the scale of the truncation target.
    points:
        Number of terms.
    tail:
        Bound of all terms not yet added.
    radius:
        Radius up to which all lattice points are included.
    exhausted:
        Whether the radius or point budget ran out before the tail was small.
    """

    value: complex = 0j
    absolute: float = 0.0
    points: int = 0
    tail: float = math.inf
    radius: float = 0.0
    exhausted: bool = False

    def add(self, terms: np.ndarray):
        self.value += complex(np.sum(terms))
        self.absolute += float(np.sum(np.abs(terms)))
        self.points += terms.size


@dataclass(frozen=True)
class EvaluationResult:
    """Value of one evaluation together with its diagnostics.

    Attributes
    ----------
    value:
        Function value.
    error:
        Estimated absolute error, the truncation bounds of both sums plus a
        rounding estimate.
    direct_points, reciprocal_points:
        Number of lattice points summed.
    splitting_parameter:
        Splitting parameter ``lambda`` that was used.
    regularized:
        Whether the regularized function was evaluated.
    """

    value: complex
    error: float
    direct_points: int
    reciprocal_points: int
    splitting_parameter: float
    regularized: bool = False

    def __complex__(self) -> complex:
        return self.value


def _phases(coordinates: np.ndarray, frequencies: np.ndarray) -> np.ndarray:
    """``exp(-2 pi i m.f)`` with the argument reduced modulo one first."""
    argument = coordinates @ frequencies
    return np.exp(-2j * np.pi * (argument - np.rint(argument)))


class EpsteinZeta:
    """Epstein zeta function of one lattice.

    The object only holds the immutable lattice and tolerance; every call of
    :meth:`evaluate` keeps its state locally.

    Parameters
    ----------
    form:
        Lattice ``L = A Z^d``.
    tolerance:
        Tolerance specification, a relative tolerance or ``None`` for the default.
    """

    def __init__(
        self, form: QuadraticForm, tolerance: ToleranceSpec | float | None = None
    ):
        self.log = logging.getLogger(self.__class__.__module__)
        self.form = form
        self.tolerance = resolve_tolerance(tolerance)
        self.precision = Precision(form, self.tolerance)

    def _transition(self, new: EvaluationState) -> EvaluationState:
        self.log.debug(f"Evaluation state: {new.name}")
        return new

    def _lattice_sum(
        self,
        form: QuadraticForm,
        center: np.ndarray,
        length: float,
        kernel: ScaledUpperGamma,
        phases: Callable[[np.ndarray], np.ndarray],
        include: Callable[[Shell], np.ndarray],
        weight: float,
        scale: float,
        limit: float = math.inf,
    ) -> PartialSum:
        """Sum ``phase(m) g(a, pi |A m - center|**2 / length**2)`` shell by shell.

        The kernel carries the normalization of the Crandall representation, so
        the terms are in units of the final value. Stops once ``weight`` times
        the tail bound is below the target relative to
        ``max(scale, weight * absolute sum)`` and below the absolute ``limit``.
        If the radius or point budget runs out first, the partial sum is
        returned flagged as exhausted.
        """
        partial = PartialSum()
        thickness = form.smallest_singular_value
        max_radius = self.precision.max_radius(length)
        for shell in iter_shells(form, center, thickness):
            mask = include(shell)
            if np.any(mask):
                x = np.pi * shell.squared_distances[mask] / length**2
                partial.add(phases(shell.coordinates[mask]) * kernel(x))
            partial.radius = shell.outer
            partial.tail = self.precision.tail_bound(
                kernel.a.real, shell.outer, length, thickness, form, kernel.log_scale.real
            )
            target = self.precision.target(max(scale, weight * partial.absolute))
            if weight * partial.tail <= min(target, limit):
                self.log.debug(
                    f"Truncated after {partial.points} points at radius "
                    f"{partial.radius:.4g} (estimate "
                    f"{self.precision.estimated_radius(kernel.a.real, length):.4g}), "
                    f"tail bound {partial.tail:.3e}"
                )
                return partial
            if shell.outer > max_radius or partial.points > self.tolerance.max_points:
                self.log.debug(
                    f"Lattice sum exhausted after {partial.points} points "
                    f"(radius {partial.radius:.4g}, tail bound {partial.tail:.3e})"
                )
                partial.exhausted = True
                return partial

    def _regularized_origin(self, a: complex, y: np.ndarray) -> complex:
        """``k = 0`` reciprocal term with the singular part of ``|y|**(nu - d)`` removed.

        ``-h(a, b)`` with ``b = pi lambda**2 |y|**2`` for regular orders. For
        ``a = -n`` the removed part is logarithmic, leaving
        ``g(-n, b) + (-1)**n / n! b**n (log b - 2 log lambda)``.
        """
        lam = self.precision.splitting_parameter
        b = np.pi * lam**2 * float(np.dot(y, y))
        n = is_exact_pole(a, self.tolerance.pole_tolerance)
        if n is None:
            return -lower_gamma_scaled(a, b, self.tolerance)
        if b == 0:
            return 1.0 / n if n > 0 else -np.euler_gamma - 2.0 * math.log(lam)
        return complex(
            upper_gamma_scaled(-n, b, self.tolerance)
            + (-1) ** n / math.factorial(n) * b**n * (math.log(b) - 2.0 * math.log(lam))
        )

    def evaluate(self, nu: complex, x, y, regularized: bool = False) -> EvaluationResult:
        """Evaluate ``Z(x, y)`` or its regularization.

        The value is returned only if its estimated error is within the relative
        tolerance. When the first truncation, which is relative to the size of
        the terms, is not enough because the terms cancel, both sums are
        repeated with their tails measured against the value itself.

        Parameters
        ----------
        nu:
            Complex exponent of the distance.
        x:
            Cartesian shift vector.
        y:
            Cartesian phase vector (dual space).
        regularized:
            If ``True`` evaluate ``exp(2 pi i x.y) Z(x, y) - s_nu(y) / V``, which
            is analytic in ``y`` around ``0``.

        Returns
        -------
        EvaluationResult

        Raises
        ------
        InvalidLatticeError
            For malformed vectors or a non-finite exponent.
        NumericOverflowError
            At the pole ``nu = d`` with ``y`` in the dual lattice, or if the
            normalization is not representable.
        NonConvergenceError
            If a lattice sum exhausts its budget, or if rounding in cancelling
            terms keeps the error above the tolerance. ``partial`` holds the
            combined value of everything summed and ``error`` estimates its
            distance to the true value (a bound for an exhausted budget).
        """
        state = self._transition(EvaluationState.INIT)
        nu = complex(nu)
        if not np.isfinite(nu):
            raise InvalidLatticeError(f"The exponent nu needs to be finite, got {nu}")
        form = self.form
        x = form.check_vector(x, "shift vector x")
        y = form.check_vector(y, "phase vector y")
        dim = form.dim
        lam = self.precision.splitting_parameter
        weight = lam**dim / form.volume

        x_reduced, x_offset = form.reduce(x)
        x_on_lattice = not np.any(x_reduced)
        if regularized:
            phase = 1.0 + 0j
            y_sum = y
            shift_phase = 1.0 + 0j

            def include(shell: Shell) -> np.ndarray:
                return np.any(shell.coordinates != 0, axis=1)

        else:
            phase = complex(_phases(x_offset, form.basis.T @ y))
            y_sum, _ = form.dual.reduce(y)
            shift_phase = np.exp(-2j * np.pi * float(np.dot(x_reduced, y_sum)))

            def include(shell: Shell) -> np.ndarray:
                return np.ones(len(shell), dtype=bool)

        y_lattice = form.basis.T @ y_sum
        x_dual = form.coordinates(x_reduced)
        a_reciprocal = (dim - nu) / 2
        self.log.debug(
            f"nu = {nu}, lambda = {lam:.6g}, reduced x = {x_reduced}, "
            f"y = {y_sum}, x on lattice: {x_on_lattice}"
        )

        try:
            prefactor, lattice_point = self.precision.normalization(nu)
            if not (np.isfinite(prefactor) and np.isfinite(lattice_point)):
                raise NumericOverflowError(
                    f"The normalization at nu = {nu} is not representable"
                )
            log_prefactor = self.precision.log_prefactor(nu)
            if log_prefactor is not None:
                direct_kernel = ScaledUpperGamma(nu / 2, self.tolerance, log_prefactor)
                reciprocal_kernel = ScaledUpperGamma(
                    a_reciprocal, self.tolerance, log_prefactor
                )
            origin = (
                prefactor * self._regularized_origin(a_reciprocal, y) if regularized else 0j
            )
            if not x_on_lattice:
                lattice_point = 0j

            def run_sums(limit: float) -> tuple[PartialSum, PartialSum]:
                nonlocal state
                state = self._transition(EvaluationState.DIRECT_SUM)
                if log_prefactor is None:
                    # 1 / Gamma(nu/2) vanishes, only the lattice-point term is left
                    return PartialSum(tail=0.0), PartialSum(tail=0.0)
                direct = self._lattice_sum(
                    form,
                    x_reduced,
                    lam,
                    direct_kernel,
                    lambda m: _phases(m, y_lattice),
                    lambda shell: shell.squared_distances > 0,
                    1.0,
                    0.0,
                    limit,
                )
                state = self._transition(EvaluationState.RECIPROCAL_SUM)
                reciprocal = self._lattice_sum(
                    form.dual,
                    -y_sum,
                    1.0 / lam,
                    reciprocal_kernel,
                    lambda n: shift_phase * _phases(n, x_dual),
                    include,
                    weight,
                    direct.absolute,
                    limit,
                )
                return direct, reciprocal

            def combine(
                direct: PartialSum, reciprocal: PartialSum
            ) -> tuple[complex, float, float]:
                if regularized:
                    bracket = (
                        np.exp(2j * np.pi * float(np.dot(x_reduced, y))) * direct.value
                        + weight * (reciprocal.value + origin)
                    )
                else:
                    bracket = direct.value + weight * reciprocal.value
                value = complex(phase * (bracket - lattice_point))
                magnitude = (
                    direct.absolute
                    + weight * (reciprocal.absolute + abs(origin))
                    + abs(lattice_point)
                )
                error = (
                    direct.tail
                    + weight * reciprocal.tail
                    + _ROUNDING_ULPS * EPS * magnitude
                )
                return value, error, magnitude

            direct, reciprocal = run_sums(math.inf)
            state = self._transition(EvaluationState.COMBINE)
            value, error, magnitude = combine(direct, reciprocal)
            goal = self.tolerance.relative * abs(value)
            rounding = _ROUNDING_ULPS * EPS * magnitude
            if (
                error > goal
                and 2 * rounding <= goal
                and not (direct.exhausted or reciprocal.exhausted)
            ):
                self.log.debug(
                    f"Tail bounds {error - rounding:.3e} above {goal:.3e}, "
                    "summing again relative to the value"
                )
                direct, reciprocal = run_sums(
                    0.5 * self.tolerance.safety * (goal - rounding)
                )
                state = self._transition(EvaluationState.COMBINE)
                value, error, magnitude = combine(direct, reciprocal)
                goal = self.tolerance.relative * abs(value)

            if direct.exhausted or reciprocal.exhausted:
                raise NonConvergenceError(
                    f"Lattice sums not converged after {direct.points} direct and "
                    f"{reciprocal.points} reciprocal points "
                    f"(radii {direct.radius:.4g} and {reciprocal.radius:.4g})",
                    partial=value,
                    error=error,
                )
            if error > goal:
                self.log.warning(
                    f"Cancellation in the lattice sums: |Z| = {abs(value):.3e} "
                    f"from terms of size {magnitude:.3e}"
                )
                raise NonConvergenceError(
                    f"Estimated error {error:.3e} exceeds the relative tolerance "
                    f"{self.tolerance.relative:.1e} of |Z| = {abs(value):.3e}",
                    partial=value,
                    error=error,
                )
        except Exception:
            self._transition(EvaluationState.FAILED)
            self.log.debug(f"Evaluation failed in state {state.name}")
            raise

        self._transition(EvaluationState.DONE)
        return EvaluationResult(
            value=value,
            error=error,
            direct_points=direct.points,
            reciprocal_points=reciprocal.points,
            splitting_parameter=lam,
            regularized=regularized,
        )
