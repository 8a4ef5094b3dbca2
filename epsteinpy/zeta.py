"""Public entry points.

Thin functions that validate the raw inputs, build the immutable lattice and
tolerance objects of one call and hand over to the summation engine or the
incomplete Bessel kernel.
"""

import numpy as np

from epsteinpy.config import ToleranceSpec
from epsteinpy.errors import InvalidLatticeError
from epsteinpy.functions.incomplete_bessel import incomplete_bessel
from epsteinpy.lattice import QuadraticForm, check_real_vector
from epsteinpy.summation import EpsteinZeta


def _check_dim(dim: int) -> int:
    if isinstance(dim, bool) or int(dim) != dim or dim < 1:
        raise InvalidLatticeError(f"The dimension needs to be a positive integer, got {dim}")
    return int(dim)


def _setup(
    dim: int, basis_or_gram, x, y, gram: bool
) -> tuple[QuadraticForm, np.ndarray, np.ndarray]:
    dim = _check_dim(dim)
    matrix = np.asarray(basis_or_gram, dtype=float)
    if matrix.ndim == 0:
        matrix = matrix.reshape(1, 1)
    if matrix.shape != (dim, dim):
        raise InvalidLatticeError(
            f"The lattice matrix needs shape ({dim}, {dim}), got {matrix.shape}"
        )
    if gram:
        # Shift vectors are lattice coordinates for Gram input.
        form = QuadraticForm.from_gram(matrix)
        x = form.check_vector(x, "shift vector x")
        y = form.check_vector(y, "phase vector y")
        return form, form.basis @ x, form.dual.basis @ y
    return QuadraticForm.from_basis(matrix), x, y


def evaluate_incomplete_bessel(
    nu: complex,
    dim: int,
    x,
    y,
    tolerance: ToleranceSpec | float | None = None,
) -> complex:
    """Upper incomplete Bessel function ``G_nu(x, y)``.

    Parameters
    ----------
    nu:
        Complex exponent.
    dim:
        Length of ``x`` and ``y``.
    x, y:
        Real vectors.
    tolerance:
        Tolerance specification, a relative tolerance or ``None``.

    Returns
    -------
    complex
    """
    dim = _check_dim(dim)
    return incomplete_bessel(
        nu,
        check_real_vector(x, dim, "vector x"),
        check_real_vector(y, dim, "vector y"),
        tolerance,
    )


def evaluate_epstein_zeta(
    nu: complex,
    dim: int,
    basis_or_gram,
    x,
    y,
    tolerance: ToleranceSpec | float | None = None,
    gram: bool = False,
) -> complex:
    """Epstein zeta function ``Z_{L,nu}(x, y) = sum'_z exp(-2 pi i y.z) |z - x|**(-nu)``.

    Parameters
    ----------
    nu:
        Complex exponent.
    dim:
        Dimension ``d``.
    basis_or_gram:
        ``(d, d)`` basis matrix with the basis vectors as columns, or the Gram
        matrix if ``gram`` is set.
    x, y:
        Shift and phase vector; Cartesian for a basis, lattice coordinates
        (of the lattice and of its dual) for a Gram matrix.
    tolerance:
        Tolerance specification, a relative tolerance or ``None``.
    gram:
        Interpret ``basis_or_gram`` as Gram matrix.

    Returns
    -------
    complex
    """
    form, x, y = _setup(dim, basis_or_gram, x, y, gram)
    return EpsteinZeta(form, tolerance).evaluate(nu, x, y).value


def evaluate_epstein_zeta_reg(
    nu: complex,
    dim: int,
    basis_or_gram,
    x,
    y,
    tolerance: ToleranceSpec | float | None = None,
    gram: bool = False,
) -> complex:
    """Regularized Epstein zeta function ``exp(2 pi i x.y) Z(x, y) - s_nu(y) / V``.

    Arguments as for :func:`evaluate_epstein_zeta`. The result is analytic in
    ``y`` around ``0``; for ``nu = d + 2n`` the removed singularity contains a
    logarithm.
    """
    form, x, y = _setup(dim, basis_or_gram, x, y, gram)
    return EpsteinZeta(form, tolerance).evaluate(nu, x, y, regularized=True).value
