"""Lattices and their positive definite quadratic forms.

A lattice ``Λ = A Z^d`` is stored through its basis matrix ``A`` (basis vectors
are the columns). The quadratic form is ``Q(m) = m^T A^T A m``; its dual form
belongs to the reciprocal lattice ``Λ* = A^{-T} Z^d``.
"""

from functools import cached_property

import numpy as np

from epsteinpy.errors import InvalidLatticeError

# Fractional lattice coordinates closer than this (relative) to an integer are
# snapped, so shift vectors on the lattice are recognised exactly.
_SNAP = 16 * np.finfo(float).eps


def _readonly(array: np.ndarray) -> np.ndarray:
    array.setflags(write=False)
    return array


def check_real_vector(vector, dim: int, name: str = "vector") -> np.ndarray:
    """Validate a real vector of length ``dim`` and return it as a float array."""
    vector = np.atleast_1d(np.asarray(vector))
    if np.iscomplexobj(vector):
        raise InvalidLatticeError(f"The {name} needs to be real")
    vector = vector.astype(float)
    if vector.shape != (dim,):
        raise InvalidLatticeError(
            f"The {name} needs {dim} components, got shape {vector.shape}"
        )
    if not np.all(np.isfinite(vector)):
        raise InvalidLatticeError(f"The {name} contains non-finite entries")
    return vector


class QuadraticForm:
    """Immutable lattice basis with its derived quantities.

    Parameters
    ----------
    basis:
        Real ``(d, d)`` matrix whose columns span the lattice.

    Raises
    ------
    InvalidLatticeError
        If the matrix is not square, not finite or (numerically) singular.
    """

    def __init__(self, basis: np.ndarray):
        basis = np.array(basis, dtype=float, copy=True)
        if basis.ndim == 0:
            basis = basis.reshape(1, 1)
        if basis.ndim != 2 or basis.shape[0] != basis.shape[1] or basis.shape[0] < 1:
            raise InvalidLatticeError(
                f"The lattice matrix needs to be square, got shape {basis.shape}"
            )
        if not np.all(np.isfinite(basis)):
            raise InvalidLatticeError("The lattice matrix contains non-finite entries")

        singular_values = np.linalg.svd(basis, compute_uv=False)
        if singular_values[-1] <= singular_values[0] * basis.shape[0] * 1e3 * np.finfo(
            float
        ).eps:
            raise InvalidLatticeError(
                "The lattice matrix is singular, its vectors do not span a lattice"
            )
        gram = basis.T @ basis
        try:
            np.linalg.cholesky(gram)
        except np.linalg.LinAlgError as err:
            raise InvalidLatticeError(
                "The quadratic form of the lattice is not positive definite"
            ) from err

        self._basis = _readonly(basis)
        self._gram = _readonly(gram)
        self._singular_values = _readonly(singular_values)

    @classmethod
    def from_basis(cls, basis: np.ndarray) -> "QuadraticForm":
        return cls(basis)

    @classmethod
    def from_gram(cls, gram: np.ndarray) -> "QuadraticForm":
        """Build the form from a Gram matrix ``G = A^T A``.

        The returned basis is the upper triangular ``A = L^T`` of the Cholesky
        factorization ``G = L L^T``.
        """
        gram = np.array(gram, dtype=float, copy=True)
        if gram.ndim == 0:
            gram = gram.reshape(1, 1)
        if gram.ndim != 2 or gram.shape[0] != gram.shape[1] or gram.shape[0] < 1:
            raise InvalidLatticeError(
                f"The Gram matrix needs to be square, got shape {gram.shape}"
            )
        if not np.all(np.isfinite(gram)):
            raise InvalidLatticeError("The Gram matrix contains non-finite entries")
        scale = np.max(np.abs(gram))
        if not np.allclose(gram, gram.T, rtol=1e-12, atol=1e-12 * scale):
            raise InvalidLatticeError("The Gram matrix is not symmetric")
        try:
            lower = np.linalg.cholesky(0.5 * (gram + gram.T))
        except np.linalg.LinAlgError as err:
            raise InvalidLatticeError("The Gram matrix is not positive definite") from err
        if np.any(np.diag(lower) <= 0):
            raise InvalidLatticeError("The Gram matrix is not positive definite")
        return cls(lower.T)

    @property
    def dim(self) -> int:
        return self._basis.shape[0]

    @property
    def basis(self) -> np.ndarray:
        return self._basis

    @property
    def gram(self) -> np.ndarray:
        return self._gram

    @cached_property
    def determinant(self) -> float:
        return float(np.linalg.det(self._basis))

    @cached_property
    def volume(self) -> float:
        """Volume of the unit cell, ``|det A|``."""
        return abs(self.determinant)

    @cached_property
    def inverse(self) -> np.ndarray:
        return _readonly(np.linalg.inv(self._basis))

    @cached_property
    def dual(self) -> "QuadraticForm":
        """Form of the reciprocal lattice, basis ``A^{-T}``."""
        return QuadraticForm(self.inverse.T)

    @property
    def smallest_singular_value(self) -> float:
        """Lower bound of ``|A m| / |m|``."""
        return float(self._singular_values[-1])

    @cached_property
    def cell_radius(self) -> float:
        """Upper bound of the distance from a cell center to its corners.

        Every point of the parallelepiped ``A [-1/2, 1/2)^d`` lies within this
        radius of the origin.
        """
        return 0.5 * float(np.sum(np.linalg.norm(self._basis, axis=0)))

    def check_vector(self, vector, name: str = "vector") -> np.ndarray:
        """Validate a shift vector of this lattice's dimension."""
        return check_real_vector(vector, self.dim, name)

    def coordinates(self, vector: np.ndarray) -> np.ndarray:
        """Lattice coordinates ``A^{-1} v`` of a Cartesian vector."""
        return self.inverse @ vector

    def reduce(self, vector: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        """Split ``v = v_reduced + A m0`` with ``v_reduced`` in the centered cell.

        Returns
        -------
        reduced:
            Cartesian vector in ``A [-1/2, 1/2]^d``.
        offset:
            Integer lattice coordinates ``m0``.
        """
        coordinates = self.coordinates(vector)
        offset = np.rint(coordinates)
        fraction = coordinates - offset
        fraction[np.abs(fraction) <= _SNAP * np.maximum(1.0, np.abs(coordinates))] = 0.0
        return self._basis @ fraction, offset.astype(np.int64)

    def contains(self, vector: np.ndarray) -> bool:
        """Whether ``vector`` is a lattice point (up to rounding)."""
        reduced, _ = self.reduce(vector)
        return not np.any(reduced)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(dim={self.dim}, volume={self.volume:.6g})"
