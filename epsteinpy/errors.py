"""Exceptions raised by the evaluation routines.

All errors are local to a single evaluation call. They are raised to the caller
of the public entry points and never retried internally.
"""

from __future__ import annotations


class EpsteinZetaError(Exception):
    """Base class for all errors raised by :mod:`epsteinpy`."""


class InvalidLatticeError(EpsteinZetaError, ValueError):
    """The quadratic form is not symmetric positive definite, or inputs have
    mismatching dimensions."""


class NonConvergenceError(EpsteinZetaError, ArithmeticError):
    """A truncated sum or an iterative kernel did not reach the tolerance.

    Parameters
    ----------
    message:
        Human readable description.
    partial:
        Best available partial result at the time the budget was exhausted.
    error:
        Estimated absolute error of ``partial``.
    """

    def __init__(
        self, message: str, partial: complex = complex("nan"), error: float = float("inf")
    ):
        super().__init__(message)
        self.partial = partial
        self.error = error


class NumericOverflowError(EpsteinZetaError, OverflowError):
    """The value is not representable, e.g. at a genuine pole in ``nu``."""
