import logging

import click
import numpy as np

from epsteinpy.config import ToleranceSpec
from epsteinpy.lattice import QuadraticForm
from epsteinpy.summation import EpsteinZeta
from epsteinpy.zeta import evaluate_incomplete_bessel


def _vector(text: str) -> np.ndarray:
    return np.array([float(entry) for entry in text.split(",")])


def _matrix(text: str) -> np.ndarray:
    return np.array([_vector(row) for row in text.split(";")])


def _tolerance(tolerance: str | None, relative: float | None) -> ToleranceSpec | None:
    if tolerance:
        spec = ToleranceSpec.from_file(tolerance)
        if relative is not None:
            spec = spec.model_copy(update={"relative": relative})
        return spec
    if relative is not None:
        return ToleranceSpec(relative=relative)
    return None


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Log the evaluation steps.")
def cli(verbose: bool) -> None:
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING)


@cli.command()
@click.option("--nu", required=True, type=complex, help="Exponent, e.g. 1 or 2.5+1j.")
@click.option(
    "--matrix",
    required=True,
    type=str,
    help="Basis (columns are basis vectors) or Gram matrix, rows separated by ';'.",
)
@click.option("--x", "shift", required=True, type=str, help="Shift vector, e.g. 0,0,0.")
@click.option("--y", "phase", required=True, type=str, help="Phase vector, e.g. 0.5,0.5,0.5.")
@click.option("--gram", is_flag=True, help="Interpret the matrix as Gram matrix.")
@click.option("--regularized", is_flag=True, help="Evaluate the regularized function.")
@click.option("--relative", type=float, default=None, help="Relative tolerance.")
@click.option(
    "--tolerance",
    type=str,
    default="",
    help="Path to a json or yaml tolerance file.",
)
def zeta(
    nu: complex,
    matrix: str,
    shift: str,
    phase: str,
    gram: bool,
    regularized: bool,
    relative: float | None,
    tolerance: str,
) -> None:
    """Evaluate the Epstein zeta function."""
    matrix = _matrix(matrix)
    x = _vector(shift)
    y = _vector(phase)
    if gram:
        form = QuadraticForm.from_gram(matrix)
        x, y = form.basis @ x, form.dual.basis @ y
    else:
        form = QuadraticForm.from_basis(matrix)
    result = EpsteinZeta(form, _tolerance(tolerance, relative)).evaluate(
        nu, x, y, regularized=regularized
    )
    click.echo(f"value: {result.value.real:.17g} {result.value.imag:+.17g}j")
    click.echo(f"error: {result.error:.3e}")
    click.echo(
        f"points: {result.direct_points} direct, {result.reciprocal_points} reciprocal"
    )


@cli.command()
@click.option("--nu", required=True, type=complex, help="Exponent.")
@click.option("--x", "k", required=True, type=str, help="First vector, e.g. 1.2.")
@click.option("--y", "r", required=True, type=str, help="Second vector, e.g. 1.3.")
@click.option("--relative", type=float, default=None, help="Relative tolerance.")
def bessel(nu: complex, k: str, r: str, relative: float | None) -> None:
    """Evaluate the upper incomplete Bessel function."""
    k = _vector(k)
    r = _vector(r)
    value = evaluate_incomplete_bessel(nu, k.size, k, r, relative)
    click.echo(f"value: {value.real:.17g} {value.imag:+.17g}j")
