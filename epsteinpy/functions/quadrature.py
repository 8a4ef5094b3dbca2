import logging
import math
from collections.abc import Callable

import numpy as np

from epsteinpy.errors import NonConvergenceError

log = logging.getLogger(__name__)

# Nodes with |t| > T_MAX carry weights below 1e-35 relative to the center.
T_MAX = 4.0
START_LEVEL = 3


def tanh_sinh_nodes(level: int) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Nodes and weights of the tanh-sinh rule with step ``2 ** -level``.

    Nodes are returned as distances from the nearer endpoint, in units of the
    half width, so that points close to an endpoint keep full relative
    precision.

    Returns
    -------
    left:
        Mask of the nodes measured from the lower endpoint.
    delta:
        Distance ``1 - tanh(pi/2 sinh t)`` from the nearer endpoint.
    weights:
        ``pi/2 h cosh t / cosh(pi/2 sinh t) ** 2``.
    """
    step = 2.0**-level
    count = int(math.ceil(T_MAX / step))
    t = step * np.arange(-count, count + 1)
    q = 0.5 * math.pi * np.sinh(t)
    delta = 2.0 / (1.0 + np.exp(2.0 * np.abs(q)))
    weights = 0.5 * math.pi * step * np.cosh(t) / np.cosh(q) ** 2
    return t <= 0, delta, weights


def tanh_sinh(
    integrand: Callable[[np.ndarray], np.ndarray],
    lower: float,
    upper: float,
    tolerance: float,
    max_level: int,
) -> tuple[complex, float]:
    """Integrate a smooth function over ``[lower, upper]``.

    The step is halved until two consecutive levels agree to ``tolerance``
    relative to the integral of ``|integrand|``.

    Parameters
    ----------
    integrand:
        Vectorized function, evaluated on arrays of nodes.
    lower, upper:
        Finite interval.
    tolerance:
        Relative agreement between levels.
    max_level:
        Finest level, the rule then has ``2 ** (max_level + 3)`` nodes.

    Returns
    -------
    value:
        Integral.
    error:
        Difference to the previous level.

    Raises
    ------
    NonConvergenceError
        If ``max_level`` is reached without agreement.
    """
    half_width = 0.5 * (upper - lower)
    previous = None
    error = math.inf
    value = 0j
    for level in range(START_LEVEL, max_level + 1):
        left, delta, weights = tanh_sinh_nodes(level)
        nodes = np.where(left, lower + half_width * delta, upper - half_width * delta)
        samples = integrand(nodes)
        value = complex(half_width * np.sum(weights * samples))
        scale = half_width * float(np.sum(weights * np.abs(samples)))
        if previous is not None:
            error = abs(value - previous)
            if error <= tolerance * scale:
                log.debug(f"tanh-sinh converged at level {level}, error {error:.3e}")
                return value, error
        previous = value
    raise NonConvergenceError(
        f"tanh-sinh quadrature did not converge within level {max_level}",
        partial=value,
        error=error,
    )
