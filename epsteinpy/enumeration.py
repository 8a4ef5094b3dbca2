"""Enumeration of lattice points in order of increasing distance.

Points are produced in radial shells ``[j d, (j + 1) d)`` around an arbitrary
center. Internally they come from L-infinity box shells in lattice coordinates;
a box shell is only generated once the radial shells reach the smallest
distance its points can have.
"""

import logging
from collections.abc import Iterator
from dataclasses import dataclass

import numpy as np

from epsteinpy.lattice import QuadraticForm

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Shell:
    """Lattice points with distance in ``[inner, outer)`` from the center.

    Attributes
    ----------
    index:
        Shell number ``j``.
    inner, outer:
        Radial bounds.
    coordinates:
        Integer lattice coordinates, shape ``(n, d)``, sorted by distance and
        then lexicographically.
    squared_distances:
        ``|A m - center| ** 2`` for each point.
    """

    index: int
    inner: float
    outer: float
    coordinates: np.ndarray
    squared_distances: np.ndarray

    def __len__(self) -> int:
        return self.squared_distances.size


def box_shell(dim: int, size: int) -> np.ndarray:
    """Integer points with ``max_i |m_i| == size``, in lexicographic order."""
    if size == 0:
        return np.zeros((1, dim), dtype=np.int64)
    grid = np.indices((2 * size + 1,) * dim).reshape(dim, -1).T - size
    return grid[np.max(np.abs(grid), axis=1) == size].astype(np.int64)


def iter_shells(
    form: QuadraticForm, center: np.ndarray, thickness: float | None = None
) -> Iterator[Shell]:
    """Lazily yield the radial shells of lattice points around ``center``.

    Every call starts a new enumeration, so the sequence can be restarted by
    calling the function again. The order of the points is fully determined by
    the inputs.

    Parameters
    ----------
    form:
        Lattice.
    center:
        Cartesian center of the shells.
    thickness:
        Radial width of a shell, defaults to the smallest singular value of the
        basis.

    Yields
    ------
    Shell
        Possibly empty shells, ``j = 0, 1, 2, ...``.
    """
    center = np.asarray(center, dtype=float)
    sigma = form.smallest_singular_value
    if thickness is None:
        thickness = sigma
    center_coordinates = form.coordinates(center)
    origin = np.rint(center_coordinates).astype(np.int64)
    relative_center = center_coordinates - origin

    pending = np.empty((0, form.dim), dtype=np.int64)
    pending_distances = np.empty(0, dtype=float)
    box = -1
    index = 0
    while True:
        outer = (index + 1) * thickness
        # Points in box shell b are at least sigma * (b - 1/2) away from the center.
        while sigma * (box + 0.5) < outer:
            box += 1
            offsets = box_shell(form.dim, box)
            difference = (offsets - relative_center) @ form.basis.T
            pending = np.concatenate([pending, offsets + origin])
            pending_distances = np.concatenate(
                [pending_distances, np.sum(difference**2, axis=1)]
            )
            log.debug(f"Box shell {box} generated, {pending.shape[0]} points pending")

        inside = pending_distances < outer**2
        coordinates = pending[inside]
        distances = pending_distances[inside]
        order = np.lexsort(tuple(coordinates[:, ::-1].T) + (distances,))
        pending = pending[~inside]
        pending_distances = pending_distances[~inside]

        yield Shell(
            index=index,
            inner=index * thickness,
            outer=outer,
            coordinates=coordinates[order],
            squared_distances=distances[order],
        )
        index += 1
