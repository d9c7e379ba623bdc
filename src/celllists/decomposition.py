"""Binning of points into the grid cells of a sub-cell.

A *sub-cell* is a :class:`~celllists.Cell` whose vectors span one grid cell,
typically the simulation cell divided by the grid shape along each axis.
Each point gets the integer index of the grid cell that contains it:

    icell = floor(subcell.to_frac(point))

Sorting the points by icell makes every grid cell a contiguous range of the
sorted array, which :func:`create_cell_map` records in a dictionary. The
scheme is the same spatial hashing used for duplicate detection, with an
arbitrary (possibly sheared) grid instead of a cubic one.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence

import warnings

import numpy as np

from .cell import Cell
from .indexing import wrap_indices


CellMap = dict[tuple[int, int, int], tuple[int, int]]


@dataclass(frozen=True, slots=True)
class Decomposition:
    """Points grouped by grid cell.

    Attributes:
        order: Permutation that sorts the input points by grid cell.
        icells: Sorted grid-cell indices, shape (n, 3); ``icells[k]`` belongs
            to input point ``order[k]``.
        cell_map: Maps a grid-cell index to the half-open range ``(begin,
            end)`` of rows in ``order``/``icells``.
    """

    order: np.ndarray
    icells: np.ndarray
    cell_map: CellMap

    def points_in(self, icell: Sequence[int]) -> np.ndarray:
        """Return the input indices of the points in one grid cell."""
        key = (int(icell[0]), int(icell[1]), int(icell[2]))
        begin, end = self.cell_map.get(key, (0, 0))
        return self.order[begin:end]


def assign_icell(
    subcell: Cell,
    points: Any,
    shape: Sequence[int] | None = None,
    pbc: Sequence[bool] | None = None,
) -> np.ndarray:
    """Compute the grid-cell index of each point.

    Args:
        subcell: Cell spanning a single grid cell.
        points: Cartesian coordinates, shape (n, 3).
        shape: Optional grid extents (length 3). Required together with
            ``pbc``.
        pbc: Optional periodicity flags (length 3). Indices along periodic
            axes are wrapped into ``[0, shape)``; indices along non-periodic
            axes are left unchanged.

    Returns:
        int64 array of shape (n, 3).
    """
    pts = np.asarray(points, dtype=np.float64)
    if pts.ndim != 2 or pts.shape[1] != 3:
        raise ValueError('points must have shape (n, 3)')
    if (shape is None) != (pbc is None):
        raise ValueError('shape and pbc must be given together')

    icells = np.floor(subcell.to_frac(pts)).astype(np.int64)
    if shape is not None and pbc is not None:
        if len(shape) != 3 or len(pbc) != 3:
            raise ValueError('shape and pbc must have length 3')
        icells = wrap_indices(icells, shape, pbc)
    return icells


def sort_by_icell(icells: Any) -> np.ndarray:
    """Return the permutation that sorts grid-cell indices lexicographically."""
    ic = np.asarray(icells, dtype=np.int64)
    if ic.ndim != 2 or ic.shape[1] != 3:
        raise ValueError('icells must have shape (n, 3)')
    # lexsort uses the last key as the primary one.
    return np.lexsort((ic[:, 2], ic[:, 1], ic[:, 0]))


def create_cell_map(icells: Any) -> CellMap:
    """Map each grid cell to its contiguous range of rows.

    Args:
        icells: Grid-cell indices of shape (n, 3), sorted lexicographically
            (see :func:`sort_by_icell`).

    Returns:
        Dictionary from ``(i, j, k)`` to the half-open row range
        ``(begin, end)``.

    Raises:
        ValueError: If ``icells`` is not sorted.
    """
    ic = np.asarray(icells, dtype=np.int64)
    if ic.ndim != 2 or ic.shape[1] != 3:
        raise ValueError('icells must have shape (n, 3)')

    cell_map: CellMap = {}
    n = int(ic.shape[0])
    begin = 0
    prev: tuple[int, int, int] | None = None
    for row in range(n):
        key = (int(ic[row, 0]), int(ic[row, 1]), int(ic[row, 2]))
        if prev is not None and key != prev:
            if key < prev:
                raise ValueError('icells must be sorted (see sort_by_icell)')
            cell_map[prev] = (begin, row)
            begin = row
        prev = key
    if prev is not None:
        cell_map[prev] = (begin, n)
    return cell_map


def decompose(
    subcell: Cell,
    points: Any,
    shape: Sequence[int] | None = None,
    pbc: Sequence[bool] | None = None,
) -> Decomposition:
    """Bin points by grid cell and group them.

    Points that fall outside ``[0, shape)`` along a non-periodic axis are
    kept in their own (out-of-grid) cells and reported with a
    RuntimeWarning.

    Args:
        subcell: Cell spanning a single grid cell.
        points: Cartesian coordinates, shape (n, 3).
        shape: Optional grid extents (length 3).
        pbc: Optional periodicity flags (length 3).

    Returns:
        Decomposition
    """
    icells = assign_icell(subcell, points, shape, pbc)

    if shape is not None and pbc is not None:
        for axis in range(3):
            if bool(pbc[axis]):
                continue
            col = icells[:, axis]
            n_out = int(np.count_nonzero((col < 0) | (col >= int(shape[axis]))))
            if n_out:
                warnings.warn(
                    f'{n_out} point(s) lie outside the grid along non-periodic '
                    f'axis {axis}; they are binned into out-of-grid cells.',
                    RuntimeWarning,
                    stacklevel=2,
                )

    order = sort_by_icell(icells)
    sorted_icells = icells[order]
    return Decomposition(
        order=order,
        icells=sorted_icells,
        cell_map=create_cell_map(sorted_icells),
    )
