"""Index wrapping under periodic and non-periodic boundary conditions."""

from __future__ import annotations

from typing import Any, Sequence

import numpy as np


def smart_wrap(i: int, shape: int, pbc: bool) -> int:
    """Map a grid index onto a grid of ``shape`` cells.

    Args:
        i: Integer grid index, possibly outside the grid.
        shape: Number of grid cells along the axis (positive).
        pbc: Whether the axis is periodic.

    Returns:
        ``i`` if it already lies in ``[0, shape)``. Otherwise ``i % shape``
        (always in ``[0, shape)``) for a periodic axis, or ``-1`` for a
        non-periodic axis, meaning that no valid image exists.
    """
    if 0 <= i < shape:
        return int(i)
    if pbc:
        # Python's modulo already has the sign of the divisor.
        return int(i % shape)
    return -1


def wrap_indices(
    indices: Any,
    shape: Sequence[int],
    pbc: Sequence[bool],
    *,
    sentinel: bool = False,
) -> np.ndarray:
    """Vectorized counterpart of :func:`smart_wrap` for integer arrays.

    Args:
        indices: Integer array of shape (n, k).
        shape: Grid extents, length k.
        pbc: Periodicity flags, length k.
        sentinel: If True, out-of-range indices along non-periodic axes are
            replaced by -1 (exactly as :func:`smart_wrap`). If False they are
            left unchanged.

    Returns:
        A new int64 array of shape (n, k).
    """
    idx = np.array(indices, dtype=np.int64, copy=True)
    if idx.ndim != 2:
        raise ValueError('indices must have shape (n, k)')
    k = idx.shape[1]
    if len(shape) != k or len(pbc) != k:
        raise ValueError('shape and pbc must have one entry per index column')
    for axis in range(k):
        n = int(shape[axis])
        if n <= 0:
            raise ValueError('shape entries must be positive')
        col = idx[:, axis]
        if bool(pbc[axis]):
            idx[:, axis] = np.mod(col, n)
        elif sentinel:
            idx[(col < 0) | (col >= n), axis] = -1
    return idx
