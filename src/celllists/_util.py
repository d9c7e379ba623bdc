"""Internal shared helpers.

Input coercion used by `cell` and `decomposition`, kept in one place so the
public modules report malformed arrays with the same messages.
"""

from __future__ import annotations

from typing import Any, Sequence

import numpy as np


def as_vectors(values: Any, name: str) -> np.ndarray:
    """Return ``values`` as a float64 array of shape (3,) or (n, 3)."""

    arr = np.asarray(values, dtype=np.float64)
    if arr.ndim not in (1, 2) or arr.shape[-1] != 3:
        raise ValueError(f'{name} must have shape (3,) or (n, 3)')
    if not np.all(np.isfinite(arr)):
        raise ValueError(f'{name} must contain only finite values')
    return arr


def as_point(values: Any, name: str) -> np.ndarray:
    """Return ``values`` as a single finite float64 3-vector."""

    arr = np.asarray(values, dtype=np.float64)
    if arr.shape != (3,):
        raise ValueError(f'{name} must be a length-3 vector')
    if not np.all(np.isfinite(arr)):
        raise ValueError(f'{name} must contain only finite values')
    return arr


def as_axis_ints(values: Sequence[Any], n: int, name: str) -> tuple[int, ...]:
    """Return the first ``n`` entries of ``values`` as plain Python ints."""

    if len(values) < n:
        raise ValueError(f'{name} must have at least {n} entries')
    return tuple(int(values[k]) for k in range(n))


def as_axis_bools(values: Sequence[Any], n: int, name: str) -> tuple[bool, ...]:
    if len(values) < n:
        raise ValueError(f'{name} must have at least {n} entries')
    return tuple(bool(values[k]) for k in range(n))
