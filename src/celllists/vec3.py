"""Small fixed-size vector algebra.

Helpers for 3-vectors and 3x3 matrices stored as numpy arrays. Matrices are
row-major: ``mat[i]`` is the i-th vector. Most functions also accept a batch
of vectors with shape ``(n, 3)``.

Nothing here uses pivoting or iterative solvers; :func:`inverse3` is the
plain cofactor/determinant formula.
"""

from __future__ import annotations

import numpy as np


def norm(vec: np.ndarray) -> np.ndarray | float:
    """Euclidean norm along the last axis."""
    return np.sqrt(normsq(vec))


def normsq(vec: np.ndarray) -> np.ndarray | float:
    v = np.asarray(vec, dtype=np.float64)
    return np.sum(v * v, axis=-1)


def dot(vec1: np.ndarray, vec2: np.ndarray) -> np.ndarray | float:
    v1 = np.asarray(vec1, dtype=np.float64)
    v2 = np.asarray(vec2, dtype=np.float64)
    return np.sum(v1 * v2, axis=-1)


def distance(vec1: np.ndarray, vec2: np.ndarray) -> np.ndarray | float:
    d = np.asarray(vec1, dtype=np.float64) - np.asarray(vec2, dtype=np.float64)
    return np.sqrt(np.sum(d * d, axis=-1))


def cross(vec1: np.ndarray, vec2: np.ndarray) -> np.ndarray:
    v1 = np.asarray(vec1, dtype=np.float64)
    v2 = np.asarray(vec2, dtype=np.float64)
    return np.stack(
        [
            v1[..., 1] * v2[..., 2] - v1[..., 2] * v2[..., 1],
            v1[..., 2] * v2[..., 0] - v1[..., 0] * v2[..., 2],
            v1[..., 0] * v2[..., 1] - v1[..., 1] * v2[..., 0],
        ],
        axis=-1,
    )


def triple(vec1: np.ndarray, vec2: np.ndarray, vec3: np.ndarray) -> float:
    """Scalar triple product ``vec1 . (vec2 x vec3)``."""
    return float(dot(vec1, cross(vec2, vec3)))


def normalize(vec: np.ndarray) -> np.ndarray:
    """Return ``vec`` scaled to unit length.

    The caller is responsible for passing a nonzero vector.
    """
    v = np.asarray(vec, dtype=np.float64)
    return v / norm(v)


def matvec(mat: np.ndarray, vec: np.ndarray) -> np.ndarray:
    """Return ``mat @ vec``, i.e. the dot product of ``vec`` with each row.

    For a batch of vectors (shape ``(n, 3)``), the product is applied row by
    row.
    """
    return np.asarray(vec, dtype=np.float64) @ np.asarray(mat, dtype=np.float64).T


def tmatvec(mat: np.ndarray, vec: np.ndarray) -> np.ndarray:
    """Return ``mat.T @ vec``, i.e. the linear combination of the rows."""
    return np.asarray(vec, dtype=np.float64) @ np.asarray(mat, dtype=np.float64)


def iadd(output: np.ndarray, term: np.ndarray, scale: float = 1.0) -> None:
    """Accumulate ``scale * term`` into ``output`` in place."""
    output += scale * np.asarray(term, dtype=np.float64)


def inverse3(mat: np.ndarray) -> tuple[np.ndarray, float]:
    """Invert a 3x3 matrix with Cramer's rule.

    Args:
        mat: Array of shape (3, 3).

    Returns:
        ``(inverse, det)``. When ``mat`` stores vectors as rows, the rows of
        ``inverse.T`` are the dual (reciprocal) vectors, so that
        ``inverse.T[i] . mat[j] == delta_ij``.

    Raises:
        ZeroDivisionError: If the determinant is exactly zero.
    """
    m = np.asarray(mat, dtype=np.float64)
    # Rows of the cofactor matrix are cross products of the other two rows.
    cof = np.stack(
        [
            cross(m[1], m[2]),
            cross(m[2], m[0]),
            cross(m[0], m[1]),
        ]
    )
    det = float(dot(cof[0], m[0]))
    if det == 0.0:
        raise ZeroDivisionError('matrix is singular (det == 0)')
    return cof.T / det, det
