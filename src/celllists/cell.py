"""Periodic lattices with 0, 1, 2 or 3 independent periodicity directions.

A :class:`Cell` stores up to three real lattice vectors. Missing directions
are filled with synthetic orthonormal vectors so that the full 3x3 matrix is
always invertible; the reciprocal vectors are the rows of its inverse
transpose. The synthetic directions take part in the coordinate transforms
but never in periodic translations (:meth:`Cell.wrap`,
:meth:`Cell.add_rvec`, :meth:`Cell.set_ranges_rcut`,
:meth:`Cell.select_inside`).

Conventions:
  - Fractional coordinates after wrapping lie in ``(-0.5, 0.5]``: half-way
    cases are always rounded up, never away from zero.
  - Index ranges are half-open, ``[begin, end)``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterator, Sequence

import numpy as np

from . import vec3
from ._util import as_axis_bools, as_axis_ints, as_point, as_vectors
from .errors import CellError, CellErrorKind
from .indexing import wrap_indices


def _lattice_volume(vec: np.ndarray) -> float:
    """Length, area or volume spanned by the given rows."""
    nvec = vec.shape[0]
    if nvec == 0:
        return 0.0
    if nvec == 1:
        return float(vec3.norm(vec[0]))
    if nvec == 2:
        # Gram determinant; round-off may push it slightly below zero.
        d = float(vec3.dot(vec[0], vec[1]))
        gram = float(vec3.normsq(vec[0]) * vec3.normsq(vec[1])) - d * d
        return float(np.sqrt(gram)) if gram > 0.0 else 0.0
    return abs(vec3.triple(vec[0], vec[1], vec[2]))


def _complete_from_two_vectors(rvecs: np.ndarray) -> None:
    rvecs[2] = vec3.normalize(vec3.cross(rvecs[0], rvecs[1]))


def _complete_from_one_vector(rvecs: np.ndarray) -> None:
    # Start from the Cartesian axis along which rvecs[0] is smallest.
    a = np.abs(rvecs[0])
    ismall = 0
    if a[1] < a[0]:
        ismall = 1
        if a[2] <= a[1]:
            ismall = 2
    elif a[2] < a[0]:
        ismall = 2
    axis = np.zeros(3, dtype=np.float64)
    axis[ismall] = 1.0
    rvecs[1] = vec3.normalize(vec3.cross(axis, rvecs[0]))
    _complete_from_two_vectors(rvecs)


def _complete_from_zero_vectors(rvecs: np.ndarray) -> None:
    rvecs[:] = np.eye(3, dtype=np.float64)


def _complete_triad(vec: np.ndarray) -> np.ndarray:
    """Return a right-handed, full-rank 3x3 matrix whose first rows are ``vec``."""
    rvecs = np.zeros((3, 3), dtype=np.float64)
    nvec = vec.shape[0]
    rvecs[:nvec] = vec
    if nvec == 0:
        _complete_from_zero_vectors(rvecs)
    elif nvec == 1:
        _complete_from_one_vector(rvecs)
    elif nvec == 2:
        _complete_from_two_vectors(rvecs)
    return rvecs


def _check_index(value: int, name: str) -> int:
    i = int(value)
    if i < 0 or i >= 3:
        raise CellError(
            CellErrorKind.INDEX_OUT_OF_RANGE, f'{name} must be 0, 1 or 2.'
        )
    return i


def _readonly(arr: np.ndarray) -> np.ndarray:
    arr.setflags(write=False)
    return arr


def _deliver(result: np.ndarray, out: np.ndarray | None) -> np.ndarray:
    if out is None:
        return result
    if out.shape != result.shape:
        raise ValueError(f'out must have shape {result.shape}')
    out[...] = result
    return out


@dataclass(frozen=True, slots=True)
class Cell:
    """Lattice with ``nvec`` periodic directions embedded in 3D space.

    Args:
        vectors: Real lattice vectors, array-like of shape (nvec, 3) with
            ``nvec`` in 0..3. A flat sequence of ``3*nvec`` values is also
            accepted. Use ``()`` for a non-periodic (0D) system.

    Attributes:
        nvec: Number of real lattice vectors.
        rvecs: (3, 3) real-space vectors as rows; rows ``nvec..2`` are the
            synthetic completion vectors.
        gvecs: (3, 3) reciprocal vectors as rows, ``gvecs[i] . rvecs[j] ==
            delta_ij`` for the full triad.
        volume: Length (1D), area (2D) or volume (3D) spanned by the real
            vectors; 0 for a 0D cell.
        rlengths, glengths: Norms of the rows of ``rvecs`` and ``gvecs``.
        rspacings: Spacings between adjacent lattice planes (``1/glengths``).
        gspacings: Reciprocal-space dual spacings (``1/rlengths``).

    Raises:
        CellError: ``INVALID_DIMENSIONALITY`` if more than three vectors are
            given, ``SINGULAR_LATTICE`` if the real vectors span a zero
            length, area or volume.
        ValueError: If the input is malformed or not finite.
    """

    vectors: tuple[tuple[float, float, float], ...]
    nvec: int = field(init=False, compare=False)
    rvecs: np.ndarray = field(init=False, repr=False, compare=False)
    gvecs: np.ndarray = field(init=False, repr=False, compare=False)
    volume: float = field(init=False, repr=False, compare=False)
    rlengths: np.ndarray = field(init=False, repr=False, compare=False)
    glengths: np.ndarray = field(init=False, repr=False, compare=False)
    rspacings: np.ndarray = field(init=False, repr=False, compare=False)
    gspacings: np.ndarray = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        vec = np.asarray(self.vectors, dtype=np.float64)
        if vec.ndim == 1 and vec.size % 3 == 0:
            vec = vec.reshape(-1, 3)
        if vec.ndim != 2 or vec.shape[1] != 3:
            raise ValueError('vectors must have shape (nvec, 3)')
        nvec = int(vec.shape[0])
        if nvec > 3:
            raise CellError(
                CellErrorKind.INVALID_DIMENSIONALITY,
                'The number of cell vectors must be 0, 1, 2 or 3.',
            )
        if not np.all(np.isfinite(vec)):
            raise ValueError('vectors must contain only finite values')

        volume = _lattice_volume(vec)
        if nvec > 0 and volume == 0.0:
            raise CellError(
                CellErrorKind.SINGULAR_LATTICE, 'The cell vectors are degenerate.'
            )

        rvecs = _complete_triad(vec)
        inverse, _det = vec3.inverse3(rvecs)
        gvecs = np.ascontiguousarray(inverse.T)
        rlengths = np.asarray(vec3.norm(rvecs))
        glengths = np.asarray(vec3.norm(gvecs))

        object.__setattr__(
            self, 'vectors', tuple(tuple(float(x) for x in row) for row in vec)
        )
        object.__setattr__(self, 'nvec', nvec)
        object.__setattr__(self, 'rvecs', _readonly(rvecs))
        object.__setattr__(self, 'gvecs', _readonly(gvecs))
        object.__setattr__(self, 'volume', float(volume))
        object.__setattr__(self, 'rlengths', _readonly(rlengths))
        object.__setattr__(self, 'glengths', _readonly(glengths))
        object.__setattr__(self, 'rspacings', _readonly(1.0 / glengths))
        object.__setattr__(self, 'gspacings', _readonly(1.0 / rlengths))

    @classmethod
    def from_flat(cls, values: Sequence[float], nvec: int) -> 'Cell':
        """Create a cell from ``3*nvec`` concatenated vector components.

        Raises:
            CellError: ``INVALID_DIMENSIONALITY`` if ``nvec`` is not 0..3.
            ValueError: If ``values`` does not hold exactly ``3*nvec`` numbers.
        """
        n = int(nvec)
        if n < 0 or n > 3:
            raise CellError(
                CellErrorKind.INVALID_DIMENSIONALITY,
                'The number of cell vectors must be 0, 1, 2 or 3.',
            )
        flat = np.asarray(values, dtype=np.float64).ravel()
        if flat.size != 3 * n:
            raise ValueError(f'expected {3 * n} values for nvec={n}')
        return cls(vectors=flat.reshape(n, 3))

    # Index-checked accessors.

    def get_rvec(self, ivec: int, icomp: int) -> float:
        return float(
            self.rvecs[_check_index(ivec, 'ivec'), _check_index(icomp, 'icomp')]
        )

    def get_gvec(self, ivec: int, icomp: int) -> float:
        return float(
            self.gvecs[_check_index(ivec, 'ivec'), _check_index(icomp, 'icomp')]
        )

    def get_rlength(self, ivec: int) -> float:
        return float(self.rlengths[_check_index(ivec, 'ivec')])

    def get_glength(self, ivec: int) -> float:
        return float(self.glengths[_check_index(ivec, 'ivec')])

    def get_rspacing(self, ivec: int) -> float:
        return float(self.rspacings[_check_index(ivec, 'ivec')])

    def get_gspacing(self, ivec: int) -> float:
        return float(self.gspacings[_check_index(ivec, 'ivec')])

    # Shape classification.

    def is_cuboid(self) -> bool:
        """Return True if all real vectors are aligned with the Cartesian axes."""
        for i in range(self.nvec):
            for j in range(3):
                if j != i and self.rvecs[i, j] != 0.0:
                    return False
        return True

    def is_cubic(self) -> bool:
        """Return True for a cuboid cell whose real vectors have equal lengths."""
        if not self.is_cuboid():
            return False
        for i in range(1, self.nvec):
            if self.rvecs[i, i] != self.rvecs[0, 0]:
                return False
        return True

    # Coordinate transforms. All of them accept shape (3,) or (n, 3).

    def to_frac(self, cart: Any) -> np.ndarray:
        """Convert Cartesian coordinates to fractional coordinates."""
        return vec3.matvec(self.gvecs, as_vectors(cart, 'cart'))

    def to_cart(self, frac: Any) -> np.ndarray:
        """Convert fractional coordinates to Cartesian coordinates."""
        return vec3.tmatvec(self.rvecs, as_vectors(frac, 'frac'))

    def g_lincomb(self, coeffs: Any) -> np.ndarray:
        """Return the linear combination of reciprocal vectors ``coeffs @ gvecs``."""
        return vec3.tmatvec(self.gvecs, as_vectors(coeffs, 'coeffs'))

    def dot_rvecs(self, frac: Any) -> np.ndarray:
        """Return the dot products of ``frac`` with each real vector.

        This is the exact left inverse of :meth:`g_lincomb`.
        """
        return vec3.matvec(self.rvecs, as_vectors(frac, 'frac'))

    def add_rvec(
        self, delta: Any, coeffs: Any, *, out: np.ndarray | None = None
    ) -> np.ndarray:
        """Add an integer combination of the real lattice vectors to ``delta``.

        Args:
            delta: Cartesian vector(s), shape (3,) or (n, 3).
            coeffs: Coefficients with ``nvec`` or 3 entries in the last axis.
                Only the first ``nvec`` are used; synthetic directions never
                receive a translation.
            out: Optional destination array (may be ``delta`` itself).

        Returns:
            The translated vector(s).
        """
        d = as_vectors(delta, 'delta')
        c = np.asarray(coeffs, dtype=np.float64)
        if c.ndim == 0 or c.shape[-1] not in (self.nvec, 3):
            raise ValueError(f'coeffs must have {self.nvec} or 3 entries')
        if self.nvec == 0:
            return _deliver(d.copy(), out)
        shift = vec3.tmatvec(self.rvecs[: self.nvec], c[..., : self.nvec])
        return _deliver(d + shift, out)

    def wrap(self, delta: Any, *, out: np.ndarray | None = None) -> np.ndarray:
        """Reduce relative vector(s) to the minimal-image representation.

        The reduction is applied one real lattice direction at a time, in
        order ``0, 1, ..., nvec-1``, each step using the vector already
        modified by the previous steps. Afterwards the fractional coordinate
        along each direction, taken when that direction was processed, lies
        in ``(-0.5, 0.5]``.

        Args:
            delta: Cartesian vector(s), shape (3,) or (n, 3).
            out: Optional destination array (may be ``delta`` itself).

        Returns:
            The wrapped vector(s).
        """
        d = as_vectors(delta, 'delta').copy()
        for i in range(self.nvec):
            # ceil(f - 0.5) rather than round(): half-way cases always go up.
            x = np.asarray(np.ceil(vec3.dot(d, self.gvecs[i]) - 0.5))
            vec3.iadd(d, self.rvecs[i], scale=-x[..., None])
        return _deliver(d, out)

    # Cutoff ranges and selection.

    def set_ranges_rcut(
        self, center: Any, rcut: float
    ) -> tuple[np.ndarray, np.ndarray]:
        """Bound the lattice translations that bring ``center`` within ``rcut``.

        For every real direction ``i``, the half-open range
        ``[begin[i], end[i])`` contains every integer ``n`` for which the image
        ``center + n * rvecs[i]`` can lie within ``rcut`` of the origin along
        that direction. The bound is derived from the spacing between lattice
        planes, so it holds for non-orthogonal cells too. It may be loose but
        never excludes a true hit.

        Args:
            center: Cartesian 3-vector.
            rcut: Cutoff radius, strictly positive.

        Returns:
            ``(begin, end)``, two int64 arrays of length ``nvec``.

        Raises:
            CellError: ``NON_POSITIVE_CUTOFF`` if ``rcut <= 0``.
            ValueError: If ``rcut`` is infinite.
        """
        r = float(rcut)
        if not r > 0.0:
            raise CellError(
                CellErrorKind.NON_POSITIVE_CUTOFF, 'rcut must be strictly positive.'
            )
        if not np.isfinite(r):
            raise ValueError('rcut must be finite')
        frac = self.to_frac(as_point(center, 'center'))[: self.nvec]
        step = r / self.rspacings[: self.nvec]
        begin = np.ceil(-frac - step).astype(np.int64)
        end = np.ceil(-frac + step).astype(np.int64)
        return begin, end

    def _selection_axes(
        self,
        origin: Any,
        center: Any,
        ranges_begin: Sequence[int],
        ranges_end: Sequence[int],
        shape: Sequence[int],
        pbc: Sequence[bool],
    ) -> tuple[np.ndarray, list[tuple[np.ndarray, np.ndarray]]]:
        """Validate selection arguments.

        Returns the Cartesian offset ``origin - center`` and, for each of the
        three axes, the raw indices that have a valid image together with
        their wrapped values. Synthetic directions contribute the single
        index 0.
        """
        if self.nvec == 0:
            raise CellError(
                CellErrorKind.UNSUPPORTED_ZERO_DIMENSION,
                'The cell must be at least 1D periodic for select_inside.',
            )
        nvec = self.nvec
        org = as_point(origin, 'origin')
        ctr = as_point(center, 'center')
        begin = as_axis_ints(ranges_begin, nvec, 'ranges_begin')
        end = as_axis_ints(ranges_end, nvec, 'ranges_end')
        shp = as_axis_ints(shape, nvec, 'shape')
        per = as_axis_bools(pbc, nvec, 'pbc')
        if any(s <= 0 for s in shp):
            raise ValueError('shape entries must be positive')

        axes: list[tuple[np.ndarray, np.ndarray]] = []
        for k in range(3):
            if k >= nvec:
                zero = np.zeros(1, dtype=np.int64)
                axes.append((zero, zero))
                continue
            raw = np.arange(begin[k], end[k], dtype=np.int64)
            wrapped = wrap_indices(
                raw[:, None], (shp[k],), (per[k],), sentinel=True
            )[:, 0]
            keep = wrapped != -1
            axes.append((raw[keep], wrapped[keep]))
        return org - ctr, axes

    def _inside_rows(
        self,
        offset: np.ndarray,
        rcut: float,
        axes: list[tuple[np.ndarray, np.ndarray]],
    ) -> Iterator[tuple[np.ndarray, np.ndarray]]:
        """Yield ``(wrapped, raw)`` blocks of selected rows, shape (m, nvec).

        Blocks follow nested loops over axis 0 (outermost) to axis 2. Only one
        line of candidates along axis 2 is held in memory at a time.
        """
        nvec = self.nvec
        (raw0, wrap0), (raw1, wrap1), (raw2, wrap2) = axes
        m = len(raw2)
        if m == 0:
            return
        r = float(rcut)
        frac = np.empty((m, 3), dtype=np.float64)
        frac[:, 2] = raw2
        for i0, j0 in zip(raw0.tolist(), wrap0.tolist()):
            frac[:, 0] = i0
            for i1, j1 in zip(raw1.tolist(), wrap1.tolist()):
                frac[:, 1] = i1
                cart = vec3.tmatvec(self.rvecs, frac) + offset
                inside = vec3.norm(cart) < r
                n = int(np.count_nonzero(inside))
                if n == 0:
                    continue
                raw = np.empty((n, 3), dtype=np.int64)
                raw[:, 0] = i0
                raw[:, 1] = i1
                raw[:, 2] = raw2[inside]
                wrapped = np.empty((n, 3), dtype=np.int64)
                wrapped[:, 0] = j0
                wrapped[:, 1] = j1
                wrapped[:, 2] = wrap2[inside]
                yield wrapped[:, :nvec], raw[:, :nvec]

    def select_inside(
        self,
        origin: Any,
        center: Any,
        rcut: float,
        ranges_begin: Sequence[int],
        ranges_end: Sequence[int],
        shape: Sequence[int],
        pbc: Sequence[bool],
        out: np.ndarray | None = None,
    ) -> int:
        """Select grid points within ``rcut`` of ``center``.

        Every integer tuple in the box ``[ranges_begin, ranges_end)`` is
        first mapped onto the grid with :func:`~celllists.smart_wrap`; tuples
        without a valid image along some axis are skipped. For the others,
        the Cartesian position ``to_cart(raw) + origin`` is compared with
        ``center`` and the wrapped tuple is selected if the distance is
        strictly below ``rcut``.

        The call is meant to be used twice with identical arguments: first
        with ``out=None`` to count the selection, then with an array of
        that size to fill it (see :meth:`select_inside_indices`). Neither
        call materializes the whole box.

        Args:
            origin: Cartesian offset added to every grid point.
            center: Cartesian center of the cutoff sphere.
            rcut: Cutoff radius.
            ranges_begin, ranges_end: Half-open index ranges, ``nvec`` each.
            shape: Grid extents, ``nvec`` positive integers.
            pbc: Periodicity flags, ``nvec`` booleans.
            out: Optional int array of shape (>= count, nvec). The first
                ``count`` rows receive the wrapped indices.

        Returns:
            The number of selected grid points.

        Raises:
            CellError: ``UNSUPPORTED_ZERO_DIMENSION`` for a 0D cell.
            ValueError: If ``out`` is too small or has the wrong shape.
        """
        offset, axes = self._selection_axes(
            origin, center, ranges_begin, ranges_end, shape, pbc
        )
        if out is not None and (out.ndim != 2 or out.shape[1] != self.nvec):
            raise ValueError(f'out must have shape (n, {self.nvec}), got {out.shape}')

        count = 0
        for wrapped, _raw in self._inside_rows(offset, rcut, axes):
            n = int(wrapped.shape[0])
            if out is not None and count + n <= out.shape[0]:
                out[count : count + n] = wrapped
            count += n

        if out is not None and out.shape[0] < count:
            raise ValueError(
                f'out must have shape (>= {count}, {self.nvec}), got {out.shape}'
            )
        return count

    def select_inside_indices(
        self,
        origin: Any,
        center: Any,
        rcut: float,
        ranges_begin: Sequence[int],
        ranges_end: Sequence[int],
        shape: Sequence[int],
        pbc: Sequence[bool],
    ) -> np.ndarray:
        """Return the selection of :meth:`select_inside` as a (count, nvec) array."""
        args = (origin, center, rcut, ranges_begin, ranges_end, shape, pbc)
        count = self.select_inside(*args)
        indices = np.empty((count, self.nvec), dtype=np.int64)
        self.select_inside(*args, out=indices)
        return indices

    def iter_inside(
        self,
        origin: Any,
        center: Any,
        rcut: float,
        ranges_begin: Sequence[int],
        ranges_end: Sequence[int],
        shape: Sequence[int],
        pbc: Sequence[bool],
    ) -> Iterator[tuple[tuple[int, ...], tuple[int, ...]]]:
        """Iterate over ``(wrapped, raw)`` index tuples of the selection, in order.

        Arguments are validated immediately; the selection itself is computed
        lazily.
        """
        offset, axes = self._selection_axes(
            origin, center, ranges_begin, ranges_end, shape, pbc
        )
        return self._iter_pairs(offset, rcut, axes)

    def _iter_pairs(
        self,
        offset: np.ndarray,
        rcut: float,
        axes: list[tuple[np.ndarray, np.ndarray]],
    ) -> Iterator[tuple[tuple[int, ...], tuple[int, ...]]]:
        for wrapped, raw in self._inside_rows(offset, rcut, axes):
            for w, r in zip(wrapped.tolist(), raw.tolist()):
                yield tuple(w), tuple(r)
