"""Error kinds raised by :class:`celllists.Cell`.

All failures are reported through a single exception type,
:class:`CellError`, whose ``kind`` attribute is one member of the closed
:class:`CellErrorKind` enumeration. Callers dispatch on the kind:

    try:
        cell = Cell(vectors)
    except CellError as err:
        match err.kind:
            case CellErrorKind.SINGULAR_LATTICE:
                ...

Malformed array inputs (wrong shapes, non-finite values) are reported as
plain ``ValueError``.
"""

from __future__ import annotations

import enum


class CellErrorKind(enum.Enum):
    INVALID_DIMENSIONALITY = 'invalid_dimensionality'
    SINGULAR_LATTICE = 'singular_lattice'
    INDEX_OUT_OF_RANGE = 'index_out_of_range'
    NON_POSITIVE_CUTOFF = 'non_positive_cutoff'
    UNSUPPORTED_ZERO_DIMENSION = 'unsupported_zero_dimension'


class CellError(ValueError):
    """Raised when a cell operation receives geometrically invalid input."""

    def __init__(self, kind: CellErrorKind, message: str):
        super().__init__(message)
        self.kind = kind

    def __reduce__(self):
        return (type(self), (self.kind, str(self)))
