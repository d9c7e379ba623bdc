"""celllists package.

Geometric core for spatial decomposition under periodic boundary conditions:
lattices with 0, 1, 2 or 3 periodic directions, fractional coordinates,
minimal-image wrapping and cutoff-driven selection of grid cells.

Public API:
    - Cell
    - CellError, CellErrorKind
    - smart_wrap, wrap_indices
    - assign_icell, sort_by_icell, create_cell_map, decompose
"""

from __future__ import annotations

from .__about__ import __version__

from . import vec3
from .cell import Cell
from .errors import CellError, CellErrorKind
from .indexing import smart_wrap, wrap_indices
from .decomposition import (
    CellMap,
    Decomposition,
    assign_icell,
    create_cell_map,
    decompose,
    sort_by_icell,
)

__all__ = [
    'Cell',
    'CellError',
    'CellErrorKind',
    'smart_wrap',
    'wrap_indices',
    'CellMap',
    'Decomposition',
    'assign_icell',
    'sort_by_icell',
    'create_cell_map',
    'decompose',
    'vec3',
    '__version__',
]
