from __future__ import annotations

import numpy as np
import pytest

from celllists import (
    Cell,
    assign_icell,
    create_cell_map,
    decompose,
    sort_by_icell,
)


def _half_cube() -> Cell:
    return Cell(vectors=np.eye(3) * 0.5)


def test_assign_icell_floors_fractional_coordinates() -> None:
    pts = np.array([[0.1, 0.6, 1.2], [-0.1, 2.1, 0.3]])
    icells = assign_icell(_half_cube(), pts)
    assert icells.dtype == np.int64
    assert icells.tolist() == [[0, 1, 2], [-1, 4, 0]]


def test_assign_icell_wraps_periodic_axes_only() -> None:
    pts = np.array([[-0.1, 2.1, -0.3]])
    icells = assign_icell(_half_cube(), pts, shape=(4, 4, 4), pbc=(True, True, False))
    assert icells.tolist() == [[3, 0, -1]]


def test_assign_icell_sheared_subcell(make_rng) -> None:
    rng = make_rng(0)
    subcell = Cell(vectors=((0.5, 0.0, 0.0), (0.2, 0.4, 0.0), (0.1, -0.1, 0.6)))
    pts = rng.uniform(-2.0, 2.0, size=(50, 3))
    icells = assign_icell(subcell, pts)
    rest = subcell.to_frac(pts) - icells
    assert np.all(rest >= 0.0)
    assert np.all(rest < 1.0)


def test_assign_icell_rejects_bad_input() -> None:
    with pytest.raises(ValueError):
        assign_icell(_half_cube(), np.zeros(3))
    with pytest.raises(ValueError):
        assign_icell(_half_cube(), np.zeros((2, 3)), shape=(2, 2, 2))
    with pytest.raises(ValueError):
        assign_icell(_half_cube(), np.zeros((2, 3)), shape=(2, 2), pbc=(True, True))


def test_sort_and_cell_map() -> None:
    icells = np.array([[0, 0, 1], [0, 0, 0], [1, 0, 0], [0, 0, 0]])
    order = sort_by_icell(icells)
    assert sorted(order[:2].tolist()) == [1, 3]
    assert order[2:].tolist() == [0, 2]

    cell_map = create_cell_map(icells[order])
    assert cell_map == {
        (0, 0, 0): (0, 2),
        (0, 0, 1): (2, 3),
        (1, 0, 0): (3, 4),
    }


def test_cell_map_requires_sorted_rows() -> None:
    with pytest.raises(ValueError, match='sorted'):
        create_cell_map(np.array([[1, 0, 0], [0, 0, 0]]))


def test_cell_map_empty() -> None:
    assert create_cell_map(np.zeros((0, 3), dtype=np.int64)) == {}


def test_decompose_groups_points() -> None:
    pts = np.array(
        [
            [0.1, 0.1, 0.1],
            [0.9, 0.1, 0.1],
            [0.2, 0.3, 0.4],
            [1.6, 0.1, 0.1],
        ]
    )
    dec = decompose(_half_cube(), pts, shape=(3, 2, 2), pbc=(True, True, True))
    # Point 3 has icell (3, 0, 0), which wraps onto (0, 0, 0).
    assert sorted(dec.points_in((0, 0, 0)).tolist()) == [0, 2, 3]
    assert dec.points_in((1, 0, 0)).tolist() == [1]
    assert dec.points_in((2, 1, 1)).tolist() == []

    total = sum(end - begin for begin, end in dec.cell_map.values())
    assert total == len(pts)
    assert np.array_equal(dec.icells, assign_icell(
        _half_cube(), pts, shape=(3, 2, 2), pbc=(True, True, True)
    )[dec.order])


def test_decompose_warns_for_points_outside_non_periodic_grid() -> None:
    pts = np.array([[0.1, 0.1, 0.1], [0.1, 0.1, 1.7]])
    with pytest.warns(RuntimeWarning, match='non-periodic'):
        dec = decompose(_half_cube(), pts, shape=(2, 2, 2), pbc=(True, True, False))
    assert dec.points_in((0, 0, 3)).tolist() == [1]
