from __future__ import annotations

import numpy as np
import pytest

from celllists import Cell


def _orthorhombic() -> Cell:
    return Cell(vectors=((2.0, 0.0, 0.0), (0.0, 1.0, 0.0), (0.0, 0.0, 4.0)))


def test_wrap_orthorhombic_examples() -> None:
    cell = _orthorhombic()
    assert np.allclose(cell.wrap([2.0, 0.3, 3.0]), [0.0, 0.3, -1.0])


def test_wrap_half_way_cases_round_up() -> None:
    # Fractional coordinates of exactly -0.5 end up at +0.5 on every axis.
    cell = _orthorhombic()
    assert np.allclose(cell.wrap([-1.0, -0.5, -2.0]), [1.0, 0.5, 2.0])
    assert np.allclose(cell.wrap([1.0, 0.5, 2.0]), [1.0, 0.5, 2.0])


def test_wrap_in_place() -> None:
    cell = _orthorhombic()
    delta = np.array([[5.1, -0.7, 9.0], [0.0, 0.0, 0.0]])
    result = cell.wrap(delta, out=delta)
    assert result is delta
    assert np.allclose(delta, [[-0.9, 0.3, 1.0], [0.0, 0.0, 0.0]])


def test_wrap_zero_dimensional_is_noop() -> None:
    cell = Cell(vectors=())
    assert np.allclose(cell.wrap([10.0, -7.0, 3.0]), [10.0, -7.0, 3.0])


def test_wrap_leaves_synthetic_directions_alone() -> None:
    cell = Cell(vectors=((1.0, 0.0, 0.0),))
    assert np.allclose(cell.wrap([2.7, 5.0, -9.0]), [-0.3, 5.0, -9.0])


def test_wrap_is_sequential_for_sheared_cells() -> None:
    # Axis 1 is reduced with the vector already reduced along axis 0.
    cell = Cell(vectors=((1.0, 0.0, 0.0), (0.9, 1.0, 0.0)))
    delta = np.array([0.0, 0.8, 0.0])
    # frac0 = -0.72 -> shifted to (1.0, 0.8, 0.0); frac1 = 0.8 -> shifted by -b.
    assert np.allclose(cell.wrap(delta), [0.1, -0.2, 0.0])


@pytest.mark.parametrize('nvec', [1, 2, 3])
def test_wrap_fractional_bounds_and_idempotence(
    make_rng, make_cell, fuzz_settings, nvec
) -> None:
    for run in range(int(fuzz_settings['n'])):
        rng = make_rng(run)
        cell = make_cell(rng, nvec)
        delta = rng.uniform(-3.0, 3.0, size=(20, 3))
        wrapped = cell.wrap(delta)

        # Check the bound in the order the axes are processed.
        d = delta.copy()
        for i in range(nvec):
            f = d @ cell.gvecs[i]
            x = np.ceil(f - 0.5)
            d -= x[:, None] * cell.rvecs[i]
            f_after = d @ cell.gvecs[i]
            assert np.all(f_after > -0.5 - 1e-12)
            assert np.all(f_after <= 0.5 + 1e-12)
        assert np.allclose(d, wrapped)

        assert np.allclose(cell.wrap(wrapped), wrapped, atol=1e-10)


@pytest.mark.parametrize('nvec', [1, 2, 3])
def test_wrap_is_invariant_under_lattice_translations(
    make_rng, make_cell, fuzz_settings, nvec
) -> None:
    for run in range(int(fuzz_settings['n'])):
        rng = make_rng(run)
        cell = make_cell(rng, nvec, cuboid=bool(run % 2))
        point = rng.uniform(-1.0, 1.0, size=3)
        coeffs = rng.integers(-5, 6, size=nvec)
        moved = cell.add_rvec(point, coeffs)
        assert np.allclose(cell.wrap(moved), cell.wrap(point), atol=1e-9)
