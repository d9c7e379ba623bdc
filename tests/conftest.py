from __future__ import annotations

import os
from typing import Any, Callable

import numpy as np
import pytest

from celllists import Cell, CellError


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        '--fuzz-n',
        action='store',
        type=int,
        default=20,
        help='Number of iterations per fuzz test (default: 20).',
    )
    parser.addoption(
        '--fuzz-seed',
        action='store',
        type=int,
        default=None,
        help=(
            'Optional base seed for fuzz tests. If not set, a deterministic seed is '
            'chosen.'
        ),
    )


@pytest.fixture(scope='session')
def fuzz_settings(request: pytest.FixtureRequest) -> dict[str, Any]:
    """Settings shared by fuzz tests.

    Fuzz tests are reproducible by default; the number of iterations and the
    seed can be overridden from the command line.
    """
    n: int = int(request.config.getoption('--fuzz-n'))
    seed = request.config.getoption('--fuzz-seed')
    if seed is None:
        # Environment variable is a last-resort escape hatch.
        env_seed = os.environ.get('CELLLISTS_FUZZ_SEED')
        seed = int(env_seed) if env_seed is not None else 0
    return {'n': n, 'seed': int(seed)}


def rng_for_run(seed: int, run: int) -> np.random.Generator:
    """Deterministic per-run RNG."""
    # Mix run index to avoid correlated sequences.
    mixed = (seed + 0x9E3779B97F4A7C15 + 104729 * int(run)) & 0xFFFFFFFFFFFFFFFF
    return np.random.default_rng(mixed)


def random_cell(
    rng: np.random.Generator, nvec: int, scale: float = 1.0, cuboid: bool = False
) -> Cell:
    """Random cell whose volume exceeds ``(0.1*scale)**nvec``."""
    while True:
        if cuboid:
            vectors = np.zeros((nvec, 3))
            for i in range(nvec):
                vectors[i, i] = rng.uniform(0.2, 1.0) * scale
        else:
            vectors = rng.uniform(-0.5, 0.5, size=(nvec, 3)) * scale
        try:
            cell = Cell(vectors=vectors)
        except CellError:
            continue
        if nvec == 0 or cell.volume > (0.1 * scale) ** nvec:
            return cell


@pytest.fixture
def make_rng(fuzz_settings: dict[str, Any]) -> Callable[[int], np.random.Generator]:
    seed = int(fuzz_settings['seed'])
    return lambda run: rng_for_run(seed, run)


@pytest.fixture
def make_cell() -> Callable[..., Cell]:
    return random_cell
