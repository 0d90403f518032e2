import logging
from fractions import Fraction

import numpy as np
import pytest

from krelu.algorithm.octahedron import octahedron_from_box, octahedron_from_offsets
from krelu.scripts.benchmark_krelu import random_octahedron


def pytest_configure(config):
    """Set up test environment before tests run."""
    logging.getLogger("krelu").setLevel(logging.WARNING)


@pytest.fixture
def box_1d() -> np.ndarray:
    return octahedron_from_box([-1], [2])


@pytest.fixture
def box_2d() -> np.ndarray:
    return octahedron_from_box([-1, -1], [2, 3])


@pytest.fixture
def octagon_2d() -> np.ndarray:
    # The box [-2, 2]^2 with its four corners cut off by |x_1| + |x_2| <= 3
    return octahedron_from_offsets([3, 2, 3, 2, 2, 3, 2, 3])


@pytest.fixture
def octahedron_2d_fractional() -> np.ndarray:
    return octahedron_from_offsets(
        [Fraction(5, 2), Fraction(1), Fraction(7, 3), Fraction(3, 2)]
        + [Fraction(2), Fraction(9, 4), Fraction(3, 2), Fraction(11, 4)]
    )


@pytest.fixture
def box_3d() -> np.ndarray:
    return octahedron_from_box([-1, -2, -1], [2, 1, 3])


@pytest.fixture
def octahedron_3d() -> np.ndarray:
    return random_octahedron(3, np.random.default_rng(7))


@pytest.fixture
def nonnegative_box_2d() -> np.ndarray:
    # The second input is never negative, the ReLU is the identity on it
    return octahedron_from_box([-1, 1], [2, 3])


@pytest.fixture
def orthant_box_2d() -> np.ndarray:
    # Touches both coordinate hyperplanes, the (MINUS, MINUS) quadrant is the origin
    return octahedron_from_box([0, 0], [2, 3])


@pytest.fixture
def touching_box_3d() -> np.ndarray:
    # The second input is never negative but reaches 0
    return octahedron_from_box([-1, 0, -2], [2, 1, 1])
