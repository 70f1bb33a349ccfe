import pytest

from tsp_solvers.graph import random_locations


@pytest.fixture
def square():
    return [(0, 0), (0, 10), (10, 10), (10, 0)]


@pytest.fixture
def scattered():
    return random_locations(12, seed=7)
