"""Shared pytest fixtures."""

import matplotlib
import numpy as np
import pytest

from pity_table import default_pity_table

matplotlib.use("Agg")


class FixedRandom:
    """Stand-in randomness source that replays a fixed list of uniforms."""

    def __init__(self, values):
        self._values = iter(values)
        self.calls = 0

    def random(self):
        self.calls += 1
        return next(self._values)


@pytest.fixture(scope="session")
def table():
    """The built-in empirical pity table, built once for the whole session."""
    return default_pity_table()


@pytest.fixture
def rng():
    return np.random.default_rng(12345)


@pytest.fixture
def fixed_random():
    return FixedRandom
