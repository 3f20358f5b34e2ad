"""
Shared pytest fixtures: small seeded datasets shaped like the workshop data.
"""

import numpy as np
import pandas as pd
import pytest

from fieldstats.conservation import simulate_species_matrix
from fieldstats.datasets import (
    simulate_baci,
    simulate_co2_uptake,
    simulate_forest_data,
    simulate_time_series,
)


@pytest.fixture
def forest_data():
    return simulate_forest_data(n=90, seed=1)


@pytest.fixture
def co2_data():
    return simulate_co2_uptake(seed=2)


@pytest.fixture
def baci_data():
    return simulate_baci(n_per_cell=12, effect=-5.0, seed=3)


@pytest.fixture
def series_data():
    return simulate_time_series(n_years=30, slope=0.05, seed=4)


@pytest.fixture
def species_matrix():
    return simulate_species_matrix(n_species=25, n_sites=8, occupancy=0.25, seed=5)


@pytest.fixture
def three_groups():
    """
    Three groups built from one sample: mid is low shifted by 0.1 and
    high is low shifted by 10, so only high differs.
    """
    base = np.random.default_rng(7).normal(10.0, 1.0, 10)
    return pd.DataFrame({
        "Treatment": ["low"] * 10 + ["mid"] * 10 + ["high"] * 10,
        "Yield": np.concatenate([base, base[::-1] + 0.1, base + 10.0]),
    })


@pytest.fixture
def two_groups():
    rng = np.random.default_rng(11)
    return pd.DataFrame({
        "Site": ["A"] * 15 + ["B"] * 15,
        "Biomass": np.concatenate([rng.normal(5.0, 1.0, 15), rng.normal(8.0, 1.5, 15)]),
    })
