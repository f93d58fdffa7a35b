"""Pytest configuration for repository-relative imports."""

import os
import sys

import matplotlib
import pandas as pd
import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

matplotlib.use("Agg")


@pytest.fixture
def species_years():
    """Four rows, one for every species x year combination."""
    return pd.DataFrame(
        {
            "species": ["A", "A", "B", "B"],
            "year": [2007, 2008, 2007, 2008],
            "value": [1.0, 2.0, 3.0, 4.0],
        }
    )


@pytest.fixture
def penguins():
    """Two species x two years, six noisy points per group on y = a + b x."""
    rows = []
    noise = [0.3, -0.2, 0.1, -0.4, 0.25, -0.05]
    params = {
        ("A", 2007): (1.0, 2.0),
        ("A", 2008): (0.5, 2.5),
        ("B", 2007): (-1.0, 1.5),
        ("B", 2008): (2.0, 0.5),
    }
    for (species, year), (intercept, slope) in params.items():
        for i, eps in enumerate(noise):
            x = float(i + 1)
            rows.append(
                {
                    "species": species,
                    "year": year,
                    "length": x,
                    "mass": intercept + slope * x + eps,
                }
            )
    return pd.DataFrame(rows)
