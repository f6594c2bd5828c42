"""
Pytest configuration and shared fixtures for Watershed EJ Index tests.
"""

import numpy as np
import pandas as pd
import pytest


# Watershed block groups (all in Maryland)
SAMPLE_REGION_IDS = frozenset(
    {
        "240010001001",
        "240010001002",
        "240010002001",
        "240010002002",
    }
)


@pytest.fixture
def region_ids() -> frozenset:
    """Return the sample region block group IDs."""
    return SAMPLE_REGION_IDS


@pytest.fixture
def ejscreen_df() -> pd.DataFrame:
    """Small national EJSCREEN extract: six Maryland and four Virginia block groups."""
    return pd.DataFrame({
        "ID": [
            "240010001001",
            "240010001002",
            "240010002001",
            "240010002002",
            "240030001001",
            "240030001002",
            "510010001001",
            "510010001002",
            "510010002001",
            "510010002002",
        ],
        "STATE_NAME": ["Maryland"] * 6 + ["Virginia"] * 4,
        "LOWINCPCT": [0.10, 0.35, 0.22, 0.50, 0.05, 0.41, 0.30, 0.15, 0.60, 0.27],
        "LINGISOPCT": [0.01, 0.08, 0.03, 0.12, 0.00, 0.06, 0.04, 0.02, 0.15, 0.05],
        "LESSHSPCT": [0.05, 0.18, 0.09, 0.25, 0.03, 0.20, 0.12, 0.07, 0.30, 0.10],
        "UNEMPPCT": [0.03, 0.09, 0.05, 0.11, 0.02, 0.08, 0.06, 0.04, 0.14, 0.05],
        "P_LWINCPCT": [30.0, 72.0, 50.0, 85.0, 10.0, 78.0, 60.0, 40.0, 95.0, 55.0],
        "P_LNGISPCT": [20.0, 80.0, 45.0, 90.0, 5.0, 70.0, 55.0, 35.0, 97.0, 62.0],
        "P_LESHSPCT": [25.0, 75.0, 48.0, 88.0, 8.0, 80.0, 58.0, 38.0, 96.0, 52.0],
        "P_UNEMPPCT": [28.0, 77.0, 47.0, 86.0, 12.0, 74.0, 61.0, 39.0, 98.0, 50.0],
    })


@pytest.fixture
def life_expectancy_df() -> pd.DataFrame:
    """USALEEP extract; tract 51001000200 is deliberately absent."""
    return pd.DataFrame({
        "Tract ID": [
            "24001000100",
            "24001000200",
            "24003000100",
            "51001000100",
            "24005000100",
        ],
        "e(0)": [79.5, 74.0, 81.2, 76.3, 78.0],
    })


@pytest.fixture
def correlated_indicators() -> pd.DataFrame:
    """Fifty rows of five positively correlated indicators."""
    rng = np.random.default_rng(42)
    latent = rng.normal(size=50)
    data = {
        f"x{i}": latent * (1.0 + 0.2 * i) + rng.normal(scale=0.5, size=50)
        for i in range(5)
    }
    return pd.DataFrame(data)


@pytest.fixture
def write_inputs(tmp_path, ejscreen_df, life_expectancy_df, region_ids):
    """Write the sample inputs to CSV and return their paths."""
    paths = {
        "ejscreen": tmp_path / "ejscreen.csv",
        "life_expectancy": tmp_path / "usaleep.csv",
        "region_ids": tmp_path / "region.csv",
    }
    ejscreen_df.to_csv(paths["ejscreen"], index=False)
    life_expectancy_df.to_csv(paths["life_expectancy"], index=False)
    pd.DataFrame({"ID": sorted(region_ids)}).to_csv(paths["region_ids"], index=False)
    return {k: str(v) for k, v in paths.items()}
