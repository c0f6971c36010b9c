"""Pytest configuration for bowtie tests."""

import numpy as np
import pytest

from bowtie.geometry.tables import NDETECTORS, VIIRS_WIDTH


def pytest_addoption(parser):
    """Add custom command-line options to pytest."""
    parser.addoption(
        "--run-extra",
        action="store_true",
        default=False,
        help="run extra tests (e.g., full size granules)",
    )


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "extra: mark test as extra to run (deselected by default)")


def pytest_collection_modifyitems(config, items):
    """Skip tests marked with 'extra' unless --run-extra is passed."""
    if config.getoption("--run-extra"):
        return

    skip_extra = pytest.mark.skip(reason="need --run-extra option to run")
    for item in items:
        if "extra" in item.keywords:
            item.add_marker(skip_extra)


def synthetic_swath(nscans=1, lat0=10.0, dlat=0.01, lon0=-100.0, dlon=0.01):
    """Latitude increasing by row and longitude increasing by column (degrees)."""
    height = nscans * NDETECTORS
    rows = np.arange(height, dtype=np.float64)[:, None]
    cols = np.arange(VIIRS_WIDTH, dtype=np.float64)[None, :]
    lat = np.repeat(lat0 + dlat * rows, VIIRS_WIDTH, axis=1)
    lon = np.repeat(lon0 + dlon * cols, height, axis=0)
    return lat, lon


@pytest.fixture
def make_swath():
    """Factory for synthetic swath geolocation, see `synthetic_swath`."""
    return synthetic_swath
