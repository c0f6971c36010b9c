"""Distance-weighted resampling of latitude-sorted columns."""

import logging

import numpy as np

from ..geometry.tables import INVALID_TEMP
from .approx import geoapprox, geodist

logger = logging.getLogger(__name__)

# Nominal M-band pixel size across track, at nadir and at the swath edge.
#   Units: km
NADIR_RESOLUTION = 0.742
EDGE_RESOLUTION = 1.60


def column_resolution(sorted_lat: np.ndarray, sorted_lon: np.ndarray, mode: str = "geodesic") -> np.ndarray:
    """Estimate a resampling bandwidth for each column.

    Parameters
    ----------
    sorted_lat, sorted_lon : np.ndarray
        Sorted latitude and longitude grids (degrees).
    mode : str, optional
        "geodesic" (default) uses the distance between sorted rows 0 and 1.
        "quadratic" uses a fixed quadratic in the normalized distance of the
        column from the swath centre, rising from the nadir to the edge
        resolution.

    Returns
    -------
    np.ndarray
        Bandwidth of each column (km), float64.

    """
    if mode == "geodesic":
        if sorted_lat.shape[0] < 2:
            raise ValueError("At least two rows are needed for a geodesic resolution estimate.")
        return np.asarray(geodist(sorted_lat[0], sorted_lon[0], sorted_lat[1], sorted_lon[1]), dtype=np.float64)

    if mode == "quadratic":
        width = sorted_lat.shape[1]
        half = (width - 1) / 2.0
        u = np.abs(np.arange(width) - half) / half
        return NADIR_RESOLUTION + (EDGE_RESOLUTION - NADIR_RESOLUTION) * u**2

    raise ValueError(f"Unknown resolution mode {mode!r}; expected 'geodesic' or 'quadratic'")


def _fill_edges(out: np.ndarray, valid_min: float, valid_max: float) -> None:
    """Fill rows 0 and N-1 from the nearest in-range interior row, per column."""
    interior = out[1:-1]
    good = ~((interior > valid_max) | (interior < valid_min))
    has_good = good.any(axis=0)
    cols = np.flatnonzero(has_good)

    first = np.argmax(good, axis=0)
    last = interior.shape[0] - 1 - np.argmax(good[::-1], axis=0)
    out[0, cols] = interior[first[cols], cols]
    out[-1, cols] = interior[last[cols], cols]


def resample_grid(
    sorted_values: np.ndarray,
    sorted_lat: np.ndarray,
    sorted_lon: np.ndarray,
    mono_lon: np.ndarray,
    resolution: np.ndarray,
    valid_min: float,
    valid_max: float,
    deletion_value: float,
    invalid_value: float = INVALID_TEMP,
) -> np.ndarray:
    """Resample every column of a latitude-sorted grid.

    Parameters
    ----------
    sorted_values : np.ndarray
        Sorted pixel values, shape (N, W).
    sorted_lat, sorted_lon : np.ndarray
        Sorted latitude and longitude (degrees), shape (N, W).
    mono_lon : np.ndarray
        Monotonized longitude (degrees), shape (N, W).
    resolution : np.ndarray
        Bandwidth of each column (km), shape (W,).
    valid_min, valid_max : float
        Valid physical range of the pixel values.
    deletion_value : float
        Deletion-zone sentinel for the pixel encoding.
    invalid_value : float, optional
        Initial value of rows 0 and N-1. Default=-999.

    Returns
    -------
    np.ndarray
        Resampled values, float64, shape (N, W).

    Notes
    -----
    Every interior row `i` is approximated from rows (i-1, i, i+1) at the
    position (``sorted_lat[i]``, ``mono_lon[i]``), including rows that were
    already in order. Rows 0 and N-1 are then filled from the first and last
    interior rows with an in-range value. Where none exists they keep
    `invalid_value`.

    """
    shape = sorted_values.shape
    if len(shape) != 2:
        raise ValueError(f"Grid must be 2D with a single channel, not shape {shape}")
    for name, grid in (("latitude", sorted_lat), ("longitude", sorted_lon), ("monotonized longitude", mono_lon)):
        if grid.shape != shape:
            raise ValueError(f"Sorted {name} shape {grid.shape} does not match value shape {shape}")
    nrows = shape[0]
    if nrows < 3:
        raise ValueError(f"At least three rows are needed to resample, not {nrows}")

    values = np.asarray(sorted_values, dtype=np.float64)
    lat = np.asarray(sorted_lat, dtype=np.float64)
    lon = np.asarray(sorted_lon, dtype=np.float64)

    # Stack the (i-1, i, i+1) triples of each interior row along a new first axis.
    triples = [slice(0, nrows - 2), slice(1, nrows - 1), slice(2, nrows)]

    out = np.empty(shape, dtype=np.float64)
    out[0] = out[-1] = invalid_value
    out[1:-1] = geoapprox(
        np.stack([values[s] for s in triples]),
        np.stack([lat[s] for s in triples]),
        np.stack([lon[s] for s in triples]),
        lat[1:-1],
        np.asarray(mono_lon, dtype=np.float64)[1:-1],
        np.asarray(resolution, dtype=np.float64)[None, :],
        valid_min,
        valid_max,
        deletion_value,
    )

    _fill_edges(out, valid_min, valid_max)
    return out


def resample_column(
    sorted_values,
    sorted_lat,
    sorted_lon,
    mono_lon,
    resolution: float,
    valid_min: float,
    valid_max: float,
    deletion_value: float,
    invalid_value: float = INVALID_TEMP,
) -> np.ndarray:
    """Resample a single latitude-sorted column. See `resample_grid`."""
    columns = [np.asarray(arr)[:, None] for arr in (sorted_values, sorted_lat, sorted_lon, mono_lon)]
    return resample_grid(
        *columns,
        resolution=np.atleast_1d(resolution),
        valid_min=valid_min,
        valid_max=valid_max,
        deletion_value=deletion_value,
        invalid_value=invalid_value,
    )[:, 0]
