"""Make the sorted longitude monotonic along each column.

Sorting rows by latitude leaves the longitude of reordered rows with small
jumps. Rows that kept their position (``sort_index[i] == i``) are trusted as
anchors and every other row is linearly interpolated between anchors.

"""

import logging

import numpy as np

from ..geometry.permute import check_grids
from ..geometry.tables import NDETECTORS

logger = logging.getLogger(__name__)


def lon_sum(lon1, lon2):
    """Add two longitudes (degrees), wrapping the result to (-180, 180]."""
    total = np.radians(np.asarray(lon1, dtype=np.float64) + np.asarray(lon2, dtype=np.float64))
    out = np.degrees(np.arctan2(np.sin(total), np.cos(total)))
    return out[()] if np.ndim(out) == 0 else out


def _anchors(sort_index: np.ndarray, sorted_lon: np.ndarray, lon: np.ndarray):
    """Anchor positions and values for one column, in increasing row order."""
    nrows = sort_index.size
    rows = np.arange(nrows)
    kept = np.flatnonzero(sort_index == rows)

    # Synthetic anchors sit between the two middle detectors of each scan.
    mid = rows[(rows % NDETECTORS == NDETECTORS // 2) & (rows > 0)]
    if kept.size:
        mid = mid[mid > kept[0]]
    mid_pos = mid - 0.5
    mid_lon = (lon[mid].astype(np.float64) + lon[mid - 1]) / 2.0

    pos = np.concatenate([kept.astype(np.float64), mid_pos])
    vals = np.concatenate([sorted_lon[kept].astype(np.float64), mid_lon])
    order = np.argsort(pos, kind="stable")
    return pos[order], vals[order]


def monotonize_longitude(sort_index: np.ndarray, sorted_lon: np.ndarray, lon: np.ndarray) -> np.ndarray:
    """Interpolate the longitude of reordered rows in one column.

    Parameters
    ----------
    sort_index : np.ndarray
        Sort indices for the column (1D).
    sorted_lon : np.ndarray
        Longitude of the column, sorted with `sort_index`.
    lon : np.ndarray
        Longitude of the column, in the original row order.

    Returns
    -------
    np.ndarray
        Monotonized longitude (float64). Rows before the first anchor take
        the first anchor value and rows after the last anchor take the last.

    """
    sort_index = np.asarray(sort_index)
    sorted_lon = np.asarray(sorted_lon)
    lon = np.asarray(lon)
    if not sort_index.shape == sorted_lon.shape == lon.shape or sort_index.ndim != 1:
        raise ValueError(
            f"Column shapes must be 1D and match: {sort_index.shape}, {sorted_lon.shape}, {lon.shape}"
        )

    pos, vals = _anchors(sort_index, sorted_lon, lon)
    if pos.size == 0:
        # Too short for any anchor; nothing to interpolate against.
        return sorted_lon.astype(np.float64)
    return np.interp(np.arange(sort_index.size, dtype=np.float64), pos, vals)


def monotonize_longitude_grid(sort_index: np.ndarray, sorted_lon: np.ndarray, lon: np.ndarray) -> np.ndarray:
    """Apply `monotonize_longitude` to every column of a swath."""
    sorted_lon = check_grids(sort_index, sorted_lon)
    lon = check_grids(sort_index, lon)

    out = np.empty(sorted_lon.shape, dtype=np.float64)
    nanchorless = 0
    for j in range(sorted_lon.shape[1]):
        if not (sort_index[:, j] == np.arange(sort_index.shape[0])).any():
            nanchorless += 1
        out[:, j] = monotonize_longitude(sort_index[:, j], sorted_lon[:, j], lon[:, j])

    if nanchorless:
        logger.debug("Interpolated longitude of %d columns from scan centres only", nanchorless)
    return out
