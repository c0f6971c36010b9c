"""Latitude sort-index construction.

A sort index is an integer grid with the same shape as a swath; entry
``(y, x)`` is the row of the original swath that belongs at ``(y, x)`` once
the swath is sorted by latitude.

"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import numpy as np

from ..utils import log_return
from .tables import NDETECTORS, SORT_BREAK_POINTS, SORT_FIRST, SORT_LAST, SORT_MID, VIIRS_WIDTH

if TYPE_CHECKING:
    from .break_points import BreakPointTable

logger = logging.getLogger(__name__)


def check_height(height: int) -> int:
    """Validate a swath height (a positive multiple of the scan size)."""
    if height <= 0 or height % NDETECTORS != 0:
        raise ValueError(f"Invalid swath height {height} (not a positive multiple of {NDETECTORS})")
    return height


def check_swath_shape(shape: tuple[int, ...]) -> tuple[int, int]:
    """Validate the shape of a swath grid.

    Parameters
    ----------
    shape : tuple of int
        Grid shape, (height, width).

    Returns
    -------
    (int, int)
        Height and width.

    Raises
    ------
    ValueError
        If the grid is not 2D, the width is not the VIIRS swath width or the
        height is not a multiple of the scan size.

    """
    if len(shape) != 2:
        raise ValueError(f"Swath grid must be 2D with a single channel, not shape {shape}")
    height, width = shape
    if width != VIIRS_WIDTH:
        raise ValueError(f"Invalid swath width {width}; want {VIIRS_WIDTH}")
    check_height(height)
    return height, width


def _segment_lookup(break_points: np.ndarray) -> np.ndarray:
    """Segment number of each column in one half of the swath."""
    return np.searchsorted(break_points, np.arange(VIIRS_WIDTH // 2), side="right")


@log_return()
def build_sort_index(height: int, break_points: BreakPointTable = None) -> np.ndarray:
    """Generate a grid of latitude sort indices from the detector geometry.

    Parameters
    ----------
    height : int
        Swath height (rows), a multiple of 16.
    break_points : BreakPointTable, optional
        Per-scan column break points for the left and right halves of the
        swath. Default is to use `SORT_BREAK_POINTS` for every scan.

    Returns
    -------
    np.ndarray
        Sort indices, shape (height, 3200), int32.

    Notes
    -----
    The first scan uses `SORT_FIRST`, the last scan `SORT_LAST`, and all
    other scans `SORT_MID`. A swath made of a single scan has no neighbouring
    scan to exchange rows with and its sort index is the identity.

    """
    check_height(height)
    nscans = height // NDETECTORS
    half = VIIRS_WIDTH // 2

    rows = np.arange(height, dtype=np.int32)
    sind = np.empty((height, VIIRS_WIDTH), dtype=np.int32)
    if nscans == 1:
        sind[:] = rows[:, None]
        return sind

    if break_points is None:
        left_segs = right_segs = _segment_lookup(SORT_BREAK_POINTS)
    elif break_points.nscans != nscans:
        raise ValueError(f"Break point table has {break_points.nscans} scans, swath has {nscans}")

    for k in range(nscans):
        if k == 0:
            table = SORT_FIRST
        elif k == nscans - 1:
            table = SORT_LAST
        else:
            table = SORT_MID

        if break_points is not None:
            left_segs = _segment_lookup(break_points.left[k])
            right_segs = _segment_lookup(break_points.right[k])

        scan = slice(k * NDETECTORS, (k + 1) * NDETECTORS)
        scan_rows = rows[scan, None]
        sind[scan, :half] = scan_rows + table[:, left_segs]
        sind[scan, half:] = (scan_rows + table[:, right_segs])[:, ::-1]

    return sind


def _sort_column(values: np.ndarray, ascending: bool) -> np.ndarray:
    """Stable argsort of a column, in either order."""
    if ascending:
        return np.argsort(values, kind="stable")
    return np.argsort(-values, kind="stable")


def argsort_latitude(lat: np.ndarray, scan_size: int = NDETECTORS) -> np.ndarray:
    """Sort indices from a plain per-column argsort of latitude.

    Every column is sorted in the direction the swath travels. Columns that
    cross a pole (latitude increases then decreases, or the reverse) are split
    one scan before the turnaround and each part is sorted in its own
    direction. Unlike `build_sort_index`, the result is always a permutation.

    Parameters
    ----------
    lat : np.ndarray
        Latitude grid (degrees).
    scan_size : int, optional
        Number of rows in a scan. Default=16.

    Returns
    -------
    np.ndarray
        Sort indices, int32, same shape as `lat`.

    """
    if scan_size < 2:
        raise ValueError(f"Scan size must be at least 2, not {scan_size}")
    lat = np.asarray(lat, dtype=np.float64)
    height, width = lat.shape
    sind = np.empty(lat.shape, dtype=np.int32)

    # Look at every `scan_size` rows, starting from the middle of the first scan.
    off = scan_size // 2
    steps = np.nan_to_num(np.sign(np.diff(lat[off::scan_size], axis=0)))

    npolar = 0
    for j in range(width):
        col = lat[:, j]
        nonzero = np.flatnonzero(steps[:, j])
        direction = steps[nonzero[0], j] if nonzero.size else 0
        turns = np.flatnonzero(steps[:, j] == -direction) if direction else np.empty(0, dtype=int)

        if turns.size == 0:
            sind[:, j] = _sort_column(col, ascending=direction >= 0)
            continue

        # Split one scan before the change in direction.
        npolar += 1
        split = off + scan_size * turns[0]
        sind[:split, j] = _sort_column(col[:split], ascending=direction > 0)
        sind[split:, j] = _sort_column(col[split:], ascending=direction < 0) + split

    if npolar:
        logger.info("Latitude sort split %d polar columns", npolar)
    return sind
