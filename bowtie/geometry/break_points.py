"""Per-scan adjustment of the column break points.

The default break points describe where the detector-to-latitude mapping
changes for a nominal scan. Detector drift moves those boundaries slightly
from scan to scan; this module tracks the boundaries using a first-pass,
latitude-sorted grid and rebuilds the sort index with the adjusted table.

"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np
import pandas as pd

from ..utils import log_return
from .permute import gather
from .sort_index import build_sort_index, check_height
from .tables import NDETECTORS, NSEGMENTS, SORT_BREAK_POINTS, VIIRS_WIDTH

logger = logging.getLogger(__name__)


@dataclass
class BreakPointTable:
    """Per-scan column break points for both halves of a swath.

    The right half is stored mirrored, i.e., in columns counted from the
    right edge of the swath.
    """

    left: np.ndarray
    right: np.ndarray

    def __post_init__(self) -> None:
        self.left = np.array(self.left, dtype=np.int32, ndmin=2)
        self.right = np.array(self.right, dtype=np.int32, ndmin=2)
        self._validate()

    def _validate(self) -> None:
        if self.left.shape != self.right.shape:
            raise ValueError(f"Left {self.left.shape} and right {self.right.shape} tables must match.")
        if self.left.shape[1] != NSEGMENTS:
            raise ValueError(f"Break point tables must have {NSEGMENTS} columns, not {self.left.shape[1]}")
        for name, table in (("left", self.left), ("right", self.right)):
            if (np.diff(table, axis=1) <= 0).any() or (table[:, 0] <= 0).any():
                raise ValueError(f"The {name} break points must be positive and strictly increasing.")
            if (table[:, -1] != VIIRS_WIDTH // 2).any():
                raise ValueError(f"The last {name} break point must be the swath centre ({VIIRS_WIDTH // 2}).")

    @property
    def nscans(self) -> int:
        return self.left.shape[0]

    @classmethod
    def default(cls, nscans: int) -> BreakPointTable:
        """Table using the nominal break points for every scan."""
        table = np.tile(SORT_BREAK_POINTS, (nscans, 1))
        return cls(left=table, right=table.copy())

    def to_frame(self) -> pd.DataFrame:
        """Break points as a table indexed by (side, scan)."""
        frames = {
            side: pd.DataFrame(table, index=pd.RangeIndex(self.nscans, name="scan"))
            for side, table in (("left", self.left), ("right", self.right))
        }
        frame = pd.concat(frames, names=["side"])
        frame.columns.name = "boundary"
        return frame

    def shifted(self) -> pd.DataFrame:
        """List the boundaries that differ from the nominal break points.

        Returns
        -------
        pd.DataFrame
            One row per shifted boundary with columns: side, scan, boundary,
            default, adjusted.
        """
        records = []
        for side, table in (("left", self.left), ("right", self.right)):
            for scan, boundary in zip(*np.nonzero(table != SORT_BREAK_POINTS)):
                records.append(
                    {
                        "side": side,
                        "scan": int(scan),
                        "boundary": int(boundary),
                        "default": int(SORT_BREAK_POINTS[boundary]),
                        "adjusted": int(table[scan, boundary]),
                    }
                )
        return pd.DataFrame.from_records(records, columns=["side", "scan", "boundary", "default", "adjusted"])


def _walk(agrees: np.ndarray, column: int, direction: int, limit: int) -> int:
    """Walk away from a boundary until the ordering agrees or `limit` is hit."""
    dist = 1
    while column + direction * dist != limit and not agrees[column + direction * dist]:
        dist += 1
    return column + direction * (dist - 1)


@log_return()
def adjust_break_points(sorted_lat: np.ndarray, break_points: np.ndarray = SORT_BREAK_POINTS) -> np.ndarray:
    """Adjust the left-half break points of every scan.

    Parameters
    ----------
    sorted_lat : np.ndarray
        Latitude grid already sorted with the nominal break points.
    break_points : np.ndarray, optional
        Nominal break points. Default is `SORT_BREAK_POINTS`.

    Returns
    -------
    np.ndarray
        Adjusted break points, shape (nscans, len(break_points)).

    Notes
    -----
    For scan `k` (k >= 1), the ordering at a column is the sign of the
    latitude difference between the first row of scan `k` and the last row
    of scan `k - 1`. The ordering at the swath centre is the expected
    direction. A boundary whose neighbouring columns disagree with it is
    walked toward the disagreeing side until the ordering agrees again, or
    the adjacent boundary is reached. Scans with no change in latitude at the
    centre, and columns with missing latitude, never move a boundary.

    To run this on the right half, pass the column-mirrored grid.

    """
    slat = np.asarray(sorted_lat, dtype=np.float64)
    height, width = slat.shape
    check_height(height)
    nscans = height // NDETECTORS
    break_points = np.asarray(break_points)
    center = width // 2

    adjusted = np.tile(break_points, (nscans, 1)).astype(np.int32)
    nshifted = 0
    for k in range(1, nscans):
        with np.errstate(invalid="ignore"):
            diff = slat[k * NDETECTORS] - slat[k * NDETECTORS - 1]
        expected = np.sign(diff[center])
        if expected == 0 or np.isnan(expected):
            logger.debug("No ordering direction at scan %d, keeping its break points", k)
            continue

        agrees = (np.sign(diff) == expected) | np.isnan(diff)
        row = adjusted[k]
        for j in range(break_points.size - 1):
            column = int(break_points[j])
            if agrees[column - 1] and agrees[column + 1]:
                continue

            if not agrees[column - 1]:
                lower = int(row[j - 1]) if j > 0 else 0
                row[j] = _walk(agrees, column, -1, lower)
            else:
                row[j] = _walk(agrees, column, +1, int(break_points[j + 1]))
            nshifted += row[j] != column

    logger.debug("Adjusted %d break points over %d scans", nshifted, nscans)
    return adjusted


@log_return()
def build_adjusted_sort_index(lat: np.ndarray) -> tuple[np.ndarray, BreakPointTable]:
    """Sort indices using break points adjusted to the swath's own latitude.

    Parameters
    ----------
    lat : np.ndarray
        Latitude grid (degrees), shape (height, 3200).

    Returns
    -------
    np.ndarray
        Sort indices (int32). Not necessarily a permutation.
    BreakPointTable
        The adjusted break points.

    """
    height = lat.shape[0]
    sind = build_sort_index(height)
    slat = gather(sind, lat)

    table = BreakPointTable(
        left=adjust_break_points(slat),
        right=adjust_break_points(slat[:, ::-1]),
    )

    shifted = table.shifted()
    if len(shifted):
        logger.info("Break points shifted for %d boundaries in %d scans", len(shifted), shifted["scan"].nunique())

    return build_sort_index(height, table), table
