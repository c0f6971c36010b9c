"""VIIRS moderate-resolution (M-band) scan geometry constants.

Each scan of the VIIRS M-bands is captured by 16 detectors. Near the edges of
the swath consecutive scans overlap (the "bow-tie" effect), so rows sorted by
detector are no longer sorted by latitude. The tables below encode, for each
detector and column segment, which neighbouring row holds the pixel that
belongs at that position once the swath is sorted by latitude.

"""

import numpy as np

# Swath dimensions.
VIIRS_WIDTH = 3200
NDETECTORS = 16

# Physically valid brightness temperature range.
#   Units: Kelvin
MIN_TEMP = 0.0
MAX_TEMP = 350.0

# Written to the boundary rows of a resampled column before they are filled.
INVALID_TEMP = -999.0

# Deletion zone (bow-tie trimmed pixels) markers, per encoding.
DELETION_ZONE_INT = 65533
DELETION_ZONE_FLOAT = -999.0

# Column break points for the left half of the swath. Segment `i` spans
# columns [SORT_BREAK_POINTS[i-1], SORT_BREAK_POINTS[i]). The right half is
# mirrored about the centre column. The last entry is the swath centre.
SORT_BREAK_POINTS = np.array([5, 87, 170, 358, 567, 720, 850, 997, 1120, 1275, 1600], dtype=np.int32)

NSEGMENTS = SORT_BREAK_POINTS.size

# Relative row that the pixel comes from, for the first scan of a swath.
SORT_FIRST = np.array(
    [
        [0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0],
        [0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0],
        [0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0],
        [0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0],
        [0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0],
        [0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0],
        [0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0],
        [0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0],
        [+8, +8, +8, 0, 0, 0, 0, 0, 0, 0, 0],
        [+8, -1, -1, +7, 0, 0, 0, 0, 0, 0, 0],
        [-2, +7, +7, -1, +6, 0, 0, 0, 0, 0, 0],
        [+7, -2, -2, +6, -1, +5, 0, 0, 0, 0, 0],
        [-3, +6, +6, -2, +5, -1, +4, 0, 0, 0, 0],
        [+6, -3, -3, +5, -2, +4, -1, +3, 0, 0, 0],
        [-4, +5, +5, -3, +4, -2, +3, -1, +2, 0, 0],
        [+5, -4, -4, +4, -3, +3, -2, +2, -1, +1, 0],
    ],
    dtype=np.int32,
)

# Relative row that the pixel comes from, for scans between the first and last.
SORT_MID = np.array(
    [
        [-5, +4, +4, -4, +3, -3, +2, -2, +1, -1, 0],
        [+4, -5, -5, +3, -4, +2, -3, +1, -2, 0, 0],
        [-6, +3, +3, -5, +2, -4, +1, -3, 0, 0, 0],
        [+3, -6, -6, +2, -5, +1, -4, 0, 0, 0, 0],
        [-7, +2, +2, -6, +1, -5, 0, 0, 0, 0, 0],
        [+11, -7, -7, +1, -6, 0, 0, 0, 0, 0, 0],
        [+1, +1, +1, -7, 0, 0, 0, 0, 0, 0, 0],
        [-9, +9, -8, 0, 0, 0, 0, 0, 0, 0, 0],
        [+9, -9, +8, 0, 0, 0, 0, 0, 0, 0, 0],
        [-1, -1, -1, +7, 0, 0, 0, 0, 0, 0, 0],
        [-11, +7, +7, -1, +6, 0, 0, 0, 0, 0, 0],
        [+7, -2, -2, +6, -1, +5, 0, 0, 0, 0, 0],
        [-3, +6, +6, -2, +5, -1, +4, 0, 0, 0, 0],
        [+6, -3, -3, +5, -2, +4, -1, +3, 0, 0, 0],
        [-4, +5, +5, -3, +4, -2, +3, -1, +2, 0, 0],
        [+5, -4, -4, +4, -3, +3, -2, +2, -1, +1, 0],
    ],
    dtype=np.int32,
)

# Relative row that the pixel comes from, for the last scan of a swath.
SORT_LAST = np.array(
    [
        [-5, +4, +4, -4, +3, -3, +2, -2, +1, -1, 0],
        [+4, -5, -5, +3, -4, +2, -3, +1, -2, 0, 0],
        [-6, +3, +3, -5, +2, -4, +1, -3, 0, 0, 0],
        [+3, -6, -6, +2, -5, +1, -4, 0, 0, 0, 0],
        [-7, +2, +2, -6, +1, -5, 0, 0, 0, 0, 0],
        [+2, -7, -7, +1, -6, 0, 0, 0, 0, 0, 0],
        [-8, +1, +1, -7, 0, 0, 0, 0, 0, 0, 0],
        [-8, -8, -8, 0, 0, 0, 0, 0, 0, 0, 0],
        [0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0],
        [0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0],
        [0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0],
        [0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0],
        [0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0],
        [0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0],
        [0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0],
        [0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0],
    ],
    dtype=np.int32,
)

for _table in (SORT_BREAK_POINTS, SORT_FIRST, SORT_MID, SORT_LAST):
    _table.flags.writeable = False
del _table
