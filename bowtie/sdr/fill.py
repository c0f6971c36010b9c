"""VIIRS SDR fill values and scaled-integer encoding.

Integer SDR fields store ``value = gain * code + offset`` in 16-bit unsigned
codes, with the top of the range reserved for fill values. Float fields
reserve a set of values just below -999.

"""

import logging

import numpy as np

from ..geometry.tables import DELETION_ZONE_INT

logger = logging.getLogger(__name__)

# Fill codes of 16-bit unsigned integer fields.
NA_UINT16_FILL = 65535
MISS_UINT16_FILL = 65534
ONBOARD_PT_UINT16_FILL = 65533
ONGROUND_PT_UINT16_FILL = 65532
ERR_UINT16_FILL = 65531
VDNE_UINT16_FILL = 65529
SOUB_UINT16_FILL = 65528

UINT16_FILLS = np.array(
    [
        NA_UINT16_FILL,
        MISS_UINT16_FILL,
        ONBOARD_PT_UINT16_FILL,
        ONGROUND_PT_UINT16_FILL,
        ERR_UINT16_FILL,
        VDNE_UINT16_FILL,
        SOUB_UINT16_FILL,
    ],
    dtype=np.uint16,
)

# Fill values of 32-bit float fields.
NA_FLOAT32_FILL = np.float32(-999.9)
MISS_FLOAT32_FILL = np.float32(-999.8)
ONBOARD_PT_FLOAT32_FILL = np.float32(-999.7)
ONGROUND_PT_FLOAT32_FILL = np.float32(-999.6)
ERR_FLOAT32_FILL = np.float32(-999.5)
VDNE_FLOAT32_FILL = np.float32(-999.3)

FLOAT32_FILLS = np.array(
    [
        NA_FLOAT32_FILL,
        MISS_FLOAT32_FILL,
        ONBOARD_PT_FLOAT32_FILL,
        ONGROUND_PT_FLOAT32_FILL,
        ERR_FLOAT32_FILL,
        VDNE_FLOAT32_FILL,
    ],
    dtype=np.float32,
)

# Largest code of a 16-bit unsigned field.
MAX_UINT16 = np.iinfo(np.uint16).max


def deletion_code(dtype):
    """Raw code of bow-tie deleted pixels (onboard pixel trim) for a field type."""
    if np.issubdtype(dtype, np.integer):
        return DELETION_ZONE_INT
    return ONBOARD_PT_FLOAT32_FILL


def is_fill(raw: np.ndarray) -> np.ndarray:
    """Mask of raw values that are fill values for their type."""
    raw = np.asarray(raw)
    if np.issubdtype(raw.dtype, np.integer):
        return np.isin(raw, UINT16_FILLS)
    return np.isin(raw.astype(np.float32, copy=False), FLOAT32_FILLS)


def decode_fill(raw: np.ndarray, gain: float = 1.0, offset: float = 0.0, deletion_value: float = None) -> np.ndarray:
    """Convert raw field values to physical values, with fill values as NaN.

    Parameters
    ----------
    raw : np.ndarray
        Raw integer codes or float values.
    gain, offset : float, optional
        Scale factors of integer codes. Float values are not scaled.
    deletion_value : float, optional
        If given, bow-tie deleted pixels are set to this value instead of
        NaN, so that the resampling can blend over them.

    Returns
    -------
    np.ndarray
        Physical values, float64.

    """
    raw = np.asarray(raw)
    if np.issubdtype(raw.dtype, np.integer):
        values = raw * np.float64(gain) + np.float64(offset)
    else:
        values = raw.astype(np.float64)

    fill = is_fill(raw)
    values[fill] = np.nan
    if deletion_value is not None:
        values[raw == deletion_code(raw.dtype)] = deletion_value

    logger.debug("Decoded %d fill values out of %d", np.count_nonzero(fill), fill.size)
    return values


def quantize(values: np.ndarray, gain: float, offset: float) -> np.ndarray:
    """Convert physical values to 16-bit codes.

    Codes are rounded half away from zero and clipped to [0, 65535]. NaN
    becomes the "not applicable" fill code.
    """
    values = np.asarray(values, dtype=np.float64)
    nan = np.isnan(values)
    with np.errstate(invalid="ignore"):
        scaled = (np.where(nan, 0.0, values) - offset) / gain
    codes = np.sign(scaled) * np.floor(np.abs(scaled) + 0.5)

    clipped = (codes < 0) | (codes > MAX_UINT16)
    if clipped.any():
        rows, cols = np.nonzero(np.atleast_2d(clipped))
        logger.warning(
            "Output data out of range at %d pixels, clipped to [0, %d] (first at row=%d, col=%d)",
            rows.size,
            MAX_UINT16,
            rows[0],
            cols[0],
        )

    codes = np.clip(codes, 0, MAX_UINT16).astype(np.uint16)
    codes[nan] = NA_UINT16_FILL
    return codes


def merge_resampled(
    raw: np.ndarray, resampled: np.ndarray, gain: float = 1.0, offset: float = 0.0, keep: np.ndarray = None
) -> np.ndarray:
    """Encode resampled values, keeping the raw value where it can't be replaced.

    Parameters
    ----------
    raw : np.ndarray
        Raw field, in the same row order as `resampled`.
    resampled : np.ndarray
        Resampled physical values.
    gain, offset : float, optional
        Scale factors of integer fields.
    keep : np.ndarray, optional
        Boolean mask of further cells where the raw value is kept, e.g., cells
        that the resampling did not write.

    Returns
    -------
    np.ndarray
        Field with the type of `raw`. The raw value is kept where it is a fill
        value other than the deletion zone, where the resampled value is NaN,
        or where `keep` is set.

    """
    raw = np.asarray(raw)
    resampled = np.asarray(resampled)
    if raw.shape != resampled.shape:
        raise ValueError(f"Raw shape {raw.shape} does not match resampled shape {resampled.shape}")

    if keep is not None and np.shape(keep) != raw.shape:
        raise ValueError(f"Keep mask shape {np.shape(keep)} does not match raw shape {raw.shape}")

    keep_raw = (is_fill(raw) & (raw != deletion_code(raw.dtype))) | np.isnan(resampled)
    if keep is not None:
        keep_raw |= np.asarray(keep, dtype=bool)
    if np.issubdtype(raw.dtype, np.integer):
        encoded = quantize(resampled, gain, offset).astype(raw.dtype)
    else:
        encoded = resampled.astype(raw.dtype)

    logger.debug("Keeping %d raw values out of %d", np.count_nonzero(keep_raw), keep_raw.size)
    return np.where(keep_raw, raw, encoded)
