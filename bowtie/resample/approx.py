"""Great-circle distance and distance-weighted approximation."""

import logging

import numpy as np

logger = logging.getLogger(__name__)

# Mean Earth radius.
#   Units: km
EARTH_RADIUS_KM = 6371.0


def geodist(lat1, lon1, lat2, lon2):
    """Great-circle distance using the haversine formula.

    Parameters
    ----------
    lat1, lon1 : float or np.ndarray
        First position(s), in degrees.
    lat2, lon2 : float or np.ndarray
        Second position(s), in degrees.

    Returns
    -------
    float or np.ndarray
        Distance(s) in km. Broadcasts like numpy arithmetic.

    """
    phi1 = np.radians(lat1)
    phi2 = np.radians(lat2)
    dphi = phi2 - phi1
    dlam = np.radians(lon2) - np.radians(lon1)

    hav = np.sin(dphi / 2) ** 2 + np.cos(phi1) * np.cos(phi2) * np.sin(dlam / 2) ** 2
    return 2 * EARTH_RADIUS_KM * np.arcsin(np.sqrt(np.clip(hav, 0.0, 1.0)))


def geoapprox(values, lat, lon, target_lat, target_lon, resolution, valid_min, valid_max, deletion_value):
    """Approximate a value at a target position from three neighbouring samples.

    Parameters
    ----------
    values : np.ndarray
        Sample values, shape (3, ...). Samples outside [`valid_min`,
        `valid_max`] are ignored. NaN is not out of range and propagates.
    lat, lon : np.ndarray
        Sample positions (degrees), same shape as `values`.
    target_lat, target_lon : float or np.ndarray
        Target position(s) (degrees), broadcastable to ``values.shape[1:]``.
    resolution : float or np.ndarray
        Gaussian bandwidth (km), broadcastable to ``values.shape[1:]``.
    valid_min, valid_max : float
        Valid physical range of the samples.
    deletion_value : float
        Returned where all three samples are out of range.

    Returns
    -------
    np.ndarray or float
        Approximated value(s), shape ``values.shape[1:]``.

    Notes
    -----
    Where exactly one sample is in range, it is returned unweighted.
    Otherwise the result is the mean of the in-range samples weighted by
    ``exp(-d**2 / resolution**2)``, with `d` the distance from the sample to
    the target.

    """
    values = np.asarray(values, dtype=np.float64)
    lat = np.asarray(lat, dtype=np.float64)
    lon = np.asarray(lon, dtype=np.float64)
    if values.shape[0] != 3 or lat.shape != values.shape or lon.shape != values.shape:
        raise ValueError(
            f"Expected three samples with matching positions, got values {values.shape},"
            f" lat {lat.shape}, lon {lon.shape}"
        )

    # NaN compares False on both sides, so it counts as in range.
    invalid = (values > valid_max) | (values < valid_min)
    nvalid = 3 - invalid.sum(axis=0)

    with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
        dist = geodist(target_lat, target_lon, lat, lon)
        weights = np.where(invalid, 0.0, np.exp(-(dist**2) / np.square(resolution)))
        blended = (np.where(invalid, 0.0, values) * weights).sum(axis=0) / weights.sum(axis=0)

    # With one valid sample, take it as-is (argmin of `invalid` is that sample).
    single = np.take_along_axis(values, np.argmin(invalid, axis=0)[None], axis=0)[0]

    out = np.where(nvalid == 0, deletion_value, np.where(nvalid == 1, single, blended))
    return out[()] if out.ndim == 0 else out
