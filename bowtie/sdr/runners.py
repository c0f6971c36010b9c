"""Resample or reorder the fields of VIIRS files in place."""

from __future__ import annotations

import logging
from pathlib import Path

import numpy as np

from ..config import FLOAT_BANDS, ResampleConfig, band_quantity
from ..geometry.permute import gather
from ..geometry.tables import INVALID_TEMP
from ..resample.pipeline import (
    ResampleResult,
    reorder_fields,
    resample_swath,
    resample_terrain_corrected,
    swath_sort_index,
)
from . import hdf
from .fill import decode_fill, merge_resampled

logger = logging.getLogger(__name__)


def read_geolocation(geo_file, lat_field: str = hdf.LATITUDE_FIELD, lon_field: str = hdf.LONGITUDE_FIELD):
    """Read latitude and longitude (float64), with fill values as NaN."""
    lat = decode_fill(hdf.read_field(geo_file, lat_field))
    lon = decode_fill(hdf.read_field(geo_file, lon_field))
    if lat.shape != lon.shape:
        raise ValueError(f"Latitude {lat.shape} and longitude {lon.shape} shapes differ in {Path(geo_file).name}")
    return lat, lon


def _mark_resampled(path, name: str, attribute: str = hdf.RESAMPLED_ATTRIBUTE):
    if hdf.write_resampled_attribute(path, name, attribute):
        logger.warning("Data was already resampled: %s [%s]", Path(path).name, name)


def check_unsorted_geolocation(geo_file):
    """Raise a ValueError if the geolocation of a file was sorted in place.

    Sorted geolocation no longer matches the row order of the raw bands, so it
    can't be used to sort them. Sort the geolocation once, after every band
    and the terrain-corrected geolocation of the granule are resampled.
    """
    if hdf.read_attribute(geo_file, hdf.LATITUDE_FIELD, hdf.RESAMPLED_ATTRIBUTE) is not None:
        raise ValueError(f"Geolocation is already sorted, cannot use it to resample: {geo_file}")


def resample_band_file(band_file, geo_file, band: int, config: ResampleConfig = None) -> ResampleResult:
    """Resample an M-band SDR file in place.

    Parameters
    ----------
    band_file : str or Path
        SDR file of the band. Its data field is overwritten.
    geo_file : str or Path
        Geolocation file matching `band_file`. Not modified.
    band : int
        M-band number (1-16). Bands below M12 are reflectances, the rest
        brightness temperatures. Band M13 is stored as floats, the rest as
        scaled integers.
    config : ResampleConfig, optional
        Resampling options. The deletion-zone value is set for the band.

    Returns
    -------
    ResampleResult

    """
    if config is None:
        config = ResampleConfig()
    fields = hdf.band_fields(band, band_quantity(band))
    logger.info("Resampling band M%d field [%s] of: %s", band, fields["data"], band_file)

    if band in FLOAT_BANDS:
        raw = hdf.read_field(band_file, fields["data"])
        gain, offset = 1.0, 0.0
    else:
        raw, gain, offset = hdf.read_scaled_field(band_file, fields["data"])
    band_config = config.for_band(band, gain, offset)

    # Deleted pixels are either blended away (out of range) or kept (NaN).
    values = decode_fill(raw, gain, offset, deletion_value=INVALID_TEMP if config.blend_deletion_zone else None)
    check_unsorted_geolocation(geo_file)
    lat, lon = read_geolocation(geo_file)
    if lat.shape != raw.shape:
        raise ValueError(f"Band shape {raw.shape} does not match geolocation shape {lat.shape}")

    result = resample_swath(values, lat, lon, band_config)

    sorted_raw = gather(result.sort_index, raw)
    if result.is_sorted:
        merged = merge_resampled(sorted_raw, values, gain, offset)
    else:
        # Cells no sorted row maps back to were not resampled.
        merged = merge_resampled(raw, values, gain, offset, keep=~result.written)
    if band in FLOAT_BANDS:
        hdf.write_field(band_file, fields["data"], merged)
    else:
        hdf.write_scaled_field(band_file, fields["data"], merged)
    _mark_resampled(band_file, fields["aggregate"], fields["attribute"])

    if config.write_reordered:
        hdf.write_field(band_file, fields["reordered"], sorted_raw, create=True)
        logger.info("Wrote reordered (not resampled) field: %s", fields["reordered"])

    return result


def resample_geolocation_file(gmodo_file, gmtco_file, config: ResampleConfig = None) -> tuple[np.ndarray, np.ndarray]:
    """Resample the terrain-corrected geolocation file in place.

    Parameters
    ----------
    gmodo_file : str or Path
        Ellipsoid geolocation file. Not modified.
    gmtco_file : str or Path
        Terrain-corrected geolocation file. Its latitude and longitude are
        overwritten.
    config : ResampleConfig, optional
        Resampling options.

    Returns
    -------
    np.ndarray, np.ndarray
        Resampled terrain-corrected latitude and longitude.

    """
    if config is None:
        config = ResampleConfig()
    logger.info("Resampling terrain-corrected geolocation of: %s", gmtco_file)

    check_unsorted_geolocation(gmodo_file)
    lat, lon = read_geolocation(gmodo_file)
    raw_tc_lat = hdf.read_field(gmtco_file, hdf.TC_LATITUDE_FIELD)
    raw_tc_lon = hdf.read_field(gmtco_file, hdf.TC_LONGITUDE_FIELD)
    if raw_tc_lat.shape != lat.shape:
        raise ValueError(f"Terrain-corrected shape {raw_tc_lat.shape} does not match ellipsoid shape {lat.shape}")

    tc_lat, tc_lon = resample_terrain_corrected(lat, lon, decode_fill(raw_tc_lat), decode_fill(raw_tc_lon), config)

    if config.sorted_output:
        reordered = reorder_fields(lat, {"lat": raw_tc_lat, "lon": raw_tc_lon}, config)
        raw_tc_lat, raw_tc_lon = reordered["lat"], reordered["lon"]

    for name, raw, values in (
        (hdf.TC_LATITUDE_FIELD, raw_tc_lat, tc_lat),
        (hdf.TC_LONGITUDE_FIELD, raw_tc_lon, tc_lon),
    ):
        hdf.write_field(gmtco_file, name, merge_resampled(raw, values))
        _mark_resampled(gmtco_file, name)

    return tc_lat, tc_lon


def sort_geolocation_file(geo_file, config: ResampleConfig = None) -> np.ndarray:
    """Sort the latitude and longitude of a geolocation file in place.

    Used with sorted output, so that the geolocation matches the row order of
    the resampled bands. Run it once per granule, after all of its bands (and
    its terrain-corrected geolocation) are resampled, see
    `check_unsorted_geolocation`.

    Returns
    -------
    np.ndarray
        The sort indices that were applied.

    """
    raw_lat = hdf.read_field(geo_file, hdf.LATITUDE_FIELD)
    raw_lon = hdf.read_field(geo_file, hdf.LONGITUDE_FIELD)
    sort_index, _ = swath_sort_index(decode_fill(raw_lat), config)

    for name, raw in ((hdf.LATITUDE_FIELD, raw_lat), (hdf.LONGITUDE_FIELD, raw_lon)):
        hdf.write_field(geo_file, name, gather(sort_index, raw))
        _mark_resampled(geo_file, name)

    logger.info("Sorted the geolocation of: %s", geo_file)
    return sort_index


def reorder_file(path, fields: list[str], lat_field: str, config: ResampleConfig = None) -> dict[str, np.ndarray]:
    """Reorder fields of a file by latitude, without resampling.

    Parameters
    ----------
    path : str or Path
        File holding the fields and latitude (e.g., an ACSPO or L2P product).
    fields : list of str
        Fields to reorder in place.
    lat_field : str
        Latitude field of the file. Also reordered if listed in `fields`.
    config : ResampleConfig, optional
        Sort options.

    Returns
    -------
    dict[str, np.ndarray]
        Reordered fields.

    """
    lat = decode_fill(hdf.read_field(path, lat_field))
    reordered = reorder_fields(lat, {name: hdf.read_field(path, name) for name in fields}, config)
    for name, grid in reordered.items():
        hdf.write_field(path, name, grid)

    logger.info("Reordered %d fields of: %s", len(reordered), path)
    return reordered
