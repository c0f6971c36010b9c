"""Bow-tie resampling of VIIRS moderate-resolution swath imagery.

Sorts swath rows into latitude order using the sensor's detector geometry,
and resamples the reordered pixels with a distance-weighted approximation.
"""

from . import config, geometry, resample, sdr, utils

__all__ = ["config", "geometry", "resample", "sdr", "utils"]
