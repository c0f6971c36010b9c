"""Reading and writing VIIRS SDR and geolocation (HDF5) files."""

from . import fill, hdf, runners

__all__ = ["fill", "hdf", "runners"]
