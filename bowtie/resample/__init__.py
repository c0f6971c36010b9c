"""Longitude monotonization, column resampling and the swath pipeline."""

from . import approx, column, longitude, pipeline

__all__ = ["approx", "column", "longitude", "pipeline"]
