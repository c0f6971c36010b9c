"""Bow-tie resampling of a whole swath.

The processing steps are run by `SwathResampler`, which moves through a fixed
sequence of states:

    RAW -> SORTED -> BREAKPOINT_ADJUSTED (optional) -> LON_MONOTONIZED
        -> RESAMPLED -> UNSORTED or SORTED_OUTPUT

Steps must be run in that order. `resample_swath` runs all of them.

"""

from __future__ import annotations

import dataclasses
import enum
import logging
import time
from dataclasses import dataclass

import numpy as np
import xarray as xr

from ..config import ResampleConfig
from ..geometry.break_points import BreakPointTable, build_adjusted_sort_index
from ..geometry.permute import gather, is_permutation, scatter, written_mask
from ..geometry.sort_index import argsort_latitude, build_sort_index, check_swath_shape
from ..geometry.tables import NDETECTORS
from .column import column_resolution, resample_grid
from .longitude import lon_sum, monotonize_longitude_grid

logger = logging.getLogger(__name__)


class PipelineState(enum.Enum):
    """Processing states of a swath."""

    RAW = "raw"
    SORTED = "sorted"
    BREAKPOINT_ADJUSTED = "breakpoint-adjusted"
    LON_MONOTONIZED = "lon-monotonized"
    RESAMPLED = "resampled"
    UNSORTED = "unsorted"
    SORTED_OUTPUT = "sorted-output"


TERMINAL_STATES = (PipelineState.UNSORTED, PipelineState.SORTED_OUTPUT)

# Allowed transitions. `None` is a resampler without a swath.
TRANSITIONS = {
    None: (PipelineState.RAW,),
    PipelineState.RAW: (PipelineState.SORTED,),
    PipelineState.SORTED: (PipelineState.BREAKPOINT_ADJUSTED, PipelineState.LON_MONOTONIZED),
    PipelineState.BREAKPOINT_ADJUSTED: (PipelineState.LON_MONOTONIZED,),
    PipelineState.LON_MONOTONIZED: (PipelineState.RESAMPLED,),
    PipelineState.RESAMPLED: TERMINAL_STATES,
    PipelineState.UNSORTED: (PipelineState.RAW,),
    PipelineState.SORTED_OUTPUT: (PipelineState.RAW,),
}


@dataclass
class ResampleResult:
    """Output of a resampling run."""

    data: np.ndarray
    sort_index: np.ndarray
    state: PipelineState
    break_points: BreakPointTable | None = None
    sorted_lat: np.ndarray | None = None
    sorted_lon: np.ndarray | None = None
    written: np.ndarray | None = None

    @property
    def is_sorted(self) -> bool:
        return self.state is PipelineState.SORTED_OUTPUT

    def to_dataset(self) -> xr.Dataset:
        """Convert the result to a dataset with (row, column) dimensions."""
        dims = ["row", "column"]
        nrows, ncols = self.data.shape
        data_vars = {
            "data": (dims, self.data),
            "sort_index": (dims, self.sort_index),
        }
        coords = {
            "row": ("row", np.arange(nrows)),
            "column": ("column", np.arange(ncols)),
        }
        if self.sorted_lat is not None:
            data_vars["latitude"] = (dims, self.sorted_lat)
            data_vars["longitude"] = (dims, self.sorted_lon)
        if self.written is not None:
            data_vars["written"] = (dims, self.written)
        if self.break_points is not None:
            data_vars["break_points_left"] = (["scan", "boundary"], self.break_points.left)
            data_vars["break_points_right"] = (["scan", "boundary"], self.break_points.right)
            coords["scan"] = ("scan", np.arange(self.break_points.nscans))
            coords["boundary"] = ("boundary", np.arange(self.break_points.left.shape[1]))

        return xr.Dataset(
            data_vars,
            coords=coords,
            attrs={
                "state": self.state.value,
                "sorted": int(self.is_sorted),
                "permutation": int(is_permutation(self.sort_index)),
            },
        )


class SwathResampler:
    """Manage the resampling steps of a swath.

    Examples
    --------
    >>> resampler = SwathResampler(ResampleConfig(sorted_output=True))
    >>> result = resampler.run(data, lat, lon)

    Or one step at a time:

    >>> resampler.load(data, lat, lon)
    >>> resampler.sort()
    >>> resampler.adjust_break_points()
    >>> resampler.monotonize_longitude()
    >>> resampler.resample()
    >>> result = resampler.finish()

    """

    def __init__(self, config: ResampleConfig = None):
        self.config = ResampleConfig() if config is None else config
        self.state = None
        self._step_time = None
        self._reset()

    def _reset(self):
        self._data = self._lat = self._lon = None
        self.sort_index = None
        self.break_points = None
        self.sorted_data = self.sorted_lat = self.sorted_lon = None
        self.mono_lon = None
        self.resampled = None

    def _advance(self, state: PipelineState):
        """Move to a new state, if allowed from the current one."""
        if state not in TRANSITIONS[self.state]:
            current = None if self.state is None else self.state.name
            raise RuntimeError(f"Invalid resampling step, cannot go from state [{current}] to [{state.name}]")
        logger.debug("Resampling state: %s -> %s", self.state, state)
        self.state = state

    def _log_step(self, msg: str = None):
        """Log the duration of an individual processing step."""
        if msg is not None:
            t0 = self._step_time
            t1 = time.time()
            if t0 is None:
                t0 = t1
            logger.info("Resampling step [%s] took [%.3f] sec", msg, t1 - t0)
        self._step_time = time.time()

    def load(self, data: np.ndarray, lat: np.ndarray, lon: np.ndarray):
        """Load the swath to resample.

        Parameters
        ----------
        data : np.ndarray
            Pixel values, float, shape (height, 3200). Overwritten by `finish`.
        lat, lon : np.ndarray
            Latitude and longitude (degrees), same shape as `data`. Overwritten
            by `finish` when sorted output is requested.

        """
        check_swath_shape(lat.shape)
        for name, grid in (("data", data), ("longitude", lon)):
            if grid.shape != lat.shape:
                raise ValueError(f"Shape of {name} {grid.shape} does not match latitude {lat.shape}")
        for name, grid in (("data", data), ("latitude", lat), ("longitude", lon)):
            if not np.issubdtype(grid.dtype, np.floating):
                raise TypeError(f"The {name} grid must be floating point, not: {grid.dtype}")

        self._advance(PipelineState.RAW)
        self._reset()
        self._data, self._lat, self._lon = data, lat, lon
        self._log_step()

    def _apply_sort(self, sort_index: np.ndarray):
        self.sort_index = sort_index
        self.sorted_data = gather(sort_index, self._data)
        self.sorted_lat = gather(sort_index, self._lat)
        self.sorted_lon = gather(sort_index, self._lon)

    def sort(self):
        """Sort the swath with the nominal break points (or by latitude)."""
        self._advance(PipelineState.SORTED)
        if self.config.sort_method == "latitude":
            self._apply_sort(argsort_latitude(self._lat))
        else:
            self._apply_sort(build_sort_index(self._lat.shape[0]))
        self._log_step("sort")

    def adjust_break_points(self):
        """Re-sort the swath with break points adjusted to its latitude."""
        if self.config.sort_method != "geometry":
            raise ValueError(f"Break points do not apply to the [{self.config.sort_method}] sort method")
        self._advance(PipelineState.BREAKPOINT_ADJUSTED)
        sort_index, self.break_points = build_adjusted_sort_index(self._lat)
        self._apply_sort(sort_index)
        self._log_step("adjust break points")

    def monotonize_longitude(self):
        self._advance(PipelineState.LON_MONOTONIZED)
        self.mono_lon = monotonize_longitude_grid(self.sort_index, self.sorted_lon, self._lon)
        self._log_step("monotonize longitude")

    def resample(self):
        self._advance(PipelineState.RESAMPLED)
        resolution = column_resolution(self.sorted_lat, self.sorted_lon, mode=self.config.resolution_mode)
        self.resampled = resample_grid(
            self.sorted_data,
            self.sorted_lat,
            self.sorted_lon,
            self.mono_lon,
            resolution,
            valid_min=self.config.valid_min,
            valid_max=self.config.valid_max,
            deletion_value=self.config.deletion_value,
        )
        self._log_step("resample")

    def finish(self, sorted_output: bool = None) -> ResampleResult:
        """Write the resampled values back to the caller's grids.

        Parameters
        ----------
        sorted_output : bool, optional
            If True, keep the latitude-sorted row order and also overwrite the
            caller's latitude and longitude with the sorted grids. Otherwise the
            values are returned to the original row order, and cells that no
            sorted row maps back to (the sort index is not a permutation once
            break points are adjusted) keep their input value. Default is the
            config's `sorted_output`.

        Returns
        -------
        ResampleResult

        """
        if sorted_output is None:
            sorted_output = self.config.sorted_output

        written = None
        if sorted_output:
            self._advance(PipelineState.SORTED_OUTPUT)
            self._data[...] = self.resampled
            self._lat[...] = self.sorted_lat
            self._lon[...] = self.sorted_lon
        else:
            self._advance(PipelineState.UNSORTED)
            written = written_mask(self.sort_index)
            self._data[written] = scatter(self.sort_index, self.resampled)[written]
            nunwritten = written.size - np.count_nonzero(written)
            if nunwritten:
                logger.info("Kept the input value of %d cells not mapped back by the sort index", nunwritten)
        self._log_step("write back")

        return ResampleResult(
            data=self._data,
            sort_index=self.sort_index,
            state=self.state,
            break_points=self.break_points,
            sorted_lat=self.sorted_lat if sorted_output else None,
            sorted_lon=self.sorted_lon if sorted_output else None,
            written=written,
        )

    def run(self, data: np.ndarray, lat: np.ndarray, lon: np.ndarray) -> ResampleResult:
        """Run every resampling step on a swath. See `load`."""
        t0 = time.time()
        self.load(data, lat, lon)
        logger.info("Resampling starting processing of swath with shape [%s]", data.shape)

        self.sort()
        if self.config.adapt_break_points and self.config.sort_method == "geometry":
            if lat.shape[0] > NDETECTORS:
                self.adjust_break_points()
            else:
                logger.debug("Single scan swath, skipping break point adjustment")
        self.monotonize_longitude()
        self.resample()
        result = self.finish()

        logger.info("Resampling completed processing in [%.3f] sec, state=[%s]", time.time() - t0, self.state.name)
        return result


def resample_swath(
    data: np.ndarray, lat: np.ndarray, lon: np.ndarray, config: ResampleConfig = None, **options
) -> ResampleResult:
    """Resample a swath in place.

    Parameters
    ----------
    data : np.ndarray
        Pixel values (float), shape (height, 3200). Overwritten.
    lat, lon : np.ndarray
        Latitude and longitude (degrees). Overwritten with the sorted grids
        when sorted output is requested.
    config : ResampleConfig, optional
        Resampling options. Default is `ResampleConfig()`.
    **options
        Overrides of individual `config` options, e.g., ``sorted_output=True``.

    Returns
    -------
    ResampleResult

    """
    if config is None:
        config = ResampleConfig()
    if options:
        config = dataclasses.replace(config, **options)
    return SwathResampler(config).run(data, lat, lon)


def swath_sort_index(lat: np.ndarray, config: ResampleConfig = None) -> tuple[np.ndarray, BreakPointTable | None]:
    """Sort indices of a swath, as chosen by the config's sort options.

    Returns
    -------
    np.ndarray
        Sort indices, int32, same shape as `lat`.
    BreakPointTable or None
        Adjusted break points, if they were adapted to `lat`.

    """
    if config is None:
        config = ResampleConfig()
    check_swath_shape(lat.shape)

    if config.sort_method == "latitude":
        return argsort_latitude(lat), None
    if config.adapt_break_points and lat.shape[0] > NDETECTORS:
        return build_adjusted_sort_index(lat)
    return build_sort_index(lat.shape[0]), None


def reorder_fields(lat: np.ndarray, fields: dict, config: ResampleConfig = None) -> dict:
    """Sort fields by latitude without resampling them.

    Parameters
    ----------
    lat : np.ndarray
        Latitude (degrees), shape (height, 3200).
    fields : dict[str, np.ndarray]
        Grids to reorder, each with the same shape as `lat`.
    config : ResampleConfig, optional
        Sort options. Default uses break points adjusted to `lat`.

    Returns
    -------
    dict[str, np.ndarray]
        Reordered copy of each field.

    """
    sort_index, _ = swath_sort_index(lat, config)
    logger.info("Reordering %d fields: %s", len(fields), list(fields))
    return {name: gather(sort_index, np.asarray(grid)) for name, grid in fields.items()}


def resample_terrain_corrected(
    lat: np.ndarray, lon: np.ndarray, tc_lat: np.ndarray, tc_lon: np.ndarray, config: ResampleConfig = None
) -> tuple[np.ndarray, np.ndarray]:
    """Resample terrain-corrected geolocation.

    The terrain correction (the difference between the terrain-corrected and
    the ellipsoid geolocation) is resampled and added back to the ellipsoid
    geolocation, in the sorted row order when sorted output is requested.

    Parameters
    ----------
    lat, lon : np.ndarray
        Ellipsoid latitude and longitude (degrees). Not modified.
    tc_lat, tc_lon : np.ndarray
        Terrain-corrected latitude and longitude (degrees).
    config : ResampleConfig, optional
        Resampling options. The valid range is replaced by one suited to
        angle differences.

    Returns
    -------
    np.ndarray, np.ndarray
        Resampled terrain-corrected latitude and longitude.

    """
    if config is None:
        config = ResampleConfig()
    config = dataclasses.replace(config, valid_min=-180.0, valid_max=180.0)

    lat = np.asarray(lat, dtype=np.float64)
    lon = np.asarray(lon, dtype=np.float64)
    lat_diff = np.asarray(tc_lat, dtype=np.float64) - lat
    lon_diff = lon_sum(tc_lon, -lon)

    logger.info("Resampling terrain-corrected latitude")
    base_lat, base_lon = lat.copy(), lon.copy()
    resample_swath(lat_diff, base_lat, base_lon, config)
    new_lat = base_lat + lat_diff

    logger.info("Resampling terrain-corrected longitude")
    base_lat, base_lon = lat.copy(), lon.copy()
    resample_swath(lon_diff, base_lat, base_lon, config)
    new_lon = lon_sum(base_lon, lon_diff)

    return new_lat, new_lon
