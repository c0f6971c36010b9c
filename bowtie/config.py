"""Resampling configuration.

Configurations can be built directly, or loaded from a dictionary or JSON
file, e.g.::

    {
        "valid_min": 0.0,
        "valid_max": 350.0,
        "sorted_output": false,
        "resolution_mode": "quadratic"
    }

"""

from __future__ import annotations

import dataclasses
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .geometry.tables import DELETION_ZONE_FLOAT, DELETION_ZONE_INT, MAX_TEMP, MIN_TEMP

logger = logging.getLogger(__name__)

SORT_METHODS = ("geometry", "latitude")
RESOLUTION_MODES = ("geodesic", "quadratic")

# Bands that are stored as floats instead of scaled integers.
FLOAT_BANDS = (13,)

# Bands M12 and above are brightness temperatures, the rest reflectances.
FIRST_EMISSIVE_BAND = 12


@dataclass
class ResampleConfig:
    """Options controlling a resampling run."""

    valid_min: float = MIN_TEMP
    valid_max: float = MAX_TEMP
    deletion_value: float = DELETION_ZONE_FLOAT
    sorted_output: bool = False
    adapt_break_points: bool = True
    sort_method: str = "geometry"
    resolution_mode: str = "geodesic"
    blend_deletion_zone: bool = False
    write_reordered: bool = False

    def __post_init__(self) -> None:
        self.valid_min = float(self.valid_min)
        self.valid_max = float(self.valid_max)
        self.deletion_value = float(self.deletion_value)
        if self.valid_min > self.valid_max:
            raise ValueError(f"Invalid valid range [{self.valid_min}, {self.valid_max}]")
        if self.sort_method not in SORT_METHODS:
            raise ValueError(f"Unknown sort method {self.sort_method!r}; expected one of {SORT_METHODS}")
        if self.resolution_mode not in RESOLUTION_MODES:
            raise ValueError(f"Unknown resolution mode {self.resolution_mode!r}; expected one of {RESOLUTION_MODES}")

    @classmethod
    def from_dict(cls, properties: dict[str, Any]) -> ResampleConfig:
        known = {field.name for field in dataclasses.fields(cls)}
        unknown = set(properties) - known
        if unknown:
            raise KeyError(f"Unknown resampling options: {sorted(unknown)}. Valid options: {sorted(known)}")
        return cls(**properties)

    @classmethod
    def from_json(cls, json_file) -> ResampleConfig:
        json_file = Path(json_file)
        if not json_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {json_file}")
        try:
            properties = json.loads(json_file.read_text())
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in {json_file}: {e}") from e

        logger.debug("Loaded resampling config from: %s", json_file)
        return cls.from_dict(properties)

    def to_dict(self) -> dict[str, Any]:
        return dataclasses.asdict(self)

    def for_band(self, band: int, gain: float = 1.0, offset: float = 0.0) -> ResampleConfig:
        """Copy of the config with the deletion-zone value of an M-band.

        Parameters
        ----------
        band : int
            M-band number (1-16).
        gain, offset : float, optional
            Scale factors of the band's integer encoding. Ignored for float
            bands.

        Returns
        -------
        ResampleConfig
            New configuration.

        """
        if not 1 <= band <= 16:
            raise ValueError(f"Invalid band {band}; expected M1-M16")
        if band in FLOAT_BANDS:
            deletion_value = DELETION_ZONE_FLOAT
        else:
            deletion_value = gain * DELETION_ZONE_INT + offset
        return dataclasses.replace(self, deletion_value=deletion_value)


def band_quantity(band: int) -> str:
    """Name of the physical quantity stored for an M-band."""
    return "Reflectance" if band < FIRST_EMISSIVE_BAND else "BrightnessTemperature"
