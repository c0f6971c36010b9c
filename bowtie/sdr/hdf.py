"""HDF5 field and attribute access for VIIRS SDR and geolocation files.

Fields are addressed by their full path within the file, e.g.,
"All_Data/VIIRS-M15-SDR_All/BrightnessTemperature". Scaled integer fields
store their gain and offset in a sibling "<field>Factors" dataset.

"""

from __future__ import annotations

import logging
from pathlib import Path

import numpy as np

logger = logging.getLogger(__name__)

# Geolocation fields.
LATITUDE_FIELD = "All_Data/VIIRS-MOD-GEO_All/Latitude"
LONGITUDE_FIELD = "All_Data/VIIRS-MOD-GEO_All/Longitude"
TC_LATITUDE_FIELD = "All_Data/VIIRS-MOD-GEO-TC_All/Latitude"
TC_LONGITUDE_FIELD = "All_Data/VIIRS-MOD-GEO-TC_All/Longitude"

# Marks a geolocation field as resampled.
RESAMPLED_ATTRIBUTE = "Resampling"


def band_fields(band: int, quantity: str) -> dict[str, str]:
    """Field paths of an M-band SDR file.

    Parameters
    ----------
    band : int
        M-band number.
    quantity : str
        "Reflectance" or "BrightnessTemperature".

    Returns
    -------
    dict[str, str]
        Paths of the "data" field, its "reordered" copy and the "aggregate"
        object holding the resampling attribute, plus the "attribute" name.

    """
    return {
        "data": f"All_Data/VIIRS-M{band}-SDR_All/{quantity}",
        "reordered": f"All_Data/VIIRS-M{band}-SDR_All/Reordered{quantity}",
        "aggregate": f"Data_Products/VIIRS-M{band}-SDR/VIIRS-M{band}-SDR_Aggr",
        "attribute": f"Resampling{quantity}",
    }


def _check_file(path) -> Path:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"HDF file not found: {path}")
    return path


def read_field(path, name: str) -> np.ndarray:
    """Read a 2D field, keeping its stored type.

    Raises
    ------
    FileNotFoundError
        If the file doesn't exist.
    KeyError
        If the field is not in the file.
    OSError
        If the file can't be read.

    """
    import h5py

    path = _check_file(path)
    try:
        with h5py.File(path, "r") as hdf:
            if name not in hdf:
                raise KeyError(f"Field '{name}' not found in {path.name}")
            data = hdf[name][()]
    except OSError as e:
        raise OSError(f"Error reading HDF file {path}: {e}") from e

    if data.ndim != 2:
        raise ValueError(f"Field '{name}' in {path.name} must be 2D, not shape {data.shape}")
    logger.debug("Read field %s from %s: shape=%s, dtype=%s", name, path.name, data.shape, data.dtype)
    return data


def write_field(path, name: str, data: np.ndarray, create: bool = False):
    """Overwrite a 2D field in an existing file.

    Parameters
    ----------
    path : str or Path
        Existing HDF file.
    name : str
        Field path.
    data : np.ndarray
        New values. Must match the shape of the stored field.
    create : bool, optional
        Create the field (with the type of `data`) if it doesn't exist.
        Default is to raise a KeyError.

    """
    import h5py

    path = _check_file(path)
    try:
        with h5py.File(path, "r+") as hdf:
            if name not in hdf:
                if not create:
                    raise KeyError(f"Field '{name}' not found in {path.name}")
                hdf.create_dataset(name, data=data)
                logger.info("Created field %s in %s: shape=%s", name, path.name, data.shape)
                return

            dataset = hdf[name]
            if dataset.shape != data.shape:
                raise ValueError(f"Field '{name}' has shape {dataset.shape}, cannot write shape {data.shape}")
            dataset[...] = data
    except OSError as e:
        raise OSError(f"Error writing HDF file {path}: {e}") from e

    logger.debug("Wrote field %s to %s", name, path.name)


def read_factors(path, name: str) -> tuple[float, float]:
    """Read the (gain, offset) of a scaled field."""
    import h5py

    path = _check_file(path)
    factors_name = f"{name}Factors"
    try:
        with h5py.File(path, "r") as hdf:
            if factors_name not in hdf:
                raise KeyError(f"Scale factors '{factors_name}' not found in {path.name}")
            factors = np.asarray(hdf[factors_name][()], dtype=np.float32).ravel()
    except OSError as e:
        raise OSError(f"Error reading HDF file {path}: {e}") from e

    if factors.size < 2:
        raise ValueError(f"Scale factors '{factors_name}' must hold a gain and an offset, found {factors.size} values")
    gain, offset = float(factors[0]), float(factors[1])
    logger.debug("Scale factors of %s: gain=%s, offset=%s", name, gain, offset)
    return gain, offset


def read_scaled_field(path, name: str) -> tuple[np.ndarray, float, float]:
    """Read a scaled integer field and its (gain, offset)."""
    gain, offset = read_factors(path, name)
    return read_field(path, name), gain, offset


def write_scaled_field(path, name: str, codes: np.ndarray):
    """Overwrite a scaled integer field. Its scale factors are unchanged."""
    read_factors(path, name)
    write_field(path, name, codes.astype(np.uint16, copy=False))


def read_attribute(path, name: str, attribute: str):
    """Read an attribute of a field or group, or None if it isn't set."""
    import h5py

    path = _check_file(path)
    try:
        with h5py.File(path, "r") as hdf:
            if name not in hdf:
                raise KeyError(f"Object '{name}' not found in {path.name}")
            value = hdf[name].attrs.get(attribute)
    except OSError as e:
        raise OSError(f"Error reading HDF file {path}: {e}") from e

    if isinstance(value, np.ndarray) and value.size == 1:
        value = value.item()
    return value


def write_resampled_attribute(path, name: str, attribute: str = RESAMPLED_ATTRIBUTE, value: float = 1.0) -> bool:
    """Mark a field (or group) as resampled.

    Returns
    -------
    bool
        True if the attribute was already present, i.e., the data was
        resampled before. The existing attribute is left unchanged.

    """
    import h5py

    path = _check_file(path)
    try:
        with h5py.File(path, "r+") as hdf:
            if name not in hdf:
                raise KeyError(f"Object '{name}' not found in {path.name}")
            attrs = hdf[name].attrs
            if attribute in attrs:
                return True
            attrs.create(attribute, np.array([value], dtype=np.float32))
    except OSError as e:
        raise OSError(f"Error writing HDF file {path}: {e}") from e

    logger.debug("Set attribute %s of %s in %s", attribute, name, path.name)
    return False
