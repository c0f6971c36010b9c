import importlib.util
from pathlib import Path

import h5py
import numpy as np
import pytest

from bowtie.geometry.permute import gather, scatter
from bowtie.geometry.sort_index import build_sort_index
from bowtie.sdr import hdf

SCRIPT = Path(__file__).parents[1] / "bin" / "resample_viirs.py"
M15 = hdf.band_fields(15, "BrightnessTemperature")
M13 = hdf.band_fields(13, "BrightnessTemperature")
SIND = build_sort_index(32)


@pytest.fixture(scope="module")
def script():
    module_spec = importlib.util.spec_from_file_location("resample_viirs", SCRIPT)
    module = importlib.util.module_from_spec(module_spec)
    module_spec.loader.exec_module(module)
    return module


@pytest.fixture
def granule(tmp_path, make_swath):
    """Geolocation, terrain-corrected geolocation and two band files of a two scan granule."""
    slat, lon = make_swath(2)
    lat = scatter(SIND, slat).astype(np.float32)
    lon = lon.astype(np.float32)

    paths = {key: tmp_path / f"{key}_test.h5" for key in ("GMODO", "GMTCO", "SVM15", "SVM13")}
    with h5py.File(paths["GMODO"], "w") as f:
        f.create_dataset(hdf.LATITUDE_FIELD, data=lat)
        f.create_dataset(hdf.LONGITUDE_FIELD, data=lon)
    with h5py.File(paths["GMTCO"], "w") as f:
        f.create_dataset(hdf.TC_LATITUDE_FIELD, data=lat + np.float32(0.001))
        f.create_dataset(hdf.TC_LONGITUDE_FIELD, data=lon)
    with h5py.File(paths["SVM15"], "w") as f:
        f.create_dataset(M15["data"], data=np.full(lat.shape, 40000, dtype=np.uint16))
        f.create_dataset(f"{M15['data']}Factors", data=np.array([0.0025, 203.0], dtype=np.float32))
        f.create_group(M15["aggregate"])
    with h5py.File(paths["SVM13"], "w") as f:
        f.create_dataset(M13["data"], data=np.full(lat.shape, 285.0, dtype=np.float32))
        f.create_group(M13["aggregate"])
    return paths, lat


class TestCommandLine:
    def test_band(self, script, granule):
        paths, lat = granule
        script.cmd_line_call(["band", str(paths["GMODO"]), str(paths["SVM15"]), "--band", "15"])

        assert (hdf.read_field(paths["SVM15"], M15["data"]) == 40000).all()
        assert hdf.read_attribute(paths["SVM15"], M15["aggregate"], M15["attribute"]) == 1.0

    def test_sorted_granule(self, script, granule):
        paths, lat = granule
        geo = str(paths["GMODO"])

        script.cmd_line_call(["band", geo, str(paths["SVM15"]), "-b", "15", "--sorted"])
        script.cmd_line_call(["band", geo, str(paths["SVM13"]), "-b", "13", "--sorted"])
        script.cmd_line_call(["geo", geo, str(paths["GMTCO"]), "--sorted"])

        # Bands never sort the geolocation they read.
        np.testing.assert_array_equal(lat, hdf.read_field(paths["GMODO"], hdf.LATITUDE_FIELD))
        np.testing.assert_allclose(285.0, hdf.read_field(paths["SVM13"], M13["data"]), rtol=1e-6)
        np.testing.assert_allclose(
            gather(SIND, lat) + 0.001, hdf.read_field(paths["GMTCO"], hdf.TC_LATITUDE_FIELD), atol=1e-5
        )

        script.cmd_line_call(["sort-geo", geo])
        np.testing.assert_array_equal(gather(SIND, lat), hdf.read_field(paths["GMODO"], hdf.LATITUDE_FIELD))

        with pytest.raises(SystemExit) as exc_info:
            script.cmd_line_call(["band", geo, str(paths["SVM15"]), "-b", "15", "--sorted"])
        assert exc_info.value.code == 1

    def test_reorder(self, script, granule):
        paths, lat = granule
        codes = hdf.read_field(paths["SVM15"], M15["data"]).copy()
        codes[0] = 1

        with h5py.File(paths["SVM15"], "r+") as f:
            f[M15["data"]][...] = codes
            f.create_dataset("latitude", data=lat)

        script.cmd_line_call(["reorder", str(paths["SVM15"]), "--fields", M15["data"], "--lat-field", "latitude"])

        np.testing.assert_array_equal(gather(SIND, codes), hdf.read_field(paths["SVM15"], M15["data"]))
        np.testing.assert_array_equal(lat, hdf.read_field(paths["SVM15"], "latitude"))

    def test_config_file(self, script, granule, tmp_path):
        paths, _ = granule
        config_file = tmp_path / "resample.json"
        config_file.write_text('{"sort_method": "unknown"}')

        with pytest.raises(SystemExit) as exc_info:
            script.cmd_line_call(["band", str(paths["GMODO"]), str(paths["SVM15"]), "-b", "15", "-c", str(config_file)])
        assert exc_info.value.code == 1

    def test_usage_errors(self, script, granule):
        paths, _ = granule
        with pytest.raises(SystemExit) as exc_info:
            script.cmd_line_call(["band", str(paths["GMODO"]), str(paths["SVM15"])])
        assert exc_info.value.code == 2
        with pytest.raises(SystemExit):
            script.cmd_line_call([])
