import logging

import h5py
import numpy as np
import pytest

from bowtie.config import ResampleConfig
from bowtie.geometry.permute import gather, scatter
from bowtie.geometry.sort_index import build_sort_index
from bowtie.sdr import hdf, runners
from bowtie.sdr.fill import NA_UINT16_FILL, ONBOARD_PT_FLOAT32_FILL, ONBOARD_PT_UINT16_FILL

NSCANS = 2
M15 = hdf.band_fields(15, "BrightnessTemperature")
M13 = hdf.band_fields(13, "BrightnessTemperature")


@pytest.fixture
def geolocation(make_swath):
    """Latitude and longitude whose nominal sort increases by row."""
    slat, lon = make_swath(NSCANS)
    sind = build_sort_index(slat.shape[0])
    return scatter(sind, slat).astype(np.float32), lon.astype(np.float32), sind


@pytest.fixture
def geo_file(tmp_path, geolocation):
    lat, lon, _ = geolocation
    path = tmp_path / "GMODO_test.h5"
    with h5py.File(path, "w") as f:
        f.create_dataset(hdf.LATITUDE_FIELD, data=lat)
        f.create_dataset(hdf.LONGITUDE_FIELD, data=lon)
    return path


@pytest.fixture
def drifted_geo_file(tmp_path, make_swath):
    """Geolocation whose boundary rows of the two scans swap in columns 355-357."""
    slat, lon = make_swath(NSCANS)
    slat[[15, 16], 355:358] = slat[[16, 15], 355:358]
    path = tmp_path / "GMODO_drifted.h5"
    with h5py.File(path, "w") as f:
        f.create_dataset(hdf.LATITUDE_FIELD, data=scatter(build_sort_index(32), slat).astype(np.float32))
        f.create_dataset(hdf.LONGITUDE_FIELD, data=lon.astype(np.float32))
    return path


@pytest.fixture
def m15_file(tmp_path, geolocation):
    """Constant brightness temperature with a deletion zone and a missing pixel."""
    _, _, sind = geolocation
    codes = np.full(sind.shape, 40000, dtype=np.uint16)
    codes[16, :10] = ONBOARD_PT_UINT16_FILL
    codes[20, 1000] = NA_UINT16_FILL
    codes = scatter(sind, codes)

    path = tmp_path / "SVM15_test.h5"
    with h5py.File(path, "w") as f:
        f.create_dataset(M15["data"], data=codes)
        f.create_dataset(f"{M15['data']}Factors", data=np.array([0.0025, 203.0], dtype=np.float32))
        f.create_group(M15["aggregate"])
    return path


@pytest.fixture
def m13_file(tmp_path, geolocation):
    _, _, sind = geolocation
    values = np.full(sind.shape, 285.0, dtype=np.float32)
    values[16, -5:] = ONBOARD_PT_FLOAT32_FILL
    values = scatter(sind, values)

    path = tmp_path / "SVM13_test.h5"
    with h5py.File(path, "w") as f:
        f.create_dataset(M13["data"], data=values)
        f.create_group(M13["aggregate"])
    return path


class TestResampleBandFile:
    def test_unchanged_without_blending(self, m15_file, geo_file):
        raw = hdf.read_field(m15_file, M15["data"])
        result = runners.resample_band_file(m15_file, geo_file, 15)

        assert not result.is_sorted
        np.testing.assert_array_equal(raw, hdf.read_field(m15_file, M15["data"]))
        assert hdf.read_attribute(m15_file, M15["aggregate"], M15["attribute"]) == 1.0
        assert hdf.read_attribute(geo_file, hdf.LATITUDE_FIELD, hdf.RESAMPLED_ATTRIBUTE) is None

    def test_blend_deletion_zone(self, m15_file, geo_file, geolocation):
        _, _, sind = geolocation
        runners.resample_band_file(m15_file, geo_file, 15, ResampleConfig(blend_deletion_zone=True))

        codes = gather(sind, hdf.read_field(m15_file, M15["data"]))
        assert (codes[16, :10] == 40000).all()
        assert codes[20, 1000] == NA_UINT16_FILL
        assert np.count_nonzero(codes != 40000) == 1

    def test_already_resampled(self, m15_file, geo_file, caplog):
        runners.resample_band_file(m15_file, geo_file, 15)
        with caplog.at_level(logging.WARNING, logger="bowtie.sdr.runners"):
            runners.resample_band_file(m15_file, geo_file, 15)
        assert "already resampled" in caplog.text

    def test_float_band(self, m13_file, geo_file, geolocation):
        _, _, sind = geolocation
        runners.resample_band_file(m13_file, geo_file, 13, ResampleConfig(blend_deletion_zone=True))

        values = hdf.read_field(m13_file, M13["data"])
        assert values.dtype == np.float32
        np.testing.assert_allclose(285.0, values, rtol=1e-6)

    def test_sorted_output(self, m15_file, m13_file, geo_file, geolocation):
        lat, _, sind = geolocation
        raw15 = hdf.read_field(m15_file, M15["data"])
        raw13 = hdf.read_field(m13_file, M13["data"])
        config = ResampleConfig(sorted_output=True)

        result = runners.resample_band_file(m15_file, geo_file, 15, config)
        assert result.is_sorted
        np.testing.assert_array_equal(sind, result.sort_index)
        assert runners.resample_band_file(m13_file, geo_file, 13, config).is_sorted

        np.testing.assert_array_equal(gather(sind, raw15), hdf.read_field(m15_file, M15["data"]))
        np.testing.assert_allclose(gather(sind, raw13), hdf.read_field(m13_file, M13["data"]), rtol=1e-6)
        # Sorting the geolocation is a separate step, after every band.
        np.testing.assert_array_equal(lat, hdf.read_field(geo_file, hdf.LATITUDE_FIELD))
        assert hdf.read_attribute(geo_file, hdf.LATITUDE_FIELD, hdf.RESAMPLED_ATTRIBUTE) is None

        runners.sort_geolocation_file(geo_file, config)
        np.testing.assert_array_equal(gather(sind, lat), hdf.read_field(geo_file, hdf.LATITUDE_FIELD))
        with pytest.raises(ValueError, match="already sorted"):
            runners.resample_band_file(m15_file, geo_file, 15, config)

    def test_drifted_geolocation(self, m15_file, drifted_geo_file):
        raw = hdf.read_field(m15_file, M15["data"])
        result = runners.resample_band_file(m15_file, drifted_geo_file, 15)

        assert not result.is_sorted
        assert not result.written.all()
        np.testing.assert_array_equal(raw, hdf.read_field(m15_file, M15["data"]))

    def test_drifted_geolocation_blend(self, m15_file, drifted_geo_file):
        runners.resample_band_file(m15_file, drifted_geo_file, 15, ResampleConfig(blend_deletion_zone=True))

        codes = hdf.read_field(m15_file, M15["data"])
        assert not (codes == 0).any()
        assert np.count_nonzero(codes != 40000) == 1

    def test_write_reordered(self, m15_file, geo_file, geolocation):
        _, _, sind = geolocation
        raw = hdf.read_field(m15_file, M15["data"])
        runners.resample_band_file(m15_file, geo_file, 15, ResampleConfig(write_reordered=True))
        np.testing.assert_array_equal(gather(sind, raw), hdf.read_field(m15_file, M15["reordered"]))

    def test_shape_mismatch(self, tmp_path, geo_file):
        path = tmp_path / "SVM15_small.h5"
        with h5py.File(path, "w") as f:
            f.create_dataset(M15["data"], data=np.zeros((16, 3200), dtype=np.uint16))
            f.create_dataset(f"{M15['data']}Factors", data=np.array([0.0025, 203.0], dtype=np.float32))
        with pytest.raises(ValueError, match="does not match geolocation"):
            runners.resample_band_file(path, geo_file, 15)


class TestGeolocationFiles:
    def test_read_geolocation(self, geo_file, geolocation):
        lat, lon = runners.read_geolocation(geo_file)
        assert lat.dtype == np.float64
        np.testing.assert_array_equal(geolocation[0], lat)
        np.testing.assert_array_equal(geolocation[1], lon)

    def test_resample_terrain_corrected(self, tmp_path, geo_file, geolocation):
        lat, lon, _ = geolocation
        gmtco = tmp_path / "GMTCO_test.h5"
        with h5py.File(gmtco, "w") as f:
            f.create_dataset(hdf.TC_LATITUDE_FIELD, data=lat + np.float32(0.001))
            f.create_dataset(hdf.TC_LONGITUDE_FIELD, data=lon + np.float32(0.002))

        tc_lat, tc_lon = runners.resample_geolocation_file(geo_file, gmtco)

        np.testing.assert_allclose(lat + 0.001, tc_lat, atol=1e-5)
        np.testing.assert_allclose(lon + 0.002, tc_lon, atol=1e-5)
        np.testing.assert_allclose(lat + 0.001, hdf.read_field(gmtco, hdf.TC_LATITUDE_FIELD), atol=1e-5)
        assert hdf.read_attribute(gmtco, hdf.TC_LONGITUDE_FIELD, hdf.RESAMPLED_ATTRIBUTE) == 1.0

    def test_terrain_corrected_needs_unsorted(self, tmp_path, geo_file, geolocation):
        lat, lon, _ = geolocation
        gmtco = tmp_path / "GMTCO_test.h5"
        with h5py.File(gmtco, "w") as f:
            f.create_dataset(hdf.TC_LATITUDE_FIELD, data=lat)
            f.create_dataset(hdf.TC_LONGITUDE_FIELD, data=lon)

        runners.sort_geolocation_file(geo_file)
        with pytest.raises(ValueError, match="already sorted"):
            runners.resample_geolocation_file(geo_file, gmtco)
        np.testing.assert_array_equal(lat, hdf.read_field(gmtco, hdf.TC_LATITUDE_FIELD))

    def test_sort_geolocation(self, geo_file, geolocation):
        lat, lon, sind = geolocation
        out = runners.sort_geolocation_file(geo_file)

        np.testing.assert_array_equal(sind, out)
        sorted_lat = hdf.read_field(geo_file, hdf.LATITUDE_FIELD)
        assert np.all(np.diff(sorted_lat, axis=0) > 0)
        assert hdf.read_attribute(geo_file, hdf.LATITUDE_FIELD, hdf.RESAMPLED_ATTRIBUTE) == 1.0

    def test_reorder_file(self, tmp_path, geolocation):
        lat, _, sind = geolocation
        codes = (np.arange(lat.size) % 60000).astype(np.uint16).reshape(lat.shape)
        path = tmp_path / "ACSPO_test.h5"
        with h5py.File(path, "w") as f:
            f.create_dataset("latitude", data=lat)
            f.create_dataset("sst_quality", data=codes)

        reordered = runners.reorder_file(path, ["sst_quality", "latitude"], "latitude")

        assert set(reordered) == {"sst_quality", "latitude"}
        np.testing.assert_array_equal(gather(sind, codes), hdf.read_field(path, "sst_quality"))
        np.testing.assert_array_equal(gather(sind, lat), hdf.read_field(path, "latitude"))
