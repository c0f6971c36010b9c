import logging

import numpy as np
import pytest

from bowtie.sdr import fill

GAIN = 0.0025
OFFSET = 203.0


class TestIsFill:
    def test_uint16(self):
        raw = np.array([65535, 65533, 65528, 65530, 100], dtype=np.uint16)
        np.testing.assert_array_equal([True, True, True, False, False], fill.is_fill(raw))

    def test_float32(self):
        raw = np.array([-999.9, -999.7, -999.3, -999.4, 280.0], dtype=np.float32)
        np.testing.assert_array_equal([True, True, True, False, False], fill.is_fill(raw))

    def test_float64_of_float32_fills(self):
        raw = fill.FLOAT32_FILLS.astype(np.float64)
        assert fill.is_fill(raw).all()

    def test_deletion_code(self):
        assert fill.deletion_code(np.uint16) == 65533
        assert fill.deletion_code(np.float32) == fill.ONBOARD_PT_FLOAT32_FILL


class TestDecodeFill:
    def test_scaled(self):
        raw = np.array([[40000, 65535, 65533, 0]], dtype=np.uint16)
        values = fill.decode_fill(raw, GAIN, OFFSET)
        assert values.dtype == np.float64
        np.testing.assert_allclose([[303.0, np.nan, np.nan, 203.0]], values)

    def test_scaled_keep_deletion(self):
        raw = np.array([40000, 65535, 65533], dtype=np.uint16)
        values = fill.decode_fill(raw, GAIN, OFFSET, deletion_value=-999.0)
        np.testing.assert_allclose([303.0, np.nan, -999.0], values)

    def test_float(self):
        raw = np.array([-999.7, -999.9, 280.5], dtype=np.float32)
        np.testing.assert_allclose([np.nan, np.nan, 280.5], fill.decode_fill(raw))
        np.testing.assert_allclose([-999.0, np.nan, 280.5], fill.decode_fill(raw, deletion_value=-999.0))

    def test_input_unchanged(self):
        raw = np.array([-999.7, 280.5])
        fill.decode_fill(raw)
        assert raw[0] == -999.7


class TestQuantize:
    def test_scaled(self):
        np.testing.assert_array_equal([40000, 0], fill.quantize(np.array([303.0, 203.0]), GAIN, OFFSET))

    def test_round_half_away_from_zero(self):
        codes = fill.quantize(np.array([2.5, 3.4999, 0.5, 10.0]), 1.0, 0.0)
        assert codes.dtype == np.uint16
        np.testing.assert_array_equal([3, 3, 1, 10], codes)

    def test_nan(self):
        np.testing.assert_array_equal([fill.NA_UINT16_FILL, 5], fill.quantize(np.array([np.nan, 5.0]), 1.0, 0.0))

    def test_clipped(self, caplog):
        values = np.array([[1.0, -2.5], [70000.0, 65535.4]])
        with caplog.at_level(logging.WARNING, logger="bowtie.sdr.fill"):
            codes = fill.quantize(values, 1.0, 0.0)
        np.testing.assert_array_equal([[1, 0], [65535, 65535]], codes)
        assert "out of range at 2 pixels" in caplog.text
        assert "row=0, col=1" in caplog.text


class TestMergeResampled:
    def test_scaled(self):
        raw = np.array([40000, 65535, 65533, 40001, 40002], dtype=np.uint16)
        resampled = np.array([303.25, 290.0, 303.0, np.nan, 303.0])
        merged = fill.merge_resampled(raw, resampled, GAIN, OFFSET)

        assert merged.dtype == np.uint16
        np.testing.assert_array_equal([40100, 65535, 40000, 40001, 40000], merged)

    def test_float(self):
        raw = np.array([-999.9, -999.7, 280.0, 281.0], dtype=np.float32)
        resampled = np.array([281.0, 282.0, 283.0, np.nan])
        merged = fill.merge_resampled(raw, resampled)

        assert merged.dtype == np.float32
        np.testing.assert_array_equal(np.array([-999.9, 282.0, 283.0, 281.0], dtype=np.float32), merged)

    def test_keep_mask(self):
        # Cells with a zero placeholder (nothing resampled there) keep the raw code.
        raw = np.array([40000, 40001, fill.ONBOARD_PT_UINT16_FILL, 40002], dtype=np.uint16)
        resampled = np.array([303.0, 0.0, 0.0, 303.0])
        keep = np.array([False, True, True, False])
        merged = fill.merge_resampled(raw, resampled, GAIN, OFFSET, keep=keep)

        np.testing.assert_array_equal([40000, 40001, fill.ONBOARD_PT_UINT16_FILL, 40000], merged)

    def test_shape_mismatch(self):
        with pytest.raises(ValueError, match="does not match"):
            fill.merge_resampled(np.zeros((2, 3), dtype=np.uint16), np.zeros((3, 2)))
        with pytest.raises(ValueError, match="Keep mask shape"):
            fill.merge_resampled(np.zeros((2, 3), dtype=np.uint16), np.zeros((2, 3)), keep=np.zeros(3, dtype=bool))
