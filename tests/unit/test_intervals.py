"""Unit tests for calibration interval generation."""

from datetime import datetime

import numpy as np
import pytest

from ppgspec.analysis.intervals import (
    CalibrationPoint,
    calibration_intervals,
    generate_intervals,
)
from ppgspec.exceptions import InvalidArgumentError


class TestGenerateIntervals:
    """Test symmetric interval generation."""

    def test_numeric_centers(self):
        intervals = generate_intervals([100.0, 250.5], 180.0)

        np.testing.assert_allclose(intervals, [[10.0, 190.0], [160.5, 340.5]])

    @pytest.mark.parametrize("width", [0.5, 60.0, 180.0, 3601.25])
    def test_midpoint_and_width(self, width):
        """Midpoint equals the center and the span equals the width."""
        centers = np.array([0.0, 17.3, 1e6 + 0.125])
        intervals = generate_intervals(centers, width)

        np.testing.assert_allclose(intervals.mean(axis=1), centers)
        np.testing.assert_allclose(intervals[:, 1] - intervals[:, 0], width)

    def test_datetime_centers(self):
        """Date/time centers produce date/time bounds."""
        centers = np.array(
            ["2025-08-19T12:00:00", "2025-08-20T08:30:00"], dtype="datetime64[s]"
        )

        intervals = generate_intervals(centers, 180.0)

        assert np.issubdtype(intervals.dtype, np.datetime64)
        assert intervals[0, 0] == np.datetime64("2025-08-19T11:58:30")
        assert intervals[0, 1] == np.datetime64("2025-08-19T12:01:30")
        assert intervals[1, 1] == np.datetime64("2025-08-20T08:31:30")

    def test_empty_centers(self):
        assert generate_intervals([], 180.0).shape == (0, 2)

    @pytest.mark.parametrize("width", [0.0, -10.0, np.nan])
    def test_invalid_width_raises(self, width):
        with pytest.raises(InvalidArgumentError, match="width must be positive"):
            generate_intervals([100.0], width)


class TestCalibrationIntervals:
    """Test labelled intervals from calibration points."""

    def test_labels_follow_points(self):
        points = [
            CalibrationPoint(center=1000.0, label=11),
            CalibrationPoint(center=2000.0, label="room"),
        ]

        intervals = calibration_intervals(points, 180.0)

        assert [i.label for i in intervals] == [11, "room"]
        assert intervals[0].start == pytest.approx(910.0)
        assert intervals[1].end == pytest.approx(2090.0)

    def test_datetime_points(self):
        points = [CalibrationPoint(center=datetime(2025, 8, 19, 12, 0, 0), label=15)]

        (interval,) = calibration_intervals(points, 180.0)

        assert interval.start == datetime(2025, 8, 19, 11, 58, 30)
        assert interval.end == datetime(2025, 8, 19, 12, 1, 30)
