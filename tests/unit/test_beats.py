"""Unit tests for binned beat rate estimation."""

import numpy as np
import pytest

from ppgspec.analysis.beats import beat_rate_bins
from ppgspec.exceptions import InvalidArgumentError


@pytest.fixture
def steady_beats():
    """A beat every 0.5 s (2 Hz) for 60 s."""
    return np.arange(121) * 0.5


class TestBeatRateBins:
    """Test sliding-window beat counting."""

    def test_steady_rate_in_interior(self, steady_beats):
        rates, centers = beat_rate_bins(steady_beats, delta_t=1.0, window=5.0)

        np.testing.assert_allclose(centers, np.arange(61.0))
        # Bin at 30 s counts beats in [27.5, 32.5)
        assert rates[30] == pytest.approx(2.0)
        np.testing.assert_allclose(rates[3:58], 2.0)

    def test_edge_bins_see_fewer_beats(self, steady_beats):
        rates, _ = beat_rate_bins(steady_beats, delta_t=1.0, window=5.0)

        # [-2.5, 2.5) holds 0.0 through 2.0
        assert rates[0] == pytest.approx(1.0)
        assert rates[-1] < 2.0

    def test_default_grid(self, steady_beats):
        rates, centers = beat_rate_bins(steady_beats)

        assert len(centers) == 121
        assert centers[1] - centers[0] == pytest.approx(0.5)
        assert rates.shape == centers.shape

    def test_offset_start(self):
        beats = 1000.0 + np.arange(11) * 1.0

        _, centers = beat_rate_bins(beats, delta_t=2.5, window=4.0)

        np.testing.assert_allclose(centers, [1000.0, 1002.5, 1005.0, 1007.5, 1010.0])

    def test_single_beat(self):
        rates, centers = beat_rate_bins([12.0], window=4.0)

        np.testing.assert_allclose(centers, [12.0])
        np.testing.assert_allclose(rates, [0.25])

    def test_datetime_input_gives_datetime_centers(self):
        start = np.datetime64("2025-08-19T12:00:00", "ns")
        beats = start + (np.arange(21) * 500).astype("timedelta64[ms]")

        rates, centers = beat_rate_bins(beats, delta_t=1.0, window=4.0)

        assert np.issubdtype(centers.dtype, np.datetime64)
        assert centers[0] == start
        assert centers[-1] == start + np.timedelta64(10, "s")
        assert rates[5] == pytest.approx(2.0)

    def test_unsorted_raises(self):
        with pytest.raises(InvalidArgumentError, match="sorted"):
            beat_rate_bins([0.0, 2.0, 1.0])

    def test_empty_raises(self):
        with pytest.raises(InvalidArgumentError, match="empty"):
            beat_rate_bins([])

    @pytest.mark.parametrize("kwargs", [{"delta_t": 0.0}, {"window": -1.0}])
    def test_non_positive_parameters_raise(self, kwargs):
        with pytest.raises(InvalidArgumentError, match="positive"):
            beat_rate_bins([0.0, 1.0], **kwargs)
