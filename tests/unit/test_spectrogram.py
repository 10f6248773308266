"""
Unit tests for spectrogram computation.

Tests the spectrogram module's ability to:
- Tile a signal into non-overlapping windows stamped with their start time
- Locate the dominant frequency of regular and irregular signals
- Split at recording gaps and keep real gap timing
- Reject invalid inputs
"""

import numpy as np
import pytest

from ppgspec.analysis.spectrogram import (
    compute_chunked_spectrogram,
    compute_spectrogram,
    concatenate_spectrograms,
    split_at_gaps,
    validate_frequencies,
)
from ppgspec.constants import SpectralScale
from ppgspec.exceptions import InvalidArgumentError
from tests.helpers.synthetic_data import generate_ppg

FREQUENCIES = np.round(np.arange(1, 51) * 0.1, 10)  # 0.1 .. 5.0 Hz


class TestValidateFrequencies:
    """Test analysis frequency validation."""

    def test_accepts_ascending_positive(self):
        """Ascending positive frequencies are returned as float64."""
        f = validate_frequencies([0.5, 1.0, 1.5])
        assert f.dtype == np.float64
        np.testing.assert_array_equal(f, [0.5, 1.0, 1.5])

    def test_rejects_empty(self):
        with pytest.raises(InvalidArgumentError, match="must not be empty"):
            validate_frequencies([])

    def test_rejects_non_positive(self):
        with pytest.raises(InvalidArgumentError, match="positive"):
            validate_frequencies([0.0, 1.0])

    def test_rejects_descending(self):
        with pytest.raises(InvalidArgumentError, match="ascending"):
            validate_frequencies([2.0, 1.0])


class TestComputeSpectrogram:
    """Test single-signal spectrogram computation."""

    def test_shape_matches_coordinate_vectors(self):
        """spec has one row per frequency and one column per timestamp."""
        t, x = generate_ppg(duration=100.0)
        spec = compute_spectrogram(x, t, FREQUENCIES, 10.0)

        assert spec.spec.shape == (len(spec.f), len(spec.ts))
        assert spec.spec.shape == (50, 10)

    def test_timestamps_are_window_starts(self):
        """Consecutive timestamps differ by the window duration."""
        t, x = generate_ppg(duration=100.0, t0=5.0)
        spec = compute_spectrogram(x, t, FREQUENCIES, 10.0)

        assert spec.ts[0] == pytest.approx(5.0)
        np.testing.assert_allclose(np.diff(spec.ts), 10.0)

    def test_only_complete_windows(self):
        """A trailing partial window is dropped."""
        t, x = generate_ppg(duration=95.0)
        spec = compute_spectrogram(x, t, FREQUENCIES, 10.0)

        assert spec.n_times == 9

    def test_peak_at_signal_frequency(self):
        """Every column peaks at the sinusoid's frequency."""
        t, x = generate_ppg(duration=60.0, frequency=1.2)
        spec = compute_spectrogram(x, t, FREQUENCIES, 10.0)

        peaks = spec.f[np.argmax(spec.spec, axis=0)]
        np.testing.assert_allclose(peaks, 1.2)

    def test_frequency_vector_unchanged(self):
        """Output f equals the requested frequencies."""
        t, x = generate_ppg(duration=30.0)
        spec = compute_spectrogram(x, t, FREQUENCIES, 10.0)

        np.testing.assert_array_equal(spec.f, FREQUENCIES)

    def test_downsample_keeps_every_nth_column(self):
        """Downsampling drops columns without moving window boundaries."""
        t, x = generate_ppg(duration=100.0)
        full = compute_spectrogram(x, t, FREQUENCIES, 10.0)
        reduced = compute_spectrogram(x, t, FREQUENCIES, 10.0, downsample=2)

        np.testing.assert_allclose(reduced.ts, [0.0, 20.0, 40.0, 60.0, 80.0])
        np.testing.assert_array_equal(reduced.spec, full.spec[:, ::2])

    def test_signal_shorter_than_window_is_empty(self):
        """No complete window yields an empty spectrogram with frequency rows."""
        t, x = generate_ppg(duration=5.0)
        spec = compute_spectrogram(x, t, FREQUENCIES, 10.0)

        assert spec.is_empty
        assert spec.spec.shape == (len(FREQUENCIES), 0)

    def test_scales_are_consistent(self):
        """Power is squared magnitude and decibels are 10*log10 of power."""
        t, x = generate_ppg(duration=30.0)
        magnitude = compute_spectrogram(
            x, t, FREQUENCIES, 10.0, scale=SpectralScale.MAGNITUDE
        )
        power = compute_spectrogram(x, t, FREQUENCIES, 10.0, scale="power")
        decibels = compute_spectrogram(x, t, FREQUENCIES, 10.0)

        np.testing.assert_allclose(power.spec, magnitude.spec**2)
        np.testing.assert_allclose(decibels.spec, 10 * np.log10(power.spec + 1e-10))

    def test_irregular_sampling_finds_peak(self, rng):
        """Jittered timestamps still resolve the dominant frequency."""
        t, x = generate_ppg(duration=60.0, frequency=1.2)
        t = t + rng.uniform(-0.002, 0.002, len(t))
        x = np.sin(2 * np.pi * 1.2 * t)

        spec = compute_spectrogram(x, t, FREQUENCIES, 10.0)

        peaks = spec.f[np.argmax(spec.spec, axis=0)]
        np.testing.assert_allclose(peaks, 1.2)

    def test_empty_window_gives_nan_column(self):
        """A window with no samples inside an irregular signal is NaN."""
        t1, x1 = generate_ppg(duration=20.0)
        t2, x2 = generate_ppg(duration=20.0, t0=30.0)
        t = np.concatenate([t1, t2])
        x = np.concatenate([x1, x2])

        spec = compute_spectrogram(x, t, FREQUENCIES, 10.0)

        assert spec.n_times == 5
        assert np.all(np.isnan(spec.spec[:, 2]))
        assert np.all(np.isfinite(spec.spec[:, [0, 1, 3, 4]]))

    def test_datetime_timestamps(self):
        """Date/time input produces a POSIX-clock spectrogram."""
        start = np.datetime64("2025-08-19T00:00:00", "ns")
        offsets = (np.arange(1550) * 20).astype("timedelta64[ms]")
        timestamps = start + offsets
        x = np.sin(2 * np.pi * 1.2 * np.arange(1550) / 50.0)

        spec = compute_spectrogram(
            x, timestamps, FREQUENCIES, 10.0, time_is_datetime=True
        )

        assert spec.clock == "posix"
        assert spec.n_times == 3
        assert spec.ts[0] == pytest.approx(start.astype(np.int64) / 1e9)
        assert spec.timestamps_as_datetime()[0] == start

    def test_datetime_without_flag_raises(self):
        timestamps = np.array(
            ["2025-08-19T00:00:00", "2025-08-19T00:00:01"], dtype="datetime64[s]"
        )
        with pytest.raises(InvalidArgumentError, match="time_is_datetime"):
            compute_spectrogram([1.0, 2.0], timestamps, FREQUENCIES, 10.0)

    @pytest.mark.parametrize("window_time", [0.0, -1.0, np.inf])
    def test_invalid_window_raises(self, window_time):
        t, x = generate_ppg(duration=30.0)
        with pytest.raises(InvalidArgumentError, match="Window duration"):
            compute_spectrogram(x, t, FREQUENCIES, window_time)

    def test_length_mismatch_raises(self):
        t, x = generate_ppg(duration=30.0)
        with pytest.raises(InvalidArgumentError, match="same length"):
            compute_spectrogram(x[:-1], t, FREQUENCIES, 10.0)

    def test_non_increasing_timestamps_raise(self):
        with pytest.raises(InvalidArgumentError, match="strictly increasing"):
            compute_spectrogram([1.0, 2.0, 3.0], [0.0, 1.0, 1.0], FREQUENCIES, 1.0)

    def test_invalid_downsample_raises(self):
        t, x = generate_ppg(duration=30.0)
        with pytest.raises(InvalidArgumentError, match="Downsample"):
            compute_spectrogram(x, t, FREQUENCIES, 10.0, downsample=0)


class TestSplitAtGaps:
    """Test gap detection."""

    def test_no_gaps_single_segment(self):
        t = np.arange(10.0)
        segments = split_at_gaps(t, t * 2, gap_threshold=2.0)

        assert len(segments) == 1
        np.testing.assert_array_equal(segments[0][0], t)

    def test_splits_at_large_step(self):
        t = np.array([0.0, 1.0, 2.0, 10.0, 11.0])
        x = np.array([1.0, 2.0, 3.0, 4.0, 5.0])

        segments = split_at_gaps(t, x, gap_threshold=2.0)

        assert len(segments) == 2
        np.testing.assert_array_equal(segments[0][1], [1.0, 2.0, 3.0])
        np.testing.assert_array_equal(segments[1][0], [10.0, 11.0])

    def test_empty_input(self):
        assert split_at_gaps(np.array([]), np.array([]), 1.0) == []


class TestChunkedSpectrogram:
    """Test gap-aware spectrogram computation."""

    def test_preserves_real_gap(self):
        """Columns after a gap keep their real timestamps."""
        t1, x1 = generate_ppg(duration=100.0)
        t2, x2 = generate_ppg(duration=100.0, t0=200.0)

        spec = compute_chunked_spectrogram(
            np.concatenate([x1, x2]), np.concatenate([t1, t2]), FREQUENCIES, 10.0
        )

        assert spec.n_times == 20
        np.testing.assert_allclose(spec.ts[:10], np.arange(10) * 10.0)
        np.testing.assert_allclose(spec.ts[10:], 200.0 + np.arange(10) * 10.0)

    def test_short_chunk_skipped(self):
        """A chunk shorter than one window contributes no columns."""
        t1, x1 = generate_ppg(duration=100.0)
        t2, x2 = generate_ppg(duration=5.0, t0=300.0)

        spec = compute_chunked_spectrogram(
            np.concatenate([x1, x2]), np.concatenate([t1, t2]), FREQUENCIES, 10.0
        )

        assert spec.n_times == 10
        assert spec.ts[-1] == pytest.approx(90.0)

    def test_all_chunks_short_gives_empty(self):
        t, x = generate_ppg(duration=5.0)
        spec = compute_chunked_spectrogram(x, t, FREQUENCIES, 10.0)

        assert spec.is_empty
        np.testing.assert_array_equal(spec.f, FREQUENCIES)

    def test_invalid_gap_factor_raises(self):
        t, x = generate_ppg(duration=30.0)
        with pytest.raises(InvalidArgumentError, match="Gap threshold"):
            compute_chunked_spectrogram(x, t, FREQUENCIES, 10.0, gap_threshold_factor=0)


class TestConcatenateSpectrograms:
    """Test joining spectrograms along time."""

    def test_mismatched_frequencies_raise(self):
        t, x = generate_ppg(duration=20.0)
        a = compute_spectrogram(x, t, [1.0, 2.0], 10.0)
        b = compute_spectrogram(x, t + 100.0, [1.0, 3.0], 10.0)

        with pytest.raises(InvalidArgumentError, match="different frequency"):
            concatenate_spectrograms([a, b])

    def test_empty_list_raises(self):
        with pytest.raises(InvalidArgumentError):
            concatenate_spectrograms([])
