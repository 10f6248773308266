"""
Spectrogram computation for PPG signals.

Windows tile the signal without overlap: window k spans
[t0 + k*W, t0 + (k+1)*W) and its column is stamped with the window start.
Downstream stitching relies on this non-overlapping layout.

Each column is a Hamming-tapered Fourier sum evaluated directly at the
requested frequencies using the samples' own timestamps, so irregularly
sampled windows are handled without resampling.
"""

import logging

from collections.abc import Sequence

import numpy as np

from scipy import signal

from ppgspec.analysis.types import ClockKind, Spectrogram
from ppgspec.constants import SpectralScale
from ppgspec.constants import SpectrogramConstants as SC
from ppgspec.exceptions import InvalidArgumentError
from ppgspec.utils.timebase import is_datetime_like, to_seconds

logger = logging.getLogger(__name__)

__all__ = [
    "compute_spectrogram",
    "compute_chunked_spectrogram",
    "concatenate_spectrograms",
    "split_at_gaps",
    "validate_frequencies",
]


def validate_frequencies(frequencies: Sequence[float] | np.ndarray) -> np.ndarray:
    """
    Check and normalize an analysis frequency vector.

    Raises:
        InvalidArgumentError: If empty, non-positive, non-finite, or not
            strictly ascending
    """
    f = np.asarray(frequencies, dtype=np.float64).ravel()
    if f.size == 0:
        raise InvalidArgumentError("Frequency vector must not be empty")
    if not np.all(np.isfinite(f)) or np.any(f <= 0):
        raise InvalidArgumentError("Frequencies must be finite and positive")
    if f.size > 1 and np.any(np.diff(f) <= 0):
        raise InvalidArgumentError("Frequencies must be strictly ascending")
    return f


def _validate_window(window_time: float, downsample: int) -> None:
    if not np.isfinite(window_time) or window_time <= 0:
        raise InvalidArgumentError(
            f"Window duration must be positive, got {window_time}"
        )
    if int(downsample) != downsample or downsample < 1:
        raise InvalidArgumentError(
            f"Downsample factor must be a positive integer, got {downsample}"
        )


def _prepare_signal(
    values: np.ndarray, timestamps: np.ndarray, time_is_datetime: bool
) -> tuple[np.ndarray, np.ndarray]:
    if time_is_datetime:
        t = to_seconds(timestamps)
    else:
        if is_datetime_like(timestamps):
            raise InvalidArgumentError(
                "Timestamps are date/time values; pass time_is_datetime=True"
            )
        t = np.asarray(timestamps, dtype=np.float64).ravel()
    x = np.asarray(values, dtype=np.float64).ravel()

    if t.shape != x.shape:
        raise InvalidArgumentError(
            f"Values ({x.size}) and timestamps ({t.size}) must have the same length"
        )
    if x.size < 2:
        raise InvalidArgumentError("At least two samples are required")
    if np.any(np.diff(t) <= 0):
        raise InvalidArgumentError("Timestamps must be strictly increasing")
    return x, t


def _scale(coefficients: np.ndarray, scale: SpectralScale) -> np.ndarray:
    magnitude = np.abs(coefficients)
    if scale == SpectralScale.MAGNITUDE:
        return magnitude
    power = magnitude**2
    if scale == SpectralScale.POWER:
        return power
    return 10.0 * np.log10(power + SC.DECIBEL_EPSILON)


def _is_regular(t: np.ndarray, dt: float) -> bool:
    return bool(np.allclose(np.diff(t), dt, rtol=SC.REGULAR_SPACING_RTOL, atol=0.0))


def _window_coefficients(
    t: np.ndarray,
    x: np.ndarray,
    starts: np.ndarray,
    stops: np.ndarray,
    frequencies: np.ndarray,
    regular: bool,
    dt: float,
) -> np.ndarray:
    """
    Fourier coefficients per window, shape (n_windows, n_frequencies).

    Windows without samples get NaN coefficients.
    """
    n_windows = len(starts)
    coefficients = np.full((n_windows, len(frequencies)), np.nan, dtype=np.complex128)
    counts = stops - starts

    if regular:
        # Windows with equal sample counts share one taper and kernel
        for count in np.unique(counts):
            if count == 0:
                continue
            rows = np.flatnonzero(counts == count)
            offsets = np.arange(count)
            frames = x[starts[rows, None] + offsets]
            taper = signal.windows.hamming(count)
            kernel = np.exp(-2j * np.pi * np.outer(offsets * dt, frequencies))
            coefficients[rows] = (frames * taper) @ kernel
        return coefficients

    for k in range(n_windows):
        if counts[k] == 0:
            continue
        seg_t = t[starts[k] : stops[k]] - t[starts[k]]
        seg_x = x[starts[k] : stops[k]]
        if seg_t[-1] > 0:
            taper = 0.54 - 0.46 * np.cos(2 * np.pi * seg_t / seg_t[-1])
        else:
            taper = np.ones(1)
        kernel = np.exp(-2j * np.pi * np.outer(seg_t, frequencies))
        coefficients[k] = (seg_x * taper) @ kernel
    return coefficients


def compute_spectrogram(
    values: np.ndarray,
    timestamps: np.ndarray,
    frequencies: Sequence[float] | np.ndarray,
    window_time: float,
    *,
    time_is_datetime: bool = False,
    scale: SpectralScale | str = SpectralScale.DECIBELS,
    downsample: int = 1,
) -> Spectrogram:
    """
    Compute a spectrogram over non-overlapping windows.

    Args:
        values: 1D signal values
        timestamps: Sample times; seconds, or date/time values when
            time_is_datetime is True
        frequencies: Frequencies (Hz) to evaluate, strictly ascending
        window_time: Window duration in seconds
        time_is_datetime: Treat timestamps as absolute date/time values and
            stamp the output with POSIX seconds
        scale: DECIBELS (10*log10 power), POWER, or MAGNITUDE
        downsample: Keep every Nth column; window boundaries are unchanged

    Returns:
        Spectrogram with ts[k] = t0 + k*window_time (before downsampling).
        Empty (no columns) if the signal is shorter than one window.

    Raises:
        InvalidArgumentError: For invalid window, frequency, downsample or
            signal inputs

    Example:
        >>> spec = compute_spectrogram(ppg, t, np.arange(0.1, 10.05, 0.1), 10.0)
        >>> spec.spec.shape == (len(spec.f), len(spec.ts))
        True
    """
    f = validate_frequencies(frequencies)
    _validate_window(window_time, downsample)
    scale = SpectralScale(scale)
    x, t = _prepare_signal(values, timestamps, time_is_datetime)
    clock: ClockKind = "posix" if time_is_datetime else "elapsed"

    dt = float(np.median(np.diff(t)))
    span = t[-1] - t[0] + dt
    n_windows = int(np.floor(span / window_time + SC.WINDOW_COUNT_TOLERANCE))

    if n_windows == 0:
        logger.debug(
            f"Signal span {span:.3f}s is shorter than one {window_time}s window"
        )
        return Spectrogram.empty(f, clock=clock)

    edges = t[0] + np.arange(n_windows + 1) * window_time
    bounds = np.searchsorted(t, edges, side="left")
    starts, stops = bounds[:-1], bounds[1:]

    regular = _is_regular(t, dt)
    coefficients = _window_coefficients(t, x, starts, stops, f, regular, dt)

    spec = _scale(coefficients, scale).T
    ts = edges[:-1]

    if downsample > 1:
        spec = spec[:, ::downsample]
        ts = ts[::downsample]

    logger.debug(
        f"Computed spectrogram: {len(f)} frequencies x {len(ts)} windows "
        f"({window_time}s, {'regular' if regular else 'irregular'} sampling, "
        f"downsample={downsample})"
    )

    return Spectrogram(spec=spec, f=f, ts=ts, clock=clock)


def split_at_gaps(
    timestamps: np.ndarray, values: np.ndarray, gap_threshold: float
) -> list[tuple[np.ndarray, np.ndarray]]:
    """
    Split a signal into continuous segments at timestamp gaps.

    Args:
        timestamps: 1D sample times in seconds
        values: 1D signal values
        gap_threshold: Time step (seconds) above which a new segment starts

    Returns:
        List of (timestamps, values) tuples for each continuous segment
    """
    if len(timestamps) == 0:
        return []
    if len(timestamps) < 2:
        return [(timestamps, values)]

    gap_indices = np.flatnonzero(np.diff(timestamps) > gap_threshold)
    if len(gap_indices) == 0:
        return [(timestamps, values)]

    bounds = np.concatenate([[0], gap_indices + 1, [len(timestamps)]])
    segments = [
        (timestamps[a:b], values[a:b]) for a, b in zip(bounds[:-1], bounds[1:])
    ]

    logger.info(
        f"Split signal into {len(segments)} segments "
        f"(found {len(gap_indices)} gaps > {gap_threshold:.3f}s)"
    )
    return segments


def concatenate_spectrograms(
    parts: Sequence[Spectrogram], clock: ClockKind | None = None
) -> Spectrogram:
    """
    Join spectrograms along the time axis.

    Args:
        parts: Spectrograms sharing one frequency vector, in time order
        clock: Clock of the result (defaults to the first part's)

    Raises:
        InvalidArgumentError: If parts is empty or frequency vectors differ
    """
    if not parts:
        raise InvalidArgumentError("No spectrograms to concatenate")

    f = parts[0].f
    for part in parts[1:]:
        if not np.array_equal(part.f, f):
            raise InvalidArgumentError(
                "Cannot concatenate spectrograms with different frequency vectors"
            )

    return Spectrogram(
        spec=np.concatenate([p.spec for p in parts], axis=1),
        f=f,
        ts=np.concatenate([p.ts for p in parts]),
        clock=clock or parts[0].clock,
    )


def compute_chunked_spectrogram(
    values: np.ndarray,
    timestamps: np.ndarray,
    frequencies: Sequence[float] | np.ndarray,
    window_time: float,
    *,
    time_is_datetime: bool = False,
    scale: SpectralScale | str = SpectralScale.DECIBELS,
    downsample: int = 1,
    gap_threshold_factor: float = SC.GAP_THRESHOLD_FACTOR,
) -> Spectrogram:
    """
    Compute a spectrogram for a signal with recording gaps.

    The signal is split wherever consecutive samples are further apart than
    gap_threshold_factor times the median sample interval. Each continuous
    chunk gets its own spectrogram; chunks shorter than one window are
    skipped. Output timestamps keep the real gaps.

    Args:
        values: 1D signal values
        timestamps: Sample times (see compute_spectrogram)
        frequencies: Frequencies (Hz) to evaluate
        window_time: Window duration in seconds
        time_is_datetime: Treat timestamps as absolute date/time values
        scale: Output value scale
        downsample: Keep every Nth column within each chunk
        gap_threshold_factor: Gap size in median sample intervals

    Returns:
        Concatenated Spectrogram (empty if no chunk fits a window)
    """
    f = validate_frequencies(frequencies)
    _validate_window(window_time, downsample)
    if not np.isfinite(gap_threshold_factor) or gap_threshold_factor <= 0:
        raise InvalidArgumentError(
            f"Gap threshold factor must be positive, got {gap_threshold_factor}"
        )
    x, t = _prepare_signal(values, timestamps, time_is_datetime)
    clock: ClockKind = "posix" if time_is_datetime else "elapsed"

    gap_threshold = gap_threshold_factor * float(np.median(np.diff(t)))
    chunks = split_at_gaps(t, x, gap_threshold)

    parts = []
    for i, (chunk_t, chunk_x) in enumerate(chunks):
        if len(chunk_t) < 2:
            logger.debug(f"Skipping chunk {i}: fewer than two samples")
            continue
        part = compute_spectrogram(
            chunk_x,
            chunk_t,
            f,
            window_time,
            scale=scale,
            downsample=downsample,
        )
        if part.is_empty:
            logger.info(f"Skipping chunk {i}: shorter than the {window_time}s window")
            continue
        parts.append(part)

    if not parts:
        logger.warning("No data chunks were long enough to produce a spectrogram")
        return Spectrogram.empty(f, clock=clock)

    return concatenate_spectrograms(parts, clock=clock)
