"""
Signal normalization.

Provides a timestamp-based rolling z-score for irregularly sampled signals
and a whole-signal z-score fallback, plus column scaling for spectrogram
matrices.
"""

import logging

import numpy as np

from ppgspec.constants import ZScoreAlignment
from ppgspec.exceptions import InvalidArgumentError

logger = logging.getLogger(__name__)

ZERO_VARIANCE_RTOL = 1e-10
CANCELLATION_ULPS = 16


def zscore(values: np.ndarray) -> np.ndarray:
    """
    Whole-signal z-score using the sample standard deviation (N-1).

    Returns an all-NaN array for constant or single-sample signals.
    """
    x = np.asarray(values, dtype=np.float64)
    if x.size < 2:
        return np.full(x.shape, np.nan)

    sigma = np.std(x, ddof=1)
    if not np.isfinite(sigma) or sigma <= ZERO_VARIANCE_RTOL * np.max(np.abs(x)):
        logger.warning("Signal has zero variance; z-score is undefined")
        return np.full(x.shape, np.nan)

    return (x - np.mean(x)) / sigma


def moving_zscore(
    timestamps: np.ndarray,
    values: np.ndarray,
    window: float,
    alignment: ZScoreAlignment | str = ZScoreAlignment.CENTERED,
) -> np.ndarray:
    """
    Rolling z-score with window membership decided by timestamps.

    Each sample is centered and scaled by the mean and sample standard
    deviation of every sample whose timestamp falls inside its window.
    Windows shrink at the signal edges; nothing is padded or wrapped.

    Args:
        timestamps: Sample times in seconds, strictly increasing
        values: Signal values, same length as timestamps
        window: Window duration in seconds (0 = whole-signal z-score)
        alignment: CENTERED uses [t - W/2, t + W/2], TRAILING uses [t - W, t]

    Returns:
        Z-scored values, same length as input. NaN where the local window
        has zero variance, a single sample, or a missing (NaN) sample.

    Raises:
        InvalidArgumentError: If window is negative or lengths differ

    Example:
        >>> z = moving_zscore(t, ppg, window=3600.0)
    """
    t = np.asarray(timestamps, dtype=np.float64)
    x = np.asarray(values, dtype=np.float64)

    if window < 0 or not np.isfinite(window):
        raise InvalidArgumentError(f"Z-score window must be non-negative, got {window}")
    if t.shape != x.shape:
        raise InvalidArgumentError(
            f"Timestamps ({t.shape}) and values ({x.shape}) must have the same shape"
        )
    if window == 0:
        return zscore(x)
    if x.size == 0:
        return x.copy()

    alignment = ZScoreAlignment(alignment)
    if alignment == ZScoreAlignment.CENTERED:
        lower, upper = t - window / 2.0, t + window / 2.0
    else:
        lower, upper = t - window, t

    lo = np.searchsorted(t, lower, side="left")
    hi = np.searchsorted(t, upper, side="right")
    counts = (hi - lo).astype(np.float64)

    # Missing samples only affect the windows that contain them; the median
    # offset keeps a single large artifact from shifting every running sum
    finite = np.isfinite(x)
    offset = float(np.median(x[finite])) if finite.any() else 0.0
    centered = np.where(finite, x - offset, 0.0)
    raw_sq = np.where(finite, x, 0.0) ** 2

    def window_sums(values: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        cumulative = np.concatenate([[0.0], np.cumsum(values)])
        return cumulative[hi] - cumulative[lo], cumulative[hi]

    # Running sums on the centered signal keep the variance numerically stable
    window_sum, _ = window_sums(centered)
    window_sum_sq, running_sq = window_sums(centered**2)
    window_raw_sq, _ = window_sums(raw_sq)
    missing, _ = window_sums((~finite).astype(np.float64))

    with np.errstate(divide="ignore", invalid="ignore"):
        mean = window_sum / counts
        variance = (window_sum_sq - counts * mean**2) / (counts - 1)
        variance = np.where(variance < 0, 0.0, variance)
        sigma = np.sqrt(variance)
        z = (centered - mean) / sigma
        # Running-sum residue on a locally constant signal is not real variance:
        # compare against the window's own magnitude and the cancellation error
        tolerance = ZERO_VARIANCE_RTOL * np.sqrt(window_raw_sq / counts)
        eps = np.finfo(np.float64).eps
        residue = CANCELLATION_ULPS * eps * running_sq / (counts - 1)

    degenerate = (
        (counts < 2) | (missing > 0) | ~(sigma > tolerance) | ~(variance > residue)
    )
    z[degenerate] = np.nan

    if degenerate.any():
        logger.debug(
            f"Moving z-score undefined for {int(degenerate.sum())} of {x.size} samples"
        )

    return z


def normalize_by_column(matrix: np.ndarray) -> np.ndarray:
    """
    Scale each column so that its maximum value is 1.

    Columns whose maximum is zero are returned unchanged.

    Args:
        matrix: 2D array [row, column]

    Returns:
        Normalized copy of the matrix
    """
    m = np.array(matrix, dtype=np.float64)
    if m.ndim != 2:
        raise InvalidArgumentError(f"Expected a 2D matrix, got shape {m.shape}")

    col_max = np.max(m, axis=0) if m.shape[0] else np.zeros(m.shape[1])
    zero_cols = np.flatnonzero(col_max == 0)
    for j in zero_cols:
        logger.warning(f"Column {j} has all zeros. Normalized values will also be zero.")

    scale = np.where(col_max == 0, 1.0, col_max)
    return m / scale
