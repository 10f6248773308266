"""Full width at half maximum of an averaged spectrum."""

import logging

from collections.abc import Sequence

import numpy as np

from ppgspec.analysis.types import FWHMResult

logger = logging.getLogger(__name__)


def _interpolate_crossing(
    f: np.ndarray, y: np.ndarray, i: int, level: float
) -> float:
    """Frequency where the segment between samples i and i+1 reaches level."""
    y0, y1 = y[i], y[i + 1]
    if y1 == y0:
        return float(f[i])
    return float(f[i] + (level - y0) * (f[i + 1] - f[i]) / (y1 - y0))


def full_width_half_max(
    f: Sequence[float] | np.ndarray, spectrum: Sequence[float] | np.ndarray
) -> FWHMResult:
    """
    Bandwidth of the spectral peak at half its height above baseline.

    The peak is the global maximum and the baseline is the spectrum minimum.
    The low cutoff is the lowest upward crossing of the half-height level
    below the peak, the high cutoff the highest downward crossing above it;
    both are linearly interpolated between the bracketing samples.
    A sample lying exactly on the half-height level counts as the crossing.

    Never raises: a missing crossing (peak at the spectrum edge, monotonic
    spectrum), a flat spectrum, or non-finite values produce NaN for the
    affected cutoff and for the width.

    Args:
        f: Ascending frequency vector (Hz)
        spectrum: Spectrum values, same length as f

    Returns:
        FWHMResult with fwhm = high_cutoff - low_cutoff

    Example:
        >>> result = full_width_half_max(f, spec.mean_spectrum())
        >>> if result.succeeded:
        ...     print(f"{result.low_cutoff:.2f}-{result.high_cutoff:.2f} Hz")
    """
    f = np.asarray(f, dtype=np.float64).ravel()
    y = np.asarray(spectrum, dtype=np.float64).ravel()

    if f.size != y.size or f.size < 2:
        logger.warning(
            f"Cannot compute FWHM: {f.size} frequencies for {y.size} spectrum values"
        )
        return FWHMResult.failed()
    if not np.all(np.isfinite(y)):
        logger.debug("Cannot compute FWHM: spectrum has non-finite values")
        return FWHMResult.failed()

    peak = int(np.argmax(y))
    peak_value = float(y[peak])
    baseline = float(np.min(y))
    peak_frequency = float(f[peak])

    if peak_value == baseline:
        logger.debug("Cannot compute FWHM: flat spectrum")
        return FWHMResult(peak_frequency=peak_frequency, peak_value=peak_value)

    half = baseline + (peak_value - baseline) / 2.0

    low_cutoff = np.nan
    rising = np.flatnonzero((y[:peak] <= half) & (y[1 : peak + 1] > half))
    if rising.size:
        low_cutoff = _interpolate_crossing(f, y, int(rising[0]), half)

    high_cutoff = np.nan
    falling = np.flatnonzero((y[peak:-1] > half) & (y[peak + 1 :] <= half)) + peak
    if falling.size:
        high_cutoff = _interpolate_crossing(f, y, int(falling[-1]), half)

    fwhm = high_cutoff - low_cutoff
    if np.isnan(fwhm):
        logger.debug(
            f"No half-maximum crossing on "
            f"{'low' if np.isnan(low_cutoff) else 'high'} side of peak at "
            f"{peak_frequency:.3f} Hz"
        )

    return FWHMResult(
        fwhm=float(fwhm),
        low_cutoff=float(low_cutoff),
        high_cutoff=float(high_cutoff),
        peak_frequency=peak_frequency,
        peak_value=peak_value,
    )
