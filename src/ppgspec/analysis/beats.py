"""
Beat rate from detected heartbeat times.

Rates are counted in a sliding window of fixed width stepped at a regular
interval, giving a rate series on a uniform grid that can be laid next to
the spectrogram's time axis.
"""

import logging

from collections.abc import Sequence
from typing import Any

import numpy as np

from ppgspec.constants import BeatRateConstants as BR
from ppgspec.exceptions import InvalidArgumentError
from ppgspec.utils.timebase import is_datetime_like, to_seconds

logger = logging.getLogger(__name__)


def beat_rate_bins(
    beat_times: Sequence[Any] | np.ndarray,
    delta_t: float = BR.DELTA_T_SECONDS,
    window: float = BR.WINDOW_SECONDS,
) -> tuple[np.ndarray, np.ndarray]:
    """
    Beat rate in regularly spaced, overlapping bins.

    Bin centers run from the first beat to the last in steps of delta_t.
    Each bin counts the beats in [center - window/2, center + window/2)
    and divides by the window width. Bins near the ends of the record see
    fewer beats, so their rates are biased low.

    Args:
        beat_times: Sorted beat times in seconds, or date/time values
        delta_t: Spacing between bin centers (seconds)
        window: Width of the counting window (seconds)

    Returns:
        Tuple of (rates in beats per second, bin centers). Centers are
        datetime64[ns] when beat_times are date/time values.

    Raises:
        InvalidArgumentError: For empty or unsorted beat times, or a
            non-positive delta_t or window

    Example:
        >>> rates, centers = beat_rate_bins(beats, delta_t=1.0, window=10.0)
        >>> bpm = rates * 60
    """
    if not delta_t > 0:
        raise InvalidArgumentError(f"Bin spacing must be positive, got {delta_t}")
    if not window > 0:
        raise InvalidArgumentError(f"Window width must be positive, got {window}")

    datetime_input = is_datetime_like(beat_times)
    if datetime_input:
        stamps = np.atleast_1d(np.asarray(beat_times, dtype="datetime64[ns]"))
        if np.any(np.isnat(stamps)):
            raise InvalidArgumentError("Beat times must not contain NaT")
        if stamps.size == 0:
            raise InvalidArgumentError("Beat times must not be empty")
        # Offsets from the first beat keep date/time inputs exact
        relative = (stamps - stamps[0]).astype(np.int64) / 1e9
    else:
        t = to_seconds(beat_times)
        if not np.all(np.isfinite(t)):
            raise InvalidArgumentError("Beat times must be finite")
        relative = t - t[0] if t.size else t

    if relative.size == 0:
        raise InvalidArgumentError("Beat times must not be empty")
    if np.any(np.diff(relative) < 0):
        raise InvalidArgumentError("Beat times must be sorted in time order")

    n_bins = int(np.floor(relative[-1] / delta_t + BR.BIN_COUNT_TOLERANCE)) + 1
    centers = np.arange(n_bins) * delta_t

    first = np.searchsorted(relative, centers - window / 2.0, side="left")
    last = np.searchsorted(relative, centers + window / 2.0, side="left")
    rates = (last - first) / window

    logger.debug(
        f"Binned {relative.size} beats into {n_bins} bins "
        f"(delta_t={delta_t}s, window={window}s)"
    )

    if datetime_input:
        offsets = np.round(centers * 1e9).astype(np.int64).astype("timedelta64[ns]")
        return rates, stamps[0] + offsets
    return rates, t[0] + centers
