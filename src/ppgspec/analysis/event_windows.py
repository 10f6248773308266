"""
Time-averaged spectra in windows anchored to event markers.

A column belongs to a window when its start timestamp lies in the half-open
range [start, end). Averaging a window that covers exactly one column
returns that column unchanged.
"""

import logging
import warnings

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

import numpy as np

from ppgspec.analysis.types import EventSpectra, Spectrogram
from ppgspec.constants import SpectrogramConstants as SC
from ppgspec.constants import WindowPolicy
from ppgspec.exceptions import ComputationFailure, InvalidArgumentError
from ppgspec.utils.timebase import is_datetime_like, to_seconds

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WindowSpec:
    """
    Analysis window placement relative to an anchor event.

    Attributes:
        skip: Non-negative gap (seconds) between the anchor and the near edge
        duration: Positive window length (seconds)
        policy: TRAILING ends the window at anchor - skip; LEADING starts it
            at anchor + skip
    """

    skip: float
    duration: float
    policy: WindowPolicy = WindowPolicy.LEADING

    def __post_init__(self) -> None:
        if not np.isfinite(self.skip) or self.skip < 0:
            raise InvalidArgumentError(f"Skip must be non-negative, got {self.skip}")
        if not np.isfinite(self.duration) or self.duration <= 0:
            raise InvalidArgumentError(
                f"Window duration must be positive, got {self.duration}"
            )
        object.__setattr__(self, "policy", WindowPolicy(self.policy))

    def bounds(self, anchor: float) -> tuple[float, float]:
        """Return (start, end) seconds of the window for one anchor."""
        if self.policy == WindowPolicy.TRAILING:
            end = anchor - self.skip
            return end - self.duration, end
        start = anchor + self.skip
        return start, start + self.duration


def _column_mask(ts: np.ndarray, start: float, end: float) -> np.ndarray:
    tol = SC.WINDOW_EDGE_TOLERANCE
    return (ts >= start - tol) & (ts < end - tol)


def window_average(spectrogram: Spectrogram, t0: float, t1: float) -> np.ndarray:
    """
    Average spectrogram columns whose start time lies in [t0, t1).

    Args:
        spectrogram: Source spectrogram
        t0: Window start (seconds, same clock as spectrogram.ts)
        t1: Window end (seconds)

    Returns:
        Time-averaged spectrum, one value per frequency

    Raises:
        ComputationFailure: If no column falls in the window
    """
    mask = _column_mask(spectrogram.ts, t0, t1)
    if not mask.any():
        raise ComputationFailure(
            f"No spectrogram columns in window [{t0:.3f}, {t1:.3f})"
        )

    columns = spectrogram.spec[:, mask]
    if columns.shape[1] == 1:
        return columns[:, 0].copy()
    with warnings.catch_warnings():
        # All-NaN rows (empty epochs) stay NaN
        warnings.simplefilter("ignore", RuntimeWarning)
        return np.nanmean(columns, axis=1)


def extract_event_spectra(
    spectrogram: Spectrogram,
    anchors: Sequence[Any] | np.ndarray,
    window: WindowSpec,
) -> EventSpectra:
    """
    Time-average the spectrogram in a window around each anchor.

    Anchors whose window holds no columns (outside the recording, or a
    spectrogram too short) yield a NaN spectrum; remaining anchors are
    still processed.

    Args:
        spectrogram: Source spectrogram
        anchors: Event times (seconds on the spectrogram's clock, or
            date/time values for a POSIX-clock spectrogram)
        window: Window placement

    Returns:
        EventSpectra with one column per anchor and the input frequency vector

    Raises:
        InvalidArgumentError: If date/time anchors are given for a spectrogram
            on an elapsed clock

    Example:
        >>> onsets = extract_event_spectra(
        ...     spec, onset_times, WindowSpec(2.0, 5.0, WindowPolicy.TRAILING)
        ... )
        >>> onsets.matrix.shape == (len(spec.f), len(onset_times))
        True
    """
    if is_datetime_like(anchors) and spectrogram.clock != "posix":
        raise InvalidArgumentError(
            "Date/time anchors need a spectrogram on the POSIX clock, "
            f"got a '{spectrogram.clock}' clock"
        )
    anchor_seconds = to_seconds(anchors)
    n_events = len(anchor_seconds)

    matrix = np.full((spectrogram.n_frequencies, n_events), np.nan)
    windows = np.empty((n_events, 2))
    succeeded = np.zeros(n_events, dtype=bool)

    for i, anchor in enumerate(anchor_seconds):
        start, end = window.bounds(float(anchor))
        windows[i] = (start, end)
        try:
            matrix[:, i] = window_average(spectrogram, start, end)
            succeeded[i] = True
        except ComputationFailure as e:
            logger.debug(f"Event {i}: {e}")

    failed = n_events - int(succeeded.sum())
    if failed:
        logger.info(
            f"{failed} of {n_events} event windows had no spectrogram data "
            f"({window.policy.value}, skip={window.skip}s, duration={window.duration}s)"
        )

    return EventSpectra(
        matrix=matrix,
        f=spectrogram.f.copy(),
        windows=windows,
        succeeded=succeeded,
    )
