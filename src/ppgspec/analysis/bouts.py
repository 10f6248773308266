"""
Spectral bandwidth around inhibitory-bout onsets and offsets.

For each bout, the spectrogram is averaged over a window that ends `skip`
seconds before the onset and over a window that starts `skip` seconds after
the offset. The FWHM of each averaged spectrum measures how broad the
dominant rhythm is just before inhibition and just after recovery.
"""

import logging

from collections.abc import Sequence
from typing import Any

import numpy as np

from ppgspec.analysis.event_windows import WindowSpec, extract_event_spectra
from ppgspec.analysis.fwhm import full_width_half_max
from ppgspec.analysis.types import BoutAnalysisResult, BoutWindowData, Spectrogram
from ppgspec.constants import WindowPolicy
from ppgspec.exceptions import InvalidArgumentError, NotFoundError
from ppgspec.sources.base import SpectrogramStore
from ppgspec.sources.types import ElementRef

logger = logging.getLogger(__name__)

__all__ = [
    "BoutAnalyzer",
    "analyze_bout_windows",
    "analyze_event_windows",
    "reconcile_frequencies",
]


def analyze_event_windows(
    spectrogram: Spectrogram,
    anchors: Sequence[Any] | np.ndarray,
    window: WindowSpec,
) -> BoutWindowData:
    """
    Average spectra around each anchor and measure their FWHM.

    Events whose window is empty or whose spectrum has no half-maximum
    crossing keep NaN entries; the remaining events are still analyzed.
    When no window holds any spectrogram column the frequency vector is
    left empty, marking a run that produced no data.

    Args:
        spectrogram: Source spectrogram
        anchors: Event times on the spectrogram's clock
        window: Window placement

    Returns:
        BoutWindowData with one column/entry per anchor
    """
    spectra = extract_event_spectra(spectrogram, anchors, window)
    n_events = spectra.n_events

    fwhm_vector = np.full(n_events, np.nan)
    low_cutoff_vector = np.full(n_events, np.nan)
    high_cutoff_vector = np.full(n_events, np.nan)

    for i in np.flatnonzero(spectra.succeeded):
        result = full_width_half_max(spectra.f, spectra.matrix[:, i])
        fwhm_vector[i] = result.fwhm
        low_cutoff_vector[i] = result.low_cutoff
        high_cutoff_vector[i] = result.high_cutoff

    measured = int(np.isfinite(fwhm_vector).sum())
    logger.info(
        f"Analyzed {n_events} {window.policy.value} windows: "
        f"{int(spectra.succeeded.sum())} with data, {measured} with FWHM"
    )

    return BoutWindowData(
        spec_data_matrix=spectra.matrix,
        f=spectra.f if spectra.succeeded.any() else np.empty(0),
        fwhm_vector=fwhm_vector,
        low_cutoff_vector=low_cutoff_vector,
        high_cutoff_vector=high_cutoff_vector,
    )


def reconcile_frequencies(
    onset: BoutWindowData, offset: BoutWindowData
) -> tuple[BoutWindowData, BoutWindowData]:
    """
    Make onset and offset results report one frequency vector.

    If both are non-empty and differ, the onset vector wins and a warning is
    logged. If only one is non-empty it is copied to the other.
    """
    if onset.f.size == 0 and offset.f.size == 0:
        logger.info("No successful analysis for any onset or offset window")
        return onset, offset
    if onset.f.size == 0:
        logger.info("No successful analysis for onset windows")
        return onset.with_frequencies(offset.f), offset
    if offset.f.size == 0:
        logger.info("No successful analysis for offset windows")
        return onset, offset.with_frequencies(onset.f)
    if not np.array_equal(onset.f, offset.f):
        logger.warning(
            "Frequency vectors differ between onset and offset analysis. "
            "Using the onset frequencies for both."
        )
        return onset, offset.with_frequencies(onset.f)
    return onset, offset


def _validate_bout_inputs(
    onsets: Sequence[Any] | np.ndarray,
    offsets: Sequence[Any] | np.ndarray,
) -> None:
    n_onsets = len(np.atleast_1d(onsets))
    n_offsets = len(np.atleast_1d(offsets))
    if n_onsets != n_offsets:
        raise InvalidArgumentError(
            f"Onsets ({n_onsets}) and offsets ({n_offsets}) must have the same length"
        )


def analyze_bout_windows(
    spectrogram: Spectrogram,
    onsets: Sequence[Any] | np.ndarray,
    offsets: Sequence[Any] | np.ndarray,
    skip: float,
    time_window: float,
) -> BoutAnalysisResult:
    """
    Run onset and offset window analysis on one spectrogram.

    Onset windows span [onset - skip - time_window, onset - skip];
    offset windows span [offset + skip, offset + skip + time_window].

    Args:
        spectrogram: Whole-record spectrogram
        onsets: Bout onset times
        offsets: Bout offset times, same length as onsets
        skip: Non-negative gap (seconds) between the event and the window
        time_window: Positive window duration (seconds)

    Returns:
        BoutAnalysisResult with onset and offset BoutWindowData
        (fully empty if no onset or offset window held any column)

    Raises:
        InvalidArgumentError: For negative skip, non-positive window or
            mismatched onset/offset lengths

    Example:
        >>> result = analyze_bout_windows(spec, onsets, offsets, skip=2, time_window=5)
        >>> np.nanmean(result.onset.fwhm_vector)
    """
    _validate_bout_inputs(onsets, offsets)
    onset_window = WindowSpec(skip, time_window, WindowPolicy.TRAILING)
    offset_window = WindowSpec(skip, time_window, WindowPolicy.LEADING)

    logger.info("Analyzing onset windows")
    onset = analyze_event_windows(spectrogram, onsets, onset_window)

    logger.info("Analyzing offset windows")
    offset = analyze_event_windows(spectrogram, offsets, offset_window)

    onset, offset = reconcile_frequencies(onset, offset)
    if onset.f.size == 0 and offset.f.size == 0:
        return BoutAnalysisResult.empty(
            reason="No spectrogram data in any onset or offset window"
        )

    return BoutAnalysisResult(
        onset=onset,
        offset=offset,
        metadata={
            "skip": float(skip),
            "time_window": float(time_window),
            "n_bouts": onset.n_bouts,
        },
    )


class BoutAnalyzer:
    """
    Bout window analysis against spectrograms held by a store.

    Lookup failures (missing or ambiguous element) do not raise; they yield
    fully empty results so that batch runs over many subjects keep going.

    Example:
        >>> analyzer = BoutAnalyzer(store)
        >>> result = analyzer.analyze(
        ...     ElementRef.for_record("pylorus"), onsets, offsets, skip=2, time_window=30
        ... )
        >>> if result.is_empty:
        ...     print("element not found")
    """

    def __init__(self, store: SpectrogramStore):
        self.store = store

    def analyze(
        self,
        element_ref: ElementRef,
        onsets: Sequence[Any] | np.ndarray,
        offsets: Sequence[Any] | np.ndarray,
        skip: float,
        time_window: float,
    ) -> BoutAnalysisResult:
        """
        Look up the element's spectrogram and analyze bout windows.

        Raises:
            InvalidArgumentError: For invalid skip/window/length inputs
        """
        # Fixed parameters fail loudly even when the lookup would fail
        _validate_bout_inputs(onsets, offsets)
        WindowSpec(skip, time_window)

        try:
            spectrogram = self.store.find_spectrogram(element_ref)
        except NotFoundError as e:
            logger.warning(f"{e}. Returning empty results.")
            return BoutAnalysisResult.empty(reason=str(e))

        return analyze_bout_windows(spectrogram, onsets, offsets, skip, time_window)
