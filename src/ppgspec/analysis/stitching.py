"""
Whole-record spectrograms from multi-epoch recordings.

A record is split into epochs, each with its own local clock. When a clock
shared by every epoch exists, the record is read in one pass and gaps are
preserved. Otherwise each epoch gets its own spectrogram and the pieces are
laid end to end on a synthetic time axis.

Synthetic timestamps are NOT wall-clock time: the real gap (or overlap)
between two epochs is discarded and the next epoch starts one window after
the previous epoch's last window. TimestampPolicy.EPOCH_CLOCK keeps each
epoch at its own local start instead.
"""

import logging

import numpy as np

from ppgspec.analysis.normalization import moving_zscore, zscore
from ppgspec.analysis.spectrogram import (
    compute_chunked_spectrogram,
    compute_spectrogram,
    concatenate_spectrograms,
    validate_frequencies,
)
from ppgspec.analysis.types import Spectrogram, SpectrogramConfig
from ppgspec.constants import TimestampPolicy
from ppgspec.exceptions import InvalidArgumentError, NotFoundError
from ppgspec.sources.base import ProgressCallback, SignalSource
from ppgspec.sources.types import ElementRef, EpochInfo

logger = logging.getLogger(__name__)


class WholeRecordSpectrogramBuilder:
    """
    Builds one continuous spectrogram for every epoch of an element.

    Example:
        >>> builder = WholeRecordSpectrogramBuilder(source, SpectrogramConfig())
        >>> spec = builder.build(ElementRef.for_record("heart"))
        >>> print(f"{spec.n_times} windows over {len(spec.f)} frequencies")
    """

    def __init__(self, source: SignalSource, config: SpectrogramConfig | None = None):
        """
        Initialize the builder.

        Args:
            source: Signal reader for epochs and whole-record reads
            config: Spectrogram settings (defaults if None)
        """
        self.source = source
        self.config = config or SpectrogramConfig()
        self.frequencies = validate_frequencies(self.config.frequencies)

    def build(
        self,
        element_ref: ElementRef,
        progress: ProgressCallback | None = None,
    ) -> Spectrogram:
        """
        Compute the whole-record spectrogram for an element.

        The mode is chosen from the first epoch: unified-clock reads the
        record once, otherwise epochs are processed one by one.

        Args:
            element_ref: Element to analyze
            progress: Optional callback(current, total, message)

        Returns:
            Spectrogram covering the whole record

        Raises:
            NotFoundError: If the element is missing or has no epochs
        """
        epochs = self.source.list_epochs(element_ref)
        if not epochs:
            raise NotFoundError(f"Element {element_ref} has no epochs", element_ref)

        logger.info(
            f"Building whole-record spectrogram for {element_ref}: "
            f"{len(epochs)} epochs, window={self.config.window_time}s"
        )

        if epochs[0].has_unified_clock:
            return self._build_unified(element_ref, epochs, progress)
        return self._build_by_epoch(element_ref, epochs, progress)

    def _build_unified(
        self,
        element_ref: ElementRef,
        epochs: list[EpochInfo],
        progress: ProgressCallback | None,
    ) -> Spectrogram:
        t0 = min(epoch.t0 for epoch in epochs)
        t1 = max(epoch.t1 for epoch in epochs)
        values, timestamps = self.source.read_signal(element_ref, None, t0, t1)
        logger.info(f"Read {len(values)} samples on the shared clock [{t0}, {t1}]")

        if len(values) < 2:
            _report(progress, 1, 1, "No samples on the shared clock")
            logger.warning(f"Element {element_ref} has fewer than two samples")
            return Spectrogram.empty(self.frequencies)

        timestamps = np.asarray(timestamps, dtype=np.float64)
        normalized = moving_zscore(timestamps, values, self.config.zscore_window)

        spectrogram = compute_chunked_spectrogram(
            normalized,
            timestamps,
            self.frequencies,
            self.config.window_time,
            scale=self.config.scale,
            gap_threshold_factor=self.config.gap_threshold_factor,
        )
        _report(progress, 1, 1, "Whole-record spectrogram complete")
        return spectrogram

    def _build_by_epoch(
        self,
        element_ref: ElementRef,
        epochs: list[EpochInfo],
        progress: ProgressCallback | None,
    ) -> Spectrogram:
        config = self.config
        parts: list[Spectrogram] = []
        next_time = 0.0
        last_end = -np.inf
        total = len(epochs)

        for i, epoch in enumerate(epochs, start=1):
            values, timestamps = self.source.read_signal(
                element_ref, epoch.epoch_id, -np.inf, np.inf
            )

            if len(values) < 2:
                logger.warning(f"Epoch {epoch.epoch_id} has too few samples, skipping")
                _report(progress, i, total, f"Skipped epoch {epoch.epoch_id}")
                continue

            epoch_spec = compute_spectrogram(
                zscore(values),
                timestamps,
                self.frequencies,
                config.window_time,
                scale=config.scale,
            )
            if epoch_spec.is_empty:
                logger.warning(
                    f"Epoch {epoch.epoch_id} is shorter than one "
                    f"{config.window_time}s window, skipping"
                )
                _report(progress, i, total, f"Skipped epoch {epoch.epoch_id}")
                continue

            relative_ts = epoch_spec.ts - epoch_spec.ts[0]
            spacing = (
                relative_ts[1] - relative_ts[0]
                if len(relative_ts) > 1
                else config.window_time
            )

            if config.timestamp_policy == TimestampPolicy.SYNTHETIC:
                offset = next_time
            else:
                offset = float(epoch_spec.ts[0])
                if offset < last_end:
                    raise InvalidArgumentError(
                        f"Epoch {epoch.epoch_id} starts at {offset} before the "
                        f"previous epoch ends ({last_end}); use the synthetic "
                        "timestamp policy for overlapping epochs"
                    )

            keep = slice(None, None, config.downsample)
            parts.append(
                Spectrogram(
                    spec=epoch_spec.spec[:, keep],
                    f=epoch_spec.f,
                    ts=offset + relative_ts[keep],
                )
            )

            next_time = next_time + relative_ts[-1] + spacing
            last_end = offset + relative_ts[-1] + spacing

            logger.debug(
                f"Epoch {epoch.epoch_id}: {epoch_spec.n_times} windows at offset {offset:.1f}s"
            )
            _report(
                progress,
                i,
                total,
                f"Working on whole record spectrogram: {i} of {total}",
            )

        if not parts:
            logger.warning(f"No epoch of {element_ref} produced a spectrogram")
            return Spectrogram.empty(self.frequencies)

        return concatenate_spectrograms(parts, clock="elapsed")


def _report(
    progress: ProgressCallback | None, current: int, total: int, message: str
) -> None:
    """Invoke a progress callback without letting it interrupt the computation."""
    if progress is None:
        return
    try:
        progress(current, total, message)
    except Exception as e:
        logger.warning(f"Progress callback failed: {e}")


def whole_record_spectrogram(
    source: SignalSource,
    element_ref: ElementRef,
    config: SpectrogramConfig | None = None,
    progress: ProgressCallback | None = None,
) -> Spectrogram:
    """Convenience wrapper around WholeRecordSpectrogramBuilder.build."""
    return WholeRecordSpectrogramBuilder(source, config).build(element_ref, progress)
