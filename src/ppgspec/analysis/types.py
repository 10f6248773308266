"""Analysis pipeline type definitions."""

import math

from dataclasses import dataclass, field
from typing import Any, Literal

import numpy as np

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ppgspec.constants import (
    SpectralScale,
    TimestampPolicy,
    default_frequencies,
)
from ppgspec.constants import SpectrogramConstants as SC
from ppgspec.exceptions import InvalidArgumentError
from ppgspec.utils.timebase import seconds_to_datetime64

ClockKind = Literal["elapsed", "posix"]

# ============================================================================
# Spectrogram
# ============================================================================


@dataclass(frozen=True, eq=False)
class Spectrogram:
    """
    Time/frequency surface with its coordinate vectors.

    Attributes:
        spec: 2D array indexed [frequency, time]
        f: Ascending frequency vector (Hz), one entry per row
        ts: Window start times (seconds), one entry per column
        clock: "elapsed" for seconds from a local or synthetic origin,
            "posix" for absolute seconds converted from date/time input
    """

    spec: np.ndarray
    f: np.ndarray
    ts: np.ndarray
    clock: ClockKind = "elapsed"

    def __post_init__(self) -> None:
        spec = np.asarray(self.spec, dtype=np.float64)
        f = np.asarray(self.f, dtype=np.float64).ravel()
        ts = np.asarray(self.ts, dtype=np.float64).ravel()

        if spec.ndim != 2:
            if spec.size == 0:
                spec = spec.reshape(len(f), 0)
            else:
                raise InvalidArgumentError(
                    f"Spectrogram data must be 2D, got shape {spec.shape}"
                )
        if spec.shape != (len(f), len(ts)):
            raise InvalidArgumentError(
                f"Spectrogram shape {spec.shape} does not match "
                f"(len(f), len(ts)) = ({len(f)}, {len(ts)})"
            )
        if len(ts) > 1 and np.any(np.diff(ts) < 0):
            raise InvalidArgumentError("Spectrogram timestamps must be non-decreasing")

        object.__setattr__(self, "spec", spec)
        object.__setattr__(self, "f", f)
        object.__setattr__(self, "ts", ts)

    @classmethod
    def empty(cls, f: np.ndarray, clock: ClockKind = "elapsed") -> "Spectrogram":
        """Spectrogram with frequency rows but no time columns."""
        f = np.asarray(f, dtype=np.float64).ravel()
        return cls(
            spec=np.empty((len(f), 0)), f=f, ts=np.empty(0), clock=clock
        )

    @property
    def n_frequencies(self) -> int:
        return len(self.f)

    @property
    def n_times(self) -> int:
        return len(self.ts)

    @property
    def is_empty(self) -> bool:
        return self.n_times == 0

    @property
    def time_range(self) -> tuple[float, float] | None:
        """First and last window start, or None when empty."""
        if self.is_empty:
            return None
        return float(self.ts[0]), float(self.ts[-1])

    def timestamps_as_datetime(self) -> np.ndarray:
        """
        Window start times as datetime64[ns].

        Raises:
            InvalidArgumentError: If the spectrogram uses an elapsed clock
        """
        if self.clock != "posix":
            raise InvalidArgumentError(
                "Elapsed-clock timestamps have no absolute date/time"
            )
        return seconds_to_datetime64(self.ts)

    def mean_spectrum(self) -> np.ndarray:
        """Time-averaged spectrum (NaN when there are no columns)."""
        if self.is_empty:
            return np.full(self.n_frequencies, np.nan)
        return np.nanmean(self.spec, axis=1)


# ============================================================================
# Per-Event Results
# ============================================================================


class FWHMResult(BaseModel):
    """
    Full width at half maximum of a single averaged spectrum.

    NaN marks values that could not be computed (no half-height crossing on
    one or both sides of the peak, degenerate or non-finite spectrum).
    """

    model_config = ConfigDict(frozen=True)

    fwhm: float = Field(default=math.nan, description="Bandwidth (Hz)")
    low_cutoff: float = Field(default=math.nan, description="Lower crossing (Hz)")
    high_cutoff: float = Field(default=math.nan, description="Upper crossing (Hz)")
    peak_frequency: float = Field(default=math.nan, description="Peak location (Hz)")
    peak_value: float = Field(default=math.nan, description="Spectrum value at peak")

    @classmethod
    def failed(cls) -> "FWHMResult":
        return cls()

    @property
    def succeeded(self) -> bool:
        return not math.isnan(self.fwhm)


@dataclass(frozen=True, eq=False)
class EventSpectra:
    """
    Time-averaged spectra for a list of anchor events.

    Attributes:
        matrix: 2D array [frequency, event]; NaN columns for failed events
        f: Frequency vector, identical to the source spectrogram's
        windows: 2D array [event, 2] of (start, end) seconds per event
        succeeded: Boolean mask of events with at least one column in range
    """

    matrix: np.ndarray
    f: np.ndarray
    windows: np.ndarray
    succeeded: np.ndarray

    @property
    def n_events(self) -> int:
        return self.matrix.shape[1]


# ============================================================================
# Aggregate Results
# ============================================================================


def _nan_to_none(values: np.ndarray) -> list[Any]:
    return [None if not np.isfinite(v) else float(v) for v in np.ravel(values)]


@dataclass(frozen=True, eq=False)
class BoutWindowData:
    """
    Spectral results for one bout condition (onset or offset windows).

    Attributes:
        spec_data_matrix: Time-averaged spectra [frequency, bout]
        f: Frequency vector (Hz)
        fwhm_vector: FWHM per bout (NaN if failed)
        low_cutoff_vector: Lower half-maximum crossing per bout
        high_cutoff_vector: Upper half-maximum crossing per bout
    """

    spec_data_matrix: np.ndarray
    f: np.ndarray
    fwhm_vector: np.ndarray
    low_cutoff_vector: np.ndarray
    high_cutoff_vector: np.ndarray

    @classmethod
    def empty(cls) -> "BoutWindowData":
        """Result signalling that the analysis could not run at all."""
        return cls(
            spec_data_matrix=np.empty((0, 0)),
            f=np.empty(0),
            fwhm_vector=np.empty(0),
            low_cutoff_vector=np.empty(0),
            high_cutoff_vector=np.empty(0),
        )

    @property
    def is_empty(self) -> bool:
        return self.f.size == 0 and self.fwhm_vector.size == 0

    @property
    def n_bouts(self) -> int:
        return len(self.fwhm_vector)

    def with_frequencies(self, f: np.ndarray) -> "BoutWindowData":
        """Copy of this result with a substituted frequency vector."""
        return BoutWindowData(
            spec_data_matrix=self.spec_data_matrix,
            f=np.asarray(f, dtype=np.float64),
            fwhm_vector=self.fwhm_vector,
            low_cutoff_vector=self.low_cutoff_vector,
            high_cutoff_vector=self.high_cutoff_vector,
        )

    def to_dict(self) -> dict[str, Any]:
        """JSON-friendly representation (NaN becomes None)."""
        return {
            "f": _nan_to_none(self.f),
            "fwhm": _nan_to_none(self.fwhm_vector),
            "low_cutoff": _nan_to_none(self.low_cutoff_vector),
            "high_cutoff": _nan_to_none(self.high_cutoff_vector),
            "spec_data_matrix": [
                _nan_to_none(column) for column in self.spec_data_matrix.T
            ],
        }


@dataclass(frozen=True, eq=False)
class BoutAnalysisResult:
    """Onset and offset window results for one set of inhibitory bouts."""

    onset: BoutWindowData
    offset: BoutWindowData
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def empty(cls, reason: str) -> "BoutAnalysisResult":
        return cls(
            onset=BoutWindowData.empty(),
            offset=BoutWindowData.empty(),
            metadata={"reason": reason},
        )

    @property
    def is_empty(self) -> bool:
        return self.onset.is_empty and self.offset.is_empty

    def to_dict(self) -> dict[str, Any]:
        return {
            "onset": self.onset.to_dict(),
            "offset": self.offset.to_dict(),
            "metadata": self.metadata,
        }


# ============================================================================
# Configuration
# ============================================================================


class SpectrogramConfig(BaseModel):
    """
    Settings for whole-record spectrogram computation.

    Defaults come from SpectrogramConstants and may be overridden by the
    [spectrogram] section of the config file.
    """

    model_config = ConfigDict(frozen=True)

    frequencies: tuple[float, ...] = Field(
        default_factory=lambda: tuple(default_frequencies()),
        description="Analysis frequencies (Hz)",
    )
    window_time: float = Field(
        default=SC.WINDOW_TIME_SECONDS, gt=0, description="Window duration (seconds)"
    )
    downsample: int = Field(
        default=SC.DOWNSAMPLE, ge=1, description="Keep every Nth column per epoch"
    )
    zscore_window: float = Field(
        default=SC.ZSCORE_WINDOW_SECONDS,
        ge=0,
        description="Rolling z-score window (seconds, 0 = whole signal)",
    )
    scale: SpectralScale = Field(
        default=SpectralScale.DECIBELS, description="Output value scale"
    )
    gap_threshold_factor: float = Field(
        default=SC.GAP_THRESHOLD_FACTOR,
        gt=0,
        description="Gap size, in median sample intervals, that splits a chunk",
    )
    timestamp_policy: TimestampPolicy = Field(
        default=TimestampPolicy.SYNTHETIC,
        description="How epoch timestamps are combined",
    )

    @field_validator("frequencies")
    @classmethod
    def _check_frequencies(cls, value: tuple[float, ...]) -> tuple[float, ...]:
        if len(value) == 0:
            raise ValueError("frequencies must not be empty")
        if any(v <= 0 for v in value):
            raise ValueError("frequencies must be positive")
        return value
