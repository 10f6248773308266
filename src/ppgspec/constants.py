"""
Constants and defaults for PPG spectral analysis.

Frequency and window defaults match the whole-day heart/gut spectrogram
settings used for the pyloric and cardiac PPG recordings.
"""

from enum import Enum
from pathlib import Path

# ============================================================================
# Enumerations
# ============================================================================


class SpectralScale(str, Enum):
    """Output scale of spectrogram values."""

    DECIBELS = "decibels"  # 10*log10(|X|^2 + eps)
    POWER = "power"  # |X|^2
    MAGNITUDE = "magnitude"  # |X|


class TimestampPolicy(str, Enum):
    """How per-epoch timestamps are combined into one time axis."""

    SYNTHETIC = "synthetic"  # Back-to-back, ignores real gaps between epochs
    EPOCH_CLOCK = "epoch_clock"  # Each epoch placed at its own local start


class WindowPolicy(str, Enum):
    """Placement of an analysis window relative to its anchor event."""

    TRAILING = "trailing"  # [anchor - skip - duration, anchor - skip]
    LEADING = "leading"  # [anchor + skip, anchor + skip + duration]


class ZScoreAlignment(str, Enum):
    """Placement of the rolling z-score window around each sample."""

    CENTERED = "centered"
    TRAILING = "trailing"


# ============================================================================
# Algorithm Constants
# ============================================================================


class SpectrogramConstants:
    """Constants for spectrogram computation (spectrogram.py, stitching.py)."""

    FREQUENCY_START = 0.1
    FREQUENCY_STOP = 10.0
    FREQUENCY_STEP = 0.1

    WINDOW_TIME_SECONDS = 10.0
    DOWNSAMPLE = 2
    ZSCORE_WINDOW_SECONDS = 3600.0

    DECIBEL_EPSILON = 1e-10
    GAP_THRESHOLD_FACTOR = 2.0

    # Relative tolerance when counting complete windows in a span
    WINDOW_COUNT_TOLERANCE = 1e-9
    # Relative tolerance for treating sample spacing as regular
    REGULAR_SPACING_RTOL = 1e-6

    # Absolute slack (seconds) applied to window edges when selecting columns
    WINDOW_EDGE_TOLERANCE = 1e-6


class BoutAnalysisConstants:
    """Constants for inhibitory-bout window analysis (bouts.py)."""

    DEFAULT_SKIP_SECONDS = 0.0
    DEFAULT_TIME_WINDOW_SECONDS = 60.0


class BeatRateConstants:
    """Constants for binned beat rate estimation (beats.py)."""

    DELTA_T_SECONDS = 0.5
    WINDOW_SECONDS = 5.0

    # Absolute slack (bins) when counting bin centers up to the last beat
    BIN_COUNT_TOLERANCE = 1e-9


class IntervalConstants:
    """Constants for calibration interval generation (intervals.py)."""

    DEFAULT_WIDTH_SECONDS = 180.0


def default_frequencies() -> list[float]:
    """Default analysis frequencies: 0.1 to 10 Hz in 0.1 Hz steps."""
    sc = SpectrogramConstants
    count = int(round((sc.FREQUENCY_STOP - sc.FREQUENCY_START) / sc.FREQUENCY_STEP))
    return [round(sc.FREQUENCY_START + i * sc.FREQUENCY_STEP, 10) for i in range(count + 1)]


# ============================================================================
# Application Defaults
# ============================================================================

DEFAULT_CONFIG_DIR = Path.home() / ".ppgspec"
DEFAULT_CONFIG_FILE = "config.toml"

DEFAULT_LOG_DIR = DEFAULT_CONFIG_DIR / "logs"
DEFAULT_LOG_FILE = "ppgspec.log"
DEFAULT_LOG_BACKUP_COUNT = 5
