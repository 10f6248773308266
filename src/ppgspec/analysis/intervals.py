"""
Symmetric time intervals around reference timestamps.

Calibration tables (center times paired with labels such as bath
temperature) are configuration data; they are loaded by ppgspec.config and
passed in here as CalibrationPoint records.
"""

import logging

from collections.abc import Sequence
from datetime import datetime
from typing import Any

import numpy as np

from pydantic import BaseModel, ConfigDict, Field

from ppgspec.exceptions import InvalidArgumentError
from ppgspec.utils.timebase import is_datetime_like, seconds_to_datetime64, to_seconds

logger = logging.getLogger(__name__)


class CalibrationPoint(BaseModel):
    """A reference center time with its label (e.g. temperature)."""

    model_config = ConfigDict(frozen=True)

    center: float | datetime = Field(
        description="Center time (seconds or date/time)"
    )
    label: str | float | int = Field(description="Label for this reference")


class CalibrationInterval(BaseModel):
    """Interval generated around a calibration point."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    label: str | float | int
    start: float | datetime
    end: float | datetime


def generate_intervals(centers: Sequence[Any] | np.ndarray, width: float) -> np.ndarray:
    """
    Build [center - width/2, center + width/2] for each center.

    Args:
        centers: Center timestamps (float seconds or datetime-like)
        width: Total interval width in seconds

    Returns:
        Array of shape (n, 2). datetime64[ns] when centers are datetime-like,
        float64 otherwise.

    Raises:
        InvalidArgumentError: If width is not positive
    """
    if not np.isfinite(width) or width <= 0:
        raise InvalidArgumentError(f"Interval width must be positive, got {width}")

    as_datetime = is_datetime_like(centers)
    center_seconds = to_seconds(centers)
    half = width / 2.0

    intervals = np.column_stack([center_seconds - half, center_seconds + half])
    if as_datetime:
        return seconds_to_datetime64(intervals)
    return intervals


def calibration_intervals(
    points: Sequence[CalibrationPoint], width: float
) -> list[CalibrationInterval]:
    """
    Generate labelled intervals for a calibration table.

    Args:
        points: Calibration records
        width: Total interval width in seconds

    Returns:
        One CalibrationInterval per point, in input order
    """
    intervals = generate_intervals([p.center for p in points], width)
    result = []
    for point, (start, end) in zip(points, intervals, strict=True):
        if isinstance(point.center, datetime):
            start = start.astype("datetime64[us]").item()
            end = end.astype("datetime64[us]").item()
        else:
            start, end = float(start), float(end)
        result.append(CalibrationInterval(label=point.label, start=start, end=end))

    logger.debug(f"Generated {len(result)} calibration intervals of width {width}s")
    return result
