"""Conversions between date/time values and float seconds."""

from collections.abc import Sequence
from datetime import datetime
from typing import Any

import numpy as np

_NS_PER_SECOND = 1_000_000_000


def is_datetime_like(values: Any) -> bool:
    """Return True if values are datetime64 or python datetime objects."""
    if isinstance(values, (datetime, np.datetime64)):
        return True
    arr = np.asarray(values)
    if np.issubdtype(arr.dtype, np.datetime64):
        return True
    if arr.dtype == object and arr.size > 0:
        return isinstance(arr.flat[0], (datetime, np.datetime64))
    return False


def to_seconds(values: Any) -> np.ndarray:
    """
    Convert timestamps to float seconds.

    Datetime-like values become POSIX seconds; numeric values are returned
    as float64 unchanged.

    Args:
        values: Scalar or sequence of timestamps

    Returns:
        1D float64 array
    """
    if is_datetime_like(values):
        arr = np.atleast_1d(np.asarray(values, dtype="datetime64[ns]"))
        return arr.astype(np.int64) / _NS_PER_SECOND
    return np.atleast_1d(np.asarray(values, dtype=np.float64))


def seconds_to_datetime64(seconds: Sequence[float] | np.ndarray) -> np.ndarray:
    """Convert POSIX seconds to a datetime64[ns] array."""
    ns = np.round(np.asarray(seconds, dtype=np.float64) * _NS_PER_SECOND)
    return ns.astype(np.int64).astype("datetime64[ns]")
