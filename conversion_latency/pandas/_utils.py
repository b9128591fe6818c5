"""Shared utilities for pandas conversion operations."""

from datetime import datetime
from typing import Any

import numpy as np
import pandas as pd  # type: ignore


def to_python_scalar(value: Any) -> Any:
    """Convert pandas/numpy scalars to plain Python values.

    ``pd.Timestamp`` becomes ``datetime``, numpy scalars become their
    Python equivalents (``np.int64`` -> ``int``), and missing markers
    (``NaT``, ``NaN``, ``None``) become ``None`` so the event contract
    drops the row as malformed. Anything else passes through unchanged.

    Example:
        >>> to_python_scalar(pd.Timestamp("2024-01-01", tz="UTC")).isoformat()
        '2024-01-01T00:00:00+00:00'
        >>> to_python_scalar(np.int64(1704067200))
        1704067200
        >>> to_python_scalar(pd.NaT) is None
        True
    """
    if value is None or value is pd.NaT:
        return None
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime()
    if isinstance(value, np.datetime64):
        if np.isnat(value):
            return None
        return pd.Timestamp(value).to_pydatetime()
    if isinstance(value, np.generic):
        value = value.item()
    if isinstance(value, float) and np.isnan(value):
        return None
    return value


def to_timestamp_or_nat(value: datetime | None) -> pd.Timestamp:
    """Convert an optional datetime to ``pd.Timestamp`` (``NaT`` for None)."""
    return pd.NaT if value is None else pd.Timestamp(value)
