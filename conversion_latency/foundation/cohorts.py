"""Cohort period utilities for signup-based segmentation.

Entities are grouped into cohorts by the calendar period in which their
start event happened. All period arithmetic is done on the UTC calendar
date of the timestamp so that cohort boundaries do not depend on the
machine's local timezone.

Quick Start
-----------
>>> from datetime import datetime, timezone
>>> from conversion_latency.foundation.cohorts import CohortGranularity, cohort_period_start
>>> ts = datetime(2024, 1, 10, 15, 30, tzinfo=timezone.utc)  # a Wednesday
>>> cohort_period_start(ts, CohortGranularity.WEEK)
datetime.date(2024, 1, 8)
>>> cohort_period_start(ts, CohortGranularity.MONTH)
datetime.date(2024, 1, 1)
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from enum import Enum


class CohortGranularity(str, Enum):
    """Supported signup-period granularities for cohort grouping."""

    DAY = "day"
    WEEK = "week"
    MONTH = "month"


def parse_granularity(value: CohortGranularity | str) -> CohortGranularity:
    """Resolve a granularity value, rejecting unknown names.

    Raises
    ------
    ValueError
        If ``value`` is not one of ``day``, ``week`` or ``month``. Unknown
        values are never defaulted since they change every cohort key.
    """
    if isinstance(value, CohortGranularity):
        return value
    try:
        return CohortGranularity(str(value).strip().lower())
    except ValueError:
        choices = ", ".join(item.value for item in CohortGranularity)
        raise ValueError(
            f"Invalid cohort granularity {value!r}. Expected one of: {choices}"
        ) from None


def _utc_date(ts: datetime) -> date:
    if ts.tzinfo is not None:
        ts = ts.astimezone(timezone.utc)
    return ts.date()


def cohort_period_start(
    ts: datetime, granularity: CohortGranularity | str
) -> date:
    """Return the first calendar day of the period containing ``ts``.

    Parameters
    ----------
    ts:
        Start-event timestamp. Aware values are converted to UTC first;
        naive values are read as UTC.
    granularity:
        ``day`` returns the date itself, ``week`` the Monday on or before
        it (ISO week start), ``month`` the first day of its month.
    """
    granularity = parse_granularity(granularity)
    day = _utc_date(ts)

    if granularity is CohortGranularity.DAY:
        return day
    if granularity is CohortGranularity.WEEK:
        return day - timedelta(days=day.weekday())
    return day.replace(day=1)


def cohort_label(
    period_start: date, granularity: CohortGranularity | str
) -> str:
    """Human readable label for a cohort period.

    Examples
    --------
    >>> cohort_label(date(2024, 1, 8), "week")
    'Week of 2024-01-08'
    >>> cohort_label(date(2024, 1, 1), "month")
    'Month of 2024-01'
    """
    granularity = parse_granularity(granularity)
    if granularity is CohortGranularity.WEEK:
        return f"Week of {period_start.isoformat()}"
    if granularity is CohortGranularity.MONTH:
        return f"Month of {period_start.strftime('%Y-%m')}"
    return period_start.isoformat()
