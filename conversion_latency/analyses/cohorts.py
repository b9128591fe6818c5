"""Per-cohort breakdown of conversion latency.

Groups start entities by the signup period of their start event and
reports, for each period, the same headline statistics and day-range
distribution computed for the whole population. Periods without any
entities produce no bucket; gaps are not filled.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from typing import Sequence

from conversion_latency.analyses.distribution import DistributionResult, bucket_latency
from conversion_latency.analyses.matching import ConversionRecord
from conversion_latency.analyses.statistics import summarize_latency
from conversion_latency.foundation.cohorts import (
    CohortGranularity,
    cohort_label,
    cohort_period_start,
    parse_granularity,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CohortBucket:
    """Latency metrics for one signup cohort.

    Attributes
    ----------
    cohort_key:
        ISO date of the first day of the cohort period
    period_start_date:
        First day of the cohort period (day, ISO-week Monday or month start)
    cohort_label:
        Human readable label, e.g. "Week of 2024-01-08"
    total_entities:
        Entities whose start event falls in the period
    converted_entities:
        Of those, entities with a non-null latency
    conversion_rate:
        converted_entities / total_entities as a fraction in [0, 1]
    avg_days:
        Mean days to conversion within the cohort
    median_days:
        Nearest-rank median days to conversion within the cohort
    day_range_distribution:
        Day-range histogram (including never converted) within the cohort
    """

    cohort_key: str
    period_start_date: date
    cohort_label: str
    total_entities: int
    converted_entities: int
    conversion_rate: float
    avg_days: float
    median_days: int
    day_range_distribution: DistributionResult

    def __post_init__(self) -> None:
        """Validate cohort invariants."""
        if self.total_entities <= 0:
            raise ValueError(
                f"Cohort {self.cohort_key} must contain at least one entity: "
                f"{self.total_entities}"
            )
        if not 0 <= self.converted_entities <= self.total_entities:
            raise ValueError(
                f"Converted entities ({self.converted_entities}) must be between 0 "
                f"and total entities ({self.total_entities}) for cohort {self.cohort_key}"
            )
        if not 0 <= self.conversion_rate <= 1:
            raise ValueError(
                f"Conversion rate must be 0-1 for cohort {self.cohort_key}: "
                f"{self.conversion_rate}"
            )

    def as_dict(self) -> dict[str, object]:
        """Return JSON-serialisable representation of the cohort."""
        return {
            "cohort_key": self.cohort_key,
            "period_start_date": self.period_start_date.isoformat(),
            "cohort_label": self.cohort_label,
            "total_entities": self.total_entities,
            "converted_entities": self.converted_entities,
            "conversion_rate": self.conversion_rate,
            "avg_days": self.avg_days,
            "median_days": self.median_days,
            "day_range_distribution": self.day_range_distribution.as_dict(),
        }


def aggregate_cohorts(
    records: Sequence[ConversionRecord],
    granularity: CohortGranularity | str = CohortGranularity.WEEK,
) -> list[CohortBucket]:
    """Group records by signup period and summarize each group.

    Parameters
    ----------
    records:
        Conversion records for the whole population
    granularity:
        Signup period used to group entities: ``day``, ``week`` (ISO week
        starting Monday) or ``month``.

    Returns
    -------
    list[CohortBucket]
        One bucket per period containing at least one entity, sorted
        ascending by ``period_start_date``.

    Raises
    ------
    ValueError
        If ``granularity`` is not a supported value.

    Examples
    --------
    >>> from datetime import datetime, timedelta, timezone
    >>> t0 = datetime(2024, 1, 3, tzinfo=timezone.utc)
    >>> records = [
    ...     ConversionRecord("A", t0, t0 + timedelta(days=3), 3),
    ...     ConversionRecord("B", t0 + timedelta(days=7), None, None),
    ... ]
    >>> [c.cohort_label for c in aggregate_cohorts(records, "week")]
    ['Week of 2024-01-01', 'Week of 2024-01-08']
    """
    granularity = parse_granularity(granularity)

    groups: dict[date, list[ConversionRecord]] = defaultdict(list)
    for record in records:
        groups[cohort_period_start(record.start_time, granularity)].append(record)

    cohorts: list[CohortBucket] = []
    for period_start in sorted(groups):
        members = groups[period_start]
        summary = summarize_latency(members)
        cohorts.append(
            CohortBucket(
                cohort_key=period_start.isoformat(),
                period_start_date=period_start,
                cohort_label=cohort_label(period_start, granularity),
                total_entities=summary.total_entities,
                converted_entities=summary.converted_entities,
                conversion_rate=summary.conversion_rate,
                avg_days=summary.mean_days,
                median_days=summary.median_days,
                day_range_distribution=bucket_latency(members),
            )
        )

    logger.debug(
        f"Built {len(cohorts)} {granularity.value} cohorts from {len(records)} records"
    )
    return cohorts
