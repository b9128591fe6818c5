"""Summary statistics over conversion latencies.

Answers the headline questions of a latency report:
- How many entities started, and how many converted?
- What is the conversion rate?
- How long does a typical conversion take (mean, median, spread)?
- How long does it take the slowest quarter / tenth / twentieth?

Percentiles (including the median) use a nearest-rank estimator: the
value at index ``floor(n * p)`` of the sorted sample, clamped to the last
element. There is no interpolation and no even-count median averaging,
so reported numbers always correspond to an observed latency.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Sequence

from conversion_latency.analyses.matching import ConversionRecord

# Percentiles reported alongside the median
DEFAULT_PERCENTILES = (25, 75, 90, 95)

MEDIAN_PERCENTILE = 50


def nearest_rank_percentile(sorted_values: Sequence[int], percentile: int) -> int:
    """Nearest-rank percentile of an ascending sample.

    Parameters
    ----------
    sorted_values:
        Sample sorted ascending
    percentile:
        Percentile in [0, 100]

    Returns
    -------
    int
        ``sorted_values[floor(n * percentile / 100)]`` clamped to the last
        index, or 0 for an empty sample.

    Examples
    --------
    >>> nearest_rank_percentile([1, 2, 3, 4, 5, 6, 7, 8, 9, 10], 25)
    3
    >>> nearest_rank_percentile([1, 2, 3, 4, 5, 6, 7, 8, 9, 10], 90)
    10
    >>> nearest_rank_percentile([4, 8], 50)
    8
    """
    if not 0 <= percentile <= 100:
        raise ValueError(f"Percentile must be 0-100: {percentile}")
    n = len(sorted_values)
    if n == 0:
        return 0
    # Integer floor division keeps e.g. 10 * 95 / 100 exact
    index = min(n * percentile // 100, n - 1)
    return sorted_values[index]


@dataclass(frozen=True)
class LatencyPercentiles:
    """Nearest-rank percentiles of days to conversion."""

    p25: int = 0
    p75: int = 0
    p90: int = 0
    p95: int = 0

    def as_dict(self) -> dict[str, int]:
        return {"p25": self.p25, "p75": self.p75, "p90": self.p90, "p95": self.p95}


@dataclass(frozen=True)
class StatisticsSummary:
    """Aggregate latency statistics for a population of start entities.

    Attributes
    ----------
    total_entities:
        Number of entities with a start event
    converted_entities:
        Number of entities with a non-null latency
    conversion_rate:
        converted_entities / total_entities as a fraction in [0, 1];
        0 for an empty population
    mean_days:
        Mean days to conversion over converted entities
    median_days:
        Nearest-rank median days to conversion
    std_dev_days:
        Population standard deviation of days to conversion
    percentiles:
        Nearest-rank p25/p75/p90/p95 of days to conversion
    """

    total_entities: int
    converted_entities: int
    conversion_rate: float
    mean_days: float
    median_days: int
    std_dev_days: float
    percentiles: LatencyPercentiles = field(default_factory=LatencyPercentiles)

    def __post_init__(self) -> None:
        """Validate summary invariants."""
        if self.total_entities < 0:
            raise ValueError(f"Total entities cannot be negative: {self.total_entities}")
        if self.converted_entities < 0:
            raise ValueError(
                f"Converted entities cannot be negative: {self.converted_entities}"
            )
        if self.converted_entities > self.total_entities:
            raise ValueError(
                f"Converted entities ({self.converted_entities}) cannot exceed "
                f"total entities ({self.total_entities})"
            )
        if not 0 <= self.conversion_rate <= 1:
            raise ValueError(f"Conversion rate must be 0-1: {self.conversion_rate}")

    def as_dict(self) -> dict[str, object]:
        """Return JSON-serialisable representation of the summary."""
        return {
            "total_entities": self.total_entities,
            "converted_entities": self.converted_entities,
            "conversion_rate": self.conversion_rate,
            "mean_days": self.mean_days,
            "median_days": self.median_days,
            "std_dev_days": self.std_dev_days,
            "percentiles": self.percentiles.as_dict(),
        }


def summarize_latency(records: Sequence[ConversionRecord]) -> StatisticsSummary:
    """Compute summary statistics for a set of conversion records.

    Parameters
    ----------
    records:
        One record per start entity. Non-converted records count towards
        the population but not towards latency statistics.

    Returns
    -------
    StatisticsSummary
        All statistics resolve to 0 when there are no records or no
        conversions; an empty population is not an error.

    Examples
    --------
    >>> from datetime import datetime, timedelta
    >>> from conversion_latency.analyses.matching import ConversionRecord
    >>> t0 = datetime(2024, 1, 1)
    >>> records = [
    ...     ConversionRecord("A", t0, t0 + timedelta(days=10), 10),
    ...     ConversionRecord("B", t0, None, None),
    ... ]
    >>> summary = summarize_latency(records)
    >>> summary.conversion_rate
    0.5
    >>> summary.median_days
    10
    """
    total_entities = len(records)
    days = sorted(
        r.days_to_conversion for r in records if r.days_to_conversion is not None
    )
    converted_entities = len(days)

    if not days:
        return StatisticsSummary(
            total_entities=total_entities,
            converted_entities=0,
            conversion_rate=0.0,
            mean_days=0.0,
            median_days=0,
            std_dev_days=0.0,
            percentiles=LatencyPercentiles(),
        )

    mean_days = sum(days) / converted_entities
    # Population variance: divide by n, not n - 1
    variance = sum((d - mean_days) ** 2 for d in days) / converted_entities

    p25, p75, p90, p95 = (
        nearest_rank_percentile(days, p) for p in DEFAULT_PERCENTILES
    )

    return StatisticsSummary(
        total_entities=total_entities,
        converted_entities=converted_entities,
        conversion_rate=converted_entities / total_entities,
        mean_days=mean_days,
        median_days=nearest_rank_percentile(days, MEDIAN_PERCENTILE),
        std_dev_days=math.sqrt(variance),
        percentiles=LatencyPercentiles(p25=p25, p75=p75, p90=p90, p95=p95),
    )
