"""Conversion-latency analysis entry point.

Composes the pipeline end to end:

1. Reduce each raw event stream to the first occurrence per entity
2. Match start entities to their first conversion and measure latency
3. Summarize latency for the whole population
4. Break the population down by signup cohort
5. Bucket overall latency into fixed day ranges

The engine is a pure function of its inputs. It performs no I/O, keeps
no state between calls and needs both streams fully materialized before
it is invoked; fetching, storing and scheduling belong to the caller.
"""

from __future__ import annotations

import dataclasses
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Sequence

from conversion_latency.analyses.cohorts import CohortBucket, aggregate_cohorts
from conversion_latency.analyses.distribution import DistributionResult, bucket_latency
from conversion_latency.analyses.matching import ConversionRecord, match_conversions
from conversion_latency.analyses.statistics import StatisticsSummary, summarize_latency
from conversion_latency.foundation.cohorts import CohortGranularity, parse_granularity
from conversion_latency.foundation.event_contract import (
    EventContract,
    RawEvent,
    reduce_first_occurrences,
)

logger = logging.getLogger(__name__)

# Environment variables read by AnalysisConfig.from_env()
ENV_GRANULARITY = "CONVERSION_LATENCY_GRANULARITY"
ENV_INCLUDE_RECORDS = "CONVERSION_LATENCY_INCLUDE_RECORDS"

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass
class AnalysisConfig:
    """Configuration for a conversion-latency analysis run.

    Attributes
    ----------
    granularity:
        Signup period used for cohorts (``day``, ``week`` or ``month``).
        Strings are coerced; unknown values raise ``ValueError``.
    include_records:
        Attach the per-entity conversion records to the result.
    start_event_name:
        Label for the start stream in log output (e.g. "Subscribed to List")
    conversion_event_name:
        Label for the conversion stream in log output (e.g. "Placed Order")
    entity_field:
        Key holding the entity id in raw event mappings
    timestamp_field:
        Key holding the timestamp in raw event mappings
    jsonapi_events:
        Treat raw event mappings as nested JSON:API event payloads
        (profile id under ``relationships``, time under ``attributes``).
    """

    granularity: CohortGranularity = CohortGranularity.WEEK
    include_records: bool = False
    start_event_name: str = "start"
    conversion_event_name: str = "conversion"
    entity_field: str = EventContract.DEFAULT_ENTITY_FIELD
    timestamp_field: str = EventContract.DEFAULT_TIMESTAMP_FIELD
    jsonapi_events: bool = False

    def __post_init__(self) -> None:
        """Validate and normalise configuration values."""
        self.granularity = parse_granularity(self.granularity)
        if not self.entity_field or not self.timestamp_field:
            raise ValueError("entity_field and timestamp_field must be non-empty")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> AnalysisConfig:
        """Build a configuration from environment variables.

        Reads ``CONVERSION_LATENCY_GRANULARITY`` (default ``week``) and
        ``CONVERSION_LATENCY_INCLUDE_RECORDS`` (``1``/``true``/``yes``/``on``).
        """
        env = os.environ if environ is None else environ
        granularity = env.get(ENV_GRANULARITY) or CohortGranularity.WEEK.value
        include_records = env.get(ENV_INCLUDE_RECORDS, "").strip().lower() in _TRUTHY
        return cls(granularity=granularity, include_records=include_records)

    def event_contract(self) -> EventContract:
        """Contract used to coerce raw events for this run."""
        return EventContract(
            entity_field=self.entity_field,
            timestamp_field=self.timestamp_field,
            jsonapi=self.jsonapi_events,
        )


@dataclass(frozen=True)
class AnalysisResult:
    """Complete output of a conversion-latency analysis.

    Attributes
    ----------
    statistics:
        Summary statistics for the whole start population
    cohorts:
        Per-signup-period breakdown, sorted by period start
    distribution:
        Overall day-range histogram
    granularity:
        Granularity the cohorts were built with
    records:
        Per-entity conversion records, sorted by entity id, or None when
        not requested
    """

    statistics: StatisticsSummary
    cohorts: list[CohortBucket]
    distribution: DistributionResult
    granularity: CohortGranularity = CohortGranularity.WEEK
    records: list[ConversionRecord] | None = field(default=None)

    def __post_init__(self) -> None:
        """Validate that the three views describe the same population."""
        total = self.statistics.total_entities
        if self.distribution.total != total:
            raise ValueError(
                f"Distribution covers {self.distribution.total} entities, "
                f"expected {total}"
            )
        cohort_total = sum(c.total_entities for c in self.cohorts)
        if cohort_total != total:
            raise ValueError(
                f"Cohorts cover {cohort_total} entities, expected {total}"
            )

    def as_dict(self) -> dict[str, Any]:
        """Return JSON-serialisable representation of the result."""
        payload: dict[str, Any] = {
            "granularity": self.granularity.value,
            "statistics": self.statistics.as_dict(),
            "cohorts": [cohort.as_dict() for cohort in self.cohorts],
            "distribution": self.distribution.as_dict(),
        }
        if self.records is not None:
            payload["records"] = [record.as_dict() for record in self.records]
        return payload


def analyze_conversion_latency(
    start_events: Iterable[RawEvent | Mapping[str, Any]],
    conversion_events: Iterable[RawEvent | Mapping[str, Any]],
    granularity: CohortGranularity | str | None = None,
    *,
    config: AnalysisConfig | None = None,
) -> AnalysisResult:
    """Measure time from start event to first conversion.

    Parameters
    ----------
    start_events:
        Events that start the latency clock (e.g. list subscriptions).
        Unordered; duplicates and malformed records allowed.
    conversion_events:
        Qualifying follow-up events (e.g. placed orders). Unordered;
        duplicates and malformed records allowed.
    granularity:
        Cohort period. Overrides ``config.granularity`` when given.
    config:
        Run configuration; defaults to ``AnalysisConfig()``.

    Returns
    -------
    AnalysisResult
        Statistics, sorted cohorts and the overall distribution.

    Raises
    ------
    ValueError
        If the granularity is not ``day``, ``week`` or ``month``.

    Examples
    --------
    >>> result = analyze_conversion_latency(
    ...     [{"entity_id": "A", "occurred_at": "2024-01-01T00:00:00Z"},
    ...      {"entity_id": "B", "occurred_at": "2024-01-01T00:00:00Z"}],
    ...     [{"entity_id": "A", "occurred_at": "2024-01-11T00:00:00Z"}],
    ... )
    >>> result.statistics.conversion_rate
    0.5
    >>> result.distribution["8-14"], result.distribution["never"]
    (1, 1)
    """
    if config is None:
        config = AnalysisConfig()
    if granularity is not None:
        config = dataclasses.replace(config, granularity=parse_granularity(granularity))

    contract = config.event_contract()
    start_events = _materialize(start_events)
    conversion_events = _materialize(conversion_events)

    logger.info(
        f"Processing {len(start_events)} {config.start_event_name} events..."
    )
    starts = reduce_first_occurrences(start_events, contract)
    logger.info(f"Found {len(starts)} unique {config.start_event_name} entities")

    logger.info(
        f"Processing {len(conversion_events)} {config.conversion_event_name} events..."
    )
    conversions = reduce_first_occurrences(conversion_events, contract)
    logger.info(
        f"Found {len(conversions)} unique {config.conversion_event_name} entities"
    )

    records = match_conversions(starts, conversions)
    statistics = summarize_latency(records)
    cohorts = aggregate_cohorts(records, config.granularity)
    distribution = bucket_latency(records)

    logger.info(
        f"Analysis complete: {statistics.converted_entities}/{statistics.total_entities} "
        f"converted across {len(cohorts)} {config.granularity.value} cohorts"
    )

    return AnalysisResult(
        statistics=statistics,
        cohorts=cohorts,
        distribution=distribution,
        granularity=config.granularity,
        records=(
            sorted(records, key=lambda r: r.entity_id)
            if config.include_records
            else None
        ),
    )


def _materialize(
    events: Iterable[RawEvent | Mapping[str, Any]],
) -> Sequence[RawEvent | Mapping[str, Any]]:
    # Streams are consumed once for counting and once for reduction.
    if isinstance(events, Sequence):
        return events
    return list(events)
