"""Foundational building blocks for conversion-latency analysis.

This package exposes the event contract used to validate raw event
streams, first-occurrence reduction, and the signup-period utilities
used to build cohorts.
"""

from .cohorts import (
    CohortGranularity,
    cohort_label,
    cohort_period_start,
    parse_granularity,
)
from .event_contract import (
    EventContract,
    RawEvent,
    flatten_jsonapi_event,
    parse_timestamp,
    reduce_first_occurrences,
)

__all__ = [
    "CohortGranularity",
    "cohort_label",
    "cohort_period_start",
    "parse_granularity",
    "EventContract",
    "RawEvent",
    "flatten_jsonapi_event",
    "parse_timestamp",
    "reduce_first_occurrences",
]
