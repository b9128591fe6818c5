"""Pandas DataFrame adapters for conversion-latency components."""

from .events import dataframe_to_raw_events
from .results import (
    analyze_conversion_latency_df,
    cohorts_to_dataframe,
    conversion_records_to_dataframe,
    distribution_to_dataframe,
    statistics_to_dataframe,
)

__all__ = [
    # Event adapters
    "dataframe_to_raw_events",
    # Result adapters
    "conversion_records_to_dataframe",
    "statistics_to_dataframe",
    "cohorts_to_dataframe",
    "distribution_to_dataframe",
    "analyze_conversion_latency_df",
]
