"""Pandas DataFrame adapters for analysis results."""

from typing import Dict, Sequence

import pandas as pd  # type: ignore

from conversion_latency.analyses.cohorts import CohortBucket
from conversion_latency.analyses.distribution import BUCKET_LABELS, DistributionResult
from conversion_latency.analyses.engine import analyze_conversion_latency
from conversion_latency.analyses.matching import ConversionRecord
from conversion_latency.analyses.statistics import StatisticsSummary
from conversion_latency.foundation.cohorts import CohortGranularity
from .events import dataframe_to_raw_events
from ._utils import to_timestamp_or_nat

RECORD_COLUMNS = ["entity_id", "start_time", "conversion_time", "days_to_conversion"]

COHORT_COLUMNS = [
    "cohort_key",
    "period_start_date",
    "cohort_label",
    "total_entities",
    "converted_entities",
    "conversion_rate",
    "avg_days",
    "median_days",
] + [f"dist_{label}" for label in BUCKET_LABELS]


def conversion_records_to_dataframe(
    records: Sequence[ConversionRecord],
) -> pd.DataFrame:
    """Convert conversion records to a DataFrame sorted by entity_id.

    Args:
        records: Sequence of ConversionRecord objects

    Returns:
        DataFrame with columns: entity_id, start_time, conversion_time
        (NaT when absent), days_to_conversion (nullable Int64)
    """
    if not records:
        return pd.DataFrame(columns=RECORD_COLUMNS)

    df = pd.DataFrame(
        {
            "entity_id": [r.entity_id for r in records],
            "start_time": [pd.Timestamp(r.start_time) for r in records],
            "conversion_time": [
                to_timestamp_or_nat(r.conversion_time) for r in records
            ],
            # Nullable integer dtype keeps "never converted" as <NA>
            "days_to_conversion": pd.array(
                [r.days_to_conversion for r in records], dtype="Int64"
            ),
        },
        columns=RECORD_COLUMNS,
    )
    return df.sort_values("entity_id").reset_index(drop=True)


def statistics_to_dataframe(summary: StatisticsSummary) -> pd.DataFrame:
    """Convert StatisticsSummary to single-row DataFrame.

    Percentiles are flattened into p25/p75/p90/p95 columns.

    Example:
        >>> result = analyze_conversion_latency(starts, conversions)
        >>> stats_df = statistics_to_dataframe(result.statistics)
        >>> print(stats_df['median_days'].iloc[0])
    """
    row = {
        "total_entities": summary.total_entities,
        "converted_entities": summary.converted_entities,
        "conversion_rate": summary.conversion_rate,
        "mean_days": summary.mean_days,
        "median_days": summary.median_days,
        "std_dev_days": summary.std_dev_days,
    }
    row.update(summary.percentiles.as_dict())
    return pd.DataFrame([row])


def cohorts_to_dataframe(cohorts: Sequence[CohortBucket]) -> pd.DataFrame:
    """Convert cohort buckets to a DataFrame, one row per cohort.

    The day-range distribution is flattened into ``dist_<bucket>`` columns
    (e.g. ``dist_0-7``, ``dist_never``) so the frame stays tabular.
    """
    if not cohorts:
        return pd.DataFrame(columns=COHORT_COLUMNS)

    rows = []
    for cohort in cohorts:
        row = {
            "cohort_key": cohort.cohort_key,
            "period_start_date": cohort.period_start_date,
            "cohort_label": cohort.cohort_label,
            "total_entities": cohort.total_entities,
            "converted_entities": cohort.converted_entities,
            "conversion_rate": cohort.conversion_rate,
            "avg_days": cohort.avg_days,
            "median_days": cohort.median_days,
        }
        for label, count in cohort.day_range_distribution.items():
            row[f"dist_{label}"] = count
        rows.append(row)

    return pd.DataFrame(rows, columns=COHORT_COLUMNS)


def distribution_to_dataframe(distribution: DistributionResult) -> pd.DataFrame:
    """Convert DistributionResult to ``bucket``/``count`` rows in bucket order."""
    return pd.DataFrame(
        list(distribution.items()), columns=["bucket", "count"]
    )


def analyze_conversion_latency_df(
    start_df: pd.DataFrame,
    conversion_df: pd.DataFrame,
    granularity: CohortGranularity | str = CohortGranularity.WEEK,
    entity_column: str = "entity_id",
    timestamp_column: str = "occurred_at",
) -> Dict[str, pd.DataFrame]:
    """Run the full analysis on event DataFrames.

    Convenience function combining conversion and analysis.

    Args:
        start_df: DataFrame of start events
        conversion_df: DataFrame of conversion events
        granularity: Cohort period: "day", "week" or "month"
        entity_column: Column holding the entity identifier in both frames
        timestamp_column: Column holding the event time in both frames

    Returns:
        Dict with "statistics", "cohorts" and "distribution" DataFrames

    Example:
        >>> frames = analyze_conversion_latency_df(subs_df, orders_df, "month")
        >>> frames["cohorts"].to_csv("cohorts.csv", index=False)
    """
    start_events = dataframe_to_raw_events(start_df, entity_column, timestamp_column)
    conversion_events = dataframe_to_raw_events(
        conversion_df, entity_column, timestamp_column
    )

    result = analyze_conversion_latency(start_events, conversion_events, granularity)

    return {
        "statistics": statistics_to_dataframe(result.statistics),
        "cohorts": cohorts_to_dataframe(result.cohorts),
        "distribution": distribution_to_dataframe(result.distribution),
    }
