"""Conversion-latency analyses.

The pipeline turns two event streams into three complementary views of
how long entities take to convert:

1. Summary statistics - conversion rate, mean/median latency, spread
2. Cohort breakdown - the same metrics per signup day, week or month
3. Day-range distribution - how many converted within each latency band
"""

from .cohorts import CohortBucket, aggregate_cohorts
from .distribution import (
    BUCKET_LABELS,
    DistributionResult,
    bucket_latency,
    classify_days,
)
from .engine import AnalysisConfig, AnalysisResult, analyze_conversion_latency
from .matching import ConversionRecord, days_between, match_conversions
from .statistics import (
    LatencyPercentiles,
    StatisticsSummary,
    nearest_rank_percentile,
    summarize_latency,
)

__all__ = [
    # Matching
    "ConversionRecord",
    "days_between",
    "match_conversions",
    # Statistics
    "LatencyPercentiles",
    "StatisticsSummary",
    "nearest_rank_percentile",
    "summarize_latency",
    # Distribution
    "BUCKET_LABELS",
    "DistributionResult",
    "bucket_latency",
    "classify_days",
    # Cohorts
    "CohortBucket",
    "aggregate_cohorts",
    # Engine
    "AnalysisConfig",
    "AnalysisResult",
    "analyze_conversion_latency",
]
