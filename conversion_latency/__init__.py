"""Conversion-latency analysis toolkit.

Measures how long entities take to go from a start event (e.g. a
newsletter signup) to a qualifying conversion event (e.g. a first
order), overall and by signup cohort.
"""

from .analyses import AnalysisConfig, AnalysisResult, analyze_conversion_latency
from .foundation import CohortGranularity, RawEvent

__version__ = "0.1.0"

__all__ = [
    "AnalysisConfig",
    "AnalysisResult",
    "CohortGranularity",
    "RawEvent",
    "analyze_conversion_latency",
]
