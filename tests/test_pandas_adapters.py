"""Tests for the pandas DataFrame adapters."""

import logging
from datetime import date, datetime, timedelta, timezone

import numpy as np
import pandas as pd  # type: ignore
import pytest

from conversion_latency.analyses.engine import AnalysisConfig, analyze_conversion_latency
from conversion_latency.analyses.matching import ConversionRecord
from conversion_latency.pandas import (
    analyze_conversion_latency_df,
    cohorts_to_dataframe,
    conversion_records_to_dataframe,
    dataframe_to_raw_events,
    distribution_to_dataframe,
    statistics_to_dataframe,
)
from conversion_latency.pandas._utils import to_python_scalar

UTC = timezone.utc
T0 = datetime(2024, 1, 1, tzinfo=UTC)


class TestToPythonScalar:
    """Test scalar normalisation."""

    def test_timestamp_becomes_datetime(self):
        """pd.Timestamp is converted to datetime."""
        value = to_python_scalar(pd.Timestamp("2024-01-01", tz="UTC"))
        assert type(value) is datetime
        assert value == T0

    def test_numpy_integer_becomes_int(self):
        """numpy integers become Python ints."""
        value = to_python_scalar(np.int64(42))
        assert value == 42
        assert type(value) is int

    @pytest.mark.parametrize("missing", [None, pd.NaT, float("nan"), np.datetime64("NaT")])
    def test_missing_markers_become_none(self, missing):
        """NaT, NaN and None all map to None."""
        assert to_python_scalar(missing) is None


class TestDataFrameToRawEvents:
    """Test dataframe_to_raw_events conversion."""

    def test_datetime_column(self):
        """tz-aware datetime64 columns convert directly."""
        df = pd.DataFrame(
            {
                "entity_id": ["A", "B"],
                "occurred_at": pd.to_datetime(
                    ["2024-01-01T00:00:00Z", "2024-01-02T12:00:00Z"], utc=True
                ),
            }
        )
        events = dataframe_to_raw_events(df)
        assert [e.entity_id for e in events] == ["A", "B"]
        assert events[0].occurred_at == T0
        assert events[1].occurred_at == T0 + timedelta(days=1, hours=12)

    def test_custom_columns_and_numeric_ids(self):
        """Custom column names and integer ids are supported."""
        df = pd.DataFrame(
            {"profile_id": [101, 102], "datetime": ["2024-01-01T00:00:00Z", "2024-01-05"]}
        )
        events = dataframe_to_raw_events(df, "profile_id", "datetime")
        assert [e.entity_id for e in events] == ["101", "102"]
        assert events[1].occurred_at == datetime(2024, 1, 5, tzinfo=UTC)

    def test_malformed_rows_are_dropped(self):
        """Rows with missing ids or timestamps are skipped."""
        df = pd.DataFrame(
            {
                "entity_id": ["A", None, "C", "D"],
                "occurred_at": ["2024-01-01", "2024-01-01", None, "garbage"],
            }
        )
        events = dataframe_to_raw_events(df)
        assert [e.entity_id for e in events] == ["A"]

    def test_numeric_ids_with_missing_value(self):
        """A missing id only drops its own row, not the float-typed column."""
        df = pd.DataFrame(
            {
                "entity_id": [101, 102, None],
                "occurred_at": ["2024-01-01", "2024-01-02", "2024-01-03"],
            }
        )
        assert df["entity_id"].dtype == np.float64
        events = dataframe_to_raw_events(df)
        assert [e.entity_id for e in events] == ["101", "102"]

    def test_numeric_ids_with_missing_value_end_to_end(self):
        """Float-stored ids keep the population intact through the analysis."""
        start_df = pd.DataFrame(
            {
                "entity_id": [1, 2, None],
                "occurred_at": ["2024-01-01", "2024-01-01", "2024-01-01"],
            }
        )
        conversion_df = pd.DataFrame(
            {"entity_id": [1.0], "occurred_at": ["2024-01-04"]}
        )
        frames = analyze_conversion_latency_df(start_df, conversion_df)
        stats = frames["statistics"].iloc[0]
        assert stats["total_entities"] == 2
        assert stats["converted_entities"] == 1
        assert stats["median_days"] == 3

    def test_dropped_rows_are_logged(self, caplog):
        """Malformed rows go through the contract's validation and are logged."""
        df = pd.DataFrame({"entity_id": ["A", None], "occurred_at": ["2024-01-01"] * 2})
        with caplog.at_level(
            logging.DEBUG, logger="conversion_latency.foundation.event_contract"
        ):
            events = dataframe_to_raw_events(df)
        assert len(events) == 1
        assert "Dropping malformed event at index 1" in caplog.text

    def test_missing_column_raises_error(self):
        """Missing required columns raise ValueError."""
        df = pd.DataFrame({"entity_id": ["A"]})
        with pytest.raises(ValueError, match="missing required columns"):
            dataframe_to_raw_events(df)


class TestResultAdapters:
    """Test conversion of analysis results to DataFrames."""

    @pytest.fixture
    def result(self):
        starts = [
            {"entity_id": "B", "occurred_at": "2024-01-01T00:00:00Z"},
            {"entity_id": "A", "occurred_at": "2024-01-02T00:00:00Z"},
            {"entity_id": "C", "occurred_at": "2024-02-10T00:00:00Z"},
        ]
        conversions = [
            {"entity_id": "A", "occurred_at": "2024-01-12T00:00:00Z"},
            {"entity_id": "C", "occurred_at": "2024-02-12T00:00:00Z"},
        ]
        return analyze_conversion_latency(
            starts,
            conversions,
            "month",
            config=AnalysisConfig(include_records=True),
        )

    def test_statistics_single_row(self, result):
        """Statistics flatten to one row with percentile columns."""
        df = statistics_to_dataframe(result.statistics)
        assert len(df) == 1
        row = df.iloc[0]
        assert row["total_entities"] == 3
        assert row["converted_entities"] == 2
        assert row["conversion_rate"] == pytest.approx(2 / 3)
        assert row["median_days"] == 10
        assert {"p25", "p75", "p90", "p95"} <= set(df.columns)

    def test_cohorts_one_row_per_cohort(self, result):
        """Each cohort is a row with flattened distribution columns."""
        df = cohorts_to_dataframe(result.cohorts)
        assert list(df["cohort_key"]) == ["2024-01-01", "2024-02-01"]
        assert list(df["total_entities"]) == [2, 1]
        assert list(df["dist_never"]) == [1, 0]
        assert list(df["dist_8-14"]) == [1, 0]
        assert list(df["dist_0-7"]) == [0, 1]

    def test_empty_cohorts_keep_columns(self):
        """An empty cohort list still yields the expected columns."""
        df = cohorts_to_dataframe([])
        assert df.empty
        assert "cohort_label" in df.columns
        assert "dist_91+" in df.columns

    def test_distribution_in_bucket_order(self, result):
        """Distribution rows follow the fixed bucket order."""
        df = distribution_to_dataframe(result.distribution)
        assert list(df["bucket"]) == [
            "0-7", "8-14", "15-30", "31-60", "61-90", "91+", "never",
        ]
        assert df["count"].sum() == 3

    def test_records_nullable_days(self, result):
        """Non-converted entities have <NA> days and NaT conversion time."""
        df = conversion_records_to_dataframe(result.records)
        assert list(df["entity_id"]) == ["A", "B", "C"]
        assert str(df["days_to_conversion"].dtype) == "Int64"
        assert df.loc[0, "days_to_conversion"] == 10
        assert pd.isna(df.loc[1, "days_to_conversion"])
        assert pd.isna(df.loc[1, "conversion_time"])

    def test_records_sorted_by_entity(self):
        """Records are sorted by entity_id regardless of input order."""
        records = [
            ConversionRecord("Z", T0, None, None),
            ConversionRecord("M", T0, T0 + timedelta(days=1), 1),
        ]
        df = conversion_records_to_dataframe(records)
        assert list(df["entity_id"]) == ["M", "Z"]

    def test_empty_records(self):
        """No records yields an empty frame with the record columns."""
        df = conversion_records_to_dataframe([])
        assert df.empty
        assert list(df.columns) == [
            "entity_id", "start_time", "conversion_time", "days_to_conversion",
        ]


class TestAnalyzeConversionLatencyDF:
    """Test the DataFrame convenience entry point."""

    def test_end_to_end(self):
        """DataFrame inputs produce the same figures as raw mappings."""
        start_df = pd.DataFrame(
            {
                "entity_id": ["A", "A", "B"],
                "occurred_at": pd.to_datetime(
                    ["2024-01-03", "2024-01-01", "2024-01-04"], utc=True
                ),
            }
        )
        conversion_df = pd.DataFrame(
            {
                "entity_id": ["A", "X"],
                "occurred_at": pd.to_datetime(["2024-01-08", "2024-01-02"], utc=True),
            }
        )

        frames = analyze_conversion_latency_df(start_df, conversion_df, "week")

        assert set(frames) == {"statistics", "cohorts", "distribution"}
        stats = frames["statistics"].iloc[0]
        assert stats["total_entities"] == 2
        assert stats["converted_entities"] == 1
        assert stats["median_days"] == 7
        assert list(frames["cohorts"]["cohort_key"]) == ["2024-01-01"]
        assert frames["cohorts"].iloc[0]["period_start_date"] == date(2024, 1, 1)

    def test_invalid_granularity_raises_error(self):
        """Granularity errors propagate through the adapter."""
        empty = pd.DataFrame({"entity_id": [], "occurred_at": []})
        with pytest.raises(ValueError, match="Invalid cohort granularity"):
            analyze_conversion_latency_df(empty, empty, "year")
