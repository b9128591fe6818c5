"""Pandas DataFrame adapters for raw event streams."""

from typing import List

import pandas as pd  # type: ignore

from conversion_latency.foundation.event_contract import EventContract, RawEvent
from ._utils import to_python_scalar


def dataframe_to_raw_events(
    events_df: pd.DataFrame,
    entity_column: str = "entity_id",
    timestamp_column: str = "occurred_at",
) -> List[RawEvent]:
    """Convert an event DataFrame to canonical events.

    Args:
        events_df: DataFrame with one row per event
        entity_column: Column holding the entity identifier
        timestamp_column: Column holding the event time. datetime64 columns,
            ISO-8601 strings and unix seconds are all accepted.

    Returns:
        List of RawEvent objects. Rows with a missing or unparseable id or
        timestamp are dropped, matching the behaviour for raw mappings.

    Raises:
        ValueError: If the DataFrame is missing a required column

    Example:
        >>> events_df = pd.read_parquet("subscriptions.parquet")
        >>> events = dataframe_to_raw_events(events_df, "profile_id", "datetime")
        >>> first_seen = reduce_first_occurrences(events)
    """
    required_cols = {entity_column, timestamp_column}
    missing = required_cols - set(events_df.columns)
    if missing:
        raise ValueError(
            f"DataFrame missing required columns: {sorted(missing)}. "
            f"Expected columns: {sorted(required_cols)}"
        )

    records = [
        {
            "entity_id": _entity_id_scalar(entity_id),
            "occurred_at": to_python_scalar(occurred_at),
        }
        for entity_id, occurred_at in zip(
            events_df[entity_column], events_df[timestamp_column]
        )
    ]
    return EventContract().validate_records(records)


def _entity_id_scalar(value):
    # Integer id columns with a missing value are stored as float64
    value = to_python_scalar(value)
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value
