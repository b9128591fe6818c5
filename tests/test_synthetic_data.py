from datetime import date, datetime

import pytest

from conversion_latency.foundation.event_contract import parse_timestamp
from conversion_latency.synthetic import generate_conversion_events


def test_generate_conversion_events_basic() -> None:
    starts, conversions = generate_conversion_events(
        100, date(2024, 1, 1), date(2024, 3, 31), seed=7
    )
    start_ids = {e["entity_id"] for e in starts}
    assert len(start_ids) == 100
    # Duplicate start events exercise first-occurrence reduction
    assert len(starts) >= 100
    # Every converter is also a starter
    assert {e["entity_id"] for e in conversions} <= start_ids


def test_start_dates_within_range() -> None:
    starts, _ = generate_conversion_events(
        50, date(2024, 2, 1), date(2024, 2, 29), duplicate_probability=0.0, seed=3
    )
    for event in starts:
        ts = parse_timestamp(event["occurred_at"])
        assert isinstance(ts, datetime)
        assert date(2024, 2, 1) <= ts.date() <= date(2024, 2, 29)


def test_conversions_never_precede_first_start() -> None:
    starts, conversions = generate_conversion_events(
        200, date(2024, 1, 1), date(2024, 6, 30), seed=21
    )
    first_start = {}
    for event in starts:
        ts = parse_timestamp(event["occurred_at"])
        current = first_start.get(event["entity_id"])
        if current is None or ts < current:
            first_start[event["entity_id"]] = ts
    for event in conversions:
        assert parse_timestamp(event["occurred_at"]) >= first_start[event["entity_id"]]


def test_seed_is_deterministic() -> None:
    first = generate_conversion_events(30, date(2024, 1, 1), date(2024, 1, 31), seed=5)
    second = generate_conversion_events(30, date(2024, 1, 1), date(2024, 1, 31), seed=5)
    assert first == second


def test_probability_extremes() -> None:
    _, none_converted = generate_conversion_events(
        20, date(2024, 1, 1), date(2024, 1, 31), conversion_probability=0.0, seed=1
    )
    assert none_converted == []

    starts, all_converted = generate_conversion_events(
        20,
        date(2024, 1, 1),
        date(2024, 1, 31),
        conversion_probability=1.0,
        duplicate_probability=0.0,
        seed=1,
    )
    assert len(all_converted) == len(starts) == 20


def test_empty_inputs_are_handled() -> None:
    assert generate_conversion_events(0, date(2024, 1, 1), date(2024, 1, 1)) == ([], [])


def test_invalid_arguments() -> None:
    with pytest.raises(ValueError, match="start date must be <= end date"):
        generate_conversion_events(5, date(2024, 2, 1), date(2024, 1, 1))
    with pytest.raises(ValueError, match="conversion_probability"):
        generate_conversion_events(
            5, date(2024, 1, 1), date(2024, 1, 31), conversion_probability=1.5
        )
    with pytest.raises(ValueError, match="mean_latency_days must be positive"):
        generate_conversion_events(
            5, date(2024, 1, 1), date(2024, 1, 31), mean_latency_days=0
        )
