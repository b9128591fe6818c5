"""Pair start events with conversion events and measure latency.

The population of interest is defined by the start stream: every entity
with a start event gets exactly one :class:`ConversionRecord`, whether or
not it ever converted. Entities that only appear in the conversion stream
never started the clock and are outside the measured population.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Mapping

SECONDS_PER_DAY = Decimal(86400)


@dataclass(frozen=True)
class ConversionRecord:
    """Latency outcome for a single start entity.

    Attributes
    ----------
    entity_id:
        Identifier of the tracked entity
    start_time:
        First start-event timestamp for the entity
    conversion_time:
        First conversion-event timestamp, or None if the entity never
        converted. A conversion that predates ``start_time`` is kept here
        for traceability but does not count as a conversion.
    days_to_conversion:
        Whole days from start to conversion (round half away from zero),
        or None when the entity is treated as non-converted.
    """

    entity_id: str
    start_time: datetime
    conversion_time: datetime | None
    days_to_conversion: int | None

    def __post_init__(self) -> None:
        """Validate latency invariants."""
        if self.days_to_conversion is None:
            return
        if self.conversion_time is None:
            raise ValueError(
                f"days_to_conversion set without conversion_time for {self.entity_id}"
            )
        if self.conversion_time < self.start_time:
            raise ValueError(
                f"Conversion precedes start for {self.entity_id}; "
                f"days_to_conversion must be None"
            )
        if self.days_to_conversion < 0:
            raise ValueError(
                f"days_to_conversion cannot be negative: {self.days_to_conversion}"
            )

    @property
    def converted(self) -> bool:
        """Whether the entity counts as converted."""
        return self.days_to_conversion is not None

    def as_dict(self) -> dict[str, Any]:
        """Return JSON-serialisable representation of the record."""
        return {
            "entity_id": self.entity_id,
            "start_time": self.start_time.isoformat(),
            "conversion_time": (
                self.conversion_time.isoformat()
                if self.conversion_time is not None
                else None
            ),
            "days_to_conversion": self.days_to_conversion,
        }


def _total_seconds(delta: timedelta) -> Decimal:
    # Exact arithmetic; timedelta.total_seconds() goes through float.
    return (
        Decimal(delta.days) * SECONDS_PER_DAY
        + Decimal(delta.seconds)
        + Decimal(delta.microseconds) / Decimal(1_000_000)
    )


def days_between(start: datetime, end: datetime) -> int:
    """Whole days from ``start`` to ``end``, rounded half away from zero.

    Examples
    --------
    >>> from datetime import datetime
    >>> days_between(datetime(2024, 1, 1), datetime(2024, 1, 11))
    10
    >>> days_between(datetime(2024, 1, 1), datetime(2024, 1, 1, 12))
    1
    >>> days_between(datetime(2024, 1, 1), datetime(2024, 1, 1, 11, 59))
    0
    """
    days = _total_seconds(end - start) / SECONDS_PER_DAY
    return int(days.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def match_conversions(
    starts: Mapping[str, datetime],
    conversions: Mapping[str, datetime],
) -> list[ConversionRecord]:
    """Build one :class:`ConversionRecord` per start entity.

    Parameters
    ----------
    starts:
        Earliest start-event timestamp per entity
    conversions:
        Earliest conversion-event timestamp per entity

    Returns
    -------
    list[ConversionRecord]
        One record per key of ``starts``, in the mapping's iteration order.
        Callers needing a stable order must sort downstream.

    Notes
    -----
    A conversion timestamp earlier than the start timestamp is treated as
    non-converted (``days_to_conversion is None``) rather than raising, so
    negative latencies never reach the statistics. The entity remains in
    the total population.

    Examples
    --------
    >>> from datetime import datetime
    >>> records = match_conversions(
    ...     {"A": datetime(2024, 1, 1), "B": datetime(2024, 1, 1)},
    ...     {"A": datetime(2024, 1, 11), "Z": datetime(2024, 1, 2)},
    ... )
    >>> [(r.entity_id, r.days_to_conversion) for r in records]
    [('A', 10), ('B', None)]
    """
    records: list[ConversionRecord] = []
    for entity_id, start_time in starts.items():
        conversion_time = conversions.get(entity_id)

        days_to_conversion: int | None = None
        if conversion_time is not None and conversion_time >= start_time:
            days_to_conversion = days_between(start_time, conversion_time)

        records.append(
            ConversionRecord(
                entity_id=entity_id,
                start_time=start_time,
                conversion_time=conversion_time,
                days_to_conversion=days_to_conversion,
            )
        )
    return records
