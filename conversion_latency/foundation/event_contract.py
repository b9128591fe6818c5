"""Event contract definitions and first-occurrence reduction.

The event contract captures the minimum pieces of information every
latency analysis relies on: *who* did something and *when*. Upstream
event sources (email-marketing platforms, order systems, warehouse
exports) all speak slightly different dialects, so records are coerced
into a canonical :class:`RawEvent` at the boundary and anything that
does not conform is dropped rather than propagated through the pipeline.

Quick Start
-----------
>>> from conversion_latency.foundation.event_contract import reduce_first_occurrences
>>> events = [
...     {"entity_id": "P1", "occurred_at": "2024-01-03T10:00:00Z"},
...     {"entity_id": "P1", "occurred_at": "2024-01-01T09:00:00Z"},
...     {"entity_id": "P2", "occurred_at": 1704067200},
...     {"entity_id": None, "occurred_at": "2024-01-01T00:00:00Z"},
... ]
>>> first = reduce_first_occurrences(events)
>>> sorted(first)
['P1', 'P2']
>>> first["P1"].isoformat()
'2024-01-01T09:00:00+00:00'
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RawEvent:
    """Canonical representation of a single entity event.

    Attributes
    ----------
    entity_id:
        Identifier of the tracked subject (e.g., a subscriber profile id).
    occurred_at:
        Timezone-aware UTC timestamp at which the event happened.
    """

    entity_id: str
    occurred_at: datetime

    def __post_init__(self) -> None:
        """Validate event invariants."""
        if not isinstance(self.entity_id, str) or not self.entity_id:
            raise ValueError(f"entity_id must be a non-empty string: {self.entity_id!r}")
        if not isinstance(self.occurred_at, datetime):
            raise ValueError(
                f"occurred_at must be a datetime instance: {self.occurred_at!r}"
            )
        if self.occurred_at.tzinfo is None:
            raise ValueError(
                "Naive datetime not allowed for occurred_at. "
                "Use parse_timestamp() or datetime(..., tzinfo=timezone.utc)"
            )

    def as_dict(self) -> dict[str, str]:
        """Return JSON-serialisable representation of the event."""
        return {
            "entity_id": self.entity_id,
            "occurred_at": self.occurred_at.isoformat(),
        }


def parse_timestamp(value: Any) -> datetime | None:
    """Normalise a raw timestamp to a timezone-aware UTC datetime.

    Parameters
    ----------
    value:
        A ``datetime``, an ISO-8601 string (a trailing ``Z`` is accepted),
        or unix seconds as ``int``/``float``.

    Returns
    -------
    datetime | None
        UTC datetime, or ``None`` when the value is missing or cannot be
        interpreted as a point in time.

    Notes
    -----
    Naive datetimes and ISO strings without an offset are taken to be UTC.
    Booleans are rejected even though ``bool`` subclasses ``int``.

    Examples
    --------
    >>> parse_timestamp("2025-05-30T07:15:18+00:00").isoformat()
    '2025-05-30T07:15:18+00:00'
    >>> parse_timestamp(1748589318).isoformat()
    '2025-05-30T07:15:18+00:00'
    >>> parse_timestamp("not a date") is None
    True
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)):
        if not math.isfinite(value):
            return None
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _coerce_entity_id(value: Any) -> str | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return str(value)
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return None


def flatten_jsonapi_event(payload: Mapping[str, Any]) -> dict[str, Any]:
    """Flatten a nested JSON:API event payload into a flat event mapping.

    Email-marketing event APIs return events shaped like::

        {
            "type": "event",
            "attributes": {"timestamp": 1748589318, "datetime": "2025-05-30T07:15:18+00:00"},
            "relationships": {"profile": {"data": {"type": "profile", "id": "01JW..."}}},
        }

    The profile id becomes ``entity_id``; ``attributes.datetime`` becomes
    ``occurred_at``, falling back to ``attributes.timestamp`` (unix seconds)
    when the ISO value is missing. Missing branches yield ``None`` values so
    the record is dropped downstream instead of raising here.
    """

    def _child(node: Any, key: str) -> Mapping[str, Any]:
        if not isinstance(node, Mapping):
            return {}
        value = node.get(key)
        return value if isinstance(value, Mapping) else {}

    profile_data = _child(_child(_child(payload, "relationships"), "profile"), "data")
    attributes = _child(payload, "attributes")

    occurred_at = attributes.get("datetime")
    if occurred_at is None:
        occurred_at = attributes.get("timestamp")

    return {"entity_id": profile_data.get("id"), "occurred_at": occurred_at}


class EventContract:
    """Coerce raw event records into canonical :class:`RawEvent` instances."""

    #: Default key holding the entity identifier in raw mappings.
    DEFAULT_ENTITY_FIELD = "entity_id"
    #: Default key holding the event timestamp in raw mappings.
    DEFAULT_TIMESTAMP_FIELD = "occurred_at"

    def __init__(
        self,
        entity_field: str = DEFAULT_ENTITY_FIELD,
        timestamp_field: str = DEFAULT_TIMESTAMP_FIELD,
        *,
        jsonapi: bool = False,
    ) -> None:
        self.entity_field = entity_field
        self.timestamp_field = timestamp_field
        self.jsonapi = jsonapi

    def coerce(self, record: RawEvent | Mapping[str, Any]) -> RawEvent | None:
        """Return a canonical event, or ``None`` if the record does not conform."""
        if isinstance(record, RawEvent):
            return record
        if not isinstance(record, Mapping):
            return None

        if self.jsonapi:
            data: Mapping[str, Any] = flatten_jsonapi_event(record)
            entity_field, timestamp_field = "entity_id", "occurred_at"
        else:
            data = record
            entity_field, timestamp_field = self.entity_field, self.timestamp_field

        entity_id = _coerce_entity_id(data.get(entity_field))
        if entity_id is None:
            return None
        occurred_at = parse_timestamp(data.get(timestamp_field))
        if occurred_at is None:
            return None
        return RawEvent(entity_id=entity_id, occurred_at=occurred_at)

    def validate_records(
        self, records: Iterable[RawEvent | Mapping[str, Any]]
    ) -> list[RawEvent]:
        """Coerce a whole stream, silently dropping non-conforming records.

        Parameters
        ----------
        records:
            Iterable of raw event dictionaries (or already canonical
            :class:`RawEvent` instances) as produced by an upstream system.
        """
        canonical: list[RawEvent] = []
        for idx, record in enumerate(records):
            event = self.coerce(record)
            if event is None:
                logger.debug(f"Dropping malformed event at index {idx}: {record!r}")
                continue
            canonical.append(event)
        return canonical


def reduce_first_occurrences(
    events: Iterable[RawEvent | Mapping[str, Any]],
    contract: EventContract | None = None,
) -> dict[str, datetime]:
    """Collapse an event stream into the earliest timestamp per entity.

    Parameters
    ----------
    events:
        Raw events in any order. Duplicates are expected; malformed
        records (missing or unparseable id/timestamp) are dropped.
    contract:
        Contract used to coerce raw mappings. Defaults to
        ``EventContract()`` (``entity_id`` / ``occurred_at`` keys).

    Returns
    -------
    dict[str, datetime]
        Mapping of entity id to its first (minimum) UTC timestamp.

    Notes
    -----
    No error is raised for malformed input. Callers that need visibility
    into data quality can compare the number of input events with
    ``len()`` of the result; the count of dropped records is also logged.
    """
    if contract is None:
        contract = EventContract()

    first_seen: dict[str, datetime] = {}
    total = 0
    dropped = 0
    for event in events:
        total += 1
        canonical = contract.coerce(event)
        if canonical is None:
            dropped += 1
            logger.debug(f"Dropping malformed event: {event!r}")
            continue

        existing = first_seen.get(canonical.entity_id)
        if existing is None or canonical.occurred_at < existing:
            first_seen[canonical.entity_id] = canonical.occurred_at

    if dropped:
        logger.info(
            f"Dropped {dropped}/{total} malformed events "
            f"(missing or unparseable entity id or timestamp)"
        )
    return first_seen
