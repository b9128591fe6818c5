from __future__ import annotations

import random
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple


def _random_instant(rng: random.Random, day: date) -> datetime:
    seconds = rng.randrange(24 * 60 * 60)
    return datetime.combine(day, time(0, 0), tzinfo=timezone.utc) + timedelta(
        seconds=seconds
    )


def generate_conversion_events(
    n: int,
    start: date,
    end: date,
    *,
    conversion_probability: float = 0.4,
    mean_latency_days: float = 14.0,
    duplicate_probability: float = 0.1,
    seed: Optional[int] = None,
) -> Tuple[List[Dict[str, Any]], List[Dict[str, Any]]]:
    """Generate ``n`` entities with start events and, for some, a conversion.

    Start dates are uniform between ``start`` and ``end``. Each entity
    converts with ``conversion_probability``; latency is exponential with
    mean ``mean_latency_days``. Some entities get a later duplicate start
    event and every converter may get a later repeat conversion, so the
    streams exercise first-occurrence reduction the way real exports do.

    Returns ``(start_events, conversion_events)`` as raw mappings with
    ``entity_id`` and ISO-8601 ``occurred_at`` keys.
    """

    if n <= 0:
        return [], []
    if start > end:
        raise ValueError("start date must be <= end date")
    if not 0.0 <= conversion_probability <= 1.0:
        raise ValueError("conversion_probability must be within [0, 1]")
    if mean_latency_days <= 0:
        raise ValueError("mean_latency_days must be positive")

    rng = random.Random(seed)
    total_days = (end - start).days + 1

    start_events: List[Dict[str, Any]] = []
    conversion_events: List[Dict[str, Any]] = []
    for i in range(n):
        entity_id = f"E-{i + 1}"
        started = _random_instant(rng, start + timedelta(days=rng.randrange(total_days)))
        start_events.append({"entity_id": entity_id, "occurred_at": started.isoformat()})

        if rng.random() < duplicate_probability:
            later = started + timedelta(hours=rng.uniform(1, 72))
            start_events.append({"entity_id": entity_id, "occurred_at": later.isoformat()})

        if rng.random() < conversion_probability:
            latency = timedelta(days=rng.expovariate(1.0 / mean_latency_days))
            converted = started + latency
            conversion_events.append(
                {"entity_id": entity_id, "occurred_at": converted.isoformat()}
            )
            if rng.random() < duplicate_probability:
                repeat = converted + timedelta(days=rng.uniform(1, 30))
                conversion_events.append(
                    {"entity_id": entity_id, "occurred_at": repeat.isoformat()}
                )

    rng.shuffle(start_events)
    rng.shuffle(conversion_events)
    return start_events, conversion_events
