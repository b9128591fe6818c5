"""Fixed day-range histogram of conversion latency."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Sequence

from conversion_latency.analyses.matching import ConversionRecord

# (label, inclusive upper bound); the last bucket is open-ended
DAY_RANGE_BUCKETS: tuple[tuple[str, int | None], ...] = (
    ("0-7", 7),
    ("8-14", 14),
    ("15-30", 30),
    ("31-60", 60),
    ("61-90", 90),
    ("91+", None),
)

NEVER_BUCKET = "never"

BUCKET_LABELS: tuple[str, ...] = tuple(label for label, _ in DAY_RANGE_BUCKETS) + (
    NEVER_BUCKET,
)


def classify_days(days: int | None) -> str:
    """Return the bucket label for a latency in whole days.

    Upper bounds are inclusive: 7 lands in ``"0-7"`` and 8 in ``"8-14"``.
    ``None`` (never converted) lands in ``"never"``.
    """
    if days is None:
        return NEVER_BUCKET
    for label, upper in DAY_RANGE_BUCKETS:
        if upper is None or days <= upper:
            return label
    return DAY_RANGE_BUCKETS[-1][0]


@dataclass(frozen=True)
class DistributionResult:
    """Counts of entities per latency bucket.

    Buckets are exhaustive and disjoint, so the counts sum to the number
    of records bucketed.
    """

    days_0_7: int = 0
    days_8_14: int = 0
    days_15_30: int = 0
    days_31_60: int = 0
    days_61_90: int = 0
    days_91_plus: int = 0
    never: int = 0

    def __post_init__(self) -> None:
        """Validate bucket counts."""
        for label, count in self.items():
            if count < 0:
                raise ValueError(f"Bucket count cannot be negative: {label}={count}")

    def items(self) -> Iterator[tuple[str, int]]:
        """Yield ``(label, count)`` pairs in fixed bucket order."""
        counts = (
            self.days_0_7,
            self.days_8_14,
            self.days_15_30,
            self.days_31_60,
            self.days_61_90,
            self.days_91_plus,
            self.never,
        )
        return iter(zip(BUCKET_LABELS, counts))

    def __getitem__(self, label: str) -> int:
        for bucket, count in self.items():
            if bucket == label:
                return count
        raise KeyError(label)

    @property
    def total(self) -> int:
        return sum(count for _, count in self.items())

    def as_dict(self) -> dict[str, int]:
        """Return ``{label: count}`` in fixed bucket order."""
        return dict(self.items())


def bucket_latency(records: Sequence[ConversionRecord]) -> DistributionResult:
    """Classify every record into its day-range bucket.

    Examples
    --------
    >>> from datetime import datetime, timedelta
    >>> t0 = datetime(2024, 1, 1)
    >>> dist = bucket_latency([
    ...     ConversionRecord("A", t0, t0 + timedelta(days=7), 7),
    ...     ConversionRecord("B", t0, t0 + timedelta(days=8), 8),
    ...     ConversionRecord("C", t0, None, None),
    ... ])
    >>> dist.as_dict()
    {'0-7': 1, '8-14': 1, '15-30': 0, '31-60': 0, '61-90': 0, '91+': 0, 'never': 1}
    """
    counts = dict.fromkeys(BUCKET_LABELS, 0)
    for record in records:
        counts[classify_days(record.days_to_conversion)] += 1

    return DistributionResult(
        days_0_7=counts["0-7"],
        days_8_14=counts["8-14"],
        days_15_30=counts["15-30"],
        days_31_60=counts["31-60"],
        days_61_90=counts["61-90"],
        days_91_plus=counts["91+"],
        never=counts[NEVER_BUCKET],
    )
