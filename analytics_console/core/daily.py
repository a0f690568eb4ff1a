"""
Daily rollups over a trailing window.

Buckets records by calendar day in a single fixed timezone (UTC unless the
store is configured otherwise) and summarizes each day.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone, tzinfo
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from analytics_console.storage.models import DailySummary, EventRecord
from .summary import compute_breakdown


@dataclass
class _DayTotals:
    """Running totals for one day bucket."""
    event_count: int = 0
    total_tokens: int = 0
    total_cost: Decimal = Decimal("0")
    total_latency_ms: int = 0
    records: List[EventRecord] = field(default_factory=list)

    def add(self, record: EventRecord) -> None:
        self.event_count += 1
        self.total_tokens += record.tokens
        self.total_cost += record.cost
        self.total_latency_ms += record.latency_ms
        self.records.append(record)

    def to_summary(self, day: date, breakdown_key: Optional[str] = None) -> DailySummary:
        avg_latency = self.total_latency_ms / self.event_count if self.event_count else 0.0
        breakdown = None
        if breakdown_key is not None:
            breakdown = compute_breakdown(self.records, breakdown_key)
        return DailySummary(
            date=day,
            event_count=self.event_count,
            total_tokens=self.total_tokens,
            total_cost=self.total_cost,
            avg_latency_ms=float(avg_latency),
            breakdown=breakdown
        )


def day_key(timestamp: datetime, tz: tzinfo = timezone.utc) -> date:
    """Calendar day of an aware timestamp in the given timezone."""
    return timestamp.astimezone(tz).date()


def daily_summaries(
    records: Iterable[EventRecord],
    window_days: int,
    now: datetime,
    tz: tzinfo = timezone.utc,
    dense: bool = False,
    breakdown_key: Optional[str] = None
) -> List[DailySummary]:
    """Summarize records per calendar day over a trailing window.

    The window is the ``window_days`` calendar days ending with the day that
    contains ``now`` (not the latest record). Records dated after today fall
    outside the window. Windows reaching past the first representable date
    stop there.

    Args:
        records: Events to bucket, in any order
        window_days: Number of days to include; values below 1 are clamped to 1
        now: Query time used to determine "today"
        tz: Timezone whose midnight separates days
        dense: If True, days without events are included with zeroed fields
        breakdown_key: If set, each day also groups its records by this
            metadata key

    Returns:
        One DailySummary per day, most recent day first
    """
    window_days = max(1, int(window_days))
    today = day_key(now, tz)
    span = min(window_days - 1, (today - date.min).days)
    first_day = today - timedelta(days=span)

    buckets: Dict[date, _DayTotals] = {}
    for record in records:
        key = day_key(record.timestamp, tz)
        if key < first_day or key > today:
            continue
        if key not in buckets:
            buckets[key] = _DayTotals()
        buckets[key].add(record)

    if dense:
        days = [today - timedelta(days=offset) for offset in range(span + 1)]
    else:
        days = sorted(buckets, reverse=True)

    return [buckets.get(day, _DayTotals()).to_summary(day, breakdown_key) for day in days]
