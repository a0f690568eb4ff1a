"""
Unit tests for daily rollups.

Tests day bucketing, window clamping, timezones and dense output.
"""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from types import MappingProxyType
from zoneinfo import ZoneInfo

from analytics_console.core.daily import daily_summaries, day_key
from analytics_console.storage.models import EventRecord

NOW = datetime(2024, 6, 15, 12, 0, 0, tzinfo=timezone.utc)


def _record(timestamp, tokens=10, cost="0.01", latency_ms=100, sequence=0, metadata=None):
    return EventRecord(
        id=f"evt-{sequence}",
        timestamp=timestamp,
        tokens=tokens,
        cost=Decimal(cost),
        latency_ms=latency_ms,
        metadata=MappingProxyType(metadata or {}),
        sequence=sequence
    )


class TestDayKey:
    """Test calendar-day derivation."""

    def test_utc_day(self):
        assert day_key(datetime(2024, 6, 15, 23, 59, tzinfo=timezone.utc)) == date(2024, 6, 15)

    def test_configured_timezone_shifts_day(self):
        ts = datetime(2024, 6, 15, 23, 0, tzinfo=timezone.utc)
        assert day_key(ts, ZoneInfo("Asia/Tokyo")) == date(2024, 6, 16)
        assert day_key(ts, ZoneInfo("America/New_York")) == date(2024, 6, 15)


class TestDailySummaries:
    """Test per-day aggregation."""

    def test_single_day_totals(self):
        records = [
            _record(NOW - timedelta(hours=3), tokens=10, cost="0.01", latency_ms=100),
            _record(NOW - timedelta(hours=2), tokens=20, cost="0.02", latency_ms=200),
            _record(NOW - timedelta(hours=1), tokens=30, cost="0.03", latency_ms=300),
        ]
        summaries = daily_summaries(records, window_days=1, now=NOW)
        assert len(summaries) == 1
        day = summaries[0]
        assert day.date == date(2024, 6, 15)
        assert day.event_count == 3
        assert day.total_tokens == 60
        assert day.total_cost == Decimal("0.06")
        assert day.avg_latency_ms == 200.0

    def test_average_is_not_truncated(self):
        records = [_record(NOW, latency_ms=100), _record(NOW, latency_ms=101)]
        assert daily_summaries(records, 1, NOW)[0].avg_latency_ms == 100.5

    def test_sorted_most_recent_first(self):
        records = [_record(NOW - timedelta(days=d)) for d in (2, 0, 1)]
        dates = [s.date for s in daily_summaries(records, 7, NOW)]
        assert dates == [date(2024, 6, 15), date(2024, 6, 14), date(2024, 6, 13)]

    def test_window_counts_back_from_query_time(self):
        records = [_record(NOW - timedelta(days=10))]
        assert daily_summaries(records, 7, NOW) == []
        assert len(daily_summaries(records, 11, NOW)) == 1

    def test_sparse_window_omits_empty_days(self):
        records = [
            _record(NOW - timedelta(days=4)),
            _record(NOW - timedelta(days=4)),
            _record(NOW - timedelta(days=2)),
            _record(NOW - timedelta(days=1)),
            _record(NOW - timedelta(days=1)),
        ]
        summaries = daily_summaries(records, 3, NOW)
        assert [s.date for s in summaries] == [date(2024, 6, 14), date(2024, 6, 13)]

    def test_dense_window_fills_missing_days(self):
        records = [_record(NOW - timedelta(days=1), tokens=5)]
        summaries = daily_summaries(records, 3, NOW, dense=True)
        assert [s.date for s in summaries] == [
            date(2024, 6, 15), date(2024, 6, 14), date(2024, 6, 13)
        ]
        assert summaries[0].event_count == 0
        assert summaries[0].total_cost == Decimal("0")
        assert summaries[0].avg_latency_ms == 0.0
        assert summaries[1].total_tokens == 5

    def test_non_positive_window_is_clamped_to_one(self):
        records = [_record(NOW), _record(NOW - timedelta(days=1))]
        assert len(daily_summaries(records, 0, NOW)) == 1
        assert len(daily_summaries(records, -5, NOW)) == 1
        assert len(daily_summaries([], 0, NOW, dense=True)) == 1

    def test_future_records_are_outside_window(self):
        records = [_record(NOW + timedelta(days=1))]
        assert daily_summaries(records, 30, NOW) == []

    def test_midnight_boundary_uses_configured_timezone(self):
        tokyo = ZoneInfo("Asia/Tokyo")
        records = [_record(datetime(2024, 6, 15, 16, 0, tzinfo=timezone.utc))]
        now = datetime(2024, 6, 15, 20, 0, tzinfo=timezone.utc)
        summaries = daily_summaries(records, 1, now, tz=tokyo)
        assert summaries[0].date == date(2024, 6, 16)

    def test_empty_input(self):
        assert daily_summaries([], 30, NOW) == []

    def test_window_larger_than_calendar_history(self):
        """Windows reaching before the first representable date stop there."""
        records = [_record(NOW - timedelta(days=400))]
        for window in (1_000_000, 10 ** 12):
            summaries = daily_summaries(records, window, NOW)
            assert [s.date for s in summaries] == [date(2023, 5, 12)]

    def test_dense_window_stops_at_first_date(self):
        now = datetime(1, 1, 3, 12, 0, tzinfo=timezone.utc)
        summaries = daily_summaries([], 100, now, dense=True)
        assert [s.date for s in summaries] == [date(1, 1, 3), date(1, 1, 2), date(1, 1, 1)]


class TestDailyBreakdown:
    """Test grouping each day by a metadata key."""

    def test_breakdown_absent_by_default(self):
        summaries = daily_summaries([_record(NOW)], 1, NOW)
        assert summaries[0].breakdown is None

    def test_each_day_grouped_separately(self):
        records = [
            _record(NOW, tokens=10, metadata={"model": "gpt-4"}, sequence=0),
            _record(NOW, tokens=30, metadata={"model": "gpt-3.5-turbo"}, sequence=1),
            _record(NOW - timedelta(days=1), tokens=5, metadata={"model": "gpt-4"}, sequence=2),
            _record(NOW - timedelta(days=1), tokens=7, sequence=3),
        ]
        today, yesterday = daily_summaries(records, 7, NOW, breakdown_key="model")

        assert list(today.breakdown) == ["gpt-3.5-turbo", "gpt-4"]
        assert today.breakdown["gpt-4"].tokens == 10
        assert today.breakdown["gpt-3.5-turbo"].tokens == 30
        assert yesterday.breakdown["gpt-4"].requests == 1
        assert yesterday.breakdown["unknown"].tokens == 7

    def test_dense_empty_day_has_empty_breakdown(self):
        summaries = daily_summaries([_record(NOW)], 2, NOW, dense=True, breakdown_key="model")
        assert summaries[1].event_count == 0
        assert summaries[1].breakdown == {}
