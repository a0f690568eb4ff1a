"""
Whole-history aggregates.

Computes totals, averages and extremes across every retained record, plus
per-group totals keyed by a caller-chosen metadata field.
"""

from decimal import Decimal
from typing import Dict, Iterable

from analytics_console.storage.models import BreakdownStats, EventRecord, SummaryStats

UNKNOWN_GROUP = "unknown"


def compute_summary(records: Iterable[EventRecord]) -> SummaryStats:
    """Compute a single SummaryStats in one pass.

    An empty input yields zero counters and no first/last timestamp, so a
    caller can tell "no data" apart from an average that is truly zero.

    Args:
        records: Events to aggregate, in any order

    Returns:
        SummaryStats over all records
    """
    total_events = 0
    total_tokens = 0
    total_cost = Decimal("0")
    total_latency = 0
    min_latency = None
    max_latency = None
    first_timestamp = None
    last_timestamp = None

    for record in records:
        total_events += 1
        total_tokens += record.tokens
        total_cost += record.cost
        total_latency += record.latency_ms

        if min_latency is None or record.latency_ms < min_latency:
            min_latency = record.latency_ms
        if max_latency is None or record.latency_ms > max_latency:
            max_latency = record.latency_ms
        if first_timestamp is None or record.timestamp < first_timestamp:
            first_timestamp = record.timestamp
        if last_timestamp is None or record.timestamp > last_timestamp:
            last_timestamp = record.timestamp

    if total_events == 0:
        return SummaryStats(
            total_events=0,
            total_tokens=0,
            total_cost=Decimal("0"),
            avg_latency_ms=0.0,
            min_latency_ms=0,
            max_latency_ms=0
        )

    return SummaryStats(
        total_events=total_events,
        total_tokens=total_tokens,
        total_cost=total_cost,
        avg_latency_ms=total_latency / total_events,
        min_latency_ms=min_latency,
        max_latency_ms=max_latency,
        avg_tokens_per_request=total_tokens / total_events,
        avg_cost_per_request=total_cost / total_events,
        first_timestamp=first_timestamp,
        last_timestamp=last_timestamp
    )


def compute_breakdown(records: Iterable[EventRecord], key: str) -> Dict[str, BreakdownStats]:
    """Group records by the value of one metadata key.

    Records without the key are grouped under ``"unknown"``.

    Args:
        records: Events to group
        key: Metadata key to group by (e.g. "model" or "provider")

    Returns:
        Mapping of metadata value to its totals, sorted by value
    """
    groups: Dict[str, list] = {}
    for record in records:
        group = record.metadata.get(key, UNKNOWN_GROUP)
        totals = groups.setdefault(group, [0, 0, Decimal("0"), 0])
        totals[0] += 1
        totals[1] += record.tokens
        totals[2] += record.cost
        totals[3] += record.latency_ms

    return {
        group: BreakdownStats(
            requests=requests,
            tokens=tokens,
            cost=cost,
            avg_latency_ms=latency / requests
        )
        for group, (requests, tokens, cost, latency) in sorted(groups.items())
    }
