"""
Data models for storage layer.

Defines the raw event record and the derived daily and whole-history views.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional


@dataclass(frozen=True)
class EventInput:
    """Caller-supplied fields for one usage event, prior to validation."""
    tokens: Any
    cost: Any
    latency_ms: Any
    timestamp: Optional[datetime] = None
    metadata: Optional[Mapping[str, str]] = None


@dataclass(frozen=True)
class EventRecord:
    """Immutable record of one observed usage event.

    Created only by the ingest buffer. Updates are modeled as new records;
    once stored, a record is never modified.
    """
    id: str
    timestamp: datetime  # timezone-aware, UTC
    tokens: int
    cost: Decimal
    latency_ms: int
    metadata: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    sequence: int = 0

    @property
    def sort_key(self):
        """Ordering key: timestamp, then insertion order."""
        return (self.timestamp, self.sequence)


@dataclass(frozen=True)
class DailySummary:
    """Aggregate for one calendar day, recomputed on every read."""
    date: date
    event_count: int
    total_tokens: int
    total_cost: Decimal
    avg_latency_ms: float
    breakdown: Optional[Dict[str, "BreakdownStats"]] = None


@dataclass(frozen=True)
class SummaryStats:
    """Aggregate over the buffer's entire retained history.

    ``first_timestamp`` and ``last_timestamp`` are None when there are no
    events; ``avg_latency_ms`` and the per-request averages are then zero and
    ``total_events`` is 0.
    """
    total_events: int
    total_tokens: int
    total_cost: Decimal
    avg_latency_ms: float
    min_latency_ms: int
    max_latency_ms: int
    avg_tokens_per_request: float = 0.0
    avg_cost_per_request: Decimal = Decimal("0")
    first_timestamp: Optional[datetime] = None
    last_timestamp: Optional[datetime] = None


@dataclass(frozen=True)
class BreakdownStats:
    """Totals for the records sharing one metadata value."""
    requests: int
    tokens: int
    cost: Decimal
    avg_latency_ms: float
