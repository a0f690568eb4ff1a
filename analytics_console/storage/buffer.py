"""
In-memory ingest buffer with a retention policy.

Holds every retained EventRecord ordered by (timestamp, insertion sequence).
Retention is the only bound on memory: after each append the oldest records
by timestamp are evicted until the buffer fits the policy again.
"""

import itertools
import logging
import math
import threading
import uuid
from bisect import bisect_left, bisect_right
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation
from types import MappingProxyType
from typing import Callable, List, Mapping, Optional

from analytics_console.core.errors import ValidationError
from .models import EventInput, EventRecord
from .repository import EventLogRepository

logger = logging.getLogger(__name__)

DEFAULT_MAX_RECORDS = 10_000
DEFAULT_RECENT_LIMIT = 50

# Largest count SQLite INTEGER holds; largest cost whose retained totals stay
# representable as JSON numbers.
MAX_COUNT = 2 ** 63 - 1
MAX_COST = Decimal("1e15")


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def normalize_timestamp(value: datetime) -> datetime:
    """Convert a timestamp to aware UTC. Naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True)
class RetentionPolicy:
    """Bounds on how many records, and how old, the buffer keeps.

    Records beyond ``max_records`` or older than ``max_age`` (relative to the
    buffer clock) are evicted oldest-first after every append.
    """
    max_records: Optional[int] = DEFAULT_MAX_RECORDS
    max_age: Optional[timedelta] = None

    def __post_init__(self):
        """Validate that the policy is bounded and positive."""
        if self.max_records is None and self.max_age is None:
            raise ValueError("retention policy needs max_records or max_age")
        if self.max_records is not None and self.max_records <= 0:
            raise ValueError("max_records must be > 0")
        if self.max_age is not None and self.max_age <= timedelta(0):
            raise ValueError("max_age must be positive")


class IngestBuffer:
    """Append-only store of EventRecords with retention.

    A single lock guards the container, so readers always see a consistent
    snapshot: no half-inserted record and no partial eviction.
    """

    def __init__(
        self,
        retention: Optional[RetentionPolicy] = None,
        clock: Callable[[], datetime] = utc_now,
        repository: Optional[EventLogRepository] = None
    ):
        """Initialize an empty buffer.

        Args:
            retention: Eviction policy (defaults to RetentionPolicy())
            clock: Returns the current aware datetime
            repository: Optional persisted log mirrored on every write
        """
        self.retention = retention or RetentionPolicy()
        self.clock = clock
        self.repository = repository
        self._records: List[EventRecord] = []
        self._keys: list = []
        self._sequence = itertools.count()
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def load(self) -> int:
        """Replay the persisted log into memory and apply retention.

        Returns:
            Number of records retained after replay
        """
        if self.repository is None:
            return 0

        events = self.repository.fetch_all_events()
        with self._lock:
            self._records = sorted(events, key=lambda e: e.sort_key)
            self._keys = [e.sort_key for e in self._records]
            next_sequence = max((e.sequence for e in events), default=-1) + 1
            self._sequence = itertools.count(next_sequence)
            self._evict()
            logger.info("Loaded %d events from %s", len(self._records), self.repository.db_path)
            return len(self._records)

    def append(self, record_input: EventInput) -> EventRecord:
        """Validate and store one event.

        Args:
            record_input: Caller-supplied event fields

        Returns:
            The created record, with id and normalized timestamp assigned

        Raises:
            ValidationError: If any field is missing, malformed or negative
        """
        try:
            tokens = _validate_count(record_input.tokens, "tokens")
            latency_ms = _validate_count(record_input.latency_ms, "latency_ms")
            cost = _validate_cost(record_input.cost)
            metadata = _validate_metadata(record_input.metadata)
            timestamp = record_input.timestamp
            if timestamp is not None and not isinstance(timestamp, datetime):
                raise ValidationError("timestamp must be a datetime", field="timestamp")
        except ValidationError as e:
            logger.warning("Rejected event: %s", e)
            raise

        with self._lock:
            record = EventRecord(
                id=uuid.uuid4().hex,
                timestamp=normalize_timestamp(timestamp or self.clock()),
                tokens=tokens,
                cost=cost,
                latency_ms=latency_ms,
                metadata=metadata,
                sequence=next(self._sequence)
            )
            if self.repository is not None:
                self.repository.insert_event(record)

            index = bisect_right(self._keys, record.sort_key)
            self._records.insert(index, record)
            self._keys.insert(index, record.sort_key)
            logger.debug("Stored event %s (%d tokens)", record.id, record.tokens)

            self._evict()
            return record

    def recent(self, limit: int = DEFAULT_RECENT_LIMIT) -> List[EventRecord]:
        """Most recent records first; equal timestamps put later inserts first."""
        if limit <= 0:
            return []
        with self._lock:
            return list(reversed(self._records[-limit:]))

    def all(self) -> List[EventRecord]:
        """Snapshot of every retained record, timestamp ascending."""
        with self._lock:
            return list(self._records)

    def between(self, start: datetime, end: datetime) -> List[EventRecord]:
        """Records with start <= timestamp <= end, timestamp ascending."""
        start = normalize_timestamp(start)
        end = normalize_timestamp(end)
        with self._lock:
            lo = bisect_left(self._keys, (start, -1))
            hi = bisect_left(self._keys, (end + timedelta(microseconds=1), -1))
            return self._records[lo:hi]

    def clear(self) -> None:
        """Remove all records. Safe to call repeatedly."""
        with self._lock:
            count = len(self._records)
            if self.repository is not None:
                self.repository.delete_all()
            self._records = []
            self._keys = []
        logger.info("Cleared %d events", count)

    def _evict(self) -> None:
        """Drop the oldest records until the buffer fits the retention policy."""
        excess = 0
        if self.retention.max_age is not None:
            cutoff = normalize_timestamp(self.clock()) - self.retention.max_age
            excess = bisect_left(self._keys, (cutoff, -1))
        if self.retention.max_records is not None:
            excess = max(excess, len(self._records) - self.retention.max_records)
        if excess <= 0:
            return

        evicted = self._records[:excess]
        if self.repository is not None:
            self.repository.delete_events(e.id for e in evicted)
        del self._records[:excess]
        del self._keys[:excess]
        logger.info("Evicted %d events past retention", len(evicted))


def _validate_count(value, name: str) -> int:
    """Accept non-negative integers only."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{name} must be an integer", field=name)
    if value < 0:
        raise ValidationError(f"{name} must be >= 0, got {value}", field=name)
    if value > MAX_COUNT:
        raise ValidationError(f"{name} must be <= {MAX_COUNT}", field=name)
    return value


def _validate_cost(value) -> Decimal:
    """Accept a finite, non-negative number and return it as a Decimal."""
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal, str)):
        raise ValidationError("cost must be a number", field="cost")
    if isinstance(value, float) and not math.isfinite(value):
        raise ValidationError("cost must be finite", field="cost")
    try:
        cost = value if isinstance(value, Decimal) else Decimal(str(value))
    except InvalidOperation:
        raise ValidationError(f"cost is not a number: {value!r}", field="cost")
    if not cost.is_finite():
        raise ValidationError("cost must be finite", field="cost")
    if cost < 0:
        raise ValidationError(f"cost must be >= 0, got {value}", field="cost")
    if cost > MAX_COST:
        raise ValidationError(f"cost must be <= {MAX_COST:f}", field="cost")
    return cost


def _validate_metadata(value: Optional[Mapping]) -> Mapping[str, str]:
    """Copy metadata into a read-only str -> str mapping."""
    if value is None:
        return MappingProxyType({})
    if not isinstance(value, Mapping):
        raise ValidationError("metadata must be a mapping", field="metadata")
    for key, item in value.items():
        if not isinstance(key, str) or not isinstance(item, str):
            raise ValidationError("metadata keys and values must be strings", field="metadata")
    return MappingProxyType(dict(value))
