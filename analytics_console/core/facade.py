"""
Query facade over the ingest buffer.

The object request handlers and the CLI talk to. Construct one per process
and inject it; tests build an isolated instance per case.
"""

import logging
from datetime import datetime, timezone, tzinfo
from typing import Callable, Dict, List, Optional
from zoneinfo import ZoneInfo

from analytics_console.storage.buffer import (
    DEFAULT_RECENT_LIMIT,
    IngestBuffer,
    RetentionPolicy,
)
from analytics_console.storage.models import (
    BreakdownStats,
    DailySummary,
    EventInput,
    EventRecord,
    SummaryStats,
)
from analytics_console.storage.repository import EventLogRepository
from .daily import daily_summaries
from .errors import PolicyError
from .summary import compute_breakdown, compute_summary

logger = logging.getLogger(__name__)

DEFAULT_DAILY_WINDOW = 30


def resolve_timezone(name: str) -> tzinfo:
    """Map a timezone name to a tzinfo, treating "UTC" specially."""
    if name.upper() == "UTC":
        return timezone.utc
    return ZoneInfo(name)


class AnalyticsConsole:
    """Read and reset operations over one ingest buffer.

    Every read recomputes from the buffer's current contents, so derived
    views can never drift from the raw records.
    """

    def __init__(
        self,
        buffer: IngestBuffer,
        timezone_name: str = "UTC",
        clear_enabled: bool = True,
        default_recent_limit: int = DEFAULT_RECENT_LIMIT,
        clock: Optional[Callable[[], datetime]] = None
    ):
        """Initialize the facade.

        Args:
            buffer: The buffer that owns all records
            timezone_name: IANA timezone whose midnight separates days
            clear_enabled: Whether clear_all is permitted in this deployment
            default_recent_limit: Limit used when get_recent gets None
            clock: Query-time source; defaults to the buffer's clock
        """
        self.buffer = buffer
        self.timezone_name = timezone_name
        self.tz = resolve_timezone(timezone_name)
        self.clear_enabled = clear_enabled
        self.default_recent_limit = default_recent_limit
        self.clock = clock or buffer.clock

    @classmethod
    def from_config(cls, config) -> "AnalyticsConsole":
        """Build a console, its buffer and optional event log from config.

        Args:
            config: A loaded ConsoleConfig

        Returns:
            Ready-to-use AnalyticsConsole with any persisted events replayed
        """
        repository = None
        if config.database:
            repository = EventLogRepository(config.database)
            repository.initialize_schema()

        buffer = IngestBuffer(
            retention=RetentionPolicy(
                max_records=config.retention.max_records,
                max_age=config.retention.max_age
            ),
            repository=repository
        )
        buffer.load()
        return cls(
            buffer,
            timezone_name=config.timezone,
            clear_enabled=config.clear_enabled,
            default_recent_limit=config.recent_limit
        )

    def append(self, record_input: EventInput) -> EventRecord:
        """Store a new event. Raises ValidationError on bad input."""
        return self.buffer.append(record_input)

    def get_recent(self, limit: Optional[int] = None) -> List[EventRecord]:
        if limit is None:
            limit = self.default_recent_limit
        return self.buffer.recent(limit)

    def get_daily(
        self,
        days: int = DEFAULT_DAILY_WINDOW,
        dense: bool = False,
        breakdown: Optional[str] = None
    ) -> List[DailySummary]:
        """Per-day rollups, optionally grouped by a metadata key within each day."""
        return daily_summaries(
            self.buffer.all(),
            window_days=days,
            now=self.clock(),
            tz=self.tz,
            dense=dense,
            breakdown_key=breakdown
        )

    def get_between(self, start: datetime, end: datetime) -> List[EventRecord]:
        """Records with start <= timestamp <= end, oldest first.

        Naive bounds are taken as UTC. An empty list is returned when
        start is after end.
        """
        return self.buffer.between(start, end)

    def get_summary(self) -> SummaryStats:
        return compute_summary(self.buffer.all())

    def get_breakdown(self, key: str) -> Dict[str, BreakdownStats]:
        return compute_breakdown(self.buffer.all(), key)

    def clear_all(self) -> None:
        """Remove every record.

        Raises:
            PolicyError: If clearing is disabled for this deployment
        """
        if not self.clear_enabled:
            logger.warning("Refused clear_all: disabled by deployment policy")
            raise PolicyError("clearing analytics is disabled in this deployment")
        self.buffer.clear()
