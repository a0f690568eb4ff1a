"""
Append-only event log backed by SQLite.

Keeps raw records keyed by id so the in-memory buffer can be rebuilt at
startup. Aggregates are never persisted; they are always recomputed.
"""

import json
import logging
from datetime import datetime
from decimal import Decimal
from types import MappingProxyType
from typing import Iterable, List

from .db import DEFAULT_DB_PATH, get_connection
from .models import EventRecord

logger = logging.getLogger(__name__)


class EventLogRepository:
    """Repository for the persisted event log.

    Rows are only inserted or deleted, never updated. Deletes happen when the
    buffer evicts records or is cleared, so the log stays within retention.
    """

    def __init__(self, db_path: str = DEFAULT_DB_PATH):
        """Initialize the repository with a database path.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = db_path

    def initialize_schema(self) -> None:
        """Create the analytics_event table if it doesn't exist."""
        conn = get_connection(self.db_path)
        try:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS analytics_event (
                    id TEXT PRIMARY KEY,
                    sequence INTEGER NOT NULL,
                    timestamp TEXT NOT NULL,
                    tokens INTEGER NOT NULL,
                    cost TEXT NOT NULL,
                    latency_ms INTEGER NOT NULL,
                    metadata TEXT NOT NULL DEFAULT '{}'
                )
            """)
            conn.commit()
        finally:
            conn.close()

    def insert_event(self, event: EventRecord) -> None:
        """Insert a single event into the log.

        Args:
            event: The record to persist
        """
        conn = get_connection(self.db_path)
        try:
            conn.execute("""
                INSERT INTO analytics_event
                (id, sequence, timestamp, tokens, cost, latency_ms, metadata)
                VALUES (?, ?, ?, ?, ?, ?, ?)
            """, (
                event.id,
                event.sequence,
                event.timestamp.isoformat(),
                event.tokens,
                str(event.cost),
                event.latency_ms,
                json.dumps(dict(event.metadata), sort_keys=True)
            ))
            conn.commit()
        finally:
            conn.close()

    def delete_events(self, ids: Iterable[str]) -> None:
        """Delete events by id in a single transaction.

        Args:
            ids: Identifiers of the records to remove
        """
        ids = list(ids)
        if not ids:
            return

        conn = get_connection(self.db_path)
        try:
            conn.execute("BEGIN TRANSACTION")
            conn.executemany(
                "DELETE FROM analytics_event WHERE id = ?",
                [(event_id,) for event_id in ids]
            )
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()
        logger.debug("Deleted %d events from %s", len(ids), self.db_path)

    def delete_all(self) -> None:
        """Remove every event from the log."""
        conn = get_connection(self.db_path)
        try:
            conn.execute("DELETE FROM analytics_event")
            conn.commit()
        finally:
            conn.close()

    def fetch_all_events(self) -> List[EventRecord]:
        """Fetch every persisted event in insertion order.

        Returns:
            List of records ordered by sequence (oldest insertion first)
        """
        conn = get_connection(self.db_path)
        try:
            cursor = conn.execute("""
                SELECT id, sequence, timestamp, tokens, cost, latency_ms, metadata
                FROM analytics_event
                ORDER BY sequence ASC
            """)
            events = []
            for row in cursor.fetchall():
                events.append(EventRecord(
                    id=row[0],
                    sequence=row[1],
                    timestamp=datetime.fromisoformat(row[2]),
                    tokens=row[3],
                    cost=Decimal(row[4]),
                    latency_ms=row[5],
                    metadata=MappingProxyType(json.loads(row[6]))
                ))
            return events
        finally:
            conn.close()
