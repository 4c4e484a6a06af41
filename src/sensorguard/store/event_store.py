"""Persisted event store — SQLite history of event log entries.

Appends every accepted event and serves the most recent N back, newest
first. Probability is intentionally not persisted; entries read back from
disk carry probability 0.0.

Usage:
    from sensorguard.store import EventStore

    store = EventStore(".sensorguard/events.db")
    store.append(entry)
    for entry in store.fetch_latest(limit=50):
        print(entry.timestamp, entry.sensor_id, entry.message)
"""

import logging
import sqlite3
import uuid
from datetime import datetime
from pathlib import Path

from sensorguard.registry.event_log import EventEntry, EventKind

logger = logging.getLogger(__name__)


SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS events (
    id TEXT PRIMARY KEY,
    timestamp TEXT NOT NULL,
    kind TEXT NOT NULL DEFAULT 'DETECTION',
    sensor_id TEXT NOT NULL,
    message TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS events_timestamp ON events (timestamp DESC);
"""

DEFAULT_FETCH_LIMIT = 200


class EventStore:
    """Durable event history in a local SQLite database.

    Write failures are logged and swallowed — history is a convenience,
    not a reason to stop evaluating sensors.

    Args:
        db_path: Path to SQLite database file.
            Defaults to '.sensorguard/events.db' in the current directory.
    """

    def __init__(self, db_path: str | Path | None = None) -> None:
        if db_path is None:
            db_path = Path(".sensorguard") / "events.db"
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _init_db(self) -> None:
        """Initialize database schema if not exists."""
        with self._connect() as conn:
            conn.executescript(SCHEMA_SQL)

    def _connect(self) -> sqlite3.Connection:
        """Create a database connection with WAL mode for performance."""
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def append(self, entry: EventEntry) -> bool:
        """Persist one event.

        Returns:
            True if the row was written
        """
        try:
            with self._connect() as conn:
                conn.execute(
                    "INSERT OR IGNORE INTO events (id, timestamp, kind, sensor_id, message) "
                    "VALUES (?, ?, ?, ?, ?)",
                    (
                        str(entry.id),
                        entry.timestamp.isoformat(),
                        entry.kind.value,
                        entry.sensor_id,
                        entry.message,
                    ),
                )
        except sqlite3.Error as e:
            logger.warning("Event store write failed for %s: %s", entry.sensor_id, e)
            return False

        logger.debug(
            "Event persisted | kind=%s sensor=%s msg=%s",
            entry.kind.value, entry.sensor_id, entry.message[:60],
        )
        return True

    def fetch_latest(self, limit: int = DEFAULT_FETCH_LIMIT) -> list[EventEntry]:
        """Most recent events, newest first.

        Args:
            limit: Maximum rows to return

        Returns:
            Entries with probability 0.0 (not persisted). Unknown kinds
            read back as DETECTION; unparseable rows are skipped.
        """
        try:
            with self._connect() as conn:
                rows = conn.execute(
                    "SELECT id, timestamp, kind, sensor_id, message FROM events "
                    "ORDER BY timestamp DESC LIMIT ?",
                    (limit,),
                ).fetchall()
        except sqlite3.Error as e:
            logger.warning("Event store fetch failed: %s", e)
            return []

        entries = []
        for row in rows:
            try:
                entry_id = uuid.UUID(row["id"])
                timestamp = datetime.fromisoformat(row["timestamp"])
            except (TypeError, ValueError):
                continue
            try:
                kind = EventKind(row["kind"])
            except ValueError:
                kind = EventKind.DETECTION
            entries.append(
                EventEntry(
                    kind=kind,
                    sensor_id=row["sensor_id"],
                    message=row["message"],
                    probability=0.0,
                    timestamp=timestamp,
                    id=entry_id,
                )
            )
        return entries

    def count(self) -> int:
        """Total number of persisted events."""
        with self._connect() as conn:
            row = conn.execute("SELECT COUNT(*) AS n FROM events").fetchone()
            return row["n"]
