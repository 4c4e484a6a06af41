"""Deduplicating, newest-first event log.

Identical events — same (kind, sensor id, message) — accepted less than
the dedup window apart are silently dropped. Accepted events are
prepended, so ``entries`` reads most-recent-first, and forwarded to the
persisted event store when one is attached. An owner running on an event
loop may set ``writer`` to take over delivery to the store.

Not thread-safe by design: the log is owned by the update context (the
event loop) and only mutated there.
"""

import logging
import uuid
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Callable

if TYPE_CHECKING:
    from sensorguard.store.event_store import EventStore

logger = logging.getLogger(__name__)

DEFAULT_DEDUP_WINDOW = 6.0  # seconds

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class EventKind(Enum):
    """Event categories."""

    DETECTION = "DETECTION"  # Model-driven state change
    ACTION = "ACTION"  # Operator action


@dataclass(frozen=True)
class EventEntry:
    """One log entry.

    Attributes:
        kind: DETECTION or ACTION
        sensor_id: Sensor the event refers to
        message: Human-readable description
        probability: Model probability at the time of the event
        timestamp: When the event was accepted
        id: Unique entry identifier
    """

    kind: EventKind
    sensor_id: str
    message: str
    probability: float
    timestamp: datetime = field(default_factory=utcnow)
    id: uuid.UUID = field(default_factory=uuid.uuid4)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "id": str(self.id),
            "timestamp": self.timestamp.isoformat(),
            "kind": self.kind.value,
            "sensor_id": self.sensor_id,
            "message": self.message,
            "probability": self.probability,
        }


class EventLog:
    """In-memory event log with time-windowed duplicate suppression.

    Args:
        dedup_window: Seconds during which an identical event is suppressed
        clock: Time source (default: UTC wall clock)
        store: Optional persisted event store receiving accepted entries
        max_entries: Keep at most this many visible entries (None = unbounded)
    """

    def __init__(
        self,
        dedup_window: float = DEFAULT_DEDUP_WINDOW,
        clock: Clock | None = None,
        store: "EventStore | None" = None,
        max_entries: int | None = None,
    ) -> None:
        if dedup_window < 0:
            raise ValueError(f"dedup_window ({dedup_window}) must be >= 0")
        self.dedup_window = dedup_window
        self.store = store
        self.writer: Callable[[EventEntry], None] | None = None
        self._clock = clock or utcnow
        self._entries: deque[EventEntry] = deque(maxlen=max_entries)
        self._last_accepted: dict[tuple[EventKind, str, str], datetime] = {}

    def add(
        self,
        kind: EventKind,
        sensor_id: str,
        message: str,
        probability: float,
    ) -> EventEntry | None:
        """Append an event unless an identical one was accepted recently.

        Returns:
            The new entry, or None if it was suppressed
        """
        now = self._clock()
        key = (kind, sensor_id, message)

        last = self._last_accepted.get(key)
        if last is not None and (now - last).total_seconds() < self.dedup_window:
            logger.debug("Suppressed duplicate %s event for %s", kind.value, sensor_id)
            return None
        self._last_accepted[key] = now

        entry = EventEntry(
            kind=kind,
            sensor_id=sensor_id,
            message=message,
            probability=probability,
            timestamp=now,
        )
        self._entries.appendleft(entry)

        if self.writer is not None:
            self.writer(entry)
        elif self.store is not None:
            self.store.append(entry)
        return entry

    @property
    def entries(self) -> tuple[EventEntry, ...]:
        """Visible entries, most recent first."""
        return tuple(self._entries)

    def latest(self, limit: int) -> list[EventEntry]:
        """The ``limit`` most recent entries."""
        if limit <= 0:
            return []
        return list(self._entries)[:limit]

    def clear(self) -> None:
        """Drop all entries and suppression state."""
        self._entries.clear()
        self._last_accepted.clear()

    def __len__(self) -> int:
        return len(self._entries)
