"""Sensor registry — the live, ordered view of every sensor's state.

Responsibilities:
- Upsert one record per sensor identifier (O(1) lookup by id)
- Keep records ordered for display:
    1. user-quarantined first
    2. severity rank (QUARANTINE, WARNING, NORMAL)
    3. most recently updated first
- Log a DETECTION event only when a sensor's severity changes
- Drop stale results: when two evaluations of the same sensor are in
  flight, the one emitted later wins even if it completes first

The full ordering is recomputed only when a record is added or its
severity / quarantine flag changes; plain value refreshes keep their slot.

Usage:
    registry = SensorRegistry(event_log=EventLog())
    is_new, transitioned = registry.upsert("10.0.0.7", 0.21, Severity.QUARANTINE, ["Low SNR"])
    for state in registry.snapshot():
        print(state.sensor_id, state.severity.value)
"""

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Iterable

from sensorguard.engine.classifier import Severity
from sensorguard.registry.event_log import Clock, EventKind, EventLog, utcnow

logger = logging.getLogger(__name__)

RECOVERED_MESSAGE = "Recovered to NORMAL."


@dataclass(frozen=True)
class SensorState:
    """Read-only snapshot of one sensor's latest evaluation.

    Attributes:
        sensor_id: Unique sensor identifier
        probability: Latest model probability
        severity: Latest model-derived severity
        last_updated: When the latest result was applied
        reasons: Ranked explanation strings
        user_quarantined: Sticky operator override, never cleared automatically
    """

    sensor_id: str
    probability: float
    severity: Severity
    last_updated: datetime
    reasons: tuple[str, ...] = ()
    user_quarantined: bool = False

    def sort_key(self) -> tuple[bool, int, float]:
        """Display ordering key (ascending)."""
        return (not self.user_quarantined, self.severity.sort_rank, -self.last_updated.timestamp())

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "sensor_id": self.sensor_id,
            "probability": self.probability,
            "severity": self.severity.value,
            "last_updated": self.last_updated.isoformat(),
            "reasons": list(self.reasons),
            "user_quarantined": self.user_quarantined,
        }


def detection_message(severity: Severity, probability: float, reasons: Iterable[str]) -> str:
    """Format the DETECTION message for a transition into ``severity``."""
    if severity is Severity.NORMAL:
        return RECOVERED_MESSAGE
    reasons = list(reasons)
    reason_text = " " + " • ".join(reasons) if reasons else ""
    return f"Detected {severity.value} (p={probability:.3f}).{reason_text}"


class SensorRegistry:
    """Ordered, deduplicated store of sensor states.

    Owned by a single update context; callers never need locks.

    Args:
        event_log: Receives DETECTION events on severity transitions
        clock: Time source for ``last_updated`` (default: UTC wall clock)
    """

    def __init__(self, event_log: EventLog | None = None, clock: Clock | None = None) -> None:
        self.event_log = event_log
        self._clock = clock or utcnow
        self._records: list[SensorState] = []
        self._index: dict[str, int] = {}
        self._last_severity: dict[str, Severity] = {}
        self._last_sequence: dict[str, int] = {}
        self.stale_dropped = 0

    # ── Updates ────────────────────────────────────────────────

    def upsert(
        self,
        sensor_id: str,
        probability: float,
        severity: Severity,
        reasons: Iterable[str] = (),
        sequence: int | None = None,
    ) -> tuple[bool, bool]:
        """Apply one evaluation result.

        Args:
            sensor_id: Sensor identifier
            probability: Model probability
            severity: Classified severity
            reasons: Ranked explanation strings
            sequence: Per-sensor emission counter; results not newer than
                the last applied one for this sensor are dropped

        Returns:
            (is_new, transitioned) — whether a record was created, and
            whether the severity changed from the last one seen
        """
        if sequence is not None:
            last = self._last_sequence.get(sensor_id)
            if last is not None and sequence <= last:
                self.stale_dropped += 1
                logger.debug(
                    "Dropped stale result for %s (sequence %d <= %d)", sensor_id, sequence, last,
                )
                return False, False
            self._last_sequence[sensor_id] = sequence

        now = self._clock()
        reasons = tuple(reasons)
        i = self._index.get(sensor_id)

        if i is None:
            record = SensorState(
                sensor_id=sensor_id,
                probability=probability,
                severity=severity,
                last_updated=now,
                reasons=reasons,
                user_quarantined=False,
            )
            self._records.append(record)
            self._index[sensor_id] = len(self._records) - 1
            is_new = True
            needs_sort = True
        else:
            previous = self._records[i]
            record = replace(
                previous,
                probability=probability,
                severity=severity,
                last_updated=now,
                reasons=reasons,
            )
            self._records[i] = record
            is_new = False
            needs_sort = previous.severity is not severity

        transitioned = self._record_transition(sensor_id, severity, probability, reasons)

        if needs_sort:
            self._resort()
        return is_new, transitioned

    def mark_user_quarantined(self, sensor_id: str) -> SensorState | None:
        """Set the sticky user-quarantine flag.

        Returns:
            The updated snapshot, or None if the sensor is unknown
        """
        i = self._index.get(sensor_id)
        if i is None:
            return None
        record = replace(self._records[i], user_quarantined=True)
        self._records[i] = record
        self._resort()
        logger.info("Sensor %s user quarantined", sensor_id)
        return record

    def clear(self) -> None:
        """Forget every sensor (start of a new session)."""
        self._records.clear()
        self._index.clear()
        self._last_severity.clear()
        self._last_sequence.clear()
        self.stale_dropped = 0

    # ── Queries ────────────────────────────────────────────────

    def snapshot(self) -> list[SensorState]:
        """Records in display order."""
        return list(self._records)

    def get(self, sensor_id: str) -> SensorState | None:
        """Latest state for one sensor."""
        i = self._index.get(sensor_id)
        return self._records[i] if i is not None else None

    def counts(self) -> dict[str, int]:
        """Number of sensors per severity, plus user-quarantined."""
        counts = {severity.value: 0 for severity in Severity}
        counts["USER_QUARANTINED"] = 0
        for record in self._records:
            counts[record.severity.value] += 1
            if record.user_quarantined:
                counts["USER_QUARANTINED"] += 1
        return counts

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, sensor_id: object) -> bool:
        return sensor_id in self._index

    # ── Internals ──────────────────────────────────────────────

    def _record_transition(
        self,
        sensor_id: str,
        severity: Severity,
        probability: float,
        reasons: tuple[str, ...],
    ) -> bool:
        """Track last-seen severity and log DETECTION events on change."""
        previous = self._last_severity.get(sensor_id)
        if previous is severity:
            return False
        self._last_severity[sensor_id] = severity

        # Never having left NORMAL is not a transition
        if previous is None and severity is Severity.NORMAL:
            return False

        logger.info(
            "State %s -> %s p=%.4f", sensor_id, severity.value, probability,
        )
        if self.event_log is not None:
            self.event_log.add(
                EventKind.DETECTION,
                sensor_id,
                detection_message(severity, probability, reasons),
                probability,
            )
        return True

    def _resort(self) -> None:
        self._records.sort(key=SensorState.sort_key)
        self._index = {record.sensor_id: i for i, record in enumerate(self._records)}
