"""Monitor — session coordinator.

Wires the streaming source to the inference worker and applies results to
the registry:

    Source tick → ingest() → worker thread → registry.upsert() → notifier

Everything except model evaluation runs on the event loop, which owns the
registry, the event log and the session counters. Evaluations for the same
sensor may complete out of order; each carries a per-sensor sequence number
and the registry drops results older than the last one applied.

Usage:
    monitor = build_monitor(settings)
    await monitor.start()
    ...
    monitor.quarantine("10.0.0.7")
    monitor.stop()
    await monitor.drain()
"""

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Coroutine

from sensorguard.exceptions import DatasetLoadError
from sensorguard.notify.notifier import Notifier
from sensorguard.pipeline.worker import Evaluation, InferenceWorker
from sensorguard.registry.event_log import EventEntry, EventKind, EventLog
from sensorguard.registry.sensors import SensorRegistry, SensorState
from sensorguard.stream.reading import Reading
from sensorguard.stream.source import StreamingSource

logger = logging.getLogger(__name__)

USER_QUARANTINE_MESSAGE = "User quarantined this sensor."
DEFAULT_TICK_SECONDS = 0.6


@dataclass
class MonitorStats:
    """Session counters."""

    is_running: bool
    rows_processed: int
    malicious_rows: int
    total_unique_sensors: int
    in_flight: int
    stale_dropped: int
    counts: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "is_running": self.is_running,
            "rows_processed": self.rows_processed,
            "malicious_rows": self.malicious_rows,
            "total_unique_sensors": self.total_unique_sensors,
            "in_flight": self.in_flight,
            "stale_dropped": self.stale_dropped,
            "counts": dict(self.counts),
        }


class Monitor:
    """Runs one monitoring session at a time.

    Must be driven from a running event loop.

    Args:
        worker: Inference worker (scoring + classification + explanation)
        source: Streaming source (default: new StreamingSource)
        event_log: Session event log (default: new EventLog)
        registry: Sensor registry (default: bound to ``event_log``)
        notifier: Alert sink (None = no alerts)
        tick_seconds: Streaming cadence
        dataset_path: Dataset used when ``start`` gets no path
    """

    def __init__(
        self,
        worker: InferenceWorker,
        source: StreamingSource | None = None,
        event_log: EventLog | None = None,
        registry: SensorRegistry | None = None,
        notifier: Notifier | None = None,
        tick_seconds: float = DEFAULT_TICK_SECONDS,
        dataset_path: str | Path | None = None,
    ) -> None:
        if tick_seconds <= 0:
            raise ValueError(f"tick_seconds ({tick_seconds}) must be > 0")
        self.worker = worker
        self.source = source or StreamingSource()
        self.event_log = event_log if event_log is not None else EventLog()
        self.registry = registry if registry is not None else SensorRegistry(event_log=self.event_log)
        self.notifier = notifier
        self.tick_seconds = tick_seconds
        self.dataset_path = dataset_path

        self.rows_processed = 0
        self.malicious_rows = 0
        self._seen: set[str] = set()
        self._sequences: dict[str, int] = {}
        self._pending: set[asyncio.Task] = set()
        self._generation = 0
        self._starting = False

        if self.event_log.store is not None:
            self.event_log.writer = self._write_event

    @property
    def is_running(self) -> bool:
        return self.source.is_running

    @property
    def total_unique_sensors(self) -> int:
        return len(self._seen)

    # ── Session control ────────────────────────────────────────

    async def start(self, dataset_path: str | Path | None = None) -> bool:
        """Load the dataset and start streaming.

        Args:
            dataset_path: CSV to replay (default: the configured dataset)

        Returns:
            True if streaming started. False if already running, no
            dataset was given, the dataset could not be loaded, or it has
            no rows.
        """
        if self.is_running or self._starting:
            logger.info("Monitor already running — start ignored")
            return False

        path = dataset_path or self.dataset_path
        if path is None:
            logger.error("No dataset configured — stream did not start")
            return False

        self._starting = True
        try:
            try:
                report = await asyncio.to_thread(self.source.load, path)
            except DatasetLoadError as e:
                logger.error("Dataset load failed: %s — stream did not start", e)
                return False

            self._reset_session()
            if self.notifier is not None:
                await self.notifier.request_permission()

            started = self.source.start(self.tick_seconds, self.ingest)
        finally:
            self._starting = False
        if started:
            logger.info(
                "Monitoring %s | rows=%d malformed=%d tick=%.3fs",
                Path(path).name, report.total_rows, report.malformed, self.tick_seconds,
            )
        return started

    def stop(self) -> None:
        """Stop emitting readings. In-flight evaluations still complete."""
        self.source.stop()

    async def drain(self) -> None:
        """Wait until every in-flight evaluation and alert has finished."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def _reset_session(self) -> None:
        # Event log is kept across sessions.
        self._generation += 1
        self.rows_processed = 0
        self.malicious_rows = 0
        self._seen.clear()
        self._sequences.clear()
        self.registry.clear()

    # ── Per-reading flow ───────────────────────────────────────

    def ingest(self, reading: Reading) -> None:
        """Account for one reading and schedule its evaluation.

        Called by the source on every tick; must run on the event loop.
        """
        self.rows_processed += 1
        if reading.is_malicious == 1:
            self.malicious_rows += 1
        self._seen.add(reading.sensor_id)

        sequence = self._sequences.get(reading.sensor_id, 0) + 1
        self._sequences[reading.sensor_id] = sequence
        self._spawn(self._evaluate(reading, sequence, self._generation))

    async def _evaluate(self, reading: Reading, sequence: int, generation: int) -> None:
        try:
            evaluation = await self.worker.evaluate_async(reading)
        except Exception:
            logger.exception("Evaluation failed for sensor %s", reading.sensor_id)
            return
        if generation != self._generation:
            logger.debug("Dropped result for %s from a previous session", reading.sensor_id)
            return
        self.apply(evaluation, sequence)

    def apply(self, evaluation: Evaluation, sequence: int | None = None) -> bool:
        """Apply one evaluation to the registry.

        Returns:
            True if the sensor's severity changed
        """
        _, transitioned = self.registry.upsert(
            evaluation.sensor_id,
            evaluation.probability,
            evaluation.severity,
            evaluation.reasons,
            sequence=sequence,
        )
        if transitioned and evaluation.severity.is_alert and self.notifier is not None:
            self._spawn(
                self.notifier.notify_state_crossing(
                    evaluation.sensor_id,
                    evaluation.severity,
                    evaluation.probability,
                    evaluation.reasons,
                )
            )
        return transitioned

    def _spawn(self, coro: Coroutine) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    def _write_event(self, entry: EventEntry) -> None:
        self._spawn(asyncio.to_thread(self.event_log.store.append, entry))

    # ── Operator actions ───────────────────────────────────────

    def quarantine(self, sensor_id: str) -> SensorState | None:
        """Quarantine a sensor on the operator's behalf.

        Sticky for the rest of the session. Unknown ids are ignored.

        Returns:
            The updated sensor state, or None if the sensor is unknown
        """
        state = self.registry.mark_user_quarantined(sensor_id)
        if state is None:
            logger.warning("Quarantine ignored: unknown sensor %s", sensor_id)
            return None

        self.event_log.add(EventKind.ACTION, sensor_id, USER_QUARANTINE_MESSAGE, state.probability)
        if self.notifier is not None:
            self._spawn(self.notifier.notify_user_quarantine(sensor_id, state.reasons))
        return state

    # ── Views ──────────────────────────────────────────────────

    def snapshot(self) -> list[SensorState]:
        """Sensors in display order."""
        return self.registry.snapshot()

    def events(self, limit: int | None = None) -> list[EventEntry]:
        """Session events, newest first."""
        if limit is None:
            return list(self.event_log.entries)
        return self.event_log.latest(limit)

    def stats(self) -> MonitorStats:
        """Current session counters."""
        return MonitorStats(
            is_running=self.is_running,
            rows_processed=self.rows_processed,
            malicious_rows=self.malicious_rows,
            total_unique_sensors=self.total_unique_sensors,
            in_flight=len(self._pending),
            stale_dropped=self.registry.stale_dropped,
            counts=self.registry.counts(),
        )
