"""Tests for the Monitor — source → worker → registry wiring.

The worker is replaced by scripted fakes so tests control both the
outcome and the completion order of every evaluation.
"""

import asyncio
import threading

import pytest

from sensorguard.engine.classifier import Severity
from sensorguard.notify.notifier import Notifier
from sensorguard.pipeline.monitor import USER_QUARANTINE_MESSAGE, Monitor
from sensorguard.pipeline.worker import Evaluation
from sensorguard.registry.event_log import EventKind, EventLog
from sensorguard.stream.reading import Reading


class ScriptedWorker:
    """Scores a reading by its SNR value (< 0.10 NORMAL, < 0.18 WARNING)."""

    async def evaluate_async(self, reading: Reading) -> Evaluation:
        p = reading.snr
        if p >= 0.18:
            severity = Severity.QUARANTINE
        elif p >= 0.10:
            severity = Severity.WARNING
        else:
            severity = Severity.NORMAL
        reasons = ("Low SNR",) if severity.is_alert else ()
        return Evaluation(reading.sensor_id, p, severity, reasons)


class SlowFirstWorker(ScriptedWorker):
    """The first evaluation finishes last."""

    def __init__(self) -> None:
        self.calls = 0

    async def evaluate_async(self, reading: Reading) -> Evaluation:
        self.calls += 1
        if self.calls == 1:
            await asyncio.sleep(0.05)
        return await super().evaluate_async(reading)


class RecordingNotifier(Notifier):
    """Collects alerts instead of sending them."""

    def __init__(self) -> None:
        super().__init__()
        self.alerts = []

    async def _check_permission(self) -> bool:
        return True

    async def _deliver(self, alert) -> bool:
        self.alerts.append(alert)
        return True


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def monitor(notifier) -> Monitor:
    return Monitor(ScriptedWorker(), event_log=EventLog(dedup_window=0), notifier=notifier, tick_seconds=0.01)


def write_dataset(tmp_path, rows: list[tuple[str, float, int]]):
    path = tmp_path / "SensorNetGuard_full.csv"
    lines = ["SensorID,SNR,Is_Malicious"] + [f"{s},{snr},{label}" for s, snr, label in rows]
    path.write_text("\n".join(lines) + "\n")
    return path


class TestIngest:
    """Test per-reading accounting and result application."""

    @pytest.mark.asyncio
    async def test_counters(self, monitor):
        """Rows, malicious labels and unique sensors are counted."""
        for sensor, label in [("a", 1), ("b", 0), ("a", 1), ("c", None)]:
            monitor.ingest(Reading(sensor_id=sensor, snr=0.01, is_malicious=label))
        await monitor.drain()

        stats = monitor.stats()
        assert stats.rows_processed == 4
        assert stats.malicious_rows == 2
        assert stats.total_unique_sensors == 3
        assert stats.in_flight == 0
        assert len(monitor.snapshot()) == 3

    @pytest.mark.asyncio
    async def test_looped_sensors_stay_unique(self, monitor):
        """N distinct sensors replayed repeatedly give N records."""
        for _ in range(4):
            for i in range(6):
                monitor.ingest(Reading(sensor_id=f"n{i}", snr=0.01))
        await monitor.drain()

        assert len(monitor.snapshot()) == 6
        assert monitor.total_unique_sensors == 6

    @pytest.mark.asyncio
    async def test_transition_notifies(self, monitor, notifier):
        """Entering WARNING logs a detection and sends one alert."""
        monitor.ingest(Reading(sensor_id="a", snr=0.15))
        await monitor.drain()
        monitor.ingest(Reading(sensor_id="a", snr=0.16))
        await monitor.drain()

        assert [a.title for a in notifier.alerts] == ["SensorGuard: WARNING"]
        assert monitor.events()[0].message == "Detected WARNING (p=0.150). Low SNR"

    @pytest.mark.asyncio
    async def test_recovery_does_not_notify(self, monitor, notifier):
        """Returning to NORMAL is logged but not alerted."""
        monitor.ingest(Reading(sensor_id="a", snr=0.30))
        await monitor.drain()
        monitor.ingest(Reading(sensor_id="a", snr=0.01))
        await monitor.drain()

        assert len(notifier.alerts) == 1
        assert monitor.events()[0].message == "Recovered to NORMAL."

    @pytest.mark.asyncio
    async def test_stale_result_dropped(self, notifier):
        """A slow, older evaluation cannot overwrite a newer one."""
        monitor = Monitor(SlowFirstWorker(), notifier=notifier)

        monitor.ingest(Reading(sensor_id="a", snr=0.30))
        monitor.ingest(Reading(sensor_id="a", snr=0.01))
        await monitor.drain()

        assert monitor.registry.get("a").severity is Severity.NORMAL
        assert monitor.stats().stale_dropped == 1
        assert notifier.alerts == []

    @pytest.mark.asyncio
    async def test_worker_failure_logged(self, monitor, mocker):
        """A raising worker does not break the monitor."""
        mocker.patch.object(monitor.worker, "evaluate_async", side_effect=RuntimeError("boom"))

        monitor.ingest(Reading(sensor_id="a"))
        await monitor.drain()

        assert monitor.rows_processed == 1
        assert len(monitor.snapshot()) == 0


class TestQuarantine:
    """Test the operator quarantine action."""

    @pytest.mark.asyncio
    async def test_quarantine_known_sensor(self, monitor, notifier):
        """Sets the flag, logs an ACTION and sends an alert."""
        monitor.ingest(Reading(sensor_id="a", snr=0.01))
        monitor.ingest(Reading(sensor_id="b", snr=0.30))
        await monitor.drain()

        state = monitor.quarantine("a")
        await monitor.drain()

        assert state.user_quarantined is True
        assert [s.sensor_id for s in monitor.snapshot()] == ["a", "b"]
        action = monitor.events()[0]
        assert action.kind is EventKind.ACTION
        assert action.message == USER_QUARANTINE_MESSAGE
        assert notifier.alerts[-1].title == "Quarantined"

    @pytest.mark.asyncio
    async def test_quarantine_unknown_sensor(self, monitor, notifier):
        """Unknown ids are ignored."""
        assert monitor.quarantine("ghost") is None
        assert monitor.events() == []
        assert notifier.alerts == []


class TestSession:
    """Test start / stop against a real streaming source."""

    @pytest.mark.asyncio
    async def test_start_streams_dataset(self, monitor, tmp_path):
        """Rows flow through to the registry."""
        path = write_dataset(tmp_path, [("a", 0.01, 0), ("b", 0.30, 1)])

        assert await monitor.start(path) is True
        await asyncio.sleep(0.05)
        monitor.stop()
        await monitor.drain()

        assert monitor.rows_processed >= 2
        assert {s.sensor_id for s in monitor.snapshot()} == {"a", "b"}
        assert monitor.snapshot()[0].sensor_id == "b"
        assert not monitor.is_running

    @pytest.mark.asyncio
    async def test_second_start_ignored(self, monitor, tmp_path):
        """Starting while running changes nothing."""
        path = write_dataset(tmp_path, [("a", 0.01, 0)])

        assert await monitor.start(path) is True
        assert await monitor.start(path) is False
        monitor.stop()
        monitor.stop()
        await monitor.drain()

    @pytest.mark.asyncio
    async def test_missing_dataset_does_not_start(self, monitor, tmp_path):
        """A load failure means the stream did not start."""
        assert await monitor.start(tmp_path / "missing.csv") is False
        assert not monitor.is_running

    @pytest.mark.asyncio
    async def test_no_dataset_configured(self, monitor):
        """Without a path there is nothing to stream."""
        assert await monitor.start() is False

    @pytest.mark.asyncio
    async def test_start_resets_session(self, monitor, tmp_path):
        """A new session starts from empty counters and state; events survive."""
        monitor.ingest(Reading(sensor_id="old", snr=0.30))
        await monitor.drain()
        assert len(monitor.events()) == 1
        path = write_dataset(tmp_path, [("a", 0.01, 0)])

        await monitor.start(path)
        await asyncio.sleep(0.02)
        monitor.stop()
        await monitor.drain()

        assert "old" not in monitor.registry
        assert any(e.sensor_id == "old" for e in monitor.events())
        assert monitor.total_unique_sensors == 1

    @pytest.mark.asyncio
    async def test_restart_keeps_duplicate_suppression(self, tmp_path):
        """An identical event right after a restart is still suppressed."""
        monitor = Monitor(ScriptedWorker(), tick_seconds=0.01)
        monitor.ingest(Reading(sensor_id="a", snr=0.30))
        await monitor.drain()
        first = monitor.events()
        path = write_dataset(tmp_path, [("a", 0.30, 1)])

        await monitor.start(path)
        await asyncio.sleep(0.02)
        monitor.stop()
        await monitor.drain()

        assert monitor.events() == first

    @pytest.mark.asyncio
    async def test_late_result_from_previous_session_dropped(self, tmp_path):
        """An evaluation still running at restart never reaches the new registry."""
        monitor = Monitor(SlowFirstWorker(), tick_seconds=0.01)
        monitor.ingest(Reading(sensor_id="late", snr=0.30))
        path = write_dataset(tmp_path, [("other", 0.01, 0)])

        assert await monitor.start(path) is True
        await asyncio.sleep(0.02)
        monitor.stop()
        await monitor.drain()

        assert [s.sensor_id for s in monitor.snapshot()] == ["other"]
        assert monitor.total_unique_sensors == len(monitor.snapshot())

    @pytest.mark.asyncio
    async def test_overlapping_starts(self, monitor, tmp_path):
        """Only one of two concurrent starts begins streaming."""
        path = write_dataset(tmp_path, [("a", 0.01, 0)])

        results = await asyncio.gather(monitor.start(path), monitor.start(path))
        monitor.stop()
        await monitor.drain()

        assert sorted(results) == [False, True]

    def test_invalid_tick(self):
        """Tick interval must be positive."""
        with pytest.raises(ValueError):
            Monitor(ScriptedWorker(), tick_seconds=0)


class ThreadRecordingStore:
    """Event store recording which thread each write ran on."""

    def __init__(self) -> None:
        self.writes = []

    def append(self, entry) -> bool:
        self.writes.append((entry, threading.current_thread()))
        return True


class TestPersistence:
    """Test event store writes."""

    @pytest.mark.asyncio
    async def test_store_writes_leave_the_loop(self):
        """Accepted events are persisted from a worker thread."""
        store = ThreadRecordingStore()
        monitor = Monitor(ScriptedWorker(), event_log=EventLog(store=store))

        monitor.ingest(Reading(sensor_id="a", snr=0.30))
        await monitor.drain()
        monitor.quarantine("a")
        await monitor.drain()

        assert [entry.kind for entry, _ in store.writes] == [EventKind.DETECTION, EventKind.ACTION]
        assert all(thread is not threading.main_thread() for _, thread in store.writes)
