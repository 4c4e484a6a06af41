"""Tests for the streaming source."""

import asyncio

import pytest

from sensorguard.stream.reading import Reading
from sensorguard.stream.source import StreamingSource


def make_source(*sensor_ids: str) -> StreamingSource:
    source = StreamingSource()
    source.load_readings(Reading(sensor_id=s) for s in sensor_ids)
    return source


async def wait_for_count(received: list, n: int, timeout: float = 2.0) -> None:
    async def _poll():
        while len(received) < n:
            await asyncio.sleep(0.001)
    await asyncio.wait_for(_poll(), timeout)


class TestStart:
    """Test starting and ticking."""

    @pytest.mark.asyncio
    async def test_first_tick_is_immediate(self):
        """The first reading is emitted without waiting an interval."""
        source = make_source("a", "b")
        received = []

        assert source.start(60.0, received.append) is True
        await asyncio.sleep(0.05)
        source.stop()

        assert [r.sensor_id for r in received] == ["a"]

    @pytest.mark.asyncio
    async def test_row_order_and_wrap_around(self):
        """Rows are emitted in order, cycling after the last."""
        source = make_source("a", "b", "c")
        received = []

        source.start(0.005, received.append)
        await wait_for_count(received, 7)
        source.stop()

        assert [r.sensor_id for r in received[:7]] == ["a", "b", "c", "a", "b", "c", "a"]

    @pytest.mark.asyncio
    async def test_second_start_rejected(self):
        """Starting while running is refused."""
        source = make_source("a")

        assert source.start(0.01, lambda r: None) is True
        assert source.start(0.01, lambda r: None) is False
        source.stop()

    @pytest.mark.asyncio
    async def test_empty_dataset_is_noop(self):
        """Nothing to replay, nothing started."""
        source = StreamingSource()

        assert source.start(0.01, lambda r: None) is False
        assert not source.is_running

    @pytest.mark.asyncio
    async def test_invalid_interval(self):
        """Non-positive intervals are rejected."""
        with pytest.raises(ValueError):
            make_source("a").start(0.0, lambda r: None)

    @pytest.mark.asyncio
    async def test_callback_errors_do_not_stop_stream(self):
        """A failing callback is logged; ticks continue."""
        source = make_source("a", "b")
        received = []

        def callback(reading):
            received.append(reading)
            raise RuntimeError("boom")

        source.start(0.005, callback)
        await wait_for_count(received, 3)
        source.stop()

        assert len(received) >= 3


class TestStop:
    """Test stopping."""

    @pytest.mark.asyncio
    async def test_stop_cancels_future_ticks(self):
        """No readings arrive after stop."""
        source = make_source("a", "b")
        received = []

        source.start(0.01, received.append)
        await wait_for_count(received, 2)
        source.stop()
        count = len(received)
        await asyncio.sleep(0.05)

        assert len(received) == count
        assert not source.is_running

    @pytest.mark.asyncio
    async def test_stop_is_idempotent(self):
        """Stopping twice, or before starting, is harmless."""
        source = make_source("a")
        source.stop()
        source.start(0.01, lambda r: None)
        source.stop()
        source.stop()

        assert not source.is_running

    @pytest.mark.asyncio
    async def test_restart_after_stop(self):
        """The stream can be started again after stopping."""
        source = make_source("a", "b")
        received = []

        source.start(60.0, received.append)
        await asyncio.sleep(0.01)
        source.stop()
        assert source.start(60.0, received.append) is True
        await asyncio.sleep(0.01)
        source.stop()

        assert [r.sensor_id for r in received] == ["a", "b"]


class TestLoad:
    """Test loading from disk."""

    def test_load_rewinds(self, tmp_path):
        """Loading replaces rows and reports totals."""
        path = tmp_path / "data.csv"
        path.write_text("SensorID,SNR\nn1,1\nn2,2\n")
        source = StreamingSource()

        report = source.load(path)

        assert report.total_rows == 2
        assert source.total_rows == 2
