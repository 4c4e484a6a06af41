"""Streaming source — replays a bounded dataset as a live feed.

Emits exactly one Reading per tick, in dataset row order, wrapping back to
the first row after the last. The first tick fires immediately; later
ticks follow a fixed deadline schedule so callback time does not
accumulate as drift.

The tick loop runs as an asyncio task on the caller's event loop, so the
callback executes on that loop (the single-threaded update context).

Usage:
    source = StreamingSource()
    source.load("resources/SensorNetGuard_full.csv")
    source.start(0.6, on_reading)
    ...
    source.stop()
"""

import asyncio
import logging
from pathlib import Path
from typing import Callable, Iterable

from sensorguard.stream.loader import LoadReport, load_dataset
from sensorguard.stream.reading import Reading

logger = logging.getLogger(__name__)

TickCallback = Callable[[Reading], None]


class StreamingSource:
    """Fixed-cadence, wrap-around replay of a dataset."""

    def __init__(self) -> None:
        self._rows: list[Reading] = []
        self._index = 0
        self._task: asyncio.Task | None = None

    @property
    def is_running(self) -> bool:
        """True while the tick loop is scheduled."""
        return self._task is not None and not self._task.done()

    @property
    def total_rows(self) -> int:
        """Number of rows available for replay."""
        return len(self._rows)

    def load(self, path: str | Path) -> LoadReport:
        """Load a CSV dataset and rewind to the first row.

        Raises:
            DatasetLoadError: If the dataset cannot be loaded at all
        """
        report = load_dataset(path)
        self.load_readings(report.readings)
        logger.info("Dataset ready | total_rows=%d", len(self._rows))
        return report

    def load_readings(self, readings: Iterable[Reading]) -> None:
        """Replace the replay buffer with pre-parsed readings and rewind."""
        self._rows = list(readings)
        self._index = 0

    def _next(self) -> Reading:
        if self._index >= len(self._rows):
            self._index = 0
        reading = self._rows[self._index]
        self._index += 1
        return reading

    def start(self, interval: float, callback: TickCallback) -> bool:
        """Start emitting readings every ``interval`` seconds.

        Must be called from a running event loop.

        Args:
            interval: Seconds between ticks (> 0)
            callback: Invoked on the event loop with each Reading

        Returns:
            True if streaming started; False if already running or the
            dataset is empty.

        Raises:
            ValueError: If interval is not positive
        """
        if interval <= 0:
            raise ValueError(f"interval ({interval}) must be > 0")
        if self.is_running:
            logger.warning("Streaming source already running — start ignored")
            return False
        if not self._rows:
            logger.warning("Streaming source has no rows — start ignored")
            return False

        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._run(interval, callback))
        logger.info("Streaming started (every %.3fs)", interval)
        return True

    def stop(self) -> None:
        """Cancel future ticks. Safe to call repeatedly."""
        if self._task is None:
            return
        self._task.cancel()
        self._task = None
        logger.info("Streaming stopped")

    async def _run(self, interval: float, callback: TickCallback) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time()
        while True:
            reading = self._next()
            try:
                callback(reading)
            except Exception:
                logger.exception("Tick callback failed for sensor %s", reading.sensor_id)

            deadline += interval
            delay = deadline - loop.time()
            if delay < 0:
                # Fell behind: resume the cadence from now instead of bursting
                deadline = loop.time()
                delay = 0.0
            await asyncio.sleep(delay)
