"""Stateful views over the evaluation stream.

Components:
- SensorRegistry: one ordered record per sensor, transition-triggered logging
- EventLog: newest-first, time-window deduplicated event log
"""

from sensorguard.registry.event_log import EventEntry, EventKind, EventLog
from sensorguard.registry.sensors import SensorRegistry, SensorState, detection_message

__all__ = [
    "EventEntry",
    "EventKind",
    "EventLog",
    "SensorRegistry",
    "SensorState",
    "detection_message",
]
