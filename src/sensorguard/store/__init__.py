"""Persisted event history (SQLite)."""

from sensorguard.store.event_store import EventStore

__all__ = ["EventStore"]
