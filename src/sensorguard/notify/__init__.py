"""Operator alert delivery (log or HTTP webhook)."""

from sensorguard.notify.notifier import (
    Alert,
    LogNotifier,
    Notifier,
    WebhookNotifier,
    state_crossing_alert,
    user_quarantine_alert,
)

__all__ = [
    "Alert",
    "LogNotifier",
    "Notifier",
    "WebhookNotifier",
    "state_crossing_alert",
    "user_quarantine_alert",
]
