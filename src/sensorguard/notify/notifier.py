"""Operator alerts — fire-and-forget notifications.

Alerts go out when a sensor enters a non-normal state and when an
operator quarantines a sensor. Each carries the sensor id, the
probability (for state crossings) and up to two reasons.

Delivery never raises: a failed alert is logged and dropped.

Backends:
    - LogNotifier: writes alerts to the log
    - WebhookNotifier: POSTs alerts as JSON to an HTTP endpoint

Usage:
    notifier = WebhookNotifier("https://hooks.example.com/sensorguard")
    await notifier.request_permission()
    await notifier.notify_state_crossing("10.0.0.7", Severity.QUARANTINE, 0.31, reasons)
"""

import logging
import time
from dataclasses import dataclass
from typing import Sequence

import httpx

from sensorguard.engine.classifier import Severity

logger = logging.getLogger(__name__)

MAX_ALERT_REASONS = 2


@dataclass(frozen=True)
class Alert:
    """A rendered notification."""

    identifier: str
    title: str
    body: str
    sensor_id: str
    probability: float | None = None

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "identifier": self.identifier,
            "title": self.title,
            "body": self.body,
            "sensor_id": self.sensor_id,
            "probability": self.probability,
        }


def _reason_line(reasons: Sequence[str]) -> str:
    return " • ".join(list(reasons)[:MAX_ALERT_REASONS])


def state_crossing_alert(
    sensor_id: str,
    severity: Severity,
    probability: float,
    reasons: Sequence[str],
) -> Alert:
    """Render the alert for a sensor entering ``severity``."""
    return Alert(
        identifier=f"sg-{sensor_id}-{severity.value}-{int(time.time())}",
        title=f"SensorGuard: {severity.value}",
        body=f"{sensor_id} (p={probability:.3f})\n{_reason_line(reasons)}",
        sensor_id=sensor_id,
        probability=probability,
    )


def user_quarantine_alert(sensor_id: str, reasons: Sequence[str]) -> Alert:
    """Render the alert for an operator quarantine action."""
    return Alert(
        identifier=f"sg-action-{sensor_id}-{int(time.time())}",
        title="Quarantined",
        body=f"{sensor_id}\n{_reason_line(reasons)}",
        sensor_id=sensor_id,
    )


class Notifier:
    """Base notifier: permission caching and alert rendering.

    Subclasses implement ``_check_permission`` and ``_deliver``.
    """

    def __init__(self) -> None:
        self._permission: bool | None = None

    async def request_permission(self) -> bool:
        """One-time readiness check. Later calls return the cached answer."""
        if self._permission is None:
            try:
                self._permission = await self._check_permission()
            except Exception as e:
                logger.warning("Notification permission check failed: %s", e)
                self._permission = False
            logger.info("Notification permission: %s", "granted" if self._permission else "denied")
        return self._permission

    async def notify_state_crossing(
        self,
        sensor_id: str,
        severity: Severity,
        probability: float,
        reasons: Sequence[str] = (),
    ) -> bool:
        """Alert that a sensor entered a non-normal state."""
        return await self._send(state_crossing_alert(sensor_id, severity, probability, reasons))

    async def notify_user_quarantine(self, sensor_id: str, reasons: Sequence[str] = ()) -> bool:
        """Alert that an operator quarantined a sensor."""
        return await self._send(user_quarantine_alert(sensor_id, reasons))

    async def _send(self, alert: Alert) -> bool:
        if not await self.request_permission():
            logger.debug("Alert %s skipped (no permission)", alert.identifier)
            return False
        try:
            return await self._deliver(alert)
        except Exception as e:
            logger.warning("Alert delivery failed for %s: %s", alert.sensor_id, e)
            return False

    async def _check_permission(self) -> bool:
        raise NotImplementedError

    async def _deliver(self, alert: Alert) -> bool:
        raise NotImplementedError


class LogNotifier(Notifier):
    """Writes alerts to the application log."""

    async def _check_permission(self) -> bool:
        return True

    async def _deliver(self, alert: Alert) -> bool:
        logger.warning("%s | %s", alert.title, alert.body.replace("\n", " | "))
        return True


class WebhookNotifier(Notifier):
    """POSTs alerts as JSON to a webhook.

    Args:
        url: Webhook endpoint
        timeout: HTTP timeout in seconds
        headers: Extra request headers (e.g. an auth token)
    """

    def __init__(
        self,
        url: str,
        timeout: float = 5.0,
        headers: dict[str, str] | None = None,
    ) -> None:
        super().__init__()
        self.url = url
        self.timeout = timeout
        self.headers = headers or {}

    async def _check_permission(self) -> bool:
        return bool(self.url)

    async def _deliver(self, alert: Alert) -> bool:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(
                self.url,
                headers={"Content-Type": "application/json", **self.headers},
                json=alert.to_dict(),
            )

        if response.status_code >= 300:
            logger.warning(
                "Webhook alert error: %d %s",
                response.status_code,
                response.text[:200],
            )
            return False
        return True
