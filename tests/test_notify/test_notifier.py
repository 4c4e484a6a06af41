"""Tests for alert notifiers — log and webhook backends."""

import json

import httpx
import pytest

from sensorguard.engine.classifier import Severity
from sensorguard.notify.notifier import (
    LogNotifier,
    Notifier,
    WebhookNotifier,
    state_crossing_alert,
    user_quarantine_alert,
)

WEBHOOK_URL = "https://hooks.example.com/sensorguard"


class TestAlertRendering:
    """Test alert titles and bodies."""

    def test_state_crossing_body(self):
        """Body carries sensor, probability and at most two reasons."""
        alert = state_crossing_alert(
            "10.0.0.7", Severity.QUARANTINE, 0.3123, ["Low SNR", "High CPU", "High memory"],
        )

        assert alert.title == "SensorGuard: QUARANTINE"
        assert alert.body == "10.0.0.7 (p=0.312)\nLow SNR • High CPU"
        assert alert.probability == 0.3123

    def test_user_quarantine_body(self):
        """Quarantine alerts name the sensor and its reasons."""
        alert = user_quarantine_alert("n1", ["Low SNR"])

        assert alert.title == "Quarantined"
        assert alert.body == "n1\nLow SNR"
        assert alert.identifier.startswith("sg-action-n1-")


class TestPermission:
    """Test the one-time permission check."""

    @pytest.mark.asyncio
    async def test_permission_cached(self, mocker):
        """The check runs once; later calls reuse the answer."""
        notifier = LogNotifier()
        spy = mocker.spy(notifier, "_check_permission")

        assert await notifier.request_permission() is True
        assert await notifier.request_permission() is True
        assert spy.call_count == 1

    @pytest.mark.asyncio
    async def test_denied_permission_skips_delivery(self, mocker):
        """Without permission nothing is delivered."""
        notifier = WebhookNotifier("")
        deliver = mocker.patch.object(notifier, "_deliver")

        assert await notifier.notify_user_quarantine("n1") is False
        deliver.assert_not_called()

    @pytest.mark.asyncio
    async def test_failing_check_denies(self):
        """A raising permission check counts as denied."""

        class BrokenNotifier(Notifier):
            async def _check_permission(self):
                raise RuntimeError("no notification center")

        assert await BrokenNotifier().request_permission() is False


class TestLogNotifier:
    """Test the log backend."""

    @pytest.mark.asyncio
    async def test_logs_alert(self, caplog):
        """Alerts are written to the log."""
        with caplog.at_level("WARNING", logger="sensorguard.notify.notifier"):
            sent = await LogNotifier().notify_state_crossing("n1", Severity.WARNING, 0.12, ["Low SNR"])

        assert sent is True
        assert "SensorGuard: WARNING" in caplog.text
        assert "Low SNR" in caplog.text


class TestWebhookNotifier:
    """Test the webhook backend."""

    @pytest.mark.asyncio
    async def test_posts_json(self, respx_mock):
        """Alerts are POSTed as JSON."""
        route = respx_mock.post(WEBHOOK_URL).mock(return_value=httpx.Response(204))

        sent = await WebhookNotifier(WEBHOOK_URL).notify_state_crossing(
            "n1", Severity.QUARANTINE, 0.4, ["Low SNR"],
        )

        assert sent is True
        body = json.loads(route.calls[0].request.content)
        assert body["title"] == "SensorGuard: QUARANTINE"
        assert body["sensor_id"] == "n1"
        assert body["probability"] == 0.4

    @pytest.mark.asyncio
    async def test_extra_headers(self, respx_mock):
        """Configured headers are sent."""
        route = respx_mock.post(WEBHOOK_URL).mock(return_value=httpx.Response(200))

        await WebhookNotifier(WEBHOOK_URL, headers={"Authorization": "Bearer t"}).notify_user_quarantine("n1")

        assert route.calls[0].request.headers["Authorization"] == "Bearer t"

    @pytest.mark.asyncio
    async def test_http_error_returns_false(self, respx_mock):
        """Non-2xx responses are logged, not raised."""
        respx_mock.post(WEBHOOK_URL).mock(return_value=httpx.Response(500, text="oops"))

        assert await WebhookNotifier(WEBHOOK_URL).notify_user_quarantine("n1") is False

    @pytest.mark.asyncio
    async def test_network_error_returns_false(self, respx_mock):
        """Transport failures are swallowed."""
        respx_mock.post(WEBHOOK_URL).mock(side_effect=httpx.ConnectError("refused"))

        assert await WebhookNotifier(WEBHOOK_URL).notify_user_quarantine("n1") is False
