"""Shared test fixtures."""

from datetime import datetime, timedelta, timezone

import pytest
from loguru import logger

from herald.models import AlertEvent
from herald.notifiers import SendWebhookSettings
from herald.templates import TemplateEngine


class FakeWebhookSender:
    """Records every delivery; raises ``error`` instead when set."""

    def __init__(self, error: Exception | None = None):
        self.error = error
        self.calls: list[SendWebhookSettings] = []

    async def send_webhook(self, cmd: SendWebhookSettings) -> None:
        self.calls.append(cmd)
        if self.error is not None:
            raise self.error


@pytest.fixture
def alerts():
    return [
        AlertEvent(
            labels={"alertname": "alert1", "lbl1": "val1"},
            annotations={"ann1": "annv1"},
            generator_url="http://localhost/rule/1",
        ),
        AlertEvent(
            labels={"alertname": "alert1", "lbl1": "val2"},
            annotations={"ann1": "annv2"},
            generator_url="http://localhost/rule/1",
        ),
    ]


@pytest.fixture
def resolved_alert():
    now = datetime.now(tz=timezone.utc)
    return AlertEvent(
        labels={"alertname": "alert1", "lbl1": "val1"},
        starts_at=now - timedelta(hours=1),
        ends_at=now - timedelta(minutes=1),
    )


@pytest.fixture
def template():
    return TemplateEngine(external_url="http://localhost")


@pytest.fixture
def sender():
    return FakeWebhookSender()


@pytest.fixture
def failing_sender():
    return FakeWebhookSender(error=RuntimeError("connection refused"))


@pytest.fixture
def warnings():
    """Messages logged at WARNING or above while the test runs."""
    messages: list[str] = []
    handler_id = logger.add(lambda m: messages.append(m.record["message"]), level="WARNING")
    yield messages
    logger.remove(handler_id)
