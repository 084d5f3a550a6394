"""LINE Notify notifier."""

import json
from urllib.parse import urlencode

from pydantic import field_validator

from herald.models import AlertEvent
from herald.templates import DEFAULT_MESSAGE_EMBED, DEFAULT_MESSAGE_TITLE_EMBED
from .base import Base, ReceiverSettings, SendWebhookSettings

LINE_NOTIFY_URL = "https://notify-api.line.me/api/notify"


class LineConfig(ReceiverSettings):
    secure_fields = ("token",)

    token: str
    title: str = DEFAULT_MESSAGE_TITLE_EMBED
    description: str = DEFAULT_MESSAGE_EMBED

    @field_validator("token")
    @classmethod
    def _require_token(cls, v: str) -> str:
        if not v:
            raise ValueError("could not find token in settings")
        return v


FULL_VALID_CONFIG_FOR_TESTING = json.dumps({
    "title": "test-title",
    "description": "test-description",
})

FULL_VALID_SECRETS_FOR_TESTING = json.dumps({
    "token": "test-token",
})


def build_message(title: str, description: str, alerts_url: str) -> str:
    return f"{title}\n{alerts_url}\n\n{description}"


class LineNotifier(Base):
    """Sends a LINE Notify message with a bearer token."""

    def __init__(self, config: LineConfig, meta, template, sender, logger=None):
        super().__init__(meta, template, sender, logger)
        self.settings = config

    async def notify(self, *alerts: AlertEvent) -> bool:
        self.log.info("Sending line notification")

        tmpl = self.tmpl.bind(alerts, self.log)
        message = build_message(
            title=tmpl(self.settings.title),
            description=tmpl(self.settings.description),
            alerts_url=self.alerts_url(),
        )
        self.warn_on_template_error(tmpl)

        cmd = SendWebhookSettings(
            url=LINE_NOTIFY_URL,
            body=urlencode({"message": message}),
            content_type="application/x-www-form-urlencoded;charset=UTF-8",
            http_header={"Authorization": f"Bearer {self.settings.token}"},
        )
        await self.send(cmd)
        return True
