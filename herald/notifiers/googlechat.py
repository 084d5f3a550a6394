"""Google Chat notifier."""

import json
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import field_validator

from herald.models import AlertEvent
from herald.models.alert import utc_now
from herald.templates import DEFAULT_MESSAGE_EMBED, DEFAULT_MESSAGE_TITLE_EMBED
from .base import Base, ReceiverSettings, SendWebhookSettings


class GoogleChatConfig(ReceiverSettings):
    url: str
    title: str = DEFAULT_MESSAGE_TITLE_EMBED
    message: str = DEFAULT_MESSAGE_EMBED

    @field_validator("url")
    @classmethod
    def _require_url(cls, v: str) -> str:
        if not v:
            raise ValueError("could not find url property in settings")
        return v


FULL_VALID_CONFIG_FOR_TESTING = json.dumps({
    "url": "http://localhost",
    "title": "Alerts firing: {{ alerts.firing | length }}",
    "message": '{% include "default.message" %}',
})


def build_payload(title: str, message: str, alerts_url: str, now: Optional[datetime] = None) -> Dict[str, Any]:
    now = now or utc_now()
    widgets: list[Dict[str, Any]] = []
    if message:
        widgets.append({"textParagraph": {"text": message}})
    if alerts_url:
        widgets.append({
            "buttons": [{
                "textButton": {
                    "text": "OPEN",
                    "onClick": {"openLink": {"url": alerts_url}},
                },
            }],
        })
    # Chat cards have no native timestamp
    widgets.append({"textParagraph": {"text": f"Herald | {now.strftime('%a %b %d %Y %H:%M:%S UTC')}"}})

    return {
        "previewText": title,
        "fallbackText": title,
        "cards": [{
            "header": {"title": title},
            "sections": [{"widgets": widgets}],
        }],
    }


class GoogleChatNotifier(Base):
    """Posts a card message to a Google Chat space webhook."""

    def __init__(self, config: GoogleChatConfig, meta, template, sender, logger=None):
        super().__init__(meta, template, sender, logger)
        self.settings = config

    async def notify(self, *alerts: AlertEvent) -> bool:
        self.log.info("Sending googlechat notification")

        tmpl = self.tmpl.bind(alerts, self.log)
        payload = build_payload(
            title=tmpl(self.settings.title),
            message=tmpl(self.settings.message),
            alerts_url=self.alerts_url(),
        )
        body = self.encode(payload)

        self.warn_on_template_error(tmpl)
        url = self.render_url(tmpl, self.settings.url)

        await self.send(SendWebhookSettings(url=url, body=body, content_type="application/json; charset=UTF-8"))
        return True
