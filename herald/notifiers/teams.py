"""Microsoft Teams notifier (Office 365 connector MessageCard)."""

import json
from typing import Any, Dict

from pydantic import Field, field_validator

from herald.models import AlertEvent
from herald.templates import DEFAULT_MESSAGE_EMBED, DEFAULT_MESSAGE_TITLE_EMBED
from .base import Base, ReceiverSettings, SendWebhookSettings, status_color


class TeamsConfig(ReceiverSettings):
    url: str
    title: str = DEFAULT_MESSAGE_TITLE_EMBED
    section_title: str = Field("", alias="sectiontitle")
    message: str = DEFAULT_MESSAGE_EMBED

    @field_validator("url")
    @classmethod
    def _require_url(cls, v: str) -> str:
        if not v:
            raise ValueError("could not find url property in settings")
        return v


FULL_VALID_CONFIG_FOR_TESTING = json.dumps({
    "url": "http://localhost",
    "message": '{% include "default.message" %}',
    "title": "test-title",
    "sectiontitle": "test-second-title",
})


def build_card(title: str, section_title: str, message: str, status: str, alerts_url: str) -> Dict[str, Any]:
    return {
        "@type": "MessageCard",
        "@context": "http://schema.org/extensions",
        "summary": title,
        "title": title,
        "themeColor": status_color(status).lstrip("#"),
        "sections": [{"title": section_title, "text": message}],
        "potentialAction": [{
            "@context": "http://schema.org",
            "@type": "OpenUri",
            "name": "View URL",
            "targets": [{"os": "default", "uri": alerts_url}],
        }],
    }


class TeamsNotifier(Base):
    """Posts a MessageCard to a Teams incoming webhook."""

    def __init__(self, config: TeamsConfig, meta, template, sender, logger=None):
        super().__init__(meta, template, sender, logger)
        self.settings = config

    async def notify(self, *alerts: AlertEvent) -> bool:
        self.log.info("Sending teams notification")

        tmpl = self.tmpl.bind(alerts, self.log)
        card = build_card(
            title=tmpl(self.settings.title),
            section_title=tmpl(self.settings.section_title),
            message=tmpl(self.settings.message),
            status=tmpl.data.status,
            alerts_url=self.alerts_url(),
        )
        body = self.encode(card)

        self.warn_on_template_error(tmpl)
        url = self.render_url(tmpl, self.settings.url)

        await self.send(SendWebhookSettings(url=url, body=body))
        return True
