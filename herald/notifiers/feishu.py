"""Feishu notifier."""

import json
from typing import Any, Dict

from pydantic import field_validator

from herald.models import AlertEvent
from herald.templates import DEFAULT_MESSAGE_EMBED, DEFAULT_MESSAGE_TITLE_EMBED
from .base import Base, ReceiverSettings, SendWebhookSettings


class FeishuConfig(ReceiverSettings):
    url: str
    title: str = DEFAULT_MESSAGE_TITLE_EMBED
    message: str = DEFAULT_MESSAGE_EMBED
    link_text: str = "View alerts"

    @field_validator("url")
    @classmethod
    def _require_url(cls, v: str) -> str:
        if not v:
            raise ValueError("could not find url property in settings")
        return v


FULL_VALID_CONFIG_FOR_TESTING = json.dumps({
    "url": "http://localhost",
    "title": "{{ common_labels.alertname }} is {{ status }}",
    "message": '{% include "default.message" %}',
    "link_text": "Open",
})


def build_card(title: str, message: str, status: str, link: str, link_text: str) -> Dict[str, Any]:
    # Map status to header color
    color = "red" if status == "firing" else "green"

    elements = [
        {
            "tag": "div",
            "text": {
                "tag": "lark_md",
                "content": message
            }
        }
    ]

    # Add Action Button
    if link:
        elements.append({
            "tag": "action",
            "actions": [{
                "tag": "button",
                "text": {"tag": "plain_text", "content": link_text},
                "url": link,
                "type": "primary"
            }]
        })

    return {
        "msg_type": "interactive",
        "card": {
            "config": {
                "wide_screen_mode": True
            },
            "header": {
                "title": {"tag": "plain_text", "content": title},
                "template": color
            },
            "elements": elements
        }
    }


class FeishuNotifier(Base):
    """Sends notifications to Feishu/Lark via Webhook."""

    def __init__(self, config: FeishuConfig, meta, template, sender, logger=None):
        super().__init__(meta, template, sender, logger)
        self.settings = config

    async def notify(self, *alerts: AlertEvent) -> bool:
        self.log.info("Sending feishu notification")

        tmpl = self.tmpl.bind(alerts, self.log)
        card = build_card(
            title=tmpl(self.settings.title),
            message=tmpl(self.settings.message),
            status=tmpl.data.status,
            link=self.alerts_url(),
            link_text=tmpl(self.settings.link_text),
        )
        body = self.encode(card)

        self.warn_on_template_error(tmpl)
        url = self.render_url(tmpl, self.settings.url)

        await self.send(SendWebhookSettings(url=url, body=body))
        return True
