"""WeCom group robot notifier."""

import json
from enum import Enum
from typing import Any, Dict

from pydantic import Field, field_validator

from herald.models import AlertEvent
from herald.templates import DEFAULT_MESSAGE_EMBED, DEFAULT_MESSAGE_TITLE_EMBED
from .base import Base, ReceiverSettings, SendWebhookSettings


class MsgType(str, Enum):
    MARKDOWN = "markdown"
    TEXT = "text"


class WeComConfig(ReceiverSettings):
    secure_fields = ("url",)

    url: str = ""
    msg_type: MsgType = Field(MsgType.MARKDOWN, alias="msgtype")
    title: str = DEFAULT_MESSAGE_TITLE_EMBED
    message: str = DEFAULT_MESSAGE_EMBED

    @field_validator("url")
    @classmethod
    def _require_url(cls, v: str) -> str:
        if not v:
            raise ValueError("could not find webhook URL in settings")
        return v

    @field_validator("msg_type", mode="before")
    @classmethod
    def _default_msg_type(cls, v: Any) -> Any:
        return v or MsgType.MARKDOWN


FULL_VALID_CONFIG_FOR_TESTING = json.dumps({
    "msgtype": "text",
    "message": "test-message",
    "title": "test-title",
})

FULL_VALID_SECRETS_FOR_TESTING = json.dumps({
    "url": "http://localhost/wecom",
})


def build_body(msg_type: MsgType, title: str, message: str) -> Dict[str, Any]:
    if msg_type == MsgType.TEXT:
        return {"msgtype": "text", "text": {"content": f"{title}\n{message}"}}
    return {"msgtype": "markdown", "markdown": {"content": f"# {title}\n{message}\n"}}


class WeComNotifier(Base):
    """Sends alert notifications to a WeCom group robot."""

    def __init__(self, config: WeComConfig, meta, template, sender, logger=None):
        super().__init__(meta, template, sender, logger)
        self.settings = config

    async def notify(self, *alerts: AlertEvent) -> bool:
        self.log.info("Sending wecom notification")

        tmpl = self.tmpl.bind(alerts, self.log)
        body = self.encode(build_body(
            self.settings.msg_type,
            title=tmpl(self.settings.title),
            message=tmpl(self.settings.message),
        ))

        self.warn_on_template_error(tmpl)
        url = self.render_url(tmpl, self.settings.url)

        await self.send(SendWebhookSettings(url=url, body=body))
        return True
