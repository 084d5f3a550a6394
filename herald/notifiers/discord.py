"""Discord webhook notifier."""

import json
from typing import Any, Dict

from pydantic import Field, field_validator

from herald.models import AlertEvent
from herald.templates import DEFAULT_MESSAGE_EMBED, DEFAULT_MESSAGE_TITLE_EMBED
from herald.utils import truncate
from .base import FOOTER_ICON_URL, FOOTER_TEXT, Base, ReceiverSettings, SendWebhookSettings, status_color

# Discord limits
MAX_CONTENT_LEN = 2000
MAX_TITLE_LEN = 256


class DiscordConfig(ReceiverSettings):
    url: str
    title: str = DEFAULT_MESSAGE_TITLE_EMBED
    message: str = DEFAULT_MESSAGE_EMBED
    avatar_url: str = ""
    use_discord_username: bool = False

    @field_validator("url")
    @classmethod
    def _require_url(cls, v: str) -> str:
        if not v:
            raise ValueError("could not find webhook url property in settings")
        return v


FULL_VALID_CONFIG_FOR_TESTING = json.dumps({
    "avatar_url": "http://localhost/avatar.png",
    "use_discord_username": False,
    "url": "http://localhost",
    "title": "test-title",
    "message": "test-message",
})


def build_payload(
    title: str,
    message: str,
    status: str,
    alerts_url: str,
    avatar_url: str = "",
    use_discord_username: bool = False,
) -> Dict[str, Any]:
    embed = {
        "title": truncate(title, MAX_TITLE_LEN),
        "url": alerts_url,
        "color": int(status_color(status).lstrip("#"), 16),
        "footer": {"text": FOOTER_TEXT, "icon_url": FOOTER_ICON_URL},
        "type": "rich",
    }
    payload: Dict[str, Any] = {
        "content": truncate(message, MAX_CONTENT_LEN),
        "embeds": [embed],
    }
    if not use_discord_username:
        payload["username"] = FOOTER_TEXT
    if avatar_url:
        payload["avatar_url"] = avatar_url
    return payload


class DiscordNotifier(Base):
    """Posts an embed to a Discord channel webhook."""

    def __init__(self, config: DiscordConfig, meta, template, sender, logger=None):
        super().__init__(meta, template, sender, logger)
        self.settings = config

    async def notify(self, *alerts: AlertEvent) -> bool:
        self.log.info("Sending discord notification")

        tmpl = self.tmpl.bind(alerts, self.log)
        payload = build_payload(
            title=tmpl(self.settings.title),
            message=tmpl(self.settings.message),
            status=tmpl.data.status,
            alerts_url=self.alerts_url(),
            avatar_url=tmpl(self.settings.avatar_url),
            use_discord_username=self.settings.use_discord_username,
        )
        body = self.encode(payload)

        self.warn_on_template_error(tmpl)
        url = self.render_url(tmpl, self.settings.url)

        await self.send(SendWebhookSettings(url=url, body=body))
        return True
