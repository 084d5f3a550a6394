"""Slack notifier (incoming webhook or chat.postMessage with a bot token)."""

import json
from typing import Any, Dict, List, Optional

from pydantic import Field, model_validator

from herald.models import AlertEvent
from herald.models.alert import utc_now
from herald.templates import DEFAULT_MESSAGE_EMBED, DEFAULT_MESSAGE_TITLE_EMBED
from .base import FOOTER_ICON_URL, FOOTER_TEXT, Base, ReceiverSettings, SendWebhookSettings, status_color

API_URL = "https://slack.com/api/chat.postMessage"
MENTION_CHANNELS = ("", "here", "channel")


def _split(value: str) -> List[str]:
    return [v.strip() for v in value.split(",") if v.strip()]


class SlackConfig(ReceiverSettings):
    secure_fields = ("url", "token")

    url: str = ""
    token: str = ""
    recipient: str = ""
    username: str = ""
    icon_emoji: str = Field("", alias="icon_emoji")
    icon_url: str = Field("", alias="icon_url")
    mention_channel: str = Field("", alias="mentionChannel")
    mention_users: str = Field("", alias="mentionUsers")
    mention_groups: str = Field("", alias="mentionGroups")
    title: str = DEFAULT_MESSAGE_TITLE_EMBED
    text: str = DEFAULT_MESSAGE_EMBED

    @model_validator(mode="after")
    def _check_delivery(self) -> "SlackConfig":
        if not self.url and not self.token:
            raise ValueError("either url or token must be specified")
        if not self.url and not self.recipient:
            raise ValueError("recipient must be specified when using the Slack chat API")
        if self.mention_channel not in MENTION_CHANNELS:
            raise ValueError(f"invalid value for mentionChannel: {self.mention_channel!r}")
        return self


FULL_VALID_CONFIG_FOR_TESTING = json.dumps({
    "recipient": "#test",
    "username": "test-username",
    "icon_emoji": ":ghost:",
    "icon_url": "http://localhost/icon.png",
    "mentionChannel": "here",
    "mentionUsers": "user-1,user-2",
    "mentionGroups": "group-1",
    "title": "test-title",
    "text": "test-text",
})

FULL_VALID_SECRETS_FOR_TESTING = json.dumps({
    "url": "http://localhost/hook",
    "token": "test-token",
})


def build_mentions(channel: str, users: str, groups: str) -> str:
    parts: List[str] = []
    if channel:
        parts.append(f"<!{channel}|{channel}>")
    parts.extend(f"<@{u}>" for u in _split(users))
    parts.extend(f"<!subteam^{g}>" for g in _split(groups))
    return " ".join(parts)


def build_message(
    title: str,
    text: str,
    status: str,
    alerts_url: str,
    recipient: str = "",
    username: str = "",
    icon_emoji: str = "",
    icon_url: str = "",
    mentions: str = "",
    ts: Optional[int] = None,
) -> Dict[str, Any]:
    attachment = {
        "color": status_color(status),
        "title": title,
        "title_link": alerts_url,
        "text": text,
        "fallback": title,
        "footer": FOOTER_TEXT,
        "footer_icon": FOOTER_ICON_URL,
        "ts": ts if ts is not None else int(utc_now().timestamp()),
        "mrkdwn_in": ["pretext"],
    }
    message: Dict[str, Any] = {"attachments": [attachment]}
    optional = {
        "channel": recipient,
        "username": username,
        "icon_emoji": icon_emoji,
        "icon_url": icon_url,
        "text": mentions,
    }
    message.update({k: v for k, v in optional.items() if v})
    return message


class SlackNotifier(Base):
    """Sends an attachment message to Slack."""

    def __init__(self, config: SlackConfig, meta, template, sender, logger=None):
        super().__init__(meta, template, sender, logger)
        self.settings = config

    async def notify(self, *alerts: AlertEvent) -> bool:
        self.log.info("Sending slack notification")

        tmpl = self.tmpl.bind(alerts, self.log)
        message = build_message(
            title=tmpl(self.settings.title),
            text=tmpl(self.settings.text),
            status=tmpl.data.status,
            alerts_url=self.alerts_url(),
            recipient=tmpl(self.settings.recipient),
            username=tmpl(self.settings.username),
            icon_emoji=tmpl(self.settings.icon_emoji),
            icon_url=tmpl(self.settings.icon_url),
            mentions=build_mentions(
                self.settings.mention_channel,
                self.settings.mention_users,
                self.settings.mention_groups,
            ),
        )
        body = self.encode(message)
        self.warn_on_template_error(tmpl)

        headers: Dict[str, str] = {}
        if self.settings.url:
            url = self.render_url(tmpl, self.settings.url)
        else:
            url = API_URL
            headers["Authorization"] = f"Bearer {self.settings.token}"

        await self.send(SendWebhookSettings(
            url=url,
            body=body,
            content_type="application/json; charset=utf-8",
            http_header=headers,
        ))
        return True
