"""Telegram bot notifier."""

import json
from typing import Any, Dict, Optional

from pydantic import Field, field_validator

from herald.models import AlertEvent
from herald.templates import DEFAULT_MESSAGE_EMBED
from herald.utils import truncate
from .base import Base, ReceiverSettings, SendWebhookSettings

API_URL = "https://api.telegram.org/bot{token}/sendMessage"
MAX_MESSAGE_LEN = 4096
PARSE_MODES = ("HTML", "Markdown", "MarkdownV2", "None")


class TelegramConfig(ReceiverSettings):
    secure_fields = ("bottoken",)

    bot_token: str = Field(..., alias="bottoken")
    chat_id: str = Field(..., alias="chatid")
    message_thread_id: str = Field("", alias="message_thread_id")
    message: str = DEFAULT_MESSAGE_EMBED
    parse_mode: str = Field("HTML", alias="parse_mode")
    disable_web_page_preview: bool = False
    protect_content: bool = False
    disable_notifications: bool = False

    @field_validator("bot_token")
    @classmethod
    def _require_token(cls, v: str) -> str:
        if not v:
            raise ValueError("could not find Bot Token in settings")
        return v

    @field_validator("chat_id", mode="before")
    @classmethod
    def _require_chat(cls, v: Any) -> str:
        if v is None or str(v) == "":
            raise ValueError("could not find Chat Id in settings")
        return str(v)

    @field_validator("message_thread_id", mode="before")
    @classmethod
    def _thread_id_str(cls, v: Any) -> str:
        return "" if v is None else str(v)

    @field_validator("parse_mode")
    @classmethod
    def _check_parse_mode(cls, v: str) -> str:
        if not v:
            return "HTML"
        for mode in PARSE_MODES:
            if mode.lower() == v.lower():
                return mode
        raise ValueError(f"unknown parse_mode, must be one of {', '.join(PARSE_MODES)}")


FULL_VALID_CONFIG_FOR_TESTING = json.dumps({
    "chatid": "-1234567890",
    "message": "test-message",
    "parse_mode": "html",
    "disable_notifications": True,
})

FULL_VALID_SECRETS_FOR_TESTING = json.dumps({
    "bottoken": "test-token",
})


def build_message(
    chat_id: str,
    text: str,
    parse_mode: str,
    message_thread_id: str = "",
    disable_web_page_preview: bool = False,
    protect_content: bool = False,
    disable_notification: bool = False,
) -> Dict[str, Any]:
    msg: Dict[str, Any] = {
        "chat_id": chat_id,
        "text": truncate(text, MAX_MESSAGE_LEN),
    }
    if parse_mode != "None":
        msg["parse_mode"] = parse_mode
    if message_thread_id:
        msg["message_thread_id"] = message_thread_id
    if disable_web_page_preview:
        msg["disable_web_page_preview"] = True
    if protect_content:
        msg["protect_content"] = True
    if disable_notification:
        msg["disable_notification"] = True
    return msg


class TelegramNotifier(Base):
    """Sends a message through the Telegram Bot API."""

    def __init__(self, config: TelegramConfig, meta, template, sender, logger=None):
        super().__init__(meta, template, sender, logger)
        self.settings = config

    async def notify(self, *alerts: AlertEvent) -> bool:
        self.log.info("Sending telegram notification")

        tmpl = self.tmpl.bind(alerts, self.log)
        message = build_message(
            chat_id=tmpl(self.settings.chat_id),
            text=tmpl(self.settings.message),
            parse_mode=self.settings.parse_mode,
            message_thread_id=self.settings.message_thread_id,
            disable_web_page_preview=self.settings.disable_web_page_preview,
            protect_content=self.settings.protect_content,
            disable_notification=self.settings.disable_notifications,
        )
        body = self.encode(message)
        self.warn_on_template_error(tmpl)

        url = API_URL.format(token=self.settings.bot_token)
        await self.send(SendWebhookSettings(url=url, body=body))
        return True
