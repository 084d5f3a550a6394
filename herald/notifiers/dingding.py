"""DingDing (DingTalk) group robot notifier."""

import json
from enum import Enum
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import urlencode

from pydantic import Field, field_validator

from herald.models import AlertEvent
from herald.templates import DEFAULT_MESSAGE_EMBED, DEFAULT_MESSAGE_TITLE_EMBED
from herald.utils import join_url_path
from .base import Base, NotifyError, ReceiverSettings, SendWebhookSettings

AT_ALL = "all"


class MessageType(str, Enum):
    ACTION_CARD = "actionCard"
    LINK = "link"
    TEXT = "text"
    MARKDOWN = "markdown"

    @classmethod
    def parse(cls, value: str) -> Optional["MessageType"]:
        try:
            return cls(value)
        except ValueError:
            return None


def _is_templated(value: str) -> bool:
    return "{{" in value or "{%" in value


class DingDingConfig(ReceiverSettings):
    url: str
    msg_type: str = Field(MessageType.LINK.value, alias="msgType")
    title: str = DEFAULT_MESSAGE_TITLE_EMBED
    message: str = DEFAULT_MESSAGE_EMBED
    # "all" or comma separated mobile numbers
    to_user: str = Field("", alias="toUser")

    @field_validator("url")
    @classmethod
    def _require_url(cls, v: str) -> str:
        if not v:
            raise ValueError("could not find url property in settings")
        return v

    @field_validator("msg_type")
    @classmethod
    def _check_msg_type(cls, v: str) -> str:
        if not v:
            return MessageType.LINK.value
        # templated values are only known at notify time
        if not _is_templated(v) and MessageType.parse(v) is None:
            raise ValueError(f"unsupported message type {v!r}")
        return v

    @field_validator("title")
    @classmethod
    def _default_title(cls, v: str) -> str:
        return v or DEFAULT_MESSAGE_TITLE_EMBED

    @field_validator("message")
    @classmethod
    def _default_message(cls, v: str) -> str:
        return v or DEFAULT_MESSAGE_EMBED


FULL_VALID_CONFIG_FOR_TESTING = json.dumps({
    "url": "http://localhost",
    "message": '{% include "default.message" %}',
    "title": "Alerts firing: {{ alerts.firing | length }}",
    "msgType": "actionCard",
    "toUser": "111,222",
})


def build_dingding_url(external_url: str, logger) -> str:
    """Link that opens the alert list outside the DingDing client."""
    q = urlencode({
        "pc_slide": "false",
        "url": join_url_path(external_url, "/alerting/list", logger),
    })
    # Refer: https://open-doc.dingtalk.com/docs/doc.htm?treeId=385&articleId=104972&docType=1#s9
    return "dingtalk://dingtalkclient/page/link?" + q


def parse_recipients(to_user: str) -> Dict[str, Any]:
    if to_user == AT_ALL:
        return {"atMobiles": [], "isAtAll": True}
    mobiles = [m.strip() for m in to_user.split(",") if m.strip()]
    return {"atMobiles": list(dict.fromkeys(mobiles)), "isAtAll": False}


def _action_card(url: str, title: str, msg: str) -> Dict[str, Any]:
    return {
        "msgtype": "actionCard",
        "actionCard": {
            "text": msg,
            "title": title,
            "singleTitle": "More",
            "singleURL": url,
        },
    }


def _link(url: str, title: str, msg: str) -> Dict[str, Any]:
    return {
        "msgtype": "link",
        "link": {
            "text": msg,
            "title": title,
            "messageUrl": url,
        },
    }


def _text(url: str, title: str, msg: str) -> Dict[str, Any]:
    return {
        "msgtype": "text",
        "text": {"content": msg},
    }


def _markdown(url: str, title: str, msg: str) -> Dict[str, Any]:
    return {
        "msgtype": "markdown",
        "markdown": {
            "text": msg,
            "title": title,
        },
    }


BODY_BUILDERS: Dict[MessageType, Callable[[str, str, str], Dict[str, Any]]] = {
    MessageType.ACTION_CARD: _action_card,
    MessageType.LINK: _link,
    MessageType.TEXT: _text,
    MessageType.MARKDOWN: _markdown,
}

# Subtypes that carry an "at" section
MENTION_TYPES = frozenset({MessageType.TEXT, MessageType.MARKDOWN})


def build_body(url: str, msg_type: str, title: str, msg: str, to_user: str) -> str:
    """
    Serialize the robot message for ``msg_type``.

    An unrecognised type yields an empty object rather than an error: the
    type can be templated, so it is only known once rendered.
    """
    kind = MessageType.parse(msg_type)
    body: Dict[str, Any] = {}
    if kind is not None:
        body = BODY_BUILDERS[kind](url, title, msg)
        if kind in MENTION_TYPES:
            body["at"] = parse_recipients(to_user)
    return json.dumps(body, ensure_ascii=False)


class DingDingNotifier(Base):
    """Sends alert notifications to a DingDing group robot."""

    def __init__(self, config: DingDingConfig, meta, template, sender, logger=None):
        super().__init__(meta, template, sender, logger)
        self.settings = config

    async def notify(self, *alerts: AlertEvent) -> bool:
        self.log.info("Sending dingding notification")

        ding_url = build_dingding_url(self.tmpl.external_url, self.log)

        tmpl = self.tmpl.bind(alerts, self.log)
        message = tmpl(self.settings.message)
        title = tmpl(self.settings.title)
        msg_type = tmpl(self.settings.msg_type)
        to_user = tmpl(self.settings.to_user)

        if MessageType.parse(msg_type) is None:
            self.log.warning(f"Unsupported DingDing message type {msg_type!r}, sending an empty message")

        try:
            body = build_body(ding_url, msg_type, title, message, to_user)
        except (TypeError, ValueError) as e:
            raise NotifyError(self.type, f"build dingding payload: {e}") from e

        self.warn_on_template_error(tmpl)
        url = self.render_url(tmpl, self.settings.url)

        await self.send(SendWebhookSettings(url=url, body=body))
        return True
