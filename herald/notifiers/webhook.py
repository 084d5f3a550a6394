"""
Generic webhook notifier.

The body is the extended template data of the batch as JSON, plus the
rendered title and message, so any HTTP endpoint can consume it.
"""

import json
from typing import Any, Dict

from pydantic import Field, field_validator, model_validator

from herald.models import AlertEvent
from herald.templates import DEFAULT_MESSAGE_EMBED, DEFAULT_MESSAGE_TITLE_EMBED, ExtendedData
from .base import Base, ReceiverSettings, SendWebhookSettings

HTTP_METHODS = ("POST", "PUT")


class WebhookConfig(ReceiverSettings):
    secure_fields = ("password", "authorization_credentials")

    url: str
    http_method: str = Field("POST", alias="httpMethod")
    max_alerts: int = Field(0, alias="maxAlerts")
    user: str = Field("", alias="username")
    password: str = ""
    authorization_scheme: str = ""
    authorization_credentials: str = ""
    title: str = DEFAULT_MESSAGE_TITLE_EMBED
    message: str = DEFAULT_MESSAGE_EMBED

    @field_validator("url")
    @classmethod
    def _require_url(cls, v: str) -> str:
        if not v:
            raise ValueError("required field 'url' is not specified")
        return v

    @field_validator("http_method")
    @classmethod
    def _check_method(cls, v: str) -> str:
        v = (v or "POST").upper()
        if v not in HTTP_METHODS:
            raise ValueError(f"unsupported HTTP method {v}, use one of {', '.join(HTTP_METHODS)}")
        return v

    @field_validator("max_alerts", mode="before")
    @classmethod
    def _max_alerts(cls, v: Any) -> int:
        if v in (None, ""):
            return 0
        return int(v)

    @model_validator(mode="after")
    def _check_auth(self) -> "WebhookConfig":
        if self.authorization_credentials and (self.user or self.password):
            raise ValueError("both HTTP Basic Authentication and Authorization Header are set, only 1 is permitted")
        return self


FULL_VALID_CONFIG_FOR_TESTING = json.dumps({
    "url": "http://localhost/test",
    "username": "test-user",
    "httpMethod": "PUT",
    "maxAlerts": "2",
    "title": "test-title",
    "message": "test-message",
})

FULL_VALID_SECRETS_FOR_TESTING = json.dumps({
    "password": "test-password",
})


def build_message(data: ExtendedData, title: str, message: str, max_alerts: int) -> Dict[str, Any]:
    payload = data.to_json_dict()
    truncated = 0
    if max_alerts and len(payload["alerts"]) > max_alerts:
        truncated = len(payload["alerts"]) - max_alerts
        payload["alerts"] = payload["alerts"][:max_alerts]
    payload.update({
        "version": "1",
        "truncatedAlerts": truncated,
        "title": title,
        "state": "alerting" if data.status == "firing" else "ok",
        "message": message,
    })
    return payload


class WebhookNotifier(Base):
    """Sends the batch as JSON to an arbitrary HTTP endpoint."""

    def __init__(self, config: WebhookConfig, meta, template, sender, logger=None):
        super().__init__(meta, template, sender, logger)
        self.settings = config

    async def notify(self, *alerts: AlertEvent) -> bool:
        self.log.info("Sending webhook notification")

        tmpl = self.tmpl.bind(alerts, self.log)
        message = build_message(
            tmpl.data,
            title=tmpl(self.settings.title),
            message=tmpl(self.settings.message),
            max_alerts=self.settings.max_alerts,
        )
        body = self.encode(message)

        self.warn_on_template_error(tmpl)
        url = self.render_url(tmpl, self.settings.url)

        headers: Dict[str, str] = {}
        if self.settings.authorization_credentials:
            scheme = self.settings.authorization_scheme or "Bearer"
            headers["Authorization"] = f"{scheme} {self.settings.authorization_credentials}"

        await self.send(SendWebhookSettings(
            url=url,
            body=body,
            http_method=self.settings.http_method,
            user=self.settings.user,
            password=self.settings.password,
            http_header=headers,
        ))
        return True
