"""
PagerDuty Events API v2 notifier.

One incident per alert group: the dedup key is derived from the group key
supplied by the dispatch pipeline, so a resolved batch closes the incident
the firing batch opened.
"""

import hashlib
import json
import socket
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import Field, field_validator

from herald.models import AlertEvent
from herald.templates import DEFAULT_MESSAGE_TITLE_EMBED, TextRenderer
from herald.utils import truncate
from .base import Base, ReceiverSettings, SendWebhookSettings

DEFAULT_URL = "https://events.pagerduty.com/v2/enqueue"
DEFAULT_CLASS = "default"
DEFAULT_GROUP = "default"
DEFAULT_CLIENT = "Herald"
MAX_SUMMARY_LEN = 1024

DEFAULT_DETAILS = {
    "firing": '{% include "default.message" %}',
    "num_firing": "{{ alerts.firing | length }}",
    "num_resolved": "{{ alerts.resolved | length }}",
}


class Severity(str, Enum):
    CRITICAL = "critical"
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


def _hostname() -> str:
    try:
        return socket.gethostname()
    except OSError:
        return "herald"


class PagerdutyConfig(ReceiverSettings):
    secure_fields = ("integrationKey",)

    key: str = Field(..., alias="integrationKey")
    severity: str = Severity.CRITICAL.value
    event_class: str = Field(DEFAULT_CLASS, alias="class")
    component: str = "Herald"
    group: str = DEFAULT_GROUP
    summary: str = DEFAULT_MESSAGE_TITLE_EMBED
    source: str = Field(default_factory=_hostname)
    client: str = DEFAULT_CLIENT
    client_url: str = Field("{{ external_url }}", alias="client_url")
    url: str = DEFAULT_URL
    details: Dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_DETAILS))

    @field_validator("key")
    @classmethod
    def _require_key(cls, v: str) -> str:
        if not v:
            raise ValueError("could not find integration key property in settings")
        return v

    @field_validator("severity")
    @classmethod
    def _default_severity(cls, v: str) -> str:
        return v or Severity.CRITICAL.value

    @field_validator("url")
    @classmethod
    def _default_url(cls, v: str) -> str:
        return v or DEFAULT_URL


FULL_VALID_CONFIG_FOR_TESTING = json.dumps({
    "severity": "warning",
    "class": "test class",
    "component": "test component",
    "group": "test group",
    "summary": "test summary",
    "source": "test source",
    "client": "Herald",
    "client_url": "http://localhost",
    "details": {"test-field": "test value"},
})

FULL_VALID_SECRETS_FOR_TESTING = json.dumps({
    "integrationKey": "test-api-key",
})


def dedup_key(group_key: str, fingerprints: list[str]) -> str:
    source = group_key or ",".join(sorted(fingerprints))
    return hashlib.sha256(source.encode("utf-8")).hexdigest()


def build_event(
    routing_key: str,
    key: str,
    status: str,
    summary: str,
    severity: str,
    source: str,
    event_class: str,
    component: str,
    group: str,
    client: str,
    client_url: str,
    details: Dict[str, str],
) -> Dict[str, Any]:
    event: Dict[str, Any] = {
        "routing_key": routing_key,
        "dedup_key": key,
        "event_action": "resolve" if status == "resolved" else "trigger",
        "payload": {
            "summary": truncate(summary, MAX_SUMMARY_LEN),
            "source": source,
            "severity": severity,
            "class": event_class,
            "component": component,
            "group": group,
            "custom_details": details,
        },
        "client": client,
        "client_url": client_url,
    }
    if client_url:
        event["links"] = [{"href": client_url, "text": "External URL"}]
    return event


class PagerdutyNotifier(Base):
    """Triggers and resolves PagerDuty incidents."""

    def __init__(self, config: PagerdutyConfig, meta, template, sender, logger=None):
        super().__init__(meta, template, sender, logger)
        self.settings = config

    def _severity(self, tmpl: TextRenderer) -> str:
        severity = tmpl(self.settings.severity).strip().lower()
        try:
            return Severity(severity).value
        except ValueError:
            self.log.warning(f"Severity {severity!r} is not valid, using {Severity.CRITICAL.value}")
            return Severity.CRITICAL.value

    async def notify(self, *alerts: AlertEvent) -> bool:
        self.log.info("Sending pagerduty notification")

        tmpl = self.tmpl.bind(alerts, self.log)
        details = {name: tmpl(value) for name, value in self.settings.details.items()}
        event = build_event(
            routing_key=self.settings.key,
            key=dedup_key(tmpl.data.group_key, [a.fingerprint for a in tmpl.data.alerts]),
            status=tmpl.data.status,
            summary=tmpl(self.settings.summary),
            severity=self._severity(tmpl),
            source=tmpl(self.settings.source),
            event_class=tmpl(self.settings.event_class),
            component=tmpl(self.settings.component),
            group=tmpl(self.settings.group),
            client=tmpl(self.settings.client),
            client_url=tmpl(self.settings.client_url),
            details=details,
        )
        body = self.encode(event)

        self.warn_on_template_error(tmpl)
        url = self.render_url(tmpl, self.settings.url)

        await self.send(SendWebhookSettings(url=url, body=body))
        return True
