"""Base notifier interface."""

import json
from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, Mapping, Optional, Protocol, Tuple, runtime_checkable

from pydantic import BaseModel, ConfigDict, ValidationError
from loguru import logger as default_logger

from herald.models import AlertEvent, IntegrationConfig
from herald.secure_settings import DecryptFunc
from herald.templates import TemplateEngine, TextRenderer
from herald.utils import join_url_path

FOOTER_TEXT = "Herald"
FOOTER_ICON_URL = "https://herald.dev/assets/img/fav32.png"
COLOR_FIRING = "#D63232"
COLOR_RESOLVED = "#36a64f"


def status_color(status: str) -> str:
    return COLOR_FIRING if status == "firing" else COLOR_RESOLVED


class ReceiverConfigError(ValueError):
    """Receiver settings are missing a required field or hold an invalid value."""


class NotifyError(Exception):
    """A notify call failed to build or deliver its payload."""

    def __init__(self, receiver_type: str, message: str):
        super().__init__(message)
        self.receiver_type = receiver_type


@dataclass(frozen=True)
class Metadata:
    uid: str
    name: str
    type: str
    disable_resolve_message: bool = False

    @classmethod
    def from_integration(cls, config: IntegrationConfig) -> "Metadata":
        return cls(
            uid=config.uid,
            name=config.name,
            type=config.type,
            disable_resolve_message=config.disable_resolve_message,
        )


@dataclass
class SendWebhookSettings:
    """Everything the transport needs to perform one delivery."""

    url: str
    body: str
    http_method: str = "POST"
    user: str = ""
    password: str = ""
    content_type: str = "application/json"
    http_header: Dict[str, str] = field(default_factory=dict)


class WebhookSender(Protocol):
    """Transport collaborator. Raises on any delivery failure."""

    async def send_webhook(self, cmd: SendWebhookSettings) -> None: ...


@runtime_checkable
class Notifier(Protocol):
    """The only surface the dispatch pipeline calls, whatever the vendor."""

    async def notify(self, *alerts: AlertEvent) -> bool: ...

    def send_resolved(self) -> bool: ...


class ReceiverSettings(BaseModel):
    """
    Plain settings of one receiver type.

    ``secure_fields`` lists the settings keys that may be overridden by a
    secure setting of the same name; the resolved secret wins and the plain
    value is the fallback.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    secure_fields: ClassVar[Tuple[str, ...]] = ()

    @classmethod
    def from_settings(cls, raw: Optional[Mapping[str, Any]], decrypt: DecryptFunc):
        data = dict(raw or {})
        for key in cls.secure_fields:
            data[key] = decrypt(key, str(data.get(key) or ""))
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or 'settings'}: {err['msg']}" for err in e.errors()
            )
            raise ReceiverConfigError(problems) from e


class Base:
    """State shared by every notifier: identity, template engine, transport, logger."""

    def __init__(self, meta: Metadata, template: TemplateEngine, sender: WebhookSender, logger=None):
        self.meta = meta
        self.tmpl = template
        self.ns = sender
        self.log = (logger or default_logger).bind(receiver=meta.name, uid=meta.uid, type=meta.type)

    @property
    def type(self) -> str:
        return self.meta.type

    def send_resolved(self) -> bool:
        return not self.meta.disable_resolve_message

    def alerts_url(self) -> str:
        """Public "view alerts" link included in most messages."""
        return join_url_path(self.tmpl.external_url, "/alerting/list", self.log)

    def render_url(self, tmpl: TextRenderer, raw_url: str) -> str:
        """
        Render a delivery URL. A URL that fails to render is replaced by the
        raw configured value, never by partially rendered text.
        """
        tmpl.clear_error()
        url = tmpl(raw_url)
        err = tmpl.clear_error()
        if err is not None:
            self.log.warning(f"Failed to template {self.type} URL, falling back to configured URL: {err}")
            return raw_url
        return url

    def warn_on_template_error(self, tmpl: TextRenderer) -> None:
        err = tmpl.clear_error()
        if err is not None:
            self.log.warning(f"Failed to template {self.type} message: {err}")

    def encode(self, payload: Any) -> str:
        try:
            return json.dumps(payload, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise NotifyError(self.type, f"build {self.type} payload: {e}") from e

    async def send(self, cmd: SendWebhookSettings) -> None:
        try:
            await self.ns.send_webhook(cmd)
        except Exception as e:
            raise NotifyError(self.type, f"send notification to {self.type}: {e}") from e

    def __repr__(self) -> str:
        return f"{type(self).__name__}(uid={self.meta.uid!r}, name={self.meta.name!r})"
