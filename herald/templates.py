"""
Template rendering for receiver fields.

Receiver settings (titles, messages, URLs, ...) are jinja2 templates rendered
against one alert batch. Rendering is fail-soft: a field that fails to render
is returned as its literal text and only the first failure of the batch is
kept, so a notifier can still send a best-effort message and log a single
coherent warning.
"""

from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence

from jinja2 import DictLoader
from jinja2.sandbox import SandboxedEnvironment
from loguru import logger as default_logger

from herald.config import settings
from herald.models import AlertEvent, AlertStatus

DEFAULT_MESSAGE_TITLE_EMBED = '{% include "default.title" %}'
DEFAULT_MESSAGE_EMBED = '{% include "default.message" %}'

DEFAULT_TEMPLATES: Dict[str, str] = {
    "default.title": (
        '[{{ status | upper }}{% if status == "firing" %}:{{ alerts.firing | length }}{% endif %}] '
        '{{ group_labels.values() | join(" ") }}'
        '{% if extra_common_labels %} ({{ extra_common_labels.values() | join(" ") }}){% endif %}'
    ),
    "default.alert": """Value: {{ alert.value_string or "[no value]" }}
Labels:
{% for key, value in alert.labels.items() %}
 - {{ key }} = {{ value }}
{% endfor %}
Annotations:
{% for key, value in alert.annotations.items() %}
 - {{ key }} = {{ value }}
{% endfor %}
{% if alert.generator_url %}
Source: {{ alert.generator_url }}
{% endif %}
{% if alert.silence_url %}
Silence: {{ alert.silence_url }}
{% endif %}
{% if alert.dashboard_url %}
Dashboard: {{ alert.dashboard_url }}
{% endif %}
{% if alert.panel_url %}
Panel: {{ alert.panel_url }}
{% endif %}
""",
    "default.message": """{% if alerts.firing %}
**Firing**

{% for alert in alerts.firing %}
{% include "default.alert" %}

{% endfor %}
{% endif %}
{% if alerts.resolved %}
**Resolved**

{% for alert in alerts.resolved %}
{% include "default.alert" %}

{% endfor %}
{% endif %}
""",
}


# Values the dispatch pipeline attaches to the notification it is delivering
_group_key: ContextVar[str] = ContextVar("herald_group_key", default="")
_group_labels: ContextVar[Mapping[str, str]] = ContextVar("herald_group_labels", default={})
_receiver_name: ContextVar[str] = ContextVar("herald_receiver_name", default="")


@contextmanager
def notification_context(
    group_key: str = "",
    group_labels: Optional[Mapping[str, str]] = None,
    receiver: str = "",
) -> Iterator[None]:
    """Scope the group identity of the batch being delivered to the current task."""
    tokens = (
        _group_key.set(group_key),
        _group_labels.set(dict(group_labels or {})),
        _receiver_name.set(receiver),
    )
    try:
        yield
    finally:
        _receiver_name.reset(tokens[2])
        _group_labels.reset(tokens[1])
        _group_key.reset(tokens[0])


@dataclass
class ExtendedAlert:
    status: str
    labels: Dict[str, str]
    annotations: Dict[str, str]
    starts_at: datetime
    ends_at: Optional[datetime]
    generator_url: str
    fingerprint: str
    silence_url: str = ""
    dashboard_url: str = ""
    panel_url: str = ""
    value_string: str = ""

    @classmethod
    def from_event(cls, event: AlertEvent) -> "ExtendedAlert":
        return cls(
            status=event.status.value,
            labels=dict(sorted(event.labels.items())),
            annotations=dict(sorted(event.annotations.items())),
            starts_at=event.starts_at,
            ends_at=event.ends_at,
            generator_url=event.generator_url,
            fingerprint=event.fingerprint(),
            silence_url=event.silence_url,
            dashboard_url=event.dashboard_url,
            panel_url=event.panel_url,
            value_string=event.value_string,
        )

    def to_json_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "labels": self.labels,
            "annotations": self.annotations,
            "startsAt": self.starts_at.isoformat(),
            "endsAt": self.ends_at.isoformat() if self.ends_at else None,
            "generatorURL": self.generator_url,
            "fingerprint": self.fingerprint,
            "silenceURL": self.silence_url,
            "dashboardURL": self.dashboard_url,
            "panelURL": self.panel_url,
            "valueString": self.value_string,
        }


class ExtendedAlerts(List[ExtendedAlert]):
    @property
    def firing(self) -> List[ExtendedAlert]:
        return [a for a in self if a.status == AlertStatus.FIRING.value]

    @property
    def resolved(self) -> List[ExtendedAlert]:
        return [a for a in self if a.status == AlertStatus.RESOLVED.value]


def _common(maps: Sequence[Mapping[str, str]]) -> Dict[str, str]:
    if not maps:
        return {}
    common = dict(maps[0])
    for m in maps[1:]:
        common = {k: v for k, v in common.items() if m.get(k) == v}
    return dict(sorted(common.items()))


@dataclass
class ExtendedData:
    """Everything a template can reference for one batch."""

    receiver: str
    status: str
    alerts: ExtendedAlerts
    group_labels: Dict[str, str]
    common_labels: Dict[str, str]
    common_annotations: Dict[str, str]
    external_url: str
    group_key: str = ""
    extra_common_labels: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_alerts(cls, alerts: Sequence[AlertEvent], external_url: str) -> "ExtendedData":
        extended = ExtendedAlerts(ExtendedAlert.from_event(a) for a in alerts)
        group_labels = dict(sorted(_group_labels.get().items()))
        common_labels = _common([a.labels for a in alerts])
        status = AlertStatus.FIRING if extended.firing else AlertStatus.RESOLVED
        return cls(
            receiver=_receiver_name.get(),
            status=status.value,
            alerts=extended,
            group_labels=group_labels,
            common_labels=common_labels,
            common_annotations=_common([a.annotations for a in alerts]),
            external_url=external_url,
            group_key=_group_key.get(),
            extra_common_labels={k: v for k, v in common_labels.items() if k not in group_labels},
        )

    def as_context(self) -> Dict[str, Any]:
        return {
            "receiver": self.receiver,
            "status": self.status,
            "alerts": self.alerts,
            "group_labels": self.group_labels,
            "common_labels": self.common_labels,
            "common_annotations": self.common_annotations,
            "extra_common_labels": self.extra_common_labels,
            "external_url": self.external_url,
            "group_key": self.group_key,
        }

    def to_json_dict(self) -> Dict[str, Any]:
        return {
            "receiver": self.receiver,
            "status": self.status,
            "alerts": [a.to_json_dict() for a in self.alerts],
            "groupLabels": self.group_labels,
            "commonLabels": self.common_labels,
            "commonAnnotations": self.common_annotations,
            "externalURL": self.external_url,
            "groupKey": self.group_key,
        }


class TextRenderer:
    """
    Render function bound to one alert batch.

    Calling the renderer returns the rendered text, or the literal input if
    rendering failed. The first failure is kept in ``error``; later ones are
    dropped so a batch yields one representative warning.
    """

    def __init__(self, env: SandboxedEnvironment, data: ExtendedData, logger):
        self._env = env
        self._logger = logger
        self.data = data
        self._error: Optional[Exception] = None

    @property
    def error(self) -> Optional[Exception]:
        return self._error

    def clear_error(self) -> Optional[Exception]:
        """Return the captured error and reset the slot."""
        err, self._error = self._error, None
        return err

    def __call__(self, text: str) -> str:
        if not text:
            return text
        try:
            return self._env.from_string(text).render(self.data.as_context())
        except Exception as e:
            # recursion limits included; cancellation is not an Exception
            self._logger.debug(f"Template rendering failed: {e}")
            if self._error is None:
                self._error = e
            return text


class TemplateEngine:
    """Named templates plus the public base URL used to build links."""

    def __init__(self, external_url: Optional[str] = None, templates: Optional[Mapping[str, str]] = None):
        self.external_url = external_url or settings.templates.external_url
        named = dict(DEFAULT_TEMPLATES)
        named.update(templates or {})
        self._env = SandboxedEnvironment(
            loader=DictLoader(named),
            trim_blocks=True,
            lstrip_blocks=True,
            autoescape=False,
        )

    def bind(self, alerts: Sequence[AlertEvent], logger=None) -> TextRenderer:
        data = ExtendedData.from_alerts(alerts, self.external_url)
        return TextRenderer(self._env, data, logger or default_logger)
