"""Test fail-soft template rendering."""

from jinja2 import TemplateSyntaxError

from herald.templates import (
    DEFAULT_MESSAGE_EMBED,
    DEFAULT_MESSAGE_TITLE_EMBED,
    TemplateEngine,
    notification_context,
)


def test_render_alert_data(template, alerts):
    tmpl = template.bind(alerts)

    assert tmpl("{{ common_labels.alertname }} on {{ external_url }}") == "alert1 on http://localhost"
    assert tmpl("{{ alerts | length }}/{{ alerts.firing | length }}/{{ alerts.resolved | length }}") == "2/2/0"
    assert tmpl("{{ status }}") == "firing"
    assert tmpl.error is None


def test_common_labels_keep_only_shared_values(template, alerts):
    tmpl = template.bind(alerts)

    assert tmpl.data.common_labels == {"alertname": "alert1"}
    assert tmpl.data.common_annotations == {}


def test_failed_render_returns_literal_text(template, alerts):
    tmpl = template.bind(alerts)

    assert tmpl("{{ broken") == "{{ broken"
    assert isinstance(tmpl.error, TemplateSyntaxError)


def test_only_first_error_is_kept(template, alerts):
    tmpl = template.bind(alerts)

    tmpl("{{ broken")
    first = tmpl.error
    assert tmpl("{{ 1 / 0 }}") == "{{ 1 / 0 }}"
    assert tmpl.error is first

    # later fields still render
    assert tmpl("{{ status }}") == "firing"
    assert tmpl.error is first


def test_clear_error(template, alerts):
    tmpl = template.bind(alerts)
    tmpl("{{ broken")

    err = tmpl.clear_error()

    assert isinstance(err, TemplateSyntaxError)
    assert tmpl.error is None


def test_renderers_do_not_share_error_slot(template, alerts):
    first = template.bind(alerts)
    second = template.bind(alerts)

    first("{{ broken")

    assert first.error is not None
    assert second.error is None


def test_empty_text(template, alerts):
    tmpl = template.bind(alerts)
    assert tmpl("") == ""


def test_default_title(template, alerts):
    with notification_context(group_labels={"alertname": "alert1"}):
        tmpl = template.bind(alerts)

    assert tmpl(DEFAULT_MESSAGE_TITLE_EMBED) == "[FIRING:2] alert1"


def test_default_title_resolved(template, resolved_alert):
    tmpl = template.bind([resolved_alert])
    assert tmpl(DEFAULT_MESSAGE_TITLE_EMBED).startswith("[RESOLVED]")


def test_default_message(template, alerts, resolved_alert):
    tmpl = template.bind(alerts + [resolved_alert])
    message = tmpl(DEFAULT_MESSAGE_EMBED)

    assert tmpl.error is None
    assert "**Firing**" in message
    assert "**Resolved**" in message
    assert " - lbl1 = val2" in message
    assert " - ann1 = annv1" in message
    assert "Source: http://localhost/rule/1" in message


def test_user_templates_can_be_included(alerts):
    engine = TemplateEngine(
        external_url="http://localhost",
        templates={"custom.title": "{{ alerts | length }} alerts for {{ receiver }}"},
    )
    with notification_context(receiver="ops"):
        tmpl = engine.bind(alerts)

    assert tmpl('{% include "custom.title" %}') == "2 alerts for ops"


def test_notification_context_is_scoped(template, alerts):
    with notification_context(group_key='{}:{alertname="alert1"}', group_labels={"alertname": "alert1"}):
        inside = template.bind(alerts)
    outside = template.bind(alerts)

    assert inside.data.group_key == '{}:{alertname="alert1"}'
    assert inside.data.group_labels == {"alertname": "alert1"}
    assert outside.data.group_key == ""
    assert outside.data.group_labels == {}


def test_missing_include_is_a_render_error(template, alerts):
    tmpl = template.bind(alerts)

    assert tmpl('{% include "nope" %}') == '{% include "nope" %}'
    assert tmpl.error is not None


def test_runaway_recursion_returns_literal_text(template, alerts):
    tmpl = template.bind(alerts)
    text = "{% macro recurse() %}{{ recurse() }}{% endmacro %}{{ recurse() }}"

    assert tmpl(text) == text
    assert isinstance(tmpl.error, RecursionError)
    assert tmpl("{{ status }}") == "firing"


def test_include_cycle_returns_literal_text(alerts):
    engine = TemplateEngine(
        "http://localhost",
        templates={"ping": '{% include "pong" %}', "pong": '{% include "ping" %}'},
    )
    tmpl = engine.bind(alerts)

    assert tmpl('{% include "ping" %}') == '{% include "ping" %}'
    assert tmpl.error is not None
