"""Test the DingDing notifier and payload builder."""

import json

import pytest

from herald.notifiers import Metadata, NotifyError, ReceiverConfigError
from herald.notifiers.dingding import (
    DingDingConfig,
    DingDingNotifier,
    build_body,
    build_dingding_url,
    parse_recipients,
)
from herald.secure_settings import PlaintextSecretStore, decrypt_fn
from loguru import logger

LINK = "dingtalk://dingtalkclient/page/link?pc_slide=false&url=http%3A%2F%2Flocalhost%2Falerting%2Flist"


def make_notifier(settings, template, sender, disable_resolve_message=False):
    config = DingDingConfig.from_settings(settings, decrypt_fn({}, PlaintextSecretStore()))
    meta = Metadata(uid="dd-uid", name="ops", type="dingding", disable_resolve_message=disable_resolve_message)
    return DingDingNotifier(config, meta, template, sender, logger)


def test_text_body_mentions_listed_users():
    body = json.loads(build_body(LINK, "text", "title", "msg", "111,222"))

    assert body == {
        "msgtype": "text",
        "text": {"content": "msg"},
        "at": {"atMobiles": ["111", "222"], "isAtAll": False},
    }


def test_text_body_mentions_everyone():
    body = json.loads(build_body(LINK, "text", "title", "msg", "all"))

    assert body["at"] == {"atMobiles": [], "isAtAll": True}


def test_recipients_drop_empty_segments_and_duplicates():
    assert parse_recipients("111,,222, 111,") == {"atMobiles": ["111", "222"], "isAtAll": False}
    assert parse_recipients("") == {"atMobiles": [], "isAtAll": False}


def test_markdown_body():
    body = json.loads(build_body(LINK, "markdown", "title", "msg", "111"))

    assert body["msgtype"] == "markdown"
    assert body["markdown"] == {"text": "msg", "title": "title"}
    assert body["at"] == {"atMobiles": ["111"], "isAtAll": False}


def test_action_card_body():
    body = json.loads(build_body(LINK, "actionCard", "title", "msg", "all"))

    assert body == {
        "msgtype": "actionCard",
        "actionCard": {"text": "msg", "title": "title", "singleTitle": "More", "singleURL": LINK},
    }


def test_link_body_has_no_mentions():
    body = json.loads(build_body(LINK, "link", "title", "msg", "all"))

    assert body == {"msgtype": "link", "link": {"text": "msg", "title": "title", "messageUrl": LINK}}


def test_unknown_message_type_degrades_to_empty_body():
    assert build_body(LINK, "carrier-pigeon", "title", "msg", "") == "{}"


def test_dingding_url():
    assert build_dingding_url("http://localhost", logger) == LINK


def test_config_defaults():
    config = DingDingConfig.from_settings({"url": "http://localhost"}, decrypt_fn({}, PlaintextSecretStore()))

    assert config.msg_type == "link"
    assert config.to_user == ""
    assert "default.title" in config.title
    assert "default.message" in config.message


@pytest.mark.parametrize(
    "settings",
    [
        {},
        {"url": ""},
        {"url": "http://localhost", "msgType": "carrier-pigeon"},
    ],
)
def test_invalid_config_rejected(settings):
    with pytest.raises(ReceiverConfigError):
        DingDingConfig.from_settings(settings, decrypt_fn({}, PlaintextSecretStore()))


def test_templated_message_type_accepted():
    config = DingDingConfig.from_settings(
        {"url": "http://localhost", "msgType": "{{ common_labels.kind }}"},
        decrypt_fn({}, PlaintextSecretStore()),
    )
    assert config.msg_type == "{{ common_labels.kind }}"


@pytest.mark.asyncio
async def test_notify_sends_rendered_payload(template, sender, alerts):
    notifier = make_notifier(
        {
            "url": "http://localhost/robot/send?access_token={{ common_labels.alertname }}",
            "msgType": "text",
            "message": "{{ alerts | length }} alerts firing",
            "toUser": "111,222",
        },
        template,
        sender,
    )

    ok = await notifier.notify(*alerts)

    assert ok is True
    assert len(sender.calls) == 1
    cmd = sender.calls[0]
    assert cmd.url == "http://localhost/robot/send?access_token=alert1"
    assert json.loads(cmd.body) == {
        "msgtype": "text",
        "text": {"content": "2 alerts firing"},
        "at": {"atMobiles": ["111", "222"], "isAtAll": False},
    }


@pytest.mark.asyncio
async def test_notify_action_card_links_to_alert_list(template, sender, alerts):
    notifier = make_notifier({"url": "http://localhost", "msgType": "actionCard"}, template, sender)

    await notifier.notify(*alerts)

    body = json.loads(sender.calls[0].body)
    assert body["actionCard"]["singleURL"] == LINK
    assert body["actionCard"]["title"].startswith("[FIRING:2]")


@pytest.mark.asyncio
async def test_url_template_failure_falls_back_to_raw_url(template, sender, alerts, warnings):
    raw_url = "http://localhost/robot/send?access_token={{ broken"
    notifier = make_notifier({"url": raw_url, "msgType": "text", "message": "hello"}, template, sender)

    ok = await notifier.notify(*alerts)

    assert ok is True
    assert sender.calls[0].url == raw_url
    assert json.loads(sender.calls[0].body)["text"]["content"] == "hello"
    assert any("URL" in w for w in warnings)


@pytest.mark.asyncio
async def test_message_template_failure_keeps_rendered_url(template, sender, alerts, warnings):
    notifier = make_notifier(
        {"url": "http://localhost/{{ common_labels.alertname }}", "msgType": "text", "message": "{{ broken"},
        template,
        sender,
    )

    ok = await notifier.notify(*alerts)

    assert ok is True
    assert sender.calls[0].url == "http://localhost/alert1"
    assert json.loads(sender.calls[0].body)["text"]["content"] == "{{ broken"
    assert len(warnings) == 1


@pytest.mark.asyncio
async def test_rendered_unknown_message_type_sends_empty_body(template, sender, alerts, warnings):
    notifier = make_notifier(
        {"url": "http://localhost", "msgType": "{{ common_labels.alertname }}"},
        template,
        sender,
    )

    assert await notifier.notify(*alerts) is True
    assert sender.calls[0].body == "{}"
    assert any("message type" in w for w in warnings)


@pytest.mark.asyncio
async def test_transport_error_is_wrapped(template, failing_sender, alerts):
    notifier = make_notifier({"url": "http://localhost"}, template, failing_sender)

    with pytest.raises(NotifyError, match="send notification to dingding: connection refused") as exc:
        await notifier.notify(*alerts)

    assert exc.value.receiver_type == "dingding"
    assert isinstance(exc.value.__cause__, RuntimeError)


@pytest.mark.parametrize("disable, expected", [(True, False), (False, True)])
def test_send_resolved(template, sender, disable, expected):
    notifier = make_notifier({"url": "http://localhost"}, template, sender, disable_resolve_message=disable)
    assert notifier.send_resolved() is expected


@pytest.mark.asyncio
async def test_recursive_message_template_is_sent_literally(template, sender, alerts, warnings):
    message = "{% macro recurse() %}{{ recurse() }}{% endmacro %}{{ recurse() }}"
    notifier = make_notifier({"url": "http://localhost", "msgType": "text", "message": message}, template, sender)

    assert await notifier.notify(*alerts) is True
    assert json.loads(sender.calls[0].body)["text"]["content"] == message
    assert any("Failed to template dingding message" in w for w in warnings)
