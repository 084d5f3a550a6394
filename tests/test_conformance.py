"""Every registered receiver satisfies the same notifier contract."""

import asyncio
import json

import pytest

from herald.notifiers import Notifier, NotifyError, default_registry
from herald.secure_settings import PlaintextSecretStore
from herald.testing import ALL_KNOWN_CONFIGS_FOR_TESTING, decrypt_for_testing

ALL_TYPES = sorted(ALL_KNOWN_CONFIGS_FOR_TESTING)


def build(type_name, template, sender):
    config = ALL_KNOWN_CONFIGS_FOR_TESTING[type_name].get_raw_notifier_config(type_name)
    return default_registry.build(config, template, sender, PlaintextSecretStore())


def test_every_registered_type_has_a_fixture():
    assert default_registry.types() == ALL_TYPES


@pytest.mark.parametrize("type_name", ALL_TYPES)
def test_raw_config_shape(type_name):
    fixture = ALL_KNOWN_CONFIGS_FOR_TESTING[type_name]

    first = fixture.get_raw_notifier_config(type_name)
    second = fixture.get_raw_notifier_config(type_name)

    assert first.type == second.type == type_name
    assert first.settings == second.settings
    assert first.uid and first.uid.startswith(type_name)
    assert first.disable_resolve_message is True
    # secrets are stored base64 encoded and resolve back to the fixture values
    decrypt = decrypt_for_testing(first.secure_settings)
    for key in first.secure_settings:
        assert decrypt(key, "") != ""


@pytest.mark.parametrize("type_name", ALL_TYPES)
@pytest.mark.asyncio
async def test_notify_succeeds(type_name, template, sender, alerts):
    notifier = build(type_name, template, sender)

    assert isinstance(notifier, Notifier)
    assert await notifier.notify(*alerts) is True
    assert len(sender.calls) == 1
    assert sender.calls[0].url
    assert sender.calls[0].body


@pytest.mark.parametrize("type_name", ALL_TYPES)
@pytest.mark.asyncio
async def test_notify_reports_transport_failure(type_name, template, failing_sender, alerts):
    notifier = build(type_name, template, failing_sender)

    with pytest.raises(NotifyError) as exc:
        await notifier.notify(*alerts)

    assert type_name in str(exc.value)
    assert exc.value.receiver_type == type_name


@pytest.mark.parametrize("type_name", ALL_TYPES)
def test_send_resolved_follows_config(type_name, template, sender):
    # fixtures always disable resolve messages
    assert build(type_name, template, sender).send_resolved() is False


@pytest.mark.parametrize("type_name", ALL_TYPES)
@pytest.mark.asyncio
async def test_notify_resolved_batch(type_name, template, sender, resolved_alert):
    notifier = build(type_name, template, sender)
    assert await notifier.notify(resolved_alert) is True


@pytest.mark.asyncio
async def test_concurrent_calls_are_independent(template, sender, alerts, resolved_alert):
    notifier = build("webhook", template, sender)

    results = await asyncio.gather(
        notifier.notify(*alerts),
        notifier.notify(resolved_alert),
    )

    assert results == [True, True]
    states = sorted(json.loads(c.body)["status"] for c in sender.calls)
    assert states == ["firing", "resolved"]


@pytest.mark.asyncio
async def test_cancellation_is_not_reported_as_delivery_failure(template, alerts):
    started = asyncio.Event()

    class SlowSender:
        async def send_webhook(self, cmd):
            started.set()
            await asyncio.sleep(60)

    notifier = build("dingding", template, SlowSender())
    task = asyncio.create_task(notifier.notify(*alerts))
    await started.wait()
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task
