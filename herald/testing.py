"""
Conformance fixtures for every registered receiver type.

Each entry holds a canonical valid settings document and, where the receiver
needs one, a canonical secret document. Adding a receiver type only requires
adding an entry here; the conformance tests pick it up automatically.
"""

import base64
import json
from dataclasses import dataclass
from typing import Dict, Mapping

from herald.models import IntegrationConfig
from herald.notifiers import (
    dingding,
    discord,
    feishu,
    googlechat,
    line,
    pagerduty,
    slack,
    teams,
    telegram,
    webhook,
    wecom,
)
from herald.secure_settings import DecryptFunc, PlaintextSecretStore, decrypt_fn


@dataclass(frozen=True)
class NotifierConfigTest:
    notifier_type: str
    config: str
    secrets: str = ""

    def get_raw_notifier_config(self, name: str) -> IntegrationConfig:
        """
        Integration as configuration storage would hand it over: secrets
        base64 encoded, resolve messages disabled.
        """
        secrets: Dict[str, str] = {}
        if self.secrets:
            secrets = {
                key: base64.b64encode(value.encode("utf-8")).decode("ascii")
                for key, value in json.loads(self.secrets).items()
            }
        return IntegrationConfig(
            uid=f"{name}-uid",
            name=name,
            type=self.notifier_type,
            disable_resolve_message=True,
            settings=json.loads(self.config),
            secure_settings=secrets,
        )


def decrypt_for_testing(secure_settings: Mapping[str, str]) -> DecryptFunc:
    """Resolver for fixtures whose secrets are only base64 encoded."""
    return decrypt_fn(secure_settings, PlaintextSecretStore())


ALL_KNOWN_CONFIGS_FOR_TESTING: Dict[str, NotifierConfigTest] = {
    "dingding": NotifierConfigTest(
        notifier_type="dingding",
        config=dingding.FULL_VALID_CONFIG_FOR_TESTING,
    ),
    "discord": NotifierConfigTest(
        notifier_type="discord",
        config=discord.FULL_VALID_CONFIG_FOR_TESTING,
    ),
    "feishu": NotifierConfigTest(
        notifier_type="feishu",
        config=feishu.FULL_VALID_CONFIG_FOR_TESTING,
    ),
    "googlechat": NotifierConfigTest(
        notifier_type="googlechat",
        config=googlechat.FULL_VALID_CONFIG_FOR_TESTING,
    ),
    "line": NotifierConfigTest(
        notifier_type="line",
        config=line.FULL_VALID_CONFIG_FOR_TESTING,
        secrets=line.FULL_VALID_SECRETS_FOR_TESTING,
    ),
    "pagerduty": NotifierConfigTest(
        notifier_type="pagerduty",
        config=pagerduty.FULL_VALID_CONFIG_FOR_TESTING,
        secrets=pagerduty.FULL_VALID_SECRETS_FOR_TESTING,
    ),
    "slack": NotifierConfigTest(
        notifier_type="slack",
        config=slack.FULL_VALID_CONFIG_FOR_TESTING,
        secrets=slack.FULL_VALID_SECRETS_FOR_TESTING,
    ),
    "teams": NotifierConfigTest(
        notifier_type="teams",
        config=teams.FULL_VALID_CONFIG_FOR_TESTING,
    ),
    "telegram": NotifierConfigTest(
        notifier_type="telegram",
        config=telegram.FULL_VALID_CONFIG_FOR_TESTING,
        secrets=telegram.FULL_VALID_SECRETS_FOR_TESTING,
    ),
    "webhook": NotifierConfigTest(
        notifier_type="webhook",
        config=webhook.FULL_VALID_CONFIG_FOR_TESTING,
        secrets=webhook.FULL_VALID_SECRETS_FOR_TESTING,
    ),
    "wecom": NotifierConfigTest(
        notifier_type="wecom",
        config=wecom.FULL_VALID_CONFIG_FOR_TESTING,
        secrets=wecom.FULL_VALID_SECRETS_FOR_TESTING,
    ),
}
