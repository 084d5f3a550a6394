"""Receiver type registry: type tag -> settings model and notifier class."""

from dataclasses import dataclass
from typing import Dict, List, Optional, Type

from loguru import logger

from herald.models import IntegrationConfig
from herald.secure_settings import SecretStore, decrypt_fn
from herald.templates import TemplateEngine
from .base import Base, Metadata, ReceiverSettings, WebhookSender
from .dingding import DingDingConfig, DingDingNotifier
from .discord import DiscordConfig, DiscordNotifier
from .feishu import FeishuConfig, FeishuNotifier
from .googlechat import GoogleChatConfig, GoogleChatNotifier
from .line import LineConfig, LineNotifier
from .pagerduty import PagerdutyConfig, PagerdutyNotifier
from .slack import SlackConfig, SlackNotifier
from .teams import TeamsConfig, TeamsNotifier
from .telegram import TelegramConfig, TelegramNotifier
from .webhook import WebhookConfig, WebhookNotifier
from .wecom import WeComConfig, WeComNotifier


class UnknownReceiverType(KeyError):
    """No notifier is registered for an integration's type tag."""


@dataclass(frozen=True)
class ReceiverFactory:
    config_cls: Type[ReceiverSettings]
    notifier_cls: Type[Base]


class NotificationRegistry:
    """
    Maps receiver type tags to the classes that build their notifiers.

    The module level ``default_registry`` is populated at import and only
    read afterwards; tests that need isolation build their own instance.
    """

    def __init__(self, factories: Optional[Dict[str, ReceiverFactory]] = None):
        self._mapping: Dict[str, ReceiverFactory] = dict(factories or {})

    def register(self, type_name: str, config_cls: Type[ReceiverSettings], notifier_cls: Type[Base]) -> None:
        if type_name in self._mapping:
            raise ValueError(f"receiver type {type_name!r} is already registered")
        self._mapping[type_name] = ReceiverFactory(config_cls, notifier_cls)

    def types(self) -> List[str]:
        return sorted(self._mapping)

    def __contains__(self, type_name: str) -> bool:
        return type_name in self._mapping

    def get(self, type_name: str) -> ReceiverFactory:
        try:
            return self._mapping[type_name]
        except KeyError:
            raise UnknownReceiverType(f"notifier {type_name!r} is not supported") from None

    def build(
        self,
        config: IntegrationConfig,
        template: TemplateEngine,
        sender: WebhookSender,
        store: SecretStore,
        log=None,
    ) -> Base:
        """
        Instantiate the notifier for one integration.
        Raises ``UnknownReceiverType`` or ``ReceiverConfigError``.
        """
        factory = self.get(config.type)
        settings = factory.config_cls.from_settings(config.settings, decrypt_fn(config.secure_settings, store))
        notifier = factory.notifier_cls(settings, Metadata.from_integration(config), template, sender, log or logger)
        logger.debug(f"Built {config.type} notifier for integration {config.uid}")
        return notifier

    def build_all(
        self,
        configs: List[IntegrationConfig],
        template: TemplateEngine,
        sender: WebhookSender,
        store: SecretStore,
    ) -> Dict[str, Base]:
        """Build one notifier per integration, keyed by uid."""
        return {c.uid: self.build(c, template, sender, store) for c in configs}


def new_default_registry() -> NotificationRegistry:
    registry = NotificationRegistry()
    registry.register("dingding", DingDingConfig, DingDingNotifier)
    registry.register("discord", DiscordConfig, DiscordNotifier)
    registry.register("feishu", FeishuConfig, FeishuNotifier)
    registry.register("googlechat", GoogleChatConfig, GoogleChatNotifier)
    registry.register("line", LineConfig, LineNotifier)
    registry.register("pagerduty", PagerdutyConfig, PagerdutyNotifier)
    registry.register("slack", SlackConfig, SlackNotifier)
    registry.register("teams", TeamsConfig, TeamsNotifier)
    registry.register("telegram", TelegramConfig, TelegramNotifier)
    registry.register("webhook", WebhookConfig, WebhookNotifier)
    registry.register("wecom", WeComConfig, WeComNotifier)
    return registry


default_registry = new_default_registry()
