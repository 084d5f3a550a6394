"""Receiver implementations sharing one notifier contract."""

from .base import (
    Base,
    Metadata,
    Notifier,
    NotifyError,
    ReceiverConfigError,
    ReceiverSettings,
    SendWebhookSettings,
    WebhookSender,
)
from .registry import NotificationRegistry, UnknownReceiverType, default_registry

__all__ = [
    "Base",
    "Metadata",
    "NotificationRegistry",
    "Notifier",
    "NotifyError",
    "ReceiverConfigError",
    "ReceiverSettings",
    "SendWebhookSettings",
    "UnknownReceiverType",
    "WebhookSender",
    "default_registry",
]
