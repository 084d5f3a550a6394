"""Data models shared by every receiver."""

from .alert import AlertEvent, AlertStatus
from .integration import IntegrationConfig, check_unique_uids, hash_integrations

__all__ = [
    "AlertEvent",
    "AlertStatus",
    "IntegrationConfig",
    "check_unique_uids",
    "hash_integrations",
]
