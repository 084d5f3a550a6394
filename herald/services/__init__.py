"""Services for Herald."""

from .webhook import WebhookError, WebhookService

__all__ = ["WebhookError", "WebhookService"]
