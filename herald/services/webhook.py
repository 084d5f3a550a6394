"""HTTP transport used by every receiver."""

import asyncio
from typing import Optional

import aiohttp
from loguru import logger

from herald.config import settings
from herald.notifiers.base import SendWebhookSettings


class WebhookError(Exception):
    """Delivery failed: network error or non-2xx response."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class WebhookService:
    """Sends prepared payloads over aiohttp. Retries are left to the caller."""

    def __init__(self, timeout: Optional[float] = None, user_agent: Optional[str] = None):
        self._timeout = aiohttp.ClientTimeout(total=timeout or settings.webhook.timeout)
        self._user_agent = user_agent or settings.webhook.user_agent
        self._session: Optional[aiohttp.ClientSession] = None

    async def start(self) -> None:
        """Start the service."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
            logger.info("Webhook service started")

    async def stop(self) -> None:
        """Stop the service."""
        if self._session and not self._session.closed:
            await self._session.close()
            logger.info("Webhook service stopped")

    async def send_webhook(self, cmd: SendWebhookSettings) -> None:
        if not self._session or self._session.closed:
            await self.start()

        headers = {"Content-Type": cmd.content_type, "User-Agent": self._user_agent}
        headers.update(cmd.http_header)

        auth = None
        if cmd.user or cmd.password:
            auth = aiohttp.BasicAuth(cmd.user, cmd.password)

        try:
            async with self._session.request(
                cmd.http_method or "POST",
                cmd.url,
                data=cmd.body.encode("utf-8"),
                headers=headers,
                auth=auth,
            ) as response:
                if not 200 <= response.status < 300:
                    resp_text = await response.text()
                    logger.error(f"Webhook delivery failed: HTTP {response.status} - {resp_text[:200]}")
                    raise WebhookError(
                        f"webhook response status {response.status}: {resp_text[:200]}",
                        status=response.status,
                    )
                logger.debug(f"Webhook delivered: HTTP {response.status}")
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise WebhookError(f"webhook request failed: {e}") from e
