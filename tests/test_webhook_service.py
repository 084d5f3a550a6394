"""Test the aiohttp webhook transport against a local server."""

import base64
import socket

import pytest
from aiohttp import web
from aiohttp import test_utils

from herald.notifiers import SendWebhookSettings
from herald.services import WebhookError, WebhookService


async def start_server(status: int = 200):
    received: list[dict] = []

    async def handler(request: web.Request) -> web.Response:
        received.append({
            "method": request.method,
            "path": request.path,
            "headers": dict(request.headers),
            "body": await request.text(),
        })
        return web.Response(status=status, text="ok" if status < 300 else "boom")

    app = web.Application()
    app.router.add_route("*", "/hook", handler)
    server = test_utils.TestServer(app)
    await server.start_server()
    return server, received


def unused_port() -> int:
    with socket.socket() as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


@pytest.mark.asyncio
async def test_send_webhook_delivers_request():
    server, received = await start_server()
    service = WebhookService(timeout=5, user_agent="herald-test")
    try:
        await service.send_webhook(SendWebhookSettings(
            url=str(server.make_url("/hook")),
            body='{"msgtype": "text"}',
            http_method="PUT",
            user="user",
            password="pass",
            http_header={"X-Herald": "1"},
        ))
    finally:
        await service.stop()
        await server.close()

    assert len(received) == 1
    request = received[0]
    assert request["method"] == "PUT"
    assert request["body"] == '{"msgtype": "text"}'
    assert request["headers"]["Content-Type"] == "application/json"
    assert request["headers"]["User-Agent"] == "herald-test"
    assert request["headers"]["X-Herald"] == "1"
    assert request["headers"]["Authorization"].startswith("Basic ")


@pytest.mark.asyncio
async def test_non_2xx_raises():
    server, _ = await start_server(status=500)
    service = WebhookService(timeout=5)
    try:
        with pytest.raises(WebhookError) as exc:
            await service.send_webhook(SendWebhookSettings(url=str(server.make_url("/hook")), body="{}"))
    finally:
        await service.stop()
        await server.close()

    assert exc.value.status == 500
    assert "boom" in str(exc.value)


@pytest.mark.asyncio
async def test_connection_error_raises():
    service = WebhookService(timeout=5)
    try:
        with pytest.raises(WebhookError):
            await service.send_webhook(SendWebhookSettings(url=f"http://127.0.0.1:{unused_port()}/hook", body="{}"))
    finally:
        await service.stop()


@pytest.mark.asyncio
async def test_username_without_password_sends_basic_auth():
    server, received = await start_server()
    service = WebhookService(timeout=5)
    try:
        await service.send_webhook(SendWebhookSettings(url=str(server.make_url("/hook")), body="{}", user="user"))
    finally:
        await service.stop()
        await server.close()

    assert received[0]["headers"]["Authorization"] == "Basic " + base64.b64encode(b"user:").decode()
