"""Tests for chime.channels.telegram."""

import json
from unittest.mock import MagicMock, patch

import httpx
import pytest

from chime.channels.telegram import TelegramChannel
from chime.core.errors import DeliveryError, RateLimitedError


def make_channel(handler) -> tuple[TelegramChannel, list[httpx.Request]]:
    seen: list[httpx.Request] = []

    def record(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    client = httpx.AsyncClient(transport=httpx.MockTransport(record))
    channel = TelegramChannel(
        token="123:abc", api_base="https://tg.example/", timeout=1.0, client=client
    )
    return channel, seen


async def test_send_text_posts_to_bot_api():
    channel, seen = make_channel(
        lambda r: httpx.Response(200, json={"ok": True, "result": {"message_id": 7}})
    )

    result = await channel.send_text(4242, "hello")

    assert result == {"message_id": 7}
    assert seen[0].url.host == "tg.example"
    assert seen[0].url.path == "/bot123:abc/sendMessage"
    assert json.loads(seen[0].content) == {"chat_id": 4242, "text": "hello"}
    await channel.stop()


async def test_copy_message_payload():
    channel, seen = make_channel(
        lambda r: httpx.Response(200, json={"ok": True, "result": {"message_id": 8}})
    )

    await channel.copy_message(4242, -100, 55)

    assert seen[0].url.path.endswith("/copyMessage")
    assert json.loads(seen[0].content) == {"chat_id": 4242, "from_chat_id": -100, "message_id": 55}
    await channel.stop()


async def test_rate_limit_raises_rate_limited_error():
    channel, _ = make_channel(
        lambda r: httpx.Response(
            429,
            json={
                "ok": False,
                "error_code": 429,
                "description": "Too Many Requests: retry after 13",
                "parameters": {"retry_after": 13},
            },
        )
    )

    with pytest.raises(RateLimitedError) as exc_info:
        await channel.send_text(1, "x")
    assert exc_info.value.retry_after == 13
    assert exc_info.value.code == 429


async def test_api_error_raises_delivery_error():
    channel, _ = make_channel(
        lambda r: httpx.Response(
            403,
            json={"ok": False, "error_code": 403, "description": "Forbidden: bot was blocked"},
        )
    )

    with pytest.raises(DeliveryError) as exc_info:
        await channel.send_text(1, "x")
    assert not isinstance(exc_info.value, RateLimitedError)
    assert exc_info.value.code == 403
    assert exc_info.value.message == "Forbidden: bot was blocked"


async def test_non_json_response():
    channel, _ = make_channel(lambda r: httpx.Response(502, text="<html>bad gateway</html>"))

    with pytest.raises(DeliveryError, match="HTTP 502"):
        await channel.send_text(1, "x")


async def test_transport_error():
    def boom(request):
        raise httpx.ConnectError("connection refused", request=request)

    channel, _ = make_channel(boom)

    with pytest.raises(DeliveryError, match="sendMessage request failed"):
        await channel.send_text(1, "x")


async def test_health_check():
    channel, seen = make_channel(lambda r: httpx.Response(200, json={"ok": True, "result": {}}))
    assert await channel.health_check() is True
    assert seen[0].url.path.endswith("/getMe")


async def test_health_check_unhealthy():
    channel, _ = make_channel(
        lambda r: httpx.Response(401, json={"ok": False, "error_code": 401, "description": "no"})
    )
    assert await channel.health_check() is False


async def test_start_and_stop_manage_client():
    channel = TelegramChannel(token="t", api_base="https://tg.example", timeout=1.0)
    await channel.start()
    assert channel._http is not None
    await channel.stop()
    assert channel._http is None


def test_defaults_come_from_settings():
    settings = MagicMock(
        telegram_bot_token="tok",
        telegram_api_base="https://api.telegram.org/",
        telegram_timeout_seconds=3.0,
    )
    with patch("chime.config.get_settings", return_value=settings):
        channel = TelegramChannel()
    assert channel._token == "tok"
    assert channel._api_base == "https://api.telegram.org"
    assert channel._timeout == 3.0
