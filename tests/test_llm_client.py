import asyncio
import os
import sys

import pytest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))

from aiohttp import web
from aiohttp.test_utils import TestServer

from services.errors import (
    ConfigurationError,
    UpstreamConnectionError,
    UpstreamFormatError,
    UpstreamHTTPError,
    UpstreamTimeoutError,
)
from services.llm_client import LLMClient

MESSAGES = [{"role": "user", "content": [{"type": "text", "text": "hi"}]}]


def _provider(handler):
    app = web.Application()
    app.router.add_post("/v1/chat/completions", handler)
    return app


async def _call(handler, **client_kwargs):
    """啟動假的上游服務並呼叫一次"""
    server = TestServer(_provider(handler))
    await server.start_server()
    try:
        client = LLMClient(
            api_url=str(server.make_url("/v1/chat/completions")),
            api_key=client_kwargs.pop("api_key", "sk-test"),
            model=client_kwargs.pop("model", "vision-test"),
            **client_kwargs,
        )
        return await client.chat_completion(MESSAGES)
    finally:
        await server.close()


def test_chat_completion_returns_content_and_sends_contract():
    seen = {}

    async def handler(request):
        seen["auth"] = request.headers.get("Authorization")
        seen["payload"] = await request.json()
        return web.json_response({"choices": [{"message": {"content": '{"analysis": "x"}'}}]})

    content = asyncio.run(_call(handler, json_mode=True))
    assert content == '{"analysis": "x"}'
    assert seen["auth"] == "Bearer sk-test"
    payload = seen["payload"]
    assert payload["model"] == "vision-test"
    assert payload["stream"] is False
    assert payload["messages"] == MESSAGES
    assert payload["response_format"] == {"type": "json_object"}


def test_json_mode_off_omits_response_format():
    seen = {}

    async def handler(request):
        seen["payload"] = await request.json()
        return web.json_response({"choices": [{"message": {"content": "ok"}}]})

    asyncio.run(_call(handler, json_mode=False))
    assert "response_format" not in seen["payload"]


def test_content_parts_are_joined():
    async def handler(request):
        parts = [{"type": "text", "text": '{"a": '}, {"type": "text", "text": '"b"}'}]
        return web.json_response({"choices": [{"message": {"content": parts}}]})

    assert asyncio.run(_call(handler)) == '{"a": "b"}'


def test_non_2xx_raises_with_status_and_body():
    async def handler(request):
        return web.Response(status=401, text='{"error": "invalid api key"}')

    with pytest.raises(UpstreamHTTPError) as exc:
        asyncio.run(_call(handler))
    assert exc.value.status_code == 401
    assert exc.value.details == '{"error": "invalid api key"}'


def test_empty_content_is_format_error():
    async def handler(request):
        return web.json_response({"choices": [{"message": {"content": ""}}]})

    with pytest.raises(UpstreamFormatError):
        asyncio.run(_call(handler))


def test_missing_choices_is_format_error():
    async def handler(request):
        return web.json_response({"id": "x"})

    with pytest.raises(UpstreamFormatError):
        asyncio.run(_call(handler))


def test_slow_upstream_raises_timeout():
    async def handler(request):
        await asyncio.sleep(1)
        return web.json_response({"choices": [{"message": {"content": "late"}}]})

    with pytest.raises(UpstreamTimeoutError):
        asyncio.run(_call(handler, timeout=0.1))


def test_unreachable_upstream_is_connection_error():
    async def scenario():
        server = TestServer(web.Application())
        await server.start_server()
        url = str(server.make_url("/v1/chat/completions"))
        await server.close()
        client = LLMClient(api_url=url, api_key="sk-test", model="m", timeout=5)
        await client.chat_completion(MESSAGES)

    with pytest.raises(UpstreamConnectionError):
        asyncio.run(scenario())


def test_missing_settings_fail_before_any_request():
    client = LLMClient(api_url="", api_key="", model="")
    assert client.missing_settings() == ["UPSTREAM_API_URL", "UPSTREAM_API_KEY", "UPSTREAM_MODEL"]
    assert not client.configured
    with pytest.raises(ConfigurationError):
        asyncio.run(client.chat_completion(MESSAGES))


def test_describe_never_exposes_the_key():
    info = LLMClient(api_url="https://x", api_key="sk-secret", model="m").describe()
    assert "sk-secret" not in str(info)
    assert info["configured"] is True
