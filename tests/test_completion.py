"""Completion client against a mocked chat-completions endpoint."""

import json

import httpx
import pytest

from wa_relay.completion import DEFAULT_MODEL, CompletionClient, SamplingParams
from wa_relay.errors import ConfigError


def reply_body(content):
    return {"choices": [{"index": 0, "message": {"role": "assistant", "content": content}}]}


def make_client(handler, api_key="gsk-test", **kwargs):
    return CompletionClient(api_key, transport=httpx.MockTransport(handler), **kwargs)


@pytest.mark.asyncio
async def test_request_shape_and_reply():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json=reply_body("Halo!"))

    client = make_client(handler, system_prompt="be nice")
    result = await client.complete("hello")
    await client.close()

    assert result.ok
    assert result.text == "Halo!"
    request = seen[0]
    assert request.method == "POST"
    assert str(request.url) == "https://api.groq.com/openai/v1/chat/completions"
    assert request.headers["Authorization"] == "Bearer gsk-test"
    body = json.loads(request.content)
    assert body == {
        "messages": [
            {"role": "system", "content": "be nice"},
            {"role": "user", "content": "hello"},
        ],
        "model": DEFAULT_MODEL,
        "temperature": 0.5,
        "max_tokens": 1024,
        "top_p": 1.0,
        "stream": False,
        "stop": None,
    }


def test_custom_sampling_and_model():
    client = CompletionClient(
        "k", model="llama-3.1-8b-instant", sampling=SamplingParams(temperature=0.1, max_tokens=64),
    )
    body = client.build_request("x")
    assert body["model"] == "llama-3.1-8b-instant"
    assert body["temperature"] == 0.1
    assert body["max_tokens"] == 64
    assert client.model == "llama-3.1-8b-instant"


@pytest.mark.asyncio
async def test_server_error_is_a_failed_result():
    client = make_client(lambda request: httpx.Response(500, text="upstream down"))
    result = await client.complete("hello")

    assert not result.ok
    assert "500" in result.error


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [{"choices": []}, {"error": "x"}, reply_body(""), reply_body(None)])
async def test_unusable_response_is_a_failed_result(body):
    client = make_client(lambda request: httpx.Response(200, json=body))
    result = await client.complete("hello")

    assert not result.ok
    assert result.text is None


@pytest.mark.asyncio
async def test_non_json_response():
    client = make_client(lambda request: httpx.Response(200, text="<html>"))
    assert not (await client.complete("hello")).ok


@pytest.mark.asyncio
async def test_network_error_is_a_failed_result():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    result = await make_client(handler).complete("hello")
    assert not result.ok


@pytest.mark.asyncio
async def test_missing_api_key_raises():
    calls = []
    client = make_client(lambda request: calls.append(request), api_key=None)

    with pytest.raises(ConfigError):
        await client.complete("hello")
    assert calls == []
