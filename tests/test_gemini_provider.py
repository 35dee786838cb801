import json

import httpx
import pytest

from app.llm.entity.provider_config import GeminiConfig
from app.llm.service.errors import (
    AuthError,
    EmptyResponse,
    ModelUnavailable,
    RateLimited,
    TransientError,
)
from app.llm.service.provider.gemini import LEGACY_ACK, GeminiProvider, extract_text
from conftest import make_request


def gemini_reply(text: str) -> dict:
    return {"candidates": [{"content": {"role": "model", "parts": [{"text": text}]}, "finishReason": "STOP"}]}


def make_provider(handler, **config) -> GeminiProvider:
    config.setdefault("api_key", "AIzaTestKey")
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return GeminiProvider(GeminiConfig(**config), client=client)


@pytest.mark.asyncio
async def test_generate_posts_to_generate_content_with_system_instruction():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = request.url
        seen["headers"] = request.headers
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=gemini_reply("Hello back"))

    provider = make_provider(handler, temperature=0.5, max_output_tokens=256)
    text = await provider.generate(make_request("Hi", system="Be brief"), "gemini-2.0-flash")

    assert text == "Hello back"
    assert seen["url"].path == "/v1beta/models/gemini-2.0-flash:generateContent"
    assert seen["headers"]["x-goog-api-key"] == "AIzaTestKey"
    assert "key" not in seen["url"].params
    assert "AIzaTestKey" not in str(seen["url"])
    assert seen["body"]["systemInstruction"] == {"parts": [{"text": "Be brief"}]}
    assert seen["body"]["contents"] == [{"role": "user", "parts": [{"text": "Hi"}]}]
    assert seen["body"]["generationConfig"] == {"temperature": 0.5, "maxOutputTokens": 256}


def test_legacy_model_gets_instruction_as_first_turn():
    provider = make_provider(lambda r: httpx.Response(200), legacy_models=["gemini-pro"])

    payload = provider.build_payload(make_request("Hi", system="You are a strategist"), "gemini-pro")

    assert "systemInstruction" not in payload
    assert payload["contents"][0] == {"role": "user", "parts": [{"text": "You are a strategist"}]}
    assert payload["contents"][1] == {"role": "model", "parts": [{"text": LEGACY_ACK}]}
    assert payload["contents"][2]["parts"][0]["text"] == "Hi"


def test_no_instruction_means_no_system_field():
    provider = make_provider(lambda r: httpx.Response(200))
    payload = provider.build_payload(make_request("Hi"), "gemini-2.0-flash")
    assert "systemInstruction" not in payload
    assert len(payload["contents"]) == 1


@pytest.mark.parametrize(
    "status, body, expected",
    [
        (429, {"error": {"code": 429, "message": "Resource has been exhausted"}}, RateLimited),
        (404, {"error": {"code": 404, "message": "models/gemini-x is not found"}}, ModelUnavailable),
        (403, {"error": {"code": 403, "message": "Permission denied"}}, AuthError),
        (
            400,
            {"error": {"code": 400, "message": "API key not valid. Please pass a valid API key.",
                       "details": [{"reason": "API_KEY_INVALID"}]}},
            AuthError,
        ),
        (500, {"error": {"code": 500, "message": "Internal error"}}, TransientError),
        (503, {"error": {"code": 503, "message": "The model is overloaded"}}, TransientError),
    ],
)
@pytest.mark.asyncio
async def test_http_errors_are_classified(status, body, expected):
    provider = make_provider(lambda r: httpx.Response(status, json=body))

    with pytest.raises(expected) as exc_info:
        await provider.generate(make_request(), "gemini-2.0-flash")

    assert exc_info.value.status_code == status
    assert exc_info.value.model == "gemini-2.0-flash"


@pytest.mark.asyncio
async def test_network_failure_is_transient():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    provider = make_provider(handler)
    with pytest.raises(TransientError):
        await provider.generate(make_request(), "gemini-2.0-flash")


@pytest.mark.asyncio
async def test_blocked_prompt_is_empty_response():
    body = {"promptFeedback": {"blockReason": "SAFETY"}}
    provider = make_provider(lambda r: httpx.Response(200, json=body))

    with pytest.raises(EmptyResponse) as exc_info:
        await provider.generate(make_request(), "gemini-2.0-flash")

    assert "SAFETY" in exc_info.value.message


@pytest.mark.asyncio
async def test_missing_key_fails_without_a_request():
    calls = []
    provider = make_provider(lambda r: calls.append(r) or httpx.Response(200), api_key=None)

    assert provider.is_enabled() is False
    with pytest.raises(AuthError):
        await provider.generate(make_request(), "gemini-2.0-flash")
    assert calls == []


def test_extract_text_joins_parts():
    data = {"candidates": [{"content": {"parts": [{"text": "a"}, {"inlineData": {}}, {"text": "b"}]}}]}
    assert extract_text(data) == "ab"
    assert extract_text({}) == ""
