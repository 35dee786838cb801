import json

import httpx
import pytest

from app.chat.entity.chat import ChatMessage, Persona
from app.chat.service.chat_client import NO_ANSWER_TEXT, ChatClient
from app.chat.service.prompt import EMPTY_KNOWLEDGE_MARKER, PERSONA_DIRECTIVES
from app.knowledge.entity.knowledge import initial_knowledge


def make_client(handler, logger) -> ChatClient:
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://proxy")
    return ChatClient(http_client, logger)


HISTORY = [
    ChatMessage(id="init", role="model", text="Hi! How can I help?"),
    ChatMessage(role="user", text="Draft a pitch"),
    ChatMessage(role="model", text="...", is_thinking=True),
    ChatMessage(role="model", text="Here is a draft."),
]


@pytest.mark.asyncio
async def test_payload_carries_history_new_message_and_system_instruction(logger):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"text": "Tighter version", "usedModel": "m", "usedProvider": "gemini"})

    client = make_client(handler, logger)
    reply = await client.send_message("Make it shorter", HISTORY, initial_knowledge(), Persona.SKEPTIC)

    assert reply == "Tighter version"
    assert seen["path"] == "/chat"
    contents = seen["body"]["contents"]
    assert [c["role"] for c in contents] == ["model", "user", "model", "user"]
    assert contents[-1] == {"role": "user", "parts": [{"text": "Make it shorter"}]}
    assert all(c["parts"][0]["text"] != "..." for c in contents)
    instruction = seen["body"]["systemInstruction"]
    assert "[Title: The Lean Startup]" in instruction
    assert PERSONA_DIRECTIVES[Persona.SKEPTIC] in instruction


@pytest.mark.asyncio
async def test_empty_knowledge_base_uses_the_marker(logger):
    seen = {}

    def handler(request):
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"text": "ok"})

    await make_client(handler, logger).send_message("Hi", [], [], "general")

    assert EMPTY_KNOWLEDGE_MARKER in seen["body"]["systemInstruction"]


@pytest.mark.asyncio
async def test_blank_text_becomes_apology(logger):
    client = make_client(lambda r: httpx.Response(200, json={"text": ""}), logger)
    assert await client.send_message("Hi", [], [], Persona.GENERAL) == NO_ANSWER_TEXT


@pytest.mark.asyncio
async def test_server_error_message_is_surfaced(logger):
    client = make_client(
        lambda r: httpx.Response(500, json={"error": "AI Connection Error", "details": "quota"}),
        logger,
    )

    reply = await client.send_message("Hi", [], [], Persona.GENERAL)

    assert reply == "Error: the AI is temporarily unavailable. (AI Connection Error)"


@pytest.mark.asyncio
async def test_error_without_body_reports_status(logger):
    client = make_client(lambda r: httpx.Response(502, text="Bad gateway"), logger)

    reply = await client.send_message("Hi", [], [], Persona.GENERAL)

    assert reply == "Error: the AI is temporarily unavailable. (Server responded with 502)"


@pytest.mark.asyncio
async def test_network_failure_never_raises(logger):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    reply = await make_client(handler, logger).send_message("Hi", [], [], Persona.GENERAL)

    assert reply.startswith("Error: the AI is temporarily unavailable.")
