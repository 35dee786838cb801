import logging
from typing import Iterable, List, Optional

import httpx

from app.chat.entity.chat import ChatMessage, Persona
from app.chat.service.prompt import build_system_instruction
from app.knowledge.entity.knowledge import KnowledgeItem


NO_ANSWER_TEXT = "Sorry, I could not put together a response."
UNAVAILABLE_TEXT = "Error: the AI is temporarily unavailable. ({reason})"
DEFAULT_REASON = "Check your connection"


class ChatClient:
    """
    Client side of the chat proxy.

    Builds the system instruction and history, posts them to the proxy and
    reduces whatever comes back to a single display string. Never raises.
    """

    def __init__(self, http_client: httpx.AsyncClient, logger: logging.Logger, chat_path: str = "/chat"):
        self.http_client = http_client
        self.logger = logger
        self.chat_path = chat_path

    @staticmethod
    def build_contents(message: str, history: Iterable[ChatMessage]) -> List[dict]:
        contents = [
            {"role": m.role, "parts": [{"text": m.text}]}
            for m in history
            if not m.is_thinking
        ]
        contents.append({"role": "user", "parts": [{"text": message}]})
        return contents

    async def send_message(
        self,
        message: str,
        history: Iterable[ChatMessage],
        knowledge_base: Iterable[KnowledgeItem],
        persona: Persona | str,
    ) -> str:
        payload = {
            "contents": self.build_contents(message, history),
            "systemInstruction": build_system_instruction(knowledge_base, persona),
        }
        try:
            response = await self.http_client.post(self.chat_path, json=payload)
            if response.status_code >= 400:
                raise RuntimeError(_error_from(response))
            data = response.json()
            text: Optional[str] = data.get("text") if isinstance(data, dict) else None
            if not text or not text.strip():
                return NO_ANSWER_TEXT
            return text
        except Exception as e:
            self.logger.error(f"Chat proxy error: {e}")
            return UNAVAILABLE_TEXT.format(reason=str(e) or DEFAULT_REASON)

    async def aclose(self) -> None:
        await self.http_client.aclose()


def _error_from(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return f"Server responded with {response.status_code}"
