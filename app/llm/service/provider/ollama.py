# app/llm/service/provider/ollama.py
import httpx
from typing import Optional

from .base_provider import BaseProvider
from app.llm.entity.chat import ChatRequest
from app.llm.entity.provider_config import OllamaConfig
from app.llm.service.errors import EmptyResponse, TransientError, classify_status
from app.llm.service.provider.openai_provider import OpenAIProvider


class OllamaProvider(BaseProvider):
    """Handles Ollama (local models) interaction."""

    def __init__(self, config: OllamaConfig, client: Optional[httpx.AsyncClient] = None):
        self.name = config.provider_id
        self.config = config
        self.base_url = config.base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=120.0)

    def is_enabled(self) -> bool:
        """Enable only if explicitly opted in via env to avoid accidental failures."""
        return self.config.enabled

    async def generate(self, request: ChatRequest, model: str) -> str:
        payload = {
            "model": model,
            # /api/chat takes the same role/content list as chat completions.
            "messages": OpenAIProvider.build_messages(request),
            "stream": False,
            "options": {"temperature": self.config.temperature},
        }
        try:
            response = await self._client.post(f"{self.base_url}/api/chat", json=payload)
        except httpx.HTTPError as e:
            raise TransientError(f"Ollama unreachable: {e.__class__.__name__}", provider=self.name, model=model) from e

        if response.status_code >= 400:
            message = response.text[:300] or f"HTTP {response.status_code}"
            # Ollama answers 404 for models that were never pulled.
            error_cls = classify_status(response.status_code, message)
            raise error_cls(message, provider=self.name, model=model, status_code=response.status_code)

        text = (response.json().get("message") or {}).get("content", "")
        if not text.strip():
            raise EmptyResponse(f"{model} returned no text", provider=self.name, model=model)
        return text

    async def aclose(self) -> None:
        await self._client.aclose()
