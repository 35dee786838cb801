import httpx
from typing import Any, Dict, List, Optional

from .base_provider import BaseProvider
from app.core.logger import get_logger
from app.llm.entity.chat import ChatRequest
from app.llm.entity.provider_config import GeminiConfig
from app.llm.service.errors import (
    AuthError,
    EmptyResponse,
    TransientError,
    classify_status,
)


LEGACY_ACK = "Understood."


class GeminiProvider(BaseProvider):
    """Handles Google Gemini models over the generateContent REST API."""

    def __init__(self, config: GeminiConfig, client: Optional[httpx.AsyncClient] = None):
        self.name = config.provider_id
        self.config = config
        self.api_key = config.api_key
        self.endpoint = config.endpoint.rstrip("/")
        self._enabled = bool(self.api_key)
        self._client = client or httpx.AsyncClient(timeout=60.0)
        self._logger = get_logger("GeminiProvider")

    def is_enabled(self) -> bool:
        return self._enabled

    def build_payload(self, request: ChatRequest, model: str) -> Dict[str, Any]:
        contents: List[Dict[str, Any]] = [
            {"role": c.role, "parts": [{"text": p.text} for p in c.parts]}
            for c in request.contents
        ]
        payload: Dict[str, Any] = {}
        instruction = request.system_instruction
        if instruction:
            if model in self.config.legacy_models:
                # Older models reject systemInstruction; seed it as an acknowledged first turn.
                contents = [
                    {"role": "user", "parts": [{"text": instruction}]},
                    {"role": "model", "parts": [{"text": LEGACY_ACK}]},
                ] + contents
            else:
                payload["systemInstruction"] = {"parts": [{"text": instruction}]}
        payload["contents"] = contents

        generation_config: Dict[str, Any] = {"temperature": float(self.config.temperature)}
        if self.config.max_output_tokens is not None:
            generation_config["maxOutputTokens"] = int(self.config.max_output_tokens)
        payload["generationConfig"] = generation_config
        return payload

    async def generate(self, request: ChatRequest, model: str) -> str:
        if not self._enabled:
            raise AuthError("Gemini provider disabled: missing GEMINI_API_KEY", provider=self.name, model=model)

        url = f"{self.endpoint}/v1beta/models/{model}:generateContent"
        payload = self.build_payload(request, model)
        try:
            res = await self._client.post(url, headers={"x-goog-api-key": self.api_key}, json=payload)
        except httpx.HTTPError as e:
            raise TransientError(f"Network error calling {model}: {e.__class__.__name__}", provider=self.name, model=model) from e

        if res.status_code >= 400:
            message = _error_message(res)
            error_cls = classify_status(res.status_code, message)
            self._logger.warning(f"Gemini API error: model={model} status={res.status_code} kind={error_cls.kind.value}")
            raise error_cls(message, provider=self.name, model=model, status_code=res.status_code)

        try:
            data = res.json()
        except ValueError as e:
            raise TransientError(f"Invalid JSON from {model}", provider=self.name, model=model) from e

        text = extract_text(data)
        if not text.strip():
            reason = _block_reason(data)
            raise EmptyResponse(
                f"{model} returned no text" + (f" ({reason})" if reason else ""),
                provider=self.name,
                model=model,
            )
        return text

    async def aclose(self) -> None:
        await self._client.aclose()


def extract_text(data: Dict[str, Any]) -> str:
    candidates = data.get("candidates") or []
    if not candidates:
        return ""
    parts = (candidates[0].get("content") or {}).get("parts") or []
    return "".join(p.get("text", "") for p in parts if "text" in p)


def _block_reason(data: Dict[str, Any]) -> Optional[str]:
    feedback = data.get("promptFeedback") or {}
    if feedback.get("blockReason"):
        return f"blocked: {feedback['blockReason']}"
    candidates = data.get("candidates") or []
    if candidates and candidates[0].get("finishReason") not in (None, "STOP"):
        return f"finishReason: {candidates[0]['finishReason']}"
    return None


def _error_message(res: httpx.Response) -> str:
    try:
        body = res.json()
    except ValueError:
        return res.text[:300] or f"HTTP {res.status_code}"
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict):
        message = error.get("message") or error.get("status") or f"HTTP {res.status_code}"
        reasons = [d.get("reason") for d in error.get("details") or [] if isinstance(d, dict) and d.get("reason")]
        if reasons:
            message = f"{message} [{', '.join(reasons)}]"
        return message
    return f"HTTP {res.status_code}"

