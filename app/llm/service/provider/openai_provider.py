# app/llm/service/provider/openai_provider.py
from typing import Dict, List, Optional

import openai
from openai import AsyncOpenAI

from .base_provider import BaseProvider
from app.llm.entity.chat import ChatRequest
from app.llm.entity.provider_config import OpenAICompatConfig
from app.llm.service.errors import (
    AuthError,
    EmptyResponse,
    ModelUnavailable,
    RateLimited,
    TransientError,
    classify_status,
)


class OpenAIProvider(BaseProvider):
    """OpenAI chat-completions API; also serves Groq and DeepSeek through ``base_url``."""

    def __init__(self, config: OpenAICompatConfig, client: Optional[AsyncOpenAI] = None):
        self.name = config.provider_id
        self.config = config
        self.api_key = config.api_key
        self._enabled = bool(self.api_key)
        # Retries are the router's job, so the SDK must fail fast.
        self.client = client or (
            AsyncOpenAI(api_key=self.api_key, base_url=config.base_url, max_retries=0) if self.api_key else None
        )

    def is_enabled(self) -> bool:
        return self._enabled

    @staticmethod
    def build_messages(request: ChatRequest) -> List[Dict[str, str]]:
        messages: List[Dict[str, str]] = []
        if request.system_instruction:
            messages.append({"role": "system", "content": request.system_instruction})
        for content in request.contents:
            role = "assistant" if content.role == "model" else "user"
            messages.append({"role": role, "content": content.text})
        return messages

    async def generate(self, request: ChatRequest, model: str) -> str:
        if not self.is_enabled():
            raise AuthError(f"{self.name} disabled: missing API key", provider=self.name, model=model)

        kwargs = {
            "model": model,
            "messages": self.build_messages(request),
            "temperature": self.config.temperature,
        }
        if self.config.max_tokens:
            kwargs["max_tokens"] = self.config.max_tokens

        try:
            resp = await self.client.chat.completions.create(**kwargs)
        except (openai.AuthenticationError, openai.PermissionDeniedError) as e:
            raise AuthError(_message(e), provider=self.name, model=model, status_code=e.status_code) from e
        except openai.RateLimitError as e:
            raise RateLimited(_message(e), provider=self.name, model=model, status_code=e.status_code) from e
        except openai.NotFoundError as e:
            raise ModelUnavailable(_message(e), provider=self.name, model=model, status_code=e.status_code) from e
        except openai.APIStatusError as e:
            error_cls = classify_status(e.status_code, _message(e))
            raise error_cls(_message(e), provider=self.name, model=model, status_code=e.status_code) from e
        except openai.APIError as e:
            # Connection errors and timeouts.
            raise TransientError(f"{e.__class__.__name__}: {_message(e)}", provider=self.name, model=model) from e

        choices = getattr(resp, "choices", None) or []
        text = (choices[0].message.content or "") if choices else ""
        if not text.strip():
            raise EmptyResponse(f"{model} returned no text", provider=self.name, model=model)
        return text


def _message(error: openai.APIError) -> str:
    return getattr(error, "message", None) or str(error)
