# app/llm/service/provider/anthropic.py
from typing import Dict, List, Optional

import anthropic
from anthropic import AsyncAnthropic

from .base_provider import BaseProvider
from app.llm.entity.chat import ChatRequest
from app.llm.entity.provider_config import AnthropicConfig
from app.llm.service.errors import (
    AuthError,
    EmptyResponse,
    ModelUnavailable,
    RateLimited,
    TransientError,
    classify_status,
)


class AnthropicProvider(BaseProvider):
    """Handles Claude (Anthropic) models."""

    def __init__(self, config: AnthropicConfig, client: Optional[AsyncAnthropic] = None):
        self.name = config.provider_id
        self.config = config
        self.api_key = config.api_key
        self._enabled = bool(self.api_key)
        self.client = client or (AsyncAnthropic(api_key=self.api_key, max_retries=0) if self.api_key else None)

    def is_enabled(self) -> bool:
        return self._enabled

    @staticmethod
    def build_messages(request: ChatRequest) -> List[Dict[str, str]]:
        """
        Messages API wants strictly alternating turns starting with ``user``.
        Consecutive same-role turns are merged and leading assistant turns dropped.
        """
        messages: List[Dict[str, str]] = []
        for content in request.contents:
            role = "assistant" if content.role == "model" else "user"
            text = content.text
            if not messages and role == "assistant":
                continue
            if messages and messages[-1]["role"] == role:
                messages[-1]["content"] = f"{messages[-1]['content']}\n\n{text}"
            else:
                messages.append({"role": role, "content": text})
        return messages

    async def generate(self, request: ChatRequest, model: str) -> str:
        if not self._enabled:
            raise AuthError("Anthropic provider disabled: missing ANTHROPIC_API_KEY", provider=self.name, model=model)

        messages = self.build_messages(request)
        if not messages:
            raise EmptyResponse("No user turn to send", provider=self.name, model=model)

        kwargs = {
            "model": model,
            "max_tokens": self.config.max_tokens,
            "temperature": self.config.temperature,
            "messages": messages,
        }
        if request.system_instruction:
            kwargs["system"] = request.system_instruction

        try:
            msg = await self.client.messages.create(**kwargs)
        except (anthropic.AuthenticationError, anthropic.PermissionDeniedError) as e:
            raise AuthError(_message(e), provider=self.name, model=model, status_code=e.status_code) from e
        except anthropic.RateLimitError as e:
            raise RateLimited(_message(e), provider=self.name, model=model, status_code=e.status_code) from e
        except anthropic.NotFoundError as e:
            raise ModelUnavailable(_message(e), provider=self.name, model=model, status_code=e.status_code) from e
        except anthropic.APIStatusError as e:
            error_cls = classify_status(e.status_code, _message(e))
            raise error_cls(_message(e), provider=self.name, model=model, status_code=e.status_code) from e
        except anthropic.APIError as e:
            raise TransientError(f"{e.__class__.__name__}: {_message(e)}", provider=self.name, model=model) from e

        text = "".join(block.text for block in msg.content if getattr(block, "type", None) == "text")
        if not text.strip():
            raise EmptyResponse(f"{model} returned no text", provider=self.name, model=model)
        return text


def _message(error: anthropic.APIError) -> str:
    return getattr(error, "message", None) or str(error)
