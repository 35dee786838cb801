# app/llm/service/provider/factory.py
from typing import Dict, List

from pydantic import TypeAdapter

from app.core.config import Settings
from app.llm.entity.provider_config import (
    AnthropicConfig,
    GeminiConfig,
    OllamaConfig,
    OpenAICompatConfig,
    ProviderConfig,
)
from app.llm.service.provider.anthropic import AnthropicProvider
from app.llm.service.provider.base_provider import BaseProvider
from app.llm.service.provider.gemini import GeminiProvider
from app.llm.service.provider.ollama import OllamaProvider
from app.llm.service.provider.openai_provider import OpenAIProvider


_config_adapter = TypeAdapter(ProviderConfig)


def provider_configs(settings: Settings) -> List[ProviderConfig]:
    """All provider families the service knows about, configured from settings."""
    return [
        GeminiConfig(
            api_key=settings.GEMINI_API_KEY,
            endpoint=settings.GEMINI_FREE_ENDPOINT or "https://generativelanguage.googleapis.com",
            legacy_models=sorted(settings.legacy_gemini_models()),
            temperature=settings.TEMPERATURE,
            max_output_tokens=settings.MAX_TOKENS,
        ),
        OpenAICompatConfig(
            provider_id="openai",
            api_key=settings.OPENAI_API_KEY,
            base_url=settings.OPENAI_BASE_URL,
            temperature=settings.TEMPERATURE,
            max_tokens=settings.MAX_TOKENS,
        ),
        OpenAICompatConfig(
            provider_id="groq",
            api_key=settings.GROQ_API_KEY,
            base_url=settings.GROQ_BASE_URL,
            temperature=settings.TEMPERATURE,
            max_tokens=settings.MAX_TOKENS,
        ),
        OpenAICompatConfig(
            provider_id="deepseek",
            api_key=settings.DEEPSEEK_API_KEY,
            base_url=settings.DEEPSEEK_BASE_URL,
            temperature=settings.TEMPERATURE,
            max_tokens=settings.MAX_TOKENS,
        ),
        AnthropicConfig(
            api_key=settings.ANTHROPIC_API_KEY,
            temperature=settings.TEMPERATURE,
            max_tokens=settings.MAX_TOKENS,
        ),
        OllamaConfig(
            enabled=settings.OLLAMA_ENABLED,
            base_url=settings.OLLAMA_BASE_URL,
            temperature=settings.TEMPERATURE,
        ),
    ]


def build_provider(config: ProviderConfig) -> BaseProvider:
    """Dispatch on the config variant."""
    if isinstance(config, dict):
        config = _config_adapter.validate_python(config)
    if isinstance(config, GeminiConfig):
        return GeminiProvider(config)
    if isinstance(config, OpenAICompatConfig):
        return OpenAIProvider(config)
    if isinstance(config, AnthropicConfig):
        return AnthropicProvider(config)
    if isinstance(config, OllamaConfig):
        return OllamaProvider(config)
    raise ValueError(f"Unsupported provider config: {config!r}")


def build_providers(settings: Settings) -> Dict[str, BaseProvider]:
    """Provider registry keyed by provider id."""
    return {config.provider_id: build_provider(config) for config in provider_configs(settings)}
