# app/llm/entity/provider_config.py
"""
Provider configuration models.

Each provider family is a tagged variant of ``ProviderConfig``; the ``kind``
field selects how the adapter shapes requests and where the system
instruction goes.
"""

from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class GeminiConfig(BaseModel):
    kind: Literal["gemini"] = "gemini"
    provider_id: str = "gemini"
    api_key: Optional[str] = None
    endpoint: str = "https://generativelanguage.googleapis.com"
    # Models without systemInstruction support get a fabricated user/model turn pair instead.
    legacy_models: List[str] = Field(default_factory=list)
    temperature: float = 0.7
    max_output_tokens: Optional[int] = None


class OpenAICompatConfig(BaseModel):
    """OpenAI chat-completions wire format: OpenAI, Groq, DeepSeek."""
    kind: Literal["openai"] = "openai"
    provider_id: str = "openai"
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    temperature: float = 0.7
    max_tokens: Optional[int] = None


class AnthropicConfig(BaseModel):
    kind: Literal["anthropic"] = "anthropic"
    provider_id: str = "anthropic"
    api_key: Optional[str] = None
    temperature: float = 0.7
    max_tokens: int = 2048


class OllamaConfig(BaseModel):
    kind: Literal["ollama"] = "ollama"
    provider_id: str = "ollama"
    enabled: bool = False
    base_url: str = "http://localhost:11434"
    temperature: float = 0.7


ProviderConfig = Annotated[
    Union[GeminiConfig, OpenAICompatConfig, AnthropicConfig, OllamaConfig],
    Field(discriminator="kind"),
]


class ProviderCandidate(BaseModel):
    """One (provider, model) pair in the ordered fallback list."""
    model_config = ConfigDict(frozen=True, populate_by_name=True, protected_namespaces=())

    provider_id: str = Field(alias="providerId")
    model_id: str = Field(alias="modelId")
    priority: int = 0

    @property
    def candidate_id(self) -> str:
        return f"{self.provider_id}:{self.model_id}"
