# app/llm/service/provider/base_provider.py
from abc import ABC, abstractmethod

from app.llm.entity.chat import ChatRequest


class BaseProvider(ABC):
    """Abstract base provider for all LLM integrations."""

    name: str = "base"

    @abstractmethod
    async def generate(self, request: ChatRequest, model: str) -> str:
        """
        Send one chat request to ``model`` and return its text.

        Raises a ``ProviderError`` subclass on any failure, including an
        empty reply (``EmptyResponse``).
        """
        pass

    def is_enabled(self) -> bool:
        """Whether this provider is usable (e.g., API key present)."""
        return True

    async def aclose(self) -> None:
        """Release network resources held by the provider."""
        return None
