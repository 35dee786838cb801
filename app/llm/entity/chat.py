# app/llm/entity/chat.py
"""
Wire and result models for the chat proxy.
"""

from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ErrorKind(str, Enum):
    AUTH = "AuthError"
    RATE_LIMITED = "RateLimited"
    MODEL_UNAVAILABLE = "ModelUnavailable"
    TRANSIENT = "TransientError"
    EMPTY_RESPONSE = "EmptyResponse"


class Part(BaseModel):
    text: str = ""


class Content(BaseModel):
    role: Literal["user", "model"]
    parts: List[Part] = Field(default_factory=list)

    @property
    def text(self) -> str:
        """All text parts joined, for providers that expect a single string."""
        return "\n".join(p.text for p in self.parts if p.text)


class ChatRequest(BaseModel):
    """ChatRequest as posted by the client: ``{contents, systemInstruction}``."""
    model_config = ConfigDict(populate_by_name=True)

    contents: List[Content]
    system_instruction: Optional[str] = Field(default=None, alias="systemInstruction")

    @field_validator("system_instruction", mode="before")
    @classmethod
    def _flatten_instruction(cls, value):
        # Gemini-style {"parts": [{"text": ...}]} is accepted as well as a plain string.
        if isinstance(value, dict):
            parts = value.get("parts") or []
            return "\n".join(p.get("text", "") for p in parts if isinstance(p, dict))
        return value


class ChatResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    text: str
    used_provider: str = Field(alias="usedProvider")
    used_model: str = Field(alias="usedModel")


class AttemptRecord(BaseModel):
    candidate: str
    provider: str
    model: str
    error_kind: ErrorKind = Field(serialization_alias="errorKind")
    message: str


class ChatFailure(BaseModel):
    error_kind: ErrorKind
    message: str
    attempted_candidates: List[AttemptRecord] = Field(default_factory=list)
    aborted: bool = False

    def summary(self) -> str:
        return "; ".join(f"{a.candidate} -> {a.error_kind.value}: {a.message}" for a in self.attempted_candidates)
