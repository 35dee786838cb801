# app/chat/entity/chat.py
"""
Chat session models.

Field aliases match the stored JSON (``isThinking``, ``updatedAt``) so state
written by earlier clients stays readable.
"""

import time
import uuid
from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


DEFAULT_SESSION_ID = "default"
DEFAULT_SESSION_TITLE = "New chat"
# Titles that still count as unnamed, including the one older clients stored.
DEFAULT_SESSION_TITLES = frozenset({DEFAULT_SESSION_TITLE, "Новый чат"})
GREETING_TEXT = (
    "Hi! I'm Business Mind, your strategic partner. I have studied your knowledge base. "
    "What would you like to discuss?"
)
NEW_SESSION_GREETING = "Hi. I started a new chat. How can I help?"


def now_ms() -> int:
    return int(time.time() * 1000)


def new_id() -> str:
    return uuid.uuid4().hex


class Persona(str, Enum):
    GENERAL = "general"
    STRATEGIST = "strategist"
    MARKETER = "marketer"
    INVESTOR = "investor"
    SKEPTIC = "skeptic"


class ChatMessage(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str = Field(default_factory=new_id)
    role: Literal["user", "model"]
    text: str
    timestamp: int = Field(default_factory=now_ms)
    is_thinking: Optional[bool] = Field(default=None, alias="isThinking")


class ChatSession(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=new_id)
    title: str = DEFAULT_SESSION_TITLE
    messages: List[ChatMessage] = Field(default_factory=list)
    persona: Persona = Persona.GENERAL
    updated_at: int = Field(default_factory=now_ms, alias="updatedAt")


def greeting_message(message_id: Optional[str] = None, text: str = GREETING_TEXT) -> ChatMessage:
    return ChatMessage(id=message_id or new_id(), role="model", text=text)


def default_session() -> ChatSession:
    """Initial state when nothing is stored yet."""
    return ChatSession(id=DEFAULT_SESSION_ID, messages=[greeting_message("init")])
