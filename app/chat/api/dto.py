from pydantic import BaseModel, Field
from typing import Any, Dict, List

from app.chat.entity.chat import ChatMessage, ChatSession, Persona


class SendMessageDTO(BaseModel):
    text: str = Field(..., description="User message text")


class PersonaUpdateDTO(BaseModel):
    persona: Persona


def session_payload(session: ChatSession) -> Dict[str, Any]:
    return session.model_dump(mode="json", by_alias=True, exclude_none=True)


def message_payload(message: ChatMessage) -> Dict[str, Any]:
    return message.model_dump(mode="json", by_alias=True, exclude_none=True)


def sessions_payload(sessions: List[ChatSession], active_session_id: str) -> Dict[str, Any]:
    return {
        "sessions": [session_payload(s) for s in sessions],
        "activeSessionId": active_session_id,
    }
