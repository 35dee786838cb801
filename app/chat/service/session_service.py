import asyncio
import logging
from typing import Callable, List, Optional, Set, Tuple

from app.chat.entity.chat import (
    DEFAULT_SESSION_TITLES,
    NEW_SESSION_GREETING,
    ChatMessage,
    ChatSession,
    Persona,
    default_session,
    greeting_message,
    now_ms,
)
from app.chat.service.chat_client import ChatClient
from app.knowledge.service.knowledge_service import KnowledgeService
from app.store.local_store import ACTIVE_SESSION_KEY, SESSIONS_KEY, LocalStateStore
from app.sync.service.sync_service import SyncService


TITLE_MAX_CHARS = 30


class SessionNotFoundError(LookupError):
    pass


class MessagePendingError(RuntimeError):
    """A reply is still outstanding for this session."""


def derive_title(title: str, messages: List[ChatMessage]) -> str:
    """Name a session after its first user message while it still has the default title."""
    if title not in DEFAULT_SESSION_TITLES or len(messages) <= 1:
        return title
    first_user = next((m for m in messages if m.role == "user"), None)
    if first_user is None:
        return title
    text = first_user.text
    return text[:TITLE_MAX_CHARS] + ("..." if len(text) > TITLE_MAX_CHARS else "")


class ChatSessionService:
    """
    Chat sessions kept in the local state store.

    Every mutation is written locally first and then scheduled for remote
    sync. Mutations are serialized by a lock; the lock is not held while
    waiting for the model.
    """

    def __init__(
        self,
        store: LocalStateStore,
        knowledge_service: KnowledgeService,
        chat_client: ChatClient,
        sync: SyncService,
        logger: logging.Logger,
    ):
        self.store = store
        self.knowledge_service = knowledge_service
        self.chat_client = chat_client
        self.sync = sync
        self.logger = logger
        self._lock = asyncio.Lock()
        self._pending: Set[str] = set()

    # State access

    async def list_sessions(self) -> List[ChatSession]:
        raw = await self.store.get_json(SESSIONS_KEY)
        if not raw:
            return [default_session()]
        return [ChatSession.model_validate(s) for s in raw]

    async def replace_all(self, sessions: List[ChatSession], push: bool = True) -> None:
        await self.store.set_json(SESSIONS_KEY, [s.model_dump(mode="json", by_alias=True, exclude_none=True) for s in sessions])
        if push:
            self.sync.schedule_sessions_push(sessions)

    async def get_active_session_id(self) -> str:
        sessions = await self.list_sessions()
        active = await self.store.get(ACTIVE_SESSION_KEY)
        if active and any(s.id == active for s in sessions):
            return active
        return sessions[0].id

    async def get_session(self, session_id: str) -> ChatSession:
        for session in await self.list_sessions():
            if session.id == session_id:
                return session
        raise SessionNotFoundError(session_id)

    def is_pending(self, session_id: str) -> bool:
        return session_id in self._pending

    # Mutations

    async def _mutate(self, session_id: str, change: Callable[[ChatSession], ChatSession]) -> ChatSession:
        async with self._lock:
            sessions = await self.list_sessions()
            for index, session in enumerate(sessions):
                if session.id == session_id:
                    sessions[index] = change(session)
                    await self.replace_all(sessions)
                    return sessions[index]
        raise SessionNotFoundError(session_id)

    async def create_session(self) -> ChatSession:
        session = ChatSession(messages=[greeting_message(text=NEW_SESSION_GREETING)])
        async with self._lock:
            sessions = await self.list_sessions()
            await self.replace_all([session] + sessions)
            await self.store.set(ACTIVE_SESSION_KEY, session.id)
        return session

    async def delete_session(self, session_id: str) -> str:
        """Delete a session and return the id of the session that is active afterwards."""
        async with self._lock:
            sessions = await self.list_sessions()
            remaining = [s for s in sessions if s.id != session_id]
            if len(remaining) == len(sessions):
                raise SessionNotFoundError(session_id)
            active = await self.store.get(ACTIVE_SESSION_KEY)
            fresh = None
            if not remaining:
                fresh = ChatSession(messages=[greeting_message(text=NEW_SESSION_GREETING)])
                remaining = [fresh]
                active = fresh.id
            elif active == session_id or not any(s.id == active for s in remaining):
                active = remaining[0].id
            await self.replace_all(remaining, push=False)
            self.sync.schedule_session_delete(session_id)
            if fresh is not None:
                self.sync.schedule_sessions_push([fresh])
            await self.store.set(ACTIVE_SESSION_KEY, active)
        return active

    async def select_session(self, session_id: str) -> ChatSession:
        session = await self.get_session(session_id)
        await self.store.set(ACTIVE_SESSION_KEY, session_id)
        return session

    async def update_persona(self, session_id: str, persona: Persona) -> ChatSession:
        return await self._mutate(
            session_id,
            lambda s: s.model_copy(update={"persona": Persona(persona), "updated_at": now_ms()}),
        )

    async def send_message(self, text: str, session_id: Optional[str] = None) -> Tuple[ChatSession, ChatMessage]:
        """
        Append the user's message, ask the model, append its reply.

        The chat client never raises, so a failed call still produces a
        model message carrying the error text.
        """
        if not text or not text.strip():
            raise ValueError("Message text is required")
        session_id = session_id or await self.get_active_session_id()
        if session_id in self._pending:
            raise MessagePendingError(session_id)

        self._pending.add(session_id)
        try:
            session = await self.get_session(session_id)
            history = list(session.messages)
            user_message = ChatMessage(role="user", text=text)
            await self._mutate(session_id, lambda s: _with_messages(s, s.messages + [user_message]))

            knowledge = await self.knowledge_service.list_items()
            reply_text = await self.chat_client.send_message(text, history, knowledge, session.persona)
            reply = ChatMessage(role="model", text=reply_text)

            updated = await self._mutate(session_id, lambda s: _with_messages(s, s.messages + [reply]))
            return updated, reply
        finally:
            self._pending.discard(session_id)


def _with_messages(session: ChatSession, messages: List[ChatMessage]) -> ChatSession:
    return session.model_copy(update={
        "messages": messages,
        "title": derive_title(session.title, messages),
        "updated_at": now_ms(),
    })
