import logging
from typing import Dict, List, Optional, Union

import pytest

from app.chat.entity.chat import ChatSession
from app.knowledge.entity.knowledge import KnowledgeItem
from app.llm.entity.chat import ChatRequest, Content, Part
from app.llm.entity.provider_config import ProviderCandidate
from app.llm.service.provider.base_provider import BaseProvider
from app.sync.service.sync_service import IRemoteSyncStore


class FakeProvider(BaseProvider):
    """Scripted provider: per-model reply text or exception to raise."""

    def __init__(self, name: str, outcomes: Dict[str, Union[str, Exception]] = None, enabled: bool = True):
        self.name = name
        self.outcomes = outcomes or {}
        self.enabled = enabled
        self.calls: List[str] = []

    def is_enabled(self) -> bool:
        return self.enabled

    async def generate(self, request: ChatRequest, model: str) -> str:
        self.calls.append(model)
        outcome = self.outcomes.get(model, "ok")
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class FakeRemote(IRemoteSyncStore):
    """In-memory account directory and sync tables."""

    def __init__(self):
        self.passwords: Dict[str, str] = {}
        self.knowledge: Dict[str, List[KnowledgeItem]] = {}
        self.sessions: Dict[str, List[ChatSession]] = {}
        self.fail = False
        self.fetch_fail = False

    async def get_account_password(self, account_id: str) -> Optional[str]:
        if self.fail:
            raise ConnectionError("database unreachable")
        return self.passwords.get(account_id)

    async def create_account(self, account_id: str, password: str) -> None:
        self.passwords[account_id] = password

    async def fetch_knowledge(self, account_id: str) -> List[KnowledgeItem]:
        if self.fetch_fail:
            raise ConnectionError("database unreachable")
        return list(self.knowledge.get(account_id, []))

    async def fetch_sessions(self, account_id: str) -> List[ChatSession]:
        return list(self.sessions.get(account_id, []))

    async def upsert_knowledge(self, account_id: str, items: List[KnowledgeItem]) -> None:
        if self.fail:
            raise ConnectionError("database unreachable")
        self.knowledge[account_id] = _upsert(self.knowledge.get(account_id, []), items)

    async def upsert_sessions(self, account_id: str, sessions: List[ChatSession]) -> None:
        if self.fail:
            raise ConnectionError("database unreachable")
        self.sessions[account_id] = _upsert(self.sessions.get(account_id, []), sessions)

    async def delete_knowledge(self, account_id: str, item_id: str) -> None:
        if self.fail:
            raise ConnectionError("database unreachable")
        self.knowledge[account_id] = [i for i in self.knowledge.get(account_id, []) if i.id != item_id]

    async def delete_session(self, account_id: str, session_id: str) -> None:
        if self.fail:
            raise ConnectionError("database unreachable")
        self.sessions[account_id] = [s for s in self.sessions.get(account_id, []) if s.id != session_id]


def _upsert(existing: list, incoming: list) -> list:
    """Overwrite rows by id in place; new ids go to the end."""
    by_id = {row.id: row for row in incoming}
    merged = [by_id.pop(row.id, row) for row in existing]
    return merged + [row for row in incoming if row.id in by_id]


def make_request(text: str = "Hello", system: str = None) -> ChatRequest:
    return ChatRequest(contents=[Content(role="user", parts=[Part(text=text)])], system_instruction=system)


def candidates(*pairs: str) -> List[ProviderCandidate]:
    result = []
    for index, pair in enumerate(pairs):
        provider_id, model_id = pair.split(":", 1)
        result.append(ProviderCandidate(provider_id=provider_id, model_id=model_id, priority=index))
    return result


@pytest.fixture
def logger() -> logging.Logger:
    return logging.getLogger("tests")
