import asyncio
import logging
from abc import ABC, abstractmethod
from typing import List, Optional, Set, Tuple

from app.chat.entity.chat import ChatSession
from app.knowledge.entity.knowledge import KnowledgeItem


class SyncPullError(Exception):
    """Remote state could not be read for the authorized account."""


class IRemoteSyncStore(ABC):
    @abstractmethod
    async def get_account_password(self, account_id: str) -> Optional[str]:
        """Stored password for the account, or None if the account does not exist."""
        pass

    @abstractmethod
    async def create_account(self, account_id: str, password: str) -> None:
        pass

    @abstractmethod
    async def fetch_knowledge(self, account_id: str) -> List[KnowledgeItem]:
        pass

    @abstractmethod
    async def fetch_sessions(self, account_id: str) -> List[ChatSession]:
        pass

    @abstractmethod
    async def upsert_knowledge(self, account_id: str, items: List[KnowledgeItem]) -> None:
        """Insert or overwrite each item by id. Rows not listed are left alone."""
        pass

    @abstractmethod
    async def upsert_sessions(self, account_id: str, sessions: List[ChatSession]) -> None:
        pass

    @abstractmethod
    async def delete_knowledge(self, account_id: str, item_id: str) -> None:
        pass

    @abstractmethod
    async def delete_session(self, account_id: str, session_id: str) -> None:
        pass


class SyncService:
    """
    Best-effort mirror of local state into the remote store.

    Pushes and deletes run as background tasks and never fail the caller;
    errors are logged. Pushes only upsert, so rows written by another
    device survive. Last write wins per id.
    """

    def __init__(self, remote: Optional[IRemoteSyncStore], logger: logging.Logger):
        self.remote = remote
        self.logger = logger
        self.account_id: Optional[str] = None
        self._tasks: Set[asyncio.Task] = set()

    @property
    def enabled(self) -> bool:
        return self.remote is not None

    @property
    def active(self) -> bool:
        return self.remote is not None and self.account_id is not None

    def authorize(self, account_id: str) -> None:
        self.account_id = account_id

    def deauthorize(self) -> None:
        self.account_id = None

    async def pull(self) -> Tuple[Optional[List[KnowledgeItem]], Optional[List[ChatSession]]]:
        """
        Fetch remote state; ``(None, None)`` when inactive.

        Raises SyncPullError when the remote cannot be read.
        """
        if not self.active:
            return None, None
        try:
            knowledge = await self.remote.fetch_knowledge(self.account_id)
            sessions = await self.remote.fetch_sessions(self.account_id)
        except Exception as e:
            self.logger.error(f"Sync pull failed for {self.account_id}: {e}")
            raise SyncPullError(str(e)) from e
        self.logger.info(f"Pulled {len(knowledge)} knowledge item(s) and {len(sessions)} session(s) for {self.account_id}")
        return knowledge, sessions

    async def push_knowledge(self, items: List[KnowledgeItem]) -> None:
        if not self.active:
            return
        try:
            await self.remote.upsert_knowledge(self.account_id, items)
        except Exception as e:
            self.logger.error(f"Knowledge sync failed: {e}")

    async def push_sessions(self, sessions: List[ChatSession]) -> None:
        if not self.active:
            return
        try:
            await self.remote.upsert_sessions(self.account_id, sessions)
        except Exception as e:
            self.logger.error(f"Session sync failed: {e}")

    async def delete_knowledge(self, item_id: str) -> None:
        if not self.active:
            return
        try:
            await self.remote.delete_knowledge(self.account_id, item_id)
        except Exception as e:
            self.logger.error(f"Knowledge delete sync failed for {item_id}: {e}")

    async def delete_session(self, session_id: str) -> None:
        if not self.active:
            return
        try:
            await self.remote.delete_session(self.account_id, session_id)
        except Exception as e:
            self.logger.error(f"Session delete sync failed for {session_id}: {e}")

    def schedule_knowledge_push(self, items: List[KnowledgeItem]) -> None:
        if self.active:
            self._spawn(self.push_knowledge(list(items)))

    def schedule_sessions_push(self, sessions: List[ChatSession]) -> None:
        if self.active:
            self._spawn(self.push_sessions([s.model_copy(deep=True) for s in sessions]))

    def schedule_knowledge_delete(self, item_id: str) -> None:
        if self.active:
            self._spawn(self.delete_knowledge(item_id))

    def schedule_session_delete(self, session_id: str) -> None:
        if self.active:
            self._spawn(self.delete_session(session_id))

    def _spawn(self, coro) -> None:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def wait_for_pending(self) -> None:
        """Await every in-flight push (shutdown and tests)."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))
