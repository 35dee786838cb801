import logging
from dataclasses import dataclass
from typing import Optional

from app.chat.service.session_service import ChatSessionService
from app.knowledge.service.knowledge_service import KnowledgeService
from app.store.local_store import PASSWORD_KEY, USER_ID_KEY, LocalStateStore
from app.sync.service.sync_service import IRemoteSyncStore, SyncPullError, SyncService


class InvalidCredentialsError(Exception):
    pass


class AccountUnavailableError(Exception):
    """The account directory could not be reached or is not configured."""


@dataclass
class LoginResult:
    account_id: str
    created: bool


class AccountService:
    """
    Account check against the ``brains`` directory.

    Passwords are stored and compared in plaintext, both remotely and in the
    local state store.
    """

    def __init__(
        self,
        remote: Optional[IRemoteSyncStore],
        store: LocalStateStore,
        sync: SyncService,
        knowledge_service: KnowledgeService,
        session_service: ChatSessionService,
        logger: logging.Logger,
    ):
        self.remote = remote
        self.store = store
        self.sync = sync
        self.knowledge_service = knowledge_service
        self.session_service = session_service
        self.logger = logger

    @property
    def authorized_account(self) -> Optional[str]:
        return self.sync.account_id

    async def login(self, account_id: str, password: str) -> LoginResult:
        if not account_id or not password:
            raise ValueError("Account ID and password are required")
        if self.remote is None:
            raise AccountUnavailableError("Remote sync is not configured")

        try:
            stored = await self.remote.get_account_password(account_id)
            created = False
            if stored is None:
                await self.remote.create_account(account_id, password)
                created = True
            elif stored != password:
                raise InvalidCredentialsError("Wrong password for this account ID")
        except InvalidCredentialsError:
            raise
        except Exception as e:
            self.logger.error(f"Account lookup failed for {account_id}: {e}")
            raise AccountUnavailableError(str(e)) from e

        await self._authorize(account_id)
        await self.store.set(USER_ID_KEY, account_id)
        await self.store.set(PASSWORD_KEY, password)
        return LoginResult(account_id=account_id, created=created)

    async def verify_stored(self) -> bool:
        """Re-check stored credentials (startup). Authorizes sync on a match."""
        account_id = await self.store.get(USER_ID_KEY)
        password = await self.store.get(PASSWORD_KEY)
        if not account_id or not password or self.remote is None:
            return False
        try:
            stored = await self.remote.get_account_password(account_id)
        except Exception as e:
            self.logger.error(f"Could not verify stored account {account_id}: {e}")
            return False
        if stored is None or stored != password:
            self.logger.warning(f"Stored credentials for {account_id} are no longer valid")
            return False
        try:
            await self._authorize(account_id)
        except AccountUnavailableError:
            return False
        return True

    async def logout(self) -> None:
        await self.store.delete(USER_ID_KEY)
        await self.store.delete(PASSWORD_KEY)
        self.sync.deauthorize()

    async def _authorize(self, account_id: str) -> None:
        self.sync.authorize(account_id)
        try:
            knowledge, sessions = await self.sync.pull()
        except SyncPullError as e:
            # No pushes for an account whose remote state was not loaded.
            self.sync.deauthorize()
            raise AccountUnavailableError(f"Could not load synced data: {e}") from e
        # Remote wins only when it holds data; an empty remote keeps local state.
        if knowledge:
            await self.knowledge_service.replace_all(knowledge, push=False)
        if sessions:
            await self.session_service.replace_all(sessions, push=False)
        self.logger.info(f"Account {account_id} authorized")
