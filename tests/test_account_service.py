import pytest

from app.account.service.account_service import (
    AccountService,
    AccountUnavailableError,
    InvalidCredentialsError,
)
from app.chat.entity.chat import ChatSession
from app.chat.service.session_service import ChatSessionService
from app.knowledge.entity.knowledge import KnowledgeItem
from app.knowledge.service.knowledge_service import KnowledgeService
from app.store.local_store import PASSWORD_KEY, USER_ID_KEY, InMemoryStateStore
from app.sync.service.sync_service import SyncService
from conftest import FakeRemote


class Context:
    def __init__(self, remote, logger):
        self.remote = remote
        self.store = InMemoryStateStore()
        self.sync = SyncService(remote, logger)
        self.knowledge = KnowledgeService(self.store, self.sync, logger)
        self.sessions = ChatSessionService(self.store, self.knowledge, None, self.sync, logger)
        self.accounts = AccountService(remote, self.store, self.sync, self.knowledge, self.sessions, logger)


@pytest.fixture
def remote():
    return FakeRemote()


@pytest.fixture
def ctx(remote, logger):
    return Context(remote, logger)


@pytest.mark.asyncio
async def test_unknown_id_creates_the_account(ctx, remote):
    result = await ctx.accounts.login("acme", "s3cret")

    assert result.created is True
    assert remote.passwords == {"acme": "s3cret"}
    assert ctx.accounts.authorized_account == "acme"
    assert ctx.store.data[USER_ID_KEY] == "acme"
    assert ctx.store.data[PASSWORD_KEY] == "s3cret"


@pytest.mark.asyncio
async def test_wrong_password_is_rejected_without_authorizing(ctx, remote):
    remote.passwords["acme"] = "right"

    with pytest.raises(InvalidCredentialsError):
        await ctx.accounts.login("acme", "wrong")

    assert ctx.accounts.authorized_account is None
    assert USER_ID_KEY not in ctx.store.data


@pytest.mark.asyncio
async def test_login_pulls_remote_state_into_local_store(ctx, remote):
    remote.passwords["acme"] = "right"
    remote.knowledge["acme"] = [KnowledgeItem(id="r1", title="Remote note", content="From the cloud")]
    remote.sessions["acme"] = [ChatSession(id="s1", title="Remote chat")]

    result = await ctx.accounts.login("acme", "right")

    assert result.created is False
    assert [i.id for i in await ctx.knowledge.list_items()] == ["r1"]
    assert [s.id for s in await ctx.sessions.list_sessions()] == ["s1"]


@pytest.mark.asyncio
async def test_empty_remote_keeps_local_state(ctx, remote):
    remote.passwords["acme"] = "right"
    await ctx.knowledge.add_item("Local", "Only here")

    await ctx.accounts.login("acme", "right")

    assert (await ctx.knowledge.list_items())[0].title == "Local"


@pytest.mark.asyncio
async def test_missing_fields_are_rejected(ctx):
    with pytest.raises(ValueError):
        await ctx.accounts.login("", "pw")


@pytest.mark.asyncio
async def test_unreachable_directory_is_unavailable(ctx, remote):
    remote.fail = True
    with pytest.raises(AccountUnavailableError):
        await ctx.accounts.login("acme", "pw")


@pytest.mark.asyncio
async def test_login_without_remote_is_unavailable(logger):
    ctx = Context(None, logger)
    with pytest.raises(AccountUnavailableError):
        await ctx.accounts.login("acme", "pw")


@pytest.mark.asyncio
async def test_stored_credentials_are_verified_on_startup(ctx, remote):
    remote.passwords["acme"] = "right"
    ctx.store.data.update({USER_ID_KEY: "acme", PASSWORD_KEY: "right"})

    assert await ctx.accounts.verify_stored() is True
    assert ctx.accounts.authorized_account == "acme"


@pytest.mark.asyncio
async def test_stale_stored_credentials_are_not_trusted(ctx, remote):
    remote.passwords["acme"] = "changed"
    ctx.store.data.update({USER_ID_KEY: "acme", PASSWORD_KEY: "right"})

    assert await ctx.accounts.verify_stored() is False
    assert ctx.accounts.authorized_account is None


@pytest.mark.asyncio
async def test_logout_clears_credentials_and_stops_sync(ctx):
    await ctx.accounts.login("acme", "pw")

    await ctx.accounts.logout()

    assert ctx.accounts.authorized_account is None
    assert USER_ID_KEY not in ctx.store.data
    assert ctx.sync.active is False


@pytest.mark.asyncio
async def test_failed_pull_after_login_does_not_authorize_sync(ctx, remote):
    remote.passwords["acme"] = "right"
    remote.sessions["acme"] = [ChatSession(id="phone", title="From the phone")]
    remote.fetch_fail = True

    with pytest.raises(AccountUnavailableError):
        await ctx.accounts.login("acme", "right")

    assert ctx.sync.active is False
    assert USER_ID_KEY not in ctx.store.data

    await ctx.sessions.create_session()
    await ctx.sync.wait_for_pending()
    assert [s.id for s in remote.sessions["acme"]] == ["phone"]


@pytest.mark.asyncio
async def test_failed_pull_on_startup_is_not_trusted(ctx, remote):
    remote.passwords["acme"] = "right"
    remote.fetch_fail = True
    ctx.store.data.update({USER_ID_KEY: "acme", PASSWORD_KEY: "right"})

    assert await ctx.accounts.verify_stored() is False
    assert ctx.sync.active is False
