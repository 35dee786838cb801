from contextlib import asynccontextmanager

import pytest
from sqlalchemy.dialects import postgresql

from app.chat.entity.chat import ChatSession
from app.knowledge.entity.knowledge import KnowledgeItem
from app.sync.repository.sync_repository import SyncRepository


class RecordingSession:
    """Stands in for an AsyncSession and keeps every executed statement."""

    def __init__(self):
        self.statements = []

    async def execute(self, stmt):
        self.statements.append(stmt)


@pytest.fixture
def db():
    return RecordingSession()


@pytest.fixture
def repository(db, logger):
    @asynccontextmanager
    async def session_factory():
        yield db

    return SyncRepository(session_factory, logger)


def compiled(stmt):
    return stmt.compile(dialect=postgresql.dialect())


@pytest.mark.asyncio
async def test_knowledge_push_is_a_plain_upsert(repository, db):
    await repository.upsert_knowledge("acme", [KnowledgeItem(id="k1", title="t", content="c", created_at=1)])

    assert len(db.statements) == 1
    sql = str(compiled(db.statements[0]))
    assert sql.startswith("INSERT INTO knowledge")
    assert "ON CONFLICT (user_id, id) DO UPDATE" in sql
    assert "DELETE" not in sql


@pytest.mark.asyncio
async def test_session_push_is_a_plain_upsert(repository, db):
    await repository.upsert_sessions("acme", [ChatSession(id="s1"), ChatSession(id="s2")])

    assert len(db.statements) == 1
    sql = str(compiled(db.statements[0]))
    assert sql.startswith("INSERT INTO sessions")
    assert '"updatedAt" = excluded."updatedAt"' in sql
    assert "DELETE" not in sql


@pytest.mark.asyncio
async def test_empty_push_touches_nothing(repository, db):
    await repository.upsert_knowledge("acme", [])
    await repository.upsert_sessions("acme", [])

    assert db.statements == []


@pytest.mark.asyncio
async def test_delete_targets_one_row_of_one_account(repository, db):
    await repository.delete_session("acme", "s1")
    await repository.delete_knowledge("acme", "k1")

    session_delete, knowledge_delete = (compiled(stmt) for stmt in db.statements)
    assert str(session_delete).startswith("DELETE FROM sessions WHERE sessions.user_id = ")
    assert "sessions.id = " in str(session_delete)
    assert "NOT IN" not in str(session_delete)
    assert sorted(session_delete.params.values()) == ["acme", "s1"]
    assert sorted(knowledge_delete.params.values()) == ["acme", "k1"]
