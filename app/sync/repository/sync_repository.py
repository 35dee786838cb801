import logging
from typing import List, Optional

from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert as pg_insert

from app.chat.entity.chat import ChatSession
from app.knowledge.entity.knowledge import KnowledgeItem
from app.sync.repository.sql_schema.brain import BrainModel
from app.sync.repository.sql_schema.knowledge import KnowledgeModel
from app.sync.repository.sql_schema.session import SessionModel
from app.sync.service.sync_service import IRemoteSyncStore


class SyncRepository(IRemoteSyncStore):
    def __init__(self, db_session_factory, logger: logging.Logger):
        self.db_session_factory = db_session_factory
        self.logger = logger

    async def get_account_password(self, account_id: str) -> Optional[str]:
        async with self.db_session_factory() as session:
            result = await session.execute(select(BrainModel.password).where(BrainModel.id == account_id))
            return result.scalar_one_or_none()

    async def create_account(self, account_id: str, password: str) -> None:
        async with self.db_session_factory() as session:
            async with session.begin():
                session.add(BrainModel(id=account_id, password=password))
        self.logger.info(f"Created account {account_id}")

    async def fetch_knowledge(self, account_id: str) -> List[KnowledgeItem]:
        async with self.db_session_factory() as session:
            result = await session.execute(
                select(KnowledgeModel)
                .where(KnowledgeModel.user_id == account_id)
                .order_by(KnowledgeModel.created_at.desc())
            )
            return [
                KnowledgeItem(id=row.id, title=row.title, type=row.type, content=row.content, created_at=row.created_at)
                for row in result.scalars().all()
            ]

    async def fetch_sessions(self, account_id: str) -> List[ChatSession]:
        async with self.db_session_factory() as session:
            result = await session.execute(
                select(SessionModel)
                .where(SessionModel.user_id == account_id)
                .order_by(SessionModel.updated_at.desc())
            )
            return [
                ChatSession(
                    id=row.id,
                    title=row.title,
                    messages=row.messages or [],
                    persona=row.persona,
                    updated_at=row.updated_at,
                )
                for row in result.scalars().all()
            ]

    async def upsert_knowledge(self, account_id: str, items: List[KnowledgeItem]) -> None:
        if not items:
            return
        rows = [
            {
                "user_id": account_id,
                "id": item.id,
                "title": item.title,
                "type": item.type.value,
                "content": item.content,
                "created_at": item.created_at,
            }
            for item in items
        ]
        stmt = pg_insert(KnowledgeModel).values(rows)
        stmt = stmt.on_conflict_do_update(
            index_elements=[KnowledgeModel.user_id, KnowledgeModel.id],
            set_={
                "title": stmt.excluded.title,
                "type": stmt.excluded.type,
                "content": stmt.excluded.content,
                "created_at": stmt.excluded.created_at,
            },
        )
        async with self.db_session_factory() as session:
            await session.execute(stmt)

    async def upsert_sessions(self, account_id: str, sessions: List[ChatSession]) -> None:
        if not sessions:
            return
        rows = [
            {
                "user_id": account_id,
                "id": s.id,
                "title": s.title,
                "messages": [m.model_dump(by_alias=True, exclude_none=True) for m in s.messages],
                "persona": s.persona.value,
                "updated_at": s.updated_at,
            }
            for s in sessions
        ]
        stmt = pg_insert(SessionModel).values(rows)
        stmt = stmt.on_conflict_do_update(
            index_elements=[SessionModel.user_id, SessionModel.id],
            set_={
                "title": stmt.excluded.title,
                "messages": stmt.excluded.messages,
                "persona": stmt.excluded.persona,
                "updated_at": stmt.excluded.updated_at,
            },
        )
        async with self.db_session_factory() as session:
            await session.execute(stmt)

    async def delete_knowledge(self, account_id: str, item_id: str) -> None:
        async with self.db_session_factory() as session:
            await session.execute(
                delete(KnowledgeModel).where(KnowledgeModel.user_id == account_id, KnowledgeModel.id == item_id)
            )

    async def delete_session(self, account_id: str, session_id: str) -> None:
        async with self.db_session_factory() as session:
            await session.execute(
                delete(SessionModel).where(SessionModel.user_id == account_id, SessionModel.id == session_id)
            )
