from sqlalchemy import BigInteger, Column, String
from sqlalchemy.dialects.postgresql import JSONB

from pkg.db_util.sql_alchemy.declarative_base import Base


class SessionModel(Base):
    __tablename__ = "sessions"

    user_id = Column(String, primary_key=True, index=True)
    id = Column(String, primary_key=True)
    title = Column(String, nullable=False)
    messages = Column(JSONB, nullable=False, default=list)
    persona = Column(String, nullable=False, default="general")
    updated_at = Column("updatedAt", BigInteger, key="updated_at", nullable=False)
