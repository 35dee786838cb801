from sqlalchemy import BigInteger, Column, String, Text

from pkg.db_util.sql_alchemy.declarative_base import Base


class KnowledgeModel(Base):
    __tablename__ = "knowledge"

    # Composite key: item ids are only unique per account.
    user_id = Column(String, primary_key=True, index=True)
    id = Column(String, primary_key=True)
    title = Column(String, nullable=False)
    type = Column(String, nullable=False, default="note")
    content = Column(Text, nullable=False, default="")
    created_at = Column("createdAt", BigInteger, key="created_at", nullable=False)
