from sqlalchemy import Column, String

from pkg.db_util.sql_alchemy.declarative_base import Base


class BrainModel(Base):
    """Account directory. The password is stored and compared in plaintext."""
    __tablename__ = "brains"

    id = Column(String, primary_key=True)
    password = Column(String, nullable=False)
