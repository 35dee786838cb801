from sqlalchemy.dialects import postgresql
from sqlalchemy.schema import CreateTable

from app.sync.repository.sql_schema.brain import BrainModel
from app.sync.repository.sql_schema.knowledge import KnowledgeModel
from app.sync.repository.sql_schema.session import SessionModel


def ddl(model) -> str:
    return str(CreateTable(model.__table__).compile(dialect=postgresql.dialect()))


def test_knowledge_rows_are_keyed_per_account():
    sql = ddl(KnowledgeModel)
    assert '"createdAt" BIGINT NOT NULL' in sql
    assert "PRIMARY KEY (user_id, id)" in sql


def test_sessions_store_messages_as_jsonb():
    sql = ddl(SessionModel)
    assert "messages JSONB NOT NULL" in sql
    assert '"updatedAt" BIGINT NOT NULL' in sql
    assert "PRIMARY KEY (user_id, id)" in sql


def test_brains_table():
    sql = ddl(BrainModel)
    assert "CREATE TABLE brains" in sql
    assert "password VARCHAR NOT NULL" in sql


def test_attribute_keys_map_to_camel_case_columns():
    assert KnowledgeModel.__table__.c.created_at.name == "createdAt"
    assert SessionModel.__table__.c.updated_at.name == "updatedAt"
