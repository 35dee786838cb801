"""Generate SQL CREATE TABLE statements from SQLAlchemy models.

This outputs pure SQL that you can paste into the Supabase SQL editor.

Usage:
    python scripts/generate_sql.py > create_tables.sql
"""

import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from sqlalchemy.dialects import postgresql  # noqa: E402
from sqlalchemy.schema import CreateIndex, CreateTable  # noqa: E402

from pkg.db_util.sql_alchemy.declarative_base import Base  # noqa: E402
from app.sync.repository.sql_schema import brain as _brain  # noqa: E402,F401
from app.sync.repository.sql_schema import knowledge as _knowledge  # noqa: E402,F401
from app.sync.repository.sql_schema import session as _session  # noqa: E402,F401


def generate_sql() -> str:
    """Render CREATE TABLE / CREATE INDEX statements for every registered model."""
    dialect = postgresql.dialect()
    statements = []
    for table in Base.metadata.sorted_tables:
        statements.append(str(CreateTable(table).compile(dialect=dialect)).strip() + ";")
        for index in sorted(table.indexes, key=lambda i: i.name or ""):
            statements.append(str(CreateIndex(index).compile(dialect=dialect)).strip() + ";")
    return "\n\n".join(statements) + "\n"


if __name__ == "__main__":
    print(generate_sql())
