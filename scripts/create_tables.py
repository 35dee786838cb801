"""One-off helper to create the sync tables (brains, knowledge, sessions).

Usage (locally):

    export POSTGRES_HOST=... POSTGRES_USER=... POSTGRES_PASSWORD=... POSTGRES_DB=postgres
    python scripts/create_tables.py

Uses the same asyncpg engine as the service. Existing tables are left alone.
Use the direct connection port (5432); the Supabase pooler rejects DDL over
prepared statements.
"""

import asyncio
import sys
from pathlib import Path

from sqlalchemy import text

# Add project root to Python path so we can import pkg and app modules
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from app.core.config import settings  # noqa: E402
from app.core.logger import get_logger  # noqa: E402
from pkg.db_util.postgres_conn import PostgresConnection  # noqa: E402
from pkg.db_util.sql_alchemy.declarative_base import Base  # noqa: E402
from pkg.db_util.types import PostgresConfig  # noqa: E402

# Import model modules so tables are registered in Base.metadata
from app.sync.repository.sql_schema import brain as _brain  # noqa: E402,F401
from app.sync.repository.sql_schema import knowledge as _knowledge  # noqa: E402,F401
from app.sync.repository.sql_schema import session as _session  # noqa: E402,F401

logger = get_logger("create_tables")


async def main() -> int:
    if not settings.postgres_configured():
        print("❌ ERROR: set POSTGRES_HOST, POSTGRES_USER and POSTGRES_PASSWORD and re-run.")
        return 2

    conn = PostgresConnection(
        PostgresConfig(
            host=settings.POSTGRES_HOST,
            port=settings.POSTGRES_PORT,
            username=settings.POSTGRES_USER,
            password=settings.POSTGRES_PASSWORD,
            database=settings.POSTGRES_DB,
        ),
        logger,
    )
    engine = await conn.get_engine()
    try:
        print("\n🔨 Creating tables from SQLAlchemy metadata...")
        async with engine.begin() as connection:
            await connection.run_sync(Base.metadata.create_all)

        async with engine.connect() as connection:
            result = await connection.execute(text(
                "SELECT table_name FROM information_schema.tables "
                "WHERE table_schema = 'public' ORDER BY table_name"
            ))
            tables = [row[0] for row in result]
        print(f"✅ Tables in database: {', '.join(tables) or '(none)'}")
    finally:
        await conn.close_engine()
    return 0


if __name__ == '__main__':
    sys.exit(asyncio.run(main()))
