from typing import Dict, Optional, AsyncGenerator
from contextlib import asynccontextmanager
import urllib.parse
import asyncio
import logging
from pkg.db_util.types import PostgresConfig
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, AsyncEngine, async_sessionmaker
from sqlalchemy.exc import SQLAlchemyError


# Module-level cache: one engine per database URL
_engine_cache: Dict[str, AsyncEngine] = {}
_sessionmaker_cache: Dict[str, async_sessionmaker] = {}


class PostgresConnection:

    def __init__(self, db_config: PostgresConfig, logger: logging.Logger):
        self.logger = logger
        self.db_config = db_config
        self._db_url: Optional[str] = None

    @staticmethod
    def _generate_db_url_from_config(db_config: PostgresConfig) -> str:
        """Generate database URL from config (used as cache key)."""
        if not db_config.host:
            raise ValueError("Database host configuration is missing.")

        encoded_password = urllib.parse.quote_plus(db_config.password) if db_config.password else ''
        # prepared_statement_cache_size=0 keeps the Supabase pooler (PgBouncer) happy
        return (
            f"postgresql+asyncpg://{db_config.username}:{encoded_password}"
            f"@{db_config.host}:{db_config.port}/{db_config.database}?prepared_statement_cache_size=0"
        )

    def get_db_url(self) -> str:
        if self._db_url is None:
            self._db_url = self._generate_db_url_from_config(self.db_config)
        return self._db_url

    async def get_engine(self, max_retries: int = 3, initial_delay: float = 2.0) -> AsyncEngine:
        """Get or create the cached engine, retrying with exponential backoff."""
        db_url = self.get_db_url()
        if db_url in _engine_cache:
            return _engine_cache[db_url]

        self.logger.info("Database engine not initialized. Creating new engine...")
        pool_opts = {
            "pool_size": self.db_config.pool_size,
            "max_overflow": self.db_config.max_overflow,
            "pool_timeout": self.db_config.pool_timeout,
            "pool_recycle": self.db_config.pool_recycle,
            "pool_pre_ping": True,
        }

        last_error = None
        for attempt in range(max_retries):
            try:
                engine = create_async_engine(
                    db_url,
                    echo=False,
                    connect_args={
                        "timeout": 15,
                        "command_timeout": 15,
                        "statement_cache_size": 0,  # Disable asyncpg prepared statement cache
                        "server_settings": {
                            "application_name": self.db_config.application_name,
                            "jit": "off",
                        },
                    },
                    query_cache_size=0,
                    **pool_opts,
                )

                self.logger.info(f"Testing database connection (attempt {attempt + 1}/{max_retries})...")
                async with engine.connect() as conn:
                    await conn.exec_driver_sql("SELECT 1")

                _engine_cache[db_url] = engine
                _sessionmaker_cache[db_url] = async_sessionmaker(
                    bind=engine,
                    class_=AsyncSession,
                    expire_on_commit=False,
                    autoflush=False,
                )
                self.logger.info("Async engine and sessionmaker created successfully and cached.")
                return engine

            except (SQLAlchemyError, OSError, ConnectionError) as e:
                last_error = e
                delay = initial_delay * (2 ** attempt)  # Exponential backoff
                if attempt < max_retries - 1:
                    self.logger.warning(
                        f"Database connection attempt {attempt + 1}/{max_retries} failed: {e}. "
                        f"Retrying in {delay:.1f}s..."
                    )
                    await asyncio.sleep(delay)
                else:
                    self.logger.error(f"Failed to create database engine after {max_retries} attempts: {e}")

        raise ConnectionError(f"Could not create database engine after {max_retries} attempts: {last_error}") from last_error

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """Provides an asynchronous SQLAlchemy session; commits on success, rolls back on error."""
        await self.get_engine()
        sessionmaker = _sessionmaker_cache.get(self.get_db_url())
        if sessionmaker is None:
            raise ConnectionError("Database engine/sessionmaker not initialized.")

        session: AsyncSession = sessionmaker()
        try:
            yield session
            if session.in_transaction():
                await session.commit()
        except Exception as e:
            self.logger.error(f"Error in database session: {e}. Rolling back.")
            if session.in_transaction():
                await session.rollback()
            raise
        finally:
            await session.close()

    async def close_engine(self):
        """Close engine and remove from module-level cache."""
        db_url = self.get_db_url()
        engine = _engine_cache.pop(db_url, None)
        _sessionmaker_cache.pop(db_url, None)
        if engine is not None:
            self.logger.info("Closing database engine and connection pool...")
            await engine.dispose()
        else:
            self.logger.info("Database engine was not initialized, no need to close.")
