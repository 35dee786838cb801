from typing import Optional, Any, Union
from redis import Redis, ConnectionPool, SSLConnection
from redis.exceptions import RedisError
import json
import logging
from datetime import timedelta
import redis.asyncio as aioredis


class RedisClient:
    """
    Redis client with connection pooling: a sync client for startup checks and
    an async client for request-path reads and writes.
    """

    def __init__(
        self,
        logger: logging.Logger,
        host: str = "localhost",
        port: int = 6379,
        password: Optional[str] = None,
        ssl: bool = False,
        connect: bool = True,
    ):
        self.logger = logger
        self._redis: Optional[Redis] = None
        self._pool: Optional[ConnectionPool] = None
        self.host = host
        self.port = port
        self.password = password
        self.ssl = ssl

        self._async_redis: Optional[aioredis.Redis] = None

        if connect:
            self.connect()

    def connect(self) -> None:
        """Establish connection pool to Redis"""
        try:
            pool_kwargs = dict(
                host=self.host,
                port=self.port,
                password=self.password,
                max_connections=20,
                decode_responses=True,
                socket_timeout=5.0,
                socket_connect_timeout=5.0,
                retry_on_timeout=True,
            )
            if self.ssl:
                pool_kwargs["connection_class"] = SSLConnection
            self._pool = ConnectionPool(**pool_kwargs)
            self._redis = Redis(connection_pool=self._pool)
            self._redis.ping()  # Test connection
            self.logger.info(f"Successfully connected to Redis pool at {self.host}:{self.port}")
        except RedisError as e:
            self.logger.error(f"Failed to connect to Redis: {str(e)}")
            raise

    async def _get_async_redis(self) -> aioredis.Redis:
        """Get or create async Redis client"""
        if self._async_redis is None:
            self._async_redis = aioredis.Redis(
                host=self.host,
                port=self.port,
                password=self.password,
                ssl=self.ssl,
                decode_responses=True,
                max_connections=20,
            )
        return self._async_redis

    async def async_close(self) -> None:
        """Close async Redis connection pool"""
        if self._async_redis is not None:
            await self._async_redis.aclose()
            self._async_redis = None
            self.logger.info("Async Redis connection pool closed")
        if self._pool is not None:
            self._pool.disconnect()
            self._redis = None
            self._pool = None

    @staticmethod
    def _serialize(value: Any) -> Any:
        if not isinstance(value, (str, int, float, bool)):
            return json.dumps(value)
        return value

    async def async_get_value(self, key: str, default: Any = None) -> Any:
        """Async get of the stored string; callers decode it themselves."""
        try:
            r = await self._get_async_redis()
            value = await r.get(key)
            return default if value is None else value
        except RedisError as e:
            self.logger.error(f"Error async getting key {key}: {str(e)}")
            raise

    async def async_set_value(self, key: str, value: Any, expiry: Optional[Union[int, timedelta]] = None) -> bool:
        try:
            if isinstance(expiry, timedelta):
                expiry = int(expiry.total_seconds())
            r = await self._get_async_redis()
            return bool(await r.set(key, self._serialize(value), ex=expiry))
        except RedisError as e:
            self.logger.error(f"Error async setting key {key}: {str(e)}")
            raise

    async def async_delete(self, *keys: str) -> int:
        if not keys:
            return 0
        try:
            r = await self._get_async_redis()
            return await r.delete(*keys)
        except RedisError as e:
            self.logger.error(f"Error async deleting keys {keys}: {str(e)}")
            raise
