import httpx
from typing import Optional, Any, List
import json
import logging


class UpstashRedisClient:
    """Upstash Redis REST API client"""

    def __init__(
        self,
        logger: logging.Logger,
        url: str,
        token: str,
        async_client: Optional[httpx.AsyncClient] = None,
    ):
        self.logger = logger
        self.url = url.rstrip('/')
        headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json"
        }
        self.async_client = async_client or httpx.AsyncClient(headers=headers, timeout=10.0)
        self.logger.info(f"Upstash Redis client initialized for {self.url}")

    async def _execute(self, command: List[str]) -> Any:
        """Execute a Redis command via REST API"""
        try:
            response = await self.async_client.post(self.url, json=command)
            response.raise_for_status()
            data = response.json()
            if "error" in data:
                raise RuntimeError(data["error"])
            return data.get("result")
        except Exception as e:
            self.logger.error(f"Redis command {command[0]} failed: {e}")
            raise

    async def ping(self) -> bool:
        """Test connection"""
        return await self._execute(["PING"]) == "PONG"

    async def async_get_value(self, key: str, default: Any = None) -> Any:
        """
        Async get value for a key

        Args:
            key: Key to retrieve
            default: Default value if key doesn't exist

        Returns:
            The stored string, or the default value
        """
        value = await self._execute(["GET", key])
        return default if value is None else value

    async def async_set_value(self, key: str, value: Any, expiry: Optional[int] = None) -> bool:
        if not isinstance(value, (str, int, float, bool)):
            value = json.dumps(value)
        command = ["SET", key, str(value)]
        if expiry:
            command += ["EX", str(expiry)]
        return await self._execute(command) == "OK"

    async def async_delete(self, *keys: str) -> int:
        if not keys:
            return 0
        return await self._execute(["DEL", *keys]) or 0

    async def async_close(self) -> None:
        """Close the HTTP client"""
        await self.async_client.aclose()
        self.logger.info("Upstash Redis client closed.")
