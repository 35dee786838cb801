import json
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Protocol


# Key names are stable across versions; stored data depends on them.
USER_ID_KEY = "an_mind_user_id"
PASSWORD_KEY = "an_mind_password"
KNOWLEDGE_KEY = "an_mind_knowledge"
SESSIONS_KEY = "an_mind_sessions"
ACTIVE_SESSION_KEY = "an_mind_active_session_id"


class LocalStateStore(ABC):
    """String-keyed store for serialized application state."""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        pass

    @abstractmethod
    async def delete(self, key: str) -> None:
        pass

    async def get_json(self, key: str, default: Any = None) -> Any:
        raw = await self.get(key)
        if raw is None:
            return default
        return json.loads(raw)

    async def set_json(self, key: str, value: Any) -> None:
        await self.set(key, json.dumps(value, ensure_ascii=False))


class InMemoryStateStore(LocalStateStore):
    """Process-local store, used when no Redis is configured and in tests."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    async def set(self, key: str, value: str) -> None:
        self.data[key] = value

    async def delete(self, key: str) -> None:
        self.data.pop(key, None)


class _KeyValueClient(Protocol):
    async def async_get_value(self, key: str, default: Any = None) -> Any: ...
    async def async_set_value(self, key: str, value: Any, expiry: Optional[int] = None) -> bool: ...
    async def async_delete(self, *keys: str) -> int: ...


class RedisStateStore(LocalStateStore):
    """Backed by ``pkg.redis`` clients (RedisClient or UpstashRedisClient)."""

    def __init__(self, client: _KeyValueClient, namespace: str = ""):
        self.client = client
        self.namespace = namespace

    def _key(self, key: str) -> str:
        return f"{self.namespace}:{key}" if self.namespace else key

    async def get(self, key: str) -> Optional[str]:
        value = await self.client.async_get_value(self._key(key))
        return None if value is None else str(value)

    async def set(self, key: str, value: str) -> None:
        await self.client.async_set_value(self._key(key), value)

    async def delete(self, key: str) -> None:
        await self.client.async_delete(self._key(key))
