"""Session store: string keys with a time-to-live enforced by the store itself."""

import logging
from typing import Optional, Protocol

import redis.asyncio as redis
from redis.exceptions import RedisError

log = logging.getLogger(__name__)


class SessionStore(Protocol):
    """Operations the authenticator needs from a TTL key-value store."""

    async def get(self, key: str) -> Optional[str]: ...

    async def set(self, key: str, value: str, ttl_seconds: int) -> None: ...

    async def delete(self, key: str) -> None: ...

    async def ping(self) -> bool: ...


class RedisSessionStore:
    """Redis-backed session store. Expiry is the key TTL (SETEX)."""

    def __init__(self, client: redis.Redis, key_prefix: str = ""):
        self._redis = client
        self._prefix = key_prefix

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    async def get(self, key: str) -> Optional[str]:
        return await self._redis.get(self._key(key))

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        await self._redis.setex(self._key(key), ttl_seconds, value)
        log.debug("Stored key with TTL %ds", ttl_seconds)

    async def delete(self, key: str) -> None:
        await self._redis.delete(self._key(key))

    async def ping(self) -> bool:
        """True if Redis answers; connection problems are reported as False."""
        try:
            return bool(await self._redis.ping())
        except (RedisError, OSError) as e:
            log.warning("Redis ping failed: %s", e)
            return False
