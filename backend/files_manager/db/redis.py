"""Shared async Redis client for the session store and the job queue."""

import logging
from typing import Optional

import redis.asyncio as redis

from files_manager.config import get_settings

log = logging.getLogger(__name__)

_client: Optional[redis.Redis] = None


def get_redis() -> redis.Redis:
    """Return the process-wide client, creating it on first use."""
    global _client
    if _client is None:
        settings = get_settings()
        _client = redis.from_url(
            settings.redis_url,
            decode_responses=True,
            socket_connect_timeout=settings.redis_timeout_seconds,
        )
        log.debug("Redis client created for %s", settings.redis_url)
    return _client


async def close_redis() -> None:
    """Close the client (shutdown)."""
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None
