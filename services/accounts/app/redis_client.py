"""
Async Redis client — WhatsApp verification codes and their attempt counters.

Uses a module-level singleton so a single connection pool is reused per
process.  The pool is created lazily on first call to get_redis_client().
"""
from __future__ import annotations

import redis.asyncio as aioredis

from shared.database.redis_client import get_redis_client as _build_client

_client: aioredis.Redis | None = None


def get_redis_client(redis_url: str) -> aioredis.Redis:
    """Return (and lazily create) the module-level async Redis client."""
    global _client
    if _client is None:
        _client = _build_client(redis_url)
    return _client


async def close_redis_client() -> None:
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None
