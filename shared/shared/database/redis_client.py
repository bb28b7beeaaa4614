from typing import Any

import redis.asyncio as redis


def get_redis_client(redis_url: str, **kwargs: Any) -> redis.Redis:
    """Build a client that returns ``str`` values (codes, counters, ids)."""
    kwargs.setdefault("decode_responses", True)
    return redis.from_url(redis_url, **kwargs)
