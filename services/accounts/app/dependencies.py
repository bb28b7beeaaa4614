"""
Accounts service — shared FastAPI dependencies.

Routers import their settings, Redis and auth dependencies from here so tests
can swap any of them through ``app.dependency_overrides``.
"""
from __future__ import annotations

from functools import lru_cache

import redis.asyncio as aioredis
from fastapi import Depends

from app.config import Settings
from app.redis_client import get_redis_client
from shared.auth.dependencies import (
    get_current_user_required,
    require_roles,
)
from shared.constants import Role


@lru_cache
def get_settings() -> Settings:
    return Settings()


def get_redis(settings: Settings = Depends(get_settings)) -> aioredis.Redis:
    return get_redis_client(settings.redis_url)


# Routes import the auth dependency from here, not from shared directly.
get_current_user = get_current_user_required

# Diagnostics, notifications and job alerts: admins and backend services only.
require_operator = require_roles(
    Role.ADMIN, Role.SERVICE, detail="Administrator access required."
)
