"""
Global slowapi rate limiter.

Imported by the routers for per-endpoint limits.  Mounted onto app.state in
main.py so slowapi middleware can find it.

Storage: Redis (same instance as the WhatsApp code store).  Set
RATE_LIMIT_STORAGE_URI=memory:// for local dev without Redis, and
RATE_LIMIT_ENABLED=false to switch limits off entirely (test runs).
"""
import os

from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=os.getenv(
        "RATE_LIMIT_STORAGE_URI", os.getenv("REDIS_URL", "redis://localhost:6379/0")
    ),
    enabled=os.getenv("RATE_LIMIT_ENABLED", "true").lower() not in {"0", "false", "no"},
)
