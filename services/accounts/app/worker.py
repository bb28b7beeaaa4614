"""
ARQ worker — periodic maintenance for the accounts service.

Runs as a SEPARATE process from the FastAPI API server.

Start:  arq app.worker.WorkerSettings

Jobs:
  sweep_expired_codes   cron, every 5 minutes: delete expired OTP rows
"""
from __future__ import annotations

import logging
from typing import Any
from urllib.parse import urlparse

from arq import cron
from arq.connections import RedisSettings

from app.config import Settings
from app.database import dispose_db, get_session_factory, init_db
from app.otp.constants import OTP_SWEEP_INTERVAL_MINUTES
from app.otp.service import delete_expired_codes

logging.basicConfig(level=logging.INFO, format="%(levelname)s:%(name)s: %(message)s")
logger = logging.getLogger("accounts.worker")


# ── Startup / shutdown hooks ────────────────────────────────────────────────

async def startup(ctx: dict[str, Any]) -> None:
    """Called once when the worker process starts."""
    settings = Settings()
    ctx["settings"] = settings
    init_db(settings.accounts_database_url)
    logger.info("Worker started, DB pool initialized")


async def shutdown(ctx: dict[str, Any]) -> None:
    """Called once when the worker process stops."""
    await dispose_db()
    logger.info("Worker shutting down")


# ── OTP sweep ───────────────────────────────────────────────────────────────

async def sweep_expired_codes(ctx: dict[str, Any]) -> int:
    """Delete every expired one-time code.  Returns the number removed."""
    factory = get_session_factory()
    async with factory() as session:
        deleted = await delete_expired_codes(session)
        await session.commit()
    if deleted:
        logger.info("Swept %d expired OTP row(s)", deleted)
    return deleted


# ── ARQ worker configuration ──────────────────────────────────────────────

def _redis_settings() -> RedisSettings:
    """Parse redis_url from Settings into ARQ RedisSettings."""
    parsed = urlparse(Settings().redis_url)  # e.g. redis://localhost:6379/0
    return RedisSettings(
        host=parsed.hostname or "localhost",
        port=parsed.port or 6379,
        database=int(parsed.path.lstrip("/") or 0),
        password=parsed.password,
    )


class WorkerSettings:
    """ARQ reads this class to configure the worker process."""
    functions = [sweep_expired_codes]
    cron_jobs = [
        cron(
            sweep_expired_codes,
            minute=set(range(0, 60, OTP_SWEEP_INTERVAL_MINUTES)),
            run_at_startup=True,
        ),
    ]
    on_startup = startup
    on_shutdown = shutdown
    redis_settings = _redis_settings()
    max_jobs = 5
    keep_result = 3600
    # Separate queue from other services
    queue_name = "accounts:tasks"
