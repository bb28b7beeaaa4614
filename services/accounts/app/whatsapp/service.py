"""
Accounts service — WhatsApp business logic.

Rules:
  - Zero FastAPI imports.
  - Verification codes live in Redis only (short-lived, single use).
  - Subscriptions are read and written through the SQLAlchemy async session.
"""
from __future__ import annotations

import secrets
import uuid
from datetime import datetime, timezone

import redis.asyncio as aioredis
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import InvalidWhatsAppCode, WhatsAppCodeExhausted, WhatsAppCodeExpired
from app.otp.service import generate_code
from app.whatsapp.constants import (
    MESSAGE_TEMPLATES,
    WHATSAPP_CODE_EXPIRE_SECONDS,
    WHATSAPP_CODE_MAX_ATTEMPTS,
    MessageType,
)
from app.whatsapp.models import WhatsAppSubscription
from app.whatsapp.schemas import JobSummary, WhatsAppPreferencesUpdate

_CODE_PREFIX = "wa_code:"
_TRIES_PREFIX = "wa_tries:"


def _code_key(user_id: uuid.UUID, phone_number: str) -> str:
    return f"{_CODE_PREFIX}{user_id}:{phone_number}"


def _tries_key(user_id: uuid.UUID, phone_number: str) -> str:
    return f"{_TRIES_PREFIX}{user_id}:{phone_number}"


# ── Message formatting ────────────────────────────────────────────────────────

def format_message(message: str, message_type: MessageType, app_name: str) -> str:
    template = MESSAGE_TEMPLATES.get(message_type, MESSAGE_TEMPLATES[MessageType.GENERAL])
    return template.format(message=message, app_name=app_name)


def format_job_alert(job: JobSummary) -> str:
    text = (
        "New job opportunity available!\n\n"
        f"*{job.title}*\nLocation: {job.location}\nRate: {job.hourly_rate}"
    )
    if job.description:
        text += f"\n\n{job.description}"
    return text


# ── Verification codes ────────────────────────────────────────────────────────

async def create_verification_code(
    redis: aioredis.Redis,
    user_id: uuid.UUID,
    phone_number: str,
    expire_seconds: int = WHATSAPP_CODE_EXPIRE_SECONDS,
) -> str:
    """
    Store a fresh code and a zeroed attempt counter, returning the code.

    Both keys are written in one pipeline.  A new call for the same user and
    number overwrites the previous code.
    """
    code = generate_code()
    pipe = redis.pipeline()
    pipe.setex(_code_key(user_id, phone_number), expire_seconds, code)
    pipe.setex(_tries_key(user_id, phone_number), expire_seconds, "0")
    await pipe.execute()
    return code


async def discard_verification_code(
    redis: aioredis.Redis,
    user_id: uuid.UUID,
    phone_number: str,
) -> None:
    await redis.delete(_code_key(user_id, phone_number), _tries_key(user_id, phone_number))


async def check_verification_code(
    redis: aioredis.Redis,
    user_id: uuid.UUID,
    phone_number: str,
    code: str,
    max_attempts: int = WHATSAPP_CODE_MAX_ATTEMPTS,
) -> None:
    """
    Validate a submitted code.

    The attempt is counted before the comparison: GET and INCR run in one
    MULTI/EXEC, so concurrent confirms each see a distinct counter value and
    at most ``max_attempts`` submissions are ever compared.

    Raises:
      WhatsAppCodeExpired  : no code stored (TTL elapsed or never requested)
      WhatsAppCodeExhausted: attempt counter passed ``max_attempts``
      InvalidWhatsAppCode  : wrong code
    On success both keys are deleted (single use).
    """
    code_key = _code_key(user_id, phone_number)
    tries_key = _tries_key(user_id, phone_number)
    pipe = redis.pipeline(transaction=True)
    pipe.get(code_key)
    pipe.incr(tries_key)
    stored, tries = await pipe.execute()

    if stored is None:
        # INCR may have recreated the counter without a TTL.
        await redis.delete(tries_key)
        raise WhatsAppCodeExpired()
    if tries > max_attempts:
        raise WhatsAppCodeExhausted()

    if not secrets.compare_digest(stored, code):
        remaining = max_attempts - tries
        if remaining <= 0:
            raise WhatsAppCodeExhausted()
        raise InvalidWhatsAppCode(attempts_remaining=remaining)

    # A concurrent confirm may have consumed the code already.
    deleted = await redis.delete(code_key)
    await redis.delete(tries_key)
    if not deleted:
        raise WhatsAppCodeExpired()


# ── Subscriptions ─────────────────────────────────────────────────────────────

async def get_subscription(
    session: AsyncSession,
    user_id: uuid.UUID,
) -> WhatsAppSubscription | None:
    return await session.get(WhatsAppSubscription, user_id)


async def connect_number(
    session: AsyncSession,
    user_id: uuid.UUID,
    phone_number: str,
) -> WhatsAppSubscription:
    """Create or update the user's subscription as connected to ``phone_number``."""
    sub = await get_subscription(session, user_id)
    now = datetime.now(timezone.utc)
    if sub is None:
        sub = WhatsAppSubscription(
            user_id=user_id,
            phone_number=phone_number,
            is_connected=True,
            connected_at=now,
            whatsapp_enabled=True,
            job_alerts=True,
            new_job_matches=False,
            application_updates=False,
            interview_reminders=False,
            payment_notifications=False,
            weekly_digest=False,
            urgent_alerts=False,
        )
        session.add(sub)
    else:
        sub.phone_number = phone_number
        sub.is_connected = True
        sub.connected_at = now
    await session.flush()
    await session.refresh(sub)
    return sub


async def update_preferences(
    session: AsyncSession,
    sub: WhatsAppSubscription,
    changes: WhatsAppPreferencesUpdate,
) -> WhatsAppSubscription:
    for field, value in changes.model_dump(exclude_none=True).items():
        setattr(sub, field, value)
    await session.flush()
    await session.refresh(sub)
    return sub


async def list_job_alert_recipients(session: AsyncSession) -> list[WhatsAppSubscription]:
    """Connected subscribers with WhatsApp and job alerts both switched on."""
    result = await session.execute(
        select(WhatsAppSubscription).where(
            WhatsAppSubscription.is_connected.is_(True),
            WhatsAppSubscription.whatsapp_enabled.is_(True),
            WhatsAppSubscription.job_alerts.is_(True),
        )
    )
    return list(result.scalars().all())
