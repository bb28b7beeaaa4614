"""
Accounts service — pure business logic for one-time passcodes.

Rules:
  - Zero FastAPI imports.
  - Zero direct DB driver calls; only SQLAlchemy async session.
  - All I/O functions are async def.
  - No side effects beyond the session passed in (no global state mutated).

Concurrency: nothing here takes an in-process lock.  The datastore is the
serialization point: consumption is one conditional DELETE whose affected
row count decides the winner, and the attempt counter is bumped with an
in-SQL increment.
"""
from __future__ import annotations

import math
import secrets
from datetime import datetime, timedelta, timezone

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.otp.constants import (
    OTP_EXPIRE_SECONDS,
    OTP_LENGTH,
    OTP_MAX_ATTEMPTS,
    OTPPurpose,
)
from app.otp.models import OneTimeCode


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands timestamps back naive; everything is stored in UTC.
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def generate_code(length: int = OTP_LENGTH) -> str:
    """Uniformly random numeric code; leading zeros are kept."""
    return f"{secrets.randbelow(10 ** length):0{length}d}"


def is_well_formed_code(code: str, length: int = OTP_LENGTH) -> bool:
    return len(code) == length and code.isascii() and code.isdigit()


# ── Queries ───────────────────────────────────────────────────────────────────

async def get_latest_active_code(
    session: AsyncSession,
    email: str,
    purpose: OTPPurpose,
) -> OneTimeCode | None:
    """The newest unexpired row for (email, purpose), the only one trusted."""
    result = await session.execute(
        select(OneTimeCode)
        .where(
            OneTimeCode.email == normalize_email(email),
            OneTimeCode.otp_type == purpose,
            OneTimeCode.expires_at > _utcnow(),
        )
        .order_by(OneTimeCode.created_at.desc())
        .limit(1)
        # A row already in the identity map must reflect the current attempts.
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def seconds_until_resend_allowed(
    session: AsyncSession,
    email: str,
    purpose: OTPPurpose,
    min_interval_seconds: int,
) -> int:
    """
    Server-side resend throttle.

    Returns 0 when a new code may be issued, otherwise the whole seconds left
    until the newest code for (email, purpose) is ``min_interval_seconds`` old.
    """
    if min_interval_seconds <= 0:
        return 0
    result = await session.execute(
        select(OneTimeCode.created_at)
        .where(
            OneTimeCode.email == normalize_email(email),
            OneTimeCode.otp_type == purpose,
        )
        .order_by(OneTimeCode.created_at.desc())
        .limit(1)
    )
    latest = result.scalar_one_or_none()
    if latest is None:
        return 0
    elapsed = (_utcnow() - _as_utc(latest)).total_seconds()
    return max(0, math.ceil(min_interval_seconds - elapsed))


# ── Issue ─────────────────────────────────────────────────────────────────────

async def issue_code(
    session: AsyncSession,
    *,
    email: str,
    purpose: OTPPurpose,
    code: str,
    expire_seconds: int = OTP_EXPIRE_SECONDS,
) -> OneTimeCode:
    """
    Persist a fresh code for (email, purpose).

    Older rows are left in place: verification only ever reads the newest
    unexpired row, so a new code supersedes them by recency and the sweep
    removes them once expired.  The caller delivers ``code`` to the user.
    """
    now = _utcnow()
    otp = OneTimeCode(
        email=normalize_email(email),
        otp_code=code,
        otp_type=purpose,
        attempts=0,
        created_at=now,
        expires_at=now + timedelta(seconds=expire_seconds),
    )
    session.add(otp)
    await session.flush()
    return otp


# ── Verify ────────────────────────────────────────────────────────────────────

async def verify_code(
    session: AsyncSession,
    *,
    email: str,
    purpose: OTPPurpose,
    code: str,
    max_attempts: int = OTP_MAX_ATTEMPTS,
) -> bool:
    """
    Check ``code`` against the latest active row and consume it on success.

    Fails closed (False) when no active row exists, attempts are exhausted,
    or the code differs. A mismatch also bumps the row's attempt counter.
    On a match the row is deleted in one conditional statement, so a replay
    or a concurrent duplicate submission finds nothing to delete and fails.
    """
    otp = await get_latest_active_code(session, email, purpose)
    if otp is None:
        return False
    if otp.attempts >= max_attempts:
        return False

    if not secrets.compare_digest(otp.otp_code, code):
        await session.execute(
            update(OneTimeCode)
            .where(OneTimeCode.id == otp.id)
            .values(attempts=OneTimeCode.attempts + 1)
            .execution_options(synchronize_session=False)
        )
        return False

    result = await session.execute(
        delete(OneTimeCode)
        .where(
            OneTimeCode.id == otp.id,
            OneTimeCode.otp_code == code,
            OneTimeCode.expires_at > _utcnow(),
            OneTimeCode.attempts < max_attempts,
        )
        .execution_options(synchronize_session=False)
    )
    session.expunge(otp)
    return result.rowcount == 1


# ── Sweep ─────────────────────────────────────────────────────────────────────

async def delete_expired_codes(session: AsyncSession) -> int:
    """Remove every expired row.  Returns how many were deleted."""
    result = await session.execute(
        delete(OneTimeCode)
        .where(OneTimeCode.expires_at <= _utcnow())
        .execution_options(synchronize_session=False)
    )
    return result.rowcount or 0
