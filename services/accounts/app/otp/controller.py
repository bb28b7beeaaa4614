"""
Accounts service — OTP controller (request orchestration layer).

Responsibilities:
  - Validate the loosely-typed request body (presence, purpose, email syntax).
  - Call service functions (which own business logic).
  - Deliver the code and translate provider failures.
  - Compose and return the response model.
"""
from __future__ import annotations

import logging
import time
from datetime import datetime, timezone

from email_validator import EmailNotValidError, validate_email
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings
from app.email import send as email
from app.email.errors import EmailDeliveryError
from app.exceptions import (
    InvalidEmailAddress,
    InvalidOTPType,
    MalformedOTP,
    OTPDeliveryFailed,
    OTPResendTooSoon,
    SendFieldsMissing,
    VerifyFieldsMissing,
)
from app.otp.constants import OTPPurpose
from app.otp.schemas import (
    OTPDiagnosticRequest,
    OTPDiagnosticResponse,
    SendOTPRequest,
    SendOTPResponse,
    VerifyOTPRequest,
    VerifyOTPResponse,
)
from app.otp.service import (
    generate_code,
    is_well_formed_code,
    issue_code,
    normalize_email,
    seconds_until_resend_allowed,
    verify_code,
)

logger = logging.getLogger(__name__)

_VERIFIED_MESSAGES = {
    OTPPurpose.SIGNUP: "Email verified successfully",
    OTPPurpose.PASSWORD_RESET: "OTP verified successfully",
}
INVALID_OR_EXPIRED = "Invalid or expired OTP"


# ── Helpers ───────────────────────────────────────────────────────────────────

def _parse_purpose(raw: str, result_field: str) -> OTPPurpose:
    try:
        return OTPPurpose(raw)
    except ValueError:
        raise InvalidOTPType(result_field) from None


def _parse_email(raw: str, result_field: str) -> str:
    try:
        validate_email(raw, check_deliverability=False)
    except EmailNotValidError:
        raise InvalidEmailAddress(result_field) from None
    return normalize_email(raw)


# ── Send ──────────────────────────────────────────────────────────────────────

async def send_otp(
    session: AsyncSession,
    body: SendOTPRequest,
    settings: Settings,
) -> SendOTPResponse:
    """
    Issue a code for (email, purpose) and email it.

    A delivery failure raises OTPDeliveryFailed; the request transaction is
    rolled back with it, so no undeliverable code is left behind.
    """
    if not body.email or not body.type:
        raise SendFieldsMissing()
    purpose = _parse_purpose(body.type, "success")
    address = _parse_email(body.email, "success")

    wait = await seconds_until_resend_allowed(
        session, address, purpose, settings.otp_resend_interval_seconds
    )
    if wait > 0:
        raise OTPResendTooSoon(retry_after=wait)

    code = generate_code()
    await issue_code(
        session,
        email=address,
        purpose=purpose,
        code=code,
        expire_seconds=settings.otp_expire_seconds,
    )

    try:
        provider = await email.send_otp_code(address, code, purpose, settings)
    except EmailDeliveryError as exc:
        logger.error(
            "OTP delivery failed for %s (%s) via %s: %s %s",
            address, purpose.value, exc.provider, exc.kind.value, exc.detail,
        )
        raise OTPDeliveryFailed(exc.kind) from exc

    logger.info("OTP sent to %s (%s) via %s", address, purpose.value, provider)
    return SendOTPResponse(success=True)


# ── Verify ────────────────────────────────────────────────────────────────────

async def verify_otp(
    session: AsyncSession,
    body: VerifyOTPRequest,
    settings: Settings,
) -> VerifyOTPResponse:
    """
    Check a submitted code.

    A wrong, expired or exhausted code is a normal ``verified=False`` result
    rather than an exception: the attempt increment made by the service has
    to be committed with the request.
    """
    if not body.email or not body.otp or not body.type:
        raise VerifyFieldsMissing()
    purpose = _parse_purpose(body.type, "verified")
    address = _parse_email(body.email, "verified")
    if not is_well_formed_code(body.otp):
        raise MalformedOTP()

    verified = await verify_code(
        session,
        email=address,
        purpose=purpose,
        code=body.otp,
        max_attempts=settings.otp_max_attempts,
    )
    if not verified:
        logger.info("OTP verification failed for %s (%s)", address, purpose.value)
        return VerifyOTPResponse(verified=False, error=INVALID_OR_EXPIRED)
    return VerifyOTPResponse(verified=True, message=_VERIFIED_MESSAGES[purpose])


# ── Diagnostics ───────────────────────────────────────────────────────────────

async def run_diagnostic(
    session: AsyncSession,
    body: OTPDiagnosticRequest,
    settings: Settings,
    *,
    request_id: str | None = None,
) -> OTPDiagnosticResponse:
    """
    Perform a real OTP send and report the outcome with timing.

    Failures are reported in the body (with the provider classification
    that the public endpoint hides) instead of being raised.
    """
    started = time.perf_counter()
    success = False
    error: str | None = None
    error_kind: str | None = None
    try:
        await send_otp(session, SendOTPRequest(email=body.email, type=body.type), settings)
        success = True
    except OTPDeliveryFailed as exc:
        error, error_kind = exc.detail, exc.kind.value
        await session.rollback()
    except (SendFieldsMissing, InvalidOTPType, InvalidEmailAddress, OTPResendTooSoon) as exc:
        error = exc.detail

    return OTPDiagnosticResponse(
        timestamp=datetime.now(timezone.utc),
        email=body.email or "",
        type=body.type or "",
        success=success,
        error=error,
        error_kind=error_kind,
        request_id=request_id,
        duration_ms=int((time.perf_counter() - started) * 1000),
    )
