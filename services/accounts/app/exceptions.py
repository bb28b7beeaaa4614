"""
Accounts service — domain-specific HTTP exceptions.

All exceptions use preset status codes and detail messages so that callers
never need to specify these at the call site.

OTP endpoint errors derive from OTPRequestError and are rendered by
``otp_error_handler`` (registered in main.py) in the endpoint's own result
shape, ``{"success": false, "error": ...}`` for /otp/send and
``{"verified": false, "error": ...}`` for /otp/verify, instead of the
generic ``{"detail": ...}`` body.
"""
from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse

from app.email.errors import DeliveryErrorKind


# ── OTP ───────────────────────────────────────────────────────────────────────

class OTPRequestError(HTTPException):
    """Base for errors answered in the OTP endpoints' result shape."""

    def __init__(
        self,
        status_code: int,
        detail: str,
        *,
        result_field: str = "success",
        headers: dict[str, str] | None = None,
    ) -> None:
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.result_field = result_field


class SendFieldsMissing(OTPRequestError):
    def __init__(self) -> None:
        super().__init__(
            status.HTTP_400_BAD_REQUEST,
            "Email and type are required",
        )


class VerifyFieldsMissing(OTPRequestError):
    def __init__(self) -> None:
        super().__init__(
            status.HTTP_400_BAD_REQUEST,
            "Email, OTP, and type are required",
            result_field="verified",
        )


class InvalidOTPType(OTPRequestError):
    def __init__(self, result_field: str = "success") -> None:
        super().__init__(
            status.HTTP_400_BAD_REQUEST,
            "Invalid OTP type",
            result_field=result_field,
        )


class InvalidEmailAddress(OTPRequestError):
    def __init__(self, result_field: str = "success") -> None:
        super().__init__(
            status.HTTP_400_BAD_REQUEST,
            "Invalid email address",
            result_field=result_field,
        )


class MalformedOTP(OTPRequestError):
    def __init__(self) -> None:
        super().__init__(
            status.HTTP_400_BAD_REQUEST,
            "OTP must be a 6-digit code",
            result_field="verified",
        )


class OTPResendTooSoon(OTPRequestError):
    """A code for this email + purpose was sent moments ago."""

    def __init__(self, retry_after: int) -> None:
        super().__init__(
            status.HTTP_429_TOO_MANY_REQUESTS,
            f"Please wait {retry_after} seconds before requesting a new code.",
            headers={"Retry-After": str(retry_after)},
        )
        self.retry_after = retry_after


class OTPDeliveryFailed(OTPRequestError):
    """
    The email provider rejected or timed out on the OTP email.

    ``kind`` carries the provider-level classification for logs and
    diagnostics; the client only ever sees the generic message.
    """

    def __init__(self, kind: DeliveryErrorKind) -> None:
        super().__init__(
            status.HTTP_502_BAD_GATEWAY,
            "We couldn't send the verification email. Please try again shortly.",
        )
        self.kind = kind


async def otp_error_handler(request: Request, exc: OTPRequestError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={exc.result_field: False, "error": exc.detail},
        headers=exc.headers,
    )


# ── WhatsApp ──────────────────────────────────────────────────────────────────

class WhatsAppCodeExpired(HTTPException):
    def __init__(self) -> None:
        super().__init__(
            status_code=status.HTTP_410_GONE,
            detail="Verification code has expired. Please request a new code.",
        )


class InvalidWhatsAppCode(HTTPException):
    def __init__(self, attempts_remaining: int) -> None:
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid verification code. {attempts_remaining} attempt(s) remaining.",
        )


class WhatsAppCodeExhausted(HTTPException):
    """All confirm attempts used up; the user must request a new code."""

    def __init__(self) -> None:
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Too many invalid attempts. Please request a new code.",
        )


class WhatsAppNotConnected(HTTPException):
    def __init__(self) -> None:
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No WhatsApp number is connected to this account.",
        )


class WhatsAppDeliveryFailed(HTTPException):
    """Twilio failed to accept the WhatsApp message."""

    def __init__(self) -> None:
        super().__init__(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="WhatsApp delivery is temporarily unavailable. Please try again shortly.",
        )


# ── Contact requests ──────────────────────────────────────────────────────────

class DuplicateContactRequest(HTTPException):
    """Unique (student, job) constraint hit, surfaced as a friendly 409."""

    def __init__(self) -> None:
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail="You have already requested contact information for this job.",
        )
