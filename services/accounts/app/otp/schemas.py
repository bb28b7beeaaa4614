"""
Accounts service — Pydantic V2 request/response schemas for the OTP endpoints.

Request fields are deliberately loose (optional strings): presence, purpose
and email syntax are checked by the controller so every failure is answered
in the endpoint's own ``{success|verified, error}`` shape rather than a
generic 422.
"""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class _Base(BaseModel):
    model_config = ConfigDict(
        extra="ignore",
        str_strip_whitespace=True,
    )


# ── Requests ──────────────────────────────────────────────────────────────────

class SendOTPRequest(_Base):
    """Body for POST /otp/send."""

    email: str | None = None
    type: str | None = Field(default=None, description="signup | password_reset")


class VerifyOTPRequest(_Base):
    """Body for POST /otp/verify."""

    email: str | None = None
    otp: str | None = Field(default=None, description="The 6-digit code from the email")
    type: str | None = Field(default=None, description="signup | password_reset")


class OTPDiagnosticRequest(_Base):
    """Body for POST /otp/diagnostics."""

    email: str | None = None
    type: str | None = None


# ── Responses ─────────────────────────────────────────────────────────────────

class SendOTPResponse(BaseModel):
    success: bool
    error: str | None = None


class VerifyOTPResponse(BaseModel):
    verified: bool
    message: str | None = None
    error: str | None = None


class OTPDiagnosticResponse(BaseModel):
    """Outcome of a test send, with the provider-level classification exposed."""

    timestamp: datetime
    email: str
    type: str
    success: bool
    error: str | None = None
    error_kind: str | None = None
    request_id: str | None = None
    duration_ms: int
