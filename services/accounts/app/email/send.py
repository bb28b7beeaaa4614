"""
Email delivery orchestrator — SMTP (primary) with Brevo (fallback).

Unlike fire-and-forget notifications, an OTP email is part of the request:
the caller must know whether it went out.  ``send_otp_code`` therefore
raises EmailDeliveryError (already classified) when every configured
provider failed.

Delivery order:
  1. SMTP: if configured
  2. Brevo REST API: if SMTP fails or is not configured
"""
from __future__ import annotations

import logging

from app.config import Settings
from app.email import brevo, smtp
from app.email.errors import DeliveryErrorKind, EmailDeliveryError
from app.otp.constants import OTPPurpose

logger = logging.getLogger(__name__)


# ── Delivery core ────────────────────────────────────────────────────────────


async def _deliver(
    to_email: str,
    subject: str,
    html: str,
    settings: Settings,
) -> str:
    """Try SMTP first, fall back to Brevo.  Returns the provider that accepted."""
    last_error: EmailDeliveryError | None = None

    if smtp.is_configured(settings):
        try:
            await smtp.deliver(to_email, subject, html, settings)
            return smtp.PROVIDER
        except EmailDeliveryError as exc:
            logger.warning(
                "SMTP failed for %s (%s: %s), falling back to Brevo",
                to_email, exc.kind.value, exc.detail,
            )
            last_error = exc

    if brevo.is_configured(settings):
        await brevo.deliver(to_email, subject, html, settings)
        return brevo.PROVIDER

    if last_error is not None:
        raise last_error
    raise EmailDeliveryError(
        DeliveryErrorKind.INVALID_PROVIDER_CREDENTIALS,
        "none",
        "No email provider configured",
    )


# ── OTP email ────────────────────────────────────────────────────────────────


def otp_subject(purpose: OTPPurpose) -> str:
    return "Verify Your Email" if purpose is OTPPurpose.SIGNUP else "Reset Your Password"


def render_otp_email(code: str, purpose: OTPPurpose, expire_seconds: int) -> tuple[str, str]:
    """Return (subject, html) for an OTP email."""
    subject = otp_subject(purpose)
    minutes = max(1, expire_seconds // 60)
    html = (
        f"<h2>{subject}</h2>"
        f"<p>Your verification code is: "
        f"<strong style='font-size:24px;letter-spacing:4px;color:#2563eb'>{code}</strong></p>"
        f"<p>This code will expire in {minutes} minute{'s' if minutes != 1 else ''}.</p>"
        "<p style='color:#6b7280;font-size:13px'>"
        "If you didn't request this code, please ignore this email.</p>"
    )
    return subject, html


async def send_otp_code(
    to_email: str,
    code: str,
    purpose: OTPPurpose,
    settings: Settings,
) -> str:
    """
    Deliver an OTP email and return the name of the provider that accepted it.

    With no provider configured in development the code is only logged, so
    the signup and reset flows stay usable on a laptop.
    """
    if (
        settings.is_development
        and not smtp.is_configured(settings)
        and not brevo.is_configured(settings)
    ):
        logger.warning(
            "No email provider configured; OTP for %s (%s): %s",
            to_email, purpose.value, code,
        )
        return "log"

    subject, html = render_otp_email(code, purpose, settings.otp_expire_seconds)
    return await _deliver(to_email, subject, html, settings)
