"""
Brevo (Sendinblue) transactional email client — async httpx REST calls.

Fallback provider behind SMTP.  Raises EmailDeliveryError classified by
HTTP status; a timeout or transport error is UnknownDeliveryError.
"""
from __future__ import annotations

import logging

import httpx

from app.config import Settings
from app.email.errors import (
    DeliveryErrorKind,
    EmailDeliveryError,
    classify_http_status,
)

logger = logging.getLogger(__name__)
PROVIDER = "brevo"
_BREVO_URL = "https://api.brevo.com/v3/smtp/email"


def is_configured(settings: Settings) -> bool:
    return bool(settings.brevo_api_key)


def _payload(to_email: str, subject: str, html: str, s: Settings) -> dict:
    return {
        "sender": {"email": s.brevo_from_email, "name": s.brevo_from_name},
        "to": [{"email": to_email}],
        "subject": subject,
        "htmlContent": html,
    }


async def deliver(
    to_email: str,
    subject: str,
    html: str,
    settings: Settings,
) -> str | None:
    """Send an HTML email through Brevo.  Returns Brevo's messageId."""
    if not is_configured(settings):
        raise EmailDeliveryError(
            DeliveryErrorKind.INVALID_PROVIDER_CREDENTIALS, PROVIDER, "Brevo API key missing"
        )

    try:
        async with httpx.AsyncClient(timeout=settings.email_timeout_seconds) as client:
            r = await client.post(
                _BREVO_URL,
                json=_payload(to_email, subject, html, settings),
                headers={"api-key": settings.brevo_api_key, "Accept": "application/json"},
            )
    except httpx.TimeoutException as exc:
        raise EmailDeliveryError(DeliveryErrorKind.UNKNOWN, PROVIDER, f"timeout: {exc}") from exc
    except httpx.HTTPError as exc:
        raise EmailDeliveryError(DeliveryErrorKind.UNKNOWN, PROVIDER, str(exc)) from exc

    if r.status_code >= 400:
        raise EmailDeliveryError(
            classify_http_status(r.status_code), PROVIDER, f"{r.status_code} {r.text[:300]}"
        )
    try:
        return r.json().get("messageId")
    except ValueError:
        return None
