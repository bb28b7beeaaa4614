"""
Async SMTP email delivery via aiosmtplib (primary provider).

Sends MIME-formatted HTML emails with STARTTLS.
Raises EmailDeliveryError on any failure, classified by SMTP reply code.
"""
from __future__ import annotations

import logging
from email.message import EmailMessage

import aiosmtplib

from app.config import Settings
from app.email.errors import (
    DeliveryErrorKind,
    EmailDeliveryError,
    classify_smtp_code,
)

logger = logging.getLogger(__name__)
PROVIDER = "smtp"


def is_configured(settings: Settings) -> bool:
    """Return True when SMTP host and credentials are present."""
    return bool(settings.smtp_host and settings.smtp_username)


def build_message(
    to_email: str,
    subject: str,
    html: str,
    settings: Settings,
) -> EmailMessage:
    msg = EmailMessage()
    msg["From"] = f"{settings.smtp_from_name} <{settings.smtp_from_email}>"
    msg["To"] = to_email
    msg["Subject"] = subject
    msg.set_content(html, subtype="html")
    return msg


async def deliver(
    to_email: str,
    subject: str,
    html: str,
    settings: Settings,
) -> None:
    """Send an HTML email via SMTP."""
    if not is_configured(settings):
        raise EmailDeliveryError(
            DeliveryErrorKind.INVALID_PROVIDER_CREDENTIALS, PROVIDER, "SMTP is not configured"
        )

    try:
        await aiosmtplib.send(
            build_message(to_email, subject, html, settings),
            hostname=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_username,
            password=settings.smtp_password,
            start_tls=settings.smtp_start_tls,
            timeout=settings.email_timeout_seconds,
        )
    except aiosmtplib.SMTPTimeoutError as exc:
        raise EmailDeliveryError(DeliveryErrorKind.UNKNOWN, PROVIDER, f"timeout: {exc}") from exc
    except aiosmtplib.SMTPResponseException as exc:
        raise EmailDeliveryError(
            classify_smtp_code(exc.code), PROVIDER, f"{exc.code} {exc.message}"
        ) from exc
    except aiosmtplib.SMTPException as exc:
        raise EmailDeliveryError(DeliveryErrorKind.UNKNOWN, PROVIDER, str(exc)) from exc
    except OSError as exc:
        raise EmailDeliveryError(DeliveryErrorKind.UNKNOWN, PROVIDER, str(exc)) from exc
