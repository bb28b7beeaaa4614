"""
Twilio Programmable Messaging — async WhatsApp delivery via httpx.

``send_whatsapp`` returns the Twilio message SID on success and None on any
failure (never raises), so callers decide how a failed send surfaces.
Without credentials the send is simulated: logged and given a synthetic
``sim_`` SID, which keeps local development and demos working.
"""
from __future__ import annotations

import logging
import uuid

import httpx

from app.config import Settings

logger = logging.getLogger(__name__)
_MESSAGES_URL = "https://api.twilio.com/2010-04-01/Accounts/{sid}/Messages.json"
SIMULATED_PREFIX = "sim_"


def is_configured(settings: Settings) -> bool:
    """Return True when the account SID, auth token and sender number are present."""
    return bool(
        settings.twilio_account_sid
        and settings.twilio_auth_token
        and settings.twilio_whatsapp_number
    )


def is_simulated(message_sid: str) -> bool:
    return message_sid.startswith(SIMULATED_PREFIX)


async def send_whatsapp(phone: str, body: str, settings: Settings) -> str | None:
    """Send ``body`` to ``phone`` (E.164) over WhatsApp."""
    if not is_configured(settings):
        message_sid = f"{SIMULATED_PREFIX}{uuid.uuid4().hex}"
        logger.info("Twilio not configured, simulated WhatsApp to %s (%s)", phone, message_sid)
        return message_sid

    url = _MESSAGES_URL.format(sid=settings.twilio_account_sid)
    try:
        async with httpx.AsyncClient(timeout=settings.twilio_timeout_seconds) as client:
            r = await client.post(
                url,
                data={
                    "From": f"whatsapp:{settings.twilio_whatsapp_number}",
                    "To": f"whatsapp:{phone}",
                    "Body": body,
                },
                auth=(settings.twilio_account_sid, settings.twilio_auth_token),
            )
        if r.status_code >= 400:
            logger.error("Twilio WhatsApp error %s: %s", r.status_code, r.text[:300])
            return None
        return r.json().get("sid")
    except (httpx.HTTPError, ValueError) as exc:
        logger.error("Twilio WhatsApp send failed: %s", exc)
        return None
