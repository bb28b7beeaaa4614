"""
Accounts service — WhatsApp controller (request orchestration layer).

Responsibilities:
  - Call service functions (which own business logic).
  - Send messages through the Twilio client and translate failures.
  - Compose and return response models.
"""
from __future__ import annotations

import logging
import uuid

import redis.asyncio as aioredis
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings
from app.exceptions import WhatsAppDeliveryFailed, WhatsAppNotConnected
from app.whatsapp import service, twilio
from app.whatsapp.constants import MessageType
from app.whatsapp.schemas import (
    JobAlertRequest,
    JobAlertResponse,
    JobAlertStats,
    WhatsAppConfirmRequest,
    WhatsAppNotificationRequest,
    WhatsAppNotificationResponse,
    WhatsAppPreferences,
    WhatsAppPreferencesUpdate,
    WhatsAppVerificationRequest,
    WhatsAppVerificationResponse,
)

logger = logging.getLogger(__name__)


async def request_verification(
    redis: aioredis.Redis,
    user_id: uuid.UUID,
    body: WhatsAppVerificationRequest,
    settings: Settings,
) -> WhatsAppVerificationResponse:
    code = await service.create_verification_code(
        redis, user_id, body.phone_number, settings.whatsapp_code_expire_seconds
    )
    text = service.format_message(
        f"Your {settings.app_name} verification code is {code}. "
        f"It expires in {settings.whatsapp_code_expire_seconds // 60} minutes.",
        MessageType.GENERAL,
        settings.app_name,
    )
    message_sid = await twilio.send_whatsapp(body.phone_number, text, settings)
    if message_sid is None:
        await service.discard_verification_code(redis, user_id, body.phone_number)
        raise WhatsAppDeliveryFailed()

    logger.info("WhatsApp verification code sent to %s for user %s", body.phone_number, user_id)
    return WhatsAppVerificationResponse(
        message="Verification code sent to WhatsApp",
        simulated=twilio.is_simulated(message_sid),
    )


async def confirm_verification(
    session: AsyncSession,
    redis: aioredis.Redis,
    user_id: uuid.UUID,
    body: WhatsAppConfirmRequest,
) -> WhatsAppPreferences:
    await service.check_verification_code(redis, user_id, body.phone_number, body.code)
    sub = await service.connect_number(session, user_id, body.phone_number)
    logger.info("WhatsApp number %s connected for user %s", body.phone_number, user_id)
    return WhatsAppPreferences.model_validate(sub)


async def get_preferences(
    session: AsyncSession,
    user_id: uuid.UUID,
) -> WhatsAppPreferences:
    sub = await service.get_subscription(session, user_id)
    if sub is None:
        raise WhatsAppNotConnected()
    return WhatsAppPreferences.model_validate(sub)


async def update_preferences(
    session: AsyncSession,
    user_id: uuid.UUID,
    body: WhatsAppPreferencesUpdate,
) -> WhatsAppPreferences:
    sub = await service.get_subscription(session, user_id)
    if sub is None:
        raise WhatsAppNotConnected()
    sub = await service.update_preferences(session, sub, body)
    return WhatsAppPreferences.model_validate(sub)


async def send_notification(
    body: WhatsAppNotificationRequest,
    settings: Settings,
) -> WhatsAppNotificationResponse:
    text = service.format_message(body.message, body.message_type, settings.app_name)
    message_sid = await twilio.send_whatsapp(body.phone_number, text, settings)
    if message_sid is None:
        raise WhatsAppDeliveryFailed()
    return WhatsAppNotificationResponse(
        success=True,
        message_sid=message_sid,
        simulated=twilio.is_simulated(message_sid),
    )


async def send_job_alerts(
    session: AsyncSession,
    body: JobAlertRequest,
    settings: Settings,
) -> JobAlertResponse:
    """Fan a job alert out to every opted-in subscriber; failures are counted, not raised."""
    recipients = await service.list_job_alert_recipients(session)
    logger.info("Found %d users with WhatsApp job alerts enabled", len(recipients))

    text = service.format_message(
        service.format_job_alert(body.job), MessageType.JOB_ALERT, settings.app_name
    )
    success_count = failure_count = 0
    for sub in recipients:
        if await twilio.send_whatsapp(sub.phone_number, text, settings) is None:
            failure_count += 1
        else:
            success_count += 1

    return JobAlertResponse(
        stats=JobAlertStats(
            total_users=len(recipients),
            success_count=success_count,
            failure_count=failure_count,
        )
    )
