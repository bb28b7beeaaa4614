"""
Accounts service — WhatsApp router.

Only HTTP concerns live here: route declarations, dependency injection and
forwarding to the controller.
"""
from __future__ import annotations

import redis.asyncio as aioredis
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings
from app.database import get_db
from app.dependencies import get_current_user, get_redis, get_settings, require_operator
from app.rate_limit import limiter
from app.whatsapp import controller
from app.whatsapp.schemas import (
    JobAlertRequest,
    JobAlertResponse,
    WhatsAppConfirmRequest,
    WhatsAppNotificationRequest,
    WhatsAppNotificationResponse,
    WhatsAppPreferences,
    WhatsAppPreferencesUpdate,
    WhatsAppVerificationRequest,
    WhatsAppVerificationResponse,
)
from shared.models.user import CurrentUser

router = APIRouter(prefix="/whatsapp", tags=["whatsapp"])


@router.post(
    "/verification",
    response_model=WhatsAppVerificationResponse,
    status_code=status.HTTP_200_OK,
    summary="Send a verification code to a WhatsApp number",
)
@limiter.limit("5/10minutes")
async def request_verification(
    request: Request,
    body: WhatsAppVerificationRequest,
    redis: aioredis.Redis = Depends(get_redis),
    settings: Settings = Depends(get_settings),
    current_user: CurrentUser = Depends(get_current_user),
) -> WhatsAppVerificationResponse:
    return await controller.request_verification(redis, current_user.id, body, settings)


@router.post(
    "/verification/confirm",
    response_model=WhatsAppPreferences,
    status_code=status.HTTP_200_OK,
    summary="Confirm the code and connect the number",
)
@limiter.limit("20/10minutes")
async def confirm_verification(
    request: Request,
    body: WhatsAppConfirmRequest,
    session: AsyncSession = Depends(get_db),
    redis: aioredis.Redis = Depends(get_redis),
    current_user: CurrentUser = Depends(get_current_user),
) -> WhatsAppPreferences:
    return await controller.confirm_verification(session, redis, current_user.id, body)


@router.get(
    "/preferences",
    response_model=WhatsAppPreferences,
    summary="Get WhatsApp notification preferences",
)
async def get_preferences(
    session: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> WhatsAppPreferences:
    return await controller.get_preferences(session, current_user.id)


@router.put(
    "/preferences",
    response_model=WhatsAppPreferences,
    summary="Update WhatsApp notification preferences",
)
async def update_preferences(
    body: WhatsAppPreferencesUpdate,
    session: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> WhatsAppPreferences:
    return await controller.update_preferences(session, current_user.id, body)


@router.post(
    "/notifications",
    response_model=WhatsAppNotificationResponse,
    summary="Send a formatted WhatsApp notification (admin/service only)",
)
async def send_notification(
    body: WhatsAppNotificationRequest,
    settings: Settings = Depends(get_settings),
    _operator: CurrentUser = Depends(require_operator),
) -> WhatsAppNotificationResponse:
    return await controller.send_notification(body, settings)


@router.post(
    "/job-alerts",
    response_model=JobAlertResponse,
    summary="Send a job alert to every opted-in subscriber (admin/service only)",
)
async def send_job_alerts(
    body: JobAlertRequest,
    session: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    _operator: CurrentUser = Depends(require_operator),
) -> JobAlertResponse:
    return await controller.send_job_alerts(session, body, settings)
