"""
Accounts service — Pydantic V2 schemas for the WhatsApp endpoints.
"""
from __future__ import annotations

from datetime import datetime
from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict, Field

from app.whatsapp.constants import PHONE_NUMBER_PATTERN, MessageType


def _check_phone(value: str) -> str:
    value = value.strip()
    if not PHONE_NUMBER_PATTERN.match(value):
        raise ValueError("Invalid phone number format. Please include country code.")
    return value


PhoneNumber = Annotated[str, AfterValidator(_check_phone)]


# ── Verification ──────────────────────────────────────────────────────────────

class WhatsAppVerificationRequest(BaseModel):
    phone_number: PhoneNumber = Field(..., examples=["+919876543210"])


class WhatsAppConfirmRequest(BaseModel):
    phone_number: PhoneNumber
    code: str = Field(..., min_length=6, max_length=6, pattern=r"^\d{6}$")


class WhatsAppVerificationResponse(BaseModel):
    success: bool = True
    message: str
    simulated: bool = False


# ── Preferences ───────────────────────────────────────────────────────────────

class WhatsAppPreferences(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    phone_number: str
    is_connected: bool
    connected_at: datetime | None = None
    whatsapp_enabled: bool
    job_alerts: bool
    new_job_matches: bool
    application_updates: bool
    interview_reminders: bool
    payment_notifications: bool
    weekly_digest: bool
    urgent_alerts: bool


class WhatsAppPreferencesUpdate(BaseModel):
    """Partial update; omitted fields are left unchanged."""

    whatsapp_enabled: bool | None = None
    job_alerts: bool | None = None
    new_job_matches: bool | None = None
    application_updates: bool | None = None
    interview_reminders: bool | None = None
    payment_notifications: bool | None = None
    weekly_digest: bool | None = None
    urgent_alerts: bool | None = None


# ── Notifications ─────────────────────────────────────────────────────────────

class WhatsAppNotificationRequest(BaseModel):
    phone_number: PhoneNumber
    message: str = Field(..., min_length=1, max_length=1500)
    message_type: MessageType = MessageType.GENERAL


class WhatsAppNotificationResponse(BaseModel):
    success: bool
    message_sid: str | None = None
    simulated: bool = False


class JobSummary(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    location: str = Field(..., min_length=1, max_length=200)
    hourly_rate: str = Field(..., min_length=1, max_length=50)
    description: str = Field(default="", max_length=1000)


class JobAlertRequest(BaseModel):
    job: JobSummary


class JobAlertStats(BaseModel):
    total_users: int
    success_count: int
    failure_count: int


class JobAlertResponse(BaseModel):
    success: bool = True
    message: str = "WhatsApp job alerts processed"
    stats: JobAlertStats
