"""
Accounts service — SQLAlchemy ORM model for WhatsApp notification settings.

Tables owned by this module:
  - whatsapp_subscriptions   One row per user: verified number + per-type opt-ins
"""
from __future__ import annotations

import uuid
from datetime import datetime

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from shared.database.postgres import Base


def _flag(default: bool = False) -> Mapped[bool]:
    return mapped_column(
        sa.Boolean(),
        nullable=False,
        default=default,
        server_default=sa.text("true" if default else "false"),
    )


class WhatsAppSubscription(Base):
    __tablename__ = "whatsapp_subscriptions"

    # Auth-provider user id (no FK: users live in the provider)
    user_id: Mapped[uuid.UUID] = mapped_column(sa.Uuid(), primary_key=True)
    phone_number: Mapped[str] = mapped_column(sa.String(20), nullable=False)
    is_connected: Mapped[bool] = _flag()
    connected_at: Mapped[datetime | None] = mapped_column(
        sa.DateTime(timezone=True), nullable=True
    )

    # ── Preferences ──────────────────────────────────────────────────────────
    whatsapp_enabled: Mapped[bool] = _flag(True)
    job_alerts: Mapped[bool] = _flag(True)
    new_job_matches: Mapped[bool] = _flag()
    application_updates: Mapped[bool] = _flag()
    interview_reminders: Mapped[bool] = _flag()
    payment_notifications: Mapped[bool] = _flag()
    weekly_digest: Mapped[bool] = _flag()
    urgent_alerts: Mapped[bool] = _flag()

    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
