"""
Accounts service — SQLAlchemy ORM model for one-time passcodes.

Tables owned by this module:
  - otps   Email-keyed 6-digit codes for signup and password-reset verification
"""
from __future__ import annotations

import uuid
from datetime import datetime

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from shared.database.postgres import Base

from app.otp.constants import OTPPurpose


class OneTimeCode(Base):
    __tablename__ = "otps"
    __table_args__ = (
        # Verification and the resend throttle both read "latest row for
        # (email, purpose)".
        sa.Index("ix_otps_email_type_created", "email", "otp_type", "created_at"),
        sa.Index("ix_otps_expires_at", "expires_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid(),
        primary_key=True,
        default=uuid.uuid4,
    )
    # Lower-cased before insert; lookups never need func.lower()
    email: Mapped[str] = mapped_column(sa.String(255), nullable=False)
    otp_code: Mapped[str] = mapped_column(sa.String(6), nullable=False)
    otp_type: Mapped[OTPPurpose] = mapped_column(
        sa.Enum(
            OTPPurpose,
            name="otp_purpose",
            native_enum=False,
            length=20,
            values_callable=lambda e: [x.value for x in e],
        ),
        nullable=False,
    )
    attempts: Mapped[int] = mapped_column(
        sa.SmallInteger(),
        nullable=False,
        default=0,
        server_default=sa.text("0"),
    )
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    expires_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False
    )

    def __repr__(self) -> str:
        return f"<OneTimeCode {self.email} {self.otp_type.value} attempts={self.attempts}>"
