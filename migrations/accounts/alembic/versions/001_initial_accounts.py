"""Accounts schema: otps, whatsapp_subscriptions, contact_requests

Revision ID: 001
Revises:
Create Date: 2026-10-19

Tables created:
  - otps                     Email one-time codes (signup / password reset)
  - whatsapp_subscriptions   Verified WhatsApp number + notification opt-ins
  - contact_requests         Student → job poster contact requests

otp_type is stored as VARCHAR with a CHECK constraint rather than a native
ENUM, so adding a purpose later needs no ALTER TYPE.

Downgrade: drops all tables in reverse order.
"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _flag(name: str, default: bool) -> sa.Column:
    return sa.Column(
        name,
        sa.Boolean(),
        nullable=False,
        server_default=sa.text("true" if default else "false"),
    )


# ─────────────────────────────────────────────────────────────────────────────
#  UPGRADE
# ─────────────────────────────────────────────────────────────────────────────

def upgrade() -> None:
    # ── 1. otps ───────────────────────────────────────────────────────────────
    op.create_table(
        "otps",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("otp_code", sa.String(6), nullable=False),
        sa.Column("otp_type", sa.String(20), nullable=False),
        sa.Column("attempts", sa.SmallInteger(), nullable=False, server_default=sa.text("0")),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "otp_type IN ('signup', 'password_reset')", name="ck_otps_otp_type"
        ),
    )
    op.create_index("ix_otps_email_type_created", "otps", ["email", "otp_type", "created_at"])
    op.create_index("ix_otps_expires_at", "otps", ["expires_at"])

    # ── 2. whatsapp_subscriptions ─────────────────────────────────────────────
    op.create_table(
        "whatsapp_subscriptions",
        sa.Column("user_id", sa.Uuid(), primary_key=True),
        sa.Column("phone_number", sa.String(20), nullable=False),
        _flag("is_connected", False),
        sa.Column("connected_at", sa.DateTime(timezone=True), nullable=True),
        _flag("whatsapp_enabled", True),
        _flag("job_alerts", True),
        _flag("new_job_matches", False),
        _flag("application_updates", False),
        _flag("interview_reminders", False),
        _flag("payment_notifications", False),
        _flag("weekly_digest", False),
        _flag("urgent_alerts", False),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )

    # ── 3. contact_requests ───────────────────────────────────────────────────
    op.create_table(
        "contact_requests",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("student_id", sa.Uuid(), nullable=False),
        sa.Column("job_id", sa.Uuid(), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint("student_id", "job_id", name="uq_contact_requests_student_job"),
    )
    op.create_index("ix_contact_requests_student_id", "contact_requests", ["student_id"])
    op.create_index("ix_contact_requests_job_id", "contact_requests", ["job_id"])


# ─────────────────────────────────────────────────────────────────────────────
#  DOWNGRADE
# ─────────────────────────────────────────────────────────────────────────────

def downgrade() -> None:
    op.drop_index("ix_contact_requests_job_id", table_name="contact_requests")
    op.drop_index("ix_contact_requests_student_id", table_name="contact_requests")
    op.drop_table("contact_requests")
    op.drop_table("whatsapp_subscriptions")
    op.drop_index("ix_otps_expires_at", table_name="otps")
    op.drop_index("ix_otps_email_type_created", table_name="otps")
    op.drop_table("otps")
