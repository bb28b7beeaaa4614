"""
Accounts service — SQLAlchemy ORM model for employer contact requests.

Tables owned by this module:
  - contact_requests   A student asking for a job poster's contact details
"""
from __future__ import annotations

import uuid
from datetime import datetime

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from shared.database.postgres import Base


class ContactRequest(Base):
    __tablename__ = "contact_requests"
    __table_args__ = (
        sa.UniqueConstraint("student_id", "job_id", name="uq_contact_requests_student_job"),
    )

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid(), primary_key=True, default=uuid.uuid4)
    student_id: Mapped[uuid.UUID] = mapped_column(sa.Uuid(), nullable=False, index=True)
    job_id: Mapped[uuid.UUID] = mapped_column(sa.Uuid(), nullable=False, index=True)
    message: Mapped[str] = mapped_column(sa.Text(), nullable=False)
    status: Mapped[str] = mapped_column(
        sa.String(20), nullable=False, default="pending", server_default="pending"
    )
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, server_default=func.now()
    )
