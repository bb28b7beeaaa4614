"""
Accounts service — contact request business logic.
"""
from __future__ import annotations

import logging
import uuid

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.contact.models import ContactRequest
from app.exceptions import DuplicateContactRequest

logger = logging.getLogger(__name__)


async def create_contact_request(
    session: AsyncSession,
    *,
    student_id: uuid.UUID,
    job_id: uuid.UUID,
    message: str,
) -> ContactRequest:
    """
    Record a contact request.

    The (student_id, job_id) unique constraint is the duplicate check; a
    violation is raised as a 409 and the request transaction rolled back.
    """
    request = ContactRequest(student_id=student_id, job_id=job_id, message=message)
    session.add(request)
    try:
        await session.flush()
    except IntegrityError:
        logger.info("Duplicate contact request from %s for job %s", student_id, job_id)
        raise DuplicateContactRequest() from None
    await session.refresh(request)
    return request
