"""
Accounts service — contact request router.
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.contact.schemas import ContactRequestCreate, ContactRequestResponse
from app.contact.service import create_contact_request
from app.database import get_db
from app.dependencies import get_current_user
from shared.models.user import CurrentUser

router = APIRouter(prefix="/contact-requests", tags=["contact"])


@router.post(
    "",
    response_model=ContactRequestResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Ask a job poster for their contact details",
    description="One request per student and job; a second one answers 409.",
)
async def create(
    body: ContactRequestCreate,
    session: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> ContactRequestResponse:
    request = await create_contact_request(
        session,
        student_id=current_user.id,
        job_id=body.job_id,
        message=body.message,
    )
    return ContactRequestResponse.model_validate(request)
