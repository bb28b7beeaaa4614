from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class ContactRequestCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    job_id: uuid.UUID
    message: str = Field(..., min_length=1, max_length=2000)


class ContactRequestResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    student_id: uuid.UUID
    job_id: uuid.UUID
    message: str
    status: str
    created_at: datetime
