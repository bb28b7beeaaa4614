"""
Accounts service — OTP router.

Only HTTP concerns live here:
  - Route declarations, HTTP methods, status codes, response_model
  - Dependency injection (session, settings, current user)
  - Forwarding to the controller

Zero business logic. Zero DB queries.
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings
from app.database import get_db
from app.dependencies import get_settings, require_operator
from app.otp.controller import (
    run_diagnostic as run_diagnostic_controller,
    send_otp as send_otp_controller,
    verify_otp as verify_otp_controller,
)
from app.otp.schemas import (
    OTPDiagnosticRequest,
    OTPDiagnosticResponse,
    SendOTPRequest,
    SendOTPResponse,
    VerifyOTPRequest,
    VerifyOTPResponse,
)
from app.rate_limit import limiter
from shared.models.user import CurrentUser

router = APIRouter(prefix="/otp", tags=["otp"])


@router.post(
    "/send",
    response_model=SendOTPResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_200_OK,
    summary="Issue a 6-digit code and email it",
    description=(
        "`type` is `signup` or `password_reset`. The code expires in 2 minutes. "
        "A second request for the same email and type within the resend interval "
        "is answered with 429 and a `Retry-After` header."
    ),
)
@limiter.limit("10/10minutes")
async def send_otp(
    request: Request,
    body: SendOTPRequest,
    session: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> SendOTPResponse:
    return await send_otp_controller(session, body, settings)


@router.post(
    "/verify",
    response_model=VerifyOTPResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_200_OK,
    summary="Verify a 6-digit code (single use)",
    description=(
        "Returns `verified: true` exactly once per issued code. Wrong, expired and "
        "exhausted codes all return `verified: false` with the same error."
    ),
)
@limiter.limit("30/10minutes")
async def verify_otp(
    request: Request,
    body: VerifyOTPRequest,
    session: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> VerifyOTPResponse:
    return await verify_otp_controller(session, body, settings)


@router.post(
    "/diagnostics",
    response_model=OTPDiagnosticResponse,
    status_code=status.HTTP_200_OK,
    summary="Send a test OTP and report delivery details (admin only)",
)
async def otp_diagnostics(
    request: Request,
    body: OTPDiagnosticRequest,
    session: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    _operator: CurrentUser = Depends(require_operator),
) -> OTPDiagnosticResponse:
    return await run_diagnostic_controller(
        session,
        body,
        settings,
        request_id=getattr(request.state, "request_id", None),
    )
