"""
Client side of the email-code flows: the state machine a sign-up or
password-reset screen drives, the HTTP client it talks through, and the
password rules checked before any network call.
"""
from app.flow.client import ErrorKind, OTPApiClient, OTPApiError, VerifyResult
from app.flow.machine import AccountError, AuthFlow, FlowStage, Notice

__all__ = [
    "AccountError",
    "AuthFlow",
    "ErrorKind",
    "FlowStage",
    "Notice",
    "OTPApiClient",
    "OTPApiError",
    "VerifyResult",
]
