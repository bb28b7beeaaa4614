"""
Async HTTP client for the OTP endpoints, as used by the sign-up and reset
screens.

Every failure surfaces as ``OTPApiError`` carrying an ``ErrorKind`` so the
flow can map it to a user-facing message; a verify that simply does not
match is a normal ``VerifyResult(verified=False)``.
"""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Any

import httpx

from app.otp.constants import OTPPurpose

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 15.0


class ErrorKind(str, enum.Enum):
    NETWORK_ERROR = "network_error"
    RATE_LIMITED = "rate_limited"
    INVALID_REQUEST = "invalid_request"
    DELIVERY_FAILED = "delivery_failed"
    INVALID_CODE = "invalid_code"
    UNKNOWN = "unknown"


class OTPApiError(Exception):
    def __init__(
        self,
        kind: ErrorKind,
        message: str = "",
        *,
        retry_after: int | None = None,
    ) -> None:
        super().__init__(message or kind.value)
        self.kind = kind
        self.message = message
        self.retry_after = retry_after


@dataclass(frozen=True)
class VerifyResult:
    verified: bool
    message: str | None = None
    error: str | None = None


def _retry_after(response: httpx.Response) -> int | None:
    try:
        return int(response.headers["Retry-After"])
    except (KeyError, ValueError):
        return None


def _classify(response: httpx.Response, body: dict[str, Any]) -> OTPApiError:
    message = str(body.get("error") or "")
    status = response.status_code
    if status == 429:
        return OTPApiError(ErrorKind.RATE_LIMITED, message, retry_after=_retry_after(response))
    if status in (400, 422):
        return OTPApiError(ErrorKind.INVALID_REQUEST, message)
    if status in (502, 503, 504):
        return OTPApiError(ErrorKind.DELIVERY_FAILED, message)
    return OTPApiError(ErrorKind.UNKNOWN, message or f"Unexpected status {status}")


class OTPApiClient:
    """
    ``base_url`` points at the API root, e.g. ``https://api.example.com/api/v1``.

    An ``http_client`` may be injected (tests, shared connection pools); it is
    then left open by ``aclose``.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _post(self, path: str, payload: dict[str, str]) -> tuple[httpx.Response, dict[str, Any]]:
        try:
            response = await self._client.post(f"{self._base_url}{path}", json=payload)
        except httpx.TimeoutException as exc:
            logger.warning("OTP API %s timed out: %s", path, exc)
            raise OTPApiError(ErrorKind.NETWORK_ERROR, "The request timed out") from exc
        except httpx.HTTPError as exc:
            logger.warning("OTP API %s failed: %s", path, exc)
            raise OTPApiError(ErrorKind.NETWORK_ERROR, str(exc)) from exc

        try:
            body = response.json()
        except ValueError:
            body = None
        if not isinstance(body, dict):
            if response.is_success:
                raise OTPApiError(ErrorKind.UNKNOWN, "Unexpected response from server")
            raise _classify(response, {})
        return response, body

    async def send(self, email: str, purpose: OTPPurpose) -> None:
        response, body = await self._post("/otp/send", {"email": email, "type": purpose.value})
        if response.is_success and body.get("success"):
            return
        raise _classify(response, body)

    async def verify(self, email: str, code: str, purpose: OTPPurpose) -> VerifyResult:
        response, body = await self._post(
            "/otp/verify", {"email": email, "otp": code, "type": purpose.value}
        )
        if not response.is_success:
            raise _classify(response, body)
        return VerifyResult(
            verified=bool(body.get("verified")),
            message=body.get("message"),
            error=body.get("error"),
        )
