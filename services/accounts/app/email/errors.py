"""
Email delivery error taxonomy.

Providers raise EmailDeliveryError with one of four kinds.  The kinds exist
for operators (logs, diagnostics); callers collapse them into a single
user-facing message.  The lookup tables below are the only place a provider
response is interpreted, so supporting a new status or reply code is a
one-line change.
"""
from __future__ import annotations

import enum


class DeliveryErrorKind(str, enum.Enum):
    INVALID_PROVIDER_CREDENTIALS = "InvalidProviderCredentials"
    AUTHENTICATION_FAILED = "AuthenticationFailed"
    RATE_LIMITED = "RateLimited"
    UNKNOWN = "UnknownDeliveryError"


class EmailDeliveryError(Exception):
    def __init__(self, kind: DeliveryErrorKind, provider: str, detail: str = "") -> None:
        super().__init__(f"{provider}: {kind.value} {detail}".strip())
        self.kind = kind
        self.provider = provider
        self.detail = detail


# Brevo REST API: 401 = unknown / revoked api-key, 403 = key valid but the
# account, sender or source IP is not authorised to send.
HTTP_STATUS_KINDS: dict[int, DeliveryErrorKind] = {
    401: DeliveryErrorKind.INVALID_PROVIDER_CREDENTIALS,
    403: DeliveryErrorKind.AUTHENTICATION_FAILED,
    429: DeliveryErrorKind.RATE_LIMITED,
}

# SMTP reply codes (RFC 5321 / RFC 4954)
SMTP_CODE_KINDS: dict[int, DeliveryErrorKind] = {
    421: DeliveryErrorKind.RATE_LIMITED,     # service not available / too many connections
    450: DeliveryErrorKind.RATE_LIMITED,
    451: DeliveryErrorKind.RATE_LIMITED,
    452: DeliveryErrorKind.RATE_LIMITED,
    454: DeliveryErrorKind.AUTHENTICATION_FAILED,
    530: DeliveryErrorKind.AUTHENTICATION_FAILED,
    534: DeliveryErrorKind.AUTHENTICATION_FAILED,
    535: DeliveryErrorKind.INVALID_PROVIDER_CREDENTIALS,
}


def classify_http_status(status_code: int) -> DeliveryErrorKind:
    return HTTP_STATUS_KINDS.get(status_code, DeliveryErrorKind.UNKNOWN)


def classify_smtp_code(code: int) -> DeliveryErrorKind:
    return SMTP_CODE_KINDS.get(code, DeliveryErrorKind.UNKNOWN)
