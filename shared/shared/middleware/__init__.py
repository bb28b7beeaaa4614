"""HTTP middleware shared by every service: request ids and the error envelope."""
from shared.middleware.error_handler import error_envelope_middleware
from shared.middleware.request_id import REQUEST_ID_HEADER, request_id_middleware

__all__ = ["REQUEST_ID_HEADER", "error_envelope_middleware", "request_id_middleware"]
