import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from app.config import Settings
from app.contact.router import router as contact_router
from app.database import dispose_db, init_db
from app.dependencies import get_settings
from app.exceptions import OTPRequestError, otp_error_handler
from app.otp.router import router as otp_router
from app.rate_limit import limiter
from app.redis_client import close_redis_client
from app.whatsapp.router import router as whatsapp_router
from shared.middleware import error_envelope_middleware, request_id_middleware

logging.basicConfig(level=logging.INFO, format="%(levelname)s:%(name)s: %(message)s")


# ── OpenAPI metadata ──────────────────────────────────────────────────────────

_DESCRIPTION = """
## ShiftBuddy Accounts Service

Account-side concerns of the ShiftBuddy student job board:

* **One-time passcodes**: 6-digit email codes for signup and password reset.
  Codes expire after 2 minutes, allow 5 wrong guesses and are single use.
* **WhatsApp**: number verification, notification preferences, formatted
  notifications and job-alert fan-out.
* **Contact requests**: a student asking a job poster for contact details.

### Authentication
Protected endpoints require:
```
Authorization: Bearer <access_token>
```
issued by the auth provider. Operator endpoints additionally require the
`admin` or `service` role in the token.

### Error shape
The OTP endpoints answer in their own result shape:
```json
{ "success": false, "error": "Human-readable message" }
{ "verified": false, "error": "Invalid or expired OTP" }
```
Other endpoints return `{ "detail": "Human-readable message" }`; validation
errors (`422`) return the standard Pydantic error list under `detail`.

### Rate limits
`429 Too Many Requests` is returned when a rate limit is exceeded or a new
code is requested too soon. The response includes a `Retry-After` header.
"""

_TAGS_METADATA = [
    {
        "name": "otp",
        "description": (
            "Issue and verify email one-time passcodes. `POST /otp/diagnostics` "
            "(operators only) performs a real send and reports provider details."
        ),
    },
    {
        "name": "whatsapp",
        "description": (
            "Connect a WhatsApp number with a verification code, manage notification "
            "preferences, and (operators only) send notifications and job alerts."
        ),
    },
    {
        "name": "contact",
        "description": "Students requesting a job poster's contact details.",
    },
]


# ── Health schema ─────────────────────────────────────────────────────────────

class HealthResponse(BaseModel):
    status: str
    service: str


# ── App factory ───────────────────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    init_db(settings.accounts_database_url)
    yield
    await close_redis_client()
    await dispose_db()


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    app = FastAPI(
        title="ShiftBuddy Accounts Service",
        version="1.0.0",
        description=_DESCRIPTION,
        openapi_tags=_TAGS_METADATA,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.settings = settings

    # Attach rate limiter state before middleware
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_exception_handler(OTPRequestError, otp_error_handler)

    # Middleware is applied in reverse-registration order (last added = outermost).
    # CORS must be outermost so ALL responses (including 429s) carry CORS headers.
    app.add_middleware(SlowAPIMiddleware)
    app.middleware("http")(request_id_middleware)
    app.middleware("http")(error_envelope_middleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Retry-After", "X-Request-ID"],
        max_age=600,
    )

    app.include_router(otp_router, prefix="/api/v1")
    app.include_router(whatsapp_router, prefix="/api/v1")
    app.include_router(contact_router, prefix="/api/v1")

    @app.get("/health", response_model=HealthResponse, tags=["health"])
    async def health() -> HealthResponse:
        return HealthResponse(status="ok", service="accounts")

    return app


app = create_app()
