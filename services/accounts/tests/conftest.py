import os

# Must be set before app.rate_limit is imported (limiter reads them at import).
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("RATE_LIMIT_STORAGE_URI", "memory://")
os.environ.setdefault("JWT_SECRET", "test-secret")

import uuid  # noqa: E402
from collections.abc import AsyncGenerator, Callable, Generator  # noqa: E402
from datetime import datetime, timedelta, timezone  # noqa: E402
from pathlib import Path  # noqa: E402

import fakeredis  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
import sqlalchemy as sa  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from jose import jwt  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: E402

from app.config import Settings  # noqa: E402
from app.contact.models import ContactRequest  # noqa: E402,F401 - register with Base
from app.database import dispose_db, init_db  # noqa: E402
from app.dependencies import get_redis, get_settings  # noqa: E402
from app.main import create_app  # noqa: E402
from app.otp.models import OneTimeCode  # noqa: E402,F401 - register with Base
from app.whatsapp.models import WhatsAppSubscription  # noqa: E402,F401 - register with Base
from shared.auth.config import AuthSettings  # noqa: E402
from shared.database.postgres import Base, get_async_session_factory  # noqa: E402


@pytest.fixture
def database_url(tmp_path: Path) -> str:
    path = tmp_path / "accounts.db"
    # Schema is created with the synchronous stdlib driver so no event loop is needed.
    engine = sa.create_engine(f"sqlite:///{path}")
    Base.metadata.create_all(engine)
    engine.dispose()
    return f"sqlite+aiosqlite:///{path}"


@pytest.fixture
def settings(database_url: str) -> Settings:
    return Settings(
        _env_file=None,
        env_name="test",
        accounts_database_url=database_url,
        redis_url="redis://localhost:6379/15",
        smtp_host="",
        smtp_username="",
        brevo_api_key="",
        twilio_account_sid="",
        twilio_auth_token="",
        twilio_whatsapp_number="",
    )


@pytest_asyncio.fixture
async def session_factory(database_url: str):
    factory = get_async_session_factory(database_url)
    yield factory
    await factory.kw["bind"].dispose()


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def redis() -> AsyncGenerator[fakeredis.FakeAsyncRedis, None]:
    client = fakeredis.FakeAsyncRedis(decode_responses=True)
    yield client
    await client.aclose()


@pytest.fixture
def client(settings: Settings) -> Generator[TestClient, None, None]:
    app = create_app(settings)
    fake_redis = fakeredis.FakeAsyncRedis(decode_responses=True)
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_redis] = lambda: fake_redis
    with TestClient(app) as c:
        yield c


@pytest_asyncio.fixture
async def async_client(settings: Settings) -> AsyncGenerator[AsyncClient, None]:
    """ASGI client without lifespan; the DB is initialised here instead."""
    app = create_app(settings)
    app.dependency_overrides[get_settings] = lambda: settings
    init_db(settings.accounts_database_url)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    await dispose_db()


@pytest.fixture
def make_token() -> Callable[..., str]:
    auth = AuthSettings()

    def _make(user_id: uuid.UUID | None = None, roles: list[str] | None = None) -> str:
        now = datetime.now(timezone.utc)
        claims = {
            "sub": str(user_id or uuid.uuid4()),
            "email": "student@example.com",
            "roles": roles or ["user"],
            "iss": auth.issuer,
            "aud": auth.audience,
            "iat": now,
            "exp": now + timedelta(minutes=15),
        }
        return jwt.encode(claims, auth.secret, algorithm=auth.algorithm)

    return _make


@pytest.fixture
def auth_headers(make_token) -> Callable[..., dict[str, str]]:
    def _headers(user_id: uuid.UUID | None = None, roles: list[str] | None = None) -> dict:
        return {"Authorization": f"Bearer {make_token(user_id, roles)}"}

    return _headers
