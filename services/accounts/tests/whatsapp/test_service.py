import asyncio
import uuid

import httpx
import pytest

from app.exceptions import InvalidWhatsAppCode, WhatsAppCodeExhausted, WhatsAppCodeExpired
from app.whatsapp import service, twilio
from app.whatsapp.constants import MessageType
from app.whatsapp.schemas import JobSummary, WhatsAppPreferencesUpdate

PHONE = "+919876543210"


def test_format_message_templates() -> None:
    text = service.format_message("Shift at 6pm", MessageType.INTERVIEW_REMINDER, "ShiftBuddy")
    assert text.startswith("⏰ *Interview Reminder*")
    assert "Shift at 6pm" in text

    default = service.format_message("Hello", MessageType.GENERAL, "ShiftBuddy")
    assert "ShiftBuddy Notification" in default


def test_format_job_alert() -> None:
    text = service.format_job_alert(
        JobSummary(title="Weekend Tutor", location="Delhi", hourly_rate="₹500/hour")
    )
    assert "*Weekend Tutor*" in text
    assert "Location: Delhi" in text
    assert "Rate: ₹500/hour" in text


@pytest.mark.asyncio
async def test_verification_code_single_use(redis) -> None:
    user_id = uuid.uuid4()
    code = await service.create_verification_code(redis, user_id, PHONE)
    assert len(code) == 6
    assert await redis.ttl(f"wa_code:{user_id}:{PHONE}") > 0

    await service.check_verification_code(redis, user_id, PHONE, code)
    with pytest.raises(WhatsAppCodeExpired):
        await service.check_verification_code(redis, user_id, PHONE, code)


@pytest.mark.asyncio
async def test_verification_code_counts_attempts(redis) -> None:
    user_id = uuid.uuid4()
    code = await service.create_verification_code(redis, user_id, PHONE)
    wrong = "000000" if code != "000000" else "111111"

    with pytest.raises(InvalidWhatsAppCode) as info:
        await service.check_verification_code(redis, user_id, PHONE, wrong)
    assert "4 attempt(s) remaining" in info.value.detail

    for _ in range(3):
        with pytest.raises(InvalidWhatsAppCode):
            await service.check_verification_code(redis, user_id, PHONE, wrong)
    with pytest.raises(WhatsAppCodeExhausted):
        await service.check_verification_code(redis, user_id, PHONE, wrong)
    # Even the right code is refused now
    with pytest.raises(WhatsAppCodeExhausted):
        await service.check_verification_code(redis, user_id, PHONE, code)


@pytest.mark.asyncio
async def test_concurrent_guesses_respect_attempt_limit(redis) -> None:
    user_id = uuid.uuid4()
    code = await service.create_verification_code(redis, user_id, PHONE)
    wrong = "000000" if code != "000000" else "111111"

    guesses = [wrong] * 19 + [code]
    results = await asyncio.gather(
        *(service.check_verification_code(redis, user_id, PHONE, g) for g in guesses),
        return_exceptions=True,
    )

    assert sum(isinstance(r, InvalidWhatsAppCode) for r in results) == 4
    assert sum(isinstance(r, WhatsAppCodeExhausted) for r in results) == 16
    # The right code arrived after the limit was spent
    assert isinstance(results[-1], WhatsAppCodeExhausted)


@pytest.mark.asyncio
async def test_concurrent_correct_confirms_only_one_wins(redis) -> None:
    user_id = uuid.uuid4()
    code = await service.create_verification_code(redis, user_id, PHONE)

    results = await asyncio.gather(
        service.check_verification_code(redis, user_id, PHONE, code),
        service.check_verification_code(redis, user_id, PHONE, code),
        return_exceptions=True,
    )

    assert results.count(None) == 1
    assert sum(isinstance(r, WhatsAppCodeExpired) for r in results) == 1


@pytest.mark.asyncio
async def test_expired_code_leaves_no_counter(redis) -> None:
    user_id = uuid.uuid4()
    with pytest.raises(WhatsAppCodeExpired):
        await service.check_verification_code(redis, user_id, PHONE, "123456")
    assert await redis.exists(f"wa_tries:{user_id}:{PHONE}") == 0


@pytest.mark.asyncio
async def test_codes_are_scoped_to_user(redis) -> None:
    code = await service.create_verification_code(redis, uuid.uuid4(), PHONE)
    with pytest.raises(WhatsAppCodeExpired):
        await service.check_verification_code(redis, uuid.uuid4(), PHONE, code)


@pytest.mark.asyncio
async def test_connect_and_update_preferences(db_session) -> None:
    user_id = uuid.uuid4()
    sub = await service.connect_number(db_session, user_id, PHONE)
    await db_session.commit()
    assert sub.is_connected
    assert sub.job_alerts and sub.whatsapp_enabled
    assert not sub.weekly_digest

    sub = await service.update_preferences(
        db_session, sub, WhatsAppPreferencesUpdate(weekly_digest=True, job_alerts=False)
    )
    await db_session.commit()
    assert sub.weekly_digest
    assert not sub.job_alerts
    assert sub.whatsapp_enabled


@pytest.mark.asyncio
async def test_job_alert_recipients(db_session) -> None:
    wanted = await service.connect_number(db_session, uuid.uuid4(), "+14155550100")
    muted = await service.connect_number(db_session, uuid.uuid4(), "+14155550101")
    await service.update_preferences(
        db_session, muted, WhatsAppPreferencesUpdate(whatsapp_enabled=False)
    )
    no_alerts = await service.connect_number(db_session, uuid.uuid4(), "+14155550102")
    await service.update_preferences(
        db_session, no_alerts, WhatsAppPreferencesUpdate(job_alerts=False)
    )
    await db_session.commit()

    recipients = await service.list_job_alert_recipients(db_session)
    assert [r.user_id for r in recipients] == [wanted.user_id]


@pytest.mark.asyncio
async def test_twilio_simulated_when_unconfigured(settings) -> None:
    sid = await twilio.send_whatsapp(PHONE, "hi", settings)
    assert sid is not None
    assert twilio.is_simulated(sid)


@pytest.mark.asyncio
async def test_twilio_request_shape(monkeypatch, settings) -> None:
    configured = settings.model_copy(
        update={
            "twilio_account_sid": "AC123",
            "twilio_auth_token": "token",
            "twilio_whatsapp_number": "+14155238886",
            "twilio_timeout_seconds": 4.0,
        }
    )
    seen: list[httpx.Request] = []
    timeouts: list = []
    real_client = httpx.AsyncClient

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(201, json={"sid": "SM1"})

    def make_client(**kw):
        timeouts.append(kw.get("timeout"))
        return real_client(transport=httpx.MockTransport(handler), **kw)

    monkeypatch.setattr(twilio.httpx, "AsyncClient", make_client)
    assert await twilio.send_whatsapp(PHONE, "hi", configured) == "SM1"
    [request] = seen
    assert request.url.path == "/2010-04-01/Accounts/AC123/Messages.json"
    form = request.content.decode()
    assert "From=whatsapp%3A%2B14155238886" in form
    assert "To=whatsapp%3A%2B919876543210" in form
    assert timeouts == [4.0]


@pytest.mark.asyncio
async def test_twilio_error_returns_none(monkeypatch, settings) -> None:
    configured = settings.model_copy(
        update={
            "twilio_account_sid": "AC123",
            "twilio_auth_token": "token",
            "twilio_whatsapp_number": "+14155238886",
        }
    )
    real_client = httpx.AsyncClient
    monkeypatch.setattr(
        twilio.httpx,
        "AsyncClient",
        lambda **kw: real_client(
            transport=httpx.MockTransport(lambda r: httpx.Response(400, json={"code": 21211})),
            **kw,
        ),
    )
    assert await twilio.send_whatsapp(PHONE, "hi", configured) is None
