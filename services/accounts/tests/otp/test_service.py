import asyncio
from datetime import timedelta

import pytest
from sqlalchemy import select, update

from app.otp.constants import OTPPurpose
from app.otp.models import OneTimeCode
from app.otp.service import (
    _utcnow,
    delete_expired_codes,
    generate_code,
    get_latest_active_code,
    is_well_formed_code,
    issue_code,
    seconds_until_resend_allowed,
    verify_code,
)


async def _rows(session, email: str = "a@x.com") -> list[OneTimeCode]:
    result = await session.execute(
        select(OneTimeCode)
        .where(OneTimeCode.email == email)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


def test_generate_code_is_six_digits() -> None:
    for _ in range(200):
        code = generate_code()
        assert len(code) == 6
        assert code.isdigit()


def test_is_well_formed_code() -> None:
    assert is_well_formed_code("012345")
    assert not is_well_formed_code("12345")
    assert not is_well_formed_code("1234567")
    assert not is_well_formed_code("12a456")
    assert not is_well_formed_code("１２３４５６")  # full-width digits


@pytest.mark.asyncio
async def test_issue_then_verify_succeeds_once(db_session) -> None:
    otp = await issue_code(
        db_session, email="a@x.com", purpose=OTPPurpose.SIGNUP, code="123456"
    )
    await db_session.commit()
    assert otp.attempts == 0
    assert otp.expires_at - otp.created_at == timedelta(seconds=120)

    assert await verify_code(
        db_session, email="a@x.com", purpose=OTPPurpose.SIGNUP, code="123456"
    )
    await db_session.commit()
    assert await _rows(db_session) == []

    # Replay of the same code fails
    assert not await verify_code(
        db_session, email="a@x.com", purpose=OTPPurpose.SIGNUP, code="123456"
    )


@pytest.mark.asyncio
async def test_verify_without_issue_fails_and_mutates_nothing(db_session) -> None:
    assert not await verify_code(
        db_session, email="a@x.com", purpose=OTPPurpose.SIGNUP, code="000000"
    )
    await db_session.commit()
    assert await _rows(db_session) == []


@pytest.mark.asyncio
async def test_email_is_case_insensitive(db_session) -> None:
    await issue_code(db_session, email=" A@X.com ", purpose=OTPPurpose.SIGNUP, code="111111")
    await db_session.commit()
    assert await verify_code(
        db_session, email="a@x.COM", purpose=OTPPurpose.SIGNUP, code="111111"
    )


@pytest.mark.asyncio
async def test_purposes_are_independent(db_session) -> None:
    await issue_code(db_session, email="a@x.com", purpose=OTPPurpose.SIGNUP, code="111111")
    await db_session.commit()
    assert not await verify_code(
        db_session, email="a@x.com", purpose=OTPPurpose.PASSWORD_RESET, code="111111"
    )


@pytest.mark.asyncio
async def test_expired_code_fails_regardless_of_attempts(db_session) -> None:
    await issue_code(
        db_session,
        email="a@x.com",
        purpose=OTPPurpose.SIGNUP,
        code="123456",
        expire_seconds=-1,
    )
    await db_session.commit()
    assert not await verify_code(
        db_session, email="a@x.com", purpose=OTPPurpose.SIGNUP, code="123456"
    )


@pytest.mark.asyncio
async def test_wrong_code_increments_attempts(db_session) -> None:
    await issue_code(db_session, email="a@x.com", purpose=OTPPurpose.SIGNUP, code="123456")
    await db_session.commit()

    assert not await verify_code(
        db_session, email="a@x.com", purpose=OTPPurpose.SIGNUP, code="654321"
    )
    await db_session.commit()
    [row] = await _rows(db_session)
    assert row.attempts == 1


@pytest.mark.asyncio
async def test_exhausted_code_stays_invalid(db_session) -> None:
    await issue_code(db_session, email="a@x.com", purpose=OTPPurpose.SIGNUP, code="123456")
    await db_session.commit()

    for _ in range(5):
        assert not await verify_code(
            db_session, email="a@x.com", purpose=OTPPurpose.SIGNUP, code="000000"
        )
        await db_session.commit()

    assert not await verify_code(
        db_session, email="a@x.com", purpose=OTPPurpose.SIGNUP, code="123456"
    )
    await db_session.commit()
    [row] = await _rows(db_session)
    assert row.attempts == 5


@pytest.mark.asyncio
async def test_newest_code_supersedes_older_one(db_session) -> None:
    first = await issue_code(
        db_session, email="a@x.com", purpose=OTPPurpose.SIGNUP, code="111111"
    )
    await db_session.flush()
    await db_session.execute(
        update(OneTimeCode)
        .where(OneTimeCode.id == first.id)
        .values(created_at=_utcnow() - timedelta(seconds=60))
    )
    await issue_code(db_session, email="a@x.com", purpose=OTPPurpose.SIGNUP, code="222222")
    await db_session.commit()

    latest = await get_latest_active_code(db_session, "a@x.com", OTPPurpose.SIGNUP)
    assert latest is not None
    assert latest.otp_code == "222222"
    assert not await verify_code(
        db_session, email="a@x.com", purpose=OTPPurpose.SIGNUP, code="111111"
    )
    await db_session.commit()
    assert await verify_code(
        db_session, email="a@x.com", purpose=OTPPurpose.SIGNUP, code="222222"
    )


@pytest.mark.asyncio
async def test_concurrent_correct_submissions_only_one_wins(session_factory) -> None:
    async with session_factory() as session:
        await issue_code(session, email="a@x.com", purpose=OTPPurpose.SIGNUP, code="123456")
        await session.commit()

    async def attempt() -> bool:
        async with session_factory() as session:
            ok = await verify_code(
                session, email="a@x.com", purpose=OTPPurpose.SIGNUP, code="123456"
            )
            await session.commit()
            return ok

    results = await asyncio.gather(attempt(), attempt())
    assert sorted(results) == [False, True]


@pytest.mark.asyncio
async def test_stale_read_cannot_consume_twice(session_factory) -> None:
    async with session_factory() as setup:
        await issue_code(setup, email="a@x.com", purpose=OTPPurpose.SIGNUP, code="123456")
        await setup.commit()

    async with session_factory() as first, session_factory() as second:
        # Both sessions have seen the row before either consumes it.
        assert await get_latest_active_code(second, "a@x.com", OTPPurpose.SIGNUP) is not None
        assert await verify_code(
            first, email="a@x.com", purpose=OTPPurpose.SIGNUP, code="123456"
        )
        await first.commit()
        assert not await verify_code(
            second, email="a@x.com", purpose=OTPPurpose.SIGNUP, code="123456"
        )
        await second.commit()


@pytest.mark.asyncio
async def test_resend_throttle(db_session) -> None:
    assert await seconds_until_resend_allowed(
        db_session, "a@x.com", OTPPurpose.SIGNUP, 45
    ) == 0

    otp = await issue_code(db_session, email="a@x.com", purpose=OTPPurpose.SIGNUP, code="123456")
    await db_session.commit()
    wait = await seconds_until_resend_allowed(db_session, "a@x.com", OTPPurpose.SIGNUP, 45)
    assert 0 < wait <= 45

    await db_session.execute(
        update(OneTimeCode)
        .where(OneTimeCode.id == otp.id)
        .values(created_at=_utcnow() - timedelta(seconds=46))
    )
    await db_session.commit()
    assert await seconds_until_resend_allowed(
        db_session, "a@x.com", OTPPurpose.SIGNUP, 45
    ) == 0


@pytest.mark.asyncio
async def test_delete_expired_codes(db_session) -> None:
    await issue_code(
        db_session, email="old@x.com", purpose=OTPPurpose.SIGNUP, code="111111", expire_seconds=-1
    )
    await issue_code(db_session, email="new@x.com", purpose=OTPPurpose.SIGNUP, code="222222")
    await db_session.commit()

    assert await delete_expired_codes(db_session) == 1
    await db_session.commit()
    assert await _rows(db_session, "old@x.com") == []
    assert len(await _rows(db_session, "new@x.com")) == 1
