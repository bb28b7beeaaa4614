import asyncio

from app.flow.client import OTPApiError, VerifyResult
from app.flow.machine import AccountError
from app.otp.constants import OTPPurpose


class FakeApi:
    def __init__(self, code: str = "123456", *, single_use: bool = False) -> None:
        self.code = code
        self.single_use = single_use
        self.sent: list[tuple[str, OTPPurpose]] = []
        self.verified: list[str] = []
        self.send_error: OTPApiError | None = None
        self.gate: asyncio.Event | None = None
        self._consumed = False

    async def send(self, email: str, purpose: OTPPurpose) -> None:
        if self.gate is not None:
            await self.gate.wait()
        if self.send_error is not None:
            raise self.send_error
        self.sent.append((email, purpose))
        self._consumed = False

    async def verify(self, email: str, code: str, purpose: OTPPurpose) -> VerifyResult:
        if self.gate is not None:
            await self.gate.wait()
        self.verified.append(code)
        if code == self.code and not self._consumed:
            self._consumed = self.single_use
            return VerifyResult(True, message="Email verified successfully")
        return VerifyResult(False, error="Invalid or expired OTP")


class FakeAccounts:
    def __init__(self) -> None:
        self.calls: list[tuple[str, ...]] = []
        self.fail_update = False
        self.fail_sign_in = False

    async def sign_up(self, email: str, password: str) -> None:
        self.calls.append(("sign_up", email, password))

    async def sign_in(self, email: str, password: str) -> None:
        if self.fail_sign_in:
            raise AccountError("Sign-in failed.")
        self.calls.append(("sign_in", email, password))

    async def update_password(self, email: str, new_password: str) -> None:
        if self.fail_update:
            raise AccountError("Password update failed")
        self.calls.append(("update_password", email, new_password))
