"""
AuthFlow — the state machine behind the sign-up and password-reset screens.

    CREDENTIALS ──submit_credentials──▶ AWAITING_OTP ──verified──▶ DONE            (signup)
                                              │        └─verified──▶ RESET_PASSWORD (reset)
                                              └─resend (after cooldown)                │
                                                                                       ▼
    back() from any later stage returns to CREDENTIALS          submit_new_password──▶ DONE

One instance serves one screen on one event loop.  While a network call is
outstanding (``loading``) every further action is ignored except ``back()``,
which abandons the call: its result is dropped when it arrives.  A failed action
leaves the state as it was and emits a ``Notice``.  The resend cooldown is
driven by a background task that calls ``tick()`` once per ``tick_seconds``;
it is cancelled whenever the flow leaves AWAITING_OTP and by ``aclose()``.
"""
from __future__ import annotations

import asyncio
import contextlib
import enum
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Protocol

from app.flow.client import ErrorKind, OTPApiError, VerifyResult
from app.flow.password_policy import validate_password
from app.otp.constants import OTP_LENGTH, OTPPurpose

logger = logging.getLogger(__name__)

DEFAULT_COOLDOWN_SECONDS = 60

DEFAULT_ERROR_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.NETWORK_ERROR: "Network error. Please check your connection and try again.",
    ErrorKind.RATE_LIMITED: "Too many requests. Please wait a moment before trying again.",
    ErrorKind.DELIVERY_FAILED: "We couldn't send the verification email. Please try again shortly.",
    ErrorKind.INVALID_CODE: "Invalid or expired code. Please try again.",
    ErrorKind.UNKNOWN: "Something went wrong. Please try again.",
}

PASSWORD_MISMATCH = "Passwords don't match"


class FlowStage(str, enum.Enum):
    CREDENTIALS = "credentials"
    AWAITING_OTP = "awaiting_otp"
    RESET_PASSWORD = "reset_password"
    DONE = "done"


@dataclass(frozen=True)
class Notice:
    """A transient message for the screen (toast)."""

    title: str
    message: str
    is_error: bool = False


class OTPApi(Protocol):
    async def send(self, email: str, purpose: OTPPurpose) -> None: ...

    async def verify(self, email: str, code: str, purpose: OTPPurpose) -> VerifyResult: ...


class AccountGateway(Protocol):
    """The auth provider's account operations."""

    async def sign_up(self, email: str, password: str) -> None: ...

    async def sign_in(self, email: str, password: str) -> None: ...

    async def update_password(self, email: str, new_password: str) -> None: ...


class AccountError(Exception):
    """Raised by an AccountGateway; the message is shown to the user."""


class AuthFlow:
    def __init__(
        self,
        purpose: OTPPurpose,
        api: OTPApi,
        accounts: AccountGateway,
        *,
        cooldown_seconds: int = DEFAULT_COOLDOWN_SECONDS,
        error_messages: Mapping[ErrorKind, str] | None = None,
        on_notice: Callable[[Notice], None] | None = None,
        tick_seconds: float = 1.0,
    ) -> None:
        self.purpose = purpose
        self.cooldown_seconds = cooldown_seconds
        self.error_messages = {**DEFAULT_ERROR_MESSAGES, **(error_messages or {})}
        self.tick_seconds = tick_seconds
        self._api = api
        self._accounts = accounts
        self._on_notice = on_notice
        self._timer: asyncio.Task[None] | None = None
        self._password: str | None = None
        self._account_created = False
        self._generation = 0

        self.stage = FlowStage.CREDENTIALS
        self.pending_email: str | None = None
        self.code = ""
        self.resend_cooldown = 0
        self.loading = False
        self.password_errors: list[str] = []
        self.notices: list[Notice] = []

    # ── Notices ──────────────────────────────────────────────────────────────

    def _notify(self, title: str, message: str, *, is_error: bool = False) -> None:
        notice = Notice(title, message, is_error)
        self.notices.append(notice)
        if self._on_notice is not None:
            self._on_notice(notice)

    def _describe(self, exc: OTPApiError) -> str:
        # No table entry: the server's own message is already user-facing.
        return self.error_messages.get(exc.kind) or exc.message or str(exc)

    # ── Cooldown timer ───────────────────────────────────────────────────────

    def tick(self) -> int:
        """Advance the resend cooldown by one step; returns the seconds left."""
        if self.resend_cooldown > 0:
            self.resend_cooldown -= 1
        return self.resend_cooldown

    async def _run_timer(self) -> None:
        while self.stage is FlowStage.AWAITING_OTP and self.resend_cooldown > 0:
            await asyncio.sleep(self.tick_seconds)
            self.tick()

    def _start_timer(self) -> None:
        self._stop_timer()
        self.resend_cooldown = self.cooldown_seconds
        self._timer = asyncio.create_task(self._run_timer())

    def _stop_timer(self) -> None:
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer = None

    @property
    def timer_running(self) -> bool:
        return self._timer is not None and not self._timer.done()

    # ── In-flight calls ──────────────────────────────────────────────────────

    def _begin(self) -> int:
        self.loading = True
        return self._generation

    def _end(self, generation: int) -> None:
        # A back() during the call already reset the flag and moved on.
        if generation == self._generation:
            self.loading = False

    def _abandoned(self, generation: int) -> bool:
        return generation != self._generation

    def _require_email(self) -> str:
        if self.pending_email is None:
            raise RuntimeError(f"no pending email in stage {self.stage.value}")
        return self.pending_email

    # ── Actions ──────────────────────────────────────────────────────────────

    async def submit_credentials(self, email: str, password: str | None = None) -> bool:
        """
        Request a code for ``email``.

        Sign-up needs the password here (checked against the policy before
        anything is sent) because the account is created after verification.
        """
        if self.loading or self.stage is not FlowStage.CREDENTIALS:
            return False
        email = email.strip()
        if self.purpose is OTPPurpose.SIGNUP:
            self.password_errors = validate_password(password or "")
            if self.password_errors:
                self._notify(
                    "Password requirements not met",
                    "\n".join(self.password_errors),
                    is_error=True,
                )
                return False

        generation = self._begin()
        try:
            await self._api.send(email, self.purpose)
        except OTPApiError as exc:
            if self._abandoned(generation):
                return False
            logger.info("OTP send failed for %s: %s", email, exc.kind.value)
            self._notify("Error", self._describe(exc), is_error=True)
            return False
        finally:
            self._end(generation)
        if self._abandoned(generation):
            return False

        self.pending_email = email
        self._password = password
        self._account_created = False
        self.code = ""
        self.stage = FlowStage.AWAITING_OTP
        self._start_timer()
        self._notify("OTP Sent", f"We've sent a {OTP_LENGTH}-digit code to {email}")
        return True

    async def enter_code(self, value: str) -> bool:
        """
        Update the entered code.  Non-digits are dropped and input is capped
        at six digits; the sixth digit submits the code.  Returns True only
        when that submission verified.
        """
        if self.loading or self.stage is not FlowStage.AWAITING_OTP:
            return False
        self.code = "".join(c for c in value if c.isdigit())[:OTP_LENGTH]
        if len(self.code) < OTP_LENGTH:
            return False
        return await self._verify()

    async def _verify(self) -> bool:
        email = self._require_email()
        generation = self._begin()
        try:
            result = await self._api.verify(email, self.code, self.purpose)
            if self._abandoned(generation):
                return False
            if not result.verified:
                self.code = ""
                self._notify(
                    "Error",
                    self.error_messages.get(ErrorKind.INVALID_CODE) or result.error or "",
                    is_error=True,
                )
                return False
            if self.purpose is OTPPurpose.SIGNUP:
                await self._create_account(email, generation)
                if self._abandoned(generation):
                    return False
        except OTPApiError as exc:
            if self._abandoned(generation):
                return False
            self.code = ""
            self._notify("Error", self._describe(exc), is_error=True)
            return False
        except AccountError as exc:
            if self._abandoned(generation):
                return False
            # The server consumed the code; only a fresh one can continue.
            self._stop_timer()
            self.resend_cooldown = 0
            self.code = ""
            self._notify(
                "Error",
                f"{exc} Please request a new code.".lstrip(),
                is_error=True,
            )
            return False
        finally:
            self._end(generation)

        self._stop_timer()
        self.code = ""
        if self.purpose is OTPPurpose.SIGNUP:
            self._password = None
            self.stage = FlowStage.DONE
        else:
            self.stage = FlowStage.RESET_PASSWORD
        self._notify("Success", result.message or "OTP verified successfully")
        return True

    async def _create_account(self, email: str, generation: int) -> None:
        if self._password is None:
            raise RuntimeError("sign-up flow has no password")
        # A retry after a failed sign-in must not register the account twice.
        if not self._account_created:
            await self._accounts.sign_up(email, self._password)
            self._account_created = True
            if self._abandoned(generation):
                return
        await self._accounts.sign_in(email, self._password)

    async def resend(self) -> bool:
        """Issue a new code.  Ignored (no request) while the cooldown runs."""
        if (
            self.loading
            or self.stage is not FlowStage.AWAITING_OTP
            or self.resend_cooldown > 0
        ):
            return False
        email = self._require_email()
        generation = self._begin()
        try:
            await self._api.send(email, self.purpose)
        except OTPApiError as exc:
            if not self._abandoned(generation):
                self._notify("Error", self._describe(exc), is_error=True)
            return False
        finally:
            self._end(generation)
        if self._abandoned(generation):
            return False

        self.code = ""
        self._start_timer()
        self._notify("OTP Sent", "A new verification code has been sent to your email")
        return True

    async def submit_new_password(self, new_password: str, confirm: str) -> bool:
        """
        Set the new password after a verified reset code.

        Every policy violation (and a mismatch) is collected into
        ``password_errors`` before any request; the gateway is called once.
        """
        if self.loading or self.stage is not FlowStage.RESET_PASSWORD:
            return False
        errors = validate_password(new_password)
        if new_password != confirm:
            errors.append(PASSWORD_MISMATCH)
        self.password_errors = errors
        if errors:
            self._notify("Password Requirements", "\n".join(errors), is_error=True)
            return False

        email = self._require_email()
        generation = self._begin()
        try:
            await self._accounts.update_password(email, new_password)
        except AccountError as exc:
            if not self._abandoned(generation):
                self._notify("Error", str(exc) or "Failed to reset password", is_error=True)
            return False
        finally:
            self._end(generation)
        if self._abandoned(generation):
            return False

        self.stage = FlowStage.DONE
        self._notify(
            "Password Reset",
            "Your password has been updated successfully. Please sign in with your new password.",
        )
        return True

    def back(self) -> None:
        """
        Return to CREDENTIALS, dropping the pending email and code.

        Allowed while a call is outstanding: its result is discarded when it
        arrives.
        """
        if self.stage is FlowStage.CREDENTIALS and not self.loading:
            return
        self._generation += 1
        self.loading = False
        self._stop_timer()
        self.stage = FlowStage.CREDENTIALS
        self.pending_email = None
        self._password = None
        self._account_created = False
        self.code = ""
        self.resend_cooldown = 0
        self.password_errors = []

    async def aclose(self) -> None:
        """Tear down: cancel the cooldown task and wait for it to finish."""
        timer, self._timer = self._timer, None
        if timer is not None and not timer.done():
            timer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await timer
