import enum

# ── Code shape & lifetime ────────────────────────────────────────────────────
OTP_LENGTH: int = 6
OTP_EXPIRE_SECONDS: int = 120        # 2 minutes
OTP_MAX_ATTEMPTS: int = 5
# Expired rows are swept this often by the worker (minutes)
OTP_SWEEP_INTERVAL_MINUTES: int = 5


# ── OTP purpose ───────────────────────────────────────────────────────────────
class OTPPurpose(str, enum.Enum):
    SIGNUP = "signup"
    PASSWORD_RESET = "password_reset"
