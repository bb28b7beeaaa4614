"""
Password rules for the sign-up and reset forms.

``validate_password`` lists every rule a candidate breaks so the form can
show them all at once; ``password_strength`` feeds the strength meter.
"""
from __future__ import annotations

import string
from collections.abc import Callable
from typing import NamedTuple

MIN_LENGTH = 8
STRONG_LENGTH = 12
MAX_STRENGTH = 6

_RULES: list[tuple[str, Callable[[str], bool]]] = [
    (f"Password must be at least {MIN_LENGTH} characters long", lambda p: len(p) >= MIN_LENGTH),
    ("Password must contain at least one uppercase letter", lambda p: any(c.isupper() for c in p)),
    ("Password must contain at least one lowercase letter", lambda p: any(c.islower() for c in p)),
    ("Password must contain at least one number", lambda p: any(c.isdigit() for c in p)),
    (
        "Password must contain at least one special character",
        lambda p: any(c in string.punctuation for c in p),
    ),
]


class PasswordStrength(NamedTuple):
    score: int   # 0..MAX_STRENGTH
    label: str
    color: str   # destructive | warning | success


def validate_password(password: str) -> list[str]:
    """Return the violated rules, in display order.  Empty means acceptable."""
    return [message for message, check in _RULES if not check(password)]


def password_strength(password: str) -> PasswordStrength:
    score = sum(
        (
            len(password) >= MIN_LENGTH,
            len(password) >= STRONG_LENGTH,
            any(c.islower() for c in password),
            any(c.isupper() for c in password),
            any(c.isdigit() for c in password),
            any(c in string.punctuation for c in password),
        )
    )
    if score <= 2:
        return PasswordStrength(score, "Weak", "destructive")
    if score <= 4:
        return PasswordStrength(score, "Medium", "warning")
    return PasswordStrength(score, "Strong", "success")
