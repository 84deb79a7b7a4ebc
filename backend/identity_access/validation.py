"""
Signup/sign-in input validation.

Runs before any call to the identity provider. Checks are evaluated in a fixed
order and only the first violation is reported, so clients can show a single
actionable message.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
import re

from portal.errors import ValidationFailed

MIN_SIGNUP_PASSWORD_LENGTH = 6

# Pragmatic syntactic check: one "@", non-empty local part, dotted domain, no spaces.
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

MESSAGES = {
    "invalid_email": "Invalid email address",
    "password_too_short": f"Password must be at least {MIN_SIGNUP_PASSWORD_LENGTH} characters",
    "password_required": "Password is required",
    "full_name_required": "Full name is required",
}


def _fail(code: str) -> ValidationFailed:
    return ValidationFailed(code, MESSAGES[code])


def _optional(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    stripped = str(value).strip()
    return stripped or None


def is_valid_email(value: Optional[str]) -> bool:
    return bool(EMAIL_PATTERN.match((value or "").strip()))


@dataclass(frozen=True)
class SignupData:
    email: str
    password: str
    full_name: str
    student_id: Optional[str] = None
    department: Optional[str] = None
    role: Optional[str] = None


@dataclass(frozen=True)
class SigninData:
    email: str
    password: str


def validate_signup(
    *,
    email: Optional[str],
    password: Optional[str],
    full_name: Optional[str],
    student_id: Optional[str] = None,
    department: Optional[str] = None,
    role: Optional[str] = None,
) -> SignupData:
    """Return normalized signup data or raise ValidationFailed for the first violation.

    Order: email, password (>= 6 chars), full name (non-empty after trim).
    """
    email_n = (email or "").strip()
    if not is_valid_email(email_n):
        raise _fail("invalid_email")
    if len(password or "") < MIN_SIGNUP_PASSWORD_LENGTH:
        raise _fail("password_too_short")
    name_n = (full_name or "").strip()
    if not name_n:
        raise _fail("full_name_required")
    return SignupData(
        email=email_n,
        password=password or "",
        full_name=name_n,
        student_id=_optional(student_id),
        department=_optional(department),
        role=_optional(role),
    )


def validate_signin(*, email: Optional[str], password: Optional[str]) -> SigninData:
    """Return normalized sign-in data or raise ValidationFailed (email first, then password)."""
    email_n = (email or "").strip()
    if not is_valid_email(email_n):
        raise _fail("invalid_email")
    if not password:
        raise _fail("password_required")
    return SigninData(email=email_n, password=password)


__all__ = [
    "MESSAGES",
    "MIN_SIGNUP_PASSWORD_LENGTH",
    "SigninData",
    "SignupData",
    "is_valid_email",
    "validate_signin",
    "validate_signup",
]
