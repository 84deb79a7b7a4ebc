"""
Identity provider boundary plus the local (development/test) implementation.

Why:
    The web adapter only needs two operations: create a principal from signup
    data and authenticate one from credentials. Both return the principal id
    and email the session is bound to. Roles are never part of the result; the
    datastore assigns the role once at creation and the web layer resolves it
    per request.

Local provider:
    Stores PBKDF2-SHA256 password hashes next to the principal in the
    in-memory datastore. `create_principal` writes principal, profile and role
    together, so a failed signup never leaves partial rows.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol
import base64
import hashlib
import hmac
import logging
import secrets

from portal.errors import InvalidCredentials

from .domain import requested_signup_role
from .validation import SigninData, SignupData

logger = logging.getLogger("portal.identity_access")

PBKDF2_ITERATIONS = 240_000
_HASH_SCHEME = "pbkdf2_sha256"


@dataclass(frozen=True)
class AuthenticatedPrincipal:
    id: str
    email: str


class IdentityProviderProtocol(Protocol):
    def sign_up(self, data: SignupData) -> AuthenticatedPrincipal:
        ...

    def sign_in(self, data: SigninData) -> AuthenticatedPrincipal:
        ...


def hash_password(password: str, *, iterations: int = PBKDF2_ITERATIONS) -> str:
    """Return `pbkdf2_sha256$<iterations>$<salt>$<digest>` (urlsafe base64 parts)."""
    salt = secrets.token_bytes(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations)
    return "$".join(
        [
            _HASH_SCHEME,
            str(iterations),
            base64.urlsafe_b64encode(salt).decode("ascii"),
            base64.urlsafe_b64encode(digest).decode("ascii"),
        ]
    )


def verify_password(password: str, encoded: str) -> bool:
    try:
        scheme, iterations, salt_b64, digest_b64 = encoded.split("$", 3)
        if scheme != _HASH_SCHEME:
            return False
        salt = base64.urlsafe_b64decode(salt_b64.encode("ascii"))
        expected = base64.urlsafe_b64decode(digest_b64.encode("ascii"))
        actual = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, int(iterations))
    except (ValueError, TypeError):
        return False
    return hmac.compare_digest(actual, expected)


class LocalIdentityProvider:
    """Principals kept in a MemoryPortalRepo (privileged principal API)."""

    def __init__(self, repo, *, iterations: int = PBKDF2_ITERATIONS) -> None:
        self._repo = repo
        self._iterations = iterations
        # Compared against on unknown emails so both paths cost one PBKDF2 run.
        self._dummy_hash = hash_password(secrets.token_urlsafe(12), iterations=iterations)

    def sign_up(self, data: SignupData) -> AuthenticatedPrincipal:
        """Create principal, profile and role atomically.

        Raises:
            ConflictError: email or student id already taken (nothing written).
        """
        role = requested_signup_role(data.role)
        pid = self._repo.create_principal(
            email=data.email,
            password_hash=hash_password(data.password, iterations=self._iterations),
            full_name=data.full_name,
            student_id=data.student_id,
            department=data.department,
            role=role,
        )
        logger.info("Principal created (role=%s)", role)
        return AuthenticatedPrincipal(id=pid, email=data.email)

    def sign_in(self, data: SigninData) -> AuthenticatedPrincipal:
        found = self._repo.find_principal_by_email(data.email)
        if found is None:
            verify_password(data.password, self._dummy_hash)
            raise InvalidCredentials("invalid_credentials")
        pid, encoded = found
        if not verify_password(data.password, encoded):
            raise InvalidCredentials("invalid_credentials")
        return AuthenticatedPrincipal(id=pid, email=data.email)


__all__ = [
    "AuthenticatedPrincipal",
    "IdentityProviderProtocol",
    "LocalIdentityProvider",
    "hash_password",
    "verify_password",
]
