"""
Access-token verification for the hosted identity provider.

Why: After a password grant the provider returns a signed access token. The
web adapter must only bind a session to a principal id it has verified, so
the `sub` claim is taken from a token whose signature, audience and expiry
have been checked here, not from the unauthenticated response body.

Security: Supabase signs access tokens with the project JWT secret (HS256).
Temporal claims are checked with a small clock skew allowance.
"""
from __future__ import annotations

from typing import Dict
import time

from jose import jwt
from jose.exceptions import JOSEError

DEFAULT_AUDIENCE = "authenticated"
MAX_CLOCK_SKEW_SECONDS = 5


class AccessTokenVerificationError(Exception):
    """Raised when the access token fails verification."""

    def __init__(self, code: str):
        super().__init__(code)
        self.code = code


def verify_access_token(
    *,
    token: str,
    secret: str,
    audience: str = DEFAULT_AUDIENCE,
    issuer: str | None = None,
) -> Dict[str, object]:
    """Validate an HS256 access token and return its claims.

    Raises
    ------
    AccessTokenVerificationError:
        `missing_secret`, `invalid_token` (signature/audience/issuer) or
        `expired`/`missing_sub` for claim problems.
    """
    if not secret:
        raise AccessTokenVerificationError("missing_secret")
    try:
        claims = jwt.decode(
            token,
            secret,
            algorithms=["HS256"],
            audience=audience,
            issuer=issuer,
            options={"verify_exp": False, "verify_iat": False, "verify_nbf": False},
        )
    except JOSEError as exc:
        raise AccessTokenVerificationError("invalid_token") from exc

    _validate_temporal_claims(claims)
    if not claims.get("sub"):
        raise AccessTokenVerificationError("missing_sub")
    return claims


def _validate_temporal_claims(claims: Dict[str, object]) -> None:
    now = time.time()
    exp = claims.get("exp")
    if not isinstance(exp, (int, float)):
        raise AccessTokenVerificationError("invalid_token")
    if exp + MAX_CLOCK_SKEW_SECONDS < now:
        raise AccessTokenVerificationError("expired")

    nbf = claims.get("nbf")
    if isinstance(nbf, (int, float)) and nbf - MAX_CLOCK_SKEW_SECONDS > now:
        raise AccessTokenVerificationError("invalid_token")
