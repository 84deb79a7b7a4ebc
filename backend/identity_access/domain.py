"""
Identity domain constants and simple helpers.

Why:
- Centralize the closed role set so the policy layer, the web adapter and the
  SQL `app_role` enum cannot drift apart.
- Decide the role a signup asks the identity provider for. The datastore
  assigns it exactly once when the principal is created; nothing reassigns it.
"""

from __future__ import annotations

import os

ROLE_STUDENT = "student"
ROLE_ADMIN = "admin"

# Keep roles minimal and explicit. Immutable to prevent accidental mutation.
ALLOWED_ROLES = frozenset({ROLE_STUDENT, ROLE_ADMIN})
DEFAULT_ROLE = ROLE_STUDENT


def admin_signup_allowed() -> bool:
    """Whether a signup may request the admin role (env ALLOW_ADMIN_SIGNUP, default true)."""
    raw = (os.getenv("ALLOW_ADMIN_SIGNUP", "true") or "").strip().lower()
    return raw in ("1", "true", "yes", "on")


def requested_signup_role(requested: str | None) -> str:
    """Return the role to forward as signup metadata.

    Behavior:
        - "admin" only when explicitly requested AND admin signup is allowed.
        - Everything else (missing, unknown, disabled) becomes "student".
    """
    normalized = (requested or "").strip().lower()
    if normalized == ROLE_ADMIN and admin_signup_allowed():
        return ROLE_ADMIN
    return DEFAULT_ROLE


__all__ = [
    "ALLOWED_ROLES",
    "DEFAULT_ROLE",
    "ROLE_ADMIN",
    "ROLE_STUDENT",
    "admin_signup_allowed",
    "requested_signup_role",
]
