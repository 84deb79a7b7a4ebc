"""
Shared authentication utilities.

Why:
    Avoid duplicating cookie policy logic between the app module and the auth
    router. Keeping a single helper makes the flags easy to test.
"""

from __future__ import annotations

SESSION_COOKIE_NAME = "portal_session"


def cookie_opts(environment: str) -> dict:
    """Return hardened cookie flags (dev = prod).

    Returns a mapping with keys:
      - httponly: True
      - secure: True
      - samesite: "lax"
      - path: "/"
    """
    # Identical flags everywhere so local runs exercise the production cookie.
    return {"httponly": True, "secure": True, "samesite": "lax", "path": "/"}


def session_cookie_max_age(environment: str, ttl_seconds: int) -> int | None:
    """Persistent cookie in prod-like envs, browser-session cookie elsewhere."""
    return ttl_seconds if (environment or "").lower() in {"prod", "production", "stage", "staging"} else None
