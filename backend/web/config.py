"""
Configuration and startup security checks for the internship portal.

Why: Student records and decision emails must not be served by an accidental
development setup. This module provides a single guard that enforces minimal
production safety constraints without burdening local development.

Permissions: The caller needs no special privileges. The function simply reads
environment variables and raises `SystemExit` on fatal misconfiguration.
"""
from __future__ import annotations

import os
import re
from urllib.parse import urlparse

from portal import config as portal_config

_PLACEHOLDERS = ("CHANGE_ME", "DUMMY", "RE_XXX")


def _is_placeholder(value: str) -> bool:
    upper = (value or "").strip().upper()
    return not upper or any(upper.startswith(p) for p in _PLACEHOLDERS)


def _parse_user(dsn_value: str) -> str | None:
    if "://" in dsn_value:
        try:
            return urlparse(dsn_value).username
        except ValueError:
            return None
    # Keyword form: host=... user=... dbname=...
    m = re.search(r"\buser\s*=\s*([^\s]+)", dsn_value)
    return m.group(1) if m else None


def ensure_secure_config_on_startup() -> None:
    """Fail fast on insecure production configuration.

    Intent: Abort process startup when obviously insecure settings are detected
    in production/staging. Development remains permissive for convenience.

    Checks:
    - The datastore must be Postgres; the in-memory store loses data and has
      no RLS.
    - Identity must come from the hosted provider, not local principals.
    - Decision emails must use the Resend backend with a real API key.
    - DATABASE_URL must not explicitly disable TLS.
    - No DSN may authenticate as the NOLOGIN app role `portal_limited`.
    - SUPABASE_URL must use https.
    - ALLOW_ADMIN_SIGNUP must be set explicitly (true or false).
    """
    if not portal_config.is_prod_like():
        return  # dev/test remain permissive

    # 1) Durable datastore with RLS
    if portal_config.datastore_backend() != "db":
        raise SystemExit("Refusing to start: DATASTORE_BACKEND must be 'db' in production/staging.")

    # 2) Hosted identity provider
    if portal_config.identity_backend() != "supabase":
        raise SystemExit("Refusing to start: IDENTITY_BACKEND must be 'supabase' in production/staging.")

    # 3) Real email delivery
    if portal_config.email_backend() != "resend":
        raise SystemExit("Refusing to start: EMAIL_BACKEND must be 'resend' in production/staging.")
    if _is_placeholder(portal_config.resend_api_key()):
        raise SystemExit("Refusing to start: RESEND_API_KEY is unset or a placeholder in production.")

    # 4) Postgres TLS: basic guard to avoid explicit disable
    for key in ("DATABASE_URL", "PORTAL_DATABASE_URL", "SESSION_DATABASE_URL"):
        val = os.getenv(key, "")
        if "sslmode=disable" in val:
            raise SystemExit(
                f"Refusing to start: {key} contains sslmode=disable in production. Use sslmode=require or verify TLS."
            )
        # 5) DSN user must not be the app role itself
        if val and (_parse_user(val) or "").lower() == "portal_limited":
            raise SystemExit(
                f"Refusing to start: {key} authenticates as 'portal_limited' in production. "
                "Create an environment-specific login role that is IN ROLE portal_limited and use that instead."
            )

    # 6) Identity provider endpoint must use HTTPS
    url = portal_config.supabase_url()
    if not url or not url.lower().startswith("https://"):
        raise SystemExit("Refusing to start: SUPABASE_URL must use https in production.")

    # 7) Self-declared admin signup must be an explicit decision
    if not (os.getenv("ALLOW_ADMIN_SIGNUP") or "").strip():
        raise SystemExit("Refusing to start: ALLOW_ADMIN_SIGNUP must be set explicitly (true/false) in production.")
