"""
Centralized runtime configuration for the portal.

Intent:
    Provide a single source of truth for environment-variable lookups used by
    the web adapter, repositories and outbound adapters. Prevents drift across
    modules and enables simple testing via monkeypatched env vars.

Permissions:
    Pure configuration; no external calls or privileges required.
"""
from __future__ import annotations

import os

SESSION_TTL_DEFAULT = 3600
EMAIL_FROM_DEFAULT = "Internship Portal <onboarding@resend.dev>"
RESEND_API_URL_DEFAULT = "https://api.resend.com/emails"


def _flag(name: str, default: str = "false") -> bool:
    return (os.getenv(name, default) or "").strip().lower() in ("1", "true", "yes", "on")


def _parse_int_env(name: str, default: int, *, minimum: int = 1) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value >= minimum else default


def environment() -> str:
    return (os.getenv("PORTAL_ENV", "dev") or "dev").strip().lower()


def is_prod_like(env: str | None = None) -> bool:
    return (env if env is not None else environment()) in {"prod", "production", "stage", "staging"}


def datastore_backend() -> str:
    """`memory` (default) or `db`."""
    return (os.getenv("DATASTORE_BACKEND") or "memory").strip().lower()


def sessions_backend() -> str:
    return (os.getenv("SESSIONS_BACKEND") or "memory").strip().lower()


def identity_backend() -> str:
    """`local` (in-memory principals) or `supabase`."""
    return (os.getenv("IDENTITY_BACKEND") or "local").strip().lower()


def email_backend() -> str:
    """`log` (record only) or `resend`."""
    return (os.getenv("EMAIL_BACKEND") or "log").strip().lower()


def session_ttl_seconds() -> int:
    return _parse_int_env("SESSION_TTL_SECONDS", SESSION_TTL_DEFAULT, minimum=60)


def email_from() -> str:
    return (os.getenv("EMAIL_FROM") or EMAIL_FROM_DEFAULT).strip()


def resend_api_key() -> str:
    return (os.getenv("RESEND_API_KEY") or "").strip()


def resend_api_url() -> str:
    return (os.getenv("RESEND_API_URL") or RESEND_API_URL_DEFAULT).strip()


def supabase_url() -> str:
    return (os.getenv("SUPABASE_URL") or "").strip().rstrip("/")


def supabase_anon_key() -> str:
    return (os.getenv("SUPABASE_ANON_KEY") or "").strip()


def supabase_jwt_secret() -> str:
    return (os.getenv("SUPABASE_JWT_SECRET") or "").strip()


def seed_sample_data() -> bool:
    return _flag("PORTAL_SEED_SAMPLE_DATA")


def trust_proxy() -> bool:
    return _flag("PORTAL_TRUST_PROXY")


__all__ = [
    "EMAIL_FROM_DEFAULT",
    "RESEND_API_URL_DEFAULT",
    "SESSION_TTL_DEFAULT",
    "datastore_backend",
    "email_backend",
    "email_from",
    "environment",
    "identity_backend",
    "is_prod_like",
    "resend_api_key",
    "resend_api_url",
    "seed_sample_data",
    "session_ttl_seconds",
    "sessions_backend",
    "supabase_anon_key",
    "supabase_jwt_secret",
    "supabase_url",
    "trust_proxy",
]
