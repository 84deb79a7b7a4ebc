"""
Adapter wiring for the web layer (datastore, identity provider, email sender).

Why:
    Routes must not construct adapters at import time: `.env` and pytest
    fixtures have to be applied first. Each adapter is therefore built lazily
    on first use from `portal.config` and can be replaced with `set_*` in
    tests.

Security:
    The local identity provider only works with the in-memory datastore, where
    it owns the principal registry. Production startup rejects that backend
    (see `config.ensure_secure_config_on_startup`).
"""
from __future__ import annotations

import logging
import threading

from identity_access.provider import IdentityProviderProtocol, LocalIdentityProvider
from notifications.sender import EmailSenderProtocol, LogEmailSender, ResendEmailSender
from portal import config as portal_config
from portal.repo_memory import MemoryPortalRepo
from portal.seed import seed_sample_internships

logger = logging.getLogger("portal.web")

_LOCK = threading.Lock()
_REPO = None
_SENDER: EmailSenderProtocol | None = None
_PROVIDER: IdentityProviderProtocol | None = None


def build_default_repo():
    backend = portal_config.datastore_backend()
    if backend == "db":
        from portal.repo_db import DBPortalRepo

        logger.info("Datastore backend: db")
        return DBPortalRepo()
    repo = MemoryPortalRepo()
    if portal_config.seed_sample_data():
        count = seed_sample_internships(repo)
        logger.info("Seeded %s sample internships (memory backend)", count)
    return repo


def build_default_email_sender() -> EmailSenderProtocol:
    if portal_config.email_backend() == "resend":
        return ResendEmailSender(
            api_key=portal_config.resend_api_key(),
            sender=portal_config.email_from(),
            api_url=portal_config.resend_api_url(),
        )
    return LogEmailSender()


def build_default_identity_provider() -> IdentityProviderProtocol:
    if portal_config.identity_backend() == "supabase":
        from identity_access.supabase_auth import SupabaseAuthClient

        return SupabaseAuthClient(
            base_url=portal_config.supabase_url(),
            anon_key=portal_config.supabase_anon_key(),
            jwt_secret=portal_config.supabase_jwt_secret(),
        )
    repo = get_repo()
    if not hasattr(repo, "create_principal"):
        raise RuntimeError("IDENTITY_BACKEND=local requires DATASTORE_BACKEND=memory")
    return LocalIdentityProvider(repo)


def get_repo():
    global _REPO
    with _LOCK:
        if _REPO is None:
            _REPO = build_default_repo()
        return _REPO


def set_repo(repo) -> None:
    global _REPO
    with _LOCK:
        _REPO = repo


def get_email_sender() -> EmailSenderProtocol:
    global _SENDER
    with _LOCK:
        if _SENDER is None:
            _SENDER = build_default_email_sender()
        return _SENDER


def set_email_sender(sender: EmailSenderProtocol | None) -> None:
    global _SENDER
    with _LOCK:
        _SENDER = sender


def get_identity_provider() -> IdentityProviderProtocol:
    global _PROVIDER
    with _LOCK:
        provider = _PROVIDER
    if provider is None:
        # Built outside the lock: the local provider needs get_repo().
        provider = build_default_identity_provider()
        with _LOCK:
            if _PROVIDER is None:
                _PROVIDER = provider
            provider = _PROVIDER
    return provider


def set_identity_provider(provider: IdentityProviderProtocol | None) -> None:
    global _PROVIDER
    with _LOCK:
        _PROVIDER = provider


def reset() -> None:
    """Drop every wired adapter; the next access rebuilds from configuration."""
    global _REPO, _SENDER, _PROVIDER
    with _LOCK:
        _REPO = None
        _SENDER = None
        _PROVIDER = None
