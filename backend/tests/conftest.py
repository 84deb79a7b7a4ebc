"""
Pytest configuration for backend tests.

Why: Force AnyIO to use the asyncio backend and give every test a fresh,
in-memory portal (datastore, identity provider, email outbox, sessions) so
state never leaks between cases.
"""
import os
import sys
from pathlib import Path

import pytest

# Ensure modules in backend/ and backend/web are importable across tests
REPO_ROOT = Path(__file__).resolve().parents[2]
BACKEND_DIR = REPO_ROOT / "backend"
WEB_DIR = BACKEND_DIR / "web"
TESTS_DIR = BACKEND_DIR / "tests"
for p in (str(BACKEND_DIR), str(WEB_DIR), str(TESTS_DIR)):
    if p not in sys.path:
        sys.path.insert(0, p)

# Fast hashing keeps signup-heavy API tests quick; production keeps the default.
TEST_PBKDF2_ITERATIONS = 1_000


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def _clear_portal_env(monkeypatch: pytest.MonkeyPatch):
    """Start every test from development defaults.

    Why:
        Config-guard tests opt into prod-like settings; a lingering variable
        would change cookie, CSRF or adapter selection in unrelated tests.
    """
    for var in (
        "PORTAL_ENV",
        "DATASTORE_BACKEND",
        "IDENTITY_BACKEND",
        "EMAIL_BACKEND",
        "SESSIONS_BACKEND",
        "ALLOW_ADMIN_SIGNUP",
        "PORTAL_TRUST_PROXY",
        "PORTAL_SEED_SAMPLE_DATA",
        "RESEND_API_KEY",
        "SUPABASE_URL",
    ):
        monkeypatch.delenv(var, raising=False)
    yield


@pytest.fixture(autouse=True)
def _reset_portal_wiring(monkeypatch: pytest.MonkeyPatch):
    """Wire a fresh in-memory portal and session store per test."""
    import main  # type: ignore
    import wiring  # type: ignore
    from identity_access.provider import LocalIdentityProvider
    from identity_access.stores import SessionStore
    from notifications.sender import LogEmailSender
    from portal.repo_memory import MemoryPortalRepo

    repo = MemoryPortalRepo()
    wiring.set_repo(repo)
    wiring.set_identity_provider(LocalIdentityProvider(repo, iterations=TEST_PBKDF2_ITERATIONS))
    wiring.set_email_sender(LogEmailSender())
    monkeypatch.setattr(main, "SESSION_STORE", SessionStore(), raising=False)
    main.SETTINGS.override_environment(None)
    yield
    wiring.reset()


@pytest.fixture
def repo():
    import wiring  # type: ignore

    return wiring.get_repo()


@pytest.fixture
def outbox():
    import wiring  # type: ignore

    return wiring.get_email_sender()


@pytest.fixture
def live_dsns():
    """Return (limited_dsn, service_dsn) for live Postgres tests or skip."""
    limited = os.getenv("RLS_TEST_DSN")
    service = os.getenv("RLS_TEST_SERVICE_DSN") or os.getenv("SERVICE_ROLE_DSN")
    if not limited or not service:
        pytest.skip("RLS_TEST_DSN and RLS_TEST_SERVICE_DSN are required for live datastore tests")
    try:
        import psycopg  # type: ignore
    except ImportError:
        pytest.skip("psycopg not installed")
    try:
        with psycopg.connect(limited, connect_timeout=3):
            pass
    except psycopg.OperationalError:
        pytest.skip("Database unreachable")
    return limited, service
