"Internship Portal API"
from __future__ import annotations

import logging
import os
import sys

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response

from identity_access.stores import SessionStore
from portal import config as portal_config
from portal.errors import ServiceUnavailable

from auth_utils import SESSION_COOKIE_NAME, cookie_opts, session_cookie_max_age


def _should_load_dotenv() -> bool:
    """Decide if we should load a local .env file.

    - Never load under pytest to avoid contaminating test env.
    - Allow explicit opt-out via PORTAL_ENABLE_DOTENV (default true outside
      pytest).
    """
    if "pytest" in sys.modules or os.getenv("PYTEST_CURRENT_TEST"):
        return False
    flag = (os.getenv("PORTAL_ENABLE_DOTENV", "true") or "").strip().lower()
    return flag in ("1", "true", "yes")


if _should_load_dotenv():
    load_dotenv()

# Minimal production safety checks (fail-fast on insecure config)
import config as _cfg  # noqa: E402

_cfg.ensure_secure_config_on_startup()

from wiring import get_repo  # noqa: E402

# --- App & Settings Setup -------------------------------------------------------


class AuthSettings:
    def __init__(self) -> None:
        self._env_override: str | None = None

    @property
    def environment(self) -> str:
        if self._env_override is not None:
            return self._env_override
        return portal_config.environment()

    def override_environment(self, env: str | None) -> None:
        """Override environment for tests (e.g., "prod"), or reset with None."""
        self._env_override = env


logger = logging.getLogger("portal.web")
SETTINGS = AuthSettings()

app = FastAPI(title="Internship Portal", description="Internship applications with role-gated access", version="0.1.0")


def _under_pytest() -> bool:
    return "pytest" in sys.modules or bool(os.getenv("PYTEST_CURRENT_TEST"))


if (not _under_pytest()) and portal_config.sessions_backend() == "db":
    from identity_access.stores_db import DBSessionStore

    SESSION_STORE = DBSessionStore()
else:
    SESSION_STORE = SessionStore()

# --- Session Helpers ---------------------------------------------------------------


def session_ttl() -> int:
    return portal_config.session_ttl_seconds()


def set_session_cookie(response: Response, value: str, *, ttl_seconds: int | None = None) -> None:
    opts = cookie_opts(SETTINGS.environment)
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=value,
        httponly=opts["httponly"],
        secure=opts["secure"],
        samesite=opts["samesite"],
        path=opts["path"],
        max_age=session_cookie_max_age(SETTINGS.environment, ttl_seconds or session_ttl()),
    )


def clear_session_cookie(response: Response) -> None:
    opts = cookie_opts(SETTINGS.environment)
    response.delete_cookie(
        key=SESSION_COOKIE_NAME,
        path=opts["path"],
        httponly=opts["httponly"],
        secure=opts["secure"],
        samesite=opts["samesite"],
    )


def _is_public_path(path: str) -> bool:
    return path.startswith("/auth/") or path in ("/health", "/favicon.ico")


def _no_store() -> dict:
    return {"Cache-Control": "private, no-store", "Vary": "Origin"}


# --- Middleware -------------------------------------------------------------------


@app.middleware("http")
async def auth_enforcement(request: Request, call_next):
    path = request.url.path
    if _is_public_path(path):
        return await call_next(request)

    sid = request.cookies.get(SESSION_COOKIE_NAME)
    rec = None
    if sid:
        try:
            rec = SESSION_STORE.get(sid)
        except Exception as exc:
            logger.warning("Session store get failed: %s", exc.__class__.__name__)
    if not rec:
        return JSONResponse({"error": "unauthenticated"}, status_code=401, headers=_no_store())

    # Role is looked up on every request; the session never carries it.
    try:
        role = get_repo().resolve_role(rec.sub)
    except ServiceUnavailable:
        return JSONResponse({"error": "unavailable"}, status_code=503, headers=_no_store())
    request.state.user = {"sub": rec.sub, "email": rec.email, "role": role}
    return await call_next(request)


@app.middleware("http")
async def security_headers(request: Request, call_next):
    response = await call_next(request)
    # JSON API only: nothing may be framed, scripted or embedded.
    response.headers.setdefault("Content-Security-Policy", "default-src 'none'; frame-ancestors 'none'")
    response.headers.setdefault("X-Frame-Options", "DENY")
    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    # Keep Origin/Referer usable for CSRF checks without leaking cross-site paths.
    response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
    response.headers.setdefault("Permissions-Policy", "geolocation=(), microphone=(), camera=()")
    # HSTS: always on (dev = prod)
    response.headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains")
    return response


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    # Contract: malformed bodies are 400, not FastAPI's default 422.
    return JSONResponse({"error": "bad_request", "detail": "invalid_input"}, status_code=400, headers=_no_store())


# --- Routers ----------------------------------------------------------------------

from routes.applications import applications_router  # noqa: E402
from routes.auth import auth_router  # noqa: E402
from routes.internships import internships_router  # noqa: E402
from routes.users import users_router  # noqa: E402

app.include_router(auth_router)
app.include_router(users_router)
app.include_router(internships_router)
app.include_router(applications_router)


@app.get("/health")
async def health_check():
    # Minimal health endpoint used by orchestrators and tests.
    return JSONResponse({"status": "ok"}, headers={"Cache-Control": "private, no-store"})


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=(os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO"))
    uvicorn.run("main:app", host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
