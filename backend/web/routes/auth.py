"""
Authentication routes: signup, login and logout (router-only module).

Why:
    Keep auth endpoints in a dedicated router. Sessions are server-side: the
    cookie carries an opaque id, the record holds principal id and email. The
    role returned here is read from the datastore, never from the request.

Notes:
    - This module imports `main` inside handlers to reuse the shared session
      store and cookie helpers without an import cycle.
    - Validation runs before the identity provider is called.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from fastapi.responses import Response
from pydantic import BaseModel

from portal.errors import InvalidCredentials
from portal.usecases import SignInInput, SignInUseCase, SignUpInput, SignUpUseCase
from wiring import get_identity_provider, get_repo

from .common import DOMAIN_ERRORS, csrf_violation, error_response, json_ok, private_no_store

auth_router = APIRouter(tags=["Auth"])  # explicit paths, no prefix
logger = logging.getLogger("portal.web.auth")


class SignupPayload(BaseModel):
    # Raw optional strings: validation order and messages live in the use case.
    email: str | None = None
    password: str | None = None
    full_name: str | None = None
    student_id: str | None = None
    department: str | None = None
    role: str | None = None


class LoginPayload(BaseModel):
    email: str | None = None
    password: str | None = None


def _main():
    import main  # type: ignore

    return main


def _start_session(principal, *, status_code: int):
    """Create the session, resolve the role and build the JSON response."""
    main = _main()
    role = get_repo().resolve_role(principal.id)
    sess = main.SESSION_STORE.create(sub=principal.id, email=principal.email, ttl_seconds=main.session_ttl())
    resp = json_ok({"user": {"id": principal.id, "email": principal.email}, "role": role}, status_code=status_code)
    main.set_session_cookie(resp, sess.session_id, ttl_seconds=sess.ttl_seconds)
    return resp


@auth_router.post("/auth/signup")
async def signup(request: Request, payload: SignupPayload):
    """Register a principal; the datastore creates profile and role atomically.

    Behavior:
        - 201 `{user, role}` with a session cookie
        - 400 first validation failure (email, password, full name)
        - 409 email or student id already taken
    """
    csrf = csrf_violation(request)
    if csrf:
        return csrf
    try:
        principal = SignUpUseCase(get_identity_provider()).execute(
            SignUpInput(
                email=payload.email,
                password=payload.password,
                full_name=payload.full_name,
                student_id=payload.student_id,
                department=payload.department,
                role=payload.role,
            )
        )
        resp = _start_session(principal, status_code=201)
    except DOMAIN_ERRORS as exc:
        return error_response(exc)
    logger.info("Signup completed")
    return resp


@auth_router.post("/auth/login")
async def login(request: Request, payload: LoginPayload):
    csrf = csrf_violation(request)
    if csrf:
        return csrf
    try:
        principal = SignInUseCase(get_identity_provider()).execute(
            SignInInput(email=payload.email, password=payload.password)
        )
        resp = _start_session(principal, status_code=200)
    except DOMAIN_ERRORS as exc:
        if isinstance(exc, InvalidCredentials):
            logger.info("Login rejected")
        return error_response(exc)
    return resp


@auth_router.post("/auth/logout")
async def logout(request: Request):
    """Delete the server-side session (if any) and clear the cookie. Always 204."""
    csrf = csrf_violation(request)
    if csrf:
        return csrf
    main = _main()
    sid = request.cookies.get(main.SESSION_COOKIE_NAME)
    if sid:
        try:
            main.SESSION_STORE.delete(sid)
        except Exception as exc:
            logger.warning("Session delete failed: %s", exc.__class__.__name__)
    resp = Response(status_code=204, headers=private_no_store())
    main.clear_session_cookie(resp)
    return resp
