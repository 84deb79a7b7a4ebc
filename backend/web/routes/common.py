"""
Helpers shared by the portal API routers.

Maps the error taxonomy onto HTTP responses in one place so every router
returns the same payload shapes:

    ValidationFailed   -> 400 {"error": "bad_request", "detail": code, "message": ...}
    InvalidCredentials -> 401 {"error": "invalid_credentials"}
    PermissionError    -> 403 {"error": "forbidden"}
    NotFound           -> 404 {"error": "not_found"}
    ConflictError      -> 409 {"error": "conflict", "detail": ...}
    ServiceUnavailable -> 503 {"error": "unavailable"}
"""
from __future__ import annotations

import logging
from uuid import UUID

from fastapi import Request
from fastapi.responses import JSONResponse

from identity_access.domain import ROLE_ADMIN
from portal.errors import ConflictError, InvalidCredentials, NotFound, ServiceUnavailable, ValidationFailed

from .security import _is_same_origin

logger = logging.getLogger("portal.web")


def private_no_store() -> dict[str, str]:
    # PII-bearing responses must never be stored by browsers or intermediaries.
    return {"Cache-Control": "private, no-store", "Vary": "Origin"}


def json_ok(payload, status_code: int = 200) -> JSONResponse:
    return JSONResponse(payload, status_code=status_code, headers=private_no_store())


def json_error(status_code: int, error: str, **extra) -> JSONResponse:
    body = {"error": error}
    body.update({k: v for k, v in extra.items() if v is not None})
    return JSONResponse(body, status_code=status_code, headers=private_no_store())


def error_response(exc: Exception) -> JSONResponse:
    """Translate a domain/repository exception into its HTTP response.

    Unknown exception types are re-raised so they surface as 500 instead of
    being disguised as a client error.
    """
    if isinstance(exc, ValidationFailed):
        return json_error(400, "bad_request", detail=exc.code, message=exc.message)
    if isinstance(exc, InvalidCredentials):
        return json_error(401, "invalid_credentials")
    if isinstance(exc, PermissionError):
        return json_error(403, "forbidden")
    if isinstance(exc, ConflictError):
        return json_error(409, "conflict", detail=exc.detail)
    if isinstance(exc, ServiceUnavailable):
        logger.warning("Upstream unavailable: %s", exc)
        return json_error(503, "unavailable")
    if isinstance(exc, NotFound):
        return json_error(404, "not_found")
    raise exc


DOMAIN_ERRORS = (ValidationFailed, InvalidCredentials, PermissionError, ConflictError, ServiceUnavailable, NotFound)


def csrf_violation(request: Request) -> JSONResponse | None:
    """Return a 403 response when the write request is cross-origin."""
    if _is_same_origin(request):
        return None
    return json_error(403, "forbidden", detail="csrf_violation")


def current_user(request: Request) -> dict | None:
    user = getattr(request.state, "user", None)
    return user if isinstance(user, dict) else None


def require_user(request: Request):
    user = current_user(request)
    if not user or not user.get("sub"):
        return None, json_error(401, "unauthenticated")
    return user, None


def require_admin(request: Request):
    """Short-circuit non-admins before touching the datastore.

    The datastore policies remain authoritative; this only avoids a round trip.
    """
    user, error = require_user(request)
    if error:
        return None, error
    if user.get("role") != ROLE_ADMIN:
        return None, json_error(403, "forbidden")
    return user, None


def is_uuid(value: str) -> bool:
    try:
        UUID(str(value))
    except ValueError:
        return False
    return True
