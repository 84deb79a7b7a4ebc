"""
Own-profile API routes (`/api/me`).

Why:
    Let a signed-in principal read and edit their own profile. The role in the
    response is resolved from the datastore per request; the profile row is
    only visible to its owner.
"""
from __future__ import annotations

from fastapi import APIRouter, Request
from pydantic import BaseModel

from portal.usecases import GetMeInput, GetMeUseCase, UpdateMeInput, UpdateMeUseCase
from wiring import get_repo

from .common import DOMAIN_ERRORS, csrf_violation, error_response, json_ok, require_user

users_router = APIRouter(tags=["Users"])  # explicit path below


class ProfileUpdatePayload(BaseModel):
    full_name: str | None = None
    student_id: str | None = None
    department: str | None = None


def _me_payload(result: dict, user: dict) -> dict:
    return {"sub": user["sub"], "email": user.get("email"), "role": result["role"], "profile": result["profile"]}


@users_router.get("/api/me")
async def get_me(request: Request):
    user, error = require_user(request)
    if error:
        return error
    try:
        result = GetMeUseCase(get_repo()).execute(GetMeInput(actor_sub=user["sub"]))
    except DOMAIN_ERRORS as exc:
        return error_response(exc)
    return json_ok(_me_payload(result, user))


@users_router.patch("/api/me")
async def update_me(request: Request, payload: ProfileUpdatePayload):
    """Update own full name, student id or department.

    Behavior:
        - 200 with the updated profile
        - 400 empty patch or blank full name
        - 409 student id already used by another profile
    """
    csrf = csrf_violation(request)
    if csrf:
        return csrf
    user, error = require_user(request)
    if error:
        return error
    try:
        result = UpdateMeUseCase(get_repo()).execute(
            UpdateMeInput(actor_sub=user["sub"], fields=payload.model_dump(exclude_unset=True))
        )
    except DOMAIN_ERRORS as exc:
        return error_response(exc)
    return json_ok(_me_payload(result, user))
