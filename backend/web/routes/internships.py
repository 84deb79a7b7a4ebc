"""
Internship posting API routes.

Permissions:
    - Listing: any signed-in principal. Students see active postings, admins
      see all. A principal without a role sees nothing.
    - Create/update/delete: admins only. The router short-circuits non-admins;
      the datastore policies stay authoritative.
"""
from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from fastapi.responses import Response
from pydantic import BaseModel

from portal.usecases import (
    CreateInternshipInput,
    CreateInternshipUseCase,
    DeleteInternshipInput,
    DeleteInternshipUseCase,
    ListInternshipsInput,
    ListInternshipsUseCase,
    UpdateInternshipInput,
    UpdateInternshipUseCase,
)
from wiring import get_repo

from .common import (
    DOMAIN_ERRORS,
    csrf_violation,
    error_response,
    is_uuid,
    json_error,
    json_ok,
    private_no_store,
    require_admin,
    require_user,
)

internships_router = APIRouter(tags=["Internships"])
logger = logging.getLogger("portal.web.internships")


class InternshipPayload(BaseModel):
    company_name: str | None = None
    position_title: str | None = None
    description: str | None = None
    salary: str | None = None
    duration: str | None = None
    required_skills: list[str] | None = None
    location: str | None = None
    is_active: bool | None = None


@internships_router.get("/api/internships")
async def list_internships(request: Request, active_only: bool = False):
    user, error = require_user(request)
    if error:
        return error
    try:
        rows = ListInternshipsUseCase(get_repo()).execute(
            ListInternshipsInput(actor_sub=user["sub"], active_only=active_only)
        )
    except DOMAIN_ERRORS as exc:
        return error_response(exc)
    return json_ok(rows)


@internships_router.post("/api/internships")
async def create_internship(request: Request, payload: InternshipPayload):
    """Create a posting (admin only). 201 with the posting; 400 on missing fields."""
    csrf = csrf_violation(request)
    if csrf:
        return csrf
    user, error = require_admin(request)
    if error:
        return error
    try:
        row = CreateInternshipUseCase(get_repo()).execute(
            CreateInternshipInput(actor_sub=user["sub"], fields=payload.model_dump(exclude_unset=True))
        )
    except DOMAIN_ERRORS as exc:
        return error_response(exc)
    logger.info("Internship created id=%s", row.get("id"))
    return json_ok(row, status_code=201)


@internships_router.patch("/api/internships/{internship_id}")
async def update_internship(request: Request, internship_id: str, payload: InternshipPayload):
    csrf = csrf_violation(request)
    if csrf:
        return csrf
    user, error = require_admin(request)
    if error:
        return error
    if not is_uuid(internship_id):
        return json_error(400, "bad_request", detail="invalid_id")
    try:
        row = UpdateInternshipUseCase(get_repo()).execute(
            UpdateInternshipInput(
                actor_sub=user["sub"],
                internship_id=internship_id,
                fields=payload.model_dump(exclude_unset=True),
            )
        )
    except DOMAIN_ERRORS as exc:
        return error_response(exc)
    return json_ok(row)


@internships_router.delete("/api/internships/{internship_id}")
async def delete_internship(request: Request, internship_id: str):
    """Delete a posting and its applications (admin only). 204 on success."""
    csrf = csrf_violation(request)
    if csrf:
        return csrf
    user, error = require_admin(request)
    if error:
        return error
    if not is_uuid(internship_id):
        return json_error(400, "bad_request", detail="invalid_id")
    try:
        DeleteInternshipUseCase(get_repo()).execute(
            DeleteInternshipInput(actor_sub=user["sub"], internship_id=internship_id)
        )
    except DOMAIN_ERRORS as exc:
        return error_response(exc)
    logger.info("Internship deleted id=%s", internship_id)
    return Response(status_code=204, headers=private_no_store())
