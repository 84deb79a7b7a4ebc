"""
Internship application API routes.

Why:
    Students apply to postings and follow their status; admins review every
    application and record the decision. The decision response reports the
    notification outcome separately so a failed email never looks like a
    failed decision.
"""
from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from pydantic import BaseModel

from portal.usecases import (
    ApplicationSummaryUseCase,
    DecideApplicationInput,
    DecideApplicationUseCase,
    GetApplicationInput,
    GetApplicationUseCase,
    ListApplicationsInput,
    ListApplicationsUseCase,
    SubmitApplicationInput,
    SubmitApplicationUseCase,
)
from wiring import get_email_sender, get_repo

from .common import (
    DOMAIN_ERRORS,
    csrf_violation,
    error_response,
    is_uuid,
    json_error,
    json_ok,
    require_admin,
    require_user,
)

applications_router = APIRouter(tags=["Applications"])
logger = logging.getLogger("portal.web.applications")


class ApplicationCreatePayload(BaseModel):
    internship_id: str


class DecisionPayload(BaseModel):
    # Kept as a raw string so unknown values map to 400 invalid_status.
    status: str | None = None
    feedback: str | None = None


@applications_router.get("/api/applications")
async def list_applications(request: Request):
    user, error = require_user(request)
    if error:
        return error
    try:
        rows = ListApplicationsUseCase(get_repo()).execute(ListApplicationsInput(actor_sub=user["sub"]))
    except DOMAIN_ERRORS as exc:
        return error_response(exc)
    return json_ok(rows)


@applications_router.get("/api/applications/summary")
async def applications_summary(request: Request):
    """Counts per status over every application (admin dashboard)."""
    user, error = require_admin(request)
    if error:
        return error
    try:
        summary = ApplicationSummaryUseCase(get_repo()).execute(ListApplicationsInput(actor_sub=user["sub"]))
    except DOMAIN_ERRORS as exc:
        return error_response(exc)
    return json_ok(summary.to_dict())


@applications_router.get("/api/applications/{application_id}")
async def get_application(request: Request, application_id: str):
    user, error = require_user(request)
    if error:
        return error
    if not is_uuid(application_id):
        return json_error(400, "bad_request", detail="invalid_id")
    try:
        row = GetApplicationUseCase(get_repo()).execute(
            GetApplicationInput(actor_sub=user["sub"], application_id=application_id)
        )
    except DOMAIN_ERRORS as exc:
        return error_response(exc)
    return json_ok(row)


@applications_router.post("/api/applications")
async def submit_application(request: Request, payload: ApplicationCreatePayload):
    """Apply to a posting as the signed-in principal.

    Behavior:
        - 201 with the pending application
        - 403 caller holds no role
        - 404 unknown posting
        - 409 already applied to this posting
    """
    csrf = csrf_violation(request)
    if csrf:
        return csrf
    user, error = require_user(request)
    if error:
        return error
    if not is_uuid(payload.internship_id):
        return json_error(400, "bad_request", detail="invalid_id")
    try:
        row = SubmitApplicationUseCase(get_repo()).execute(
            SubmitApplicationInput(student_sub=user["sub"], internship_id=payload.internship_id)
        )
    except DOMAIN_ERRORS as exc:
        return error_response(exc)
    logger.info("Application submitted id=%s", row.get("id"))
    return json_ok(row, status_code=201)


@applications_router.post("/api/applications/{application_id}/decision")
async def decide_application(request: Request, application_id: str, payload: DecisionPayload):
    """Accept or reject a pending application (admin only).

    Behavior:
        - 200 `{application, notification}`; when the email could not be
          delivered the decision still stands and `warning` is
          `notification_failed`
        - 400 unknown status value
        - 403 application already decided or target not allowed
        - 404 unknown application
    """
    csrf = csrf_violation(request)
    if csrf:
        return csrf
    user, error = require_admin(request)
    if error:
        return error
    if not is_uuid(application_id):
        return json_error(400, "bad_request", detail="invalid_id")
    try:
        outcome = DecideApplicationUseCase(get_repo(), get_email_sender()).execute(
            DecideApplicationInput(
                actor_sub=user["sub"],
                application_id=application_id,
                status=payload.status,
                feedback=payload.feedback,
            )
        )
    except DOMAIN_ERRORS as exc:
        return error_response(exc)
    return json_ok(outcome.to_dict())
