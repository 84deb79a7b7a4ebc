from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Protocol
import logging

from notifications.sender import EmailSenderProtocol, NotificationError

from ..errors import NotFound, ValidationFailed
from ..models import ApplicationStatus, is_terminal, parse_status

logger = logging.getLogger("portal.applications")

NOTIFICATION_SENT = "sent"
NOTIFICATION_FAILED = "failed"
NOTIFICATION_SKIPPED = "skipped"
WARNING_NOTIFICATION_FAILED = "notification_failed"


class ApplicationsRepoProtocol(Protocol):
    def create_application(self, sub: Optional[str], *, internship_id: str, student_id: str, status: object = ApplicationStatus.PENDING) -> dict:
        ...

    def list_applications(self, sub: Optional[str]) -> list[dict]:
        ...

    def get_application(self, sub: Optional[str], application_id: str) -> Optional[dict]:
        ...

    def decide_application(self, sub: Optional[str], application_id: str, *, status, feedback: Optional[str] = None) -> Optional[dict]:
        ...


@dataclass
class SubmitApplicationInput:
    student_sub: str
    internship_id: str


class SubmitApplicationUseCase:
    def __init__(self, repo: ApplicationsRepoProtocol) -> None:
        self._repo = repo

    def execute(self, req: SubmitApplicationInput) -> dict:
        """Create a pending application for the caller.

        Behavior:
            - The applicant is always the caller; there is no way to apply on
              behalf of someone else.
            - The insert policy requires a role and status `pending`.

        Raises:
            PermissionError: caller holds no role.
            NotFound: unknown posting.
            ConflictError: the caller already applied to this posting.
        """
        return self._repo.create_application(
            req.student_sub,
            internship_id=req.internship_id,
            student_id=req.student_sub,
            status=ApplicationStatus.PENDING,
        )


@dataclass
class ListApplicationsInput:
    actor_sub: str


class ListApplicationsUseCase:
    def __init__(self, repo: ApplicationsRepoProtocol) -> None:
        self._repo = repo

    def execute(self, req: ListApplicationsInput) -> list[dict]:
        """Return applications visible to the caller, newest first.

        Students see their own rows; admins see every row with applicant contact.
        """
        return self._repo.list_applications(req.actor_sub)


@dataclass
class GetApplicationInput:
    actor_sub: str
    application_id: str


class GetApplicationUseCase:
    def __init__(self, repo: ApplicationsRepoProtocol) -> None:
        self._repo = repo

    def execute(self, req: GetApplicationInput) -> dict:
        row = self._repo.get_application(req.actor_sub, req.application_id)
        if row is None:
            raise NotFound("application_not_found")
        return row


@dataclass
class ApplicationSummary:
    total: int = 0
    pending: int = 0
    accepted: int = 0
    rejected: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {"total": self.total, "pending": self.pending, "accepted": self.accepted, "rejected": self.rejected}


class ApplicationSummaryUseCase:
    def __init__(self, repo: ApplicationsRepoProtocol) -> None:
        self._repo = repo

    def execute(self, req: ListApplicationsInput) -> ApplicationSummary:
        """Count visible applications per status (dashboard statistics)."""
        summary = ApplicationSummary()
        for row in self._repo.list_applications(req.actor_sub):
            summary.total += 1
            status = str(row.get("status") or "")
            if status in (ApplicationStatus.PENDING.value, ApplicationStatus.ACCEPTED.value, ApplicationStatus.REJECTED.value):
                setattr(summary, status, getattr(summary, status) + 1)
        return summary


@dataclass
class DecideApplicationInput:
    actor_sub: str
    application_id: str
    status: object
    feedback: Optional[str] = None


@dataclass
class DecisionOutcome:
    application: dict
    notification: str
    warning: Optional[str] = None

    def to_dict(self) -> Dict[str, object]:
        out: Dict[str, object] = {"application": self.application, "notification": self.notification}
        if self.warning:
            out["warning"] = self.warning
        return out


def _normalize_feedback(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class DecideApplicationUseCase:
    def __init__(self, repo: ApplicationsRepoProtocol, sender: EmailSenderProtocol) -> None:
        self._repo = repo
        self._sender = sender

    def execute(self, req: DecideApplicationInput) -> DecisionOutcome:
        """Accept or reject a pending application, then notify the applicant.

        Phases:
            1. Commit: one conditional update writes status, feedback and a
               refreshed `updated_at`. The update policy only matches when the
               caller is admin, the row is still `pending` and the target is
               `accepted` or `rejected`.
            2. Notify: exactly one attempt to the applicant's profile email.
               A failure is reported as `warning="notification_failed"`; the
               committed decision stays in place and nothing is retried.

        Raises:
            ValidationFailed: status is not a known value.
            NotFound: application not visible to the caller.
            PermissionError: caller not admin, row already decided, or target
                is not a lifecycle edge (opaque on purpose).
        """
        try:
            target = parse_status(req.status)
        except ValueError:
            raise ValidationFailed("invalid_status", "Status must be accepted or rejected") from None
        feedback = _normalize_feedback(req.feedback)

        row = self._repo.decide_application(req.actor_sub, req.application_id, status=target, feedback=feedback)
        if row is None:
            # Classify the refusal without retrying the write.
            current = self._repo.get_application(req.actor_sub, req.application_id)
            if current is None:
                raise NotFound("application_not_found")
            if is_terminal(current["status"]):
                raise PermissionError("already_decided")
            raise PermissionError("decision_denied")

        recipient = row.pop("applicant_email", None)
        logger.info("Application decided: status=%s", target.value)
        if not recipient:
            logger.warning("Decision committed without applicant email; notification skipped")
            return DecisionOutcome(application=row, notification=NOTIFICATION_SKIPPED)
        try:
            self._sender.send_status_email(to=recipient, status=target.value, feedback=feedback)
        except NotificationError as exc:
            logger.warning("Decision notification failed: %s", exc)
            return DecisionOutcome(application=row, notification=NOTIFICATION_FAILED, warning=WARNING_NOTIFICATION_FAILED)
        return DecisionOutcome(application=row, notification=NOTIFICATION_SENT)
