"""
Portal domain records and the application status lifecycle.

Why:
    Keep the data shapes and the transition table in one framework-free module
    so the in-memory datastore, the SQL migrations and the use cases agree on
    the same vocabulary (profiles, user_roles, internships, applications).

Lifecycle:
    pending --(admin)--> accepted   (terminal)
    pending --(admin)--> rejected   (terminal)
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


class ApplicationStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


TERMINAL_STATUSES = frozenset({ApplicationStatus.ACCEPTED, ApplicationStatus.REJECTED})

# Only these edges exist. Creation (absent -> pending) is handled by the insert policy.
ALLOWED_TRANSITIONS = frozenset(
    {
        (ApplicationStatus.PENDING, ApplicationStatus.ACCEPTED),
        (ApplicationStatus.PENDING, ApplicationStatus.REJECTED),
    }
)


def parse_status(value) -> ApplicationStatus:
    """Coerce a raw value into an ApplicationStatus or raise ValueError("invalid_status")."""
    if isinstance(value, ApplicationStatus):
        return value
    try:
        return ApplicationStatus(str(value or "").strip().lower())
    except ValueError:
        raise ValueError("invalid_status") from None


def is_terminal(status) -> bool:
    return parse_status(status) in TERMINAL_STATUSES


def can_transition(current, target) -> bool:
    """Return True when `current -> target` is an edge of the lifecycle."""
    try:
        edge = (parse_status(current), parse_status(target))
    except ValueError:
        return False
    return edge in ALLOWED_TRANSITIONS


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def iso(ts: Optional[datetime]) -> Optional[str]:
    return ts.isoformat() if ts else None


@dataclass
class Profile:
    id: str
    full_name: str
    email: str
    student_id: Optional[str] = None
    department: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "full_name": self.full_name,
            "email": self.email,
            "student_id": self.student_id,
            "department": self.department,
            "created_at": iso(self.created_at),
        }


@dataclass(frozen=True)
class RoleAssignment:
    id: str
    user_id: str
    role: str

    def to_dict(self) -> dict:
        return {"id": self.id, "user_id": self.user_id, "role": self.role}


@dataclass
class Internship:
    id: str
    company_name: str
    position_title: str
    description: str
    salary: str
    duration: str
    required_skills: list[str]
    location: str
    is_active: bool = True
    created_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_name": self.company_name,
            "position_title": self.position_title,
            "description": self.description,
            "salary": self.salary,
            "duration": self.duration,
            "required_skills": list(self.required_skills),
            "location": self.location,
            "is_active": self.is_active,
            "created_at": iso(self.created_at),
        }


@dataclass
class Application:
    id: str
    internship_id: str
    student_id: str
    status: ApplicationStatus = ApplicationStatus.PENDING
    feedback: Optional[str] = None
    applied_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "internship_id": self.internship_id,
            "student_id": self.student_id,
            "status": self.status.value,
            "feedback": self.feedback,
            "applied_at": iso(self.applied_at),
            "updated_at": iso(self.updated_at),
        }


# Fields an admin may write on an internship posting.
INTERNSHIP_FIELDS = (
    "company_name",
    "position_title",
    "description",
    "salary",
    "duration",
    "required_skills",
    "location",
    "is_active",
)

# Fields an owner may write on their profile. Email follows the identity provider.
PROFILE_FIELDS = ("full_name", "student_id", "department")


__all__ = [
    "ALLOWED_TRANSITIONS",
    "Application",
    "ApplicationStatus",
    "INTERNSHIP_FIELDS",
    "Internship",
    "PROFILE_FIELDS",
    "Profile",
    "RoleAssignment",
    "TERMINAL_STATUSES",
    "can_transition",
    "is_terminal",
    "iso",
    "parse_status",
    "utcnow",
]
