from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol

from ..errors import NotFound, ValidationFailed

REQUIRED_TEXT_FIELDS = ("company_name", "position_title", "description", "salary", "duration", "location")
MAX_TEXT_LENGTH = 4000
MAX_SKILLS = 50


class InternshipsRepoProtocol(Protocol):
    def list_internships(self, sub: Optional[str], *, active_only: bool = False) -> list[dict]:
        ...

    def get_internship(self, sub: Optional[str], internship_id: str) -> Optional[dict]:
        ...

    def create_internship(self, sub: Optional[str], **fields: Any) -> dict:
        ...

    def update_internship(self, sub: Optional[str], internship_id: str, **fields: Any) -> Optional[dict]:
        ...

    def delete_internship(self, sub: Optional[str], internship_id: str) -> bool:
        ...


def _clean_text(name: str, value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationFailed(f"invalid_{name}", f"{name.replace('_', ' ').capitalize()} is required")
    text = value.strip()
    if len(text) > MAX_TEXT_LENGTH:
        raise ValidationFailed(f"invalid_{name}", f"{name.replace('_', ' ').capitalize()} is too long")
    return text


def _clean_skills(value: Any) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, (list, tuple)):
        raise ValidationFailed("invalid_required_skills", "Required skills must be a list")
    skills = [str(s).strip() for s in value if isinstance(s, str) and s.strip()]
    if len(skills) > MAX_SKILLS:
        raise ValidationFailed("invalid_required_skills", "Too many required skills")
    return skills


def clean_posting_fields(fields: Dict[str, Any], *, partial: bool) -> Dict[str, Any]:
    """Normalize posting fields; with `partial` only provided keys are checked."""
    out: Dict[str, Any] = {}
    for name in REQUIRED_TEXT_FIELDS:
        if name in fields and fields[name] is not None:
            out[name] = _clean_text(name, fields[name])
        elif not partial:
            raise ValidationFailed(f"invalid_{name}", f"{name.replace('_', ' ').capitalize()} is required")
    if "required_skills" in fields:
        out["required_skills"] = _clean_skills(fields["required_skills"])
    elif not partial:
        out["required_skills"] = []
    if fields.get("is_active") is not None:
        out["is_active"] = bool(fields["is_active"])
    return out


@dataclass
class ListInternshipsInput:
    actor_sub: str
    active_only: bool = False


class ListInternshipsUseCase:
    def __init__(self, repo: InternshipsRepoProtocol) -> None:
        self._repo = repo

    def execute(self, req: ListInternshipsInput) -> list[dict]:
        """Return postings visible to the caller, newest first.

        Behavior:
            - Students see active postings only; admins also see inactive ones.
            - A principal without a role gets an empty list (default deny).
            - `active_only` narrows an admin listing to active rows.
        """
        return self._repo.list_internships(req.actor_sub, active_only=req.active_only)


@dataclass
class CreateInternshipInput:
    actor_sub: str
    fields: Dict[str, Any] = field(default_factory=dict)


class CreateInternshipUseCase:
    def __init__(self, repo: InternshipsRepoProtocol) -> None:
        self._repo = repo

    def execute(self, req: CreateInternshipInput) -> dict:
        """Create a posting. Admin only; PermissionError otherwise."""
        return self._repo.create_internship(req.actor_sub, **clean_posting_fields(req.fields, partial=False))


@dataclass
class UpdateInternshipInput:
    actor_sub: str
    internship_id: str
    fields: Dict[str, Any] = field(default_factory=dict)


class UpdateInternshipUseCase:
    def __init__(self, repo: InternshipsRepoProtocol) -> None:
        self._repo = repo

    def execute(self, req: UpdateInternshipInput) -> dict:
        """Patch a posting (including activation toggles).

        Raises:
            ValidationFailed: empty patch or invalid field values.
            NotFound: posting not visible to the caller.
            PermissionError: caller is not admin.
        """
        changes = clean_posting_fields(req.fields, partial=True)
        if not changes:
            raise ValidationFailed("empty_update", "No fields to update")
        updated = self._repo.update_internship(req.actor_sub, req.internship_id, **changes)
        if updated is None:
            if self._repo.get_internship(req.actor_sub, req.internship_id) is None:
                raise NotFound("internship_not_found")
            raise PermissionError("internship_update_denied")
        return updated


@dataclass
class DeleteInternshipInput:
    actor_sub: str
    internship_id: str


class DeleteInternshipUseCase:
    def __init__(self, repo: InternshipsRepoProtocol) -> None:
        self._repo = repo

    def execute(self, req: DeleteInternshipInput) -> None:
        """Delete a posting and, by cascade, its applications. Admin only."""
        if self._repo.delete_internship(req.actor_sub, req.internship_id):
            return
        if self._repo.get_internship(req.actor_sub, req.internship_id) is None:
            raise NotFound("internship_not_found")
        raise PermissionError("internship_delete_denied")
