"""
Signup, sign-in and own-profile use cases.

Validation runs before the identity provider is contacted, so malformed input
never costs a network round trip. The resolved role is always read back from
the datastore; neither the provider response nor the signup request decides it.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol

from identity_access.provider import AuthenticatedPrincipal, IdentityProviderProtocol
from identity_access.validation import validate_signin, validate_signup

from ..errors import NotFound, ValidationFailed
from ..models import PROFILE_FIELDS

MAX_PROFILE_FIELD_LENGTH = 200


class ProfileRepoProtocol(Protocol):
    def resolve_role(self, sub: Optional[str]) -> Optional[str]:
        ...

    def get_profile(self, sub: Optional[str]) -> Optional[dict]:
        ...

    def update_profile(self, sub: Optional[str], *, profile_id: str, **fields: Any) -> Optional[dict]:
        ...


@dataclass
class SignUpInput:
    email: Optional[str]
    password: Optional[str]
    full_name: Optional[str]
    student_id: Optional[str] = None
    department: Optional[str] = None
    role: Optional[str] = None


class SignUpUseCase:
    def __init__(self, provider: IdentityProviderProtocol) -> None:
        self._provider = provider

    def execute(self, req: SignUpInput) -> AuthenticatedPrincipal:
        """Validate and create a principal.

        Raises:
            ValidationFailed: first violated rule (email, password, full name).
            ConflictError: email or student id already taken.
            ServiceUnavailable: provider unreachable.
        """
        data = validate_signup(
            email=req.email,
            password=req.password,
            full_name=req.full_name,
            student_id=req.student_id,
            department=req.department,
            role=req.role,
        )
        return self._provider.sign_up(data)


@dataclass
class SignInInput:
    email: Optional[str]
    password: Optional[str]


class SignInUseCase:
    def __init__(self, provider: IdentityProviderProtocol) -> None:
        self._provider = provider

    def execute(self, req: SignInInput) -> AuthenticatedPrincipal:
        data = validate_signin(email=req.email, password=req.password)
        return self._provider.sign_in(data)


@dataclass
class GetMeInput:
    actor_sub: str


class GetMeUseCase:
    def __init__(self, repo: ProfileRepoProtocol) -> None:
        self._repo = repo

    def execute(self, req: GetMeInput) -> Dict[str, Any]:
        """Return the caller's own profile and the role resolved right now."""
        profile = self._repo.get_profile(req.actor_sub)
        if profile is None:
            raise NotFound("profile_not_found")
        return {"profile": profile, "role": self._repo.resolve_role(req.actor_sub)}


@dataclass
class UpdateMeInput:
    actor_sub: str
    fields: Dict[str, Any]


class UpdateMeUseCase:
    def __init__(self, repo: ProfileRepoProtocol) -> None:
        self._repo = repo

    def execute(self, req: UpdateMeInput) -> Dict[str, Any]:
        """Update full name, student id or department on the caller's own profile.

        Email and role are not editable here. A duplicate student id raises
        ConflictError; an empty full name is rejected.
        """
        changes: Dict[str, Any] = {}
        for name in PROFILE_FIELDS:
            if name not in req.fields:
                continue
            raw = req.fields[name]
            value = str(raw).strip() if raw is not None else ""
            if len(value) > MAX_PROFILE_FIELD_LENGTH:
                raise ValidationFailed(f"invalid_{name}", f"{name.replace('_', ' ').capitalize()} is too long")
            if name == "full_name":
                if not value:
                    raise ValidationFailed("full_name_required", "Full name is required")
                changes[name] = value
            else:
                changes[name] = value or None
        if not changes:
            raise ValidationFailed("empty_update", "No fields to update")
        updated = self._repo.update_profile(req.actor_sub, profile_id=req.actor_sub, **changes)
        if updated is None:
            raise NotFound("profile_not_found")
        return {"profile": updated, "role": self._repo.resolve_role(req.actor_sub)}
