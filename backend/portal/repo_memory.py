"""
In-memory datastore for development and tests.

Why:
    Local work and the test-suite must not depend on a running Postgres. This
    store keeps the four portal tables plus the principal registry in dicts and
    evaluates `portal.policy` for every read and write, so it enforces the same
    rules the SQL migrations enforce with RLS.

Design:
    - One lock serializes every operation. A decision is a single conditional
      update under that lock (the analogue of `update ... where status =
      'pending'`), never a read followed by a separate write.
    - `create_principal` is the analogue of the `on_auth_user_created`
      trigger: principal, profile and role assignment are written together or
      not at all.
    - Methods prefixed with "privileged" in their docstring bypass row
      visibility the same way `security definer` functions do in SQL.
    - Returns plain dicts to keep web adapters independent of the storage type.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import timedelta
from typing import Any, Dict, Iterable, List, Optional, Tuple
import itertools
import threading
from uuid import uuid4

from identity_access.domain import ALLOWED_ROLES, DEFAULT_ROLE, ROLE_ADMIN, admin_signup_allowed

from .errors import ConflictError, NotFound
from .models import (
    INTERNSHIP_FIELDS,
    PROFILE_FIELDS,
    Application,
    ApplicationStatus,
    Internship,
    Profile,
    RoleAssignment,
    parse_status,
    utcnow,
)
from .policy import Operation, PolicyContext, Table, allows

_UNSET = object()


@dataclass
class _Principal:
    id: str
    email: str
    password_hash: str


class MemoryPortalRepo:
    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._principals: Dict[str, _Principal] = {}
        self.profiles: Dict[str, Profile] = {}
        self.user_roles: Dict[str, RoleAssignment] = {}
        self.internships: Dict[str, Internship] = {}
        self.applications: Dict[str, Application] = {}
        # Tie-breaker for rows created within the same clock tick.
        self._counter = itertools.count()
        self._seq: Dict[str, int] = {}

    # --- Privileged helpers -----------------------------------------------------

    def has_role(self, principal_id: Optional[str], role: str) -> bool:
        """Privileged role check (security definer analogue). Never raises."""
        if not principal_id or role not in ALLOWED_ROLES:
            return False
        with self._lock:
            return any(
                ra.user_id == str(principal_id) and ra.role == role for ra in self.user_roles.values()
            )

    def _ctx(self, sub: Optional[str]) -> PolicyContext:
        return PolicyContext(requester=str(sub) if sub else None, has_role=self.has_role)

    def _stamp(self, row_id: str) -> None:
        self._seq[row_id] = next(self._counter)

    # --- Principals (identity provider side) -----------------------------------

    def create_principal(
        self,
        *,
        email: str,
        password_hash: str,
        full_name: str,
        student_id: Optional[str] = None,
        department: Optional[str] = None,
        role: Optional[str] = None,
    ) -> str:
        """Privileged: create a principal with its profile and role in one step.

        Behavior:
            - Email (case-insensitive) and present student ids must be unique;
              violations raise ConflictError and leave no rows behind.
            - Role is "admin" only when requested explicitly and admin signup
              is enabled (the `portal_settings` switch in SQL), otherwise
              "student". Callers cannot skip this check.
        """
        email_n = (email or "").strip()
        wants_admin = (role or "").strip().lower() == ROLE_ADMIN
        assigned = ROLE_ADMIN if wants_admin and admin_signup_allowed() else DEFAULT_ROLE
        with self._lock:
            if any(p.email.lower() == email_n.lower() for p in self._principals.values()):
                raise ConflictError("email_taken")
            if student_id and any(p.student_id == student_id for p in self.profiles.values()):
                raise ConflictError("student_id_taken")
            pid = str(uuid4())
            principal = _Principal(id=pid, email=email_n, password_hash=password_hash)
            profile = Profile(
                id=pid,
                full_name=full_name or "",
                email=email_n,
                student_id=student_id or None,
                department=department or None,
            )
            assignment = RoleAssignment(id=str(uuid4()), user_id=pid, role=assigned)
            # All three rows become visible together; nothing above mutated state.
            self._principals[pid] = principal
            self.profiles[pid] = profile
            self.user_roles[assignment.id] = assignment
            return pid

    def find_principal_by_email(self, email: str) -> Optional[Tuple[str, str]]:
        """Privileged: return (principal_id, password_hash) for sign-in checks."""
        needle = (email or "").strip().lower()
        with self._lock:
            for p in self._principals.values():
                if p.email.lower() == needle:
                    return p.id, p.password_hash
        return None

    def delete_principal(self, principal_id: str) -> None:
        """Privileged: remove a principal and cascade to profile, roles and applications."""
        with self._lock:
            if self._principals.pop(principal_id, None) is None:
                return
            self.profiles.pop(principal_id, None)
            for rid in [rid for rid, ra in self.user_roles.items() if ra.user_id == principal_id]:
                self.user_roles.pop(rid, None)
            for aid in [aid for aid, a in self.applications.items() if a.student_id == principal_id]:
                self.applications.pop(aid, None)

    # --- Profiles & roles --------------------------------------------------------

    def resolve_role(self, sub: Optional[str]) -> Optional[str]:
        """Return the caller's role as visible through the user_roles select policy."""
        ctx = self._ctx(sub)
        with self._lock:
            for ra in self.user_roles.values():
                if allows(Table.USER_ROLES, Operation.SELECT, ctx, ra):
                    return ra.role
        return None

    def get_profile(self, sub: Optional[str]) -> Optional[dict]:
        ctx = self._ctx(sub)
        with self._lock:
            profile = self.profiles.get(str(sub or ""))
            if profile and allows(Table.PROFILES, Operation.SELECT, ctx, profile):
                return profile.to_dict()
        return None

    def update_profile(self, sub: Optional[str], *, profile_id: str, **fields: Any) -> Optional[dict]:
        """Update own profile fields (full_name, student_id, department).

        Returns None when the row is not visible to the caller (RLS: 0 rows).
        Raises ConflictError on duplicate student id.
        """
        ctx = self._ctx(sub)
        changes = {k: v for k, v in fields.items() if k in PROFILE_FIELDS and v is not _UNSET}
        with self._lock:
            current = self.profiles.get(profile_id)
            if current is None:
                return None
            candidate = replace(current, **changes)
            if not allows(Table.PROFILES, Operation.UPDATE, ctx, current, candidate):
                return None
            if candidate.student_id and any(
                p.student_id == candidate.student_id and p.id != candidate.id for p in self.profiles.values()
            ):
                raise ConflictError("student_id_taken")
            self.profiles[profile_id] = candidate
            return candidate.to_dict()

    def applicant_contact(self, sub: Optional[str], student_id: str) -> Optional[dict]:
        """Privileged: applicant name/email/ids for admins only (security definer analogue)."""
        if not self._ctx(sub).is_admin:
            return None
        with self._lock:
            profile = self.profiles.get(student_id)
            if profile is None:
                return None
            return {
                "full_name": profile.full_name,
                "email": profile.email,
                "student_id": profile.student_id,
                "department": profile.department,
            }

    # --- Internships -------------------------------------------------------------

    def _visible_internships(self, ctx: PolicyContext) -> List[Internship]:
        rows = [i for i in self.internships.values() if allows(Table.INTERNSHIPS, Operation.SELECT, ctx, i)]
        rows.sort(key=lambda i: (i.created_at, self._seq.get(i.id, 0)), reverse=True)
        return rows

    def list_internships(self, sub: Optional[str], *, active_only: bool = False) -> List[dict]:
        ctx = self._ctx(sub)
        with self._lock:
            rows = self._visible_internships(ctx)
        if active_only:
            rows = [r for r in rows if r.is_active]
        return [r.to_dict() for r in rows]

    def get_internship(self, sub: Optional[str], internship_id: str) -> Optional[dict]:
        ctx = self._ctx(sub)
        with self._lock:
            row = self.internships.get(internship_id)
            if row and allows(Table.INTERNSHIPS, Operation.SELECT, ctx, row):
                return row.to_dict()
        return None

    def create_internship(self, sub: Optional[str], **fields: Any) -> dict:
        ctx = self._ctx(sub)
        data = {k: v for k, v in fields.items() if k in INTERNSHIP_FIELDS}
        row = Internship(
            id=str(uuid4()),
            company_name=data["company_name"],
            position_title=data["position_title"],
            description=data["description"],
            salary=data["salary"],
            duration=data["duration"],
            required_skills=list(data.get("required_skills") or []),
            location=data["location"],
            is_active=bool(data.get("is_active", True)),
        )
        with self._lock:
            if not allows(Table.INTERNSHIPS, Operation.INSERT, ctx, row):
                raise PermissionError("internship_insert_denied")
            self.internships[row.id] = row
            self._stamp(row.id)
        return row.to_dict()

    def seed_internships(self, rows: Iterable[dict]) -> None:
        """Privileged: load postings the way the migration seed does (no policy check)."""
        with self._lock:
            for data in rows:
                row = Internship(id=str(uuid4()), **{k: data[k] for k in data if k in INTERNSHIP_FIELDS})
                self.internships[row.id] = row
                self._stamp(row.id)

    def update_internship(self, sub: Optional[str], internship_id: str, **fields: Any) -> Optional[dict]:
        ctx = self._ctx(sub)
        changes = {k: v for k, v in fields.items() if k in INTERNSHIP_FIELDS and v is not _UNSET}
        if "required_skills" in changes:
            changes["required_skills"] = list(changes["required_skills"] or [])
        with self._lock:
            current = self.internships.get(internship_id)
            if current is None or not allows(Table.INTERNSHIPS, Operation.SELECT, ctx, current):
                return None
            candidate = replace(current, **changes)
            if not allows(Table.INTERNSHIPS, Operation.UPDATE, ctx, current, candidate):
                return None
            self.internships[internship_id] = candidate
            return candidate.to_dict()

    def delete_internship(self, sub: Optional[str], internship_id: str) -> bool:
        ctx = self._ctx(sub)
        with self._lock:
            current = self.internships.get(internship_id)
            if current is None or not allows(Table.INTERNSHIPS, Operation.DELETE, ctx, current):
                return False
            self.internships.pop(internship_id, None)
            # FK on delete cascade
            for aid in [aid for aid, a in self.applications.items() if a.internship_id == internship_id]:
                self.applications.pop(aid, None)
            return True

    # --- Applications ------------------------------------------------------------

    def create_application(self, sub: Optional[str], *, internship_id: str, student_id: str, status=ApplicationStatus.PENDING) -> dict:
        """Insert an application row.

        Raises:
            PermissionError: insert policy denied (not own row, not pending, no role).
            NotFound: the referenced posting does not exist (FK violation).
            ConflictError: the (posting, student) pair already has an application.
        """
        ctx = self._ctx(sub)
        row = Application(
            id=str(uuid4()),
            internship_id=str(internship_id),
            student_id=str(student_id),
            status=parse_status(status),
        )
        with self._lock:
            if not allows(Table.APPLICATIONS, Operation.INSERT, ctx, row):
                raise PermissionError("application_insert_denied")
            if row.internship_id not in self.internships:
                raise NotFound("internship_not_found")
            if any(
                a.internship_id == row.internship_id and a.student_id == row.student_id
                for a in self.applications.values()
            ):
                raise ConflictError("duplicate_application")
            self.applications[row.id] = row
            self._stamp(row.id)
        return row.to_dict()

    def _expand(self, ctx: PolicyContext, app: Application) -> dict:
        out = app.to_dict()
        posting = self.internships.get(app.internship_id)
        out["internship"] = (
            posting.to_dict() if posting and allows(Table.INTERNSHIPS, Operation.SELECT, ctx, posting) else None
        )
        if ctx.is_admin:
            out["applicant"] = self.applicant_contact(ctx.requester, app.student_id)
        return out

    def list_applications(self, sub: Optional[str]) -> List[dict]:
        ctx = self._ctx(sub)
        with self._lock:
            rows = [a for a in self.applications.values() if allows(Table.APPLICATIONS, Operation.SELECT, ctx, a)]
            rows.sort(key=lambda a: (a.applied_at, self._seq.get(a.id, 0)), reverse=True)
            return [self._expand(ctx, a) for a in rows]

    def get_application(self, sub: Optional[str], application_id: str) -> Optional[dict]:
        ctx = self._ctx(sub)
        with self._lock:
            row = self.applications.get(application_id)
            if row and allows(Table.APPLICATIONS, Operation.SELECT, ctx, row):
                return self._expand(ctx, row)
        return None

    def decide_application(
        self,
        sub: Optional[str],
        application_id: str,
        *,
        status,
        feedback: Optional[str] = None,
    ) -> Optional[dict]:
        """Conditionally write status + feedback + updated_at as one step.

        Returns the updated row (with `applicant_email`) or None when the
        update policy matched no row: unknown id, caller not admin, current
        status terminal, or target not a lifecycle edge.
        """
        ctx = self._ctx(sub)
        try:
            target = parse_status(status)
        except ValueError:
            return None
        with self._lock:
            current = self.applications.get(application_id)
            if current is None or not allows(Table.APPLICATIONS, Operation.SELECT, ctx, current):
                return None
            # updated_at strictly advances, even within one clock tick.
            refreshed = max(utcnow(), current.updated_at + timedelta(microseconds=1))
            candidate = replace(current, status=target, feedback=feedback, updated_at=refreshed)
            if not allows(Table.APPLICATIONS, Operation.UPDATE, ctx, current, candidate):
                return None
            self.applications[application_id] = candidate
            out = candidate.to_dict()
            profile = self.profiles.get(candidate.student_id)
            out["applicant_email"] = profile.email if profile else None
            return out


__all__ = ["MemoryPortalRepo"]
