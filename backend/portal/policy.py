"""
Row-level access policy for the portal tables.

Why:
    The datastore decides who may read or write which rows; client-side checks
    are never trusted. Postgres enforces these rules via RLS (see
    `supabase/migrations`); the in-memory datastore evaluates this module for
    every operation so both backends behave the same.

Rules (anything not listed is denied):

    profiles       select, update   requester owns the row
    user_roles     select           requester owns the row
    internships    select           admin, or authenticated and row is active
    internships    insert/update/delete   admin
    applications   insert           authenticated, own row, status pending
    applications   select           own row, or admin
    applications   update           admin, current status pending, target terminal

"Authenticated" means the principal holds a role assignment. A principal
without one sees nothing and may write nothing.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional, Tuple

from identity_access.domain import ALLOWED_ROLES, ROLE_ADMIN

from .models import ApplicationStatus, can_transition


class Table(str, Enum):
    PROFILES = "profiles"
    USER_ROLES = "user_roles"
    INTERNSHIPS = "internships"
    APPLICATIONS = "applications"


class Operation(str, Enum):
    SELECT = "select"
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


RoleLookup = Callable[[Optional[str], str], bool]


@dataclass(frozen=True)
class PolicyContext:
    """Requesting principal plus the privileged role lookup used during evaluation.

    `has_role` must answer from the role table directly (not through the
    caller's own row visibility) and return False for unknown principals.
    """

    requester: Optional[str]
    has_role: RoleLookup

    def holds(self, role: str) -> bool:
        if not self.requester:
            return False
        try:
            return bool(self.has_role(self.requester, role))
        except Exception:
            return False

    @property
    def is_admin(self) -> bool:
        return self.holds(ROLE_ADMIN)

    @property
    def is_authenticated(self) -> bool:
        return any(self.holds(role) for role in ALLOWED_ROLES)


def _owns(ctx: PolicyContext, owner_id: Any) -> bool:
    return bool(ctx.requester) and str(owner_id) == str(ctx.requester)


def _profile_owner(ctx, row, new_row) -> bool:
    if not _owns(ctx, row.id):
        return False
    return new_row is None or _owns(ctx, new_row.id)


def _role_owner(ctx, row, new_row) -> bool:
    return _owns(ctx, row.user_id)


def _internship_visible(ctx, row, new_row) -> bool:
    if ctx.is_admin:
        return True
    return ctx.is_authenticated and bool(row.is_active)


def _admin_only(ctx, row, new_row) -> bool:
    return ctx.is_admin


def _application_insert(ctx, row, new_row) -> bool:
    return (
        ctx.is_authenticated
        and _owns(ctx, row.student_id)
        and row.status == ApplicationStatus.PENDING
    )


def _application_visible(ctx, row, new_row) -> bool:
    return _owns(ctx, row.student_id) or ctx.is_admin


def _application_update(ctx, row, new_row) -> bool:
    if not ctx.is_admin:
        return False
    if new_row is None:
        return False
    if (new_row.internship_id, new_row.student_id) != (row.internship_id, row.student_id):
        return False
    return can_transition(row.status, new_row.status)


_Rule = Callable[[PolicyContext, Any, Any], bool]

_RULES: Dict[Tuple[Table, Operation], _Rule] = {
    (Table.PROFILES, Operation.SELECT): _profile_owner,
    (Table.PROFILES, Operation.UPDATE): _profile_owner,
    (Table.USER_ROLES, Operation.SELECT): _role_owner,
    (Table.INTERNSHIPS, Operation.SELECT): _internship_visible,
    (Table.INTERNSHIPS, Operation.INSERT): _admin_only,
    (Table.INTERNSHIPS, Operation.UPDATE): _admin_only,
    (Table.INTERNSHIPS, Operation.DELETE): _admin_only,
    (Table.APPLICATIONS, Operation.INSERT): _application_insert,
    (Table.APPLICATIONS, Operation.SELECT): _application_visible,
    (Table.APPLICATIONS, Operation.UPDATE): _application_update,
}


def allows(table: Table, operation: Operation, ctx: PolicyContext, row: Any, new_row: Any = None) -> bool:
    """Evaluate the rule for (table, operation) against a row.

    Parameters:
        row: the existing row (select/update/delete) or the candidate row (insert).
        new_row: for updates, the row as it would look after the write.

    Returns False for unlisted pairs. Never raises.
    """
    try:
        rule = _RULES.get((Table(table), Operation(operation)))
    except ValueError:
        return False
    if rule is None:
        return False
    try:
        return bool(rule(ctx, row, new_row))
    except Exception:
        return False


__all__ = ["Operation", "PolicyContext", "RoleLookup", "Table", "allows"]
