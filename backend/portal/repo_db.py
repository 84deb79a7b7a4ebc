"""
Postgres-backed repository for the portal (profiles, roles, postings, applications).

Security:
- Access with a login that is IN ROLE portal_limited so Row Level Security
  guards every query. Each transaction sets `app.current_sub`, which the
  policies read through `public.current_principal()`.
- Service/superuser DSNs would silently bypass RLS; they are rejected unless
  ALLOW_SERVICE_DSN_FOR_TESTING=true.

Design:
- Minimal psycopg3 usage; each call opens a short-lived connection.
- Decisions are a single `update ... returning` statement; the update policy
  only matches pending rows, so there is no read-then-write window.
- Returns plain dicts to keep the web adapter independent of the driver.
"""
from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Tuple
import logging
import os
import re
from urllib.parse import urlparse

from .errors import ConflictError, NotFound, ServiceUnavailable
from .models import INTERNSHIP_FIELDS, PROFILE_FIELDS, parse_status

try:
    import psycopg
    from psycopg import errors as pg_errors
    from psycopg import sql
    HAVE_PSYCOPG = True
except ImportError:  # pragma: no cover - optional in some dev envs
    psycopg = None  # type: ignore
    pg_errors = None  # type: ignore
    sql = None  # type: ignore
    HAVE_PSYCOPG = False

logger = logging.getLogger("portal.repo_db")

_PRIVILEGED_USERS = frozenset({"postgres", "supabase_admin", "service_role"})

_TS = "to_char({col} at time zone 'utc', 'YYYY-MM-DD\"T\"HH24:MI:SS.US\"+00:00\"')"

_PROFILE_COLUMNS_SQL = f"""
    id::text, full_name, email, student_id, department, {_TS.format(col='created_at')}
"""

_INTERNSHIP_COLUMNS_SQL = f"""
    id::text, company_name, position_title, description, salary, duration,
    required_skills, location, is_active, {_TS.format(col='created_at')}
"""

_APPLICATION_COLUMNS_SQL = f"""
    a.id::text, a.internship_id::text, a.student_id::text, a.status, a.feedback,
    {_TS.format(col='a.applied_at')}, {_TS.format(col='a.updated_at')}
"""


def _dsn() -> str:
    candidates = [
        os.getenv("PORTAL_DATABASE_URL"),
        os.getenv("RLS_TEST_DSN"),
        os.getenv("DATABASE_URL"),
    ]
    for dsn in candidates:
        if dsn:
            return dsn
    raise RuntimeError("Database DSN unavailable for DBPortalRepo")


def _profile_row_to_dict(row: Tuple) -> Dict[str, Any]:
    return {
        "id": row[0],
        "full_name": row[1],
        "email": row[2],
        "student_id": row[3],
        "department": row[4],
        "created_at": row[5],
    }


def _internship_row_to_dict(row: Tuple) -> Dict[str, Any]:
    return {
        "id": row[0],
        "company_name": row[1],
        "position_title": row[2],
        "description": row[3],
        "salary": row[4],
        "duration": row[5],
        "required_skills": list(row[6] or []),
        "location": row[7],
        "is_active": bool(row[8]),
        "created_at": row[9],
    }


def _application_row_to_dict(row: Tuple) -> Dict[str, Any]:
    return {
        "id": row[0],
        "internship_id": row[1],
        "student_id": row[2],
        "status": row[3],
        "feedback": row[4],
        "applied_at": row[5],
        "updated_at": row[6],
    }


def _translate(exc: Exception) -> Exception:
    """Map driver errors onto the portal error taxonomy."""
    sqlstate = getattr(exc, "sqlstate", None)
    diag = getattr(exc, "diag", None)
    constraint = getattr(diag, "constraint_name", None) or ""
    if sqlstate == "23505":
        if "student_id" in constraint and "profiles" in constraint:
            return ConflictError("student_id_taken")
        return ConflictError("duplicate_application" if "applications" in constraint else "duplicate")
    if sqlstate == "23503":
        return NotFound("referenced_row_missing")
    if sqlstate in ("42501",):  # insufficient_privilege / RLS with-check violation
        return PermissionError("policy_denied")
    if sqlstate == "22P02":  # invalid_text_representation (bad uuid)
        return NotFound("invalid_identifier")
    if HAVE_PSYCOPG and isinstance(exc, psycopg.OperationalError):
        return ServiceUnavailable("datastore_unavailable")
    return exc


class DBPortalRepo:
    def __init__(self, dsn: Optional[str] = None) -> None:
        """Initialize a Postgres-backed repository with RLS-first safety.

        Behavior:
            - Resolves the DSN from PORTAL_DATABASE_URL / RLS_TEST_DSN / DATABASE_URL.
            - Rejects superuser/service DSNs unless ALLOW_SERVICE_DSN_FOR_TESTING=true.
            - Does not open a connection eagerly; connections are per-call.
        """
        if not HAVE_PSYCOPG:
            raise RuntimeError("psycopg3 is required for DBPortalRepo")
        self._dsn = dsn or _dsn()
        user = self._dsn_username(self._dsn)
        allow_override = str(os.getenv("ALLOW_SERVICE_DSN_FOR_TESTING", "")).lower() == "true"
        if user in _PRIVILEGED_USERS and not allow_override:
            raise RuntimeError(
                "DBPortalRepo requires a login IN ROLE portal_limited; privileged DSNs bypass RLS. "
                "Export ALLOW_SERVICE_DSN_FOR_TESTING=true to override in dev."
            )

    @staticmethod
    def _dsn_username(dsn: str) -> str:
        try:
            p = urlparse(dsn)
            if p.username:
                return p.username
        except ValueError:
            pass
        m = re.search(r"\buser\s*=\s*([^\s]+)", dsn or "")
        return m.group(1) if m else ""

    @contextmanager
    def _cursor(self, sub: Optional[str]) -> Iterator[Any]:
        """Yield a cursor inside one transaction scoped to `sub` for RLS."""
        try:
            conn = psycopg.connect(self._dsn)
        except psycopg.OperationalError as exc:
            logger.warning("Datastore connect failed: %s", exc.__class__.__name__)
            raise ServiceUnavailable("datastore_unavailable") from exc
        try:
            with conn:
                with conn.cursor() as cur:
                    cur.execute("select set_config('app.current_sub', %s, true)", (str(sub or ""),))
                    yield cur
        except psycopg.Error as exc:
            translated = _translate(exc)
            if translated is exc:
                raise
            raise translated from exc

    # --- Roles & profiles --------------------------------------------------------

    def resolve_role(self, sub: Optional[str]) -> Optional[str]:
        if not sub:
            return None
        try:
            with self._cursor(sub) as cur:
                cur.execute("select role::text from public.user_roles limit 1")
                row = cur.fetchone()
        except NotFound:
            return None
        return row[0] if row else None

    def get_profile(self, sub: Optional[str]) -> Optional[dict]:
        with self._cursor(sub) as cur:
            cur.execute(f"select {_PROFILE_COLUMNS_SQL} from public.profiles where id = %s::uuid", (sub,))
            row = cur.fetchone()
        return _profile_row_to_dict(row) if row else None

    def update_profile(self, sub: Optional[str], *, profile_id: str, **fields: Any) -> Optional[dict]:
        changes = {k: v for k, v in fields.items() if k in PROFILE_FIELDS}
        if not changes:
            return self.get_profile(sub) if sub == profile_id else None
        assignments = sql.SQL(", ").join(
            sql.SQL("{} = %s").format(sql.Identifier(k)) for k in changes
        )
        stmt = sql.SQL("update public.profiles set {} where id = %s::uuid returning " + _PROFILE_COLUMNS_SQL).format(
            assignments
        )
        with self._cursor(sub) as cur:
            cur.execute(stmt, (*changes.values(), profile_id))
            row = cur.fetchone()
        return _profile_row_to_dict(row) if row else None

    def applicant_contact(self, sub: Optional[str], student_id: str) -> Optional[dict]:
        with self._cursor(sub) as cur:
            cur.execute(
                "select full_name, email, student_id, department from public.applicant_contact(%s::uuid)",
                (student_id,),
            )
            row = cur.fetchone()
        if not row:
            return None
        return {"full_name": row[0], "email": row[1], "student_id": row[2], "department": row[3]}

    # --- Internships -------------------------------------------------------------

    def list_internships(self, sub: Optional[str], *, active_only: bool = False) -> List[dict]:
        where = "where is_active = true" if active_only else ""
        with self._cursor(sub) as cur:
            cur.execute(
                f"select {_INTERNSHIP_COLUMNS_SQL} from public.internships {where} order by created_at desc, id"
            )
            rows = cur.fetchall() or []
        return [_internship_row_to_dict(r) for r in rows]

    def get_internship(self, sub: Optional[str], internship_id: str) -> Optional[dict]:
        with self._cursor(sub) as cur:
            cur.execute(
                f"select {_INTERNSHIP_COLUMNS_SQL} from public.internships where id = %s::uuid",
                (internship_id,),
            )
            row = cur.fetchone()
        return _internship_row_to_dict(row) if row else None

    def create_internship(self, sub: Optional[str], **fields: Any) -> dict:
        data = {k: v for k, v in fields.items() if k in INTERNSHIP_FIELDS}
        data.setdefault("is_active", True)
        data["required_skills"] = list(data.get("required_skills") or [])
        columns = sql.SQL(", ").join(sql.Identifier(k) for k in data)
        placeholders = sql.SQL(", ").join(sql.Placeholder() for _ in data)
        stmt = sql.SQL("insert into public.internships ({}) values ({}) returning " + _INTERNSHIP_COLUMNS_SQL).format(
            columns, placeholders
        )
        with self._cursor(sub) as cur:
            cur.execute(stmt, tuple(data.values()))
            row = cur.fetchone()
        return _internship_row_to_dict(row)

    def update_internship(self, sub: Optional[str], internship_id: str, **fields: Any) -> Optional[dict]:
        changes = {k: v for k, v in fields.items() if k in INTERNSHIP_FIELDS}
        if "required_skills" in changes:
            changes["required_skills"] = list(changes["required_skills"] or [])
        if not changes:
            return self.get_internship(sub, internship_id)
        assignments = sql.SQL(", ").join(sql.SQL("{} = %s").format(sql.Identifier(k)) for k in changes)
        stmt = sql.SQL("update public.internships set {} where id = %s::uuid returning " + _INTERNSHIP_COLUMNS_SQL).format(
            assignments
        )
        with self._cursor(sub) as cur:
            cur.execute(stmt, (*changes.values(), internship_id))
            row = cur.fetchone()
        return _internship_row_to_dict(row) if row else None

    def delete_internship(self, sub: Optional[str], internship_id: str) -> bool:
        with self._cursor(sub) as cur:
            cur.execute("delete from public.internships where id = %s::uuid returning id", (internship_id,))
            row = cur.fetchone()
        return bool(row)

    # --- Applications ------------------------------------------------------------

    def create_application(self, sub: Optional[str], *, internship_id: str, student_id: str, status="pending") -> dict:
        with self._cursor(sub) as cur:
            cur.execute(
                """
                insert into public.applications as a (internship_id, student_id, status)
                values (%s::uuid, %s::uuid, %s)
                returning """
                + _APPLICATION_COLUMNS_SQL,
                (internship_id, student_id, parse_status(status).value),
            )
            row = cur.fetchone()
        return _application_row_to_dict(row)

    def _expand(self, cur, row: Tuple) -> dict:
        out = _application_row_to_dict(row)
        cur.execute(
            f"select {_INTERNSHIP_COLUMNS_SQL} from public.internships where id = %s::uuid",
            (out["internship_id"],),
        )
        posting = cur.fetchone()
        out["internship"] = _internship_row_to_dict(posting) if posting else None
        cur.execute("select public.has_role(public.current_principal(), 'admin')")
        if bool((cur.fetchone() or [False])[0]):
            cur.execute(
                "select full_name, email, student_id, department from public.applicant_contact(%s::uuid)",
                (out["student_id"],),
            )
            c = cur.fetchone()
            out["applicant"] = (
                {"full_name": c[0], "email": c[1], "student_id": c[2], "department": c[3]} if c else None
            )
        return out

    def list_applications(self, sub: Optional[str]) -> List[dict]:
        with self._cursor(sub) as cur:
            cur.execute(
                f"select {_APPLICATION_COLUMNS_SQL} from public.applications a order by a.applied_at desc, a.id"
            )
            rows = cur.fetchall() or []
            return [self._expand(cur, r) for r in rows]

    def get_application(self, sub: Optional[str], application_id: str) -> Optional[dict]:
        with self._cursor(sub) as cur:
            cur.execute(
                f"select {_APPLICATION_COLUMNS_SQL} from public.applications a where a.id = %s::uuid",
                (application_id,),
            )
            row = cur.fetchone()
            return self._expand(cur, row) if row else None

    def decide_application(
        self,
        sub: Optional[str],
        application_id: str,
        *,
        status,
        feedback: Optional[str] = None,
    ) -> Optional[dict]:
        """Single conditional update; None when the update policy matched no row."""
        try:
            target = parse_status(status).value
        except ValueError:
            return None
        try:
            with self._cursor(sub) as cur:
                cur.execute(
                    """
                    update public.applications as a
                       set status = %s, feedback = %s
                     where a.id = %s::uuid
                    returning """
                    + _APPLICATION_COLUMNS_SQL
                    + ", (select c.email from public.applicant_contact(a.student_id) c)",
                    (target, feedback, application_id),
                )
                row = cur.fetchone()
        except PermissionError:
            # WITH CHECK rejected the target status (e.g. pending -> pending).
            return None
        if not row:
            return None
        out = _application_row_to_dict(row)
        out["applicant_email"] = row[7]
        return out


__all__ = ["DBPortalRepo", "HAVE_PSYCOPG"]
