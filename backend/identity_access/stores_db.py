"""
Database-backed SessionStore for production use (Postgres/Supabase).

Why: In-memory sessions are not durable and do not scale across instances. This
store persists sessions in `public.portal_sessions` while keeping the cookie
opaque. Like the in-memory store it never persists the role.

Security:
- Intended to be used with a service role connection string; limited logins
  must not access the sessions table (RLS enabled, no policies).
- Only the opaque `session_id` is set in the cookie.

Note: This module uses psycopg3. It is imported only when enabled via
`SESSIONS_BACKEND=db`. Tests can continue to use the in-memory store.
"""
from __future__ import annotations

from typing import Optional
import os
import re
import time

try:
    import psycopg
    from psycopg import sql
    HAVE_PSYCOPG = True
except ImportError:  # pragma: no cover - optional dependency in dev
    psycopg = None  # type: ignore
    sql = None  # type: ignore
    HAVE_PSYCOPG = False

from .stores import SessionRecord

_TABLE_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]{0,62}(?:\.[A-Za-z_][A-Za-z0-9_]{0,62})?$")


def _now() -> int:
    return int(time.time())


class DBSessionStore:
    """Postgres-backed session store.

    Parameters
    ----------
    dsn:
        Psycopg3 connection string. Use a service role in Supabase.
    table:
        Fully qualified table name. Defaults to `public.portal_sessions`.
    """

    def __init__(self, dsn: str | None = None, table: str = "public.portal_sessions") -> None:
        if not HAVE_PSYCOPG:
            raise RuntimeError("psycopg3 is required for DBSessionStore")
        self._dsn = dsn or os.getenv("SESSION_DATABASE_URL") or os.getenv("SERVICE_ROLE_DSN", "")
        if not self._dsn:
            raise RuntimeError("No database DSN provided for DBSessionStore")
        if not _TABLE_RE.match(table or ""):
            raise ValueError("Invalid table name")
        schema, _, name = table.rpartition(".")
        self._schema = schema or "public"
        self._name = name

    def _table(self):
        return sql.Identifier(self._schema, self._name)

    def create(self, *, sub: str, email: str, ttl_seconds: int = 3600) -> SessionRecord:
        expires_at = _now() + ttl_seconds
        stmt = sql.SQL(
            "insert into {} (session_id, sub, email, expires_at) "
            "values (gen_random_uuid()::text, %s, %s, to_timestamp(%s)) returning session_id"
        ).format(self._table())
        with psycopg.connect(self._dsn, autocommit=True) as conn:
            with conn.cursor() as cur:
                cur.execute(stmt, (sub, email, expires_at))
                row = cur.fetchone()
        sid = str(row[0]) if row else ""
        return SessionRecord(session_id=sid, sub=sub, email=email, expires_at=expires_at, ttl_seconds=ttl_seconds)

    def get(self, session_id: str) -> Optional[SessionRecord]:
        stmt = sql.SQL(
            "select session_id, sub::text, email, extract(epoch from expires_at)::bigint "
            "from {} where session_id = %s and expires_at > now()"
        ).format(self._table())
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(stmt, (session_id,))
                row = cur.fetchone()
        if not row:
            return None
        return SessionRecord(
            session_id=row[0],
            sub=row[1],
            email=row[2],
            expires_at=int(row[3]) if row[3] is not None else None,
        )

    def delete(self, session_id: str) -> None:
        stmt = sql.SQL("delete from {} where session_id = %s").format(self._table())
        with psycopg.connect(self._dsn, autocommit=True) as conn:
            with conn.cursor() as cur:
                cur.execute(stmt, (session_id,))
