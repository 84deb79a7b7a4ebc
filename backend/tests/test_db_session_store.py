"""
Unit-style tests for DBSessionStore using a fake psycopg driver.

Rationale: Keep CI/self-contained runs green without a real Postgres.
We simulate the subset of psycopg used by DBSessionStore to validate SQL flow
and mapping. No network or external DB required.
"""

from __future__ import annotations

import os
import time
import types

import pytest


class _FakeSQL(str):
    """Stand-in for psycopg.sql.SQL: formatting yields plain SQL text."""

    def format(self, *parts):  # type: ignore[override]
        return _FakeSQL(str.format(self, *parts))


class _FakeCursor:
    def __init__(self, store: dict):
        self._store = store
        self._row = None

    def execute(self, sql: str, params: tuple | list):
        sql_low = str(sql).lower().strip()
        if sql_low.startswith("insert into"):
            assert "public.portal_sessions" in sql_low
            assert "role" not in sql_low
            sub, email, expires_at = params
            sid = f"fake-{len(self._store) + 1}-{int(time.time() * 1000)}"
            self._store[sid] = {"sub": sub, "email": email, "expires_at": int(expires_at)}
            self._row = (sid,)
        elif sql_low.startswith("select"):
            sid = params[0]
            rec = self._store.get(sid)
            # Mirrors `expires_at > now()` in the query.
            if rec and rec["expires_at"] > int(time.time()):
                self._row = (sid, rec["sub"], rec["email"], rec["expires_at"])
            else:
                self._row = None
        elif sql_low.startswith("delete"):
            self._store.pop(params[0], None)
            self._row = None
        else:
            raise AssertionError(f"Unexpected SQL: {sql}")

    def fetchone(self):
        return self._row

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False


class _FakeConn:
    def __init__(self, store: dict):
        self._store = store

    def cursor(self):
        return _FakeCursor(self._store)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False


SESSION_TEST_DSN = os.getenv("SESSION_TEST_DSN")


def _install_fake_psycopg(monkeypatch: pytest.MonkeyPatch, target_module):
    fake_store: dict = {}

    def fake_connect(dsn: str, autocommit: bool | None = None):  # signature-compatible
        return _FakeConn(fake_store)

    fake_sql = types.SimpleNamespace(SQL=_FakeSQL, Identifier=lambda *names: ".".join(names))
    monkeypatch.setattr(target_module, "HAVE_PSYCOPG", True, raising=False)
    monkeypatch.setattr(target_module, "psycopg", types.SimpleNamespace(connect=fake_connect), raising=False)
    monkeypatch.setattr(target_module, "sql", fake_sql, raising=False)
    return fake_store


def test_create_get_delete_roundtrip(monkeypatch: pytest.MonkeyPatch):
    from identity_access import stores_db as mod

    if SESSION_TEST_DSN:
        store = mod.DBSessionStore(dsn=SESSION_TEST_DSN)
    else:
        _install_fake_psycopg(monkeypatch, mod)
        store = mod.DBSessionStore(dsn="fake://dsn")

    rec = store.create(sub="11111111-1111-1111-1111-111111111111", email="s@example.com", ttl_seconds=60)
    assert rec.session_id

    got = store.get(rec.session_id)
    assert got is not None
    assert got.sub == "11111111-1111-1111-1111-111111111111"
    assert got.email == "s@example.com"
    assert isinstance(got.expires_at, int)
    assert not hasattr(got, "role")

    store.delete(rec.session_id)
    assert store.get(rec.session_id) is None


def test_get_filters_expired_sessions(monkeypatch: pytest.MonkeyPatch):
    from identity_access import stores_db as mod

    _install_fake_psycopg(monkeypatch, mod)
    store = mod.DBSessionStore(dsn="fake://dsn")

    rec = store.create(sub="u2", email="old@example.com", ttl_seconds=-10)
    assert rec.session_id
    assert store.get(rec.session_id) is None


def test_invalid_table_name_is_rejected(monkeypatch: pytest.MonkeyPatch):
    from identity_access import stores_db as mod

    _install_fake_psycopg(monkeypatch, mod)
    with pytest.raises(ValueError):
        mod.DBSessionStore(dsn="fake://dsn", table="bad;drop table")

    store = mod.DBSessionStore(dsn="fake://dsn", table="public.app_sessions")
    assert store is not None


def test_missing_dsn_raises_runtime_error(monkeypatch: pytest.MonkeyPatch):
    """DBSessionStore should fail fast when no DSN is provided via arg or env."""
    from identity_access import stores_db as mod

    _install_fake_psycopg(monkeypatch, mod)
    monkeypatch.delenv("SESSION_DATABASE_URL", raising=False)
    monkeypatch.delenv("SERVICE_ROLE_DSN", raising=False)
    with pytest.raises(RuntimeError):
        mod.DBSessionStore()


def test_missing_driver_raises_runtime_error(monkeypatch: pytest.MonkeyPatch):
    from identity_access import stores_db as mod

    monkeypatch.setattr(mod, "HAVE_PSYCOPG", False, raising=False)
    with pytest.raises(RuntimeError):
        mod.DBSessionStore(dsn="fake://dsn")
