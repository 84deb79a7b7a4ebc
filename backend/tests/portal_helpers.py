"""Shared helpers for API tests: sign up principals and bind their sessions."""
from __future__ import annotations

import httpx
from httpx import ASGITransport

import main  # type: ignore

DEFAULT_PASSWORD = "secret123"


def client() -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=ASGITransport(app=main.app), base_url="http://test")


def session_id_from(resp: httpx.Response) -> str:
    header = resp.headers.get("set-cookie") or ""
    name, _, rest = header.partition("=")
    assert name == main.SESSION_COOKIE_NAME, header
    return rest.split(";", 1)[0]


def use_session(c: httpx.AsyncClient, sid: str | None) -> None:
    c.cookies.clear()
    if sid:
        c.cookies.set(main.SESSION_COOKIE_NAME, sid)


async def signup(
    c: httpx.AsyncClient,
    *,
    email: str,
    full_name: str = "Test Person",
    password: str = DEFAULT_PASSWORD,
    role: str | None = None,
    student_id: str | None = None,
    department: str | None = None,
) -> tuple[str, str]:
    """Sign up via the API and return (principal_id, session_id)."""
    payload = {"email": email, "password": password, "full_name": full_name}
    if role is not None:
        payload["role"] = role
    if student_id is not None:
        payload["student_id"] = student_id
    if department is not None:
        payload["department"] = department
    resp = await c.post("/auth/signup", json=payload)
    assert resp.status_code == 201, resp.text
    return resp.json()["user"]["id"], session_id_from(resp)
