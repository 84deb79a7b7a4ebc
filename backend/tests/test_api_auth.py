"""
Auth API: signup/login/logout plus own-profile endpoints.

Sessions are asserted through the opaque cookie only; the Secure cookie is
bound manually because the test transport speaks plain http.
"""
from __future__ import annotations

import pytest

import main  # type: ignore
from portal_helpers import DEFAULT_PASSWORD, client, session_id_from, signup, use_session

pytestmark = pytest.mark.anyio("asyncio")


async def test_signup_returns_user_role_and_hardened_cookie():
    async with client() as c:
        resp = await c.post(
            "/auth/signup",
            json={"email": "stu@example.com", "password": "secret1", "full_name": "Stu", "student_id": "2400030001"},
        )
    assert resp.status_code == 201
    body = resp.json()
    assert body["user"]["email"] == "stu@example.com"
    assert body["role"] == "student"
    cookie = resp.headers["set-cookie"].lower()
    assert cookie.startswith(f"{main.SESSION_COOKIE_NAME}=")
    assert "httponly" in cookie and "secure" in cookie and "samesite=lax" in cookie
    assert "path=/" in cookie
    # Browser-session cookie outside prod.
    assert "max-age" not in cookie
    assert resp.headers["cache-control"] == "private, no-store"


async def test_signup_cookie_is_persistent_in_prod():
    main.SETTINGS.override_environment("prod")
    async with client() as c:
        resp = await c.post("/auth/signup", json={"email": "p@example.com", "password": "secret1", "full_name": "P"})
    assert resp.status_code == 201
    assert "max-age=3600" in resp.headers["set-cookie"].lower()


async def test_signup_admin_role_when_requested():
    async with client() as c:
        resp = await c.post(
            "/auth/signup",
            json={"email": "boss@example.com", "password": "secret1", "full_name": "Boss", "role": "admin"},
        )
    assert resp.status_code == 201
    assert resp.json()["role"] == "admin"


@pytest.mark.parametrize(
    "payload, detail",
    [
        ({"email": "nope", "password": "secret1", "full_name": "X"}, "invalid_email"),
        ({"email": "x@example.com", "password": "12345", "full_name": "X"}, "password_too_short"),
        ({"email": "x@example.com", "password": "secret1", "full_name": "   "}, "full_name_required"),
        ({}, "invalid_email"),
    ],
)
async def test_signup_validation_reports_first_violation(payload, detail):
    async with client() as c:
        resp = await c.post("/auth/signup", json=payload)
    assert resp.status_code == 400
    assert resp.json()["detail"] == detail
    assert "set-cookie" not in resp.headers


async def test_signup_duplicate_email_or_student_id_conflicts(repo):
    async with client() as c:
        await signup(c, email="one@example.com", student_id="2400030001")
        dup_email = await c.post(
            "/auth/signup", json={"email": "ONE@example.com", "password": "secret1", "full_name": "Again"}
        )
        dup_sid = await c.post(
            "/auth/signup",
            json={"email": "two@example.com", "password": "secret1", "full_name": "Two", "student_id": "2400030001"},
        )
    assert dup_email.status_code == 409
    assert dup_sid.status_code == 409
    assert dup_sid.json()["detail"] == "student_id_taken"
    # Nothing partial survives a failed signup.
    assert repo.find_principal_by_email("two@example.com") is None


async def test_signup_malformed_body_is_bad_request():
    async with client() as c:
        resp = await c.post("/auth/signup", json={"email": ["not", "a", "string"]})
    assert resp.status_code == 400
    assert resp.json()["detail"] == "invalid_input"


async def test_login_success_and_failures():
    async with client() as c:
        await signup(c, email="log@example.com")
        ok = await c.post("/auth/login", json={"email": "log@example.com", "password": DEFAULT_PASSWORD})
        wrong = await c.post("/auth/login", json={"email": "log@example.com", "password": "incorrect"})
        unknown = await c.post("/auth/login", json={"email": "ghost@example.com", "password": "whatever"})
        empty = await c.post("/auth/login", json={"email": "log@example.com", "password": ""})
    assert ok.status_code == 200
    assert ok.json()["role"] == "student"
    assert session_id_from(ok)
    assert wrong.status_code == 401 and wrong.json()["error"] == "invalid_credentials"
    assert unknown.status_code == 401
    assert empty.status_code == 400 and empty.json()["detail"] == "password_required"


async def test_api_requires_session_and_logout_invalidates_it():
    async with client() as c:
        anon = await c.get("/api/me")
        assert anon.status_code == 401
        assert anon.json() == {"error": "unauthenticated"}

        _, sid = await signup(c, email="me@example.com")
        use_session(c, sid)
        assert (await c.get("/api/me")).status_code == 200

        out = await c.post("/auth/logout")
        assert out.status_code == 204
        assert main.SESSION_COOKIE_NAME in out.headers.get("set-cookie", "")

        use_session(c, sid)
        assert (await c.get("/api/me")).status_code == 401


async def test_logout_without_session_is_no_content():
    async with client() as c:
        resp = await c.post("/auth/logout")
    assert resp.status_code == 204


async def test_get_and_patch_own_profile():
    async with client() as c:
        uid, sid = await signup(c, email="prof@example.com", full_name="Pro F", student_id="2400030009")
        use_session(c, sid)
        me = await c.get("/api/me")
        assert me.status_code == 200
        body = me.json()
        assert body["sub"] == uid
        assert body["role"] == "student"
        assert body["profile"]["full_name"] == "Pro F"
        assert body["profile"]["student_id"] == "2400030009"

        patched = await c.patch("/api/me", json={"department": "Computer Science"})
        assert patched.status_code == 200
        assert patched.json()["profile"]["department"] == "Computer Science"

        blank = await c.patch("/api/me", json={"full_name": "  "})
        assert blank.status_code == 400 and blank.json()["detail"] == "full_name_required"

        empty = await c.patch("/api/me", json={})
        assert empty.status_code == 400 and empty.json()["detail"] == "empty_update"


async def test_patch_profile_student_id_conflict():
    async with client() as c:
        await signup(c, email="first@example.com", student_id="2400030001")
        _, sid = await signup(c, email="second@example.com", student_id="2400030002")
        use_session(c, sid)
        resp = await c.patch("/api/me", json={"student_id": "2400030001"})
    assert resp.status_code == 409


async def test_cross_origin_login_is_rejected():
    async with client() as c:
        await signup(c, email="csrf@example.com")
        resp = await c.post(
            "/auth/login",
            json={"email": "csrf@example.com", "password": DEFAULT_PASSWORD},
            headers={"Origin": "https://evil.example"},
        )
    assert resp.status_code == 403
    assert resp.json()["detail"] == "csrf_violation"
