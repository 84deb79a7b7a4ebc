"""
Contract tests for the Supabase Auth adapter with a stubbed HTTP layer.

No network: `requests.post` inside the adapter module is replaced per test.
"""
from __future__ import annotations

import time

import pytest
import requests
from jose import jwt

from identity_access import supabase_auth as mod
from identity_access.validation import SigninData, SignupData
from portal.errors import ConflictError, InvalidCredentials, ServiceUnavailable, ValidationFailed

SECRET = "test-jwt-secret-with-enough-length-123456"


class _Resp:
    def __init__(self, status_code: int, body):
        self.status_code = status_code
        self._body = body

    def json(self):
        if isinstance(self._body, Exception):
            raise self._body
        return self._body


def _client(**kw):
    return mod.SupabaseAuthClient(base_url="https://project.supabase.co/", anon_key="anon", **kw)


def _install(monkeypatch, resp=None, exc=None):
    calls = []

    def fake_post(url, json=None, headers=None, timeout=None):
        calls.append({"url": url, "json": json, "headers": headers})
        if exc is not None:
            raise exc
        return resp

    monkeypatch.setattr(mod.requests, "post", fake_post)
    return calls


def _signup_data(**overrides):
    data = {"email": "s@example.com", "password": "secret1", "full_name": "Stu", "student_id": "2400030001"}
    data.update(overrides)
    return SignupData(**data)


def test_sign_up_forwards_metadata_and_returns_principal(monkeypatch):
    calls = _install(monkeypatch, _Resp(200, {"user": {"id": "u-1", "email": "s@example.com"}}))
    principal = _client().sign_up(_signup_data(role="admin", department="CS"))
    assert principal.id == "u-1"
    assert calls[0]["url"] == "https://project.supabase.co/auth/v1/signup"
    assert calls[0]["headers"]["apikey"] == "anon"
    assert calls[0]["json"]["data"] == {
        "full_name": "Stu",
        "student_id": "2400030001",
        "department": "CS",
        "role": "admin",
    }


def test_sign_up_downgrades_admin_when_switch_off(monkeypatch):
    monkeypatch.setenv("ALLOW_ADMIN_SIGNUP", "false")
    calls = _install(monkeypatch, _Resp(200, {"id": "u-2", "email": "s@example.com"}))
    principal = _client().sign_up(_signup_data(role="admin"))
    assert principal.id == "u-2"
    assert calls[0]["json"]["data"]["role"] == "student"


def test_sign_up_maps_already_registered_to_conflict(monkeypatch):
    _install(monkeypatch, _Resp(422, {"code": 422, "error_code": "user_already_exists", "msg": "User already registered"}))
    with pytest.raises(ConflictError) as exc:
        _client().sign_up(_signup_data())
    assert exc.value.detail == "email_taken"


def test_sign_up_maps_trigger_failure_to_conflict(monkeypatch):
    _install(monkeypatch, _Resp(500, {"msg": "Database error saving new user"}))
    with pytest.raises(ConflictError):
        _client().sign_up(_signup_data())


def test_sign_up_other_client_errors_are_validation(monkeypatch):
    _install(monkeypatch, _Resp(422, {"msg": "Password should be stronger"}))
    with pytest.raises(ValidationFailed):
        _client().sign_up(_signup_data())


def test_network_error_is_unavailable(monkeypatch):
    _install(monkeypatch, exc=requests.ConnectionError("down"))
    with pytest.raises(ServiceUnavailable):
        _client().sign_up(_signup_data())
    with pytest.raises(ServiceUnavailable):
        _client().sign_in(SigninData(email="s@example.com", password="secret1"))


def test_sign_in_invalid_grant_is_invalid_credentials(monkeypatch):
    _install(monkeypatch, _Resp(400, {"error": "invalid_grant", "error_description": "Invalid login credentials"}))
    with pytest.raises(InvalidCredentials):
        _client().sign_in(SigninData(email="s@example.com", password="wrong"))


def test_sign_in_verifies_access_token_when_secret_configured(monkeypatch):
    token = jwt.encode(
        {"sub": "u-9", "email": "s@example.com", "aud": "authenticated", "exp": int(time.time()) + 60},
        SECRET,
        algorithm="HS256",
    )
    calls = _install(monkeypatch, _Resp(200, {"access_token": token, "user": {"id": "spoofed"}}))
    principal = _client(jwt_secret=SECRET).sign_in(SigninData(email="s@example.com", password="secret1"))
    assert principal.id == "u-9"
    assert calls[0]["url"].endswith("/auth/v1/token?grant_type=password")


def test_sign_in_with_bad_token_signature_is_rejected(monkeypatch):
    token = jwt.encode(
        {"sub": "u-9", "aud": "authenticated", "exp": int(time.time()) + 60}, "other-secret", algorithm="HS256"
    )
    _install(monkeypatch, _Resp(200, {"access_token": token, "user": {"id": "u-9"}}))
    with pytest.raises(InvalidCredentials):
        _client(jwt_secret=SECRET).sign_in(SigninData(email="s@example.com", password="secret1"))


def test_sign_up_binds_to_verified_token_subject(monkeypatch):
    token = jwt.encode(
        {"sub": "u-7", "email": "s@example.com", "aud": "authenticated", "exp": int(time.time()) + 60},
        SECRET,
        algorithm="HS256",
    )
    _install(monkeypatch, _Resp(200, {"access_token": token, "user": {"id": "spoofed", "email": "s@example.com"}}))
    principal = _client(jwt_secret=SECRET).sign_up(_signup_data())
    assert principal.id == "u-7"


def test_sign_up_with_bad_token_signature_is_rejected(monkeypatch):
    token = jwt.encode(
        {"sub": "u-7", "aud": "authenticated", "exp": int(time.time()) + 60}, "other-secret", algorithm="HS256"
    )
    _install(monkeypatch, _Resp(200, {"access_token": token, "user": {"id": "u-7"}}))
    with pytest.raises(ServiceUnavailable):
        _client(jwt_secret=SECRET).sign_up(_signup_data())


def test_sign_up_without_session_uses_returned_user(monkeypatch):
    # Email confirmation pending: no access token in the response.
    _install(monkeypatch, _Resp(200, {"id": "u-8", "email": "s@example.com"}))
    principal = _client(jwt_secret=SECRET).sign_up(_signup_data())
    assert principal.id == "u-8"
