"""
Supabase Auth (GoTrue) client for signup and password sign-in.

This is a thin, framework-agnostic adapter. Signup forwards the profile
metadata the `on_auth_user_created` trigger reads (full name, optional student
id and department, requested role). Sign-in performs the password grant and
returns the verified principal id.

Security: Never log credentials or tokens. Only the anon key is used; the
service role key is never needed here.
"""

from __future__ import annotations

from typing import Dict, Optional
import logging

import requests

from portal.errors import ConflictError, InvalidCredentials, ServiceUnavailable, ValidationFailed

from .domain import requested_signup_role
from .provider import AuthenticatedPrincipal
from .tokens import AccessTokenVerificationError, verify_access_token
from .validation import SigninData, SignupData

logger = logging.getLogger("portal.identity_access")


def _error_text(resp) -> str:
    try:
        body = resp.json()
    except ValueError:
        return ""
    if not isinstance(body, dict):
        return ""
    parts = [body.get(k) for k in ("error_code", "code", "error", "msg", "message", "error_description")]
    return " ".join(str(p) for p in parts if p).lower()


class SupabaseAuthClient:
    def __init__(self, *, base_url: str, anon_key: str, jwt_secret: str = "", timeout: float = 10.0) -> None:
        self._base_url = (base_url or "").rstrip("/")
        self._anon_key = anon_key
        self._jwt_secret = jwt_secret
        self._timeout = timeout

    def _headers(self) -> Dict[str, str]:
        return {"apikey": self._anon_key, "Content-Type": "application/json"}

    def _post(self, path: str, payload: Dict[str, object]):
        url = f"{self._base_url}/auth/v1/{path}"
        try:
            return requests.post(url, json=payload, headers=self._headers(), timeout=self._timeout)
        except requests.RequestException as exc:
            logger.warning("Identity provider unreachable: %s", exc.__class__.__name__)
            raise ServiceUnavailable("identity_unavailable") from exc

    def sign_up(self, data: SignupData) -> AuthenticatedPrincipal:
        """Create a principal; the datastore trigger creates profile and role.

        Raises:
            ConflictError: email already registered, or the trigger refused the
                profile (e.g. duplicate student id), which aborts the signup.
            ValidationFailed: other input rejected by the provider.
            ServiceUnavailable: network error or provider outage.
        """
        metadata: Dict[str, Optional[str]] = {
            "full_name": data.full_name,
            "student_id": data.student_id,
            "department": data.department,
            "role": requested_signup_role(data.role),
        }
        resp = self._post("signup", {"email": data.email, "password": data.password, "data": metadata})
        if resp.status_code >= 500:
            text = _error_text(resp)
            # Trigger failures surface as a generic database error and roll back the user row.
            if "database error saving new user" in text:
                raise ConflictError("profile_conflict")
            raise ServiceUnavailable("identity_unavailable")
        if resp.status_code >= 400:
            text = _error_text(resp)
            if "already" in text and ("registered" in text or "exists" in text):
                raise ConflictError("email_taken")
            raise ValidationFailed("signup_rejected", "Signup was rejected by the identity provider")
        try:
            body = resp.json()
        except ValueError as exc:
            raise ServiceUnavailable("identity_invalid_response") from exc
        if not isinstance(body, dict):
            raise ServiceUnavailable("identity_invalid_response")
        user = body.get("user") if isinstance(body.get("user"), dict) else body
        email = str(user.get("email") or data.email)
        # With email confirmation enabled GoTrue returns the user without a session.
        if self._jwt_secret and body.get("access_token"):
            try:
                claims = verify_access_token(token=str(body["access_token"]), secret=self._jwt_secret)
            except AccessTokenVerificationError as exc:
                logger.warning("Signup access token verification failed: %s", exc.code)
                raise ServiceUnavailable("identity_invalid_response") from exc
            uid = str(claims["sub"])
        else:
            uid = str(user.get("id") or "")
        if not uid:
            raise ServiceUnavailable("identity_invalid_response")
        return AuthenticatedPrincipal(id=uid, email=email)

    def sign_in(self, data: SigninData) -> AuthenticatedPrincipal:
        resp = self._post("token?grant_type=password", {"email": data.email, "password": data.password})
        if resp.status_code >= 500:
            raise ServiceUnavailable("identity_unavailable")
        if resp.status_code != 200:
            raise InvalidCredentials("invalid_credentials")
        try:
            body = resp.json()
        except ValueError as exc:
            raise ServiceUnavailable("identity_invalid_response") from exc
        if not isinstance(body, dict) or not body.get("access_token"):
            raise ServiceUnavailable("identity_invalid_response")
        user = body.get("user") if isinstance(body.get("user"), dict) else {}
        if self._jwt_secret:
            try:
                claims = verify_access_token(token=str(body["access_token"]), secret=self._jwt_secret)
            except AccessTokenVerificationError as exc:
                logger.warning("Access token verification failed: %s", exc.code)
                raise InvalidCredentials("invalid_credentials") from exc
            uid = str(claims["sub"])
            email = str(claims.get("email") or user.get("email") or data.email)
        else:
            uid = str(user.get("id") or "")
            email = str(user.get("email") or data.email)
        if not uid:
            raise ServiceUnavailable("identity_invalid_response")
        return AuthenticatedPrincipal(id=uid, email=email)


__all__ = ["SupabaseAuthClient"]
