from __future__ import annotations

import pytest

from identity_access.validation import validate_signin, validate_signup
from portal.errors import ValidationFailed


def _signup(**overrides):
    data = {"email": "student@example.com", "password": "secret1", "full_name": "Stu Dent"}
    data.update(overrides)
    return validate_signup(**data)


def test_valid_signup_is_normalized():
    data = _signup(email="  student@example.com ", full_name="  Stu Dent ", student_id=" ", department=" CS ")
    assert data.email == "student@example.com"
    assert data.full_name == "Stu Dent"
    assert data.student_id is None
    assert data.department == "CS"


@pytest.mark.parametrize("email", ["", "no-at-sign", "a@b", "a b@example.com", "@example.com"])
def test_invalid_email_is_rejected(email):
    with pytest.raises(ValidationFailed) as exc:
        _signup(email=email)
    assert exc.value.code == "invalid_email"


def test_password_must_have_six_characters():
    with pytest.raises(ValidationFailed) as exc:
        _signup(password="12345")
    assert exc.value.code == "password_too_short"
    assert _signup(password="123456").password == "123456"


def test_full_name_must_not_be_blank():
    with pytest.raises(ValidationFailed) as exc:
        _signup(full_name="   ")
    assert exc.value.code == "full_name_required"


def test_only_first_violation_is_reported():
    with pytest.raises(ValidationFailed) as exc:
        validate_signup(email="bad", password="1", full_name="")
    assert exc.value.code == "invalid_email"
    with pytest.raises(ValidationFailed) as exc:
        validate_signup(email="ok@example.com", password="1", full_name="")
    assert exc.value.code == "password_too_short"


def test_signin_requires_email_then_password():
    with pytest.raises(ValidationFailed) as exc:
        validate_signin(email="bad", password="")
    assert exc.value.code == "invalid_email"
    with pytest.raises(ValidationFailed) as exc:
        validate_signin(email="ok@example.com", password="")
    assert exc.value.code == "password_required"
    # Sign-in has no minimum length.
    assert validate_signin(email="ok@example.com", password="x").password == "x"
