import pytest

from eduquiz.auth import (
    ALREADY_REGISTERED,
    INVALID_CREDENTIALS,
    MISSING_FIELDS,
    PASSWORD_MISMATCH,
    PROFILE_NOT_FOUND,
    TERMS_NOT_ACCEPTED,
    RegistrationForm,
    register,
    sign_in,
    sign_out,
)
from eduquiz.errors import AuthError


@pytest.fixture
def registered(fake_client):
    fake_client.auth.add_user("u-1", "admin@example.com", "secret")
    fake_client.tables["profiles"] = [
        {"id": "u-1", "firstname": "Maria", "lastname": "Cruz", "email": "admin@example.com", "role": "admin"},
    ]
    return fake_client


def _form(**overrides):
    data = dict(
        firstname="  Juan ",
        lastname=" Dela Cruz ",
        email="  Juan@Example.COM ",
        password="pw123456",
        confirm_password="pw123456",
        agreed=True,
    )
    data.update(overrides)
    return RegistrationForm(**data)


def test_sign_in_loads_profile(backend, registered):
    auth = sign_in(backend, "Admin@example.com ", "secret")
    assert auth.user_id == "u-1"
    assert auth.is_admin
    assert auth.display_name == "Maria Cruz"


@pytest.mark.parametrize("email, password", [
    ("admin@example.com", "wrong"),
    ("nobody@example.com", "secret"),
    ("", "secret"),
])
def test_sign_in_rejects_bad_credentials(backend, registered, email, password):
    with pytest.raises(AuthError) as exc:
        sign_in(backend, email, password)
    assert exc.value.message == INVALID_CREDENTIALS


def test_sign_in_without_profile(backend, registered):
    registered.tables["profiles"] = []
    with pytest.raises(AuthError) as exc:
        sign_in(backend, "admin@example.com", "secret")
    assert exc.value.message == PROFILE_NOT_FOUND


def test_register_creates_user_profile(backend, fake_client):
    assert register(backend, _form()) is True
    profile = fake_client.tables["profiles"][0]
    assert profile["email"] == "juan@example.com"
    assert profile["firstname"] == "Juan"
    assert profile["lastname"] == "Dela Cruz"
    assert profile["role"] == "user"
    assert "juan@example.com" in fake_client.auth.users


@pytest.mark.parametrize("overrides, message", [
    ({"confirm_password": "other"}, PASSWORD_MISMATCH),
    ({"agreed": False}, TERMS_NOT_ACCEPTED),
    ({"firstname": "   "}, MISSING_FIELDS),
])
def test_register_validation(backend, fake_client, overrides, message):
    with pytest.raises(AuthError) as exc:
        register(backend, _form(**overrides))
    assert exc.value.message == message
    assert fake_client.auth.users == {}


def test_register_existing_email(backend, registered):
    with pytest.raises(AuthError) as exc:
        register(backend, _form(email="ADMIN@example.com"))
    assert exc.value.message == ALREADY_REGISTERED


def test_sign_out(backend, registered):
    auth = sign_in(backend, "admin@example.com", "secret")
    sign_out(backend, auth)
    assert registered.auth.signed_out
