import time

import jwt
import pytest
from fastapi import HTTPException
from pydantic import SecretStr

from qbank_server.auth.security import verify_identity_token
from qbank_server.config import settings

TEST_IDENTITY_SECRET = "test-identity-secret-must-be-long-enough"


@pytest.fixture(autouse=True)
def identity_secret(monkeypatch):
    monkeypatch.setattr(settings, "jwt_identity_secret", SecretStr(TEST_IDENTITY_SECRET))
    monkeypatch.setattr(settings, "JWT_ALGO", "HS256")


def create_valid_token(
    issuer=None,
    audience=None,
    sub="user-123",
    expired=False,
    secret=TEST_IDENTITY_SECRET,
    **extra,
):
    now = int(time.time())
    iat = now - 3600 if expired else now
    exp = iat - 10 if expired else now + 30

    payload = {
        "iss": issuer or settings.jwt_issuer,
        "aud": audience or settings.jwt_audience,
        "iat": iat,
        "exp": exp,
        **extra,
    }
    if sub is not None:
        payload["sub"] = sub

    return jwt.encode(payload, secret, algorithm="HS256")


class MockCredentials:
    def __init__(self, token):
        self.credentials = token


def test_valid_jwt_accepted():
    user = verify_identity_token(MockCredentials(create_valid_token()))
    assert user.owner_id == "user-123"


def test_missing_credentials_rejected():
    with pytest.raises(HTTPException) as excinfo:
        verify_identity_token(None)
    assert excinfo.value.status_code == 401


def test_expired_jwt_rejected():
    with pytest.raises(HTTPException) as excinfo:
        verify_identity_token(MockCredentials(create_valid_token(expired=True)))
    assert excinfo.value.status_code == 401
    assert "expired" in excinfo.value.detail


def test_wrong_issuer_rejected():
    with pytest.raises(HTTPException) as excinfo:
        verify_identity_token(MockCredentials(create_valid_token(issuer="WrongIssuer")))
    assert excinfo.value.status_code == 401
    assert "issuer" in excinfo.value.detail


def test_wrong_audience_rejected():
    with pytest.raises(HTTPException) as excinfo:
        verify_identity_token(MockCredentials(create_valid_token(audience="wrong-audience")))
    assert excinfo.value.status_code == 401
    assert "audience" in excinfo.value.detail


def test_wrong_signature_rejected():
    token = create_valid_token(secret="wrong-secret-key-that-is-long-enough")
    with pytest.raises(HTTPException) as excinfo:
        verify_identity_token(MockCredentials(token))
    assert excinfo.value.status_code == 401
    assert "Invalid" in excinfo.value.detail


def test_missing_sub_rejected():
    with pytest.raises(HTTPException) as excinfo:
        verify_identity_token(MockCredentials(create_valid_token(sub=None)))
    assert excinfo.value.status_code == 401


def test_unconfigured_secret_is_server_error(monkeypatch):
    monkeypatch.setattr(settings, "jwt_identity_secret", SecretStr(""))
    with pytest.raises(HTTPException) as excinfo:
        verify_identity_token(MockCredentials(create_valid_token()))
    assert excinfo.value.status_code == 500
