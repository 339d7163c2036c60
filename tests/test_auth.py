"""Bearer token verification."""
from datetime import timedelta

from jose import jwt

from conftest import auth_headers
from gallery_api.config import get_settings
from gallery_api.utils.security import create_access_token, decode_access_token


def test_decode_valid_token():
    token = create_access_token("u1", role="admin")
    payload = decode_access_token(token)

    assert payload is not None
    assert payload.sub == "u1"
    assert payload.role == "admin"


def test_decode_expired_token():
    token = create_access_token("u1", expires_delta=timedelta(minutes=-5))
    assert decode_access_token(token) is None


def test_decode_wrong_secret():
    settings = get_settings()
    token = jwt.encode({"sub": "u1"}, "another-secret", algorithm=settings.jwt_algorithm)
    assert decode_access_token(token) is None


def test_decode_token_without_subject():
    settings = get_settings()
    token = jwt.encode({"role": "admin"}, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)
    assert decode_access_token(token) is None


def test_audience_checked_when_configured(monkeypatch):
    settings = get_settings()
    monkeypatch.setattr(settings, "jwt_audience", "gallery")

    good = create_access_token("u1")
    wrong = jwt.encode(
        {"sub": "u1", "aud": "other"}, settings.jwt_secret_key, algorithm=settings.jwt_algorithm
    )

    assert decode_access_token(good).sub == "u1"
    assert decode_access_token(wrong) is None


async def test_invalid_token_is_401(client):
    response = await client.get("/photos/all", headers={"Authorization": "Bearer not-a-jwt"})

    assert response.status_code == 401
    assert response.headers["WWW-Authenticate"] == "Bearer"


async def test_valid_token_is_accepted(client):
    response = await client.get("/photos/all", headers=auth_headers("editor-7"))
    assert response.status_code == 200
