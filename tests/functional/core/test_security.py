# tests/functional/core/test_security.py

import uuid
import pytest
from datetime import datetime, timedelta, timezone
from fastapi import HTTPException
from jose import jwt
from starlette.requests import Request

from pte_portal.core.config import settings, validate_required_settings, Settings, ConfigurationError
from pte_portal.core.security import (
    hash_password,
    verify_password,
    issue_token,
    decode_token,
    verify_token,
    extract_bearer_token,
    get_current_user_payload,
    SecurityError,
    TokenValidationError,
    SigningKeyMissingError,
)


def _request(headers=None) -> Request:
    raw = [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()]
    return Request({"type": "http", "method": "GET", "path": "/", "headers": raw})


# --- Password hashing ---
def test_hash_password_is_salted_and_verifies():
    first = hash_password("s3cret-pass")
    second = hash_password("s3cret-pass")
    assert first != second
    assert first.startswith("$2")
    assert verify_password("s3cret-pass", first)
    assert not verify_password("wrong-pass", first)


def test_verify_password_malformed_hash_is_false():
    assert verify_password("anything", "not-a-bcrypt-hash") is False
    assert verify_password("anything", None) is False
    assert verify_password("", hash_password("x")) is False


# --- Token issue & validation ---
def test_issue_and_verify_round_trip():
    user_id = uuid.uuid4()
    token = issue_token(user_id, "admin")
    payload = verify_token(token)
    assert payload is not None
    assert payload["sub"] == str(user_id)
    assert payload["role"] == "admin"
    assert payload["exp"] - payload["iat"] == settings.ACCESS_TOKEN_EXPIRE_DAYS * 24 * 3600


def test_expired_token_is_rejected():
    issued = datetime.now(timezone.utc) - timedelta(days=settings.ACCESS_TOKEN_EXPIRE_DAYS, seconds=5)
    token = issue_token(uuid.uuid4(), "student", now=issued)
    assert verify_token(token) is None
    with pytest.raises(TokenValidationError, match="Expired"):
        decode_token(token)


def test_token_signed_with_other_key_is_rejected():
    forged = jwt.encode(
        {"sub": str(uuid.uuid4()), "role": "admin", "exp": int(datetime.now(timezone.utc).timestamp()) + 60},
        "some-other-key",
        algorithm="HS256",
    )
    assert verify_token(forged) is None


def test_token_with_unknown_role_is_rejected():
    token = jwt.encode(
        {"sub": str(uuid.uuid4()), "role": "superuser", "exp": int(datetime.now(timezone.utc).timestamp()) + 60},
        settings.JWT_SECRET_KEY,
        algorithm=settings.JWT_ALGORITHM,
    )
    assert verify_token(token) is None


def test_verify_token_garbage_and_empty():
    assert verify_token("not.a.token") is None
    assert verify_token("") is None
    assert verify_token(None) is None


def test_issue_token_without_signing_key_raises(mocker):
    mocker.patch.object(settings, "JWT_SECRET_KEY", None)
    with pytest.raises(SigningKeyMissingError):
        issue_token(uuid.uuid4(), "student")
    assert issubclass(SigningKeyMissingError, SecurityError)
    assert issubclass(SigningKeyMissingError, ConfigurationError)


# --- Header extraction ---
@pytest.mark.parametrize(
    "headers, expected",
    [
        ({}, None),
        ({"Authorization": "Bearer abc.def.ghi"}, "abc.def.ghi"),
        ({"Authorization": "bearer abc"}, "abc"),
        ({"Authorization": "Basic dXNlcjpwYXNz"}, None),
        ({"Authorization": "Bearer "}, None),
    ],
)
def test_extract_bearer_token(headers, expected):
    assert extract_bearer_token(_request(headers)) == expected


@pytest.mark.asyncio
async def test_get_current_user_payload_missing_token():
    with pytest.raises(HTTPException) as exc_info:
        await get_current_user_payload(_request())
    assert exc_info.value.status_code == 401
    assert exc_info.value.detail == "No token provided"


@pytest.mark.asyncio
async def test_get_current_user_payload_invalid_token():
    with pytest.raises(HTTPException) as exc_info:
        await get_current_user_payload(_request({"Authorization": "Bearer nonsense"}))
    assert exc_info.value.status_code == 401
    assert exc_info.value.detail == "Invalid token"


@pytest.mark.asyncio
async def test_get_current_user_payload_valid_token():
    user_id = uuid.uuid4()
    payload = await get_current_user_payload(
        _request({"Authorization": f"Bearer {issue_token(user_id, 'student')}"})
    )
    assert payload["sub"] == str(user_id)
    assert payload["role"] == "student"


# --- Mandatory configuration ---
def test_validate_required_settings_fails_without_secrets():
    with pytest.raises(ConfigurationError, match="MONGODB_URL"):
        validate_required_settings(Settings(MONGODB_URL="", JWT_SECRET_KEY="x"))
    with pytest.raises(ConfigurationError, match="JWT_SECRET_KEY"):
        validate_required_settings(Settings(MONGODB_URL="mongodb://db", JWT_SECRET_KEY=""))


def test_validate_required_settings_rejects_unknown_backend():
    with pytest.raises(ConfigurationError, match="FILE_STORAGE_BACKEND"):
        validate_required_settings(
            Settings(MONGODB_URL="mongodb://db", JWT_SECRET_KEY="x", FILE_STORAGE_BACKEND="ftp")
        )
