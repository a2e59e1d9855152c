from datetime import timedelta
from typing import Iterator

import jwt
import pytest
from mobility.config import Settings, get_settings
from mobility.deps import get_current_user, require_admin
from mobility.utils.auth import TokenClaims, create_access_token, decode_access_token
from fastapi import HTTPException


@pytest.fixture(autouse=True)
def _set_auth_secret(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    monkeypatch.setenv("AUTH_SECRET", "testsecret")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.mark.asyncio
async def test_get_current_user_accepts_valid_token() -> None:
    settings = Settings(auth_secret="testsecret")
    token = create_access_token(user_id="user-123", secret=settings.auth_secret, algorithm=settings.auth_algorithm)
    claims = await get_current_user(authorization=f"Bearer {token}")
    assert claims == TokenClaims(user_id="user-123", role="user")
    assert not claims.is_admin


@pytest.mark.asyncio
async def test_get_current_user_rejects_missing_header() -> None:
    with pytest.raises(HTTPException) as excinfo:
        await get_current_user(authorization=None)
    assert excinfo.value.status_code == 401


@pytest.mark.asyncio
async def test_get_current_user_rejects_other_scheme() -> None:
    with pytest.raises(HTTPException) as excinfo:
        await get_current_user(authorization="Basic dXNlcjpwYXNz")
    assert excinfo.value.status_code == 401


@pytest.mark.asyncio
async def test_get_current_user_rejects_expired_token() -> None:
    token = create_access_token(user_id="user-1", secret="testsecret", expires_delta=timedelta(seconds=-1))
    with pytest.raises(HTTPException) as excinfo:
        await get_current_user(authorization=f"Bearer {token}")
    assert excinfo.value.status_code == 401


@pytest.mark.asyncio
async def test_get_current_user_rejects_wrong_secret() -> None:
    token = create_access_token(user_id="user-1", secret="othersecret")
    with pytest.raises(HTTPException) as excinfo:
        await get_current_user(authorization=f"Bearer {token}")
    assert excinfo.value.status_code == 401


@pytest.mark.asyncio
async def test_require_admin_checks_role() -> None:
    admin = TokenClaims(user_id="ops", role="admin")
    assert await require_admin(user=admin) is admin

    with pytest.raises(HTTPException) as excinfo:
        await require_admin(user=TokenClaims(user_id="rider", role="user"))
    assert excinfo.value.status_code == 403


def test_decode_reads_role_from_app_metadata() -> None:
    token = jwt.encode(
        {"sub": "ops-1", "role": "authenticated", "app_metadata": {"role": "admin"}},
        "testsecret",
        algorithm="HS256",
    )
    claims = decode_access_token(token, secret="testsecret", algorithms=["HS256"])
    assert claims.user_id == "ops-1"
    assert claims.is_admin


def test_decode_requires_subject() -> None:
    token = jwt.encode({"role": "admin"}, "testsecret", algorithm="HS256")
    with pytest.raises(ValueError):
        decode_access_token(token, secret="testsecret", algorithms=["HS256"])
