"""Tests for JWT access tokens."""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials
from jose import jwt

from onboarding_api.config import get_settings
from onboarding_api.models.domain.app_user import UserRole
from onboarding_api.security.auth import (
    create_access_token,
    decode_token,
    get_current_user,
    require_admin,
    user_from_payload,
)
from onboarding_api.services.auth_service import AuthService


class TestAccessTokens:
    """Token issue and verification."""

    def test_round_trip(self) -> None:
        user_id = uuid4()
        token = create_access_token(user_id, "jane", UserRole.ADMIN)

        user = user_from_payload(decode_token(token))

        assert user.id == user_id
        assert user.username == "jane"
        assert user.role == UserRole.ADMIN
        assert user.approved is True
        assert user.is_admin()

    def test_tampered_token_rejected(self) -> None:
        token = create_access_token(uuid4(), "jane", UserRole.SUPPORT)
        head, body, signature = token.split(".")
        tampered = f"{head}.{body}.{signature[::-1]}"

        with pytest.raises(HTTPException) as exc_info:
            decode_token(tampered)
        assert exc_info.value.status_code == 401

    def test_expired_token_rejected(self) -> None:
        settings = get_settings()
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {
                "sub": str(uuid4()),
                "username": "jane",
                "role": "support",
                "iss": settings.jwt_issuer,
                "aud": settings.jwt_audience,
                "iat": now - timedelta(hours=10),
                "exp": now - timedelta(hours=1),
            },
            settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
        )

        with pytest.raises(HTTPException):
            decode_token(token)

    @pytest.mark.parametrize("claim", ["iss", "aud"])
    def test_wrong_issuer_or_audience_rejected(self, claim: str) -> None:
        settings = get_settings()
        payload = {
            "sub": str(uuid4()),
            "username": "jane",
            "role": "support",
            "iss": settings.jwt_issuer,
            "aud": settings.jwt_audience,
            "exp": datetime.now(timezone.utc) + timedelta(hours=1),
        }
        payload[claim] = "someone-else"
        token = jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)

        with pytest.raises(HTTPException):
            decode_token(token)

    def test_unapproved_flag_carried(self) -> None:
        token = create_access_token(uuid4(), "new", UserRole.SUPPORT, approved=False)
        assert user_from_payload(decode_token(token)).approved is False

    def test_malformed_claims_rejected(self) -> None:
        with pytest.raises(HTTPException):
            user_from_payload({"sub": "not-a-uuid", "username": "x", "role": "support"})
        with pytest.raises(HTTPException):
            user_from_payload({"sub": str(uuid4()), "username": "x", "role": "root"})


def bearer(token: str) -> HTTPAuthorizationCredentials:
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)


def stored_user(user_id, role: str = "support", approved: bool = True) -> SimpleNamespace:
    return SimpleNamespace(id=user_id, username="jane", role=role, approved=approved, created_at=None, updated_at=None)


@pytest.fixture
def user_repo():
    repo = MagicMock()
    repo.get_by_id = AsyncMock(return_value=None)
    with patch("onboarding_api.security.auth.UserRepository", return_value=repo):
        yield repo


class TestCurrentUser:
    """The caller is reloaded from the stored account on every request."""

    @pytest.mark.asyncio
    async def test_missing_credentials(self, user_repo: MagicMock) -> None:
        with pytest.raises(HTTPException) as exc_info:
            await get_current_user(AsyncMock(), None)
        assert exc_info.value.status_code == 401
        user_repo.get_by_id.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_deleted_account_rejected(self, user_repo: MagicMock) -> None:
        token = create_access_token(uuid4(), "jane", UserRole.ADMIN)

        with pytest.raises(HTTPException) as exc_info:
            await get_current_user(AsyncMock(), bearer(token))
        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_demoted_admin_loses_admin_access(self, user_repo: MagicMock) -> None:
        user_id = uuid4()
        user_repo.get_by_id.return_value = stored_user(user_id, role="support")
        token = create_access_token(user_id, "jane", UserRole.ADMIN)

        user = await get_current_user(AsyncMock(), bearer(token))

        assert user.role == UserRole.SUPPORT
        with pytest.raises(HTTPException) as exc_info:
            await require_admin(user)
        assert exc_info.value.status_code == 403

    @pytest.mark.asyncio
    async def test_revoked_approval_rejected(self, user_repo: MagicMock) -> None:
        user_id = uuid4()
        user_repo.get_by_id.return_value = stored_user(user_id, approved=False)
        token = create_access_token(user_id, "jane", UserRole.SUPPORT, approved=True)

        with pytest.raises(HTTPException) as exc_info:
            await get_current_user(AsyncMock(), bearer(token))
        assert exc_info.value.status_code == 403

    @pytest.mark.asyncio
    async def test_verify_token_for_deleted_account(self) -> None:
        service = AuthService(AsyncMock())
        service.user_repo = MagicMock()
        service.user_repo.get_by_id = AsyncMock(return_value=None)

        result = await service.verify_token(create_access_token(uuid4(), "jane", UserRole.SUPPORT))

        assert result.valid is False
