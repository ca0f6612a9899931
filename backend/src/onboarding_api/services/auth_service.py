"""Authentication service for application users."""

import logging

from fastapi import HTTPException, Request, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from onboarding_api.models.domain.app_user import AppUser, UserRole
from onboarding_api.models.dto.auth import TokenResponse, UserInfo, VerifyTokenResponse
from onboarding_api.models.orm.app_user import AppUserORM
from onboarding_api.repositories.user_repository import UserRepository
from onboarding_api.security.auth import (
    create_access_token,
    decode_token,
    token_lifetime_seconds,
    user_from_payload,
)
from onboarding_api.security.password import get_password_service
from onboarding_api.services.audit_service import AuditAction, AuditService, ResourceType

logger = logging.getLogger(__name__)


class AuthService:
    """Login, self-registration and token verification."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize service with database session."""
        self.session = session
        self.user_repo = UserRepository(session)
        self.password_service = get_password_service()
        self.audit_service = AuditService(session)

    @staticmethod
    def _token_response(user: AppUserORM) -> TokenResponse:
        role = UserRole(user.role)
        return TokenResponse(
            token=create_access_token(user.id, user.username, role, approved=user.approved),
            expires_in=token_lifetime_seconds(),
            user=UserInfo(id=user.id, username=user.username, role=role),
        )

    async def login(self, username: str, password: str, request: Request) -> TokenResponse:
        """Authenticate with username and password.

        Raises:
            HTTPException: 400 when a field is blank, 401 on bad credentials,
                403 for unapproved support accounts
        """
        if not username.strip() or not password:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Username and password are required",
            )

        user = await self.user_repo.get_by_username(username.strip())
        if user is None or not self.password_service.verify_password(password, user.password_hash):
            await self.audit_service.log_login(False, request, username, failure_reason="invalid_credentials")
            await self.session.commit()
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid credentials",
            )

        domain_user = AppUser.model_validate(user)
        if not user.approved and not domain_user.is_admin():
            await self.audit_service.log_login(
                False, request, username, user=domain_user, failure_reason="pending_approval"
            )
            await self.session.commit()
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Your account is pending approval by an admin",
            )

        await self.audit_service.log_login(True, request, username, user=domain_user)
        await self.session.commit()
        logger.info("User %s logged in", user.username)
        return self._token_response(user)

    async def register(self, username: str, password: str, request: Request) -> TokenResponse:
        """Create an unapproved support account.

        The returned token is rejected on protected routes until an admin
        approves the account.
        """
        username = username.strip()
        if await self.user_repo.get_by_username(username):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Username already exists",
            )

        try:
            user = await self.user_repo.create(
                username=username,
                password_hash=self.password_service.hash_password(password),
                role=UserRole.SUPPORT.value,
                approved=False,
            )
        except IntegrityError as e:
            await self.session.rollback()
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Username already exists",
            ) from e

        await self.audit_service.log(
            action=AuditAction.REGISTER,
            resource_type=ResourceType.USER,
            resource_id=user.id,
            user=AppUser.model_validate(user),
            request=request,
            details={"username": username},
        )
        await self.session.commit()
        return self._token_response(user)

    async def verify_token(self, token: str) -> VerifyTokenResponse:
        """Check a token's signature, expiry, issuer and audience.

        A token whose account no longer exists is invalid. The role reported
        is the stored one.
        """
        try:
            claims = user_from_payload(decode_token(token))
        except HTTPException:
            return VerifyTokenResponse(valid=False)
        user = await self.user_repo.get_by_id(claims.id)
        if user is None:
            return VerifyTokenResponse(valid=False)
        return VerifyTokenResponse(
            valid=True, user=UserInfo(id=user.id, username=user.username, role=UserRole(user.role))
        )
