"""User management service for admins."""

from typing import Any
from uuid import UUID

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from onboarding_api.exceptions import (
    CannotDeleteSelfError,
    UserAlreadyExistsError,
    UserNotFoundError,
    ValidationError,
)
from onboarding_api.models.domain.app_user import AppUser
from onboarding_api.models.orm.app_user import AppUserORM
from onboarding_api.models.dto.auth import PasswordResetRequest, UserCreate, UserResponse, UserUpdate
from onboarding_api.repositories.user_repository import UserRepository
from onboarding_api.security.password import get_password_service
from onboarding_api.services.audit_service import AuditAction, AuditService, ResourceType


class UserService:
    """Service for managing support and admin accounts."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize service with database session."""
        self.session = session
        self.user_repo = UserRepository(session)
        self.password_service = get_password_service()
        self.audit_service = AuditService(session)

    async def _require(self, user_id: UUID) -> AppUserORM:
        user = await self.user_repo.get_by_id(user_id)
        if user is None:
            raise UserNotFoundError(str(user_id))
        return user

    async def _audit(
        self,
        action: str,
        user_id: UUID,
        current_user: AppUser,
        request: Request | None,
        details: dict[str, Any],
    ) -> None:
        await self.audit_service.log(
            action,
            ResourceType.USER,
            resource_id=user_id,
            user=current_user,
            request=request,
            details=details,
        )

    async def list_users(self) -> list[UserResponse]:
        """All users, newest first, without password hashes."""
        return [UserResponse.model_validate(u) for u in await self.user_repo.list_ordered()]

    async def create_user(
        self,
        data: UserCreate,
        current_user: AppUser,
        request: Request | None = None,
    ) -> UserResponse:
        """Create a user.

        Raises:
            UserAlreadyExistsError: If the username is taken
        """
        if await self.user_repo.get_by_username(data.username):
            raise UserAlreadyExistsError(data.username)

        user = await self.user_repo.create(
            username=data.username,
            password_hash=self.password_service.hash_password(data.password),
            role=data.role.value,
            approved=data.approved,
        )
        details = {"username": user.username, "role": user.role, "approved": user.approved}
        await self._audit(AuditAction.USER_CREATE, user.id, current_user, request, details)
        await self.session.commit()
        return UserResponse.model_validate(user)

    async def update_user(
        self,
        user_id: UUID,
        data: UserUpdate,
        current_user: AppUser,
        request: Request | None = None,
    ) -> UserResponse:
        """Change role or approval.

        Raises:
            UserNotFoundError: If user not found
            ValidationError: If an admin tries to demote themselves
        """
        user = await self._require(user_id)

        # Prevent locking yourself out of admin functions
        if user_id == current_user.id and data.role is not None and data.role != current_user.role:
            raise ValidationError("Cannot change your own role")

        updates = data.model_dump(exclude_none=True)
        if "role" in updates:
            updates["role"] = data.role.value
        user = await self.user_repo.update(user_id, **updates)

        await self._audit(AuditAction.USER_UPDATE, user_id, current_user, request, updates)
        await self.session.commit()
        return UserResponse.model_validate(user)

    async def delete_user(
        self,
        user_id: UUID,
        current_user: AppUser,
        request: Request | None = None,
    ) -> None:
        """Delete a user.

        Raises:
            CannotDeleteSelfError: If trying to delete self
            UserNotFoundError: If user not found
        """
        if user_id == current_user.id:
            raise CannotDeleteSelfError()

        user = await self._require(user_id)

        await self._audit(AuditAction.USER_DELETE, user_id, current_user, request, {"username": user.username})
        await self.user_repo.delete(user_id)
        await self.session.commit()

    async def reset_password(
        self,
        user_id: UUID,
        data: PasswordResetRequest,
        current_user: AppUser,
        request: Request | None = None,
    ) -> None:
        """Set a new password chosen by the admin."""
        user = await self._require(user_id)

        password_hash = self.password_service.hash_password(data.new_password)
        await self.user_repo.update(user_id, password_hash=password_hash)
        await self._audit(AuditAction.PASSWORD_RESET, user_id, current_user, request, {"username": user.username})
        await self.session.commit()
