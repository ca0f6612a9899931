"""Application user management router. Admin only."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Request, status

from onboarding_api.dependencies import get_user_service
from onboarding_api.models.domain.app_user import AppUser
from onboarding_api.models.dto.auth import PasswordResetRequest, UserCreate, UserResponse, UserUpdate
from onboarding_api.security.auth import require_admin
from onboarding_api.security.rate_limit import SENSITIVE_OPERATION_LIMIT, limiter
from onboarding_api.services.user_service import UserService

router = APIRouter()


@router.get("", response_model=list[UserResponse])
async def list_users(
    current_user: Annotated[AppUser, Depends(require_admin)],
    user_service: Annotated[UserService, Depends(get_user_service)],
) -> list[UserResponse]:
    """List admin and support accounts."""
    return await user_service.list_users()


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(SENSITIVE_OPERATION_LIMIT)
async def create_user(
    request: Request,
    body: UserCreate,
    current_user: Annotated[AppUser, Depends(require_admin)],
    user_service: Annotated[UserService, Depends(get_user_service)],
) -> UserResponse:
    """Create an account."""
    return await user_service.create_user(body, current_user, request)


@router.put("/{user_id}", response_model=UserResponse)
@limiter.limit(SENSITIVE_OPERATION_LIMIT)
async def update_user(
    request: Request,
    user_id: UUID,
    body: UserUpdate,
    current_user: Annotated[AppUser, Depends(require_admin)],
    user_service: Annotated[UserService, Depends(get_user_service)],
) -> UserResponse:
    """Change an account's role or approval."""
    return await user_service.update_user(user_id, body, current_user, request)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit(SENSITIVE_OPERATION_LIMIT)
async def delete_user(
    request: Request,
    user_id: UUID,
    current_user: Annotated[AppUser, Depends(require_admin)],
    user_service: Annotated[UserService, Depends(get_user_service)],
) -> None:
    """Delete an account. Admins cannot delete themselves."""
    await user_service.delete_user(user_id, current_user, request)


@router.post("/{user_id}/reset-password", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit(SENSITIVE_OPERATION_LIMIT)
async def reset_password(
    request: Request,
    user_id: UUID,
    body: PasswordResetRequest,
    current_user: Annotated[AppUser, Depends(require_admin)],
    user_service: Annotated[UserService, Depends(get_user_service)],
) -> None:
    """Set a new password for an account."""
    await user_service.reset_password(user_id, body, current_user, request)
