"""Authentication router."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request, status

from onboarding_api.dependencies import get_auth_service
from onboarding_api.models.domain.app_user import AppUser
from onboarding_api.models.dto.auth import (
    LoginRequest,
    RegisterRequest,
    TokenResponse,
    UserInfo,
    VerifyTokenRequest,
    VerifyTokenResponse,
)
from onboarding_api.security.auth import get_current_user
from onboarding_api.security.rate_limit import AUTH_LOGIN_LIMIT, AUTH_REGISTER_LIMIT, limiter
from onboarding_api.services.auth_service import AuthService

router = APIRouter()


@router.post("/login", response_model=TokenResponse)
@limiter.limit(AUTH_LOGIN_LIMIT)
async def login(
    request: Request,
    body: LoginRequest,
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
) -> TokenResponse:
    """Log in with username and password."""
    return await auth_service.login(body.username, body.password, request)


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(AUTH_REGISTER_LIMIT)
async def register(
    request: Request,
    body: RegisterRequest,
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
) -> TokenResponse:
    """Self-register a support account. It stays locked until an admin approves it."""
    return await auth_service.register(body.username, body.password, request)


@router.post("/verify-token", response_model=VerifyTokenResponse)
@limiter.limit(AUTH_LOGIN_LIMIT)
async def verify_token(
    request: Request,
    body: VerifyTokenRequest,
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
) -> VerifyTokenResponse:
    """Check whether a token is still valid."""
    return await auth_service.verify_token(body.token)


@router.get("/me", response_model=UserInfo)
async def me(current_user: Annotated[AppUser, Depends(get_current_user)]) -> UserInfo:
    """The authenticated user."""
    return UserInfo(id=current_user.id, username=current_user.username, role=current_user.role)
