"""Authentication and user management DTOs."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from onboarding_api.models.domain.app_user import UserRole


class LoginRequest(BaseModel):
    """Username/password login request."""

    username: str = Field(min_length=1, max_length=100)
    password: str = Field(min_length=1, max_length=255)


class RegisterRequest(BaseModel):
    """Self-registration request. New accounts start unapproved."""

    username: str = Field(min_length=3, max_length=100, pattern=r"^[A-Za-z0-9_.@-]+$")
    password: str = Field(min_length=8, max_length=255)


class UserInfo(BaseModel):
    """Public user info embedded in token responses."""

    id: UUID
    username: str
    role: UserRole


class TokenResponse(BaseModel):
    """Issued token with the user it belongs to."""

    token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserInfo


class VerifyTokenRequest(BaseModel):
    """Token verification request."""

    token: str = Field(min_length=1, max_length=4096)


class VerifyTokenResponse(BaseModel):
    """Token verification result."""

    valid: bool
    user: UserInfo | None = None


class UserResponse(BaseModel):
    """Application user (never includes the password hash)."""

    id: UUID
    username: str
    role: UserRole
    approved: bool
    created_at: datetime

    class Config:
        """Pydantic config."""

        from_attributes = True


class UserCreate(BaseModel):
    """Admin-created user."""

    username: str = Field(min_length=3, max_length=100, pattern=r"^[A-Za-z0-9_.@-]+$")
    password: str = Field(min_length=8, max_length=255)
    role: UserRole = UserRole.SUPPORT
    approved: bool = True


class UserUpdate(BaseModel):
    """Role/approval update."""

    role: UserRole | None = None
    approved: bool | None = None


class PasswordResetRequest(BaseModel):
    """Admin password reset for another user."""

    new_password: str = Field(min_length=8, max_length=255)
