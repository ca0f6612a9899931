"""Security package."""

from onboarding_api.security.auth import (
    create_access_token,
    decode_token,
    get_current_user,
    require_admin,
)
from onboarding_api.security.encryption import get_encryption_service
from onboarding_api.security.password import get_password_service

__all__ = [
    "create_access_token",
    "decode_token",
    "get_current_user",
    "require_admin",
    "get_encryption_service",
    "get_password_service",
]
