"""Data Transfer Objects package."""

from onboarding_api.models.dto.auth import TokenResponse, UserInfo
from onboarding_api.models.dto.hire import (
    BulkOperationResponse,
    HireCreate,
    HireListResponse,
    HireResponse,
    HireUpdate,
)

__all__ = [
    "TokenResponse",
    "UserInfo",
    "HireCreate",
    "HireUpdate",
    "HireResponse",
    "HireListResponse",
    "BulkOperationResponse",
]
