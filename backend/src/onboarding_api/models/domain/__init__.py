"""Domain models package."""

from onboarding_api.models.domain.app_user import AppUser, UserRole
from onboarding_api.models.domain.hire import AuditStatus, LaptopStatus, SyncStatus

__all__ = [
    "AppUser",
    "UserRole",
    "AuditStatus",
    "LaptopStatus",
    "SyncStatus",
]
