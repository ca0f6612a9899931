"""Repositories package."""

from onboarding_api.repositories.audit_repository import AuditRepository
from onboarding_api.repositories.base import BaseRepository
from onboarding_api.repositories.department_repository import DepartmentRepository
from onboarding_api.repositories.hire_audit_repository import HireAuditRepository
from onboarding_api.repositories.hire_repository import HireRepository
from onboarding_api.repositories.license_type_repository import LicenseTypeRepository
from onboarding_api.repositories.settings_repository import SettingsRepository
from onboarding_api.repositories.user_repository import UserRepository

__all__ = [
    "BaseRepository",
    "AuditRepository",
    "DepartmentRepository",
    "HireAuditRepository",
    "HireRepository",
    "LicenseTypeRepository",
    "SettingsRepository",
    "UserRepository",
]
