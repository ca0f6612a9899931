"""SQLAlchemy ORM models package."""

from onboarding_api.models.orm.base import Base
from onboarding_api.models.orm.app_user import AppUserORM
from onboarding_api.models.orm.audit_log import AuditLogORM
from onboarding_api.models.orm.department import DepartmentORM
from onboarding_api.models.orm.hire import HireORM
from onboarding_api.models.orm.hire_audit_log import HireAuditLogORM
from onboarding_api.models.orm.license_type import LicenseTypeORM
from onboarding_api.models.orm.settings import SettingsORM

__all__ = [
    "Base",
    "AppUserORM",
    "AuditLogORM",
    "DepartmentORM",
    "HireORM",
    "HireAuditLogORM",
    "LicenseTypeORM",
    "SettingsORM",
]
