"""Centralized dependency injection factories for FastAPI.

Routers depend on these instead of building services themselves, so
tests can swap any of them through ``app.dependency_overrides``.
"""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from onboarding_api.database import get_db
from onboarding_api.services.audit_service import AuditService
from onboarding_api.services.auth_service import AuthService
from onboarding_api.services.directory_service import DirectoryService
from onboarding_api.services.distribution_list_service import DistributionListService
from onboarding_api.services.export_service import ExportService
from onboarding_api.services.hire_audit_service import HireAuditService
from onboarding_api.services.hire_service import HireService
from onboarding_api.services.hris_sync_service import HrisSyncService
from onboarding_api.services.mail_service import MailService
from onboarding_api.services.settings_service import SettingsService
from onboarding_api.services.srf_document_service import SrfDocumentService
from onboarding_api.services.user_service import UserService
from onboarding_api.services.whatsapp_service import WhatsAppService

DbSession = Annotated[AsyncSession, Depends(get_db)]


# =============================================================================
# Core Service Factories
# =============================================================================


def get_audit_service(db: DbSession) -> AuditService:
    """Request-scoped AuditService."""
    return AuditService(db)


def get_auth_service(db: DbSession) -> AuthService:
    """Request-scoped AuthService."""
    return AuthService(db)


def get_user_service(db: DbSession) -> UserService:
    """Request-scoped UserService."""
    return UserService(db)


def get_settings_service(db: DbSession) -> SettingsService:
    """Request-scoped SettingsService."""
    return SettingsService(db)


# =============================================================================
# Hire Service Factories
# =============================================================================


def get_hire_service(db: DbSession) -> HireService:
    """Request-scoped HireService."""
    return HireService(db)


def get_hire_audit_service(db: DbSession) -> HireAuditService:
    """Request-scoped HireAuditService."""
    return HireAuditService(db)


def get_srf_document_service(db: DbSession) -> SrfDocumentService:
    """Request-scoped SrfDocumentService."""
    return SrfDocumentService(db)


def get_export_service(db: DbSession) -> ExportService:
    """Request-scoped ExportService."""
    return ExportService(db)


# =============================================================================
# Integration Service Factories
# =============================================================================


def get_directory_service(db: DbSession) -> DirectoryService:
    """Request-scoped DirectoryService."""
    return DirectoryService(db)


def get_distribution_list_service(db: DbSession) -> DistributionListService:
    """Request-scoped DistributionListService."""
    return DistributionListService(db)


def get_hris_sync_service(db: DbSession) -> HrisSyncService:
    """Request-scoped HrisSyncService."""
    return HrisSyncService(db)


def get_mail_service(db: DbSession) -> MailService:
    """Request-scoped MailService."""
    return MailService(db)


def get_whatsapp_service(db: DbSession) -> WhatsAppService:
    """Request-scoped WhatsAppService."""
    return WhatsAppService(db)
