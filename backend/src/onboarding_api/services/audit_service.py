"""Audit service for the administrative audit trail."""

import logging
from typing import TYPE_CHECKING, Any
from uuid import UUID

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from onboarding_api.models.dto.audit import AuditLogListResponse, AuditLogResponse
from onboarding_api.repositories.audit_repository import AuditRepository
from onboarding_api.security.rate_limit import get_real_client_ip

if TYPE_CHECKING:
    from onboarding_api.models.domain.app_user import AppUser

logger = logging.getLogger(__name__)


class AuditAction:
    """Audit trail action names."""

    LOGIN = "login"
    LOGIN_FAILED = "login_failed"
    REGISTER = "register"

    USER_CREATE = "user_create"
    USER_UPDATE = "user_update"
    USER_DELETE = "user_delete"
    PASSWORD_RESET = "password_reset"

    SETTING_UPDATE = "setting_update"
    CONNECTION_TEST = "connection_test"
    DEPARTMENT_CREATE = "department_create"
    DEPARTMENT_UPDATE = "department_update"
    DEPARTMENT_DELETE = "department_delete"
    LICENSE_TYPE_CREATE = "license_type_create"
    LICENSE_TYPE_UPDATE = "license_type_update"
    LICENSE_TYPE_DELETE = "license_type_delete"

    HIRE_BULK_UPDATE = "hire_bulk_update"
    HIRE_BULK_DELETE = "hire_bulk_delete"

    FILE_UPLOAD = "file_upload"
    FILE_DELETE = "file_delete"

    EXPORT = "export"

    HRIS_SYNC = "hris_sync"
    HRIS_SCHEDULE_UPDATE = "hris_schedule_update"


class ResourceType:
    """Audit trail resource kinds."""

    USER = "user"
    SESSION = "session"
    SETTING = "setting"
    DEPARTMENT = "department"
    LICENSE_TYPE = "license_type"
    HIRE = "hire"
    FILE = "file"
    REPORT = "report"
    HRIS = "hris"


SENSITIVE_KEYS = frozenset({
    "password",
    "password_hash",
    "new_password",
    "client_secret",
    "access_token",
    "token",
    "secret",
    "unicodepwd",
})

REDACTED = "[REDACTED]"


def redact(value: Any) -> Any:
    """Copy of ``value`` with secret-named keys replaced at any depth."""
    if isinstance(value, dict):
        return {
            key: REDACTED if str(key).lower() in SENSITIVE_KEYS else redact(item)
            for key, item in value.items()
        }
    if isinstance(value, list):
        return [redact(item) for item in value]
    return value


def request_origin(request: Request | None) -> tuple[str | None, str | None]:
    """Client IP and user agent, preferring what the audit middleware stored."""
    if request is None:
        return None, None
    ip = getattr(request.state, "client_ip", None) or get_real_client_ip(request)
    agent = getattr(request.state, "user_agent", None) or request.headers.get("user-agent")
    return ip, agent


class AuditService:
    """Writes and pages the administrative audit trail.

    A failed audit write is logged and never fails the audited operation.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.audit_repo = AuditRepository(session)

    async def log(
        self,
        action: str,
        resource_type: str,
        resource_id: UUID | str | None = None,
        user: "AppUser | None" = None,
        details: dict[str, Any] | None = None,
        request: Request | None = None,
    ) -> None:
        """Record an action.

        Args:
            action: One of the AuditAction values
            resource_type: One of the ResourceType values
            resource_id: ID or key of the affected resource
            user: Acting user, None for anonymous actions
            details: Structured context, redacted before storage
            request: Source of client IP and user agent
        """
        ip_address, user_agent = request_origin(request)
        try:
            await self.audit_repo.append(
                action,
                resource_type,
                resource_id=None if resource_id is None else str(resource_id),
                user_id=user.id if user else None,
                changes=redact(details),
                ip_address=ip_address,
                user_agent=user_agent,
            )
        except Exception as e:
            logger.error("Failed to write audit entry %s on %s: %s", action, resource_type, e)
            return
        logger.debug("Audit %s %s/%s by %s", action, resource_type, resource_id, user.username if user else "-")

    async def log_login(
        self,
        success: bool,
        request: Request,
        username: str,
        user: "AppUser | None" = None,
        failure_reason: str | None = None,
    ) -> None:
        details: dict[str, Any] = {"username": username}
        if failure_reason:
            details["reason"] = failure_reason
        await self.log(
            AuditAction.LOGIN if success else AuditAction.LOGIN_FAILED,
            ResourceType.SESSION,
            resource_id=user.id if user else None,
            user=user,
            details=details,
            request=request,
        )

    async def list_logs(
        self,
        page: int = 1,
        page_size: int = 50,
        action: str | None = None,
        resource_type: str | None = None,
        user_id: UUID | None = None,
    ) -> AuditLogListResponse:
        """Paginated audit trail, newest first."""
        entries, total = await self.audit_repo.page(
            offset=(page - 1) * page_size,
            limit=page_size,
            action=action,
            resource_type=resource_type,
            user_id=user_id,
        )
        return AuditLogListResponse(
            items=[AuditLogResponse.model_validate(entry) for entry in entries],
            total=total,
            page=page,
            page_size=page_size,
        )
