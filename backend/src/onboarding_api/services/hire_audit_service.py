"""Per-hire audit trail."""

import logging
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from onboarding_api.models.domain.hire import AuditStatus
from onboarding_api.models.dto.audit import HireAuditLogCreate, HireAuditLogResponse
from onboarding_api.repositories.hire_audit_repository import HireAuditRepository
from onboarding_api.services.audit_service import redact
from onboarding_api.utils.validation import validate_dict_recursive

logger = logging.getLogger(__name__)


class HireAction:
    """Action types recorded against a hire."""

    HIRE_CREATED = "hire_created"
    HIRE_UPDATED = "hire_updated"
    HIRE_DELETED = "hire_deleted"
    AD_ACCOUNT_CREATED = "ad_account_created"
    AD_ACCOUNT_FAILED = "ad_account_failed"
    SYNC_DISTRIBUTION_GROUP = "sync_distribution_group"
    REMOVE_DISTRIBUTION_GROUP = "remove_distribution_group"
    WHATSAPP_SENT = "whatsapp_sent"
    LICENSE_REQUEST_SENT = "license_request_sent"
    SRF_UPLOADED = "srf_uploaded"
    SRF_DELETED = "srf_deleted"


class HireAuditService:
    """Appends and reads hire audit entries. Secrets in details are masked."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.repo = HireAuditRepository(session)

    async def record(
        self,
        hire_id: UUID,
        action_type: str,
        status: AuditStatus,
        message: str,
        performed_by: str = "System",
        details: dict[str, Any] | None = None,
    ) -> HireAuditLogResponse:
        """Append an entry in the current transaction."""
        entry = await self.repo.append(
            hire_id=hire_id,
            action_type=action_type,
            status=status.value,
            message=message,
            performed_by=performed_by,
            details=redact(details),
        )
        logger.debug("Hire audit: %s %s %s", hire_id, action_type, status.value)
        return HireAuditLogResponse.model_validate(entry)

    async def record_client_entry(
        self, hire_id: UUID, data: HireAuditLogCreate, performed_by: str
    ) -> HireAuditLogResponse:
        """Append an entry reported by a client flow and commit it.

        Raises:
            ValueError: If ``details`` is too large or deeply nested
        """
        if data.details is not None:
            validate_dict_recursive(data.details)
        entry = await self.record(
            hire_id=hire_id,
            action_type=data.action_type,
            status=data.status,
            message=data.message,
            performed_by=performed_by,
            details=data.details,
        )
        await self.session.commit()
        return entry

    async def list_for_hire(self, hire_id: UUID) -> list[HireAuditLogResponse]:
        """Entries for a hire, newest first."""
        entries = await self.repo.list_for_hire(hire_id)
        return [HireAuditLogResponse.model_validate(e) for e in entries]
