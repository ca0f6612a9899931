"""Hire audit log repository.

Entries are append-only: there is no update or delete.
"""

from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from onboarding_api.models.orm.hire_audit_log import HireAuditLogORM


class HireAuditRepository:
    """Repository for hire audit entries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with database session."""
        self.session = session

    async def append(
        self,
        hire_id: UUID,
        action_type: str,
        status: str,
        message: str,
        performed_by: str = "System",
        details: dict[str, Any] | None = None,
    ) -> HireAuditLogORM:
        """Append an audit entry.

        Args:
            hire_id: Hire the action was taken against
            action_type: Action identifier (e.g. ad_account_created)
            status: SUCCESS, ERROR, WARNING or INFO
            message: Human-readable outcome
            performed_by: Username of the caller
            details: Extra structured context

        Returns:
            Created entry
        """
        entry = HireAuditLogORM(
            id=uuid4(),
            hire_id=hire_id,
            action_type=action_type,
            status=status,
            message=message,
            performed_by=performed_by,
            details=details,
        )
        self.session.add(entry)
        await self.session.flush()
        await self.session.refresh(entry)
        return entry

    async def list_for_hire(self, hire_id: UUID, limit: int = 200) -> list[HireAuditLogORM]:
        """Get entries for a hire, newest first."""
        result = await self.session.execute(
            select(HireAuditLogORM)
            .where(HireAuditLogORM.hire_id == hire_id)
            .order_by(HireAuditLogORM.timestamp.desc())
            .limit(limit)
        )
        return list(result.scalars().all())
