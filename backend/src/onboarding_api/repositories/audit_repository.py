"""Administrative audit trail repository.

Entries are append-only, like the per-hire log.
"""

from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from onboarding_api.models.orm.audit_log import AuditLogORM


class AuditRepository:
    """Repository for administrative audit entries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with database session."""
        self.session = session

    async def append(self, action: str, resource_type: str, **context: Any) -> AuditLogORM:
        """Append an entry.

        ``context`` carries the optional columns: resource_id, user_id,
        changes, ip_address and user_agent.
        """
        entry = AuditLogORM(id=uuid4(), action=action, resource_type=resource_type, **context)
        self.session.add(entry)
        await self.session.flush()
        return entry

    @staticmethod
    def _filtered(
        query: Select,
        action: str | None,
        resource_type: str | None,
        user_id: UUID | None,
    ) -> Select:
        if action:
            query = query.where(AuditLogORM.action == action)
        if resource_type:
            query = query.where(AuditLogORM.resource_type == resource_type)
        if user_id:
            query = query.where(AuditLogORM.user_id == user_id)
        return query

    async def page(
        self,
        offset: int,
        limit: int,
        action: str | None = None,
        resource_type: str | None = None,
        user_id: UUID | None = None,
    ) -> tuple[list[AuditLogORM], int]:
        """One page of entries, newest first, with the filtered total."""
        rows = await self.session.execute(
            self._filtered(select(AuditLogORM), action, resource_type, user_id)
            .order_by(AuditLogORM.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        total = await self.session.scalar(
            self._filtered(
                select(func.count(AuditLogORM.id)), action, resource_type, user_id
            )
        )
        return list(rows.scalars().all()), total or 0
