"""Department repository."""

from sqlalchemy import func, select

from onboarding_api.models.orm.department import DepartmentORM
from onboarding_api.repositories.base import BaseRepository


class DepartmentRepository(BaseRepository[DepartmentORM]):
    """Repository for departments."""

    model = DepartmentORM

    async def list_ordered(self) -> list[DepartmentORM]:
        """All departments ordered by name."""
        result = await self.session.execute(select(DepartmentORM).order_by(DepartmentORM.name))
        return list(result.scalars().all())

    async def get_by_name(self, name: str) -> DepartmentORM | None:
        """Case-insensitive lookup by name."""
        result = await self.session.execute(
            select(DepartmentORM).where(func.lower(DepartmentORM.name) == name.lower())
        )
        return result.scalar_one_or_none()
