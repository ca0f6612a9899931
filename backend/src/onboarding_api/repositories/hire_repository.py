"""Hire repository."""

from uuid import UUID

from sqlalchemy import distinct, func, or_, select

from onboarding_api.models.orm.hire import HireORM
from onboarding_api.repositories.base import BaseRepository
from onboarding_api.utils.validation import escape_like_wildcards


class HireRepository(BaseRepository[HireORM]):
    """Repository for hire records."""

    model = HireORM

    async def list_hires(
        self,
        search: str | None = None,
        department: str | None = None,
        status: str | None = None,
    ) -> list[HireORM]:
        """List hires, newest first.

        Args:
            search: Case-insensitive match on name, email or title
            department: Exact department filter
            status: Exact account creation status filter

        Returns:
            List of hires
        """
        query = select(HireORM)

        if search:
            term = f"%{escape_like_wildcards(search.lower())}%"
            query = query.where(
                or_(
                    func.lower(HireORM.name).like(term, escape="\\"),
                    func.lower(HireORM.email).like(term, escape="\\"),
                    func.lower(HireORM.title).like(term, escape="\\"),
                )
            )
        if department:
            query = query.where(HireORM.department == department)
        if status:
            query = query.where(HireORM.account_creation_status == status)

        query = query.order_by(HireORM.created_at.desc())
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get_by_ids(self, ids: list[UUID]) -> list[HireORM]:
        """Get hires by IDs, preserving the requested order.

        Args:
            ids: Hire UUIDs

        Returns:
            Hires that exist, in the order given
        """
        if not ids:
            return []
        result = await self.session.execute(select(HireORM).where(HireORM.id.in_(ids)))
        by_id = {hire.id: hire for hire in result.scalars().all()}
        return [by_id[i] for i in ids if i in by_id]

    async def departments_in_use(self, names: list[str]) -> list[str]:
        """Return which of the given department names are referenced by hires."""
        if not names:
            return []
        result = await self.session.execute(
            select(distinct(HireORM.department)).where(HireORM.department.in_(names))
        )
        return sorted(row[0] for row in result.all())

    async def count_by_license(self, license_name: str) -> int:
        """Count hires assigned a license type name."""
        result = await self.session.execute(
            select(func.count())
            .select_from(HireORM)
            .where(HireORM.microsoft_365_license == license_name)
        )
        return result.scalar_one()

    async def rename_department(self, old_name: str, new_name: str) -> None:
        """Follow a department rename on existing hires."""
        result = await self.session.execute(select(HireORM).where(HireORM.department == old_name))
        for hire in result.scalars().all():
            hire.department = new_name
        await self.session.flush()

    async def rename_license(self, old_name: str, new_name: str) -> None:
        """Follow a license type rename on existing hires."""
        result = await self.session.execute(
            select(HireORM).where(HireORM.microsoft_365_license == old_name)
        )
        for hire in result.scalars().all():
            hire.microsoft_365_license = new_name
        await self.session.flush()
