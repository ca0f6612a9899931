"""License type repository."""

from sqlalchemy import func, select

from onboarding_api.models.orm.license_type import LicenseTypeORM
from onboarding_api.repositories.base import BaseRepository


class LicenseTypeRepository(BaseRepository[LicenseTypeORM]):
    """Repository for the license type catalog."""

    model = LicenseTypeORM

    async def list_ordered(self) -> list[LicenseTypeORM]:
        """All license types ordered by name."""
        result = await self.session.execute(select(LicenseTypeORM).order_by(LicenseTypeORM.name))
        return list(result.scalars().all())

    async def get_by_name(self, name: str) -> LicenseTypeORM | None:
        """Case-insensitive lookup by name."""
        result = await self.session.execute(
            select(LicenseTypeORM).where(func.lower(LicenseTypeORM.name) == name.lower())
        )
        return result.scalar_one_or_none()

    async def get_names(self) -> set[str]:
        """Names of all configured license types."""
        result = await self.session.execute(select(LicenseTypeORM.name))
        return {row[0] for row in result.all()}
