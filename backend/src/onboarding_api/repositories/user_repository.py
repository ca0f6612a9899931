"""Application user repository."""

from sqlalchemy import func, select

from onboarding_api.models.orm.app_user import AppUserORM
from onboarding_api.repositories.base import BaseRepository


class UserRepository(BaseRepository[AppUserORM]):
    """Repository for application users."""

    model = AppUserORM

    async def get_by_username(self, username: str) -> AppUserORM | None:
        """Case-insensitive lookup by username.

        Args:
            username: Username

        Returns:
            AppUserORM or None if not found
        """
        result = await self.session.execute(
            select(AppUserORM).where(func.lower(AppUserORM.username) == username.lower())
        )
        return result.scalar_one_or_none()

    async def list_ordered(self) -> list[AppUserORM]:
        """All users, newest first."""
        result = await self.session.execute(
            select(AppUserORM).order_by(AppUserORM.created_at.desc())
        )
        return list(result.scalars().all())
