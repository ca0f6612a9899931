"""Shared lookups and writes for id-keyed tables."""

from typing import Any, Generic, TypeVar
from uuid import UUID

from sqlalchemy import inspect, select
from sqlalchemy.ext.asyncio import AsyncSession

from onboarding_api.models.orm.base import Base

T = TypeVar("T", bound=Base)


class BaseRepository(Generic[T]):
    """Repository for a table with a UUID ``id`` primary key.

    Subclasses set ``model``. Writes only flush; committing is the caller's
    unit of work.
    """

    model: type[T]

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with database session."""
        self.session = session

    def _check_columns(self, fields: dict[str, Any]) -> None:
        """Reject field names that are not mapped columns of ``model``.

        Raises:
            ValueError: If a field is unknown
        """
        columns = set(inspect(self.model).columns.keys())
        unknown = sorted(set(fields) - columns)
        if unknown:
            raise ValueError(f"Unknown {self.model.__tablename__} fields: {', '.join(unknown)}")

    async def get_by_id(self, id: UUID) -> T | None:
        """Get a record by ID.

        Args:
            id: Record UUID

        Returns:
            Record or None if not found
        """
        result = await self.session.execute(select(self.model).where(self.model.id == id))
        return result.scalar_one_or_none()

    async def create(self, **fields: Any) -> T:
        """Insert a record and return it with server defaults loaded."""
        self._check_columns(fields)
        instance = self.model(**fields)
        self.session.add(instance)
        await self.session.flush()
        await self.session.refresh(instance)
        return instance

    async def update(self, id: UUID, **fields: Any) -> T | None:
        """Apply ``fields`` to a record.

        Returns:
            Updated record or None if not found

        Raises:
            ValueError: If a field is not a column of the table
        """
        self._check_columns(fields)
        instance = await self.get_by_id(id)
        if instance is None:
            return None

        for key, value in fields.items():
            setattr(instance, key, value)

        await self.session.flush()
        await self.session.refresh(instance)
        return instance

    async def delete(self, id: UUID) -> bool:
        """Delete a record by ID.

        Returns:
            True if deleted, False if not found
        """
        instance = await self.get_by_id(id)
        if instance is None:
            return False

        await self.session.delete(instance)
        await self.session.flush()
        return True
