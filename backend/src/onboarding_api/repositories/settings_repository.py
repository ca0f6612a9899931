"""Settings repository with optimistic concurrency."""

from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from onboarding_api.exceptions import SettingsVersionConflictError
from onboarding_api.models.orm.settings import SettingsORM


class SettingsRepository:
    """Repository for versioned application settings.

    A key that was never written reports version 0. Every successful write
    bumps the version by one.
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with database session."""
        self.session = session

    async def get_record(self, key: str) -> SettingsORM | None:
        """Get the stored settings row.

        Args:
            key: Setting key

        Returns:
            SettingsORM or None if not found
        """
        result = await self.session.execute(select(SettingsORM).where(SettingsORM.key == key))
        return result.scalar_one_or_none()

    async def get(self, key: str) -> Any | None:
        """Get a setting value by key."""
        setting = await self.get_record(key)
        return setting.value if setting else None

    async def set(self, key: str, value: Any, expected_version: int | None = None) -> SettingsORM:
        """Write a setting value.

        Args:
            key: Setting key
            value: New value (replaces the stored document)
            expected_version: Version the caller read; None skips the check

        Returns:
            Created or updated SettingsORM

        Raises:
            SettingsVersionConflictError: If the stored version moved on
        """
        existing = await self.get_record(key)
        current = existing.version if existing else 0

        if expected_version is not None and expected_version != current:
            raise SettingsVersionConflictError(key, expected_version, current)

        try:
            if existing:
                existing.value = value
                await self.session.flush()
                await self.session.refresh(existing)
                return existing

            setting = SettingsORM(key=key, value=value)
            self.session.add(setting)
            await self.session.flush()
            await self.session.refresh(setting)
            return setting
        except (StaleDataError, IntegrityError) as e:
            # Another writer committed between our read and flush
            raise SettingsVersionConflictError(
                key, expected_version if expected_version is not None else current, current + 1
            ) from e
