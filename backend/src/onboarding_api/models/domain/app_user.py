"""Application user domain model."""

from datetime import datetime
from enum import StrEnum
from uuid import UUID

from pydantic import BaseModel


class UserRole(StrEnum):
    """Roles an application user can hold."""

    ADMIN = "admin"
    SUPPORT = "support"


class AppUser(BaseModel):
    """Authenticated caller resolved from a token or the database."""

    id: UUID
    username: str
    role: UserRole = UserRole.SUPPORT
    approved: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None

    class Config:
        """Pydantic config."""

        from_attributes = True

    def is_admin(self) -> bool:
        """Check if user is an admin."""
        return self.role == UserRole.ADMIN
