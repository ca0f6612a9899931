"""License type ORM model."""

from datetime import datetime

from sqlalchemy import DateTime, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from onboarding_api.models.orm.base import Base, UUIDMixin


class LicenseTypeORM(Base, UUIDMixin):
    """Microsoft 365 license type catalog entry."""

    __tablename__ = "license_types"

    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
