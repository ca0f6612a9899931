"""Application user ORM model."""

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column

from onboarding_api.models.orm.base import Base, TimestampMixin, UUIDMixin


class AppUserORM(Base, UUIDMixin, TimestampMixin):
    """User who can sign in to the admin tool."""

    __tablename__ = "app_users"

    username: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="support")
    approved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
