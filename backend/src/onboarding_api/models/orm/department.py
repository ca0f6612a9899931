"""Department ORM model."""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from onboarding_api.models.orm.base import Base, TimestampMixin, UUIDMixin


class DepartmentORM(Base, UUIDMixin, TimestampMixin):
    """Department database model."""

    __tablename__ = "departments"

    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    code: Mapped[str] = mapped_column(String(50), nullable=False)
