"""Hire audit log ORM model."""

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import DateTime, Index, String, Text, func
from sqlalchemy.dialects.postgresql import JSONB, UUID as PGUUID
from sqlalchemy.orm import Mapped, mapped_column

from onboarding_api.models.orm.base import Base, UUIDMixin


class HireAuditLogORM(Base, UUIDMixin):
    """Append-only log of actions taken against a hire.

    ``hire_id`` is not a foreign key: entries survive deletion of the hire.
    """

    __tablename__ = "hire_audit_logs"

    hire_id: Mapped[UUID] = mapped_column(PGUUID(as_uuid=True), nullable=False)
    action_type: Mapped[str] = mapped_column(String(100), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    details: Mapped[dict[str, Any] | None] = mapped_column(JSONB, nullable=True)
    performed_by: Mapped[str] = mapped_column(String(255), nullable=False, default="System")
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        Index("idx_hire_audit_logs_hire", "hire_id", "timestamp"),
    )
