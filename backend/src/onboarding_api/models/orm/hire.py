"""Hire ORM model."""

from datetime import date, datetime

from sqlalchemy import Boolean, Date, DateTime, Index, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from onboarding_api.models.orm.base import Base, TimestampMixin, UUIDMixin


class HireORM(Base, UUIDMixin, TimestampMixin):
    """New hire database model."""

    __tablename__ = "hires"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    department: Mapped[str] = mapped_column(String(255), nullable=False)
    phone_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    direct_report: Mapped[str | None] = mapped_column(String(255), nullable=True)
    on_site_date: Mapped[date] = mapped_column(Date, nullable=False)

    # Generated credentials for the provisioning hand-off
    username: Mapped[str | None] = mapped_column(String(20), nullable=True)
    password: Mapped[str | None] = mapped_column(String(255), nullable=True)

    account_creation_status: Mapped[str] = mapped_column(
        String(50), nullable=False, default="Pending"
    )
    laptop_ready: Mapped[str] = mapped_column(String(50), nullable=False, default="Pending")
    license_assigned: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    status_srf: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    microsoft_365_license: Mapped[str] = mapped_column(
        String(100), nullable=False, default="None"
    )

    mailing_list: Mapped[list[str]] = mapped_column(JSONB, nullable=False, default=list)
    distribution_list_sync_status: Mapped[str | None] = mapped_column(String(20), nullable=True)
    distribution_list_sync_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    srf_document_path: Mapped[str | None] = mapped_column(String(500), nullable=True)
    srf_document_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    srf_document_uploaded_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    ict_support_pic: Mapped[str | None] = mapped_column(String(255), nullable=True)
    remarks: Mapped[str | None] = mapped_column(Text, nullable=True)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("idx_hires_created_at", "created_at"),
        Index("idx_hires_email", "email"),
        Index("idx_hires_department", "department"),
    )
