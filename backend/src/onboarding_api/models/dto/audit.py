"""Audit DTOs."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from onboarding_api.models.domain.hire import AuditStatus


class HireAuditLogResponse(BaseModel):
    """Hire audit entry response."""

    id: UUID
    hire_id: UUID
    action_type: str
    status: str
    message: str
    details: dict[str, Any] | None = None
    performed_by: str
    timestamp: datetime

    class Config:
        """Pydantic config."""

        from_attributes = True


class HireAuditLogCreate(BaseModel):
    """Client-reported hire audit entry."""

    action_type: str = Field(min_length=1, max_length=100, pattern=r"^[a-z][a-z0-9_]*$")
    status: AuditStatus = AuditStatus.INFO
    message: str = Field(min_length=1, max_length=2000)
    details: dict[str, Any] | None = Field(default=None, max_length=50)


class AuditLogResponse(BaseModel):
    """Administrative audit entry response."""

    id: UUID
    user_id: UUID | None = None
    action: str
    resource_type: str
    resource_id: str | None = None
    changes: dict[str, Any] | None = None
    ip_address: str | None = None
    created_at: datetime

    @field_validator("ip_address", mode="before")
    @classmethod
    def stringify_ip(cls, v: Any) -> str | None:
        """INET columns load as ipaddress objects."""
        return str(v) if v is not None else None

    class Config:
        """Pydantic config."""

        from_attributes = True


class AuditLogListResponse(BaseModel):
    """Paginated audit log response."""

    items: list[AuditLogResponse]
    total: int
    page: int
    page_size: int
