"""Hire DTOs."""

from datetime import date, datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator

from onboarding_api.models.domain.hire import LaptopStatus

MAX_USERNAME_LENGTH = 20
MAX_BULK_ITEMS = 500

# Columns that are NOT NULL on the hire table
NON_NULLABLE_FIELDS = (
    "name",
    "email",
    "title",
    "department",
    "on_site_date",
    "account_creation_status",
    "laptop_ready",
    "license_assigned",
    "status_srf",
    "microsoft_365_license",
    "mailing_list",
)


def required_text(value: str) -> str:
    """Strip ``value``, rejecting whitespace-only text."""
    value = value.strip()
    if not value:
        raise ValueError("Field is required")
    return value


class HireCreate(BaseModel):
    """DTO for creating a hire record."""

    name: str = Field(min_length=1, max_length=255)
    email: EmailStr
    title: str = Field(min_length=1, max_length=255)
    department: str = Field(min_length=1, max_length=255)
    on_site_date: date
    phone_number: str | None = Field(default=None, max_length=50)
    direct_report: str | None = Field(default=None, max_length=255)
    username: str | None = Field(default=None, max_length=MAX_USERNAME_LENGTH)
    password: str | None = Field(default=None, max_length=255)
    account_creation_status: str = Field(default="Pending", max_length=50)
    laptop_ready: LaptopStatus = LaptopStatus.PENDING
    license_assigned: bool = False
    status_srf: bool = False
    microsoft_365_license: str = Field(default="None", max_length=100)
    mailing_list: list[str] = Field(default_factory=list, max_length=100)
    ict_support_pic: str | None = Field(default=None, max_length=255)
    remarks: str | None = Field(default=None, max_length=5000)
    note: str | None = Field(default=None, max_length=5000)

    @field_validator("name", "title", "department")
    @classmethod
    def strip_required(cls, v: str) -> str:
        """Reject whitespace-only required text."""
        return required_text(v)


class HireUpdate(BaseModel):
    """DTO for a partial hire update. Only supplied fields are applied."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    email: EmailStr | None = None
    title: str | None = Field(default=None, min_length=1, max_length=255)
    department: str | None = Field(default=None, min_length=1, max_length=255)
    on_site_date: date | None = None
    phone_number: str | None = Field(default=None, max_length=50)
    direct_report: str | None = Field(default=None, max_length=255)
    username: str | None = Field(default=None, max_length=MAX_USERNAME_LENGTH)
    password: str | None = Field(default=None, max_length=255)
    account_creation_status: str | None = Field(default=None, max_length=50)
    laptop_ready: LaptopStatus | None = None
    license_assigned: bool | None = None
    status_srf: bool | None = None
    microsoft_365_license: str | None = Field(default=None, max_length=100)
    mailing_list: list[str] | None = Field(default=None, max_length=100)
    ict_support_pic: str | None = Field(default=None, max_length=255)
    remarks: str | None = Field(default=None, max_length=5000)
    note: str | None = Field(default=None, max_length=5000)

    @field_validator(*NON_NULLABLE_FIELDS)
    @classmethod
    def reject_null(cls, v: Any) -> Any:
        """Required columns may be omitted but never cleared."""
        if v is None:
            raise ValueError("Field cannot be null")
        return v

    @field_validator("name", "title", "department")
    @classmethod
    def strip_required(cls, v: str | None) -> str | None:
        return v if v is None else required_text(v)


class HireResponse(BaseModel):
    """Hire response DTO with the derived progress percentage."""

    id: UUID
    name: str
    email: str
    title: str
    department: str
    on_site_date: date
    phone_number: str | None = None
    direct_report: str | None = None
    username: str | None = None
    password: str | None = None
    account_creation_status: str
    laptop_ready: str
    license_assigned: bool
    status_srf: bool
    microsoft_365_license: str
    mailing_list: list[str] = []
    distribution_list_sync_status: str | None = None
    distribution_list_sync_date: datetime | None = None
    srf_document_name: str | None = None
    srf_document_uploaded_at: datetime | None = None
    ict_support_pic: str | None = None
    remarks: str | None = None
    note: str | None = None
    progress_percentage: int = 0
    created_at: datetime
    updated_at: datetime

    class Config:
        """Pydantic config."""

        from_attributes = True


class HireListResponse(BaseModel):
    """Hire list response DTO."""

    items: list[HireResponse]
    total: int


class BulkHireUpdate(BaseModel):
    """Apply the same field values to every selected hire."""

    ids: list[UUID] = Field(min_length=1, max_length=MAX_BULK_ITEMS)
    fields: HireUpdate


class BulkDeleteRequest(BaseModel):
    """Delete every selected hire."""

    ids: list[UUID] = Field(min_length=1, max_length=MAX_BULK_ITEMS)


class BulkItemResult(BaseModel):
    """Outcome of one item in a bulk operation."""

    id: UUID
    status: str  # ok, not_found, error
    message: str | None = None


class BulkOperationResponse(BaseModel):
    """Per-item breakdown of a bulk operation."""

    total: int
    succeeded: int
    failed: int
    results: list[BulkItemResult]


class DeleteResponse(BaseModel):
    """Single delete response."""

    deleted: int


class CredentialSuggestionRequest(BaseModel):
    """Input for the initial credential suggestion."""

    name: str = Field(min_length=1, max_length=255)
    email: str = Field(min_length=1, max_length=255)


class CredentialSuggestionResponse(BaseModel):
    """Suggested username and initial password (advisory)."""

    username: str
    password: str
