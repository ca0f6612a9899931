"""Settings DTOs.

Each integration concern is stored as its own versioned document. Writes
carry the ``version`` the client last read.
"""

from datetime import datetime
from typing import Any, Generic, Literal, TypeVar
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from onboarding_api.models.domain.hire import DEFAULT_ACCOUNT_STATUSES

# Placeholder returned instead of stored secrets
MASKED_SECRET = "••••••••"

DEFAULT_WHATSAPP_MESSAGE = (
    "Welcome aboard to PT. Merdeka Tsingshan Indonesia!\n\n"
    "Here are your account details:\n"
    "Name: {{name}}\n"
    "Title: {{title}}\n"
    "Department: {{department}}\n"
    "Email: {{email}}\n"
    "Password: {{password}}\n\n"
    "Please change your password after the first login."
)

T = TypeVar("T")


class AccountStatusSettings(BaseModel):
    """Allowed account creation statuses."""

    statuses: list[str] = Field(default_factory=lambda: list(DEFAULT_ACCOUNT_STATUSES), min_length=1, max_length=50)

    @field_validator("statuses")
    @classmethod
    def validate_statuses(cls, v: list[str]) -> list[str]:
        """Strip, drop blanks and keep the first occurrence of each status."""
        cleaned: list[str] = []
        for status in v:
            status = status.strip()
            if not status:
                continue
            if len(status) > 50:
                raise ValueError("Each status must be max 50 characters")
            if status not in cleaned:
                cleaned.append(status)
        if not cleaned:
            raise ValueError("At least one status is required")
        return cleaned


class MailingListEntry(BaseModel):
    """One distribution list in the catalog."""

    id: str = Field(min_length=1, max_length=100)
    name: str = Field(min_length=1, max_length=255)
    email: str = Field(min_length=3, max_length=255)
    is_default: bool = False


class MailingListCatalog(BaseModel):
    """Structured mailing-list catalog."""

    mandatory: list[MailingListEntry] = Field(default_factory=list, max_length=200)
    optional: list[MailingListEntry] = Field(default_factory=list, max_length=200)
    role_based: list[MailingListEntry] = Field(default_factory=list, max_length=200)
    display_as_dropdown: bool = True


def default_mailing_lists() -> MailingListCatalog:
    """Catalog used before anything has been configured."""
    return MailingListCatalog(
        optional=[
            MailingListEntry(id="all-staff", name="All Staff", email="all-staff@merdekabattery.com", is_default=True),
            MailingListEntry(id="it-announcements", name="IT Announcements", email="it-announcements@merdekabattery.com"),
        ],
    )


class DirectoryOrganization(BaseModel):
    """Organization-specific naming inputs for directory accounts."""

    org_name: str = Field(default="Merdeka Tsingshan Indonesia", max_length=255)
    org_code: str = Field(default="MTI", max_length=20)
    display_suffix: str = Field(default="MTI", max_length=20)
    company: str = Field(default="PT. Merdeka Tsingshan Indonesia", max_length=255)
    office: str = Field(default="Morowali", max_length=255)
    email_domain: str = Field(default="merdekabattery.com", max_length=255)
    default_groups: list[str] = Field(default_factory=lambda: ["VPN-USERS"], max_length=20)


class ActiveDirectorySettings(BaseModel):
    """Active Directory connection block."""

    enabled: bool = False
    server: str = Field(default="", max_length=255)
    username: str = Field(default="", max_length=255)
    password: str | None = Field(default=None, max_length=255)
    domain: str = Field(default="", max_length=255)
    base_dn: str = Field(default="DC=mbma,DC=com", max_length=500)
    protocol: Literal["ldap", "ldaps"] = "ldap"
    auth_format: Literal["userPrincipalName", "dn"] = "userPrincipalName"
    organization: DirectoryOrganization = Field(default_factory=DirectoryOrganization)


class ExchangeOnlineSettings(BaseModel):
    """Exchange Online distribution-group sync block."""

    enabled: bool = False
    last_connection_test: datetime | None = None


class MicrosoftGraphSettings(BaseModel):
    """Microsoft Graph application credentials."""

    enabled: bool = False
    client_id: str = Field(default="", max_length=255)
    client_secret: str | None = Field(default=None, max_length=1024)
    tenant_id: str = Field(default="", max_length=255)
    authority: str = Field(default="", max_length=500)
    scope: list[str] = Field(default_factory=lambda: ["https://graph.microsoft.com/.default"], max_length=10)
    sender_email: str = Field(default="", max_length=255)
    license_request_recipient: str = Field(default="", max_length=255)
    last_connection_test: datetime | None = None


class WhatsAppSettings(BaseModel):
    """WhatsApp gateway block."""

    api_url: str = Field(default="", max_length=500)
    default_message: str = Field(default=DEFAULT_WHATSAPP_MESSAGE, max_length=5000)
    default_recipient: Literal["userNumber", "testNumber"] = "userNumber"
    test_number: str = Field(default="", max_length=50)


class HrisDatabaseSettings(BaseModel):
    """HRIS employee database (SQL Server) connection block."""

    enabled: bool = False
    server: str = Field(default="", max_length=255)
    port: str = Field(default="1433", pattern=r"^\d{1,5}$")
    database: str = Field(default="", max_length=255)
    username: str = Field(default="", max_length=255)
    password: str | None = Field(default=None, max_length=255)
    table_schema: str = Field(default="dbo", pattern=r"^[A-Za-z_][A-Za-z0-9_]{0,127}$")
    last_connection_test: datetime | None = None


class HrisScheduleSettings(BaseModel):
    """When the HRIS to directory sync runs on its own."""

    enabled: bool = False
    frequency: Literal["daily", "weekly", "monthly"] = "daily"
    last_run: datetime | None = None
    next_run: datetime | None = None


class VersionedUpdate(BaseModel, Generic[T]):
    """Write request carrying the version the client last read."""

    value: T
    version: int = Field(ge=0)


class VersionedSetting(BaseModel, Generic[T]):
    """Settings document with its concurrency token."""

    key: str
    value: T
    version: int
    updated_at: datetime | None = None


class MailingListsUpdate(BaseModel):
    """Mailing lists accept either a flat list or the structured catalog."""

    value: list[MailingListEntry] | MailingListCatalog
    version: int = Field(ge=0)


class AllSettingsResponse(BaseModel):
    """Every concern with its version."""

    settings: dict[str, VersionedSetting[Any]]


class DepartmentResponse(BaseModel):
    """Department response."""

    id: UUID
    name: str
    code: str

    class Config:
        """Pydantic config."""

        from_attributes = True


class DepartmentCreate(BaseModel):
    """Create department request."""

    name: str = Field(min_length=1, max_length=255)
    code: str = Field(min_length=1, max_length=50)


class DepartmentUpdate(BaseModel):
    """Update department request."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    code: str | None = Field(default=None, min_length=1, max_length=50)


class DepartmentItem(BaseModel):
    """Department entry in a wholesale replacement."""

    id: UUID | None = None
    name: str = Field(min_length=1, max_length=255)
    code: str = Field(min_length=1, max_length=50)


class DepartmentsReplace(BaseModel):
    """Replace the department list (add, update and delete in one call)."""

    departments: list[DepartmentItem] = Field(max_length=500)


class LicenseTypeResponse(BaseModel):
    """License type response."""

    id: UUID
    name: str
    description: str | None = None

    class Config:
        """Pydantic config."""

        from_attributes = True


class LicenseTypeCreate(BaseModel):
    """Create license type request."""

    name: str = Field(min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=1000)


class LicenseTypeUpdate(BaseModel):
    """Update license type request."""

    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=1000)
