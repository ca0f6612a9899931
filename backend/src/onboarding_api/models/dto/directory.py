"""Directory (Active Directory) DTOs."""

from uuid import UUID

from pydantic import BaseModel, Field

from onboarding_api.models.dto.settings import ActiveDirectorySettings


class ConnectionTestResponse(BaseModel):
    """Result of an integration connection test."""

    success: bool
    message: str
    error_kind: str | None = None


class DirectoryTestRequest(BaseModel):
    """Test unsaved settings, or the stored ones when omitted."""

    settings: ActiveDirectorySettings | None = None


class AccountSpec(BaseModel):
    """Directory account computed from a hire record."""

    username: str
    display_name: str
    first_name: str
    last_name: str
    user_principal_name: str
    email: str
    title: str
    department: str
    company: str
    office: str
    ou: str
    distinguished_name: str
    acl_group: str
    groups: list[str]


class CreateAccountRequest(BaseModel):
    """Optional manual password when the hire record carries none."""

    password: str | None = Field(default=None, min_length=1, max_length=255)


class CreateAccountResponse(BaseModel):
    """Outcome of creating a directory account."""

    success: bool
    message: str
    warning: str | None = None
    error_kind: str | None = None
    distinguished_name: str | None = None
    group_errors: list[str] = []


class BulkCreateAccountsRequest(BaseModel):
    """Create directory accounts for several hires."""

    ids: list[UUID] = Field(min_length=1, max_length=200)


class DirectoryUser(BaseModel):
    """Directory search candidate."""

    name: str
    username: str
    email: str
    title: str
    department: str
    dn: str


class DirectorySearchResponse(BaseModel):
    """Search result. Errors degrade to an empty list with a message."""

    users: list[DirectoryUser]
    error: str | None = None
