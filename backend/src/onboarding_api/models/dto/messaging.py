"""Messaging DTOs (WhatsApp, Microsoft Graph mail, distribution lists)."""

from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field


class WhatsAppComposeResponse(BaseModel):
    """Rendered message and resolved recipient for a hire."""

    number: str
    message: str


class WhatsAppSendRequest(BaseModel):
    """Raw send through the gateway."""

    number: str | None = Field(default=None, max_length=50)
    message: str | None = Field(default=None, max_length=5000)


class WhatsAppSendResponse(BaseModel):
    """Gateway send result."""

    success: bool
    message: str
    response: Any = None


class EmailAttachment(BaseModel):
    """Base64-encoded file attachment."""

    name: str = Field(min_length=1, max_length=255)
    content_type: str = Field(default="application/octet-stream", max_length=100)
    content_base64: str = Field(min_length=1)


class SendEmailRequest(BaseModel):
    """Generic mail send."""

    to: str | list[str]
    subject: str = Field(min_length=1, max_length=500)
    body: str = Field(min_length=1, max_length=200_000)
    is_html: bool = True
    cc: list[str] = Field(default_factory=list, max_length=50)
    bcc: list[str] = Field(default_factory=list, max_length=50)
    attachments: list[EmailAttachment] = Field(default_factory=list, max_length=10)


class LicenseRequestEmail(BaseModel):
    """License-request e-mail for a set of hires."""

    recipient: str | None = Field(default=None, max_length=255)
    hire_ids: list[UUID] = Field(min_length=1, max_length=200)
    attach_srf: bool = True


class EmailPreviewRequest(BaseModel):
    """Preview the license-request e-mail."""

    hire_ids: list[UUID] = Field(min_length=1, max_length=200)


class EmailPreviewResponse(BaseModel):
    """Rendered license-request e-mail."""

    subject: str
    body: str
    html: str


class TestEmailRequest(BaseModel):
    """Send a test message."""

    recipient: str = Field(min_length=3, max_length=255)


class GraphTestRequest(BaseModel):
    """Credentials to test; stored credentials are used for omitted fields."""

    client_id: str | None = Field(default=None, max_length=255)
    client_secret: str | None = Field(default=None, max_length=1024)
    tenant_id: str | None = Field(default=None, max_length=255)
    authority: str | None = Field(default=None, max_length=500)


class MessagingResponse(BaseModel):
    """Generic send result."""

    success: bool
    message: str
    sent_count: int = 0


class DistributionSyncRequest(BaseModel):
    """Sync a hire into distribution groups. Defaults to the hire's mailing lists."""

    hire_id: UUID
    mailing_lists: list[str] | None = Field(default=None, max_length=100)


class DistributionRemoveRequest(BaseModel):
    """Remove a hire from distribution groups."""

    hire_id: UUID
    mailing_lists: list[str] = Field(min_length=1, max_length=100)


class GroupResult(BaseModel):
    """Outcome for one distribution group."""

    distribution_group: str
    success: bool
    already_member: bool = False
    error: str | None = None


class DistributionSyncResponse(BaseModel):
    """Per-group breakdown of a sync or removal."""

    success: bool
    message: str
    results: list[GroupResult]
    errors: list[GroupResult]
    sync_status: str | None = None


class DistributionGroup(BaseModel):
    """Mail-enabled group."""

    id: str
    display_name: str
    mail: str | None = None


class UserGroupsResponse(BaseModel):
    """Groups a mailbox belongs to."""

    success: bool
    email: str
    distribution_groups: list[DistributionGroup]


class GroupListResponse(BaseModel):
    """All mail-enabled groups."""

    success: bool
    distribution_groups: list[DistributionGroup]


class LicenseReportRequest(BaseModel):
    """Hires to include in the license CSV report."""

    hire_ids: list[UUID] = Field(min_length=1, max_length=1000)
