"""Mail service: license-request and ad-hoc e-mail through Microsoft Graph."""

import base64
import binascii
import logging
from collections.abc import Callable, Sequence
from datetime import date
from html import escape as html_escape
from typing import Any
from uuid import UUID

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from onboarding_api.config import get_settings
from onboarding_api.exceptions import (
    GraphError,
    HireNotFoundError,
    IntegrationNotEnabledError,
    ValidationError,
)
from onboarding_api.models.domain.app_user import AppUser
from onboarding_api.models.domain.hire import AuditStatus
from onboarding_api.models.dto.directory import ConnectionTestResponse
from onboarding_api.models.dto.messaging import (
    EmailAttachment,
    EmailPreviewResponse,
    GraphTestRequest,
    LicenseRequestEmail,
    MessagingResponse,
    SendEmailRequest,
)
from onboarding_api.models.dto.settings import MASKED_SECRET, MicrosoftGraphSettings
from onboarding_api.models.orm.hire import HireORM
from onboarding_api.providers.microsoft_graph import MicrosoftGraphProvider
from onboarding_api.repositories.hire_repository import HireRepository
from onboarding_api.services.audit_service import AuditAction, AuditService, ResourceType
from onboarding_api.services.hire_audit_service import HireAction, HireAuditService
from onboarding_api.services.settings_service import SettingsKey, SettingsService
from onboarding_api.services.srf_document_service import PDF_MIME_TYPE, SrfDocumentService
from onboarding_api.utils.secure_logging import log_warning

logger = logging.getLogger(__name__)

GraphFactory = Callable[[MicrosoftGraphSettings], MicrosoftGraphProvider]

NOT_CONFIGURED_MESSAGE = "Microsoft Graph is not configured or enabled"
NO_SENDER_MESSAGE = "No sender email configured for Microsoft Graph"
NOT_SPECIFIED = "Not specified"

TEST_SUBJECT = "Test Email from IT Administration System"
TEST_BODY = (
    "This is a test email to verify Microsoft Graph email functionality is working correctly.\n\n"
    "Best regards,\n"
    "IT Administration System"
)

_CELL = 'style="padding: 8px; border: 1px solid #ddd;"'
_HEADER_CELL = 'style="padding: 8px; text-align: left; border: 1px solid #ddd; background-color: #f2f2f2;"'


def license_request_subject(count: int) -> str:
    """``License Request for N New Hire(s)``."""
    return f"License Request for {count} New Hire{'s' if count != 1 else ''}"


def format_join_date(value: date | None) -> str:
    """Join date as ``dd MMM yyyy`` or ``N/A``."""
    return value.strftime("%d %b %Y") if value else "N/A"


def compose_license_request(hires: Sequence[Any]) -> EmailPreviewResponse:
    """Subject, plain-text body and HTML table for a license request."""
    lines = [
        "Dear License Administrator,",
        "",
        "Please process the following Microsoft 365 license requests for new employees:",
        "",
    ]
    rows = []
    for index, hire in enumerate(hires, start=1):
        lines.extend(
            [
                f"{index}. {hire.name}",
                f"   Department: {hire.department}",
                f"   Job Title: {hire.title}",
                f"   Email: {hire.email}",
                f"   Requested License: {hire.microsoft_365_license}",
                "",
            ]
        )
        cells = [
            hire.name,
            hire.title,
            hire.microsoft_365_license or NOT_SPECIFIED,
            format_join_date(hire.on_site_date),
        ]
        rows.append("<tr>" + "".join(f"<td {_CELL}>{html_escape(str(c or ''))}</td>" for c in cells) + "</tr>")
    lines.extend(
        [
            "Please assign the appropriate licenses and confirm once completed.",
            "",
            "Best regards,",
            "IT Administration System",
        ]
    )

    headers = "".join(f"<th {_HEADER_CELL}>{h}</th>" for h in ("Name", "Title", "License Type", "Join Date"))
    html = (
        "<p>Dear License Administrator,</p>"
        "<p>Please assign Microsoft 365 licenses for the following new hires. "
        "The SRF documents are attached.</p>"
        '<table style="border-collapse: collapse; width: 100%;">'
        f"<thead><tr>{headers}</tr></thead>"
        f"<tbody>{''.join(rows)}</tbody>"
        "</table>"
        "<p>Best regards,<br>IT Administration System</p>"
    )
    return EmailPreviewResponse(subject=license_request_subject(len(hires)), body="\n".join(lines), html=html)


def parse_recipients(value: str | Sequence[str] | None) -> list[str]:
    """Recipients from a comma-separated string or a list, blanks dropped."""
    if not value:
        return []
    items = value.split(",") if isinstance(value, str) else value
    return [item.strip() for item in items if item and item.strip()]


def _graph_recipients(addresses: list[str]) -> list[dict[str, Any]]:
    return [{"emailAddress": {"address": address}} for address in addresses]


def _file_attachment(name: str, content_type: str, content: bytes) -> dict[str, Any]:
    return {
        "@odata.type": "#microsoft.graph.fileAttachment",
        "name": name,
        "contentType": content_type,
        "contentBytes": base64.b64encode(content).decode("ascii"),
    }


def default_graph(settings: MicrosoftGraphSettings) -> MicrosoftGraphProvider:
    """Graph provider with the configured HTTP timeout."""
    return MicrosoftGraphProvider(settings, timeout=get_settings().http_timeout_seconds)


class MailService:
    """Sends e-mail as the configured Graph sender mailbox."""

    def __init__(self, session: AsyncSession, graph_factory: GraphFactory | None = None) -> None:
        self.session = session
        self.graph_factory = graph_factory or default_graph
        self.hire_repo = HireRepository(session)
        self.settings_service = SettingsService(session)
        self.srf_service = SrfDocumentService(session)
        self.hire_audit = HireAuditService(session)
        self.audit_service = AuditService(session)

    async def _sending_settings(self) -> MicrosoftGraphSettings:
        settings = await self.settings_service.get_microsoft_graph()
        if not settings.enabled:
            raise IntegrationNotEnabledError(NOT_CONFIGURED_MESSAGE)
        if not settings.sender_email:
            raise ValidationError(NO_SENDER_MESSAGE)
        return settings

    async def _get_hires(self, hire_ids: list[UUID]) -> list[HireORM]:
        hires = await self.hire_repo.get_by_ids(hire_ids)
        if not hires:
            raise HireNotFoundError()
        return hires

    async def preview_license_request(self, hire_ids: list[UUID]) -> EmailPreviewResponse:
        """Rendered license request without sending it."""
        return compose_license_request(await self._get_hires(hire_ids))

    async def send_license_request(
        self,
        data: LicenseRequestEmail,
        user: AppUser | None = None,
        request: Request | None = None,
    ) -> MessagingResponse:
        """Send the license request, attaching SRF documents when asked.

        Every included hire gets a ``license_request_sent`` audit entry,
        SUCCESS or ERROR.
        """
        settings = await self._sending_settings()
        recipient = (data.recipient or settings.license_request_recipient or "").strip()
        if not recipient:
            raise ValidationError("Recipient email is required")

        hires = await self._get_hires(data.hire_ids)
        content = compose_license_request(hires)

        attachments = []
        if data.attach_srf:
            for hire in hires:
                document = await self.srf_service.read_document(hire.id)
                if document is not None:
                    payload, name = document
                    attachments.append(_file_attachment(name, PDF_MIME_TYPE, payload))

        message = {
            "subject": content.subject,
            "body": {"contentType": "HTML", "content": content.html},
            "toRecipients": _graph_recipients([recipient]),
            "attachments": attachments,
        }
        performed_by = user.username if user else "System"

        try:
            await self.graph_factory(settings).send_mail(settings.sender_email, message)
        except GraphError as e:
            log_warning(logger, "License request e-mail failed", e)
            for hire in hires:
                await self.hire_audit.record(
                    hire_id=hire.id,
                    action_type=HireAction.LICENSE_REQUEST_SENT,
                    status=AuditStatus.ERROR,
                    message=f"License request e-mail failed: {e.message}",
                    performed_by=performed_by,
                    details={"recipient": recipient},
                )
            await self.session.commit()
            raise

        for hire in hires:
            await self.hire_audit.record(
                hire_id=hire.id,
                action_type=HireAction.LICENSE_REQUEST_SENT,
                status=AuditStatus.SUCCESS,
                message=f"License request e-mail sent to {recipient}",
                performed_by=performed_by,
                details={"recipient": recipient, "attachments": len(attachments)},
            )
        await self.session.commit()

        return MessagingResponse(
            success=True,
            message=f"License request email sent successfully to {recipient}",
            sent_count=1,
        )

    async def send_test_email(self, recipient: str) -> MessagingResponse:
        """Send the fixed test message."""
        settings = await self._sending_settings()
        message = {
            "subject": TEST_SUBJECT,
            "body": {"contentType": "Text", "content": TEST_BODY},
            "toRecipients": _graph_recipients([recipient.strip()]),
        }
        await self.graph_factory(settings).send_mail(settings.sender_email, message)
        return MessagingResponse(success=True, message=f"Test email sent successfully to {recipient}", sent_count=1)

    async def send(self, data: SendEmailRequest) -> MessagingResponse:
        """Send an arbitrary message with optional cc, bcc and attachments."""
        settings = await self._sending_settings()
        to = parse_recipients(data.to)
        if not to:
            raise ValidationError("At least one recipient is required")

        message: dict[str, Any] = {
            "subject": data.subject,
            "body": {"contentType": "HTML" if data.is_html else "Text", "content": data.body},
            "toRecipients": _graph_recipients(to),
        }
        cc = parse_recipients(data.cc)
        bcc = parse_recipients(data.bcc)
        if cc:
            message["ccRecipients"] = _graph_recipients(cc)
        if bcc:
            message["bccRecipients"] = _graph_recipients(bcc)
        if data.attachments:
            message["attachments"] = [self._decode_attachment(a) for a in data.attachments]

        await self.graph_factory(settings).send_mail(settings.sender_email, message)
        return MessagingResponse(
            success=True,
            message=f"Email sent successfully to {len(to)} recipient(s)",
            sent_count=len(to) + len(cc) + len(bcc),
        )

    @staticmethod
    def _decode_attachment(attachment: EmailAttachment) -> dict[str, Any]:
        try:
            content = base64.b64decode(attachment.content_base64, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ValidationError(f"Invalid attachment encoding: {attachment.name}") from e
        return _file_attachment(attachment.name, attachment.content_type, content)

    async def test_connection(
        self,
        candidate: GraphTestRequest | None = None,
        user: AppUser | None = None,
        request: Request | None = None,
    ) -> ConnectionTestResponse:
        """Request a token and read one user with supplied or stored credentials."""
        stored = await self.settings_service.get_microsoft_graph()
        overrides: dict[str, Any] = {}
        if candidate is not None:
            for field, value in candidate.model_dump(exclude_none=True).items():
                if value and value != MASKED_SECRET:
                    overrides[field] = value
        settings = stored.model_copy(update=overrides)

        try:
            message = await self.graph_factory(settings).test_connection()
            result = ConnectionTestResponse(success=True, message=message)
            if not overrides:
                await self.settings_service.record_connection_test(SettingsKey.MICROSOFT_GRAPH)
        except GraphError as e:
            log_warning(logger, "Microsoft Graph connection test failed", e)
            result = ConnectionTestResponse(success=False, message=e.message)

        await self.audit_service.log(
            action=AuditAction.CONNECTION_TEST,
            resource_type=ResourceType.SETTING,
            resource_id=SettingsKey.MICROSOFT_GRAPH,
            user=user,
            request=request,
            details={"success": result.success},
        )
        await self.session.commit()
        return result
