"""Microsoft Graph mail router (license requests, test and ad-hoc e-mail)."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request

from onboarding_api.dependencies import get_mail_service
from onboarding_api.models.domain.app_user import AppUser
from onboarding_api.models.dto.directory import ConnectionTestResponse
from onboarding_api.models.dto.messaging import (
    EmailPreviewRequest,
    EmailPreviewResponse,
    GraphTestRequest,
    LicenseRequestEmail,
    MessagingResponse,
    SendEmailRequest,
    TestEmailRequest,
)
from onboarding_api.security.auth import get_current_user, require_admin
from onboarding_api.security.rate_limit import INTEGRATION_TEST_LIMIT, MESSAGING_LIMIT, limiter
from onboarding_api.services.mail_service import MailService

router = APIRouter()


@router.post("/test-connection", response_model=ConnectionTestResponse)
@limiter.limit(INTEGRATION_TEST_LIMIT)
async def test_connection(
    request: Request,
    current_user: Annotated[AppUser, Depends(require_admin)],
    mail_service: Annotated[MailService, Depends(get_mail_service)],
    body: GraphTestRequest | None = None,
) -> ConnectionTestResponse:
    """Request a token and read one user with the submitted or stored credentials."""
    return await mail_service.test_connection(body, current_user, request)


@router.post("/email-template-preview", response_model=EmailPreviewResponse)
async def email_template_preview(
    body: EmailPreviewRequest,
    current_user: Annotated[AppUser, Depends(get_current_user)],
    mail_service: Annotated[MailService, Depends(get_mail_service)],
) -> EmailPreviewResponse:
    """Render the license request e-mail without sending it."""
    return await mail_service.preview_license_request(body.hire_ids)


@router.post("/send-license-request", response_model=MessagingResponse)
@limiter.limit(MESSAGING_LIMIT)
async def send_license_request(
    request: Request,
    body: LicenseRequestEmail,
    current_user: Annotated[AppUser, Depends(get_current_user)],
    mail_service: Annotated[MailService, Depends(get_mail_service)],
) -> MessagingResponse:
    """Send the license request e-mail for the selected hires."""
    return await mail_service.send_license_request(body, current_user, request)


@router.post("/test-email", response_model=MessagingResponse)
@limiter.limit(MESSAGING_LIMIT)
async def send_test_email(
    request: Request,
    body: TestEmailRequest,
    current_user: Annotated[AppUser, Depends(require_admin)],
    mail_service: Annotated[MailService, Depends(get_mail_service)],
) -> MessagingResponse:
    """Send the fixed test message."""
    return await mail_service.send_test_email(body.recipient)


@router.post("/send", response_model=MessagingResponse)
@limiter.limit(MESSAGING_LIMIT)
async def send_email(
    request: Request,
    body: SendEmailRequest,
    current_user: Annotated[AppUser, Depends(get_current_user)],
    mail_service: Annotated[MailService, Depends(get_mail_service)],
) -> MessagingResponse:
    """Send an arbitrary message as the configured sender."""
    return await mail_service.send(body)
