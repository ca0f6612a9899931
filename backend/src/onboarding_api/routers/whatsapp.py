"""WhatsApp router: compose and send hire welcome messages."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Request

from onboarding_api.dependencies import get_whatsapp_service
from onboarding_api.models.domain.app_user import AppUser
from onboarding_api.models.dto.directory import ConnectionTestResponse
from onboarding_api.models.dto.messaging import (
    WhatsAppComposeResponse,
    WhatsAppSendRequest,
    WhatsAppSendResponse,
)
from onboarding_api.security.auth import get_current_user, require_admin
from onboarding_api.security.rate_limit import INTEGRATION_TEST_LIMIT, MESSAGING_LIMIT, limiter
from onboarding_api.services.whatsapp_service import WhatsAppService
from onboarding_api.utils.validation import digits_only

router = APIRouter()


@router.get("/compose/{hire_id}", response_model=WhatsAppComposeResponse)
async def compose(
    hire_id: UUID,
    current_user: Annotated[AppUser, Depends(get_current_user)],
    service: Annotated[WhatsAppService, Depends(get_whatsapp_service)],
) -> WhatsAppComposeResponse:
    """The rendered welcome message and its recipient."""
    return await service.compose(hire_id)


@router.post("/send", response_model=WhatsAppSendResponse)
@limiter.limit(MESSAGING_LIMIT)
async def send(
    request: Request,
    body: WhatsAppSendRequest,
    current_user: Annotated[AppUser, Depends(get_current_user)],
    service: Annotated[WhatsAppService, Depends(get_whatsapp_service)],
) -> WhatsAppSendResponse:
    """Relay a message through the gateway. Never retried."""
    return await service.send(digits_only(body.number), body.message)


@router.post("/send-to-hire/{hire_id}", response_model=WhatsAppSendResponse)
@limiter.limit(MESSAGING_LIMIT)
async def send_to_hire(
    request: Request,
    hire_id: UUID,
    current_user: Annotated[AppUser, Depends(get_current_user)],
    service: Annotated[WhatsAppService, Depends(get_whatsapp_service)],
    body: WhatsAppSendRequest | None = None,
) -> WhatsAppSendResponse:
    """Compose for a hire and send. Number and message may be overridden."""
    return await service.send_to_hire(hire_id, body, current_user)


@router.post("/test-connection", response_model=ConnectionTestResponse)
@limiter.limit(INTEGRATION_TEST_LIMIT)
async def test_connection(
    request: Request,
    current_user: Annotated[AppUser, Depends(require_admin)],
    service: Annotated[WhatsAppService, Depends(get_whatsapp_service)],
) -> ConnectionTestResponse:
    """Check that the configured gateway answers."""
    return await service.test_connection()
