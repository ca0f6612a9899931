"""WhatsApp messages to hires through the send gateway."""

import logging
from collections.abc import Callable
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from onboarding_api.config import get_settings
from onboarding_api.exceptions import (
    HireNotFoundError,
    IntegrationNotEnabledError,
    ValidationError,
    WhatsAppGatewayError,
)
from onboarding_api.middleware.error_handler import sanitize_error_for_audit
from onboarding_api.models.domain.app_user import AppUser
from onboarding_api.models.domain.hire import AuditStatus
from onboarding_api.models.dto.directory import ConnectionTestResponse
from onboarding_api.models.dto.messaging import (
    WhatsAppComposeResponse,
    WhatsAppSendRequest,
    WhatsAppSendResponse,
)
from onboarding_api.models.dto.settings import WhatsAppSettings
from onboarding_api.models.orm.hire import HireORM
from onboarding_api.providers.whatsapp import WhatsAppProvider
from onboarding_api.repositories.hire_repository import HireRepository
from onboarding_api.services.hire_audit_service import HireAction, HireAuditService
from onboarding_api.services.settings_service import SettingsService
from onboarding_api.utils.secure_logging import log_warning
from onboarding_api.utils.templates import render_template
from onboarding_api.utils.validation import digits_only

logger = logging.getLogger(__name__)

ProviderFactory = Callable[[str], WhatsAppProvider]

NOT_CONFIGURED_MESSAGE = "WhatsApp API not configured"


def template_values(hire: HireORM) -> dict[str, Any]:
    """Placeholder values available to the message template."""
    return {
        "name": hire.name,
        "title": hire.title,
        "department": hire.department,
        "email": hire.email,
        "password": hire.password,
        "username": hire.username,
        "license": hire.microsoft_365_license,
        "on_site_date": hire.on_site_date.isoformat() if hire.on_site_date else None,
    }


def resolve_recipient(hire: HireORM, settings: WhatsAppSettings) -> str:
    """Hire's own number or the configured test number, digits only."""
    if settings.default_recipient == "testNumber":
        return digits_only(settings.test_number)
    return digits_only(hire.phone_number)


def default_provider(api_url: str) -> WhatsAppProvider:
    """Gateway provider with the configured HTTP timeout."""
    return WhatsAppProvider(api_url, timeout=get_settings().http_timeout_seconds)


class WhatsAppService:
    """Composes and relays WhatsApp messages. Sends are never retried."""

    def __init__(self, session: AsyncSession, provider_factory: ProviderFactory | None = None) -> None:
        self.session = session
        self.provider_factory = provider_factory or default_provider
        self.hire_repo = HireRepository(session)
        self.settings_service = SettingsService(session)
        self.hire_audit = HireAuditService(session)

    async def _get_hire(self, hire_id: UUID) -> HireORM:
        hire = await self.hire_repo.get_by_id(hire_id)
        if hire is None:
            raise HireNotFoundError(str(hire_id))
        return hire

    async def compose(self, hire_id: UUID) -> WhatsAppComposeResponse:
        """Render the stored template for a hire and pick the recipient."""
        hire = await self._get_hire(hire_id)
        settings = await self.settings_service.get_whatsapp()
        return WhatsAppComposeResponse(
            number=resolve_recipient(hire, settings),
            message=render_template(settings.default_message, template_values(hire)),
        )

    async def send(self, number: str | None, message: str | None) -> WhatsAppSendResponse:
        """Relay one message to ``<apiUrl>/send-message``.

        Raises:
            ValidationError: If number or message is missing
            IntegrationNotEnabledError: If no gateway URL is configured
            WhatsAppGatewayError: If the gateway fails
        """
        if not number or not message:
            raise ValidationError("Missing required parameters")

        settings = await self.settings_service.get_whatsapp()
        if not settings.api_url:
            raise IntegrationNotEnabledError(NOT_CONFIGURED_MESSAGE)

        payload = await self.provider_factory(settings.api_url).send_message(number, message)
        return WhatsAppSendResponse(success=True, message="Message sent successfully", response=payload)

    async def send_to_hire(
        self,
        hire_id: UUID,
        data: WhatsAppSendRequest | None = None,
        user: AppUser | None = None,
    ) -> WhatsAppSendResponse:
        """Compose for a hire and send, recording the outcome on the hire."""
        composed = await self.compose(hire_id)
        number = digits_only(data.number) if data and data.number else composed.number
        message = data.message if data and data.message else composed.message
        performed_by = user.username if user else "System"

        try:
            response = await self.send(number, message)
        except (ValidationError, IntegrationNotEnabledError, WhatsAppGatewayError) as e:
            log_warning(logger, f"WhatsApp send failed for hire {hire_id}", e)
            await self.hire_audit.record(
                hire_id=hire_id,
                action_type=HireAction.WHATSAPP_SENT,
                status=AuditStatus.ERROR,
                message=f"WhatsApp message failed: {e.message}",
                performed_by=performed_by,
                details={"number": number, **sanitize_error_for_audit(e)},
            )
            await self.session.commit()
            raise

        await self.hire_audit.record(
            hire_id=hire_id,
            action_type=HireAction.WHATSAPP_SENT,
            status=AuditStatus.SUCCESS,
            message=f"WhatsApp message sent to {number}",
            performed_by=performed_by,
            details={"number": number},
        )
        await self.session.commit()
        return response

    async def test_connection(self) -> ConnectionTestResponse:
        """Check that the configured gateway answers."""
        settings = await self.settings_service.get_whatsapp()
        if not settings.api_url:
            raise IntegrationNotEnabledError(NOT_CONFIGURED_MESSAGE)
        try:
            message = await self.provider_factory(settings.api_url).test_connection()
        except WhatsAppGatewayError as e:
            return ConnectionTestResponse(success=False, message=e.message)
        return ConnectionTestResponse(success=True, message=message)
