"""Directory service: Active Directory accounts for hires."""

import logging
from collections.abc import Callable
from uuid import UUID

from fastapi import Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from onboarding_api.config import get_settings
from onboarding_api.exceptions import (
    DirectoryBindError,
    DirectoryError,
    HireNotFoundError,
    IntegrationNotEnabledError,
    ValidationError,
)
from onboarding_api.models.domain.app_user import AppUser
from onboarding_api.models.domain.hire import ACTIVE_ACCOUNT_STATUS, AuditStatus
from onboarding_api.models.dto.directory import (
    AccountSpec,
    ConnectionTestResponse,
    CreateAccountResponse,
    DirectorySearchResponse,
    DirectoryUser,
)
from onboarding_api.models.dto.hire import BulkOperationResponse
from onboarding_api.models.dto.settings import MASKED_SECRET, ActiveDirectorySettings
from onboarding_api.models.orm.hire import HireORM
from onboarding_api.providers.active_directory import ActiveDirectoryProvider
from onboarding_api.repositories.hire_repository import HireRepository
from onboarding_api.services.audit_service import AuditAction, AuditService, ResourceType
from onboarding_api.services.cache_service import get_cache_service
from onboarding_api.services.hire_audit_service import HireAction, HireAuditService
from onboarding_api.services.hire_service import ITEM_NOT_FOUND, ITEM_OK, bulk_response
from onboarding_api.services.settings_service import SettingsKey, SettingsService
from onboarding_api.utils.bulk import run_bounded
from onboarding_api.utils.directory_naming import build_account_spec
from onboarding_api.utils.secure_logging import log_error, log_warning

logger = logging.getLogger(__name__)

ProviderFactory = Callable[[ActiveDirectorySettings], ActiveDirectoryProvider]

NOT_ENABLED_MESSAGE = "Active Directory integration is not enabled"
DB_UPDATE_WARNING = "AD account created but database update failed"


def default_provider(settings: ActiveDirectorySettings) -> ActiveDirectoryProvider:
    """Provider with the configured LDAP timeouts."""
    app_settings = get_settings()
    return ActiveDirectoryProvider(
        settings,
        connect_timeout=app_settings.ldap_connect_timeout,
        receive_timeout=app_settings.ldap_receive_timeout,
    )


class DirectoryService:
    """Creates and searches directory accounts.

    The directory entry is never rolled back: when the local status update
    fails after a successful create, the result still reports success with a
    warning.
    """

    def __init__(
        self,
        session: AsyncSession,
        provider_factory: ProviderFactory | None = None,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
    ) -> None:
        self.session = session
        self.provider_factory = provider_factory or default_provider
        self._session_factory = session_factory
        self.hire_repo = HireRepository(session)
        self.settings_service = SettingsService(session)
        self.hire_audit = HireAuditService(session)
        self.audit_service = AuditService(session)

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        if self._session_factory is None:
            from onboarding_api.database import async_session_maker

            self._session_factory = async_session_maker
        return self._session_factory

    async def _enabled_settings(self) -> ActiveDirectorySettings:
        settings = await self.settings_service.get_active_directory()
        if not settings.enabled:
            raise IntegrationNotEnabledError(NOT_ENABLED_MESSAGE)
        return settings

    async def _get_hire(self, hire_id: UUID) -> HireORM:
        hire = await self.hire_repo.get_by_id(hire_id)
        if hire is None:
            raise HireNotFoundError(str(hire_id))
        return hire

    async def test_connection(
        self,
        candidate: ActiveDirectorySettings | None = None,
        user: AppUser | None = None,
        request: Request | None = None,
    ) -> ConnectionTestResponse:
        """Bind and read the base DN with unsaved or stored settings.

        A masked or empty password in ``candidate`` falls back to the stored one.
        """
        stored = await self.settings_service.get_active_directory()
        settings = stored
        if candidate is not None:
            password = candidate.password
            if not password or password == MASKED_SECRET:
                password = stored.password
            settings = candidate.model_copy(update={"password": password})

        try:
            message = await self.provider_factory(settings).test_connection()
            result = ConnectionTestResponse(success=True, message=message)
        except DirectoryBindError as e:
            result = ConnectionTestResponse(success=False, message=e.message, error_kind=e.kind)
        except DirectoryError as e:
            result = ConnectionTestResponse(success=False, message=e.message)

        await self.audit_service.log(
            action=AuditAction.CONNECTION_TEST,
            resource_type=ResourceType.SETTING,
            resource_id=SettingsKey.ACTIVE_DIRECTORY,
            user=user,
            request=request,
            details={"success": result.success, "error_kind": result.error_kind},
        )
        await self.session.commit()
        return result

    async def preview_account(self, hire_id: UUID) -> AccountSpec:
        """Account the directory would receive, without contacting it."""
        hire = await self._get_hire(hire_id)
        return build_account_spec(hire, await self.settings_service.get_active_directory())

    async def create_account(
        self,
        hire_id: UUID,
        password_override: str | None = None,
        user: AppUser | None = None,
        request: Request | None = None,
    ) -> CreateAccountResponse:
        """Create the directory account of a hire.

        Raises:
            IntegrationNotEnabledError: If Active Directory is disabled
            HireNotFoundError: If no hire has this id
            ValidationError: If the password or naming inputs are missing
        """
        settings = await self._enabled_settings()
        hire = await self._get_hire(hire_id)
        performed_by = user.username if user else "System"

        password = password_override or hire.password
        if not password:
            raise ValidationError("Missing password for user account")

        spec = build_account_spec(hire, settings)
        if not spec.username or not (hire.name or "").strip():
            raise ValidationError("Missing required user parameters")

        try:
            dn, group_errors = await self.provider_factory(settings).create_account(spec, password)
        except DirectoryError as e:
            kind = getattr(e, "kind", None)
            log_warning(logger, f"Directory account creation failed for hire {hire_id}", e)
            await self.hire_audit.record(
                hire_id=hire_id,
                action_type=HireAction.AD_ACCOUNT_FAILED,
                status=AuditStatus.ERROR,
                message=e.message,
                performed_by=performed_by,
                details={"username": spec.username, "ou": spec.ou, "error_kind": kind},
            )
            await self.session.commit()
            return CreateAccountResponse(success=False, message=e.message, error_kind=kind)

        warning = None
        try:
            await self.hire_repo.update(
                hire_id, account_creation_status=ACTIVE_ACCOUNT_STATUS, username=spec.username
            )
            await self.hire_audit.record(
                hire_id=hire_id,
                action_type=HireAction.AD_ACCOUNT_CREATED,
                status=AuditStatus.SUCCESS if not group_errors else AuditStatus.WARNING,
                message=f"Active Directory account {spec.username} created",
                performed_by=performed_by,
                details={"dn": dn, "groups": spec.groups, "group_errors": group_errors},
            )
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            log_error(logger, DB_UPDATE_WARNING, e)
            warning = DB_UPDATE_WARNING

        await (await get_cache_service()).invalidate_hires()
        logger.info("Directory account created for hire %s", hire_id)
        return CreateAccountResponse(
            success=True,
            message="User account created successfully in Active Directory",
            warning=warning,
            distinguished_name=dn,
            group_errors=group_errors,
        )

    async def bulk_create_accounts(
        self,
        ids: list[UUID],
        user: AppUser | None = None,
        request: Request | None = None,
    ) -> BulkOperationResponse:
        """Create accounts for several hires with bounded concurrency."""
        await self._enabled_settings()

        async def create_one(hire_id: UUID) -> str:
            async with self.session_factory() as session:
                service = DirectoryService(session, provider_factory=self.provider_factory)
                try:
                    result = await service.create_account(hire_id, user=user, request=request)
                except HireNotFoundError:
                    return ITEM_NOT_FOUND
                if not result.success:
                    raise DirectoryError(result.message)
                return ITEM_OK

        outcomes = await run_bounded(list(dict.fromkeys(ids)), create_one, get_settings().bulk_concurrency)
        return bulk_response(outcomes)

    async def search_users(self, query: str, limit: int | None = None) -> DirectorySearchResponse:
        """Candidate users for a free-text query. Errors degrade to an empty list."""
        if not query or not query.strip():
            return DirectorySearchResponse(users=[])

        settings = await self.settings_service.get_active_directory()
        if not settings.enabled:
            return DirectorySearchResponse(users=[], error=NOT_ENABLED_MESSAGE)

        provider = self.provider_factory(settings)
        try:
            if limit is None:
                found = await provider.search_users(query)
            else:
                found = await provider.search_users(query, limit)
        except DirectoryError as e:
            log_warning(logger, "Directory search failed", e)
            return DirectorySearchResponse(users=[], error=e.message)
        except Exception as e:
            log_warning(logger, "Directory search failed", e)
            return DirectorySearchResponse(users=[], error="Directory search failed")

        return DirectorySearchResponse(users=[DirectoryUser(**u) for u in found])
