"""Hire service for the onboarding lifecycle of new hire records."""

import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any
from uuid import UUID

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from onboarding_api.config import get_settings
from onboarding_api.exceptions import HireNotFoundError, InvalidLicenseTypeError, ValidationError
from onboarding_api.models.domain.app_user import AppUser
from onboarding_api.models.domain.hire import NO_LICENSE, AuditStatus
from onboarding_api.models.dto.hire import (
    BulkDeleteRequest,
    BulkHireUpdate,
    BulkItemResult,
    BulkOperationResponse,
    CredentialSuggestionResponse,
    DeleteResponse,
    HireCreate,
    HireListResponse,
    HireResponse,
    HireUpdate,
)
from onboarding_api.models.orm.hire import HireORM
from onboarding_api.repositories.department_repository import DepartmentRepository
from onboarding_api.repositories.hire_repository import HireRepository
from onboarding_api.repositories.license_type_repository import LicenseTypeRepository
from onboarding_api.services.audit_service import AuditAction, AuditService, ResourceType
from onboarding_api.services.cache_service import get_cache_service
from onboarding_api.services.hire_audit_service import HireAction, HireAuditService
from onboarding_api.services.settings_service import SettingsService
from onboarding_api.services.srf_document_service import remove_stored_document
from onboarding_api.utils.bulk import ItemOutcome, run_bounded
from onboarding_api.utils.directory_naming import derive_username, suggest_initial_password
from onboarding_api.utils.progress import progress_percentage
from onboarding_api.utils.secure_logging import sanitize_exception_message

logger = logging.getLogger(__name__)

ITEM_OK = "ok"
ITEM_NOT_FOUND = "not_found"
ITEM_ERROR = "error"


def to_response(hire: HireORM) -> HireResponse:
    """Hire response with the derived progress percentage."""
    response = HireResponse.model_validate(hire)
    response.progress_percentage = progress_percentage(hire)
    return response


def bulk_response(outcomes: list[ItemOutcome[UUID, str]]) -> BulkOperationResponse:
    """Collapse per-item outcomes into the bulk response."""
    results = []
    for outcome in outcomes:
        if not outcome.ok:
            results.append(
                BulkItemResult(
                    id=outcome.item,
                    status=ITEM_ERROR,
                    message=sanitize_exception_message(outcome.error),
                )
            )
        elif outcome.value == ITEM_NOT_FOUND:
            results.append(BulkItemResult(id=outcome.item, status=ITEM_NOT_FOUND, message="Hire not found"))
        else:
            results.append(BulkItemResult(id=outcome.item, status=ITEM_OK))

    succeeded = sum(1 for r in results if r.status == ITEM_OK)
    return BulkOperationResponse(
        total=len(results),
        succeeded=succeeded,
        failed=len(results) - succeeded,
        results=results,
    )


class HireService:
    """Service for hire records.

    Bulk operations process each id in its own session so one failing item
    never rolls back the others.
    """

    def __init__(
        self,
        session: AsyncSession,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
    ) -> None:
        """Initialize service with database session.

        Args:
            session: Request-scoped session
            session_factory: Factory for per-item sessions in bulk operations
        """
        self.session = session
        self._session_factory = session_factory
        self.hire_repo = HireRepository(session)
        self.department_repo = DepartmentRepository(session)
        self.license_type_repo = LicenseTypeRepository(session)
        self.settings_service = SettingsService(session)
        self.hire_audit = HireAuditService(session)
        self.audit_service = AuditService(session)

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        if self._session_factory is None:
            from onboarding_api.database import async_session_maker

            self._session_factory = async_session_maker
        return self._session_factory

    async def _invalidate_cache(self) -> None:
        cache = await get_cache_service()
        await cache.invalidate_hires()

    async def _validate_fields(self, fields: dict[str, Any]) -> None:
        """Check license type and account status against the configured catalogs.

        Raises:
            InvalidLicenseTypeError: If the license type is not configured
            ValidationError: If the account status is not allowed
        """
        license_name = fields.get("microsoft_365_license")
        if license_name is not None and license_name != NO_LICENSE:
            if license_name not in await self.license_type_repo.get_names():
                raise InvalidLicenseTypeError(license_name)

        status = fields.get("account_creation_status")
        if status is not None and status not in await self.settings_service.get_account_statuses():
            raise ValidationError(f"Invalid account creation status: {status}", {"account_creation_status": status})

        department = fields.get("department")
        if department and await self.department_repo.get_by_name(department) is None:
            logger.warning("Hire department %r is not a configured department", department)

    async def list_hires(
        self,
        search: str | None = None,
        department: str | None = None,
        status: str | None = None,
    ) -> HireListResponse:
        """List hires newest first, served from cache when possible."""
        cache = await get_cache_service()
        filter_key = json.dumps({"search": search, "department": department, "status": status}, sort_keys=True)

        cached = await cache.get_hires(filter_key)
        if cached is not None:
            return HireListResponse.model_validate(cached)

        hires = await self.hire_repo.list_hires(search=search, department=department, status=status)
        response = HireListResponse(items=[to_response(h) for h in hires], total=len(hires))
        await cache.set_hires(filter_key, response)
        return response

    async def get_hire(self, hire_id: UUID) -> HireResponse:
        """Get a hire.

        Raises:
            HireNotFoundError: If no hire has this id
        """
        hire = await self.hire_repo.get_by_id(hire_id)
        if hire is None:
            raise HireNotFoundError(str(hire_id))
        return to_response(hire)

    async def create_hire(
        self,
        data: HireCreate,
        user: AppUser | None = None,
        request: Request | None = None,
    ) -> HireResponse:
        """Create a hire. The username is derived from the e-mail when absent."""
        fields = data.model_dump()
        fields["email"] = str(data.email)
        fields["username"] = data.username or derive_username(fields["email"])
        await self._validate_fields(fields)

        hire = await self.hire_repo.create(**fields)
        await self.hire_audit.record(
            hire_id=hire.id,
            action_type=HireAction.HIRE_CREATED,
            status=AuditStatus.SUCCESS,
            message=f"Hire record created for {hire.name}",
            performed_by=user.username if user else "System",
            details=data.model_dump(mode="json"),
        )
        await self.session.commit()
        await self._invalidate_cache()

        logger.info("Hire created: %s", hire.id)
        return to_response(hire)

    async def update_hire(
        self,
        hire_id: UUID,
        data: HireUpdate,
        user: AppUser | None = None,
        request: Request | None = None,
    ) -> HireResponse:
        """Apply only the supplied fields.

        Raises:
            HireNotFoundError: If no hire has this id
        """
        hire = await self.hire_repo.get_by_id(hire_id)
        if hire is None:
            raise HireNotFoundError(str(hire_id))

        updates = data.model_dump(exclude_unset=True)
        if not updates:
            return to_response(hire)
        if "email" in updates and updates["email"] is not None:
            updates["email"] = str(updates["email"])
        await self._validate_fields(updates)

        hire = await self.hire_repo.update(hire_id, **updates)
        await self.hire_audit.record(
            hire_id=hire_id,
            action_type=HireAction.HIRE_UPDATED,
            status=AuditStatus.SUCCESS,
            message=f"Hire record updated: {', '.join(sorted(updates))}",
            performed_by=user.username if user else "System",
            details={"changes": data.model_dump(mode="json", exclude_unset=True)},
        )
        await self.session.commit()
        await self._invalidate_cache()
        return to_response(hire)

    async def delete_hire(
        self,
        hire_id: UUID,
        user: AppUser | None = None,
        request: Request | None = None,
    ) -> DeleteResponse:
        """Hard-delete a hire. Its audit entries are kept.

        Raises:
            HireNotFoundError: If no hire has this id
        """
        hire = await self.hire_repo.get_by_id(hire_id)
        if hire is None:
            raise HireNotFoundError(str(hire_id))

        document = hire.srf_document_path
        name = hire.name
        await self.hire_repo.delete(hire_id)
        await self.hire_audit.record(
            hire_id=hire_id,
            action_type=HireAction.HIRE_DELETED,
            status=AuditStatus.INFO,
            message=f"Hire record deleted: {name}",
            performed_by=user.username if user else "System",
        )
        await self.session.commit()
        await self._invalidate_cache()

        remove_stored_document(document)
        return DeleteResponse(deleted=1)

    async def _run_bulk(
        self,
        ids: list[UUID],
        worker: Callable[[AsyncSession, UUID], Awaitable[str]],
    ) -> BulkOperationResponse:
        """Fan ``worker`` out over unique ids, one session per item."""

        async def run_item(hire_id: UUID) -> str:
            async with self.session_factory() as session:
                try:
                    outcome = await worker(session, hire_id)
                    await session.commit()
                    return outcome
                except Exception:
                    await session.rollback()
                    raise

        unique_ids = list(dict.fromkeys(ids))
        outcomes = await run_bounded(unique_ids, run_item, get_settings().bulk_concurrency)
        return bulk_response(outcomes)

    async def bulk_update(
        self,
        data: BulkHireUpdate,
        user: AppUser | None = None,
        request: Request | None = None,
    ) -> BulkOperationResponse:
        """Apply the same field values to every selected hire.

        Raises:
            ValidationError: If no fields were supplied or a value is invalid
        """
        fields = data.fields.model_dump(exclude_unset=True)
        if not fields:
            raise ValidationError("No fields to update")
        if "email" in fields and fields["email"] is not None:
            fields["email"] = str(fields["email"])
        await self._validate_fields(fields)

        performed_by = user.username if user else "System"
        change_log = data.fields.model_dump(mode="json", exclude_unset=True)

        async def update_one(session: AsyncSession, hire_id: UUID) -> str:
            repo = HireRepository(session)
            if await repo.update(hire_id, **fields) is None:
                return ITEM_NOT_FOUND
            await HireAuditService(session).record(
                hire_id=hire_id,
                action_type=HireAction.HIRE_UPDATED,
                status=AuditStatus.SUCCESS,
                message=f"Bulk update: {', '.join(sorted(fields))}",
                performed_by=performed_by,
                details={"changes": change_log},
            )
            return ITEM_OK

        response = await self._run_bulk(data.ids, update_one)

        await self.audit_service.log(
            action=AuditAction.HIRE_BULK_UPDATE,
            resource_type=ResourceType.HIRE,
            user=user,
            request=request,
            details={
                "fields": sorted(fields),
                "total": response.total,
                "succeeded": response.succeeded,
                "failed": response.failed,
            },
        )
        await self.session.commit()
        await self._invalidate_cache()
        return response

    async def bulk_delete(
        self,
        data: BulkDeleteRequest,
        user: AppUser | None = None,
        request: Request | None = None,
    ) -> BulkOperationResponse:
        """Delete every selected hire. Missing ids are reported per item."""
        performed_by = user.username if user else "System"
        documents: dict[UUID, str] = {}

        async def delete_one(session: AsyncSession, hire_id: UUID) -> str:
            repo = HireRepository(session)
            hire = await repo.get_by_id(hire_id)
            if hire is None:
                return ITEM_NOT_FOUND
            name, document = hire.name, hire.srf_document_path
            if not await repo.delete(hire_id):
                return ITEM_NOT_FOUND
            await HireAuditService(session).record(
                hire_id=hire_id,
                action_type=HireAction.HIRE_DELETED,
                status=AuditStatus.INFO,
                message=f"Hire record deleted: {name}",
                performed_by=performed_by,
            )
            if document:
                documents[hire_id] = document
            return ITEM_OK

        response = await self._run_bulk(data.ids, delete_one)

        await self.audit_service.log(
            action=AuditAction.HIRE_BULK_DELETE,
            resource_type=ResourceType.HIRE,
            user=user,
            request=request,
            details={
                "ids": [str(r.id) for r in response.results if r.status == ITEM_OK],
                "total": response.total,
                "failed": response.failed,
            },
        )
        await self.session.commit()
        await self._invalidate_cache()

        # Files go only once their row deletion has committed
        for result in response.results:
            if result.status == ITEM_OK and result.id in documents:
                remove_stored_document(documents[result.id])
        return response

    def suggest_credentials(self, name: str, email: str) -> CredentialSuggestionResponse:
        """Advisory username and first-login password for a hire."""
        return CredentialSuggestionResponse(
            username=derive_username(email),
            password=suggest_initial_password(name),
        )
